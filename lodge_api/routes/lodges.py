"""Lodge endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from loguru import logger
from sqlalchemy import select

from lodge_access.membership import is_administrator_of
from lodge_access.models import Lodge
from lodge_access.roles import Role, has_district_authority
from lodge_access.schemas import Action, Principal, ResourceDescriptor, ResourceKind
from lodge_access.store import LodgeStore
from lodge_api.deps import get_store
from lodge_api.middleware.auth import authorize, current_principal
from lodge_api.routes.members import successor_for, transfer_body
from lodge_api.schemas import AdminTransfer, LodgeCreate, LodgeUpdate

router = APIRouter(prefix="/lodges", tags=["lodges"])


def _lodge_body(store: LodgeStore, lodge: Lodge) -> dict:
    body = lodge.as_document()
    body["location"] = lodge.location
    body["description"] = lodge.description
    body["memberCount"] = store.count_members(lodge.id)
    return body


def _ensure_unique_name(store: LodgeStore, name: str, lodge_id: Optional[str] = None):
    existing = store.session.execute(
        select(Lodge).where(Lodge.name == name)
    ).scalar_one_or_none()
    if existing is not None and existing.id != lodge_id:
        raise HTTPException(status_code=409, detail="A lodge with this name already exists")


@router.post("", status_code=201)
def create_lodge(
    payload: LodgeCreate,
    request: Request,
    principal: Optional[Principal] = Depends(current_principal),
    store: LodgeStore = Depends(get_store),
):
    authorize(
        request, store, principal, Action.CREATE, ResourceDescriptor(kind=ResourceKind.LODGE)
    )
    _ensure_unique_name(store, payload.name)

    lodge = Lodge(**payload.changes())
    store.session.add(lodge)
    store.session.flush()
    logger.info(f"Lodge {lodge.name} created by {principal.id}")
    return _lodge_body(store, lodge)


@router.get("/{lodge_id}")
def get_lodge(
    lodge_id: str,
    request: Request,
    principal: Optional[Principal] = Depends(current_principal),
    store: LodgeStore = Depends(get_store),
):
    authorize(request, store, principal, Action.READ, store.describe_lodge(lodge_id))
    return _lodge_body(store, store.get_lodge(lodge_id))


@router.put("/{lodge_id}")
def update_lodge(
    lodge_id: str,
    payload: LodgeUpdate,
    request: Request,
    principal: Optional[Principal] = Depends(current_principal),
    store: LodgeStore = Depends(get_store),
):
    authorize(request, store, principal, Action.UPDATE, store.describe_lodge(lodge_id))

    lodge = store.get_lodge(lodge_id)
    changes = payload.changes()
    if "name" in changes:
        _ensure_unique_name(store, changes["name"], lodge.id)
    for field, value in changes.items():
        setattr(lodge, field, value)
    lodge.updated_at = datetime.utcnow()
    store.session.flush()

    logger.info(f"Lodge {lodge.id} updated by {principal.id}")
    return _lodge_body(store, lodge)


@router.delete("/{lodge_id}")
def delete_lodge(
    lodge_id: str,
    request: Request,
    principal: Optional[Principal] = Depends(current_principal),
    store: LodgeStore = Depends(get_store),
):
    authorize(request, store, principal, Action.DELETE, store.describe_lodge(lodge_id))

    store.session.delete(store.get_lodge(lodge_id))
    logger.info(f"Lodge {lodge_id} deleted by {principal.id}")
    return {"message": "Lodge deleted successfully"}


@router.post("/{lodge_id}/transfer-admin")
def transfer_lodge_admin(
    lodge_id: str,
    payload: AdminTransfer,
    request: Request,
    principal: Optional[Principal] = Depends(current_principal),
    store: LodgeStore = Depends(get_store),
):
    """Hand the admin seat of a lodge to another member.

    A lodge admin gives up the seat; a district admin assigns it and keeps
    their own role.
    """
    authorize(request, store, principal, Action.TRANSFER, store.describe_lodge(lodge_id))

    successor = successor_for(store, principal, payload.new_admin_id)
    if is_administrator_of(store.principal_for(successor.id), lodge_id):
        raise HTTPException(status_code=400, detail="New admin already administers this lodge")

    current = None if has_district_authority(principal) else store.get_member(principal.id)
    store.transfer_admin(successor, lodge_id, Role.LODGE_ADMIN, current=current)
    store.session.flush()
    return transfer_body("Lodge admin privileges transferred successfully", successor, current)
