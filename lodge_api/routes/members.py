"""Member endpoints. Only district and super admins may change members."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from loguru import logger
from sqlalchemy import select

from lodge_access.models import Member
from lodge_access.roles import Role, has_district_authority
from lodge_access.schemas import Action, Principal
from lodge_access.store import LodgeStore
from lodge_api.deps import get_store
from lodge_api.middleware.auth import authorize, current_principal
from lodge_api.schemas import AdminTransfer, MemberUpdate

router = APIRouter(prefix="/members", tags=["members"])


def _ensure_unique_email(store: LodgeStore, email: Optional[str], member_id: str):
    if not email:
        raise HTTPException(status_code=400, detail="Email is required")
    existing = store.session.execute(
        select(Member).where(Member.email == email)
    ).scalar_one_or_none()
    if existing is not None and existing.id != member_id:
        raise HTTPException(status_code=409, detail="A member with this email already exists")


def successor_for(store: LodgeStore, principal: Principal, member_id: str) -> Member:
    """Load the member who takes over an admin seat."""
    if member_id == principal.id:
        raise HTTPException(status_code=400, detail="New admin must be a different member")
    successor = store.get_member(member_id)
    if successor is None:
        raise HTTPException(status_code=404, detail="New admin not found")
    if not successor.is_active:
        raise HTTPException(status_code=400, detail="New admin is not an active member")
    return successor


def transfer_body(message: str, successor: Member, previous: Optional[Member]) -> dict:
    def summary(member: Member) -> dict:
        return {
            "_id": member.id,
            "name": member.name,
            "email": member.email,
            "role": member.role,
        }

    return {
        "message": message,
        "newAdmin": summary(successor),
        "previousAdmin": summary(previous) if previous is not None else None,
    }


@router.post("/transfer-admin")
def transfer_district_admin(
    payload: AdminTransfer,
    request: Request,
    principal: Optional[Principal] = Depends(current_principal),
    store: LodgeStore = Depends(get_store),
):
    """Hand the caller's district admin role to another member."""
    resource = store.describe_member(payload.new_admin_id)
    authorize(request, store, principal, Action.TRANSFER, resource)

    successor = successor_for(store, principal, payload.new_admin_id)
    if has_district_authority(store.principal_for(successor.id)):
        raise HTTPException(status_code=400, detail="New admin already has district privileges")
    district = store.district_lodge()
    if district is None:
        raise HTTPException(status_code=400, detail="District lodge not found")

    current = store.get_member(principal.id)
    store.transfer_admin(successor, district.id, Role.DISTRICT_ADMIN, current=current)
    store.session.flush()
    return transfer_body("Admin privileges transferred successfully", successor, current)


@router.get("/{member_id}")
def get_member(
    member_id: str,
    request: Request,
    principal: Optional[Principal] = Depends(current_principal),
    store: LodgeStore = Depends(get_store),
):
    authorize(request, store, principal, Action.READ, store.describe_member(member_id))
    return store.get_member(member_id).as_document()


@router.put("/{member_id}")
def update_member(
    member_id: str,
    payload: MemberUpdate,
    request: Request,
    principal: Optional[Principal] = Depends(current_principal),
    store: LodgeStore = Depends(get_store),
):
    authorize(request, store, principal, Action.UPDATE, store.describe_member(member_id))

    member = store.get_member(member_id)
    changes = payload.changes()
    lodge_roles = changes.pop("lodge_roles", None)

    if "email" in changes:
        _ensure_unique_email(store, changes["email"], member.id)
    primary = changes.get("primary_lodge_id")
    if primary and store.get_lodge(primary) is None:
        raise HTTPException(status_code=400, detail="Primary lodge not found")

    for field, value in changes.items():
        setattr(member, field, value)
    if lodge_roles is not None:
        store.apply_lodge_roles(member, lodge_roles)
    member.updated_at = datetime.utcnow()
    store.session.flush()

    logger.info(f"Member {member.id} updated by {principal.id}")
    return member.as_document()


@router.delete("/{member_id}")
def delete_member(
    member_id: str,
    request: Request,
    principal: Optional[Principal] = Depends(current_principal),
    store: LodgeStore = Depends(get_store),
):
    authorize(request, store, principal, Action.DELETE, store.describe_member(member_id))

    store.session.delete(store.get_member(member_id))
    logger.info(f"Member {member_id} deleted by {principal.id}")
    return {"message": "Member deleted successfully", "deletedMemberId": member_id}
