"""Candidate endpoints."""
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from loguru import logger

from lodge_access.schemas import Action, Principal, ResourceDescriptor, ResourceKind
from lodge_access.store import LodgeStore
from lodge_api.deps import get_store
from lodge_api.middleware.auth import authorize, current_principal, decide
from lodge_api.schemas import CandidateCreate, CandidateUpdate

router = APIRouter(prefix="/candidates", tags=["candidates"])


@router.get("")
def list_candidates(
    request: Request,
    principal: Optional[Principal] = Depends(current_principal),
    store: LodgeStore = Depends(get_store),
):
    """Active candidates the caller may see, each with a fresh ``daysLeft``."""
    if principal is None:
        anonymous = ResourceDescriptor(kind=ResourceKind.CANDIDATE)
        authorize(request, store, principal, Action.READ, anonymous)

    visible = []
    for candidate in store.active_candidates():
        resource = ResourceDescriptor(
            kind=ResourceKind.CANDIDATE,
            id=candidate.id,
            lodge_id=store.resolve_record_lodge(candidate),
        )
        if decide(principal, Action.READ, resource).allowed:
            visible.append(candidate.as_document())
    return visible


@router.post("", status_code=201)
def create_candidate(
    payload: CandidateCreate,
    request: Request,
    principal: Optional[Principal] = Depends(current_principal),
    store: LodgeStore = Depends(get_store),
):
    resource = ResourceDescriptor(kind=ResourceKind.CANDIDATE, lodge_id=payload.lodge_id)
    authorize(request, store, principal, Action.CREATE, resource)

    if payload.lodge_id and store.get_lodge(payload.lodge_id) is None:
        raise HTTPException(status_code=400, detail="Lodge not found")

    candidate = store.create_candidate(created_by=principal.id, **payload.changes())
    return candidate.as_document()


@router.get("/{candidate_id}")
def get_candidate(
    candidate_id: str,
    request: Request,
    principal: Optional[Principal] = Depends(current_principal),
    store: LodgeStore = Depends(get_store),
):
    resource = store.describe_candidate(candidate_id)
    authorize(request, store, principal, Action.READ, resource)
    return store.get_candidate(candidate_id).as_document()


@router.put("/{candidate_id}")
def update_candidate(
    candidate_id: str,
    payload: CandidateUpdate,
    request: Request,
    principal: Optional[Principal] = Depends(current_principal),
    store: LodgeStore = Depends(get_store),
):
    resource = store.describe_candidate(candidate_id)
    authorize(request, store, principal, Action.UPDATE, resource)

    changes = payload.changes()
    if "lodge_id" in changes:
        # moving a candidate also needs update rights in the destination lodge
        destination = changes["lodge_id"]
        if destination and store.get_lodge(destination) is None:
            raise HTTPException(status_code=400, detail="Lodge not found")
        moved = ResourceDescriptor(
            kind=ResourceKind.CANDIDATE, id=candidate_id, lodge_id=destination
        )
        authorize(request, store, principal, Action.UPDATE, moved)

    candidate = store.get_candidate(candidate_id)
    timing = changes.pop("timing", None)
    for field, value in changes.items():
        setattr(candidate, field, value)
    if timing:
        candidate.start_date = timing["start_date"]
        candidate.end_date = timing["end_date"]
    store.session.flush()

    logger.info(f"Candidate {candidate.id} updated by {principal.id}")
    return candidate.as_document()


@router.delete("/{candidate_id}")
def delete_candidate(
    candidate_id: str,
    request: Request,
    principal: Optional[Principal] = Depends(current_principal),
    store: LodgeStore = Depends(get_store),
):
    resource = store.describe_candidate(candidate_id)
    authorize(request, store, principal, Action.DELETE, resource)

    store.session.delete(store.get_candidate(candidate_id))
    logger.info(f"Candidate {candidate_id} deleted by {principal.id}")
    return {"message": "Candidate deleted successfully"}
