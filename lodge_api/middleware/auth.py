"""Authentication and authorization dependencies for FastAPI routes.

``current_principal`` resolves the bearer token to a fresh ``Principal``;
``authorize`` runs the guard and turns a denial into ``AccessDenied``.
"""
from __future__ import annotations

from typing import Optional

from fastapi import Depends, Header, Request
from loguru import logger

from lodge_access.guard import default_guard
from lodge_access.metrics import ACCESS_DECISIONS_COUNTER
from lodge_access.schemas import AccessDecision, Action, Principal, ResourceDescriptor
from lodge_access.store import LodgeStore
from lodge_api.auth import bearer_token, decode_jwt, subject_of
from lodge_api.deps import get_store


def current_principal(
    authorization: Optional[str] = Header(None),
    store: LodgeStore = Depends(get_store),
) -> Optional[Principal]:
    token = bearer_token(authorization)
    if token is None:
        return None
    member_id = subject_of(decode_jwt(token))
    if member_id is None:
        logger.warning("Rejected bearer token that failed verification")
        return None
    return store.principal_for(member_id)


def decide(
    principal: Optional[Principal], action: Action, resource: ResourceDescriptor
) -> AccessDecision:
    decision = default_guard.check(principal, action, resource)
    ACCESS_DECISIONS_COUNTER.labels(
        resource=resource.kind.value,
        action=Action(action).value,
        reason=decision.reason_code.value,
    ).inc()
    return decision


def authorize(
    request: Request,
    store: LodgeStore,
    principal: Optional[Principal],
    action: Action,
    resource: ResourceDescriptor,
) -> AccessDecision:
    decision = decide(principal, action, resource)
    if not decision.allowed:
        logger.warning(
            f"{request.method} {request.url.path}: {decision.reason_code.value} "
            f"for {principal.id if principal else 'anonymous'}"
        )
        store.record_decision(
            principal,
            action,
            resource,
            decision,
            ip_address=request.client.host if request.client else None,
        )
        # audit rows must survive the rollback triggered by the denial
        store.session.commit()
    return decision.raise_for_status()
