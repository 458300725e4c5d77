"""Data access for the lookups the guard needs, plus the writes around them."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.orm import Session

from lodge_access.candidates import candidate_window, is_active
from lodge_access.config import district_lodge_name
from lodge_access.membership import resolve_lodge_id
from lodge_access.metrics import ROLE_PROMOTIONS_COUNTER
from lodge_access.models import AuditLog, Candidate, Lodge, LodgeMembership, Member
from lodge_access.roles import Role, RolePromotion, normalize_role, promote_roles, rank
from lodge_access.schemas import (
    AccessDecision,
    Action,
    Principal,
    ResourceDescriptor,
    ResourceKind,
)


class LodgeStore:
    def __init__(self, session: Session):
        self.session = session

    # -- lookups -----------------------------------------------------------

    def get_lodge(self, lodge_id: Optional[str]) -> Optional[Lodge]:
        if not lodge_id:
            return None
        return self.session.get(Lodge, str(lodge_id))

    def get_member(self, member_id: Optional[str]) -> Optional[Member]:
        if not member_id:
            return None
        return self.session.get(Member, str(member_id))

    def get_candidate(self, candidate_id: Optional[str]) -> Optional[Candidate]:
        if not candidate_id:
            return None
        return self.session.get(Candidate, str(candidate_id))

    def district_lodge(self) -> Optional[Lodge]:
        return self.session.execute(
            select(Lodge).where(Lodge.name == district_lodge_name())
        ).scalar_one_or_none()

    def lodge_documents(self) -> Iterator[Dict[str, Any]]:
        """Lazily yield every lodge as a document for reverse lookups."""
        for lodge in self.session.execute(select(Lodge)).scalars():
            yield lodge.as_document()

    def resolve_record_lodge(self, record: Any) -> Optional[str]:
        document = record.as_document() if hasattr(record, "as_document") else record
        return resolve_lodge_id(document, self.lodge_documents())

    def count_members(self, lodge_id: str) -> int:
        ids = set(
            self.session.execute(
                select(Member.id).where(Member.primary_lodge_id == lodge_id)
            ).scalars()
        )
        ids.update(
            self.session.execute(
                select(LodgeMembership.member_id).where(
                    LodgeMembership.lodge_id == lodge_id
                )
            ).scalars()
        )
        lodge = self.get_lodge(lodge_id)
        if lodge is not None:
            ids.update(str(m) for m in (lodge.roster or {}).get("members", []))
        return len(ids)

    def principal_for(self, member_id: Optional[str]) -> Optional[Principal]:
        """Build the principal from stored state; token claims are not trusted."""
        member = self.get_member(member_id)
        if member is None or not member.is_active:
            return None
        return Principal(
            id=member.id,
            role=member.role,
            primary_lodge_id=member.primary_lodge_id,
            administered_lodge_ids=member.administered_lodge_ids or [],
            lodge_roles=member.lodge_roles or {},
        )

    def active_candidates(self, now: Optional[datetime] = None) -> List[Candidate]:
        rows = self.session.execute(
            select(Candidate).order_by(Candidate.created_at)
        ).scalars()
        return [c for c in rows if is_active(c.end_date, now)]

    # -- descriptors -------------------------------------------------------

    def describe_candidate(self, candidate_id: str) -> ResourceDescriptor:
        candidate = self.get_candidate(candidate_id)
        if candidate is None:
            return ResourceDescriptor(
                kind=ResourceKind.CANDIDATE, id=candidate_id, exists=False
            )
        return ResourceDescriptor(
            kind=ResourceKind.CANDIDATE,
            id=candidate.id,
            lodge_id=self.resolve_record_lodge(candidate),
        )

    def describe_lodge(self, lodge_id: str) -> ResourceDescriptor:
        lodge = self.get_lodge(lodge_id)
        if lodge is None:
            return ResourceDescriptor(kind=ResourceKind.LODGE, id=lodge_id, exists=False)
        return ResourceDescriptor(
            kind=ResourceKind.LODGE,
            id=lodge.id,
            lodge_id=lodge.id,
            member_count=self.count_members(lodge.id),
        )

    def describe_member(self, member_id: str) -> ResourceDescriptor:
        member = self.get_member(member_id)
        if member is None:
            return ResourceDescriptor(kind=ResourceKind.MEMBER, id=member_id, exists=False)
        return ResourceDescriptor(
            kind=ResourceKind.MEMBER,
            id=member.id,
            lodge_id=self.resolve_record_lodge(member),
            target_role=member.role,
        )

    # -- writes ------------------------------------------------------------

    def create_candidate(
        self, created_by: Optional[str] = None, **fields: Any
    ) -> Candidate:
        start, end = candidate_window()
        candidate = Candidate(
            status="pending",
            start_date=start,
            end_date=end,
            created_by=created_by,
            **fields,
        )
        self.session.add(candidate)
        self.session.flush()
        logger.info(f"Candidate {candidate.id} created, visible until {end}")
        return candidate

    def apply_lodge_roles(self, member: Member, lodge_roles: Dict[str, str]) -> RolePromotion:
        """Store ``lodge_roles`` and recompute the member's global role."""
        promotion = promote_roles(
            lodge_roles,
            primary_lodge_id=member.primary_lodge_id,
            district_lodge_id=self._district_lodge_id(),
            lodges=member.lodge_ids,
        )
        self._store_promotion(member, promotion)
        return promotion

    def transfer_admin(
        self,
        successor: Member,
        lodge_id: str,
        role: Role,
        current: Optional[Member] = None,
    ) -> RolePromotion:
        """Hand an admin seat in ``lodge_id`` from ``current`` to ``successor``.

        For ``DISTRICT_ADMIN`` the seat lives in the district root lodge and
        ``current`` loses every district-level entry; for ``LODGE_ADMIN`` only
        the entry for ``lodge_id`` moves. ``current`` may be omitted when a
        district admin assigns a lodge seat without holding it. Both members'
        global roles are recomputed with ``promote_roles``.
        """
        role = Role(role)
        district_id = self._district_lodge_id()

        if current is not None:
            demoted = dict(current.lodge_roles or {})
            if role is Role.DISTRICT_ADMIN:
                for key, value in demoted.items():
                    if rank(value) >= rank(role):
                        demoted[key] = Role.LODGE_MEMBER.value
            demoted[lodge_id] = Role.LODGE_MEMBER.value
            self._store_promotion(
                current, promote_roles(demoted, district_lodge_id=district_id)
            )
            current.administered_lodge_ids = [
                i for i in (current.administered_lodge_ids or []) if i != lodge_id
            ]

        granted = dict(successor.lodge_roles or {})
        primary = successor.primary_lodge_id
        if primary and primary != lodge_id and primary not in granted:
            # keep the old standing in the primary lodge; the new seat is elsewhere
            granted[primary] = normalize_role(successor.role) or Role.LODGE_MEMBER.value
        granted[lodge_id] = role.value
        promotion = promote_roles(
            granted, district_lodge_id=district_id, lodges=successor.lodge_ids
        )
        self._store_promotion(successor, promotion)

        if role is Role.LODGE_ADMIN:
            administered = list(successor.administered_lodge_ids or [])
            if lodge_id not in administered:
                successor.administered_lodge_ids = administered + [lodge_id]
        if lodge_id != primary and lodge_id not in successor.lodge_ids:
            self._join(successor, lodge_id)

        logger.info(
            f"{role.value} seat in {lodge_id} transferred to {successor.id}"
            + (f" from {current.id}" if current is not None else "")
        )
        return promotion

    def _district_lodge_id(self) -> Optional[str]:
        district = self.district_lodge()
        return district.id if district is not None else None

    def _join(self, member: Member, lodge_id: str) -> None:
        member.memberships.append(
            LodgeMembership(lodge_id=lodge_id, position="Member", ordinal=len(member.memberships))
        )

    def _store_promotion(self, member: Member, promotion: RolePromotion) -> None:
        if promotion.role != member.role:
            logger.info(f"Member {member.id} role {member.role} -> {promotion.role}")
            ROLE_PROMOTIONS_COUNTER.inc()
        member.role = promotion.role
        member.lodge_roles = promotion.lodge_roles
        for lodge_id in promotion.added_lodges:
            self._join(member, lodge_id)
        member.updated_at = datetime.utcnow()

    def record_decision(
        self,
        principal: Optional[Principal],
        action: Action,
        resource: ResourceDescriptor,
        decision: AccessDecision,
        ip_address: Optional[str] = None,
    ) -> AuditLog:
        entry = AuditLog(
            action=Action(action).value,
            resource_type=resource.kind.value,
            resource_id=resource.id,
            user=principal.id if principal is not None else None,
            ip_address=ip_address,
            reason_code=decision.reason_code.value,
            success=decision.allowed,
        )
        self.session.add(entry)
        return entry
