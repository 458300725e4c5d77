"""Role ranking and per-lodge role resolution."""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from lodge_access.errors import AccessContractError


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    DISTRICT_ADMIN = "DISTRICT_ADMIN"
    LODGE_ADMIN = "LODGE_ADMIN"
    LODGE_MEMBER = "LODGE_MEMBER"


ROLE_RANK: Dict[str, int] = {
    Role.SUPER_ADMIN.value: 4,
    Role.DISTRICT_ADMIN.value: 3,
    Role.LODGE_ADMIN.value: 2,
    Role.LODGE_MEMBER.value: 1,
}

ADMIN_ROLES = frozenset(
    (Role.SUPER_ADMIN.value, Role.DISTRICT_ADMIN.value, Role.LODGE_ADMIN.value)
)


def normalize_role(role: Any) -> Optional[str]:
    """Return the canonical (uppercase) form of a role value, or None."""
    if role is None:
        return None
    if isinstance(role, Role):
        return role.value
    return str(role).strip().upper()


def rank(role: Any) -> int:
    # Unknown or missing roles rank as LODGE_MEMBER. Callers rely on this.
    return ROLE_RANK.get(normalize_role(role) or "", ROLE_RANK[Role.LODGE_MEMBER.value])


def is_admin_role(role: Any) -> bool:
    return normalize_role(role) in ADMIN_ROLES


def _lodge_roles(principal: Any) -> Mapping:
    roles = getattr(principal, "lodge_roles", None) or {}
    if not isinstance(roles, Mapping):
        raise AccessContractError(
            f"lodge_roles must be a mapping, got {type(roles).__name__}"
        )
    for key in roles:
        if not isinstance(key, str):
            raise AccessContractError(
                f"lodge_roles key {key!r} is {type(key).__name__}, expected str"
            )
    return roles


def effective_role(principal: Any, lodge_id: Optional[str]) -> Optional[str]:
    """Role of ``principal`` inside ``lodge_id``; lodge overrides win over the global role."""
    roles = _lodge_roles(principal)
    if lodge_id is not None and str(lodge_id) in roles:
        return normalize_role(roles[str(lodge_id)])
    return normalize_role(getattr(principal, "global_role", None))


def highest_role(principal: Any) -> Optional[str]:
    best = normalize_role(getattr(principal, "global_role", None))
    for role in _lodge_roles(principal).values():
        candidate = normalize_role(role)
        if best is None or rank(candidate) > rank(best):
            best = candidate
    return best


def has_district_authority(principal: Any) -> bool:
    return rank(highest_role(principal)) >= ROLE_RANK[Role.DISTRICT_ADMIN.value]


@dataclass(frozen=True)
class RolePromotion:
    """Outcome of recomputing a member's global role after a lodge-role edit."""

    role: str
    lodge_roles: Dict[str, str] = field(default_factory=dict)
    added_lodges: List[str] = field(default_factory=list)


def promote_roles(
    lodge_roles: Mapping,
    primary_lodge_id: Optional[str] = None,
    district_lodge_id: Optional[str] = None,
    lodges: Iterable[str] = (),
) -> RolePromotion:
    """Derive the global role from ``lodge_roles`` and fill in implied entries.

    The global role becomes the highest ranked value in ``lodge_roles``
    (LODGE_MEMBER when empty). A DISTRICT_ADMIN also gets a DISTRICT_ADMIN
    entry in the district's root lodge and becomes a member of it; a
    LODGE_ADMIN gets a LODGE_ADMIN entry in its primary lodge.
    """
    if not isinstance(lodge_roles, Mapping):
        raise AccessContractError("lodge_roles must be a mapping")

    roles: Dict[str, str] = {}
    for key, value in lodge_roles.items():
        if not isinstance(key, str):
            raise AccessContractError(f"lodge_roles key {key!r} is not a string")
        roles[key] = normalize_role(value) or Role.LODGE_MEMBER.value

    best = Role.LODGE_MEMBER.value
    for value in roles.values():
        if rank(value) > rank(best):
            best = value

    added: List[str] = []
    if best == Role.DISTRICT_ADMIN.value and district_lodge_id:
        roles[district_lodge_id] = Role.DISTRICT_ADMIN.value
        if district_lodge_id not in set(lodges):
            added.append(district_lodge_id)
    elif best == Role.LODGE_ADMIN.value and primary_lodge_id:
        roles[primary_lodge_id] = Role.LODGE_ADMIN.value

    return RolePromotion(role=best, lodge_roles=roles, added_lodges=added)
