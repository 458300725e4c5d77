"""Role-based access control for lodge membership records."""
from lodge_access.errors import AccessContractError, AccessDenied
from lodge_access.guard import POLICY, AccessGuard, Rule, check
from lodge_access.membership import (
    is_administrator_of,
    is_same_lodge,
    normalize_id,
    resolve_lodge_id,
)
from lodge_access.roles import Role, effective_role, highest_role, promote_roles, rank
from lodge_access.schemas import (
    AccessDecision,
    Action,
    Principal,
    ReasonCode,
    ResourceDescriptor,
    ResourceKind,
)

__all__ = [
    "POLICY",
    "AccessContractError",
    "AccessDecision",
    "AccessDenied",
    "AccessGuard",
    "Action",
    "Principal",
    "ReasonCode",
    "ResourceDescriptor",
    "ResourceKind",
    "Role",
    "Rule",
    "check",
    "effective_role",
    "highest_role",
    "is_administrator_of",
    "is_same_lodge",
    "normalize_id",
    "promote_roles",
    "rank",
    "resolve_lodge_id",
]
