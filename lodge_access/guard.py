"""Central allow/deny decisions for lodge resources."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from loguru import logger

from lodge_access.errors import AccessContractError
from lodge_access.membership import administers, is_administrator_of, is_same_lodge
from lodge_access.roles import (
    ROLE_RANK,
    Role,
    effective_role,
    has_district_authority,
    highest_role,
    is_admin_role,
    rank,
)
from lodge_access.schemas import (
    AccessDecision,
    Action,
    Principal,
    ReasonCode,
    ResourceDescriptor,
    ResourceKind,
)


@dataclass(frozen=True)
class Rule:
    min_role: Role
    lodge_scoped: bool = False
    author_only: bool = False


MEMBER, LODGE_ADMIN, DISTRICT_ADMIN = Role.LODGE_MEMBER, Role.LODGE_ADMIN, Role.DISTRICT_ADMIN

POLICY: Dict[Tuple[ResourceKind, Action], Rule] = {
    (ResourceKind.CANDIDATE, Action.CREATE): Rule(MEMBER),
    (ResourceKind.CANDIDATE, Action.READ): Rule(MEMBER, lodge_scoped=True),
    (ResourceKind.CANDIDATE, Action.UPDATE): Rule(LODGE_ADMIN, lodge_scoped=True),
    (ResourceKind.CANDIDATE, Action.DELETE): Rule(LODGE_ADMIN, lodge_scoped=True),
    (ResourceKind.LODGE, Action.CREATE): Rule(DISTRICT_ADMIN),
    (ResourceKind.LODGE, Action.READ): Rule(MEMBER),
    # lodge admins may edit their own lodge; members endpoint has no such carve-out
    (ResourceKind.LODGE, Action.UPDATE): Rule(LODGE_ADMIN, lodge_scoped=True),
    (ResourceKind.LODGE, Action.DELETE): Rule(DISTRICT_ADMIN),
    (ResourceKind.MEMBER, Action.CREATE): Rule(DISTRICT_ADMIN),
    (ResourceKind.MEMBER, Action.READ): Rule(MEMBER),
    (ResourceKind.MEMBER, Action.UPDATE): Rule(DISTRICT_ADMIN),
    (ResourceKind.MEMBER, Action.DELETE): Rule(DISTRICT_ADMIN),
    (ResourceKind.EVENT, Action.CREATE): Rule(LODGE_ADMIN, lodge_scoped=True),
    (ResourceKind.EVENT, Action.READ): Rule(MEMBER),
    (ResourceKind.EVENT, Action.UPDATE): Rule(LODGE_ADMIN, lodge_scoped=True),
    (ResourceKind.EVENT, Action.DELETE): Rule(LODGE_ADMIN, lodge_scoped=True),
    (ResourceKind.POST, Action.CREATE): Rule(MEMBER),
    (ResourceKind.POST, Action.READ): Rule(MEMBER),
    (ResourceKind.POST, Action.UPDATE): Rule(MEMBER, author_only=True),
    (ResourceKind.POST, Action.DELETE): Rule(MEMBER, author_only=True),
    # admin hand-over: district role, or the admin seat of one lodge
    (ResourceKind.MEMBER, Action.TRANSFER): Rule(DISTRICT_ADMIN),
    (ResourceKind.LODGE, Action.TRANSFER): Rule(LODGE_ADMIN, lodge_scoped=True),
}


class AccessGuard:
    """Stateless policy evaluator.

    ``check`` is a pure function of its arguments: the caller resolves the
    principal and the target's lodge beforehand (see
    ``lodge_access.membership.resolve_lodge_id``).
    """

    def __init__(self, policy: Optional[Dict[Tuple[ResourceKind, Action], Rule]] = None):
        self.policy = dict(POLICY if policy is None else policy)

    def rule_for(self, kind: ResourceKind, action: Action) -> Rule:
        try:
            return self.policy[(ResourceKind(kind), Action(action))]
        except (KeyError, ValueError):
            raise AccessContractError(f"no policy for {action} on {kind}") from None

    def check(
        self,
        principal: Optional[Principal],
        action: Action,
        resource: ResourceDescriptor,
    ) -> AccessDecision:
        if principal is None:
            return AccessDecision.deny(ReasonCode.NO_TOKEN)

        action = Action(action)
        rule = self.rule_for(resource.kind, action)

        if rank(highest_role(principal)) < ROLE_RANK[rule.min_role.value]:
            return self._deny(principal, action, resource, ReasonCode.INSUFFICIENT_ROLE)

        if not resource.exists:
            return self._deny(principal, action, resource, ReasonCode.RESOURCE_NOT_FOUND)

        if rule.lodge_scoped and self._is_lodge_level_admin(principal, resource.lodge_id):
            if resource.lodge_id is None:
                return self._deny(
                    principal, action, resource, ReasonCode.NO_LODGE_ASSOCIATION
                )
            if not self._in_scope(principal, rule, resource.lodge_id):
                return self._deny(principal, action, resource, ReasonCode.WRONG_LODGE)

        if action is Action.DELETE:
            if resource.kind is ResourceKind.LODGE and resource.member_count > 0:
                return self._deny(principal, action, resource, ReasonCode.LODGE_NOT_EMPTY)
            if resource.kind is ResourceKind.MEMBER and is_admin_role(resource.target_role):
                return self._deny(
                    principal, action, resource, ReasonCode.CANNOT_DELETE_ADMIN
                )

        if rule.author_only and resource.owner_id != principal.id:
            moderating = action is Action.DELETE and has_district_authority(principal)
            if not moderating:
                return self._deny(principal, action, resource, ReasonCode.NOT_AUTHOR)

        return AccessDecision.allow()

    @staticmethod
    def _is_lodge_level_admin(principal: Principal, lodge_id: Optional[str]) -> bool:
        if has_district_authority(principal):
            return False
        return LODGE_ADMIN.value in (
            effective_role(principal, lodge_id),
            highest_role(principal),
        )

    @staticmethod
    def _in_scope(principal: Principal, rule: Rule, lodge_id: str) -> bool:
        if rule.min_role is MEMBER:
            return is_same_lodge(principal, lodge_id) or administers(principal, lodge_id)
        return is_administrator_of(principal, lodge_id)

    @staticmethod
    def _deny(
        principal: Principal,
        action: Action,
        resource: ResourceDescriptor,
        reason: ReasonCode,
    ) -> AccessDecision:
        logger.debug(
            f"Denied {action.value} {resource.kind.value}:{resource.id} "
            f"for {principal.id}: {reason.value}"
        )
        return AccessDecision.deny(reason)


default_guard = AccessGuard()


def check(
    principal: Optional[Principal], action: Action, resource: ResourceDescriptor
) -> AccessDecision:
    return default_guard.check(principal, action, resource)
