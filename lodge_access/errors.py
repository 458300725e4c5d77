"""Exceptions raised by the access-control core."""
from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from lodge_access.schemas import AccessDecision


class AccessContractError(TypeError):
    """A caller handed the guard malformed internal state (not a user error)."""


class AccessDenied(Exception):
    def __init__(self, decision: "AccessDecision"):
        self.decision = decision
        super().__init__(f"{decision.reason_code.value} ({decision.http_status})")
