from __future__ import annotations

from enum import Enum
from typing import Any, Dict, FrozenSet, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from lodge_access.errors import AccessContractError, AccessDenied
from lodge_access.membership import normalize_id
from lodge_access.roles import normalize_role


class ResourceKind(str, Enum):
    CANDIDATE = "candidate"
    LODGE = "lodge"
    MEMBER = "member"
    EVENT = "event"
    POST = "post"


class Action(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    TRANSFER = "transfer"


class ReasonCode(str, Enum):
    OK = "OK"
    NO_TOKEN = "NO_TOKEN"
    INSUFFICIENT_ROLE = "INSUFFICIENT_ROLE"
    WRONG_LODGE = "WRONG_LODGE"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    NO_LODGE_ASSOCIATION = "NO_LODGE_ASSOCIATION"
    LODGE_NOT_EMPTY = "LODGE_NOT_EMPTY"
    CANNOT_DELETE_ADMIN = "CANNOT_DELETE_ADMIN"
    NOT_AUTHOR = "NOT_AUTHOR"


# Role insufficiency and lodge mismatch answer 401, not 403; clients depend on it.
REASON_STATUS: Dict[ReasonCode, int] = {
    ReasonCode.OK: 200,
    ReasonCode.NO_TOKEN: 401,
    ReasonCode.INSUFFICIENT_ROLE: 401,
    ReasonCode.WRONG_LODGE: 401,
    ReasonCode.RESOURCE_NOT_FOUND: 404,
    ReasonCode.NO_LODGE_ASSOCIATION: 400,
    ReasonCode.LODGE_NOT_EMPTY: 400,
    ReasonCode.CANNOT_DELETE_ADMIN: 403,
    ReasonCode.NOT_AUTHOR: 403,
}

REASON_MESSAGES: Dict[ReasonCode, str] = {
    ReasonCode.OK: "Allowed",
    ReasonCode.NO_TOKEN: "Unauthorized - No token provided",
    ReasonCode.INSUFFICIENT_ROLE: "Unauthorized - Insufficient permissions",
    ReasonCode.WRONG_LODGE: "Unauthorized - Resource belongs to another lodge",
    ReasonCode.RESOURCE_NOT_FOUND: "Resource not found",
    ReasonCode.NO_LODGE_ASSOCIATION: "Resource is not associated with any lodge",
    ReasonCode.LODGE_NOT_EMPTY: "Cannot delete lodge with existing members",
    ReasonCode.CANNOT_DELETE_ADMIN: "Cannot delete member with administrative privileges",
    ReasonCode.NOT_AUTHOR: "Only the author may modify this resource",
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )


class Principal(_CamelModel):
    """The authenticated caller, re-derived server-side for every request."""

    id: str = Field(validation_alias=AliasChoices("id", "_id", "userId"))
    global_role: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("globalRole", "role", "global_role"),
        serialization_alias="globalRole",
    )
    primary_lodge_id: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "primaryLodgeId", "primaryLodge", "primary_lodge_id"
        ),
        serialization_alias="primaryLodgeId",
    )
    administered_lodge_ids: FrozenSet[str] = Field(
        default=frozenset(),
        validation_alias=AliasChoices(
            "administeredLodgeIds", "administeredLodges", "administered_lodge_ids"
        ),
        serialization_alias="administeredLodgeIds",
    )
    lodge_roles: Dict[str, Optional[str]] = Field(default_factory=dict)

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_principal_id(cls, value: Any) -> str:
        normalized = normalize_id(value)
        if normalized is None:
            raise ValueError("principal id is required")
        return normalized

    @field_validator("global_role", mode="before")
    @classmethod
    def _normalize_global_role(cls, value: Any) -> Optional[str]:
        return normalize_role(value)

    @field_validator("primary_lodge_id", mode="before")
    @classmethod
    def _normalize_primary(cls, value: Any) -> Optional[str]:
        return normalize_id(value)

    @field_validator("administered_lodge_ids", mode="before")
    @classmethod
    def _normalize_administered(cls, value: Any) -> FrozenSet[str]:
        if not value:
            return frozenset()
        return frozenset(i for i in (normalize_id(v) for v in value) if i)

    @field_validator("lodge_roles", mode="before")
    @classmethod
    def _normalize_lodge_roles(cls, value: Any) -> Dict[str, Optional[str]]:
        if not value:
            return {}
        if not hasattr(value, "items"):
            raise AccessContractError("lodge_roles must be a mapping")
        roles: Dict[str, Optional[str]] = {}
        for key, role in value.items():
            if not isinstance(key, str):
                raise AccessContractError(
                    f"lodge_roles key {key!r} is {type(key).__name__}, expected str"
                )
            roles[key] = normalize_role(role)
        return roles


class ResourceDescriptor(_CamelModel):
    """What the caller wants to touch; lodge_id is resolved before the check."""

    kind: ResourceKind
    id: Optional[str] = None
    lodge_id: Optional[str] = None
    exists: bool = True
    member_count: int = 0
    target_role: Optional[str] = None
    owner_id: Optional[str] = None

    @field_validator("id", "lodge_id", "owner_id", mode="before")
    @classmethod
    def _normalize_ids(cls, value: Any) -> Optional[str]:
        return normalize_id(value)

    @field_validator("target_role", mode="before")
    @classmethod
    def _normalize_target_role(cls, value: Any) -> Optional[str]:
        return normalize_role(value)


class AccessDecision(_CamelModel):
    allowed: bool
    reason_code: ReasonCode
    http_status: int

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True, reason_code=ReasonCode.OK, http_status=200)

    @classmethod
    def deny(cls, reason: ReasonCode) -> "AccessDecision":
        return cls(allowed=False, reason_code=reason, http_status=REASON_STATUS[reason])

    @property
    def message(self) -> str:
        return REASON_MESSAGES[self.reason_code]

    def raise_for_status(self) -> "AccessDecision":
        if not self.allowed:
            raise AccessDenied(self)
        return self
