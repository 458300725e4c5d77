"""Lodge membership lookups used by the access guard.

Legacy records reference their lodge in several shapes: a plain ``lodgeId``,
an embedded ``lodge`` document, a membership list, or nothing at all (the
lodge document lists the record instead). ``resolve_lodge_id`` folds all of
them into one normalized string id.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Iterable, Optional

from lodge_access.roles import (
    Role,
    effective_role,
    normalize_role,
)

LODGE_REFERENCE_FIELDS = ("lodgeId", "lodge_id")
EMBEDDED_LODGE_FIELDS = ("lodge",)
PRIMARY_LODGE_FIELDS = ("primaryLodge", "primaryLodgeId", "primary_lodge_id")
MEMBERSHIP_FIELDS = ("lodgeMemberships", "lodge_memberships")
ROSTER_FIELDS = ("members", "candidates")


def _get(record: Any, name: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(name)
    return getattr(record, name, None)


def _first(record: Any, names: Iterable[str]) -> Any:
    for name in names:
        value = _get(record, name)
        if value not in (None, ""):
            return value
    return None


def normalize_id(value: Any) -> Optional[str]:
    """Return ``value`` as a plain string id (ObjectId, UUID, embedded doc...)."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        return normalize_id(value.get("_id", value.get("id")))
    normalized = str(value).strip()
    return normalized or None


def _record_id(record: Any) -> Optional[str]:
    return normalize_id(_first(record, ("_id", "id")))


def _roster_contains(lodge: Any, record_id: str) -> bool:
    for roster in ROSTER_FIELDS:
        for entry in _get(lodge, roster) or ():
            if normalize_id(entry) == record_id:
                return True
    return False


def resolve_lodge_id(record: Any, lodges: Iterable[Any] = ()) -> Optional[str]:
    """Find the lodge owning ``record``; None when no strategy matches.

    ``lodges`` is only iterated when the record carries no usable reference,
    so it can be a lazy database cursor.
    """
    if record is None:
        return None

    direct = normalize_id(_first(record, LODGE_REFERENCE_FIELDS))
    if direct:
        return direct

    embedded = _first(record, EMBEDDED_LODGE_FIELDS)
    if embedded is not None:
        lodge_id = normalize_id(embedded)
        if lodge_id:
            return lodge_id

    primary = normalize_id(_first(record, PRIMARY_LODGE_FIELDS))
    if primary:
        return primary

    for membership in _first(record, MEMBERSHIP_FIELDS) or ():
        lodge_id = normalize_id(_first(membership, ("lodge", "lodgeId", "lodge_id")))
        if lodge_id:
            return lodge_id

    record_id = _record_id(record)
    if record_id is None:
        return None
    for lodge in lodges:
        if _roster_contains(lodge, record_id):
            return _record_id(lodge)
    return None


def is_same_lodge(principal: Any, target_lodge_id: Any) -> bool:
    """Compare the principal's primary lodge with ``target_lodge_id`` as strings."""
    mine = normalize_id(getattr(principal, "primary_lodge_id", None))
    theirs = normalize_id(target_lodge_id)
    return mine is not None and mine == theirs


def administers(principal: Any, lodge_id: Any) -> bool:
    target = normalize_id(lodge_id)
    if target is None:
        return False
    administered = {
        normalize_id(i) for i in getattr(principal, "administered_lodge_ids", ()) or ()
    }
    return target in administered


def is_administrator_of(principal: Any, lodge_id: Any) -> bool:
    if normalize_role(getattr(principal, "global_role", None)) in (
        Role.SUPER_ADMIN.value,
        Role.DISTRICT_ADMIN.value,
    ):
        return True
    if administers(principal, lodge_id):
        return True
    target = normalize_id(lodge_id)
    return is_same_lodge(principal, target) and (
        effective_role(principal, target) == Role.LODGE_ADMIN.value
    )
