"""Per-request database dependencies."""
from __future__ import annotations

from typing import Iterator

from fastapi import Depends
from sqlalchemy.orm import Session

from lodge_access.models import get_db_manager
from lodge_access.store import LodgeStore


def get_session() -> Iterator[Session]:
    with get_db_manager().get_session_context() as session:
        yield session


def get_store(session: Session = Depends(get_session)) -> LodgeStore:
    return LodgeStore(session)
