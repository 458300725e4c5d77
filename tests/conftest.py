# tests/conftest.py
import os
import sys
from pathlib import Path

import httpx
import pytest
from httpx import AsyncClient as _orig_AsyncClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("TESTING", "1")
os.environ.setdefault("JWT_SECRET", "kP9#vR2@xL7&qT5!wM8^nH4*jF6_aB3$")
os.environ.setdefault("RATE_LIMIT", "10000/minute")

from lodge_access.models import DatabaseManager, Lodge, LodgeMembership, Member  # noqa: E402
from lodge_access.store import LodgeStore  # noqa: E402

DISTRICT_LODGE = "District Grand Lodge of Syria-Lebanon"


# ---------------------------------------------------------------------------
# Custom AsyncClient wrapper
# ---------------------------------------------------------------------------
ASGITransport = getattr(httpx, "ASGITransport", None)


class AsyncClient(_orig_AsyncClient):
    """Accepts `app=...` and wires it through ASGITransport."""

    def __init__(self, *args, app=None, **kwargs):
        if app is not None and ASGITransport is not None and "transport" not in kwargs:
            kwargs["transport"] = ASGITransport(app=app)
        super().__init__(*args, **kwargs)


@pytest.fixture(autouse=True)
def patch_httpx_async_client(monkeypatch):
    monkeypatch.setattr(httpx, "AsyncClient", AsyncClient)
    yield


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------
@pytest.fixture
def db_manager(tmp_path):
    manager = DatabaseManager(f"sqlite:///{tmp_path / 'lodges.db'}")
    manager.create_tables()
    yield manager
    manager.drop_tables()
    manager.dispose()


@pytest.fixture
def db_session(db_manager):
    session = db_manager.get_session()
    yield session
    session.close()


@pytest.fixture
def store(db_session):
    return LodgeStore(db_session)


@pytest.fixture
def directory(db_session):
    """Two lodges, the district root lodge, and one account per role."""
    district = Lodge(id="district", name=DISTRICT_LODGE)
    l1 = Lodge(id="L1", name="Lodge One")
    l2 = Lodge(id="L2", name="Lodge Two")
    empty = Lodge(id="L3", name="Empty Lodge")
    db_session.add_all([district, l1, l2, empty])

    members = {
        "super": Member(id="super", name="Super", email="super@example.com", role="SUPER_ADMIN"),
        "district": Member(
            id="district-admin",
            name="District",
            email="district@example.com",
            role="DISTRICT_ADMIN",
            lodge_roles={"district": "DISTRICT_ADMIN"},
        ),
        "admin1": Member(
            id="admin1",
            name="Admin One",
            email="admin1@example.com",
            role="LODGE_ADMIN",
            primary_lodge_id="L1",
        ),
        "member1": Member(
            id="member1",
            name="Member One",
            email="member1@example.com",
            role="LODGE_MEMBER",
            primary_lodge_id="L1",
        ),
        "member2": Member(
            id="member2",
            name="Member Two",
            email="member2@example.com",
            role="lodge_member",
            primary_lodge_id="L2",
        ),
    }
    db_session.add_all(members.values())
    db_session.add(LodgeMembership(member_id="member2", lodge_id="L2", position="Tyler"))
    db_session.commit()
    return members
