"""Tests for the ORM models and LodgeStore lookups."""
from datetime import date, datetime

from sqlalchemy import select

from lodge_access.models import (
    AuditLog,
    Candidate,
    DatabaseManager,
    Lodge,
    LodgeMembership,
    Member,
    dispose_db_manager,
    get_db_manager,
)
from lodge_access.roles import Role
from lodge_access.schemas import AccessDecision, Action, ReasonCode, ResourceKind


class TestLodgeStoreLookups:
    def test_count_members_combines_sources(self, store, directory, db_session):
        assert store.count_members("L1") == 2
        assert store.count_members("L2") == 1
        assert store.count_members("L3") == 0

        legacy = store.get_lodge("L3")
        legacy.roster = {"members": ["ghost"], "candidates": []}
        db_session.commit()
        assert store.count_members("L3") == 1

    def test_principal_for_rederives_roles(self, store, directory):
        principal = store.principal_for("member2")
        assert principal.global_role == "LODGE_MEMBER"
        assert principal.primary_lodge_id == "L2"
        assert store.principal_for("missing") is None
        assert store.principal_for(None) is None

    def test_deactivated_members_have_no_principal(self, store, directory, db_session):
        directory["member1"].is_active = False
        db_session.commit()
        assert store.principal_for("member1") is None

    def test_describe_lodge(self, store, directory):
        resource = store.describe_lodge("L1")
        assert resource.kind is ResourceKind.LODGE
        assert resource.lodge_id == "L1"
        assert resource.member_count == 2
        assert not store.describe_lodge("nope").exists

    def test_describe_member(self, store, directory):
        resource = store.describe_member("admin1")
        assert resource.target_role == "LODGE_ADMIN"
        assert resource.lodge_id == "L1"
        assert not store.describe_member("nope").exists


class TestCandidateLodgeResolution:
    def test_direct_column(self, store, directory, db_session):
        db_session.add(Candidate(id="c1", first_name="A", last_name="B", lodge_id="L1"))
        db_session.commit()
        assert store.describe_candidate("c1").lodge_id == "L1"

    def test_embedded_lodge_document(self, store, directory, db_session):
        db_session.add(
            Candidate(id="c2", first_name="A", last_name="B", lodge={"_id": "L2", "name": "Lodge Two"})
        )
        db_session.commit()
        assert store.describe_candidate("c2").lodge_id == "L2"

    def test_reverse_lookup_through_roster(self, store, directory, db_session):
        db_session.add(Candidate(id="c3", first_name="A", last_name="B"))
        store.get_lodge("L2").roster = {"members": [], "candidates": ["c3"]}
        db_session.commit()
        assert store.describe_candidate("c3").lodge_id == "L2"

    def test_unresolvable(self, store, directory, db_session):
        db_session.add(Candidate(id="c4", first_name="A", last_name="B"))
        db_session.commit()
        resource = store.describe_candidate("c4")
        assert resource.exists
        assert resource.lodge_id is None

    def test_missing_candidate(self, store, directory):
        assert not store.describe_candidate("ghost").exists


class TestCandidates:
    def test_create_candidate_sets_window(self, store, directory, db_session):
        candidate = store.create_candidate(
            created_by="member1", first_name="John", last_name="Doe", lodge_id="L1"
        )
        db_session.commit()
        assert candidate.status == "pending"
        assert (candidate.end_date - candidate.start_date).days == 20
        assert candidate.as_document()["timing"]["daysLeft"] in (19, 20)

    def test_active_candidates_skip_expired(self, store, directory, db_session):
        db_session.add_all(
            [
                Candidate(id="old", first_name="A", last_name="B", end_date=date(2020, 1, 1)),
                Candidate(id="new", first_name="C", last_name="D", end_date=date(2099, 1, 1)),
                Candidate(id="none", first_name="E", last_name="F"),
            ]
        )
        db_session.commit()
        ids = [c.id for c in store.active_candidates(now=datetime(2024, 1, 1))]
        assert ids == ["new"]


class TestApplyLodgeRoles:
    def test_promotion_to_district_admin_joins_root_lodge(self, store, directory, db_session):
        member = directory["member1"]
        promotion = store.apply_lodge_roles(member, {"L1": "DISTRICT_ADMIN"})
        db_session.commit()

        assert promotion.role == member.role == "DISTRICT_ADMIN"
        assert member.lodge_roles == {"L1": "DISTRICT_ADMIN", "district": "DISTRICT_ADMIN"}
        assert "district" in member.lodge_ids

    def test_lodge_admin_gets_primary_lodge_entry(self, store, directory, db_session):
        member = directory["member2"]
        store.apply_lodge_roles(member, {"L1": "lodge_admin"})
        db_session.commit()
        assert member.role == "LODGE_ADMIN"
        assert member.lodge_roles == {"L1": "LODGE_ADMIN", "L2": "LODGE_ADMIN"}

    def test_clearing_roles_demotes(self, store, directory, db_session):
        member = directory["admin1"]
        store.apply_lodge_roles(member, {})
        db_session.commit()
        assert member.role == "LODGE_MEMBER"


class TestTransferAdmin:
    def test_district_seat_moves_between_members(self, store, directory, db_session):
        current, successor = directory["district"], directory["member2"]
        promotion = store.transfer_admin(
            successor, "district", Role.DISTRICT_ADMIN, current=current
        )
        db_session.commit()

        assert promotion.role == successor.role == "DISTRICT_ADMIN"
        assert successor.lodge_roles == {"L2": "LODGE_MEMBER", "district": "DISTRICT_ADMIN"}
        assert successor.lodge_ids == ["L2", "district"]
        assert current.role == "LODGE_MEMBER"
        assert store.principal_for("member2").global_role == "DISTRICT_ADMIN"

    def test_lodge_seat_moves_and_administered_list_follows(self, store, directory, db_session):
        current, successor = directory["admin1"], directory["member1"]
        current.administered_lodge_ids = ["L1", "L3"]
        store.transfer_admin(successor, "L1", Role.LODGE_ADMIN, current=current)
        db_session.commit()

        assert current.role == "LODGE_MEMBER"
        assert current.lodge_roles == {"L1": "LODGE_MEMBER"}
        assert current.administered_lodge_ids == ["L3"]
        assert successor.role == "LODGE_ADMIN"
        assert successor.lodge_roles == {"L1": "LODGE_ADMIN"}
        assert successor.administered_lodge_ids == ["L1"]
        assert successor.lodge_ids == []

    def test_seat_elsewhere_does_not_promote_primary_lodge(self, store, directory, db_session):
        successor = directory["member2"]
        store.transfer_admin(successor, "L1", Role.LODGE_ADMIN)
        db_session.commit()

        assert successor.lodge_roles == {"L2": "LODGE_MEMBER", "L1": "LODGE_ADMIN"}
        assert successor.lodge_ids == ["L2", "L1"]


def test_record_decision_writes_audit_row(store, directory, db_session):
    principal = store.principal_for("admin1")
    resource = store.describe_lodge("L2")
    store.record_decision(
        principal,
        Action.UPDATE,
        resource,
        AccessDecision.deny(ReasonCode.WRONG_LODGE),
        ip_address="10.0.0.1",
    )
    db_session.commit()

    entry = db_session.execute(select(AuditLog)).scalar_one()
    assert entry.user == "admin1"
    assert entry.reason_code == "WRONG_LODGE"
    assert entry.success is False
    assert entry.resource_type == "lodge"


def test_membership_order_is_preserved(db_session):
    lodge_a, lodge_b = Lodge(id="A", name="A"), Lodge(id="B", name="B")
    member = Member(id="m", name="M", email="m@example.com")
    member.memberships = [
        LodgeMembership(lodge_id="B", position="Tyler", ordinal=0),
        LodgeMembership(lodge_id="A", position="Member", ordinal=1),
    ]
    db_session.add_all([lodge_a, lodge_b, member])
    db_session.commit()
    db_session.expire_all()

    assert db_session.get(Member, "m").lodge_ids == ["B", "A"]


class TestDatabaseManager:
    def test_health_check(self, db_manager):
        assert db_manager.health_check() is True

    def test_session_context_rolls_back_on_error(self, db_manager):
        try:
            with db_manager.get_session_context() as session:
                session.add(Lodge(id="X", name="Rolled Back"))
                session.flush()
                raise RuntimeError("boom")
        except RuntimeError:
            pass

        with db_manager.get_session_context() as session:
            assert session.get(Lodge, "X") is None

    def test_singleton_lifecycle(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'singleton.db'}"
        first = get_db_manager(url, reset=True)
        assert get_db_manager() is first
        second = get_db_manager(url, reset=True)
        assert second is not first
        dispose_db_manager()
        assert isinstance(second, DatabaseManager)
