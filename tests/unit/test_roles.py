import pytest

from lodge_access.errors import AccessContractError
from lodge_access.roles import (
    Role,
    effective_role,
    has_district_authority,
    highest_role,
    is_admin_role,
    normalize_role,
    promote_roles,
    rank,
)
from lodge_access.schemas import Principal


def test_rank_follows_hierarchy():
    assert (
        rank("SUPER_ADMIN")
        > rank("DISTRICT_ADMIN")
        > rank("LODGE_ADMIN")
        > rank("LODGE_MEMBER")
    )
    assert rank(Role.SUPER_ADMIN) == 4
    assert rank("LODGE_MEMBER") == 1


@pytest.mark.parametrize("role", [None, "", "GRAND_POOBAH", "LODGE_SECRETARY", 42])
def test_unknown_roles_rank_as_member(role):
    assert rank(role) == rank("LODGE_MEMBER")


def test_rank_is_case_insensitive():
    assert rank("lodge_admin") == rank("LODGE_ADMIN")
    assert rank(" District_Admin ") == rank("DISTRICT_ADMIN")


def test_normalize_role():
    assert normalize_role("super_admin") == "SUPER_ADMIN"
    assert normalize_role(Role.LODGE_ADMIN) == "LODGE_ADMIN"
    assert normalize_role(None) is None


def test_effective_role_prefers_lodge_override():
    p = Principal(id="u1", role="LODGE_MEMBER", lodge_roles={"L1": "lodge_admin"})
    assert effective_role(p, "L1") == "LODGE_ADMIN"
    assert effective_role(p, "L2") == "LODGE_MEMBER"
    assert effective_role(p, None) == "LODGE_MEMBER"


def test_lowercase_global_role_is_canonicalized():
    lower = Principal(id="u1", role="lodge_admin")
    upper = Principal(id="u1", role="LODGE_ADMIN")
    assert effective_role(lower, "L1") == effective_role(upper, "L1") == "LODGE_ADMIN"
    assert rank(highest_role(lower)) == rank(highest_role(upper))


def test_highest_role_scans_lodge_roles():
    p = Principal(
        id="u1",
        role="LODGE_MEMBER",
        lodge_roles={"L1": "LODGE_ADMIN", "L2": "DISTRICT_ADMIN"},
    )
    assert highest_role(p) == "DISTRICT_ADMIN"
    assert has_district_authority(p)


def test_highest_role_without_overrides():
    assert highest_role(Principal(id="u1", role="LODGE_ADMIN")) == "LODGE_ADMIN"
    assert not has_district_authority(Principal(id="u1", role="LODGE_ADMIN"))


def test_is_admin_role():
    assert is_admin_role("lodge_admin")
    assert is_admin_role("SUPER_ADMIN")
    assert not is_admin_role("LODGE_MEMBER")
    assert not is_admin_role(None)


def test_non_string_lodge_role_key_is_a_contract_error():
    with pytest.raises(AccessContractError):
        Principal(id="u1", role="LODGE_ADMIN", lodge_roles={1: "LODGE_ADMIN"})


def test_effective_role_rejects_malformed_objects():
    class Broken:
        global_role = "LODGE_ADMIN"
        lodge_roles = ["L1"]

    with pytest.raises(AccessContractError):
        effective_role(Broken(), "L1")


class TestPromoteRoles:
    def test_empty_roles_demote_to_member(self):
        promotion = promote_roles({})
        assert promotion.role == "LODGE_MEMBER"
        assert promotion.lodge_roles == {}

    def test_district_admin_gets_root_lodge_entry(self):
        promotion = promote_roles(
            {"L1": "district_admin"},
            primary_lodge_id="L1",
            district_lodge_id="district",
            lodges=["L1"],
        )
        assert promotion.role == "DISTRICT_ADMIN"
        assert promotion.lodge_roles == {"L1": "DISTRICT_ADMIN", "district": "DISTRICT_ADMIN"}
        assert promotion.added_lodges == ["district"]

    def test_district_admin_already_in_root_lodge(self):
        promotion = promote_roles(
            {"L1": "DISTRICT_ADMIN"}, district_lodge_id="district", lodges=["district"]
        )
        assert promotion.added_lodges == []

    def test_lodge_admin_gets_primary_lodge_entry(self):
        promotion = promote_roles(
            {"L2": "LODGE_MEMBER", "L3": "LODGE_ADMIN"}, primary_lodge_id="L1"
        )
        assert promotion.role == "LODGE_ADMIN"
        assert promotion.lodge_roles["L1"] == "LODGE_ADMIN"
        assert promotion.lodge_roles["L3"] == "LODGE_ADMIN"

    def test_input_is_not_mutated(self):
        roles = {"L1": "lodge_admin"}
        promote_roles(roles, primary_lodge_id="L2")
        assert roles == {"L1": "lodge_admin"}

    def test_non_string_key_raises(self):
        with pytest.raises(AccessContractError):
            promote_roles({7: "LODGE_ADMIN"})
