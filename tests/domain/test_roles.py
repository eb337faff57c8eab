"""
Tests for the role and office directory.

Covers:
- Role <-> office mapping in both directions
- Pass-through of unknown roles and offices
- Office option lists and office-to-role resolution for targeting
"""

import pytest

from voucher_kernel.domain.roles import (
    EDIT_ROLES,
    OFFICE_BY_ROLE,
    ROLE_BY_OFFICE,
    VIEW_ROLES,
    UserRole,
    office_options,
    office_to_role,
    parse_role,
    role_display_name,
    role_to_office,
    roles_for_offices,
)


class TestOfficeMapping:
    """Bidirectional role <-> office names."""

    @pytest.mark.parametrize(
        "role, office",
        [
            (UserRole.GSO, "General Services Office"),
            (UserRole.BAC, "Bids and Awards Committee"),
            (UserRole.MAYOR, "Mayor's Office"),
            (UserRole.TREASURY, "Treasury Office"),
            (UserRole.BUDGET, "Budget Office"),
        ],
    )
    def test_known_roles(self, role, office):
        assert role_to_office(role) == office
        assert office_to_role(office) == role

    def test_every_role_has_an_office(self):
        assert set(OFFICE_BY_ROLE) == set(UserRole)

    def test_mapping_is_a_bijection(self):
        assert len(ROLE_BY_OFFICE) == len(OFFICE_BY_ROLE)
        for role, office in OFFICE_BY_ROLE.items():
            assert ROLE_BY_OFFICE[office] == role

    def test_string_role_accepted(self):
        assert role_to_office("SECRETARY") == "Secretary's Office"

    def test_unknown_role_passes_through(self):
        assert role_to_office("CUSTODIAN") == "CUSTODIAN"

    def test_unknown_office_passes_through(self):
        assert office_to_role("Engineering Office") == "Engineering Office"


class TestDisplayNames:

    def test_budget_officer(self):
        assert role_display_name(UserRole.BUDGET) == "Budget Officer"

    def test_unknown_role_is_its_own_label(self):
        assert role_display_name("CUSTODIAN") == "CUSTODIAN"

    def test_parse_role(self):
        assert parse_role("MAYOR") is UserRole.MAYOR
        assert parse_role(UserRole.BAC) is UserRole.BAC
        assert parse_role("mayor") is None


class TestOfficeOptions:

    def test_all_offices_sorted(self):
        options = office_options()
        assert options == sorted(OFFICE_BY_ROLE.values())

    def test_deduplicated(self):
        options = office_options([UserRole.GSO, "GSO", UserRole.BAC])
        assert options == ["Bids and Awards Committee", "General Services Office"]

    def test_unknown_roles_listed_verbatim(self):
        assert office_options(["CUSTODIAN"]) == ["CUSTODIAN"]


class TestRolesForOffices:

    def test_resolves_in_order(self):
        roles = roles_for_offices(["Treasury Office", "Budget Office"])
        assert roles == [UserRole.TREASURY, UserRole.BUDGET]

    def test_drops_unknown_and_duplicates(self):
        roles = roles_for_offices(
            ["Budget Office", "Engineering Office", "Budget Office"]
        )
        assert roles == [UserRole.BUDGET]

    def test_role_names_resolve_too(self):
        assert roles_for_offices(["ACCOUNTING"]) == [UserRole.ACCOUNTING]


class TestAccessRoleSets:

    def test_bac_may_view_but_not_edit(self):
        assert UserRole.BAC in VIEW_ROLES
        assert UserRole.BAC not in EDIT_ROLES

    def test_edit_is_narrower_than_view(self):
        assert EDIT_ROLES < VIEW_ROLES
