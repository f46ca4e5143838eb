"""
Tests for section, branch and order-action checks.
"""

import pytest

from shared.security.access import (
    allowed_branch_ids,
    can_access_branch,
    ensure_branch_access,
    ensure_flag,
    has_flag,
    has_section,
)
from shared.utils.exceptions import BranchAccessError, ForbiddenError
from tests.conftest import headers_for

OWNER = {"sub": "1", "partner_id": 1, "role": "OWNER", "branch_ids": [5], "sections": [], "flags": {}}
STAFF = {
    "sub": "2",
    "partner_id": 1,
    "role": "STAFF",
    "branch_ids": [1, 2],
    "sections": ["orders"],
    "flags": {"can_delete_orders": True},
}


class TestAccessHelpers:
    """Pure checks over token claims."""

    def test_owner_bypasses_everything(self):
        assert has_section(OWNER, "staff")
        assert has_flag(OWNER, "can_revert_order_status")
        assert allowed_branch_ids(OWNER) is None
        assert can_access_branch(OWNER, 999)

    def test_staff_sections_and_flags(self):
        assert has_section(STAFF, "orders")
        assert not has_section(STAFF, "history")
        assert has_flag(STAFF, "can_delete_orders")
        assert not has_flag(STAFF, "can_skip_order_status")

    def test_staff_branch_scope(self):
        assert allowed_branch_ids(STAFF) == [1, 2]
        assert can_access_branch(STAFF, 2)
        assert not can_access_branch(STAFF, 3)
        # Entities without a branch are not branch-scoped
        assert can_access_branch(STAFF, None)

    def test_empty_branch_list_means_all(self):
        ctx = {**STAFF, "branch_ids": []}
        assert allowed_branch_ids(ctx) is None

    def test_unknown_flag_is_a_programming_error(self):
        with pytest.raises(ValueError):
            has_flag(STAFF, "can_fly")

    def test_ensure_helpers_raise(self):
        with pytest.raises(BranchAccessError):
            ensure_branch_access(STAFF, 3)
        with pytest.raises(ForbiddenError):
            ensure_flag(STAFF, "can_skip_order_status", "skip statuses")


class TestSectionGuards:
    """Routers reject users without the section."""

    def test_staff_without_section_gets_403(self, client, make_staff):
        user = make_staff(sections=["history"])
        response = client.get("/api/couriers", headers=headers_for(user))
        assert response.status_code == 403

    def test_staff_with_section_passes(self, client, make_staff):
        user = make_staff(sections=["couriers"])
        response = client.get("/api/couriers", headers=headers_for(user))
        assert response.status_code == 200

    def test_owner_only_endpoint(self, client, make_staff):
        user = make_staff(sections=["history"])
        response = client.post("/api/history/cleanup", headers=headers_for(user), json={})
        assert response.status_code == 403

    def test_branch_list_is_scoped(self, client, make_staff, seed_branch, second_branch):
        user = make_staff(sections=["branches"], branch_ids=[second_branch.id])
        response = client.get("/api/branches", headers=headers_for(user))
        assert response.status_code == 200
        assert [b["id"] for b in response.json()] == [second_branch.id]

    def test_other_partner_data_is_invisible(self, client, owner_headers, other_partner):
        response = client.get("/api/branches", headers=owner_headers)
        assert response.status_code == 200
        assert all(b["partner_id"] != other_partner.id for b in response.json())
