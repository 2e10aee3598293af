"""Unit tests for the authorization policy"""
import pytest

from orgtasks.errors import Forbidden
from orgtasks.services import policy
from orgtasks.services.policy import Role

ADMIN = {"user_id": "a", "role": "admin"}
MANAGER = {"user_id": "m", "role": "manager"}
MEMBER = {"user_id": "u", "role": "member"}


class TestRole:

    def test_roles_are_ordered(self):
        assert Role.ADMIN.permits(Role.MANAGER)
        assert Role.MANAGER.permits(Role.MEMBER)
        assert Role.MANAGER.permits(Role.MANAGER)
        assert not Role.MEMBER.permits(Role.MANAGER)
        assert not Role.MANAGER.permits("admin")

    def test_of_unknown_role(self):
        assert Role.of({"role": "director"}) is None
        assert Role.of(None) is None
        assert not policy.has_role({"role": "director"}, Role.MEMBER)


class TestPredicates:

    @pytest.mark.parametrize("user,expected", [(ADMIN, True), (MANAGER, False), (MEMBER, False)])
    def test_organization_update_is_admin_only(self, user, expected):
        assert policy.can_update_organization(user) is expected

    @pytest.mark.parametrize("user,expected", [(ADMIN, True), (MANAGER, True), (MEMBER, False)])
    def test_invite(self, user, expected):
        assert policy.can_invite(user) is expected

    def test_invitable_roles(self):
        assert policy.can_grant_role("member")
        assert policy.can_grant_role("manager")
        assert not policy.can_grant_role("admin")

    def test_role_change_and_removal_never_on_self(self):
        assert policy.can_change_role(ADMIN, MEMBER)
        assert not policy.can_change_role(ADMIN, ADMIN)
        assert not policy.can_change_role(MANAGER, MEMBER)
        assert policy.can_remove_member(ADMIN, MANAGER)
        assert not policy.can_remove_member(ADMIN, dict(ADMIN))

    def test_task_access(self):
        task = {"assigned_to": ["u"]}
        assert policy.can_modify(MANAGER, {"assigned_to": []})
        assert policy.can_modify(MEMBER, task)
        assert not policy.can_modify({"user_id": "x", "role": "member"}, task)
        assert policy.can_view_task(MEMBER, task)
        assert not policy.can_manage_tasks(MEMBER)

    def test_require_raises_forbidden(self):
        policy.require(True)
        with pytest.raises(Forbidden) as exc:
            policy.require(False, "Nope")
        assert exc.value.status_code == 403
        assert exc.value.message == "Nope"
