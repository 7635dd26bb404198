import pytest

from kr_portal.backend.models import Profile
from kr_portal.core.exceptions import InvalidRole, RoleOverrideDenied
from kr_portal.permissions.constants import Feature
from kr_portal.permissions.roles import Role
from kr_portal.session.context import RoleContext, SessionStatus


def ready_context(role, **profile_fields) -> RoleContext:
    return RoleContext.for_profile(Profile(id="u1", role=role, **profile_fields))


class TestFailClosed:
    def test_uninitialized_denies_everything(self):
        ctx = RoleContext()
        assert ctx.status is SessionStatus.UNINITIALIZED
        assert not any(ctx.can_access(f) for f in Feature)

    def test_loading_denies_even_with_cached_admin_profile(self):
        ctx = ready_context("kr_admin")
        ctx._begin_loading()
        assert ctx.can_access(Feature.DASHBOARD) is False

    def test_error_and_signed_out_deny(self):
        ctx = ready_context("kr_admin")
        ctx._fail("boom")
        assert ctx.can_access("dashboard") is False
        assert ctx.error == "boom"

        ctx = ready_context("kr_admin")
        ctx._clear()
        assert ctx.status is SessionStatus.SIGNED_OUT
        assert ctx.role is None and ctx.active_role is None and ctx.profile is None
        assert not any(ctx.can_access(f) for f in Feature)

    def test_ready_without_role_denies(self):
        ctx = ready_context("definitely-not-a-role")
        assert ctx.is_ready
        assert ctx.role is None
        assert ctx.can_access("dashboard") is False


class TestActiveRole:
    def test_ready_context_uses_stored_role(self):
        ctx = ready_context("kr_manager")
        assert ctx.active_role is Role.MANAGER
        assert ctx.can_access("team.roster.manage") is True
        assert ctx.can_access("manage_members") is False

    def test_admin_can_view_as_member(self):
        ctx = ready_context("kr_admin")
        assert ctx.can_access("manage_members") is True

        ctx.set_active_role("kr_member")

        assert ctx.active_role is Role.MEMBER
        assert ctx.role is Role.ADMIN
        assert ctx.can_access("manage_members") is False
        assert ctx.role_display() == "KR Member"

    def test_admin_can_switch_back(self):
        ctx = ready_context("kr_admin")
        ctx.set_active_role(Role.MANAGER)
        ctx.set_active_role(Role.ADMIN)
        assert ctx.can_access("manage_members") is True

    @pytest.mark.parametrize("stored", ["kr_manager", "kr_member"])
    @pytest.mark.parametrize("requested", ["kr_admin", "kr_manager", "kr_member"])
    def test_non_admin_cannot_override(self, stored, requested):
        ctx = ready_context(stored)
        if requested == stored:
            assert ctx.set_active_role(requested).value == stored
        else:
            with pytest.raises(RoleOverrideDenied):
                ctx.set_active_role(requested)
        assert ctx.active_role.value == stored

    def test_override_rejected_while_loading(self):
        ctx = ready_context("kr_admin")
        ctx._begin_loading()
        with pytest.raises(RoleOverrideDenied):
            ctx.set_active_role("kr_member")
        assert ctx.active_role is Role.ADMIN

    def test_override_rejected_without_session(self):
        ctx = RoleContext()
        with pytest.raises(RoleOverrideDenied):
            ctx.set_active_role("kr_member")
        assert ctx.active_role is None

    @pytest.mark.parametrize("value", ["root", "", None, 3])
    def test_invalid_role(self, value):
        ctx = ready_context("kr_admin")
        with pytest.raises(InvalidRole):
            ctx.set_active_role(value)
        assert ctx.active_role is Role.ADMIN


class TestProfileRefresh:
    def test_override_kept_on_refresh_of_same_admin(self):
        ctx = ready_context("kr_admin")
        ctx.set_active_role("kr_member")
        ctx._begin_loading()
        ctx._apply_profile(Profile(id="u1", role="kr_admin"))
        assert ctx.active_role is Role.MEMBER

    def test_override_reset_when_admin_is_demoted(self):
        ctx = ready_context("kr_admin")
        ctx.set_active_role("kr_member")
        ctx._apply_profile(Profile(id="u1", role="kr_manager"))
        assert ctx.role is Role.MANAGER
        assert ctx.active_role is Role.MANAGER

    def test_override_reset_for_different_user(self):
        ctx = ready_context("kr_admin")
        ctx.set_active_role("kr_member")
        ctx._apply_profile(Profile(id="u2", role="kr_admin"))
        assert ctx.active_role is Role.ADMIN


def test_display_name_and_snapshot():
    ctx = ready_context("kr_member", username="mia")
    assert ctx.display_name == "mia"

    snapshot = ctx.snapshot()
    assert snapshot == {
        "status": "ready",
        "user_id": "u1",
        "display_name": "mia",
        "role": "kr_member",
        "active_role": "kr_member",
        "role_display": "KR Member",
        "error": None,
    }


def test_display_name_defaults():
    assert RoleContext().display_name == "Unknown"
    assert ready_context("kr_member").display_name == "Unknown"
    assert ready_context("kr_member", full_name="Mia M", username="mia").display_name == "Mia M"
