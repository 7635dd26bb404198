"""
Session-scoped role state.

One RoleContext is created per dashboard session and injected wherever
capability checks happen. Only the RoleProvider writes to it; everything else
reads through `can_access`.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from kr_portal.backend.models import Profile
from kr_portal.core.exceptions import InvalidRole, RoleOverrideDenied
from kr_portal.core.logging import permissions_logger
from kr_portal.permissions.roles import Role, parse_role, role_display
from kr_portal.permissions.service import CapabilityResolver, capability_resolver


class SessionStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"
    SIGNED_OUT = "signed_out"


@dataclass
class RoleContext:
    resolver: CapabilityResolver = field(default=capability_resolver)
    status: SessionStatus = SessionStatus.UNINITIALIZED
    profile: Optional[Profile] = None
    role: Optional[Role] = None
    active_role: Optional[Role] = None
    error: Optional[str] = None

    # ---------------- readers ----------------

    @property
    def is_ready(self) -> bool:
        return self.status is SessionStatus.READY

    @property
    def user_id(self) -> Optional[str]:
        return self.profile.id if self.profile else None

    @property
    def display_name(self) -> str:
        return self.profile.display_name if self.profile else "Unknown"

    def can_access(self, feature) -> bool:
        """Capability check under the active role; denied unless READY."""
        if not self.is_ready:
            return False
        return self.resolver.can_access(self.active_role, feature)

    def role_display(self) -> str:
        return role_display(self.active_role)

    def snapshot(self) -> dict:
        return {
            "status": self.status.value,
            "user_id": self.user_id,
            "display_name": self.display_name,
            "role": self.role.value if self.role else None,
            "active_role": self.active_role.value if self.active_role else None,
            "role_display": self.role_display(),
            "error": self.error,
        }

    # ---------------- view-as ----------------

    def set_active_role(self, value) -> Role:
        """
        Switch the role the session is viewed as. Any role other than the
        stored one requires a stored kr_admin.
        """
        requested = parse_role(value)
        if requested is None:
            raise InvalidRole(value)

        if requested == self.role and self.is_ready:
            self.active_role = requested
            return requested

        if not self.is_ready or self.role is not Role.ADMIN:
            permissions_logger.info(
                "[ROLE_OVERRIDE_DENIED]",
                user_id=self.user_id,
                role=self.role.value if self.role else None,
                requested=requested.value,
            )
            raise RoleOverrideDenied(self.role, requested)

        self.active_role = requested
        permissions_logger.info(
            "Active role changed",
            user_id=self.user_id,
            active_role=requested.value,
        )
        return requested

    # ---------------- provider-only writers ----------------

    def _begin_loading(self) -> None:
        self.status = SessionStatus.LOADING
        self.error = None

    def _apply_profile(self, profile: Profile) -> None:
        same_user = self.profile is not None and self.profile.id == profile.id
        keep_override = (
            same_user
            and profile.role is Role.ADMIN
            and self.active_role is not None
        )
        self.profile = profile
        self.role = profile.role
        if not keep_override:
            self.active_role = profile.role
        self.status = SessionStatus.READY
        self.error = None

    def _fail(self, message: str) -> None:
        self.profile = None
        self.role = None
        self.active_role = None
        self.status = SessionStatus.ERROR
        self.error = message

    def _clear(self) -> None:
        self.profile = None
        self.role = None
        self.active_role = None
        self.error = None
        self.status = SessionStatus.SIGNED_OUT

    @classmethod
    def for_profile(cls, profile: Profile, resolver: Optional[CapabilityResolver] = None) -> "RoleContext":
        """A READY context for a profile already loaded (stateless HTTP requests)."""
        context = cls(resolver=resolver or capability_resolver)
        context._apply_profile(profile)
        return context
