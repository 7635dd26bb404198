from fastapi import Depends

from kr_portal.backend.dependencies import get_current_profile
from kr_portal.backend.models import Profile
from kr_portal.core.logging import permissions_logger
from kr_portal.permissions.constants import Feature
from kr_portal.permissions.exceptions import PermissionDenied
from kr_portal.permissions.service import can_access


def require_capability(feature: Feature):
    """
    Endpoint guard evaluated against the stored role.
    A client-side view-as role never reaches this check.
    """
    async def dependency(profile: Profile = Depends(get_current_profile)) -> Profile:
        if not can_access(profile.role, feature):
            permissions_logger.info(
                "[CAPABILITY_DENIED]",
                user_id=profile.id,
                role=profile.role.value if profile.role else None,
                feature=feature.value,
            )
            raise PermissionDenied(feature.value)
        return profile

    return dependency
