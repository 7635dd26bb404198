from enum import Enum
from typing import Optional


class Role(str, Enum):
    ADMIN = "kr_admin"
    MANAGER = "kr_manager"
    MEMBER = "kr_member"


ROLE_DISPLAY_NAMES: dict[Role, str] = {
    Role.ADMIN: "KR Admin",
    Role.MANAGER: "KR Manager",
    Role.MEMBER: "KR Member",
}


def parse_role(value) -> Optional[Role]:
    """Map a stored role value to a Role, or None when it is missing or unknown."""
    if isinstance(value, Role):
        return value
    if not isinstance(value, str):
        return None
    try:
        return Role(value.strip())
    except ValueError:
        return None


def role_display(role: Optional[Role]) -> str:
    return ROLE_DISPLAY_NAMES.get(role, "Unknown")
