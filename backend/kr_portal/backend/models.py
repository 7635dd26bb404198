"""
Pydantic models for rows and sessions read from the hosted backend.
"""
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator

from kr_portal.permissions.roles import Role, parse_role


class Profile(BaseModel):
    """Row of the `profiles` table; cached for the lifetime of a session."""
    model_config = ConfigDict(extra="ignore")

    id: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    role: Optional[Role] = None
    phone_number: Optional[str] = None
    discord_id: Optional[str] = None
    facebook_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("role", mode="before")
    @classmethod
    def _tolerate_unknown_role(cls, value):
        # Malformed roles degrade to "no role" so every capability check denies
        return parse_role(value)

    @property
    def display_name(self) -> str:
        return self.full_name or self.username or "Unknown"


class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


class AuthSession(BaseModel):
    user_id: str
    access_token: str
    refresh_token: Optional[str] = None
    email: Optional[str] = None
    expires_at: Optional[int] = None


class MemberEmail(BaseModel):
    id: str
    email: Optional[str] = None


class AnnouncementViewCount(BaseModel):
    announcement_id: str
    view_count: int = 0
