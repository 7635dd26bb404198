"""
Transient notifications pushed to dashboard sessions.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class Severity(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"


class Notification(BaseModel):
    """Ephemeral: built from one change event, delivered once, never stored."""
    title: str
    description: str
    severity: Severity = Severity.INFO
    duration_ms: int = 5000
    table: Optional[str] = None
    event_type: Optional[str] = None
    row_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def severity_for_status(status) -> Severity:
    if status == "approved":
        return Severity.SUCCESS
    if status == "rejected":
        return Severity.ERROR
    return Severity.INFO
