"""
Change-data-capture events delivered by the backend's realtime stream.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ChangeEvent:
    """
    One row change on a subscribed table.

    `old` is only populated for UPDATE/DELETE when the table publishes full
    replica identity; otherwise it holds the primary key at most.
    """
    table: str
    event_type: str
    new: Dict[str, Any] = field(default_factory=dict)
    old: Dict[str, Any] = field(default_factory=dict)
    commit_timestamp: Optional[str] = None

    @property
    def row_id(self) -> Optional[str]:
        return self.new.get("id") or self.old.get("id")

    @property
    def status_changed(self) -> bool:
        return self.old.get("status") != self.new.get("status")

    @classmethod
    def from_payload(cls, payload: Any, table: Optional[str] = None) -> "ChangeEvent":
        """
        Normalise a realtime postgres_changes payload.

        Accepts both the wire shape (`{"data": {"type", "record", "old_record", ...}}`)
        and the flattened client shape (`{"eventType", "new", "old", ...}`).
        """
        if not isinstance(payload, dict):
            payload = {}
        data = payload.get("data") if isinstance(payload.get("data"), dict) else payload

        event_type = data.get("type") or data.get("eventType") or ""
        new = data.get("record") or data.get("new") or {}
        old = data.get("old_record") or data.get("old") or {}

        return cls(
            table=data.get("table") or table or "",
            event_type=str(event_type).upper(),
            new=dict(new),
            old=dict(old),
            commit_timestamp=data.get("commit_timestamp"),
        )
