"""
Audit trail for global settings.

The recorder is registered as a store listener and appends one
SettingHistory row per committed create/update/delete. Recording is
best-effort: the setting change is already committed, so a failure here
is logged and rolled back without touching it.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from sqlalchemy.orm import Session

from settingstore.config import Settings
from settingstore.models import SettingHistory
from settingstore.services.codec import serialize_value

if TYPE_CHECKING:
    from starlette.requests import Request

    from settingstore.services.store import SettingChange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActorContext:
    """Who made a change and from where. Every field is optional."""

    user_id: int | None = None
    ip_address: str | None = None
    user_agent: str | None = None

    @classmethod
    def from_request(cls, request: "Request", user_id: int | None = None) -> "ActorContext":
        """
        Build the context for an HTTP request.

        ``user_id`` defaults to ``request.state.user_id`` when the host
        application's authentication sets it.
        """
        if user_id is None:
            user_id = getattr(request.state, "user_id", None)
        return cls(
            user_id=user_id,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )


class AuditRecorder:
    """
    Writes and reads setting history.

    Args:
        db: Database session
        config: Audit flags (enabled, track IP, track user agent)
        actor: Provenance attached to every recorded change
    """

    def __init__(self, db: Session, config: Settings, actor: ActorContext | None = None):
        self.db = db
        self.config = config
        self.actor = actor or ActorContext()

    def on_change(self, change: "SettingChange") -> None:
        """Store listener entry point."""
        if not change.audited:
            return
        self.record(
            key=change.key,
            old_value=change.old_value,
            new_value=change.new_value,
            old_type=change.old_type,
            new_type=change.new_type,
            action=change.action.value,
        )

    def record(
        self,
        key: str,
        old_value: Any,
        new_value: Any,
        old_type: str | None,
        new_type: str | None,
        action: str,
    ) -> SettingHistory | None:
        """
        Append one history row.

        Returns:
            The stored row, or None when auditing is disabled or failed
        """
        if not self.config.audit_enabled:
            return None

        entry = SettingHistory(
            setting_key=key,
            old_value=serialize_value(old_value),
            new_value=serialize_value(new_value),
            old_type=old_type,
            new_type=new_type,
            action=action,
            user_id=self.actor.user_id,
        )
        if self.config.audit_track_ip:
            entry.ip_address = self.actor.ip_address
        if self.config.audit_track_user_agent:
            entry.user_agent = self.actor.user_agent

        try:
            self.db.add(entry)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(f"Failed to record history for setting '{key}'")
            return None
        return entry

    def history_for(self, key: str, limit: int = 50) -> list[SettingHistory]:
        """History of one key, most recent first."""
        return (
            self.db.query(SettingHistory)
            .filter(SettingHistory.setting_key == key)
            .order_by(SettingHistory.created_at.desc(), SettingHistory.id.desc())
            .limit(limit)
            .all()
        )

    def all_history(self, limit: int = 100) -> list[SettingHistory]:
        """History of every key, most recent first."""
        return (
            self.db.query(SettingHistory)
            .order_by(SettingHistory.created_at.desc(), SettingHistory.id.desc())
            .limit(limit)
            .all()
        )

    def find(self, history_id: int) -> SettingHistory | None:
        return self.db.get(SettingHistory, history_id)
