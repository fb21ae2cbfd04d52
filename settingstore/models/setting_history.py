"""
SettingHistory model: append-only audit trail of global setting changes.

Every create/update/delete of a Setting appends one row. Rows are never
modified afterwards and are the only source for restoring an old value.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Any

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from settingstore.models.base import Base, utcnow


class SettingAction(str, PyEnum):
    """Kind of change recorded in the history."""

    created = "created"
    updated = "updated"
    deleted = "deleted"


class SettingHistory(Base):
    """
    One recorded change of a global setting.

    Attributes:
        setting_key: Key of the changed setting
        old_value / new_value: Raw stored text before / after the change
        old_type / new_type: Type tags used to decode the stored text
        action: created, updated or deleted
        user_id, ip_address, user_agent: Optional provenance of the change
    """

    __tablename__ = "setting_histories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    setting_key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    old_value: Mapped[str | None] = mapped_column(Text)
    new_value: Mapped[str | None] = mapped_column(Text)
    old_type: Mapped[str | None] = mapped_column(String(20))
    new_type: Mapped[str | None] = mapped_column(String(20))
    user_id: Mapped[int | None] = mapped_column(Integer, index=True)
    ip_address: Mapped[str | None] = mapped_column(String(45))
    user_agent: Mapped[str | None] = mapped_column(Text)
    action: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=SettingAction.updated.value,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<SettingHistory("
            f"key={self.setting_key}, "
            f"action={self.action}, "
            f"created_at={self.created_at})>"
        )

    @property
    def decoded_old_value(self) -> Any:
        """Old value decoded with its recorded type."""
        from settingstore.services.codec import decode

        return decode(self.old_value, self.old_type)

    @property
    def decoded_new_value(self) -> Any:
        """New value decoded with its recorded type."""
        from settingstore.services.codec import decode

        return decode(self.new_value, self.new_type)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "setting_key": self.setting_key,
            "old_value": self.decoded_old_value,
            "new_value": self.decoded_new_value,
            "old_type": self.old_type,
            "new_type": self.new_type,
            "action": self.action,
            "user_id": self.user_id,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
