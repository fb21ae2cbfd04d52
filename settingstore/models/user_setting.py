"""
UserSetting model for settings scoped to one principal.
"""

from sqlalchemy import Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from settingstore.models.base import Base, SettingFieldsMixin


class UserSetting(SettingFieldsMixin, Base):
    """
    Configuration entry owned by a single user.

    The same key may exist once per user; uniqueness is on (user_id, key).
    User settings are neither cached nor audited.
    """

    __tablename__ = "user_settings"
    __table_args__ = (
        UniqueConstraint("user_id", "key", name="uq_user_settings_user_key"),
    )

    user_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    def __repr__(self) -> str:
        return f"<UserSetting(user_id={self.user_id}, key='{self.key}')>"
