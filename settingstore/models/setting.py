"""
Setting model for global, key-unique application settings.
"""

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from settingstore.models.base import Base, SettingFieldsMixin


class Setting(SettingFieldsMixin, Base):
    """
    Global configuration entry.

    ``key`` is unique across the table. ``is_public`` gates exposure to
    unauthenticated consumers (public listings, shared template context).
    """

    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Setting(key='{self.key}', type='{self.type}')>"
