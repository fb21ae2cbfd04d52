"""
SQLAlchemy declarative base and the columns shared by setting tables.
"""

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer, JSON, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def _translate(field: Any, locale: str | None, default_locale: str) -> Any:
    if not field:
        return None
    if not isinstance(field, dict):
        return field
    if locale and locale in field:
        return field[locale]
    return field.get(default_locale)


class SettingFieldsMixin:
    """
    Columns and locale helpers common to global and per-user settings.

    ``value`` always holds text: plain text for scalars, JSON for arrays
    and ciphertext when ``encrypted`` is set. ``type`` drives decoding.
    """

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    group: Mapped[str | None] = mapped_column(String(255), index=True)
    label: Mapped[Any | None] = mapped_column(
        JSON,
        comment="Display label, locale code -> text",
    )
    description: Mapped[Any | None] = mapped_column(
        JSON,
        comment="Description, locale code -> text",
    )
    value: Mapped[str | None] = mapped_column(Text)
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="string")
    encrypted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    validation_rules: Mapped[list[str] | None] = mapped_column(JSON)
    options: Mapped[Any | None] = mapped_column(
        JSON,
        comment="Allowed choices, flat or keyed by locale code",
    )
    input_type: Mapped[str] = mapped_column(String(50), nullable=False, default="text")
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
    )

    def get_translated_label(
        self, locale: str | None = None, default_locale: str = "en"
    ) -> str | None:
        """Label for ``locale``, falling back to ``default_locale``."""
        return _translate(self.label, locale, default_locale)

    def get_translated_description(
        self, locale: str | None = None, default_locale: str = "en"
    ) -> str | None:
        """Description for ``locale``, falling back to ``default_locale``."""
        return _translate(self.description, locale, default_locale)

    def get_translated_options(
        self, locale: str | None = None, default_locale: str = "en"
    ) -> Any:
        """
        Options for ``locale``.

        A flat list, or a mapping keyed by neither locale, is not
        locale-keyed and is returned unchanged.
        """
        options = self.options
        if isinstance(options, dict) and locale not in options and default_locale not in options:
            return options
        return _translate(options, locale, default_locale)

    def to_dict(self) -> dict[str, Any]:
        """Every column as a plain, serializable dictionary."""
        data = {}
        for column in self.__table__.columns:
            value = getattr(self, column.key)
            if isinstance(value, datetime):
                value = value.isoformat()
            data[column.key] = value
        return data
