"""
Pydantic schemas for API request/response validation.
"""

from settingstore.schemas.setting import (
    ENCRYPTED_PLACEHOLDER,
    HistoryRead,
    SettingCreate,
    SettingRead,
    SettingUpdate,
)

__all__ = [
    "ENCRYPTED_PLACEHOLDER",
    "SettingCreate",
    "SettingUpdate",
    "SettingRead",
    "HistoryRead",
]
