"""
Pydantic schemas for settings and their history.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from settingstore.models import Setting, SettingHistory
from settingstore.services.codec import decode

# Shown instead of the stored ciphertext of encrypted settings.
ENCRYPTED_PLACEHOLDER = "***encrypted***"


class SettingCreate(BaseModel):
    """Schema for creating a setting."""
    key: str = Field(..., min_length=1, max_length=255, description="Unique setting key")
    value: Any = Field(..., description="Setting value (string, number, bool, list or object)")
    group: Optional[str] = Field(None, max_length=255)
    encrypted: bool = Field(False, description="Store the value encrypted")


class SettingUpdate(BaseModel):
    """Schema for updating a setting value."""
    value: Any = Field(...)
    group: Optional[str] = Field(None, max_length=255)


class SettingRead(BaseModel):
    """Schema for setting response. Encrypted values are masked."""
    key: str
    value: Any = None
    type: str
    group: Optional[str] = None
    label: Any = None
    description: Any = None
    is_public: bool = False
    encrypted: bool = False
    order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_setting(cls, setting: Setting) -> "SettingRead":
        value = ENCRYPTED_PLACEHOLDER if setting.encrypted else decode(setting.value, setting.type)
        return cls(
            key=setting.key,
            value=value,
            type=setting.type,
            group=setting.group,
            label=setting.label,
            description=setting.description,
            is_public=bool(setting.is_public),
            encrypted=bool(setting.encrypted),
            order=setting.order or 0,
            created_at=setting.created_at,
            updated_at=setting.updated_at,
        )


class HistoryRead(BaseModel):
    """Schema for a setting history record."""
    id: int
    setting_key: str
    action: str
    old_value: Any = None
    new_value: Any = None
    old_type: Optional[str] = None
    new_type: Optional[str] = None
    user_id: Optional[int] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_history(cls, history: SettingHistory) -> "HistoryRead":
        return cls(
            id=history.id,
            setting_key=history.setting_key,
            action=history.action,
            old_value=history.decoded_old_value,
            new_value=history.decoded_new_value,
            old_type=history.old_type,
            new_type=history.new_type,
            user_id=history.user_id,
            ip_address=history.ip_address,
            user_agent=history.user_agent,
            created_at=history.created_at,
        )
