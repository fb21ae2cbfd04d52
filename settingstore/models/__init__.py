"""
SQLAlchemy models for settingstore.

All models are imported here for easy access and to ensure
they are registered with the declarative base.
"""

from settingstore.models.base import Base, SettingFieldsMixin
from settingstore.models.setting import Setting
from settingstore.models.user_setting import UserSetting
from settingstore.models.setting_history import SettingHistory, SettingAction

__all__ = [
    "Base",
    "SettingFieldsMixin",
    "Setting",
    "UserSetting",
    "SettingHistory",
    "SettingAction",
]
