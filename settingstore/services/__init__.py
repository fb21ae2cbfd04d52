"""
Services for settingstore.
"""

from settingstore.services.audit import ActorContext, AuditRecorder
from settingstore.services.cache import (
    CacheStore,
    MemoryCacheStore,
    RedisCacheStore,
    SettingsCache,
    get_cache_store,
)
from settingstore.services.codec import ValueCodec, ValueType
from settingstore.services.encryption import (
    DecryptionError,
    EncryptionError,
    EncryptionKeyError,
    EncryptionService,
)
from settingstore.services.exceptions import (
    HistoryKeyMismatchError,
    MalformedImportError,
    SettingNotFoundError,
    SettingsError,
    SettingValidationError,
    UnauthenticatedError,
    UnsupportedFormatError,
)
from settingstore.services.settings_manager import SettingsManager, get_settings_manager
from settingstore.services.store import SettingChange, SettingStore, UserSettingStore
from settingstore.services.user_settings_manager import UserSettingsManager
from settingstore.services.validation import RuleValidator

__all__ = [
    # Managers
    "SettingsManager",
    "UserSettingsManager",
    "get_settings_manager",
    # Persistence
    "SettingStore",
    "UserSettingStore",
    "SettingChange",
    # Audit
    "ActorContext",
    "AuditRecorder",
    # Cache
    "CacheStore",
    "MemoryCacheStore",
    "RedisCacheStore",
    "SettingsCache",
    "get_cache_store",
    # Codec / encryption / validation
    "ValueCodec",
    "ValueType",
    "EncryptionService",
    "EncryptionError",
    "EncryptionKeyError",
    "DecryptionError",
    "RuleValidator",
    # Errors
    "SettingsError",
    "SettingValidationError",
    "SettingNotFoundError",
    "HistoryKeyMismatchError",
    "UnauthenticatedError",
    "UnsupportedFormatError",
    "MalformedImportError",
]
