"""
Per-user settings manager.

Same contract as the global manager, scoped to one principal, with no
cache and no audit trail. The principal is always passed in explicitly.
Mutations without one raise UnauthenticatedError; reads degrade to the
caller's default.
"""

import logging
from typing import Any

from sqlalchemy.orm import Session

from settingstore.config import Settings, get_settings
from settingstore.models import UserSetting
from settingstore.services.codec import ValueCodec
from settingstore.services.encryption import DecryptionError
from settingstore.services.exceptions import (
    SettingValidationError,
    UnauthenticatedError,
)
from settingstore.services.store import UserSettingStore
from settingstore.services.validation import RuleValidator

logger = logging.getLogger(__name__)


class UserSettingsManager:
    """
    Manager for the settings of one user.

    Args:
        db: Database session
        user_id: Principal the settings belong to (None when anonymous)
        config: Application settings
        codec: Value codec
        validator: Rule validator
        locale: Locale for label/description lookups
    """

    def __init__(
        self,
        db: Session,
        user_id: int | None = None,
        config: Settings | None = None,
        codec: ValueCodec | None = None,
        validator: RuleValidator | None = None,
        locale: str | None = None,
    ):
        self.db = db
        self.user_id = user_id
        self.config = config or get_settings()
        self.codec = codec or ValueCodec()
        self.validator = validator or RuleValidator()
        self.locale = locale or self.config.default_locale

    def for_user(self, user_id: int | None) -> "UserSettingsManager":
        """Same manager bound to another principal."""
        return UserSettingsManager(
            self.db,
            user_id,
            config=self.config,
            codec=self.codec,
            validator=self.validator,
            locale=self.locale,
        )

    @property
    def store(self) -> UserSettingStore | None:
        if self.user_id is None:
            return None
        return UserSettingStore(self.db, self.user_id)

    def _require_store(self) -> UserSettingStore:
        store = self.store
        if store is None:
            raise UnauthenticatedError("User not authenticated")
        return store

    def _validate(self, value: Any, rules: Any) -> None:
        errors = self.validator.validate(value, rules)
        if errors:
            raise SettingValidationError({"value": errors})

    # Reads

    def get(self, key: str, default: Any = None) -> Any:
        store = self.store
        if store is None:
            return default
        setting = store.find(key)
        if setting is None:
            return default
        return self.codec.decode(setting.value, setting.type)

    def has(self, key: str) -> bool:
        store = self.store
        return store.exists(key) if store is not None else False

    def all(self, group: str | None = None) -> dict[str, Any]:
        store = self.store
        if store is None:
            return {}
        return {
            setting.key: self.codec.decode(setting.value, setting.type)
            for setting in store.list_ordered(group)
        }

    def group(self, group: str | None = None) -> dict[str, Any]:
        return self.all(group)

    def all_with_metadata(self, group: str | None = None) -> list[UserSetting]:
        store = self.store
        return store.list_ordered(group) if store is not None else []

    def encrypted(self, key: str, default: Any = None) -> Any:
        """Plaintext of an encrypted user setting, or ``default``."""
        store = self.store
        if store is None:
            return default
        setting = store.find(key)
        if setting is None or not setting.encrypted:
            return default
        try:
            return self.codec.decrypt_strict(setting.value)
        except DecryptionError:
            logger.warning(f"Could not decrypt setting '{key}' of user {self.user_id}")
            return default

    # Writes

    def set(
        self,
        key: str,
        value: Any,
        group: str | None = None,
        encrypted: bool = False,
    ) -> UserSetting:
        """
        Create or update one of the user's settings.

        Raises:
            UnauthenticatedError: If there is no user
            SettingValidationError: If the value breaks the stored rules
        """
        store = self._require_store()
        existing = store.find(key)
        if existing is not None and existing.validation_rules and not encrypted:
            self._validate(value, existing.validation_rules)

        stored, value_type = self.codec.encode(value, encrypted=encrypted)
        return store.upsert(key, stored, value_type.value, encrypted=encrypted, group=group)

    def set_encrypted(self, key: str, value: Any, group: str | None = None) -> UserSetting:
        return self.set(key, value, group, encrypted=True)

    def set_with_metadata(
        self,
        key: str,
        value: Any,
        group: str | None = None,
        label: Any = None,
        description: Any = None,
        validation_rules: list[str] | None = None,
        input_type: str | None = None,
        order: int | None = None,
        options: Any = None,
        encrypted: bool = False,
    ) -> UserSetting:
        store = self._require_store()
        if validation_rules and not encrypted:
            self._validate(value, validation_rules)

        stored, value_type = self.codec.encode(value, encrypted=encrypted)
        metadata = {
            "group": group,
            "label": label,
            "description": description,
            "validation_rules": validation_rules,
            "options": options,
            "input_type": input_type or "text",
            "order": order if order is not None else 0,
        }
        return store.upsert(
            key, stored, value_type.value, encrypted=encrypted, metadata=metadata
        )

    def forget(self, key: str) -> bool:
        return self._require_store().delete(key)

    def flush(self) -> int:
        """Delete every setting of the user; returns the number removed."""
        return self._require_store().delete_all()

    # Bulk

    def set_bulk(self, settings: dict[str, Any]) -> dict[str, UserSetting]:
        self._require_store()
        results = {}
        for key, item in settings.items():
            if isinstance(item, dict) and "value" in item:
                results[key] = self.set(
                    key, item["value"], item.get("group"), bool(item.get("encrypted", False))
                )
            else:
                results[key] = self.set(key, item)
        return results

    def get_bulk(self, keys: list[str], default: Any = None) -> dict[str, Any]:
        return {key: self.get(key, default) for key in keys}

    def forget_bulk(self, keys: list[str]) -> bool:
        self._require_store()
        results = [self.forget(key) for key in keys]
        return all(results)

    # Translations

    def get_label(self, key: str, locale: str | None = None) -> str | None:
        store = self.store
        setting = store.find(key) if store is not None else None
        if setting is None:
            return None
        return setting.get_translated_label(locale or self.locale, self.config.default_locale)

    def get_description(self, key: str, locale: str | None = None) -> str | None:
        store = self.store
        setting = store.find(key) if store is not None else None
        if setting is None:
            return None
        return setting.get_translated_description(
            locale or self.locale, self.config.default_locale
        )
