"""
Settings manager: the public API for global settings.

Orchestrates the store, cache, codec, validator and audit recorder:

- reads are cache-aside (value and existence cached separately)
- writes validate, encode (optionally encrypt), then upsert through the
  store, whose listeners record history and invalidate the cache in
  that order
- ``get`` never decrypts; ``encrypted`` is the only plaintext path
"""

import json
import logging
from typing import Any

import yaml
from sqlalchemy.orm import Session

from settingstore.config import Settings, get_settings
from settingstore.models import Setting, SettingHistory
from settingstore.services.audit import ActorContext, AuditRecorder
from settingstore.services.cache import MISSING, SettingsCache
from settingstore.services.codec import ValueCodec
from settingstore.services.encryption import (
    DecryptionError,
    EncryptionKeyError,
    EncryptionService,
)
from settingstore.services.exceptions import (
    HistoryKeyMismatchError,
    MalformedImportError,
    SettingNotFoundError,
    SettingValidationError,
    UnsupportedFormatError,
)
from settingstore.services.store import SettingStore
from settingstore.services.user_settings_manager import UserSettingsManager
from settingstore.services.validation import RuleValidator

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("json", "yaml")

# Import records carrying any of these go through set_with_metadata.
IMPORT_METADATA_FIELDS = (
    "label",
    "description",
    "validation_rules",
    "options",
    "input_type",
    "is_public",
    "order",
)


def default_codec(config: Settings) -> ValueCodec:
    """Codec bound to the configured encryption key, if there is one."""
    if not config.encryption_configured:
        return ValueCodec()
    try:
        return ValueCodec(EncryptionService.from_config(config))
    except EncryptionKeyError as e:
        logger.warning(f"Encryption unavailable: {e}")
        return ValueCodec()


def _bulk_item(value: Any) -> tuple[Any, str | None, bool]:
    """Split a set_bulk entry into (value, group, encrypted)."""
    if isinstance(value, dict) and "value" in value:
        return value["value"], value.get("group"), bool(value.get("encrypted", False))
    return value, None, False


class SettingsManager:
    """
    Manager for global settings.

    Args:
        db: Database session
        config: Application settings (defaults to get_settings())
        cache: Cache-aside wrapper (built from config when omitted)
        codec: Value codec (bound to ENCRYPTION_KEY when omitted)
        validator: Rule validator
        actor: Provenance recorded with every change
        locale: Locale for label/description lookups
    """

    def __init__(
        self,
        db: Session,
        config: Settings | None = None,
        cache: SettingsCache | None = None,
        codec: ValueCodec | None = None,
        validator: RuleValidator | None = None,
        actor: ActorContext | None = None,
        locale: str | None = None,
    ):
        self.db = db
        self.config = config or get_settings()
        self.cache = cache or SettingsCache.from_config(self.config)
        self.codec = codec or default_codec(self.config)
        self.validator = validator or RuleValidator()
        self.locale = locale or self.config.default_locale
        self.audit = AuditRecorder(db, self.config, actor)
        self.store = SettingStore(db, listeners=[self.audit, self.cache])

    # Reads

    def _load_value(self, key: str) -> Any:
        setting = self.store.find(key)
        if setting is None:
            return MISSING
        return self.codec.decode(setting.value, setting.type)

    def get(self, key: str, default: Any = None) -> Any:
        """
        Decoded value of ``key``.

        A missing key returns the configured ``defaults`` entry, or
        ``default`` when there is none.
        Encrypted settings come back as ciphertext.
        """
        value = self.cache.read(key, lambda: self._load_value(key))
        if value is not MISSING:
            return value
        return self.config.defaults.get(key, default)

    def has(self, key: str) -> bool:
        return self.cache.exists(key, lambda: self.store.exists(key))

    def all(self, group: str | None = None) -> dict[str, Any]:
        """Every setting (optionally one group) as key -> decoded value."""
        return {
            setting.key: self.codec.decode(setting.value, setting.type)
            for setting in self.store.list_ordered(group)
        }

    def group(self, group: str | None = None) -> dict[str, Any]:
        return self.all(group)

    def all_public(self, group: str | None = None) -> dict[str, Any]:
        """Public settings only, ordered by ``order``."""
        return {
            setting.key: self.codec.decode(setting.value, setting.type)
            for setting in self.store.list_ordered(group, public_only=True)
        }

    def all_with_metadata(self, group: str | None = None) -> list[Setting]:
        """Full setting rows ordered by ``order``."""
        return self.store.list_ordered(group)

    def find(self, key: str) -> Setting | None:
        return self.store.find(key)

    def encrypted(self, key: str, default: Any = None) -> Any:
        """
        Plaintext of an encrypted setting.

        Returns ``default`` when the setting is missing, not encrypted,
        or cannot be decrypted with the current key.
        """
        setting = self.store.find(key)
        if setting is None or not setting.encrypted:
            return default
        try:
            return self.codec.decrypt_strict(setting.value)
        except DecryptionError:
            logger.warning(f"Could not decrypt setting '{key}', returning default")
            return default

    # Writes

    def _validate(self, value: Any, rules: Any) -> None:
        errors = self.validator.validate(value, rules)
        if errors:
            raise SettingValidationError({"value": errors})

    def set(
        self,
        key: str,
        value: Any,
        group: str | None = None,
        encrypted: bool = False,
    ) -> Setting:
        """
        Create or update a setting.

        Existing validation rules are enforced unless the write is
        encrypted. ``group`` is only changed when given.

        Raises:
            SettingValidationError: If the value breaks the stored rules
        """
        existing = self.store.find(key)
        if existing is not None and existing.validation_rules and not encrypted:
            self._validate(value, existing.validation_rules)

        stored, value_type = self.codec.encode(value, encrypted=encrypted)
        return self.store.upsert(
            key,
            stored,
            value_type.value,
            encrypted=encrypted,
            group=group,
        )

    def set_encrypted(self, key: str, value: Any, group: str | None = None) -> Setting:
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
        is_public: bool | None = None,
        order: int | None = None,
        options: Any = None,
        encrypted: bool = False,
    ) -> Setting:
        """
        Create or update a setting and overwrite all of its metadata.

        The value is validated against ``validation_rules`` (not the rules
        stored before) unless the write is encrypted.

        Raises:
            SettingValidationError: If the value breaks the supplied rules
        """
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
            "is_public": bool(is_public) if is_public is not None else False,
            "order": order if order is not None else 0,
        }
        return self.store.upsert(
            key,
            stored,
            value_type.value,
            encrypted=encrypted,
            metadata=metadata,
        )

    def forget(self, key: str) -> bool:
        """Delete a setting; returns whether a row was removed."""
        removed = self.store.delete(key)
        if not removed:
            # nothing was dispatched, drop any stale existence entry anyway
            self.cache.invalidate(key)
            self.cache.invalidate_existence(key)
        return removed

    def flush(self) -> None:
        """Drop every cached setting."""
        self.cache.flush_all()

    # Bulk

    def set_bulk(self, settings: dict[str, Any]) -> dict[str, Setting]:
        """
        Set several settings, one independent write per key.

        Values may be plain or ``{"value": ..., "group": ..., "encrypted": ...}``.
        A failure stops the batch; earlier writes stay committed.
        """
        results = {}
        for key, item in settings.items():
            value, group, encrypted = _bulk_item(item)
            results[key] = self.set(key, value, group, encrypted)
        return results

    def get_bulk(self, keys: list[str], default: Any = None) -> dict[str, Any]:
        return {key: self.get(key, default) for key in keys}

    def forget_bulk(self, keys: list[str]) -> bool:
        """Delete several settings; True only if every key was removed."""
        results = [self.forget(key) for key in keys]
        return all(results)

    def set_with_metadata_bulk(self, settings: dict[str, dict[str, Any]]) -> dict[str, Setting]:
        results = {}
        for key, data in settings.items():
            results[key] = self.set_with_metadata(
                key=key,
                value=data.get("value"),
                group=data.get("group"),
                label=data.get("label"),
                description=data.get("description"),
                validation_rules=data.get("validation_rules"),
                input_type=data.get("input_type"),
                is_public=data.get("is_public"),
                order=data.get("order"),
                options=data.get("options"),
                encrypted=bool(data.get("encrypted", False)),
            )
        return results

    # Translations

    def get_label(self, key: str, locale: str | None = None) -> str | None:
        setting = self.store.find(key)
        if setting is None:
            return None
        return setting.get_translated_label(locale or self.locale, self.config.default_locale)

    def get_description(self, key: str, locale: str | None = None) -> str | None:
        setting = self.store.find(key)
        if setting is None:
            return None
        return setting.get_translated_description(
            locale or self.locale, self.config.default_locale
        )

    def get_options(self, key: str, locale: str | None = None) -> Any:
        setting = self.store.find(key)
        if setting is None:
            return None
        return setting.get_translated_options(locale or self.locale, self.config.default_locale)

    # Import / export

    def _export_record(self, setting: Setting, include_metadata: bool) -> dict[str, Any]:
        value = self.codec.decode(setting.value, setting.type)
        if not include_metadata:
            return {"key": setting.key, "value": value, "group": setting.group}
        record = setting.to_dict()
        record["value"] = value
        return record

    def export(self, format: str = "json", options: dict[str, Any] | None = None) -> str:
        """
        Serialize settings to JSON or YAML.

        Options:
            include_metadata: Full rows instead of {key, value, group}
            include_encrypted: Also export encrypted settings (as ciphertext)
            group: Only export one group

        Raises:
            UnsupportedFormatError: If format is not json or yaml
        """
        options = options or {}
        if format not in SUPPORTED_FORMATS:
            raise UnsupportedFormatError(f"Unsupported format: {format}")

        include_metadata = options.get("include_metadata", self.config.export_include_metadata)
        include_encrypted = options.get("include_encrypted", self.config.export_include_encrypted)

        data = [
            self._export_record(setting, include_metadata)
            for setting in self.store.list_ordered(options.get("group"))
            if include_encrypted or not setting.encrypted
        ]

        if format == "yaml":
            return yaml.safe_dump(data, sort_keys=False, allow_unicode=True, indent=2)
        return json.dumps(data, indent=4, ensure_ascii=False)

    def _parse_import(self, data: str, format: str) -> Any:
        if format not in SUPPORTED_FORMATS:
            raise UnsupportedFormatError(f"Unsupported format: {format}")
        try:
            if format == "yaml":
                return yaml.safe_load(data)
            return json.loads(data)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise MalformedImportError(f"Invalid import data: {e}") from e

    def _import_value(self, record: dict[str, Any]) -> Any:
        value = record.get("value")
        if record.get("encrypted") and isinstance(value, str):
            try:
                # exported ciphertext: store it re-encrypted from plaintext
                return self.codec.decrypt_strict(value)
            except DecryptionError:
                return value
        return value

    def import_settings(self, data: str, format: str = "json", options: dict[str, Any] | None = None) -> int:
        """
        Load settings from JSON or YAML.

        Records without a ``key`` are skipped. With ``overwrite`` false,
        keys that already exist are left alone.

        Returns:
            Number of settings written

        Raises:
            UnsupportedFormatError: If format is not json or yaml
            MalformedImportError: If the payload is not a list of records
        """
        options = options or {}
        overwrite = options.get("overwrite", True)

        records = self._parse_import(data, format)
        if not isinstance(records, list):
            raise MalformedImportError("Invalid import data format: expected a list of settings")

        imported = 0
        for record in records:
            if not isinstance(record, dict):
                raise MalformedImportError("Invalid import data format: each setting must be a mapping")
            key = record.get("key")
            if not key:
                continue
            if not overwrite and self.store.exists(key):
                continue

            value = self._import_value(record)
            encrypted = bool(record.get("encrypted", False))
            if any(record.get(field) is not None for field in IMPORT_METADATA_FIELDS):
                self.set_with_metadata(
                    key=key,
                    value=value,
                    group=record.get("group"),
                    label=record.get("label"),
                    description=record.get("description"),
                    validation_rules=record.get("validation_rules"),
                    input_type=record.get("input_type"),
                    is_public=record.get("is_public"),
                    order=record.get("order"),
                    options=record.get("options"),
                    encrypted=encrypted,
                )
            else:
                self.set(key, value, record.get("group"), encrypted)
            imported += 1

        logger.info(f"Imported {imported} settings from {format}")
        return imported

    # History

    def get_history(self, key: str, limit: int = 50) -> list[SettingHistory]:
        return self.audit.history_for(key, limit)

    def get_all_history(self, limit: int = 100) -> list[SettingHistory]:
        return self.audit.all_history(limit)

    def restore_to_version(self, key: str, history_id: int) -> Setting:
        """
        Write the old value of a history record back to ``key``.

        Creates the setting if it was deleted. The restore itself is not
        recorded as a new history entry; the cache is still invalidated.
        The row is flagged encrypted only if the restored text is
        ciphertext for the current key.

        Raises:
            SettingNotFoundError: If the history record does not exist
            HistoryKeyMismatchError: If it belongs to another key
        """
        history = self.audit.find(history_id)
        if history is None:
            raise SettingNotFoundError(f"History record {history_id} not found")
        if history.setting_key != key:
            raise HistoryKeyMismatchError(f"History record does not match setting key: {key}")

        value = history.decoded_old_value
        stored, value_type = self.codec.encode(value)
        return self.store.upsert(
            key,
            stored,
            value_type.value,
            encrypted=self._is_ciphertext(stored),
            audited=False,
        )

    def _is_ciphertext(self, stored: str | None) -> bool:
        if not stored:
            return False
        try:
            self.codec.decrypt_strict(stored)
        except DecryptionError:
            return False
        return True

    # User settings

    def user(self, user_id: int | None) -> UserSettingsManager:
        """Manager for the settings of one principal."""
        return UserSettingsManager(
            self.db,
            user_id,
            config=self.config,
            codec=self.codec,
            validator=self.validator,
            locale=self.locale,
        )


def get_settings_manager(db: Session, actor: ActorContext | None = None) -> SettingsManager:
    """Get a SettingsManager instance.

    Args:
        db: Database session
        actor: Provenance for audit records

    Returns:
        SettingsManager instance
    """
    return SettingsManager(db, actor=actor)
