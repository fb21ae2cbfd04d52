"""
Value codec: typed values <-> stored text.

Every setting value is persisted as text together with a type tag.
Encryption is a separate step applied to the stored text only; it is not
type-aware, so an encrypted value is always tagged ``string``.
"""

import json
import logging
from enum import Enum
from typing import Any

from settingstore.services.encryption import (
    DecryptionError,
    EncryptionKeyError,
    EncryptionService,
)

logger = logging.getLogger(__name__)

TRUTHY = frozenset({"1", "true", "on", "yes"})


class ValueType(str, Enum):
    """Type tag stored next to every value."""

    string = "string"
    int = "int"
    bool = "bool"
    float = "float"
    array = "array"

    @classmethod
    def parse(cls, tag: "str | ValueType | None") -> "ValueType":
        """Resolve a stored tag, including legacy aliases, to a ValueType."""
        if isinstance(tag, ValueType):
            return tag
        return _ALIASES.get((tag or "").lower(), cls.string)


_ALIASES = {
    "string": ValueType.string,
    "int": ValueType.int,
    "integer": ValueType.int,
    "bool": ValueType.bool,
    "boolean": ValueType.bool,
    "float": ValueType.float,
    "double": ValueType.float,
    "array": ValueType.array,
    "json": ValueType.array,
    "object": ValueType.array,
}


def infer_type(value: Any) -> ValueType:
    # bool is a subclass of int, so it has to be tested first
    if isinstance(value, bool):
        return ValueType.bool
    if isinstance(value, int):
        return ValueType.int
    if isinstance(value, float):
        return ValueType.float
    if isinstance(value, (list, tuple, dict)):
        return ValueType.array
    return ValueType.string


def encode(value: Any) -> tuple[str | None, ValueType]:
    """
    Convert a value to its stored text and type tag.

    Returns:
        (stored_text, type). ``None`` is kept as ``None`` tagged string.
    """
    value_type = infer_type(value)
    if value is None:
        return None, value_type
    if value_type is ValueType.bool:
        return ("1" if value else "0"), value_type
    if value_type is ValueType.array:
        return json.dumps(value), value_type
    return str(value), value_type


def _to_int(text: str) -> int:
    try:
        return int(text)
    except ValueError:
        pass
    try:
        return int(float(text))
    except ValueError:
        return 0


def _to_float(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0


def decode(stored: Any, type_tag: "str | ValueType | None") -> Any:
    """
    Convert stored text back to a typed value using its type tag.

    Booleans are parsed permissively ("1", "true", "on", "yes" are true).
    Already-structured array values pass through unchanged.
    """
    if stored is None:
        return None

    value_type = ValueType.parse(type_tag)

    if value_type is ValueType.int:
        return _to_int(str(stored))
    if value_type is ValueType.bool:
        if isinstance(stored, bool):
            return stored
        return str(stored).strip().lower() in TRUTHY
    if value_type is ValueType.float:
        return _to_float(str(stored))
    if value_type is ValueType.array:
        if not isinstance(stored, str):
            return stored
        try:
            return json.loads(stored)
        except json.JSONDecodeError:
            logger.warning("Stored array value is not valid JSON, returning raw text")
            return stored
    return stored


def serialize_value(value: Any) -> str | None:
    """
    Text form of an arbitrary value for history rows and encryption input.

    Composites become JSON, booleans ``true``/``false``, other scalars ``str``.
    """
    if value is None:
        return None
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ValueCodec:
    """
    Encode/decode plus the optional encryption step.

    Args:
        encryption: Service holding the application secret. Without it,
            encrypted writes fail and decryption falls back to the raw text.
    """

    def __init__(self, encryption: EncryptionService | None = None):
        self.encryption = encryption

    def encode(self, value: Any, encrypted: bool = False) -> tuple[str | None, ValueType]:
        """Stored text and type for ``value``; encrypted values are tagged string."""
        if encrypted:
            return self.encrypt(serialize_value(value) or ""), ValueType.string
        return encode(value)

    def decode(self, stored: Any, type_tag: "str | ValueType | None") -> Any:
        return decode(stored, type_tag)

    def encrypt(self, plaintext: str) -> str:
        if self.encryption is None:
            raise EncryptionKeyError(
                "Encryption key not configured. Set ENCRYPTION_KEY in .env"
            )
        return self.encryption.encrypt(plaintext)

    def decrypt_strict(self, ciphertext: str) -> str:
        """
        Decrypt or raise.

        Raises:
            DecryptionError: If the text is not valid ciphertext for this key
        """
        if self.encryption is None:
            raise DecryptionError("Encryption key not configured")
        return self.encryption.decrypt(ciphertext)

    def decrypt(self, ciphertext: str | None) -> str | None:
        """Decrypt, returning the stored text unchanged if that fails."""
        if ciphertext is None:
            return None
        try:
            return self.decrypt_strict(ciphertext)
        except DecryptionError:
            logger.warning("Could not decrypt stored value, returning it unchanged")
            return ciphertext
