"""
Symmetric encryption for settings stored with ``encrypted=True``.

Fernet tokens (AES-128-CBC + HMAC-SHA256) keyed by ENCRYPTION_KEY. The
key is application-wide: a value encrypted under one key can only be
read back with that same key.
"""

from cryptography.fernet import Fernet, InvalidToken

from settingstore.config import Settings


class EncryptionError(Exception):
    """Base exception for encryption errors."""

    pass


class EncryptionKeyError(EncryptionError):
    """Raised when ENCRYPTION_KEY is missing or not a Fernet key."""

    pass


class DecryptionError(EncryptionError):
    """Raised when stored text is not a valid token for the current key."""

    pass


class EncryptionService:
    """
    Encrypts and decrypts setting text.

    Args:
        encryption_key: URL-safe base64 Fernet key (as produced by generate_key)

    Raises:
        EncryptionKeyError: If the key is empty or malformed
    """

    def __init__(self, encryption_key: str):
        if not encryption_key:
            raise EncryptionKeyError("Encryption key is required")
        try:
            self._fernet = Fernet(encryption_key.encode())
        except (ValueError, TypeError) as e:
            raise EncryptionKeyError(f"Invalid encryption key: {e}")

    @classmethod
    def from_config(cls, config: Settings) -> "EncryptionService":
        """Service keyed by ``config.encryption_key``."""
        if not config.encryption_configured:
            raise EncryptionKeyError(
                "Encryption key not configured. Set ENCRYPTION_KEY in .env"
            )
        return cls(config.encryption_key)

    def encrypt(self, plaintext: str) -> str:
        """Token for ``plaintext``; a fresh IV makes every token different."""
        try:
            return self._fernet.encrypt(plaintext.encode()).decode()
        except (AttributeError, TypeError) as e:
            raise EncryptionError(f"Encryption failed: {e}")

    def decrypt(self, token: str) -> str:
        """
        Plaintext of ``token``.

        Raises:
            DecryptionError: If the token is corrupted or was made with another key
        """
        try:
            return self._fernet.decrypt(token.encode()).decode()
        except InvalidToken:
            raise DecryptionError("Invalid or corrupted encrypted data")
        except (AttributeError, TypeError, ValueError) as e:
            raise DecryptionError(f"Decryption failed: {e}")

    @staticmethod
    def generate_key() -> str:
        """New random key suitable for the ENCRYPTION_KEY variable."""
        return Fernet.generate_key().decode()
