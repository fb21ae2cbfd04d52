"""
Tests for EncryptionService.
"""

import pytest
from cryptography.fernet import Fernet

from settingstore.services.encryption import (
    DecryptionError,
    EncryptionKeyError,
    EncryptionService,
)


@pytest.fixture
def encryption_service(encryption_key):
    """Create an EncryptionService with a valid key."""
    return EncryptionService(encryption_key)


class TestEncryptionServiceInit:
    """Test EncryptionService initialization."""

    def test_init_with_empty_key_raises_error(self):
        """Test that empty key raises EncryptionKeyError."""
        with pytest.raises(EncryptionKeyError, match="Encryption key is required"):
            EncryptionService("")

    def test_init_with_invalid_key_raises_error(self):
        """Test that invalid key raises EncryptionKeyError."""
        with pytest.raises(EncryptionKeyError, match="Invalid encryption key"):
            EncryptionService("not-a-valid-fernet-key")


class TestEncryptDecrypt:
    """Test basic encrypt/decrypt operations."""

    def test_encrypt_produces_different_output_each_time(self, encryption_service):
        """Test that encrypt produces different ciphertext each time (due to IV)."""
        assert encryption_service.encrypt("same") != encryption_service.encrypt("same")

    def test_decrypt_returns_original_data(self, encryption_service):
        """Test encrypt/decrypt with unicode characters."""
        original = "Zażółć gęślą jaźń 🔐"
        assert encryption_service.decrypt(encryption_service.encrypt(original)) == original

    def test_decrypt_invalid_data_raises_error(self, encryption_service):
        """Test that decrypting invalid data raises DecryptionError."""
        with pytest.raises(DecryptionError, match="Invalid or corrupted"):
            encryption_service.decrypt("not-valid-encrypted-data")

    def test_decrypt_with_wrong_key_raises_error(self, encryption_service):
        """Test that decrypting with wrong key raises DecryptionError."""
        other = EncryptionService(Fernet.generate_key().decode())
        with pytest.raises(DecryptionError):
            other.decrypt(encryption_service.encrypt("secret data"))


class TestGenerateKey:
    """Test key generation."""

    def test_generated_key_is_valid(self):
        """Test that generated key can be used."""
        service = EncryptionService(EncryptionService.generate_key())
        assert service.decrypt(service.encrypt("test")) == "test"

    def test_generate_key_produces_different_keys(self):
        """Test that each call generates a different key."""
        assert EncryptionService.generate_key() != EncryptionService.generate_key()


class TestFromConfig:
    """Test building the service from application settings."""

    def test_from_config(self, config):
        service = EncryptionService.from_config(config)
        assert service.decrypt(service.encrypt("x")) == "x"

    def test_from_config_without_key(self):
        from settingstore.config import Settings

        with pytest.raises(EncryptionKeyError, match="not configured"):
            EncryptionService.from_config(Settings(_env_file=None, encryption_key=""))
