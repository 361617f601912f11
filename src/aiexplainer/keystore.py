"""API key storage and decryption.

Adapters never look up keys themselves; the proxy asks a ``SecretProvider``.
Stored keys may be plaintext or AES-256-GCM blobs of the form
``enc:v1:<base64 nonce>:<base64 ciphertext>``. The encryption key is derived
from ``EXPLAINER_ENCRYPTION_SECRET`` with HKDF.
"""

import base64
import logging
import os
from typing import Optional, Protocol

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .config import Settings

logger = logging.getLogger(__name__)

ENCRYPTED_PREFIX = "enc:v1:"


class SecretProvider(Protocol):
    """Supplies decrypted API keys by provider key."""

    def get_api_key(self, provider_key: str) -> Optional[str]:
        ...


class ApiKeyEncryption:
    """AES-256-GCM encryption for stored API keys.

    The provider key is bound as associated data, so a blob encrypted for one
    provider cannot be replayed as another provider's key.
    """

    HKDF_INFO = b"ai-explainer-api-key-encryption-v1"

    def __init__(self, secret: str):
        if not secret:
            raise ValueError("An encryption secret is required")
        self._key = HKDF(
            algorithm=hashes.SHA256(),
            length=32,  # 256 bits
            salt=None,
            info=self.HKDF_INFO,
        ).derive(secret.encode())

    @staticmethod
    def is_encrypted(value: Optional[str]) -> bool:
        return bool(value) and value.startswith(ENCRYPTED_PREFIX)

    def encrypt(self, api_key: str, provider_key: str) -> str:
        nonce = os.urandom(12)
        ciphertext = AESGCM(self._key).encrypt(nonce, api_key.encode(), provider_key.encode())
        return (
            ENCRYPTED_PREFIX
            + base64.b64encode(nonce).decode()
            + ":"
            + base64.b64encode(ciphertext).decode()
        )

    def decrypt(self, blob: str, provider_key: str) -> str:
        """Decrypt a stored key.

        Raises:
            ValueError: If the blob is malformed, tampered with, or bound to
                another provider
        """
        if not self.is_encrypted(blob):
            raise ValueError("Value is not an encrypted API key")

        try:
            nonce_b64, ciphertext_b64 = blob[len(ENCRYPTED_PREFIX):].split(":", 1)
            nonce = base64.b64decode(nonce_b64)
            ciphertext = base64.b64decode(ciphertext_b64)
            plaintext = AESGCM(self._key).decrypt(nonce, ciphertext, provider_key.encode())
        except (ValueError, InvalidTag) as e:
            raise ValueError(f"Decryption failed - invalid key or tampered data: {e}") from e

        return plaintext.decode()


class SettingsSecretProvider:
    """Reads per-provider keys from settings, decrypting encrypted values."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._encryption: Optional[ApiKeyEncryption] = None
        if settings.encryption_secret:
            self._encryption = ApiKeyEncryption(settings.encryption_secret)

    def get_api_key(self, provider_key: str) -> Optional[str]:
        stored = self.settings.get_api_key_setting(provider_key)
        if not stored:
            return None

        if not ApiKeyEncryption.is_encrypted(stored):
            return stored.strip()

        if self._encryption is None:
            logger.error(
                f"API key for '{provider_key}' is encrypted but no encryption secret is configured"
            )
            return None

        try:
            return self._encryption.decrypt(stored, provider_key)
        except ValueError as e:
            logger.error(f"Could not decrypt API key for '{provider_key}': {e}")
            return None


class StaticSecretProvider:
    """Fixed mapping of provider key to API key."""

    def __init__(self, keys: dict[str, str]):
        self._keys = dict(keys)

    def get_api_key(self, provider_key: str) -> Optional[str]:
        return self._keys.get(provider_key)
