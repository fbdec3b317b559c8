# app/core/security.py
"""
Encryption helpers for storing API tokens at rest.

Uses Fernet symmetric encryption from the cryptography library. The
ENCRYPTION_KEY setting may be any string; it is stretched to a Fernet key
with SHA-256.
"""
import base64
import hashlib
import logging
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

_DEVELOPMENT_SECRET = "default-key-change-in-production"


class SecretBox:
    def __init__(self, secret: str = ""):
        if not secret:
            logger.warning("ENCRYPTION_KEY not set, using the development key")
            secret = _DEVELOPMENT_SECRET
        key = base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())
        self._cipher = Fernet(key)

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a plaintext secret.

        Returns:
            str: URL-safe base64 token
        """
        if not plaintext:
            raise ValueError("plaintext cannot be empty")
        return self._cipher.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a token produced by ``encrypt``.

        Raises:
            ValueError: If the token is malformed or was made with another key
        """
        try:
            return self._cipher.decrypt(ciphertext.encode("utf-8")).decode("utf-8")
        except InvalidToken as e:
            raise ValueError("Failed to decrypt secret") from e


@lru_cache
def get_secret_box(secret: str) -> SecretBox:
    return SecretBox(secret)
