"""Encryption utilities for persisting sensitive data (auth sessions)."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

from commitly.config import settings

_fernets: dict[str, Fernet] = {}


def get_fernet(secret: str | None = None) -> Fernet:
    secret = secret or settings.app_secret_key
    fernet = _fernets.get(secret)
    if fernet is None:
        # Derive a Fernet key from the secret (must be 32 url-safe base64 bytes)
        key_bytes = hashlib.sha256(secret.encode()).digest()
        fernet = Fernet(base64.urlsafe_b64encode(key_bytes))
        _fernets[secret] = fernet
    return fernet


def encrypt(plaintext: str, secret: str | None = None) -> str:
    """Encrypt a string and return base64-encoded ciphertext."""
    return get_fernet(secret).encrypt(plaintext.encode()).decode()


def decrypt(ciphertext: str, secret: str | None = None) -> str:
    """Decrypt a base64-encoded ciphertext. Raises ValueError if it cannot be read."""
    try:
        return get_fernet(secret).decrypt(ciphertext.encode()).decode()
    except InvalidToken as e:
        raise ValueError("Ciphertext is invalid or was encrypted with another key") from e
