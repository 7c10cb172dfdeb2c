"""Secure key/value storage for auth session persistence."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Protocol, runtime_checkable

from commitly.config import settings
from commitly.utils.crypto import decrypt, encrypt

logger = logging.getLogger(__name__)


@runtime_checkable
class SecureStorage(Protocol):
    async def get_item(self, key: str) -> str | None: ...

    async def set_item(self, key: str, value: str) -> None: ...

    async def delete_item(self, key: str) -> None: ...


class EncryptedFileStorage:
    """Fernet-encrypted values in a single JSON file, written atomically.

    ``get_item`` raises ValueError when a stored value cannot be decrypted.
    """

    def __init__(self, path: str | Path | None = None, secret: str | None = None):
        self._path = Path(path or settings.secure_storage_path)
        self._secret = secret

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text())
        except (OSError, ValueError) as e:
            logger.warning("Secure storage file unreadable, ignoring: %s", e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(data))
        os.chmod(tmp, 0o600)
        os.replace(tmp, self._path)

    async def get_item(self, key: str) -> str | None:
        ciphertext = self._read().get(key)
        if ciphertext is None:
            return None
        return decrypt(ciphertext, self._secret)

    async def set_item(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = encrypt(value, self._secret)
        self._write(data)

    async def delete_item(self, key: str) -> None:
        data = self._read()
        if data.pop(key, None) is not None:
            self._write(data)
