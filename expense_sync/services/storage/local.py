"""
On-device Key-Value Stores

FileKeyValueStore keeps one file per key under a data directory, which
is enough durability for a single-user device. InMemoryKeyValueStore is
the drop-in used by tests and throwaway sessions.
"""

import asyncio
import hashlib
import os
import re
from pathlib import Path
from typing import Optional

from expense_sync.config import get_settings
from expense_sync.services.storage.interface import (
    LocalStoreError,
    LocalStoreInterface,
)


_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


def key_to_filename(key: str) -> str:
    """
    Map a storage key to a file name.

    Keys like '@expenses_app:transactions' contain characters that are
    not portable in file names; a short digest keeps distinct keys
    distinct after sanitising.
    """
    readable = _UNSAFE_CHARS.sub("_", key).strip("_") or "key"
    digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:8]
    return f"{readable}-{digest}.json"


class FileKeyValueStore(LocalStoreInterface):
    """Filesystem-backed store. Writes go to a temp file then replace."""

    def __init__(self, data_dir: Optional[str] = None):
        self._dir = Path(data_dir or get_settings().local_store.data_dir)

    @property
    def data_dir(self) -> Path:
        return self._dir

    def _path(self, key: str) -> Path:
        return self._dir / key_to_filename(key)

    def _read(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_bytes()

    def _write(self, key: str, value: bytes) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_bytes(value)
        os.replace(tmp, path)

    def _delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    async def get(self, key: str) -> Optional[bytes]:
        try:
            return await asyncio.to_thread(self._read, key)
        except OSError as e:
            raise LocalStoreError(f"Failed to read {key}: {e}")

    async def set(self, key: str, value: bytes) -> None:
        try:
            await asyncio.to_thread(self._write, key, value)
        except OSError as e:
            raise LocalStoreError(f"Failed to write {key}: {e}")

    async def remove(self, key: str) -> None:
        try:
            await asyncio.to_thread(self._delete, key)
        except OSError as e:
            raise LocalStoreError(f"Failed to remove {key}: {e}")


class InMemoryKeyValueStore(LocalStoreInterface):
    """Process-local store with the same contract."""

    def __init__(self, initial: Optional[dict[str, bytes]] = None):
        self._data: dict[str, bytes] = dict(initial or {})

    async def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    async def remove(self, key: str) -> None:
        self._data.pop(key, None)
