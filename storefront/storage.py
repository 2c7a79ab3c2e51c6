"""
Local snapshot storage for carts and wishlists.

Every store is synchronous and never raises because the medium is missing,
full or unreadable: reads return None and writes return False, and the
engine keeps working from memory for that call.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Protocol
from urllib.parse import quote, unquote

from .errors import (
    ERROR_STORAGE_CORRUPTED,
    ERROR_STORAGE_READ,
    ERROR_STORAGE_UNAVAILABLE,
    ERROR_STORAGE_WRITE,
)
from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_PREFIX = "storefront"


class LocalStore(Protocol):
    """Key/value persistence for serialized snapshots."""

    def read(self, key: str) -> Optional[dict[str, Any]]:
        """Return the snapshot stored under key, or None."""
        ...

    def write(self, key: str, snapshot: dict[str, Any]) -> bool:
        """Store snapshot under key. Returns False on failure."""
        ...

    def erase(self, key: str) -> bool:
        """Delete key. Returns False on failure."""
        ...

    def keys(self) -> list[str]:
        """List stored keys."""
        ...


def _encode(snapshot: dict[str, Any]) -> str:
    return json.dumps(snapshot, ensure_ascii=False, separators=(",", ":"))


def _decode(key: str, raw: str) -> Optional[dict[str, Any]]:
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"{ERROR_STORAGE_CORRUPTED} for key {key}: {e}")
        return None
    if not isinstance(value, dict):
        logger.warning(f"{ERROR_STORAGE_CORRUPTED} for key {key}: not an object")
        return None
    return value


class MemoryStore:
    """In-process store holding JSON text, like a durable medium would.

    Set ``available = False`` to behave like a disabled medium.
    """

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self.available = True

    def read(self, key: str) -> Optional[dict[str, Any]]:
        if not self.available:
            return None
        raw = self._data.get(key)
        if raw is None:
            return None
        return _decode(key, raw)

    def write(self, key: str, snapshot: dict[str, Any]) -> bool:
        if not self.available:
            logger.warning(f"{ERROR_STORAGE_UNAVAILABLE}: cannot write {key}")
            return False
        try:
            self._data[key] = _encode(snapshot)
        except (TypeError, ValueError) as e:
            logger.warning(f"{ERROR_STORAGE_WRITE} for key {key}: {e}")
            return False
        return True

    def erase(self, key: str) -> bool:
        if not self.available:
            return False
        self._data.pop(key, None)
        return True

    def keys(self) -> list[str]:
        if not self.available:
            return []
        return list(self._data)

    def __len__(self) -> int:
        return len(self._data)


class FileStore:
    """One JSON file per key inside a directory.

    Writes go to a temp file that replaces the target, so a crash mid-write
    leaves the previous snapshot intact.
    """

    SUFFIX = ".json"

    def __init__(self, directory: str | os.PathLike) -> None:
        self.directory = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        # Keys look like "tenant:cart"; keep file names portable
        return self.directory / f"{quote(key, safe='')}{self.SUFFIX}"

    def read(self, key: str) -> Optional[dict[str, Any]]:
        path = self._path(key)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"{ERROR_STORAGE_READ} for key {key}: {e}")
            return None
        return _decode(key, raw)

    def write(self, key: str, snapshot: dict[str, Any]) -> bool:
        path = self._path(key)
        try:
            payload = _encode(snapshot)
        except (TypeError, ValueError) as e:
            logger.warning(f"{ERROR_STORAGE_WRITE} for key {key}: {e}")
            return False

        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-", suffix=self.SUFFIX)
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, path)
            return True
        except OSError as e:
            logger.warning(f"{ERROR_STORAGE_WRITE} for key {key}: {e}")
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
            return False

    def erase(self, key: str) -> bool:
        try:
            self._path(key).unlink(missing_ok=True)
            return True
        except OSError as e:
            logger.warning(f"Failed to erase key {key}: {e}")
            return False

    def keys(self) -> list[str]:
        try:
            names = [p.name for p in self.directory.iterdir() if p.is_file()]
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.warning(f"Failed to list {self.directory}: {e}")
            return []
        return sorted(
            unquote(name[: -len(self.SUFFIX)])
            for name in names
            if name.endswith(self.SUFFIX) and not name.startswith(".tmp-")
        )


class StorageSlot:
    """A single named key inside a store."""

    def __init__(self, store: LocalStore, key: str) -> None:
        self._store = store
        self.key = key

    def get(self) -> Optional[dict[str, Any]]:
        return self._store.read(self.key)

    def set(self, snapshot: dict[str, Any]) -> bool:
        return self._store.write(self.key, snapshot)

    def remove(self) -> bool:
        return self._store.erase(self.key)


class StorageManager:
    """Namespaces keys by a tenant prefix, e.g. ``storefront:acme:cart``."""

    def __init__(self, store: LocalStore, prefix: str = DEFAULT_PREFIX) -> None:
        self.store = store
        self.prefix = prefix

    def _full_key(self, name: str) -> str:
        return f"{self.prefix}:{name}"

    def slot(self, name: str) -> StorageSlot:
        return StorageSlot(self.store, self._full_key(name))

    def keys(self) -> list[str]:
        """Names stored under this prefix, without the prefix."""
        marker = f"{self.prefix}:"
        return [k[len(marker):] for k in self.store.keys() if k.startswith(marker)]

    def clear_all(self) -> bool:
        """Erase every key under this prefix. Other tenants are untouched."""
        ok = True
        for name in self.keys():
            ok = self.store.erase(self._full_key(name)) and ok
        return ok
