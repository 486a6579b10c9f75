"""
client/storage.py -- Token persistence for the session manager.

Two stores mirror the browser's localStorage / sessionStorage:

  FileTokenStore   -- persistent JSON file, survives process restarts.
                      Used when the user ticked "remember me".
  MemoryTokenStore -- lives only as long as the session object. close()
                      discards it the way closing a tab discards
                      sessionStorage.

TokenStorage coordinates the two. A logical session lives in exactly one of
them: save() writes one store and clears the other.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path

logger = logging.getLogger("barnacle.client")


class MemoryTokenStore:
    """Session-scoped key/value store."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def remove(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def close(self) -> None:
        """End the session scope. Everything stored is gone."""
        with self._lock:
            self._data.clear()


class FileTokenStore:
    """Persistent key/value store backed by a small JSON file.

    The file is created with 0600 permissions. A corrupt or unreadable file is
    treated as empty rather than crashing the client.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, str]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable token file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, str]) -> None:
        if not data:
            self.path.unlink(missing_ok=True)
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh)
        os.replace(tmp, self.path)

    def get(self, key: str) -> str | None:
        with self._lock:
            value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)


class TokenStorage:
    """Remember-me aware token storage over a persistent and a session store."""

    def __init__(self, persistent: FileTokenStore, session: MemoryTokenStore, key: str = "authToken") -> None:
        self.persistent = persistent
        self.session = session
        self.key = key

    def get(self) -> str | None:
        """Return the current token, persistent store first."""
        return self.persistent.get(self.key) or self.session.get(self.key)

    def save(self, token: str, remember_me: bool = False) -> None:
        if remember_me:
            self.persistent.set(self.key, token)
            self.session.remove(self.key)
        else:
            self.session.set(self.key, token)
            self.persistent.remove(self.key)

    def clear(self) -> None:
        self.persistent.remove(self.key)
        self.session.remove(self.key)

    def has_remember_me(self) -> bool:
        return self.persistent.get(self.key) is not None
