"""Synchronous key/value substrates for the local document store."""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Dict, Optional

from wardrobe_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.\-]+$")


class KeyValueBackend:
    """String-to-string persistence with browser ``localStorage`` semantics."""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError


class InMemoryBackend(KeyValueBackend):
    """Process-local backend, handy for tests and throwaway sessions."""

    def __init__(self, initial: Dict[str, str] | None = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


class JSONFileBackend(KeyValueBackend):
    """One file per key under ``base_dir``; writes replace the file atomically."""

    def __init__(self, base_dir: str | Path = "data/local_store") -> None:
        self.base_dir = Path(base_dir)
        self.base_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Unsupported store key {key!r}")
        return self.base_dir / f"{key}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        data = path.read_bytes()
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            # Damaged bytes become U+FFFD so the rest of the value stays readable.
            log_event(LOGGER, logging.WARNING, "kv_backend_undecodable", store_key=key, error=str(exc))
            return data.decode("utf-8", errors="replace")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        tmp_path.write_text(value, encoding="utf-8")
        os.replace(tmp_path, path)

    def remove_item(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


__all__ = ["KeyValueBackend", "InMemoryBackend", "JSONFileBackend"]
