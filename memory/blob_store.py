"""Asynchronous blob storage for full-resolution images.

Blobs live outside the wardrobe document so that the whole-document writes of
:class:`memory.local_store.LocalStore` stay small. Keys share the id space of
items, outfits and notes but are not checked against the live document.
"""
from __future__ import annotations

import asyncio
import logging
import sqlite3
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from wardrobe_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)

Blob = Union[bytes, str]


class BlobStore:
    """Async key/value interface for large payloads."""

    async def save(self, blob_id: str, blob: Blob) -> None:
        raise NotImplementedError

    async def load(self, blob_id: str) -> Optional[Blob]:
        raise NotImplementedError

    async def delete(self, blob_id: str) -> None:
        raise NotImplementedError

    async def get_all(self) -> Dict[str, Blob]:
        raise NotImplementedError

    async def put_all(self, blobs: Mapping[str, Blob]) -> None:
        raise NotImplementedError


class SQLiteBlobStore(BlobStore):
    """SQLite-backed blob store; every call runs in a worker thread.

    The ``value`` column has no type affinity, so ``str`` data URLs and raw
    ``bytes`` come back with the type they were stored with.
    """

    def __init__(self, database_path: str | Path = "data/images.db") -> None:
        self.database_path = Path(database_path)
        if self.database_path.parent and not self.database_path.parent.exists():
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.database_path)

    def _ensure_tables(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS blobs (
                    blob_id TEXT PRIMARY KEY,
                    value BLOB
                );
                """
            )

    def _save_sync(self, blob_id: str, blob: Blob) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO blobs (blob_id, value) VALUES (?, ?)",
                (blob_id, blob),
            )

    def _load_sync(self, blob_id: str) -> Optional[Blob]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM blobs WHERE blob_id = ?", (blob_id,)).fetchone()
        return row[0] if row else None

    def _delete_sync(self, blob_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM blobs WHERE blob_id = ?", (blob_id,))

    def _get_all_sync(self) -> Dict[str, Blob]:
        with self._connect() as conn:
            rows = conn.execute("SELECT blob_id, value FROM blobs ORDER BY blob_id").fetchall()
        return {blob_id: value for blob_id, value in rows}

    def _put_all_sync(self, blobs: Mapping[str, Blob]) -> None:
        # The connection context manager commits once or rolls back everything.
        with self._connect() as conn:
            conn.executemany(
                "INSERT OR REPLACE INTO blobs (blob_id, value) VALUES (?, ?)",
                list(blobs.items()),
            )

    async def save(self, blob_id: str, blob: Blob) -> None:
        await asyncio.to_thread(self._save_sync, blob_id, blob)

    async def load(self, blob_id: str) -> Optional[Blob]:
        return await asyncio.to_thread(self._load_sync, blob_id)

    async def delete(self, blob_id: str) -> None:
        await asyncio.to_thread(self._delete_sync, blob_id)

    async def get_all(self) -> Dict[str, Blob]:
        return await asyncio.to_thread(self._get_all_sync)

    async def put_all(self, blobs: Mapping[str, Blob]) -> None:
        await asyncio.to_thread(self._put_all_sync, dict(blobs))
        log_event(LOGGER, logging.INFO, "blob_store_bulk_put", count=len(blobs))


def full_image_key(item_id: str) -> str:
    return f"full:{item_id}"


def thumb_image_key(item_id: str) -> str:
    return f"thumb:{item_id}"


def note_image_key(note_id: str) -> str:
    return f"note:{note_id}"


class ImageRepository:
    """Names the image slots kept for items, outfits and notes in a BlobStore."""

    def __init__(self, store: BlobStore) -> None:
        self.store = store

    async def save_full_image(self, entity_id: str, image: Blob) -> None:
        await self.store.save(full_image_key(entity_id), image)

    async def load_full_image(self, entity_id: str) -> Optional[Blob]:
        image = await self.store.load(full_image_key(entity_id))
        if image is not None:
            return image
        # Older clients stored the full image under the bare id.
        return await self.store.load(entity_id)

    async def save_thumb_image(self, entity_id: str, image: Blob) -> None:
        await self.store.save(thumb_image_key(entity_id), image)

    async def load_thumb_image(self, entity_id: str) -> Optional[Blob]:
        return await self.store.load(thumb_image_key(entity_id))

    async def delete_item_images(self, entity_id: str) -> None:
        for key in (full_image_key(entity_id), thumb_image_key(entity_id), entity_id):
            await self.store.delete(key)

    async def save_note_image(self, note_id: str, image: Blob) -> None:
        await self.store.save(note_image_key(note_id), image)

    async def load_note_image(self, note_id: str) -> Optional[Blob]:
        return await self.store.load(note_image_key(note_id))

    async def delete_note_image(self, note_id: str) -> None:
        await self.store.delete(note_image_key(note_id))


__all__ = [
    "Blob",
    "BlobStore",
    "ImageRepository",
    "SQLiteBlobStore",
    "full_image_key",
    "note_image_key",
    "thumb_image_key",
]
