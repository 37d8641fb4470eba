"""Whole-state backup export and restore."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from memory.backup import BACKUP_FORMAT, BackupFormatError, export_backup, restore_backup
from memory.blob_store import SQLiteBlobStore
from memory.kv_backend import InMemoryBackend
from memory.local_store import LocalStore
from models.document import ClothingItem


def _stores(tmp_path: Path, name: str):
    return LocalStore(InMemoryBackend(), key="wardrobe_test"), SQLiteBlobStore(tmp_path / f"{name}.db")


def test_export_then_restore_into_empty_stores(tmp_path: Path) -> None:
    source_store, source_blobs = _stores(tmp_path, "source")
    document = source_store.add_item(
        source_store.load(), ClothingItem(id="a", name="Tee", category="top", location="taipei")
    )

    async def scenario():
        await source_blobs.put_all({"full:a": b"\x89PNG", "thumb:a": "data:image/jpeg;base64,AAAA"})
        bundle = await export_backup(source_store, source_blobs)
        bundle = json.loads(json.dumps(bundle))

        target_store, target_blobs = _stores(tmp_path, "target")
        restored = await restore_backup(bundle, target_store, target_blobs)
        return bundle, restored, target_store.load(), await target_blobs.get_all()

    bundle, restored, reloaded, blobs = asyncio.run(scenario())

    assert bundle["format"] == BACKUP_FORMAT
    assert restored == document
    assert reloaded == document
    assert blobs == {"full:a": b"\x89PNG", "thumb:a": "data:image/jpeg;base64,AAAA"}


def test_restore_migrates_older_documents(tmp_path: Path) -> None:
    store, blobs = _stores(tmp_path, "legacy")
    bundle = {
        "format": BACKUP_FORMAT,
        "document": {"schema": 1, "profile": {"bodyType": "V"}, "notes": [{"id": "n1", "text": "hi"}]},
        "blobs": {},
    }

    document = asyncio.run(restore_backup(bundle, store, blobs))

    assert document.profile.shape == "V"
    assert [note.content for note in document.notes.inspiration] == ["hi"]


@pytest.mark.parametrize(
    "bundle",
    [
        {"format": 99, "document": {}, "blobs": {}},
        {"format": BACKUP_FORMAT, "blobs": {}},
        {"format": BACKUP_FORMAT, "document": {"schema": 2, "items": "nope"}, "blobs": {}},
        {"format": BACKUP_FORMAT, "document": {"schema": 2}, "blobs": {"x": "not-an-object"}},
    ],
)
def test_invalid_bundles_write_nothing(tmp_path: Path, bundle: dict) -> None:
    store, blobs = _stores(tmp_path, "target")
    before = store.load()

    with pytest.raises(BackupFormatError):
        asyncio.run(restore_backup(bundle, store, blobs))

    assert store.load() == before
    assert asyncio.run(blobs.get_all()) == {}


def test_invalid_base64_blob_is_a_format_error(tmp_path: Path) -> None:
    store, blobs = _stores(tmp_path, "target")
    bundle = {
        "format": BACKUP_FORMAT,
        "document": {"schema": 2},
        "blobs": {"full:a": {"encoding": "base64", "data": "not base64!"}},
    }

    with pytest.raises(BackupFormatError):
        asyncio.run(restore_backup(bundle, store, blobs))

    assert asyncio.run(blobs.get_all()) == {}
