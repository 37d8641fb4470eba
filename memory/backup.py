"""Whole-state export and restore across the document and blob stores."""
from __future__ import annotations

import base64
import binascii
import logging
import time
from typing import Any, Dict

from pydantic import ValidationError

from memory.blob_store import Blob, BlobStore
from memory.local_store import LocalStore, migrate
from models.document import Document
from wardrobe_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)

BACKUP_FORMAT = 1


class BackupFormatError(ValueError):
    """Raised when a backup bundle cannot be restored."""


def _encode_blob(blob: Blob) -> Dict[str, str]:
    if isinstance(blob, (bytes, bytearray)):
        return {"encoding": "base64", "data": base64.b64encode(bytes(blob)).decode("ascii")}
    return {"encoding": "text", "data": blob}


def _decode_blob(entry: Any) -> Blob:
    if not isinstance(entry, dict) or "data" not in entry:
        raise BackupFormatError("Blob entries must be objects with a data field")
    if entry.get("encoding") == "base64":
        try:
            return base64.b64decode(entry["data"], validate=True)
        except (binascii.Error, TypeError) as exc:
            raise BackupFormatError(f"Blob data is not valid base64: {exc}") from exc
    return str(entry["data"])


async def export_backup(local_store: LocalStore, blob_store: BlobStore) -> Dict[str, Any]:
    """Bundle the current document and every stored blob into one JSON-able dict."""

    document = local_store.load()
    blobs = await blob_store.get_all()
    log_event(LOGGER, logging.INFO, "backup_exported", item_count=len(document.items), blob_count=len(blobs))
    return {
        "format": BACKUP_FORMAT,
        "exportedAt": time.time(),
        "document": document.to_dict(),
        "blobs": {blob_id: _encode_blob(blob) for blob_id, blob in blobs.items()},
    }


async def restore_backup(
    bundle: Dict[str, Any], local_store: LocalStore, blob_store: BlobStore
) -> Document:
    """Write the bundle's blobs in one transaction, then replace the document.

    The bundle is fully validated before anything is written.
    """

    if bundle.get("format") != BACKUP_FORMAT:
        raise BackupFormatError(f"Unsupported backup format {bundle.get('format')!r}")
    raw_document = bundle.get("document")
    if not isinstance(raw_document, dict):
        raise BackupFormatError("Backup is missing its document")

    try:
        document = Document.model_validate(migrate(dict(raw_document)))
    except (ValueError, ValidationError) as exc:
        raise BackupFormatError(f"Backup document is invalid: {exc}") from exc

    raw_blobs = bundle.get("blobs") or {}
    if not isinstance(raw_blobs, dict):
        raise BackupFormatError("Backup blobs must be an object keyed by id")
    blobs = {str(blob_id): _decode_blob(entry) for blob_id, entry in raw_blobs.items()}

    await blob_store.put_all(blobs)
    local_store.save(document)
    log_event(LOGGER, logging.INFO, "backup_restored", item_count=len(document.items), blob_count=len(blobs))
    return document


__all__ = ["BACKUP_FORMAT", "BackupFormatError", "export_backup", "restore_backup"]
