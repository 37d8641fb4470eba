"""Versioned whole-document persistence for the wardrobe state.

Every mutation is a read-modify-write of the complete :class:`Document`: the
mutators never touch the document they are given, they build a new one,
persist it through :meth:`LocalStore.save` and return it. There is exactly one
writer, so no locking is attempted.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Callable, Dict, Mapping

from pydantic import ValidationError

from memory.kv_backend import KeyValueBackend
from models.document import (
    SCHEMA_VERSION,
    ClothingItem,
    Document,
    Note,
    Outfit,
    Profile,
    Settings,
)
from models.taxonomy import (
    ALL,
    LEGACY_ALL_LABEL,
    LEGACY_CATEGORY_LABELS,
    LEGACY_LOCATION_LABELS,
    normalize_note_mode,
)
from wardrobe_app.config import DEFAULT_STORE_KEY
from wardrobe_app.logging_config import get_logger, log_event

LOGGER = get_logger(__name__)

AI_CACHE_TASKS = ("vision", "stylist")


class MigrationError(ValueError):
    """Raised when a stored document cannot be brought to the current schema."""


def _migrate_1_to_2(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Version 1 used ``profile.bodyType``, Chinese labels and could hold a flat note list."""

    migrated = dict(raw)
    profile = dict(migrated.get("profile") or {})
    if "bodyType" in profile:
        body_type = profile.pop("bodyType")
        profile.setdefault("shape", body_type)
    migrated["profile"] = profile

    settings = dict(migrated.get("settings") or {})
    for field, labels in (("location", LEGACY_LOCATION_LABELS), ("category", LEGACY_CATEGORY_LABELS)):
        value = settings.get(field)
        settings[field] = ALL if value in (None, LEGACY_ALL_LABEL) else labels.get(value, value)
    migrated["settings"] = settings

    items = migrated.get("items")
    if isinstance(items, list):
        migrated["items"] = [_relabel_item(item) if isinstance(item, dict) else item for item in items]

    notes = migrated.get("notes")
    if isinstance(notes, list):
        split: Dict[str, list] = {"inspiration": [], "lessons": []}
        for note in notes:
            if not isinstance(note, dict):
                continue
            mode = "lessons" if note.get("type") in ("tutorial", "lessons") else "inspiration"
            converted = {key: value for key, value in note.items() if key not in ("type", "text")}
            converted.setdefault("content", note.get("text", ""))
            converted["mode"] = mode
            split[mode].append(converted)
        migrated["notes"] = split
    elif not isinstance(notes, dict):
        migrated["notes"] = {"inspiration": [], "lessons": []}

    if not isinstance(migrated.get("lastAi"), dict):
        migrated["lastAi"] = {"vision": None, "stylist": None}
    return migrated


def _relabel_item(item: Dict[str, Any]) -> Dict[str, Any]:
    relabeled = dict(item)
    category = relabeled.get("category")
    relabeled["category"] = LEGACY_CATEGORY_LABELS.get(category, category)
    location = relabeled.get("location")
    relabeled["location"] = LEGACY_LOCATION_LABELS.get(location, location)
    return relabeled


# Keyed by source version; each step produces the next version's shape.
MIGRATIONS: Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]] = {
    1: _migrate_1_to_2,
}


def migrate(raw: Dict[str, Any]) -> Dict[str, Any]:
    """Apply migrations step by step until ``raw`` reaches :data:`SCHEMA_VERSION`."""

    version = raw.get("schema")
    if not isinstance(version, int) or isinstance(version, bool):
        raise MigrationError(f"Schema tag must be an integer, got {version!r}")
    if version > SCHEMA_VERSION:
        raise MigrationError(f"Document schema {version} is newer than {SCHEMA_VERSION}")

    while version < SCHEMA_VERSION:
        step = MIGRATIONS.get(version)
        if step is None:
            raise MigrationError(f"No migration registered for schema {version}")
        raw = step(raw)
        version += 1
        raw["schema"] = version
    return raw


class LocalStore:
    """Persist one :class:`Document` under a fixed key of a key/value backend."""

    def __init__(self, backend: KeyValueBackend, key: str = DEFAULT_STORE_KEY) -> None:
        self.backend = backend
        self.key = key

    @property
    def quarantine_key(self) -> str:
        return f"{self.key}.corrupt"

    def load(self) -> Document:
        """Return the persisted document, a migrated one, or a fresh default.

        Read and parse failures are never raised: an unreadable value is
        copied to :attr:`quarantine_key` and replaced by a default document.
        """

        try:
            raw_text = self.backend.get_item(self.key)
        except (OSError, UnicodeError) as exc:
            log_event(LOGGER, logging.WARNING, "local_store_read_failed", store_key=self.key, error=str(exc))
            return self._initialize()

        if raw_text is None:
            return self._initialize()

        try:
            raw = json.loads(raw_text)
        except (ValueError, RecursionError):
            return self._recover(raw_text, "unparsable")

        if not isinstance(raw, dict) or not raw.get("schema"):
            return self._recover(raw_text, "missing_schema")

        stored_version = raw.get("schema")
        migrated = stored_version != SCHEMA_VERSION
        if migrated:
            try:
                raw = migrate(raw)
            except (ValueError, TypeError, AttributeError) as exc:
                return self._recover(raw_text, "migration_failed", detail=str(exc))

        try:
            document = Document.model_validate(raw)
        except ValidationError as exc:
            return self._recover(raw_text, "invalid_structure", detail=str(exc))

        if migrated:
            log_event(
                LOGGER,
                logging.INFO,
                "local_store_migrated",
                store_key=self.key,
                from_version=stored_version,
                to_version=SCHEMA_VERSION,
            )
            self.save(document)
        return document

    def save(self, document: Document) -> Document:
        """Serialize and persist the whole document, replacing any previous value."""

        self.backend.set_item(self.key, document.to_json())
        return document

    def reset(self) -> Document:
        """Drop the persisted document and start over. Irreversible."""

        self.backend.remove_item(self.key)
        log_event(LOGGER, logging.INFO, "local_store_reset", store_key=self.key)
        return self._initialize()

    def _initialize(self) -> Document:
        return self.save(Document())

    def _recover(self, raw_text: str, reason: str, detail: str | None = None) -> Document:
        log_event(
            LOGGER,
            logging.WARNING,
            "local_store_reinitialized",
            store_key=self.key,
            reason=reason,
            detail=detail,
        )
        try:
            self.backend.set_item(self.quarantine_key, raw_text)
        except OSError as exc:
            log_event(
                LOGGER,
                logging.WARNING,
                "local_store_quarantine_failed",
                store_key=self.quarantine_key,
                error=str(exc),
            )
        return self._initialize()

    # Items

    def add_item(self, document: Document, item: ClothingItem) -> Document:
        return self.save(document.model_copy(update={"items": [item, *document.items]}))

    def update_item(self, document: Document, item_id: str, patch: Mapping[str, Any]) -> Document:
        """Merge ``patch`` into the item with ``item_id``; the id itself is immutable."""

        items = [
            _patch_model(ClothingItem, item, {**patch, "id": item.id}) if item.id == item_id else item
            for item in document.items
        ]
        return self.save(document.model_copy(update={"items": items}))

    def remove_item(self, document: Document, item_id: str) -> Document:
        """Drop the item and strip its id from every outfit referencing it."""

        items = [item for item in document.items if item.id != item_id]
        outfits = [
            outfit.model_copy(update={"item_ids": [ref for ref in outfit.item_ids if ref != item_id]})
            if item_id in outfit.item_ids
            else outfit
            for outfit in document.outfits
        ]
        return self.save(document.model_copy(update={"items": items, "outfits": outfits}))

    def move_item(self, document: Document, item_id: str, location: str) -> Document:
        return self.update_item(document, item_id, {"location": location})

    # Outfits

    def add_outfit(self, document: Document, outfit: Outfit) -> Document:
        return self.save(document.model_copy(update={"outfits": [outfit, *document.outfits]}))

    def remove_outfit(self, document: Document, outfit_id: str) -> Document:
        outfits = [outfit for outfit in document.outfits if outfit.id != outfit_id]
        return self.save(document.model_copy(update={"outfits": outfits}))

    # Notes

    def add_note(self, document: Document, mode: str, note: Note) -> Document:
        key = normalize_note_mode(mode)
        tagged = note.model_copy(update={"mode": key})
        notes = document.notes.model_copy(update={key: [tagged, *getattr(document.notes, key)]})
        return self.save(document.model_copy(update={"notes": notes}))

    def remove_note(self, document: Document, mode: str, note_id: str) -> Document:
        key = normalize_note_mode(mode)
        remaining = [note for note in getattr(document.notes, key) if note.id != note_id]
        notes = document.notes.model_copy(update={key: remaining})
        return self.save(document.model_copy(update={"notes": notes}))

    # Profile, settings and the AI cache

    def update_profile(self, document: Document, patch: Mapping[str, Any]) -> Document:
        profile = _patch_model(Profile, document.profile, patch)
        return self.save(document.model_copy(update={"profile": profile}))

    def update_settings(self, document: Document, patch: Mapping[str, Any]) -> Document:
        settings = _patch_model(Settings, document.settings, patch)
        return self.save(document.model_copy(update={"settings": settings}))

    def set_last_ai(self, document: Document, task: str, result: Dict[str, Any] | None) -> Document:
        """Overwrite the cached reply for ``task``; only vision and stylist are cached."""

        if task not in AI_CACHE_TASKS:
            raise ValueError(f"Unsupported AI cache slot '{task}'. Allowed: {list(AI_CACHE_TASKS)}")
        last_ai = document.last_ai.model_copy(update={task: result})
        return self.save(document.model_copy(update={"last_ai": last_ai}))


def _patch_model(model_cls, current, patch: Mapping[str, Any]):
    """Re-validate ``current`` with ``patch`` merged over it."""

    return model_cls.model_validate({**current.model_dump(), **patch})


__all__ = ["LocalStore", "MigrationError", "MIGRATIONS", "migrate", "AI_CACHE_TASKS"]
