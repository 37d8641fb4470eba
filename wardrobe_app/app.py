"""Wardrobe app bootstrap: wires the stores and the AI proxy together."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from agents.ai_proxy import AIProxy
from logic.drafts import draft_item_from_vision, outfit_from_mix, outfit_from_stylist
from logic.style_memory import build_style_memory
from memory import backup
from memory.blob_store import Blob, BlobStore, ImageRepository, SQLiteBlobStore
from memory.kv_backend import JSONFileBackend
from memory.local_store import AI_CACHE_TASKS, LocalStore
from models.document import ClothingItem, Document, Note, Outfit
from models.taxonomy import ALL
from wardrobe_app.config import WardrobeConfig
from wardrobe_app.logging_config import configure_logging, get_logger, log_event, operation_context

LOGGER = get_logger(__name__)


class WardrobeApp:
    """Holds the current document and keeps the blob store in step with it.

    Deleting an item, outfit or note also deletes the images stored under its
    id, so the blob store does not accumulate orphans.
    """

    def __init__(
        self,
        config: WardrobeConfig | None = None,
        local_store: LocalStore | None = None,
        blob_store: BlobStore | None = None,
        proxy: AIProxy | None = None,
    ) -> None:
        self.config = config or WardrobeConfig.from_env()
        configure_logging()

        self.local_store = local_store or LocalStore(
            JSONFileBackend(Path(self.config.data_dir) / "local_store"),
            key=self.config.store_key,
        )
        self.blob_store = blob_store or SQLiteBlobStore(self.config.resolved_blob_db_path)
        self.images = ImageRepository(self.blob_store)
        self.proxy = proxy or AIProxy.from_config(self.config)
        self.document: Document = self.local_store.load()

    # Items

    async def add_item(
        self,
        item: ClothingItem,
        full_image: Optional[Blob] = None,
        thumb_image: Optional[Blob] = None,
    ) -> Document:
        """Store the images first so a saved item never points at a missing blob."""

        if full_image is not None:
            await self.images.save_full_image(item.id, full_image)
        if thumb_image is not None:
            await self.images.save_thumb_image(item.id, thumb_image)
        self.document = self.local_store.add_item(self.document, item)
        return self.document

    def update_item(self, item_id: str, patch: Dict[str, Any]) -> Document:
        self.document = self.local_store.update_item(self.document, item_id, patch)
        return self.document

    def move_item(self, item_id: str, location: str) -> Document:
        self.document = self.local_store.move_item(self.document, item_id, location)
        return self.document

    async def remove_item(self, item_id: str) -> Document:
        self.document = self.local_store.remove_item(self.document, item_id)
        await self.images.delete_item_images(item_id)
        log_event(LOGGER, logging.INFO, "item_removed", item_id=item_id)
        return self.document

    def visible_items(self) -> List[ClothingItem]:
        """Items passing the location and category filters in ``settings``."""

        settings = self.document.settings
        return [
            item
            for item in self.document.items
            if settings.location in (ALL, item.location) and settings.category in (ALL, item.category)
        ]

    # Outfits

    async def add_outfit(self, outfit: Outfit, image: Optional[Blob] = None) -> Document:
        if image is not None:
            await self.images.save_full_image(outfit.id, image)
        self.document = self.local_store.add_outfit(self.document, outfit)
        return self.document

    async def remove_outfit(self, outfit_id: str) -> Document:
        self.document = self.local_store.remove_outfit(self.document, outfit_id)
        await self.images.delete_item_images(outfit_id)
        return self.document

    # Notes

    async def add_note(self, mode: str, note: Note, image: Optional[Blob] = None) -> Document:
        if image is not None:
            await self.images.save_note_image(note.id, image)
        self.document = self.local_store.add_note(self.document, mode, note)
        return self.document

    async def remove_note(self, mode: str, note_id: str) -> Document:
        self.document = self.local_store.remove_note(self.document, mode, note_id)
        await self.images.delete_note_image(note_id)
        return self.document

    # Profile and settings

    def update_profile(self, patch: Dict[str, Any]) -> Document:
        self.document = self.local_store.update_profile(self.document, patch)
        return self.document

    def update_settings(self, patch: Dict[str, Any]) -> Document:
        self.document = self.local_store.update_settings(self.document, patch)
        return self.document

    def reset(self) -> Document:
        self.document = self.local_store.reset()
        return self.document

    # AI

    def _closet_for_prompt(self, location: Optional[str]) -> List[Dict[str, Any]]:
        items: Iterable[ClothingItem] = self.document.items
        if location and location != ALL:
            items = [item for item in items if item.location == location]
        return [
            item.model_dump(
                by_alias=True,
                include={"id", "name", "category", "style", "location", "material", "thickness", "temp", "colors"},
                exclude_none=True,
            )
            for item in items
        ]

    def _enrich_request(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Fill closet, selection, profile and style memory from the document."""

        task = payload.get("task")
        if task not in ("stylist", "mixExplain"):
            return payload

        enriched = dict(payload)
        enriched.setdefault("profile", self.document.profile.model_dump(by_alias=True))
        if "styleMemory" not in enriched:
            enriched["styleMemory"] = build_style_memory(self.document) or None

        if task == "stylist" and "closet" not in enriched:
            enriched["closet"] = self._closet_for_prompt(enriched.get("location"))
        if task == "mixExplain" and "selectedItems" not in enriched and "selectedIds" in enriched:
            wanted = set(enriched["selectedIds"] or [])
            enriched["selectedItems"] = [
                item.model_dump(by_alias=True, include={"id", "name", "category", "style", "material"}, exclude_none=True)
                for item in self.document.items
                if item.id in wanted
            ]
        return enriched

    def run_ai(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Run an AI task and cache vision and stylist replies in ``lastAi``.

        Proxy errors propagate; a malformed reply sentinel is cached like any
        other reply.
        """

        with operation_context("app:run_ai"):
            result = self.proxy.handle(self._enrich_request(payload))
            task = payload.get("task")
            if task in AI_CACHE_TASKS:
                self.document = self.local_store.set_last_ai(self.document, task, result)
            return result

    def draft_from_vision(self, result: Dict[str, Any]) -> ClothingItem:
        return draft_item_from_vision(result, location=self.document.settings.location)

    def save_suggestion(self, result: Dict[str, Any], occasion: str, style: str) -> Document:
        self.document = self.local_store.add_outfit(self.document, outfit_from_stylist(result, occasion, style))
        return self.document

    def save_mix(self, item_ids: List[str], result: Dict[str, Any], occasion: str) -> Document:
        wanted = set(item_ids)
        items = [item for item in self.document.items if item.id in wanted]
        self.document = self.local_store.add_outfit(self.document, outfit_from_mix(items, result, occasion))
        return self.document

    # Backup

    async def export_backup(self) -> Dict[str, Any]:
        return await backup.export_backup(self.local_store, self.blob_store)

    async def restore_backup(self, bundle: Dict[str, Any]) -> Document:
        self.document = await backup.restore_backup(bundle, self.local_store, self.blob_store)
        return self.document


__all__ = ["WardrobeApp"]
