"""App wiring: document state, image cleanup and AI reply caching."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Dict, List

import pytest

from memory.blob_store import SQLiteBlobStore
from memory.kv_backend import InMemoryBackend
from memory.local_store import LocalStore
from models.document import ClothingItem, Note, NoteSummary, Outfit
from wardrobe_app.app import WardrobeApp
from wardrobe_app.config import WardrobeConfig


class StubProxy:
    def __init__(self, reply: Dict[str, Any]) -> None:
        self.reply = reply
        self.payloads: List[Dict[str, Any]] = []

    def handle(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        self.payloads.append(payload)
        return self.reply


def _item(item_id: str, category: str = "top", location: str = "taipei") -> ClothingItem:
    return ClothingItem(id=item_id, name=f"{item_id} piece", category=category, location=location)


@pytest.fixture()
def backend() -> InMemoryBackend:
    return InMemoryBackend()


def _app(tmp_path: Path, backend: InMemoryBackend, reply: Dict[str, Any] | None = None) -> WardrobeApp:
    return WardrobeApp(
        config=WardrobeConfig(data_dir=str(tmp_path)),
        local_store=LocalStore(backend, key="wardrobe_test"),
        blob_store=SQLiteBlobStore(tmp_path / "images.db"),
        proxy=StubProxy(reply or {}),
    )


def test_add_and_remove_item_keeps_blobs_in_step(tmp_path: Path, backend: InMemoryBackend) -> None:
    app = _app(tmp_path, backend)

    async def scenario():
        await app.add_item(_item("a"), full_image="full-a", thumb_image="thumb-a")
        await app.add_item(_item("b"), full_image="full-b")
        stored = await app.blob_store.get_all()
        await app.remove_item("a")
        return stored, await app.blob_store.get_all()

    stored, remaining = asyncio.run(scenario())

    assert set(stored) == {"full:a", "thumb:a", "full:b"}
    assert remaining == {"full:b": "full-b"}
    assert [item.id for item in app.document.items] == ["b"]


def test_remove_note_deletes_its_image(tmp_path: Path, backend: InMemoryBackend) -> None:
    app = _app(tmp_path, backend)

    async def scenario():
        await app.add_note("lessons", Note(id="n1", content="cuffs"), image="note-img")
        await app.remove_note("lessons", "n1")
        return await app.blob_store.get_all()

    assert asyncio.run(scenario()) == {}
    assert app.document.notes.lessons == []


def test_visible_items_follow_settings(tmp_path: Path, backend: InMemoryBackend) -> None:
    app = _app(tmp_path, backend)

    async def scenario():
        await app.add_item(_item("a", "top", "taipei"))
        await app.add_item(_item("b", "shoes", "hsinchu"))
        await app.add_item(_item("c", "top", "hsinchu"))

    asyncio.run(scenario())

    assert {item.id for item in app.visible_items()} == {"a", "b", "c"}
    app.update_settings({"location": "hsinchu", "category": "top"})
    assert [item.id for item in app.visible_items()] == ["c"]


def test_run_ai_caches_vision_reply(tmp_path: Path, backend: InMemoryBackend) -> None:
    reply = {"name": "Denim jacket", "category": "outerwear", "_meta": {"model": "models/gemini-1.5-flash"}}
    app = _app(tmp_path, backend, reply=reply)

    result = app.run_ai({"task": "vision", "imageDataUrl": "data:image/jpeg;base64,AAAA"})

    assert result == reply
    assert app.document.last_ai.vision == reply
    assert LocalStore(backend, key="wardrobe_test").load().last_ai.vision == reply
    assert app.draft_from_vision(result).category == "outerwear"


def test_run_ai_does_not_cache_note_summaries(tmp_path: Path, backend: InMemoryBackend) -> None:
    app = _app(tmp_path, backend, reply={"tags": [], "do": [], "dont": []})

    app.run_ai({"task": "noteSummarize", "text": "roll the sleeves"})

    assert app.document.last_ai.vision is None
    assert app.document.last_ai.stylist is None


def test_stylist_request_is_enriched_from_document(tmp_path: Path, backend: InMemoryBackend) -> None:
    app = _app(tmp_path, backend, reply={"outfit": {"topId": "a"}})

    async def scenario():
        await app.add_item(_item("a", "top", "taipei"))
        await app.add_item(_item("b", "bottom", "hsinchu"))
        await app.add_outfit(Outfit(id="o1", item_ids=["a"], style="minimal"))

    asyncio.run(scenario())
    app.update_profile({"height": 160})

    app.run_ai({"task": "stylist", "location": "taipei", "occasion": "office"})

    sent = app.proxy.payloads[0]
    assert [entry["id"] for entry in sent["closet"]] == ["a"]
    assert sent["profile"]["height"] == 160
    assert "minimal(1)" in sent["styleMemory"]
    assert app.document.last_ai.stylist == {"outfit": {"topId": "a"}}


def test_mix_explain_selection_is_resolved_and_saved(tmp_path: Path, backend: InMemoryBackend) -> None:
    app = _app(tmp_path, backend, reply={"summary": "Works", "tips": ["add a belt"]})

    async def scenario():
        await app.add_item(_item("a", "top"))
        await app.add_item(_item("b", "bottom"))

    asyncio.run(scenario())

    result = app.run_ai({"task": "mixExplain", "selectedIds": ["a", "b"], "occasion": "date"})
    app.save_mix(["a", "b"], result, occasion="date")

    sent = app.proxy.payloads[0]
    assert {entry["id"] for entry in sent["selectedItems"]} == {"a", "b"}
    assert sent["styleMemory"] is None
    assert app.document.outfits[0].item_ids == ["b", "a"]
    assert app.document.outfits[0].tips == ["add a belt"]


def test_backup_round_trip_through_app(tmp_path: Path, backend: InMemoryBackend) -> None:
    app = _app(tmp_path, backend)

    async def scenario():
        await app.add_item(_item("a"), full_image=b"\x00\x01")
        await app.add_note("lessons", Note(id="n1", ai_summary=NoteSummary(tags=["fit"])))
        bundle = await app.export_backup()
        app.reset()
        await app.remove_item("a")
        return await app.restore_backup(bundle)

    restored = asyncio.run(scenario())

    assert [item.id for item in restored.items] == ["a"]
    assert restored.notes.lessons[0].ai_summary.tags == ["fit"]
    assert asyncio.run(app.images.load_full_image("a")) == b"\x00\x01"
