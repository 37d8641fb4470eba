"""Wardrobe document schema: the single root object persisted by the local store."""

from __future__ import annotations

import json
import secrets
import time
from datetime import date as dt_date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from models.taxonomy import ALL, validate_category, validate_location

SCHEMA_VERSION = 2


def generate_id(prefix: str = "id") -> str:
    """Random component plus a millisecond clock, hex encoded.

    Collisions are unlikely but not impossible; fine for one local writer.
    """

    random_part = secrets.token_hex(6)
    time_part = format(int(time.time() * 1000), "x")
    return f"{prefix}_{random_part}{time_part}"


class _Record(BaseModel):
    """Camel-cased on disk, snake_cased in Python; unknown keys are kept."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class Profile(_Record):
    height: float = 175
    weight: float = 70
    shape: str = "H"


class Settings(_Record):
    """View-filter state, not domain data."""

    location: str = ALL
    category: str = ALL


class ItemColors(_Record):
    dominant: Optional[str] = None
    secondary: Optional[str] = None


class TempRange(_Record):
    min: Optional[float] = None
    max: Optional[float] = None


class ClothingItem(_Record):
    """A single garment in the closet."""

    id: str = Field(default_factory=lambda: generate_id("item"))
    name: str
    category: str
    style: str = ""
    location: str
    material: Optional[str] = None
    fit: Optional[str] = None
    colors: Optional[ItemColors] = None
    thickness: Optional[int] = Field(None, ge=1, le=5)
    temp: Optional[TempRange] = None
    notes: Optional[str] = None
    confidence: Optional[float] = Field(None, ge=0, le=1)

    @field_validator("category")
    @classmethod
    def _check_category(cls, value: str) -> str:
        return validate_category(value)

    @field_validator("location")
    @classmethod
    def _check_location(cls, value: str) -> str:
        return validate_location(value)


class Outfit(_Record):
    """A saved look. ``item_ids`` are weak references into ``Document.items``."""

    id: str = Field(default_factory=lambda: generate_id("outfit"))
    item_ids: List[str] = Field(default_factory=list)
    occasion: str = ""
    style: str = ""
    created_at: float = Field(default_factory=time.time)
    title: Optional[str] = None
    style_name: Optional[str] = None
    why: List[str] = Field(default_factory=list)
    tips: List[str] = Field(default_factory=list)
    confidence: Optional[float] = None


class NoteSummary(_Record):
    tags: List[str] = Field(default_factory=list)
    do: List[str] = Field(default_factory=list)
    dont: List[str] = Field(default_factory=list)


class Note(_Record):
    id: str = Field(default_factory=lambda: generate_id("note"))
    mode: str = "inspiration"
    title: Optional[str] = None
    content: str = ""
    date: str = Field(default_factory=lambda: dt_date.today().isoformat())
    ai_summary: Optional[NoteSummary] = None


class Notes(_Record):
    inspiration: List[Note] = Field(default_factory=list)
    lessons: List[Note] = Field(default_factory=list)


class LastAi(_Record):
    """Single-slot cache of the latest AI reply per task."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    vision: Optional[Dict[str, Any]] = None
    stylist: Optional[Dict[str, Any]] = None


class Document(_Record):
    """Entire local application state."""

    schema_version: int = Field(SCHEMA_VERSION, alias="schema")
    profile: Profile = Field(default_factory=Profile)
    settings: Settings = Field(default_factory=Settings)
    items: List[ClothingItem] = Field(default_factory=list)
    outfits: List[Outfit] = Field(default_factory=list)
    notes: Notes = Field(default_factory=Notes)
    last_ai: LastAi = Field(default_factory=LastAi)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    def find_item(self, item_id: str) -> Optional[ClothingItem]:
        return next((item for item in self.items if item.id == item_id), None)


__all__ = [
    "SCHEMA_VERSION",
    "ClothingItem",
    "Document",
    "ItemColors",
    "LastAi",
    "Note",
    "NoteSummary",
    "Notes",
    "Outfit",
    "Profile",
    "Settings",
    "TempRange",
    "generate_id",
]
