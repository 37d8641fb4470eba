"""Canonical labels for clothing categories, storage locations and styles.

Items carry one of the fixed categories and one of the fixed physical
locations. Styles and occasions are free text in stored items; the lists
below are the values offered to the stylist prompt and the defaults used for
drafts.
"""

from typing import Dict, List

ALL = "all"

CATEGORIES: List[str] = [
    "top",
    "bottom",
    "shoes",
    "outerwear",
    "bag",
    "accessory",
    "underwear",
    "sportswear",
    "formal",
]

LOCATIONS: List[str] = ["taipei", "hsinchu"]

STYLES: List[str] = [
    "minimal",
    "japanese_layered",
    "japanese_simple",
    "korean_minimal",
    "korean_casual",
    "city_boy",
    "streetwear",
    "american_vintage",
    "workwear",
    "techwear",
    "preppy",
    "casual",
    "formal",
]

NOTE_MODES: List[str] = ["inspiration", "lessons"]

# Outfit slot each category fills when a free selection is mapped to a look.
CATEGORY_SLOTS: Dict[str, str] = {
    "top": "topId",
    "bottom": "bottomId",
    "outerwear": "outerId",
    "shoes": "shoeId",
}

DEFAULT_CATEGORY = "top"
DEFAULT_LOCATION = "taipei"
DEFAULT_STYLE = "minimal"

# Labels written by version 1 documents.
LEGACY_CATEGORY_LABELS: Dict[str, str] = {
    "上衣": "top",
    "下著": "bottom",
    "鞋子": "shoes",
    "外套": "outerwear",
    "包包": "bag",
    "配件": "accessory",
    "內著": "underwear",
    "運動": "sportswear",
    "正式": "formal",
}
LEGACY_LOCATION_LABELS: Dict[str, str] = {"台北": "taipei", "新竹": "hsinchu"}
LEGACY_ALL_LABEL = "全部"


def _normalize_key(value: str) -> str:
    """Normalise a free-form string into a taxonomy key."""

    return value.strip().lower().replace(" ", "_").replace("-", "_")


def validate_category(value: str) -> str:
    """Validate and normalise a category value.

    Raises a :class:`ValueError` if the category is not one of
    :data:`CATEGORIES`.
    """

    key = _normalize_key(value)
    if key not in CATEGORIES:
        raise ValueError(f"Unsupported category '{value}'. Allowed: {CATEGORIES}")
    return key


def validate_location(value: str) -> str:
    """Validate and normalise a physical storage location."""

    key = _normalize_key(value)
    if key not in LOCATIONS:
        raise ValueError(f"Unsupported location '{value}'. Allowed: {LOCATIONS}")
    return key


def normalize_note_mode(mode: str | None) -> str:
    """Map a note mode onto its collection; anything but lessons is inspiration."""

    return "lessons" if mode == "lessons" else "inspiration"


__all__ = [
    "ALL",
    "CATEGORIES",
    "CATEGORY_SLOTS",
    "DEFAULT_CATEGORY",
    "DEFAULT_LOCATION",
    "DEFAULT_STYLE",
    "LEGACY_ALL_LABEL",
    "LEGACY_CATEGORY_LABELS",
    "LEGACY_LOCATION_LABELS",
    "LOCATIONS",
    "NOTE_MODES",
    "STYLES",
    "normalize_note_mode",
    "validate_category",
    "validate_location",
]
