"""Turn AI replies into closet items and saved outfits."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from logic.json_extraction import is_malformed_reply
from models.document import ClothingItem, Outfit
from models.taxonomy import (
    CATEGORY_SLOTS,
    DEFAULT_CATEGORY,
    DEFAULT_LOCATION,
    DEFAULT_STYLE,
    LOCATIONS,
    validate_category,
)

SLOT_ORDER = ("topId", "bottomId", "outerId", "shoeId")


def _clamp(value: Any, low: float, high: float, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return min(max(number, low), high)


def _category_or_default(value: Any) -> str:
    try:
        return validate_category(str(value))
    except ValueError:
        return DEFAULT_CATEGORY


def draft_item_from_vision(result: Dict[str, Any], location: Optional[str] = None) -> ClothingItem:
    """Build an unsaved item from a vision reply, filling gaps with defaults.

    ``location`` is the current location filter; ``"all"`` or anything unknown
    falls back to the default location.
    """

    if is_malformed_reply(result):
        raise ValueError("Vision reply could not be parsed into an item")

    temp = result.get("temp") if isinstance(result.get("temp"), dict) else {}
    colors = result.get("colors") if isinstance(result.get("colors"), dict) else {}
    return ClothingItem(
        name=result.get("name") or "Untitled item",
        category=_category_or_default(result.get("category")),
        style=result.get("style") or DEFAULT_STYLE,
        location=location if location in LOCATIONS else DEFAULT_LOCATION,
        material=result.get("material") or "unknown",
        fit=result.get("fit") or "regular",
        thickness=int(_clamp(result.get("thickness"), 1, 5, 3)),
        temp={
            "min": _clamp(temp.get("min"), -50, 60, 10),
            "max": _clamp(temp.get("max"), -50, 60, 25),
        },
        colors={
            "dominant": colors.get("dominant") or "#888888",
            "secondary": colors.get("secondary") or "#CCCCCC",
        },
        notes=result.get("notes") or "",
        confidence=_clamp(result.get("confidence"), 0, 1, 0.75),
        aiMeta=result.get("_meta"),
    )


def slots_from_selection(items: List[ClothingItem]) -> Dict[str, Any]:
    """Roughly map a free selection onto outfit slots by category."""

    slots: Dict[str, Any] = {slot: None for slot in SLOT_ORDER}
    for item in items:
        slot = CATEGORY_SLOTS.get(item.category)
        if slot and slots[slot] is None:
            slots[slot] = item.id
    if slots["topId"] is None:
        fallback = next((item for item in items if item.category not in ("bottom", "shoes")), None)
        slots["topId"] = fallback.id if fallback else None
    slots["accessoryIds"] = [item.id for item in items if item.category == "accessory"]
    return slots


def _item_ids_from_slots(slots: Dict[str, Any]) -> List[str]:
    ids = [slots.get(slot) for slot in SLOT_ORDER]
    ids.extend(slots.get("accessoryIds") or [])
    return [item_id for item_id in ids if isinstance(item_id, str) and item_id]


def outfit_from_stylist(result: Dict[str, Any], occasion: str, style: str) -> Outfit:
    """Saveable outfit from a stylist reply."""

    if is_malformed_reply(result):
        raise ValueError("Stylist reply could not be parsed into an outfit")
    slots = result.get("outfit") if isinstance(result.get("outfit"), dict) else {}
    return Outfit(
        item_ids=_item_ids_from_slots(slots),
        occasion=occasion,
        style=style,
        title=f"AI | {occasion} | {style}",
        style_name=result.get("styleName") or style,
        why=list(result.get("why") or []),
        tips=list(result.get("tips") or []),
        confidence=_clamp(result.get("confidence"), 0, 1, 0.75),
        slots=slots,
    )


def outfit_from_mix(items: List[ClothingItem], result: Dict[str, Any], occasion: str) -> Outfit:
    """Saveable outfit from a user selection and its mixExplain critique."""

    if is_malformed_reply(result):
        raise ValueError("Mix critique could not be parsed")
    why = [result.get("summary")]
    why.extend(f"Good: {point}" for point in result.get("goodPoints") or [])
    why.extend(f"Watch out: {risk}" for risk in result.get("risks") or [])
    return Outfit(
        item_ids=[item.id for item in items],
        occasion=occasion,
        style=result.get("styleName") or "custom mix",
        title=f"Mix | {occasion}",
        style_name=result.get("styleName") or "custom mix",
        why=[line for line in why if line],
        tips=list(result.get("tips") or []),
        confidence=_clamp(result.get("compatibility"), 0, 1, 0.7),
        slots=slots_from_selection(items),
    )


__all__ = ["draft_item_from_vision", "outfit_from_mix", "outfit_from_stylist", "slots_from_selection"]
