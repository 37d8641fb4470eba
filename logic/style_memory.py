"""Learned style preferences, condensed into prompt text for the stylist."""

from __future__ import annotations

from collections import Counter
from typing import Iterable, List

from models.document import Document

MAX_OUTFITS = 30
MAX_LESSONS = 20


def _top(counter: Counter, n: int, with_counts: bool = True) -> List[str]:
    ranked = counter.most_common(n)
    if with_counts:
        return [f"{key}({count})" for key, count in ranked]
    return [key for key, _ in ranked]


def _count(values: Iterable[str]) -> Counter:
    return Counter(value for value in values if value)


def build_style_memory(document: Document) -> str:
    """Summarise saved outfits and lesson-note rules; empty when there is nothing yet."""

    outfits = document.outfits[:MAX_OUTFITS]
    referenced = {item_id for outfit in outfits for item_id in outfit.item_ids}
    picked = [item for item in document.items if item.id in referenced]

    categories = _count(item.category for item in picked)
    colors = _count(item.colors.dominant if item.colors else "" for item in picked)
    materials = _count(item.material or "" for item in picked)
    outfit_styles = _count(outfit.style_name or outfit.style for outfit in outfits)

    lessons = [note for note in document.notes.lessons[:MAX_LESSONS] if note.ai_summary]
    tags = _count(tag for note in lessons for tag in note.ai_summary.tags)
    dos = _count(rule for note in lessons for rule in note.ai_summary.do)
    donts = _count(rule for note in lessons for rule in note.ai_summary.dont)

    sections: List[str] = []
    if outfits:
        sections.extend(
            [
                "[Saved outfit preferences]",
                f"Favourite styles: {', '.join(_top(outfit_styles, 6)) or 'not enough data'}",
                f"Common categories: {', '.join(_top(categories, 6)) or 'not enough data'}",
                f"Common materials: {', '.join(_top(materials, 5)) or 'not enough data'}",
                f"Common main colours: {', '.join(_top(colors, 6)) or 'not enough data'}",
            ]
        )
    if lessons:
        sections.append("[Rules from lesson notes]")
        if tags:
            sections.append(f"Key tags: {', '.join(_top(tags, 8))}")
        if dos:
            sections.append(f"Do: {'; '.join(_top(dos, 6, with_counts=False))}")
        if donts:
            sections.append(f"Avoid: {'; '.join(_top(donts, 6, with_counts=False))}")

    if not sections:
        return ""
    sections.append(
        "Favour these preferences and rules; when the closet lacks a piece, "
        "name what is missing and suggest a substitute."
    )
    return "\n".join(sections)


__all__ = ["build_style_memory"]
