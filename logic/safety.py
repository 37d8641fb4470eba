"""Shared guardrail preamble for every prompt sent upstream."""

from __future__ import annotations

from typing import List

GUARDRAIL_BULLETS: List[str] = [
    "Stay within wardrobe, outfit and styling topics.",
    "Only reference closet item ids that appear in the input.",
    "Reply with a single JSON object and nothing else: no markdown, no code fences, no commentary.",
    "Use exactly the field names requested; use null or [] when unsure instead of inventing fields.",
]


def system_instruction(role_hint: str) -> str:
    """Compose a consistent instruction header for ``role_hint``."""

    boundary_text = "\n".join(f"- {bullet}" for bullet in GUARDRAIL_BULLETS)
    return (
        f"You are a personal wardrobe {role_hint}.\n"
        "Follow these rules when responding:\n"
        f"{boundary_text}"
    )


__all__ = ["system_instruction", "GUARDRAIL_BULLETS"]
