"""Task-specific prompt construction for the AI proxy.

Every prompt asks for strict JSON with an exact field list; the reply is then
run through :func:`logic.json_extraction.parse_model_json`.
"""

from __future__ import annotations

import json
from typing import Any, Callable, Dict, List

from logic.safety import system_instruction
from logic.validation import (
    MixExplainRequest,
    NoteSummarizeRequest,
    StylistRequest,
    TaskRequest,
    VisionRequest,
)
from models.taxonomy import CATEGORIES, STYLES
from tools.image_payload import parse_data_url

Part = Dict[str, Any]

VISION_SHAPE = (
    '{"name": str, "category": one of ' + json.dumps(CATEGORIES) + ', "style": str, '
    '"material": str, "colors": {"dominant": "#RRGGBB", "secondary": "#RRGGBB"}, '
    '"thickness": integer 1-5, "temp": {"min": number, "max": number}, "notes": str}'
)
MIX_EXPLAIN_SHAPE = (
    '{"summary": str, "goodPoints": [str], "risks": [str], "tips": [str], '
    '"styleName": str, "compatibility": number 0-1}'
)
STYLIST_SHAPE = (
    '{"outfit": {"topId": str|null, "bottomId": str|null, "outerId": str|null, '
    '"shoeId": str|null, "accessoryIds": [str]}, "why": [str], "tips": [str], '
    '"styleName": str, "confidence": number 0-1}'
)
NOTE_SUMMARY_SHAPE = '{"tags": [str], "do": [str], "dont": [str]}'


def _text(*lines: str) -> Part:
    return {"text": "\n".join(line for line in lines if line)}


def _temperature_line(temp_c: float | None) -> str:
    return f"Temperature: {temp_c:g} C" if temp_c is not None else "Temperature: unknown"


def _context_lines(profile: Dict[str, Any] | None, style_memory: str | None) -> List[str]:
    lines = []
    if profile:
        lines.append(f"Wearer profile: {json.dumps(profile, ensure_ascii=False)}")
    if style_memory:
        lines.append(f"Learned preferences:\n{style_memory}")
    return lines


def build_vision_parts(request: VisionRequest) -> List[Part]:
    image = parse_data_url(request.image_data_url)
    return [
        _text(
            system_instruction("cataloguing assistant"),
            "Identify the single garment in the photo.",
            f"Reply with JSON shaped exactly like: {VISION_SHAPE}",
        ),
        image.as_part(),
    ]


def build_mix_explain_parts(request: MixExplainRequest) -> List[Part]:
    selected = [item.model_dump(by_alias=True, exclude_none=True) for item in request.selected_items]
    return [
        _text(
            system_instruction("stylist"),
            "Critique the combination of these selected items as one outfit.",
            f"Occasion: {request.occasion}",
            _temperature_line(request.temp_c),
            *_context_lines(request.profile, request.style_memory),
            f"Selected items: {json.dumps(selected, ensure_ascii=False)}",
            f"Reply with JSON shaped exactly like: {MIX_EXPLAIN_SHAPE}",
        )
    ]


def build_stylist_parts(request: StylistRequest) -> List[Part]:
    closet = [entry.model_dump(by_alias=True, exclude_none=True) for entry in request.closet]
    return [
        _text(
            system_instruction("stylist"),
            "Put together one outfit using only items from the closet below.",
            "If the closet lacks a piece, leave that slot null and say what is missing in tips.",
            f"Occasion: {request.occasion}",
            f"Preferred style: {request.style or 'any'} (known styles: {', '.join(STYLES)})",
            f"Location: {request.location or 'any'}",
            _temperature_line(request.temp_c),
            *_context_lines(request.profile, request.style_memory),
            f"Closet: {json.dumps(closet, ensure_ascii=False)}",
            f"Reply with JSON shaped exactly like: {STYLIST_SHAPE}",
        )
    ]


def build_note_summarize_parts(request: NoteSummarizeRequest) -> List[Part]:
    parts = [
        _text(
            system_instruction("note summarizer"),
            "Extract reusable styling rules from this note (text and/or image).",
            f"Note text: {request.text}" if request.text else "",
            f"Reply with JSON shaped exactly like: {NOTE_SUMMARY_SHAPE}",
        )
    ]
    if request.image_data_url:
        parts.append(parse_data_url(request.image_data_url).as_part())
    return parts


PROMPT_BUILDERS: Dict[type, Callable[[Any], List[Part]]] = {
    VisionRequest: build_vision_parts,
    MixExplainRequest: build_mix_explain_parts,
    StylistRequest: build_stylist_parts,
    NoteSummarizeRequest: build_note_summarize_parts,
}


def build_parts(request: TaskRequest) -> List[Part]:
    """Return the Gemini content parts for ``request``."""

    builder = PROMPT_BUILDERS.get(type(request))
    if builder is None:
        raise TypeError(f"No prompt builder for {type(request).__name__}")
    return builder(request)


__all__ = [
    "PROMPT_BUILDERS",
    "build_mix_explain_parts",
    "build_note_summarize_parts",
    "build_parts",
    "build_stylist_parts",
    "build_vision_parts",
]
