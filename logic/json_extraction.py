"""Lenient JSON extraction for free-form model replies."""

from __future__ import annotations

import json
from typing import Any, Dict

MALFORMED_REPLY_MESSAGE = "AI reply was not valid JSON"


def _loads_object(text: str) -> Dict[str, Any] | None:
    try:
        value = json.loads(text)
    except ValueError:
        return None
    return value if isinstance(value, dict) else None


def parse_model_json(text: str | None) -> Dict[str, Any]:
    """Parse a model reply into a JSON object without ever raising.

    Tries the whole reply first, then the slice between the first ``{`` and the
    last ``}`` (models like to wrap JSON in prose or code fences). When both
    fail the result is ``{"error": ..., "raw": text}``.
    """

    raw = text or ""
    stripped = raw.strip()

    parsed = _loads_object(stripped)
    if parsed is not None:
        return parsed

    first = stripped.find("{")
    last = stripped.rfind("}")
    if first >= 0 and last > first:
        parsed = _loads_object(stripped[first : last + 1])
        if parsed is not None:
            return parsed

    return {"error": MALFORMED_REPLY_MESSAGE, "raw": raw}


def is_malformed_reply(result: Dict[str, Any]) -> bool:
    """True for the sentinel returned by :func:`parse_model_json`."""

    return result.get("error") == MALFORMED_REPLY_MESSAGE and "raw" in result


__all__ = ["MALFORMED_REPLY_MESSAGE", "is_malformed_reply", "parse_model_json"]
