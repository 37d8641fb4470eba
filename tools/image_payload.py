"""Helpers for inline image payloads sent as data URLs."""

from __future__ import annotations

import re
from dataclasses import dataclass

DEFAULT_MIME_TYPE = "image/jpeg"

_MIME_PATTERN = re.compile(r"^data:(image/[A-Za-z0-9.+-]+);base64,", re.IGNORECASE)


@dataclass(frozen=True)
class InlineImage:
    mime_type: str
    data: str

    def as_part(self) -> dict:
        """Gemini ``inlineData`` content part."""

        return {"inlineData": {"mimeType": self.mime_type, "data": self.data}}


def parse_data_url(data_url: str) -> InlineImage:
    """Split a ``data:<mime>;base64,<payload>`` string.

    An unrecognised or missing MIME type falls back to ``image/jpeg`` instead of
    rejecting the request; a string without a comma is taken as bare base64.
    """

    value = data_url.strip()
    match = _MIME_PATTERN.match(value)
    mime_type = match.group(1).lower() if match else DEFAULT_MIME_TYPE
    _, separator, payload = value.partition(",")
    return InlineImage(mime_type=mime_type, data=payload if separator else value)


__all__ = ["DEFAULT_MIME_TYPE", "InlineImage", "parse_data_url"]
