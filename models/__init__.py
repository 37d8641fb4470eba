"""Model package exports."""

from models.document import (
    SCHEMA_VERSION,
    ClothingItem,
    Document,
    Note,
    Outfit,
    generate_id,
)
from models.taxonomy import *  # noqa: F401,F403

__all__ = ["SCHEMA_VERSION", "ClothingItem", "Document", "Note", "Outfit", "generate_id"]
