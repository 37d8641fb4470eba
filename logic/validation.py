"""Pydantic schemas for the task-tagged AI proxy requests.

Each task is its own request type carrying its own required fields; the
``task`` field selects the variant.
"""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    model_validator,
)
from pydantic.alias_generators import to_camel

TASKS = ("vision", "mixExplain", "stylist", "noteSummarize")


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class SelectedItem(_Payload):
    """A closet item picked by the user for a mix critique."""

    name: str
    category: str


class ClosetEntry(_Payload):
    """Closet item as offered to the stylist; ids come back in the suggestion."""

    id: str
    category: str
    location: Optional[str] = None


class _TaskRequest(_Payload):
    api_key: Optional[str] = None


class VisionRequest(_TaskRequest):
    task: Literal["vision"]
    image_data_url: str = Field(min_length=1)


class MixExplainRequest(_TaskRequest):
    task: Literal["mixExplain"]
    selected_items: List[SelectedItem] = Field(min_length=1)
    occasion: str = "daily"
    temp_c: Optional[float] = None
    profile: Optional[Dict[str, Any]] = None
    style_memory: Optional[str] = None


class StylistRequest(_TaskRequest):
    task: Literal["stylist"]
    closet: List[ClosetEntry]
    occasion: str = "daily"
    temp_c: Optional[float] = None
    location: Optional[str] = None
    style: Optional[str] = None
    profile: Optional[Dict[str, Any]] = None
    style_memory: Optional[str] = None


class NoteSummarizeRequest(_TaskRequest):
    task: Literal["noteSummarize"]
    text: Optional[str] = None
    image_data_url: Optional[str] = None

    @model_validator(mode="after")
    def _require_text_or_image(self) -> "NoteSummarizeRequest":
        if not (self.text or "").strip() and not self.image_data_url:
            raise ValueError("noteSummarize needs text or imageDataUrl")
        return self


TaskRequest = Annotated[
    Union[VisionRequest, MixExplainRequest, StylistRequest, NoteSummarizeRequest],
    Field(discriminator="task"),
]

_TASK_REQUEST_ADAPTER: TypeAdapter = TypeAdapter(TaskRequest)


def parse_task_request(payload: Dict[str, Any]) -> TaskRequest:
    """Validate a raw request body into its task variant.

    Raises :class:`pydantic.ValidationError` for unknown tasks or missing fields.
    """

    return _TASK_REQUEST_ADAPTER.validate_python(payload)


def describe_validation_error(exc: ValidationError) -> str:
    """One-line, user-facing summary of a request validation failure."""

    for error in exc.errors(include_url=False):
        if error["type"] == "union_tag_not_found":
            return "Request is missing its task"
        if error["type"] == "union_tag_invalid":
            return f"Unknown task. Allowed: {list(TASKS)}"
    first = exc.errors(include_url=False)[0]
    location = ".".join(str(part) for part in first["loc"][1:]) or "request"
    return f"Invalid {location}: {first['msg']}"


def validation_failure(message: str, exc: ValidationError) -> Dict[str, Any]:
    """Translate Pydantic errors into a JSON-safe error payload."""

    details = exc.errors(include_url=False, include_context=False, include_input=False)
    return {"error": message, "details": details}


__all__ = [
    "TASKS",
    "ClosetEntry",
    "MixExplainRequest",
    "NoteSummarizeRequest",
    "SelectedItem",
    "StylistRequest",
    "TaskRequest",
    "VisionRequest",
    "describe_validation_error",
    "parse_task_request",
    "validation_failure",
]
