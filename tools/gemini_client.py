"""Minimal client for the Gemini (Generative Language) REST API."""

from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Optional

import requests
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from tools.observability import instrument_call
from wardrobe_app.config import DEFAULT_GEMINI_API_BASE

LOGGER = logging.getLogger(__name__)

FAST_TIER_PATTERN = re.compile(r"flash", re.IGNORECASE)
GENERATE_METHOD = "generateContent"
_KEY_PARAM_PATTERN = re.compile(r"key=[^&\s'\"]+")


class GeminiAPIError(RuntimeError):
    """Raised when the upstream API reports an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class GeminiUnavailableError(GeminiAPIError):
    """Raised when the upstream API cannot be reached at all."""


class ModelInfo(BaseModel):
    """One entry of the upstream model listing."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    name: str
    display_name: Optional[str] = None
    supported_generation_methods: List[str] = Field(default_factory=list)

    def public_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class _ModelList(BaseModel):
    models: List[ModelInfo] = Field(default_factory=list)


def _supports_generation(model: ModelInfo) -> bool:
    return GENERATE_METHOD in model.supported_generation_methods


def select_model(models: List[ModelInfo]) -> Optional[str]:
    """Prefer a fast-tier model; otherwise any model that can generate content."""

    for model in models:
        if FAST_TIER_PATTERN.search(model.name) and (
            not model.supported_generation_methods or _supports_generation(model)
        ):
            return model.name
    for model in models:
        if _supports_generation(model):
            return model.name
    return None


def first_text_part(payload: Dict[str, Any]) -> str:
    """Text of the first part of the first candidate, or ``""``."""

    candidates = payload.get("candidates") or []
    if not candidates or not isinstance(candidates[0], dict):
        return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    if not parts or not isinstance(parts[0], dict):
        return ""
    text = parts[0].get("text")
    return text if isinstance(text, str) else ""


def _error_message(response: requests.Response, payload: Any) -> str:
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        message = payload["error"].get("message")
        if message:
            return str(message)
    return response.text or f"HTTP {response.status_code}"


def _scrub(exc: Exception) -> str:
    """Drop the credential from messages that embed the request URL."""

    return _KEY_PARAM_PATTERN.sub("key=[redacted]", str(exc))


def _json_or_none(response: requests.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


class GeminiClient:
    """Talks to one Gemini API base URL with one credential."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_GEMINI_API_BASE,
        timeout_seconds: float | None = 60.0,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    @instrument_call("gemini_list_models")
    def list_models(self) -> List[ModelInfo]:
        """Return the models visible to this credential.

        Raises:
            GeminiAPIError: When the listing reports an error (bad key, quota).
            GeminiUnavailableError: For network failures.
        """

        url = f"{self.base_url}/models"
        try:
            response = requests.get(
                url,
                params={"key": self.api_key, "pageSize": 1000},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise GeminiUnavailableError(f"Model listing unreachable: {_scrub(exc)}") from exc

        payload = _json_or_none(response)
        if not response.ok or (isinstance(payload, dict) and payload.get("error")):
            raise GeminiAPIError(_error_message(response, payload), status_code=response.status_code)

        try:
            return _ModelList.model_validate(payload or {}).models
        except ValidationError as exc:
            LOGGER.error("Model listing payload schema validation failed", exc_info=exc)
            raise GeminiAPIError("Unexpected model listing payload", status_code=response.status_code) from exc

    def discover_model(self) -> Optional[str]:
        return select_model(self.list_models())

    @instrument_call("gemini_generate_content")
    def generate_content(self, model: str, parts: List[Dict[str, Any]]) -> str:
        """Send one generateContent request and return the first text part.

        Raises:
            GeminiAPIError: When the upstream reports an error.
            GeminiUnavailableError: For network failures.
        """

        model_path = model if model.startswith("models/") else f"models/{model}"
        url = f"{self.base_url}/{model_path}:generateContent"
        try:
            response = requests.post(
                url,
                params={"key": self.api_key},
                json={"contents": [{"parts": parts}]},
                timeout=self.timeout_seconds,
            )
        except requests.RequestException as exc:
            raise GeminiUnavailableError(f"Content generation unreachable: {_scrub(exc)}") from exc

        payload = _json_or_none(response)
        if not response.ok or (isinstance(payload, dict) and payload.get("error")):
            raise GeminiAPIError(_error_message(response, payload), status_code=response.status_code)
        return first_text_part(payload if isinstance(payload, dict) else {})


__all__ = [
    "FAST_TIER_PATTERN",
    "GeminiAPIError",
    "GeminiClient",
    "GeminiUnavailableError",
    "ModelInfo",
    "first_text_part",
    "select_model",
]
