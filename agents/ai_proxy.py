"""Stateless proxy between task-tagged client requests and the Gemini API."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from logic.json_extraction import is_malformed_reply, parse_model_json
from logic.prompts import build_parts
from logic.validation import describe_validation_error, parse_task_request, validation_failure
from tools.gemini_client import (
    GeminiAPIError,
    GeminiClient,
    GeminiUnavailableError,
    ModelInfo,
)
from wardrobe_app.config import WardrobeConfig
from wardrobe_app.logging_config import get_logger, log_event, operation_context

LOGGER = get_logger(__name__)

ClientFactory = Callable[[str], GeminiClient]


class ProxyError(RuntimeError):
    """Base for proxy failures; each carries the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class TaskValidationError(ProxyError):
    status_code = 400


class MissingCredentialError(ProxyError):
    status_code = 400


class UpstreamAuthError(ProxyError):
    status_code = 401


class UpstreamError(ProxyError):
    status_code = 500


class NoUsableModelError(ProxyError):
    status_code = 503


MISSING_CREDENTIAL_MESSAGE = (
    "No Gemini API key configured. Set GEMINI_API_KEY on the server or send apiKey with the request."
)


class AIProxy:
    """Validates a task request, discovers a model, prompts it and normalizes the reply."""

    def __init__(
        self,
        default_api_key: Optional[str] = None,
        client_factory: Optional[ClientFactory] = None,
    ) -> None:
        self.default_api_key = default_api_key
        self.client_factory = client_factory or GeminiClient

    @classmethod
    def from_config(cls, config: WardrobeConfig) -> "AIProxy":
        def factory(api_key: str) -> GeminiClient:
            return GeminiClient(
                api_key,
                base_url=config.api_base_url,
                timeout_seconds=config.request_timeout_seconds,
            )

        return cls(default_api_key=config.api_key, client_factory=factory)

    def resolve_api_key(self, override: Optional[str] = None) -> str:
        api_key = (override or "").strip() or (self.default_api_key or "").strip()
        if not api_key:
            raise MissingCredentialError(MISSING_CREDENTIAL_MESSAGE)
        return api_key

    def list_models(self, api_key: Optional[str] = None) -> List[ModelInfo]:
        """Passthrough of the upstream model listing."""

        client = self.client_factory(self.resolve_api_key(api_key))
        try:
            return client.list_models()
        except GeminiUnavailableError as exc:
            raise UpstreamError(exc.message) from exc
        except GeminiAPIError as exc:
            raise UpstreamAuthError(exc.message) from exc

    def _discover_model(self, client: GeminiClient) -> str:
        try:
            model = client.discover_model()
        except GeminiUnavailableError as exc:
            raise UpstreamError(exc.message) from exc
        except GeminiAPIError as exc:
            raise UpstreamAuthError(f"Gemini rejected the API key: {exc.message}") from exc
        if not model:
            raise NoUsableModelError("No Gemini model available for content generation with this key")
        return model

    def handle(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Run one task request end to end.

        Validation and credential problems are raised before any network call.
        A reply that is not JSON comes back as ``{"error", "raw"}`` rather than
        an exception.
        """

        with operation_context("ai_proxy:handle") as correlation_id:
            try:
                request = parse_task_request(payload)
            except ValidationError as exc:
                message = describe_validation_error(exc)
                log_event(
                    LOGGER,
                    logging.WARNING,
                    "ai_request_invalid",
                    task=payload.get("task") if isinstance(payload, dict) else None,
                    details=message,
                    correlation_id=correlation_id,
                )
                raise TaskValidationError(message, details=validation_failure(message, exc)["details"]) from exc

            client = self.client_factory(self.resolve_api_key(request.api_key))
            model = self._discover_model(client)
            parts = build_parts(request)

            try:
                text = client.generate_content(model, parts)
            except GeminiAPIError as exc:
                raise UpstreamError(f"Gemini request failed: {exc.message}") from exc

            result = parse_model_json(text)
            if is_malformed_reply(result):
                log_event(
                    LOGGER,
                    logging.WARNING,
                    "ai_reply_malformed",
                    task=request.task,
                    model=model,
                    reply_length=len(text),
                    correlation_id=correlation_id,
                )
                return result

            log_event(
                LOGGER,
                logging.INFO,
                "ai_request_completed",
                task=request.task,
                model=model,
                correlation_id=correlation_id,
            )
            return {**result, "_meta": {"model": model}}


__all__ = [
    "AIProxy",
    "MissingCredentialError",
    "NoUsableModelError",
    "ProxyError",
    "TaskValidationError",
    "UpstreamAuthError",
    "UpstreamError",
]
