"""AI proxy request handling: validation order, error mapping and reply normalization."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from agents.ai_proxy import (
    AIProxy,
    MissingCredentialError,
    NoUsableModelError,
    TaskValidationError,
    UpstreamAuthError,
    UpstreamError,
)
from logic.json_extraction import MALFORMED_REPLY_MESSAGE
from tools.gemini_client import GeminiAPIError, GeminiUnavailableError, ModelInfo

IMAGE = "data:image/jpeg;base64,/9j/4AAQ"


class FakeClient:
    def __init__(
        self,
        api_key: str,
        model: Optional[str] = "models/gemini-1.5-flash",
        reply: str = "{}",
        discover_error: Optional[Exception] = None,
        generate_error: Optional[Exception] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.reply = reply
        self.discover_error = discover_error
        self.generate_error = generate_error
        self.generated: List[Dict[str, Any]] = []

    def list_models(self) -> List[ModelInfo]:
        if self.discover_error:
            raise self.discover_error
        return [ModelInfo(name=self.model, supported_generation_methods=["generateContent"])] if self.model else []

    def discover_model(self) -> Optional[str]:
        if self.discover_error:
            raise self.discover_error
        return self.model

    def generate_content(self, model: str, parts: List[Dict[str, Any]]) -> str:
        if self.generate_error:
            raise self.generate_error
        self.generated.append({"model": model, "parts": parts})
        return self.reply


class RecordingFactory:
    def __init__(self, **client_kwargs: Any) -> None:
        self.client_kwargs = client_kwargs
        self.clients: List[FakeClient] = []

    def __call__(self, api_key: str) -> FakeClient:
        client = FakeClient(api_key, **self.client_kwargs)
        self.clients.append(client)
        return client


def _proxy(default_key: Optional[str] = "server-key", **client_kwargs: Any):
    factory = RecordingFactory(**client_kwargs)
    return AIProxy(default_api_key=default_key, client_factory=factory), factory


def test_missing_required_field_is_rejected_before_any_upstream_work() -> None:
    proxy, factory = _proxy()

    with pytest.raises(TaskValidationError) as excinfo:
        proxy.handle({"task": "vision"})

    assert excinfo.value.status_code == 400
    assert "imageDataUrl" in excinfo.value.message
    assert factory.clients == []


def test_validation_runs_before_credential_check() -> None:
    proxy, factory = _proxy(default_key=None)

    with pytest.raises(TaskValidationError):
        proxy.handle({"task": "mixExplain", "selectedItems": []})
    assert factory.clients == []


@pytest.mark.parametrize("payload", [{"task": "teleport"}, {"imageDataUrl": IMAGE}])
def test_unknown_or_missing_task_is_rejected(payload: Dict[str, Any]) -> None:
    proxy, _ = _proxy()

    with pytest.raises(TaskValidationError) as excinfo:
        proxy.handle(payload)

    assert excinfo.value.to_payload()["error"]


def test_note_summarize_needs_text_or_image() -> None:
    proxy, _ = _proxy()

    with pytest.raises(TaskValidationError):
        proxy.handle({"task": "noteSummarize", "text": "   "})


def test_missing_credential() -> None:
    proxy, factory = _proxy(default_key=None)

    with pytest.raises(MissingCredentialError) as excinfo:
        proxy.handle({"task": "vision", "imageDataUrl": IMAGE})

    assert excinfo.value.status_code == 400
    assert factory.clients == []


def test_request_key_overrides_server_key() -> None:
    proxy, factory = _proxy(reply='{"name": "Tee"}')

    proxy.handle({"task": "vision", "imageDataUrl": IMAGE, "apiKey": "user-key"})

    assert factory.clients[0].api_key == "user-key"


def test_listing_rejection_maps_to_auth_error() -> None:
    proxy, _ = _proxy(discover_error=GeminiAPIError("API key not valid", status_code=400))

    with pytest.raises(UpstreamAuthError) as excinfo:
        proxy.handle({"task": "vision", "imageDataUrl": IMAGE})

    assert excinfo.value.status_code == 401
    assert "API key not valid" in excinfo.value.message


def test_unreachable_listing_maps_to_upstream_error() -> None:
    proxy, _ = _proxy(discover_error=GeminiUnavailableError("timed out"))

    with pytest.raises(UpstreamError):
        proxy.handle({"task": "vision", "imageDataUrl": IMAGE})


def test_no_usable_model() -> None:
    proxy, _ = _proxy(model=None)

    with pytest.raises(NoUsableModelError) as excinfo:
        proxy.handle({"task": "vision", "imageDataUrl": IMAGE})

    assert excinfo.value.status_code == 503


def test_generation_failure_maps_to_upstream_error() -> None:
    proxy, _ = _proxy(generate_error=GeminiAPIError("quota exceeded", status_code=429))

    with pytest.raises(UpstreamError) as excinfo:
        proxy.handle({"task": "noteSummarize", "text": "keep hems cropped"})

    assert excinfo.value.status_code == 500
    assert "quota exceeded" in excinfo.value.message


def test_prose_wrapped_reply_is_normalized_with_model_meta() -> None:
    proxy, factory = _proxy(reply='Sure! {"name": "Linen shirt", "category": "top"} Enjoy.')

    result = proxy.handle({"task": "vision", "imageDataUrl": IMAGE})

    assert result == {
        "name": "Linen shirt",
        "category": "top",
        "_meta": {"model": "models/gemini-1.5-flash"},
    }
    parts = factory.clients[0].generated[0]["parts"]
    assert parts[-1] == {"inlineData": {"mimeType": "image/jpeg", "data": "/9j/4AAQ"}}


def test_malformed_reply_returns_sentinel() -> None:
    proxy, _ = _proxy(reply="I am not able to help with that.")

    result = proxy.handle({"task": "stylist", "closet": []})

    assert result == {"error": MALFORMED_REPLY_MESSAGE, "raw": "I am not able to help with that."}


def test_stylist_prompt_carries_closet_and_context() -> None:
    proxy, factory = _proxy(reply='{"outfit": {"topId": "a"}}')

    proxy.handle(
        {
            "task": "stylist",
            "closet": [{"id": "a", "category": "top", "name": "Oxford shirt"}],
            "occasion": "office",
            "tempC": 18,
            "styleMemory": "Favourite styles: minimal(3)",
        }
    )

    prompt = factory.clients[0].generated[0]["parts"][0]["text"]
    assert "Oxford shirt" in prompt
    assert "office" in prompt
    assert "Favourite styles: minimal(3)" in prompt


def test_list_models_maps_errors() -> None:
    proxy, _ = _proxy(discover_error=GeminiAPIError("bad key", status_code=403))

    with pytest.raises(UpstreamAuthError):
        proxy.list_models()

    proxy, _ = _proxy()
    assert [model.name for model in proxy.list_models()] == ["models/gemini-1.5-flash"]
