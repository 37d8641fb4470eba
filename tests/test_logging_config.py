import json
import logging

from wardrobe_app.logging_config import (
    JsonFormatter,
    correlation_context,
    ensure_correlation_id,
    log_event,
    redact_for_log,
)


def test_redaction_masks_credentials_images_and_note_text() -> None:
    scrubbed = redact_for_log(
        {
            "apiKey": "secret",
            "imageDataUrl": "data:image/png;base64,AAAA",
            "text": "private note",
            "url": "https://example.test/models?key=secret&pageSize=10",
            "preview": "data:image/jpeg;base64,BBBB",
            "nested": [{"api_key": "secret"}, b"\x00\x01\x02"],
            "task": "vision",
        }
    )

    assert scrubbed["apiKey"] == "[redacted]"
    assert scrubbed["imageDataUrl"] == "[redacted]"
    assert scrubbed["text"] == "[redacted]"
    assert "secret" not in scrubbed["url"]
    assert scrubbed["preview"] == "[redacted-data-url]"
    assert scrubbed["nested"] == [{"api_key": "[redacted]"}, "[3 bytes]"]
    assert scrubbed["task"] == "vision"


def test_long_strings_are_truncated() -> None:
    assert redact_for_log("x" * 500).endswith("...[truncated]")


def test_correlation_context_restores_previous_id() -> None:
    outer = ensure_correlation_id("outer-id")

    with correlation_context("inner-id") as inner:
        assert inner == "inner-id"
        assert ensure_correlation_id() == "inner-id"

    assert ensure_correlation_id() == outer


def test_json_formatter_emits_structured_fields() -> None:
    records = []

    class Capture(logging.Handler):
        def emit(self, record: logging.LogRecord) -> None:
            records.append(record)

    logger = logging.getLogger("wardrobe.tests.formatter")
    logger.setLevel(logging.INFO)
    handler = Capture()
    logger.addHandler(handler)
    try:
        log_event(logger, logging.INFO, "ai_request_completed", task="stylist", apiKey="secret", correlation_id="c-1")
    finally:
        logger.removeHandler(handler)

    payload = json.loads(JsonFormatter().format(records[0]))
    assert payload["event"] == "ai_request_completed"
    assert payload["correlation_id"] == "c-1"
    assert payload["task"] == "stylist"
    assert payload["apiKey"] == "[redacted]"
