from __future__ import annotations

import structlog

from talentshield.logging import configure_logging, redact_message_text


def test_redact_message_text_masks_bodies():
    event_dict = {"event": "gate.blocked", "text": "call 07123456789", "matched": "07123456789", "message_id": "M1"}

    redacted = redact_message_text(None, "warning", event_dict)

    assert redacted["text"] == "[redacted]"
    assert redacted["matched"] == "[redacted]"
    assert redacted["message_id"] == "M1"


def test_configured_pipeline_redacts_before_rendering():
    configure_logging("DEBUG")

    processors = structlog.get_config()["processors"]

    assert redact_message_text in processors
    assert processors.index(redact_message_text) < len(processors) - 1
    assert isinstance(processors[-1], structlog.processors.JSONRenderer)


def test_console_renderer_option():
    configure_logging("INFO", json_output=False)

    assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)
    configure_logging("INFO")
