"""Tests for logging utilities and sensitive data redaction."""

from __future__ import annotations

import json
import logging

import pytest

from mealcart.logging_utils import JsonFormatter, SensitiveDataFilter, configure_logging


def _record(msg: str, *args, **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="mealcart.test.redaction",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg=msg,
        args=args,
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.mark.parametrize("fmt", ["plain", "json"])
def test_sensitive_data_filter_redacts_tokens(fmt):
    secret = "top-secret-token"
    configure_logging("INFO", fmt, [secret])

    handler = logging.getLogger().handlers[0]
    record = _record("Authorization header Bearer %s", secret)

    for filter_ in handler.filters:
        filter_.filter(record)

    formatted = handler.format(record)
    assert secret not in formatted
    assert "[redacted]" in formatted


def test_filter_masks_embedding_keys_without_configured_secrets():
    record = _record("calling embeddings with key sk-abcdefghijklmnop")

    SensitiveDataFilter([]).filter(record)

    assert "sk-abcdefghijklmnop" not in record.getMessage()


def test_json_formatter_includes_sync_context():
    record = _record(
        "Stage finished",
        request_id="req-1",
        week_start="2024-01-15",
        stage="match_ingredients",
        duration_ms=12.5,
    )

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "Stage finished"
    assert payload["week_start"] == "2024-01-15"
    assert payload["stage"] == "match_ingredients"
    assert payload["duration_ms"] == 12.5
    assert payload["request_id"] == "req-1"


def test_configure_logging_quiets_httpx():
    configure_logging("DEBUG", "plain", [])
    assert logging.getLogger("httpx").level == logging.WARNING
