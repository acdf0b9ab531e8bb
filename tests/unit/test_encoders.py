"""
Unit tests for the record encoders
"""

import json
import logging
import sys

import pytest

from mqtt_appender.encoders import Encoder, JsonEncoder, PatternEncoder


def test_pattern_encoder_renders_pattern(make_record):
    encoder = PatternEncoder("%(levelname)s %(name)s - %(message)s")

    assert encoder.encode(make_record("disk full", level=logging.ERROR)) == b"ERROR app.test - disk full"


def test_pattern_encoder_brace_style(make_record):
    encoder = PatternEncoder("{levelname}:{message}", style="{")

    assert encoder.encode(make_record("hi")) == b"INFO:hi"


def test_pattern_encoder_default_pattern(make_record):
    payload = PatternEncoder().encode(make_record("hello"))

    assert payload.endswith(b"INFO app.test - hello")


def test_pattern_encoder_rejects_invalid_pattern():
    with pytest.raises(ValueError):
        PatternEncoder("%(message", style="%")


def test_pattern_encoder_missing_attribute_fails_at_encode(make_record):
    encoder = PatternEncoder("%(request_id)s %(message)s")

    with pytest.raises((KeyError, ValueError)):
        encoder.encode(make_record())


def test_json_encoder_fields(make_record):
    document = json.loads(JsonEncoder().encode(make_record("hello", level=logging.WARNING)))

    assert document["level"] == "WARNING"
    assert document["message"] == "hello"
    assert document["logger"] == "app.test"
    assert document["line"] == 42
    assert "time" in document
    assert "exception" not in document


def test_json_encoder_includes_exception(make_record):
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = make_record("failed", level=logging.ERROR, exc_info=sys.exc_info())

    document = json.loads(JsonEncoder().encode(record))

    assert "RuntimeError: boom" in document["exception"]


def test_encoders_satisfy_protocol():
    assert isinstance(PatternEncoder(), Encoder)
    assert isinstance(JsonEncoder(), Encoder)
