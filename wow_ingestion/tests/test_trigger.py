"""
Unit tests for trigger envelope decoding.
"""

import base64

import pytest

from wow_ingestion.errors import MalformedTrigger
from wow_ingestion.trigger import TriggerMessage, decode_trigger, iter_payloads


def _sns_event(*messages):
    return {
        "Records": [
            {"EventSource": "aws:sns", "Sns": {"Message": message}} for message in messages
        ]
    }


class TestIterPayloads:
    """Test payload extraction from Lambda events."""

    def test_sns_records(self):
        """Test each SNS record yields its message bytes."""
        event = _sns_event('{"target":"fetch-auctions"}', '{"target":"fetch-realms"}')

        assert list(iter_payloads(event)) == [
            b'{"target":"fetch-auctions"}',
            b'{"target":"fetch-realms"}',
        ]

    def test_direct_data_container(self):
        """Test a direct invocation with a data field."""
        assert list(iter_payloads({"data": "eyJ0YXJnZXQiOiJ4In0="})) == [b"eyJ0YXJnZXQiOiJ4In0="]

    def test_unrecognised_event_is_empty(self):
        """Test events without a payload yield one empty delivery."""
        assert list(iter_payloads({})) == [b""]
        assert list(iter_payloads({"data": None})) == [b""]


class TestDecodeTrigger:
    """Test decoding of raw and base64 trigger payloads."""

    def test_raw(self):
        """Test a raw UTF-8 JSON trigger."""
        assert decode_trigger(b'{"target":"fetch-auctions"}', "raw") == TriggerMessage("fetch-auctions")

    def test_base64(self):
        """Test a base64-encoded JSON trigger."""
        payload = base64.b64encode(b'{"target":"fetch-realms"}')
        assert decode_trigger(payload, "base64") == TriggerMessage("fetch-realms")

    def test_invalid_base64(self):
        """Test a payload that is not strict base64 is rejected."""
        with pytest.raises(MalformedTrigger):
            decode_trigger(b'{"target":"fetch-realms"}', "base64")

    def test_invalid_json(self):
        """Test a payload that is not JSON is rejected with the payload quoted."""
        with pytest.raises(MalformedTrigger) as exc_info:
            decode_trigger(b"fetch-auctions", "raw")
        assert "fetch-auctions" in str(exc_info.value)

    def test_non_object(self):
        """Test a JSON array is rejected."""
        with pytest.raises(MalformedTrigger):
            decode_trigger(b'["fetch-auctions"]', "raw")

    def test_missing_target(self):
        """Test a trigger without a target decodes to an empty target."""
        assert decode_trigger(b"{}", "raw") == TriggerMessage("")

    def test_unknown_encoding(self):
        """Test an unsupported encoding is rejected."""
        with pytest.raises(MalformedTrigger):
            decode_trigger(b"{}", "gzip")
