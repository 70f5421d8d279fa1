"""
Trigger envelope decoding.

Fetch jobs share one trigger topic. Each delivery carries a small JSON
document naming the job it is meant for, e.g. {"target": "fetch-auctions"}.
Depending on the publisher the document arrives as raw UTF-8 JSON or as
base64-encoded JSON; each job is configured with the encoding it expects.
"""

import base64
import binascii
import json
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Union

from wow_ingestion.errors import MalformedTrigger

RAW = "raw"
BASE64 = "base64"
TRIGGER_ENCODINGS = (RAW, BASE64)


@dataclass(frozen=True)
class TriggerMessage:
    """Names the job a trigger delivery is meant to run."""

    target: str


def _as_bytes(payload: Union[str, bytes, None]) -> bytes:
    if payload is None:
        return b""
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return bytes(payload)


def iter_payloads(event: Dict[str, Any]) -> Iterator[bytes]:
    """
    Yield the trigger payloads carried by a Lambda event.

    SNS-delivered events carry one payload per record in Sns.Message.
    A direct invocation may pass {"data": ...} instead. Any other event
    yields a single empty payload.

    Args:
        event: Lambda event

    Yields:
        bytes: Raw payload of each delivery
    """
    records = event.get("Records") if isinstance(event, dict) else None
    if records:
        for record in records:
            sns = record.get("Sns") or {}
            yield _as_bytes(sns.get("Message"))
        return

    if isinstance(event, dict) and "data" in event:
        yield _as_bytes(event["data"])
        return

    yield b""


def decode_trigger(payload: bytes, encoding: str) -> TriggerMessage:
    """
    Decode a trigger payload.

    Args:
        payload: Non-empty payload bytes
        encoding: 'raw' or 'base64'

    Returns:
        TriggerMessage: The decoded trigger; target is '' when absent

    Raises:
        MalformedTrigger: If the payload is not valid for the encoding or
            is not a JSON object.
    """
    if encoding not in TRIGGER_ENCODINGS:
        raise MalformedTrigger(f"unsupported trigger encoding {encoding!r}")

    document = payload
    if encoding == BASE64:
        try:
            document = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise MalformedTrigger(
                f"failed to decode base64 trigger {payload!r}: {e}"
            ) from e

    try:
        data = json.loads(document)
    except (ValueError, UnicodeDecodeError) as e:
        raise MalformedTrigger(f"failed to decode json {document!r}: {e}") from e

    if not isinstance(data, dict):
        raise MalformedTrigger(f"trigger must be a JSON object, got {document!r}")

    target = data.get("target", "")
    if not isinstance(target, str):
        raise MalformedTrigger(f"trigger target must be a string, got {target!r}")
    return TriggerMessage(target=target)
