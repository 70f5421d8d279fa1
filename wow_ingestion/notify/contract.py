"""
Message schema shared with the warehouse loader.

The fetch jobs publish a NotifyMessage naming the staged CSV and the table
it should be loaded into; the loader decodes the same JSON. Field names on
the wire are fixed:

    {"gcsReference": "...", "datasetID": "...", "tableID": "...",
     "writeMode": "ifempty" | "truncate" | "append"}
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Union

from wow_ingestion.errors import DecodeError


class WriteDisposition(str, Enum):
    """How a load treats rows already in the destination table."""

    IF_EMPTY = "ifempty"  # fail unless the table is empty
    TRUNCATE = "truncate"  # replace the table contents
    APPEND = "append"

    @classmethod
    def parse(cls, value: Any) -> "WriteDisposition":
        try:
            return cls(value)
        except ValueError:
            raise DecodeError(f"cannot decode {value!r} as writeMode") from None


@dataclass(frozen=True)
class NotifyMessage:
    """Load-job description handed to the warehouse loader."""

    object_reference: str
    dataset_id: str
    table_id: str
    write_mode: WriteDisposition

    def to_dict(self) -> Dict[str, str]:
        return {
            "gcsReference": self.object_reference,
            "datasetID": self.dataset_id,
            "tableID": self.table_id,
            "writeMode": self.write_mode.value,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, payload: Union[str, bytes]) -> "NotifyMessage":
        """
        Decode a loader notification.

        Args:
            payload: JSON text or UTF-8 bytes

        Returns:
            NotifyMessage: The decoded message

        Raises:
            DecodeError: If the payload is not JSON, misses a field, or
                carries an unknown writeMode.
        """
        try:
            data = json.loads(payload)
        except (ValueError, UnicodeDecodeError) as e:
            raise DecodeError(f"failed to decode notify message {payload!r}: {e}") from e

        if not isinstance(data, dict):
            raise DecodeError(f"notify message must be a JSON object, got {payload!r}")

        missing = [
            key
            for key in ("gcsReference", "datasetID", "tableID", "writeMode")
            if key not in data
        ]
        if missing:
            raise DecodeError(
                f"notify message missing fields: {', '.join(missing)}"
            )

        not_strings = [
            key
            for key in ("gcsReference", "datasetID", "tableID")
            if not isinstance(data[key], str)
        ]
        if not_strings:
            raise DecodeError(
                f"notify message fields must be strings: {', '.join(not_strings)}"
            )

        return cls(
            object_reference=data["gcsReference"],
            dataset_id=data["datasetID"],
            table_id=data["tableID"],
            write_mode=WriteDisposition.parse(data["writeMode"]),
        )
