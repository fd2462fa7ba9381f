"""Opaque pagination cursors for email listings.

A cursor holds the query it belongs to and the key the table returned as the
last one it evaluated. On the wire it is URL-safe base64 of
``type,year,month,order,<key>``, where ``<key>`` is the key encoded as a JSON
map attribute value.
"""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass, field
from typing import Any

from sesmailbox.model import MailboxError

LastEvaluatedKey = dict[str, dict[str, Any]]


class CursorDecodeError(MailboxError, ValueError):
    default_message = "invalid input to unmarshal"


class KeyDecodeError(MailboxError, ValueError):
    default_message = "invalid input to decode"


def encode_key(key: LastEvaluatedKey | None) -> bytes:
    """Encode a last evaluated key as a map attribute value; empty keys give b""."""
    if not key:
        return b""
    return json.dumps({"M": key}, separators=(",", ":"), sort_keys=True).encode("utf-8")


def decode_key(data: bytes | str) -> LastEvaluatedKey:
    """Decode what :func:`encode_key` produced; empty input gives an empty key."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    if not data:
        return {}
    try:
        value = json.loads(data)
    except (ValueError, UnicodeDecodeError) as err:
        raise KeyDecodeError("failed to decode attribute value") from err
    if not isinstance(value, dict) or set(value) != {"M"} or not isinstance(value["M"], dict):
        raise KeyDecodeError()
    return value["M"]


@dataclass
class QueryInfo:
    """The listing query a cursor continues."""

    type: str = ""
    year: str = ""
    month: str = ""
    order: str = ""


@dataclass
class Cursor:
    """A position within a listing."""

    query_info: QueryInfo = field(default_factory=QueryInfo)
    last_evaluated_key: LastEvaluatedKey = field(default_factory=dict)

    def encode(self) -> str:
        """Return the cursor as URL-safe base64 text."""
        info = self.query_info
        prefix = ",".join((info.type, info.year, info.month, info.order)) + ","
        raw = prefix.encode("utf-8") + encode_key(self.last_evaluated_key)
        return base64.urlsafe_b64encode(raw).decode("ascii")

    @classmethod
    def decode(cls, data: bytes | str) -> Cursor:
        """Parse the text produced by :meth:`encode`; empty input gives an empty cursor."""
        if isinstance(data, str):
            data = data.encode("ascii", errors="replace")
        if not data:
            return cls()
        try:
            raw = base64.b64decode(data, altchars=b"-_", validate=True)
        except (binascii.Error, ValueError) as err:
            raise CursorDecodeError("cursor is not valid base64") from err

        parts = raw.split(b",", 4)
        if len(parts) != 5:
            raise CursorDecodeError()
        try:
            email_type, year, month, order = (part.decode("utf-8") for part in parts[:4])
        except UnicodeDecodeError as err:
            raise CursorDecodeError() from err
        return cls(
            query_info=QueryInfo(type=email_type, year=year, month=month, order=order),
            last_evaluated_key=decode_key(parts[4]),
        )

    def to_json(self) -> str:
        """Return the cursor as a JSON string literal."""
        return f'"{self.encode()}"'

    @classmethod
    def from_json(cls, data: bytes | str) -> Cursor:
        """Parse a JSON string literal produced by :meth:`to_json`."""
        if isinstance(data, bytes):
            data = data.decode("utf-8", errors="replace")
        if len(data) < 2 or data[0] != '"' or data[-1] != '"':
            raise CursorDecodeError()
        return cls.decode(data[1:-1])