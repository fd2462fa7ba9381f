"""Email index records, errors and helpers for DynamoDB attribute values.

Attribute values use the low-level wire shape, for example ``{"S": "text"}``,
``{"SS": ["a", "b"]}`` or ``{"BOOL": True}``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

log = logging.getLogger(__name__)

AttributeMap = Mapping[str, Mapping[str, Any]]


class EmailType(str, Enum):
    """The kind of mailbox an email lives in."""

    INBOX = "inbox"
    DRAFT = "draft"
    SENT = "sent"

    def __str__(self) -> str:
        return self.value


class MailboxError(Exception):
    """Base class for errors reported by mailbox operations."""

    default_message = "mailbox error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class NotFoundError(MailboxError):
    default_message = "not found"


class TooManyRequestsError(MailboxError):
    default_message = "too many requests"


class InvalidInputError(MailboxError, ValueError):
    default_message = "invalid input"


class QueryNotMatchError(MailboxError):
    default_message = "query does not match the cursor"


class ReadActionFailedError(MailboxError):
    default_message = "read action failed"


class EmailIsNotDraftError(MailboxError):
    default_message = "email is not a draft"


class InvalidTypeYearMonthError(MailboxError, ValueError):
    default_message = "invalid format for TypeYearMonth"


class AttributeTypeError(MailboxError, TypeError):
    default_message = "attribute has an unexpected type"


class ThroughputExceededError(Exception):
    """Raised by a table client when provisioned throughput is exceeded."""


class ConditionalCheckFailedError(Exception):
    """Raised by a table client when a condition expression fails."""


class TransactionCanceledError(Exception):
    """Raised by a table client when a write transaction is cancelled."""

    def __init__(self, message: str = "transaction canceled", reasons: list | None = None) -> None:
        super().__init__(message)
        self.cancellation_reasons = list(reasons or [])


def _kind(value: Mapping[str, Any]) -> str:
    return next(iter(value), "?")


def attribute_string(attributes: AttributeMap, key: str) -> str:
    """Return the string stored under ``key``, or "" when it is absent."""
    value = attributes.get(key)
    if value is None or value.get("NULL"):
        return ""
    if "S" in value:
        return value["S"]
    raise AttributeTypeError(f"cannot read {key} as a string from {_kind(value)}")


def attribute_string_list(attributes: AttributeMap, key: str) -> list[str]:
    """Return the string set or list stored under ``key``, or [] when absent."""
    value = attributes.get(key)
    if value is None or value.get("NULL"):
        return []
    if "SS" in value:
        return list(value["SS"])
    if "L" in value:
        strings = []
        for element in value["L"]:
            if "S" not in element:
                raise AttributeTypeError(
                    f"cannot read an element of {key} as a string from {_kind(element)}"
                )
            strings.append(element["S"])
        return strings
    raise AttributeTypeError(f"cannot read {key} as a list of strings from {_kind(value)}")


def _attribute_bool(attributes: AttributeMap, key: str) -> bool | None:
    value = attributes.get(key)
    if value is None or value.get("NULL"):
        return None
    if "BOOL" in value:
        return bool(value["BOOL"])
    raise AttributeTypeError(f"cannot read {key} as a boolean from {_kind(value)}")


def parse_gsi(type_year_month: str, date_time: str) -> tuple[str, str]:
    """Split ``type#YYYY-MM`` and ``DD-hh:mm:ss`` into the type and an RFC 3339 time."""
    email_type, sep, year_month = type_year_month.partition("#")
    if not sep or not email_type or not year_month or "#" in year_month:
        log.warning("extract TypeYearMonth failed: %r", type_year_month)
        raise InvalidTypeYearMonthError()
    day, _, clock = date_time.partition("-")
    return email_type, f"{year_month}-{day}T{clock}Z"


def unmarshal_gsi(attributes: AttributeMap) -> tuple[str, str]:
    """Read the index attributes of an item and return its type and time."""
    type_year_month = attribute_string(attributes, "TypeYearMonth")
    date_time = attribute_string(attributes, "DateTime")
    return parse_gsi(type_year_month, date_time)


@dataclass
class TimeIndex:
    """The identity of an email together with the time that orders it."""

    message_id: str
    type: str
    time_received: str = ""
    time_updated: str = ""
    time_sent: str = ""


@dataclass
class GSIIndex:
    """The global secondary index attributes of an email."""

    message_id: str
    type_year_month: str
    date_time: str

    def to_time_index(self) -> TimeIndex:
        email_type, email_time = parse_gsi(self.type_year_month, self.date_time)
        index = TimeIndex(message_id=self.message_id, type=email_type)
        if email_type == EmailType.INBOX:
            index.time_received = email_time
        elif email_type == EmailType.SENT:
            index.time_sent = email_time
        elif email_type == EmailType.DRAFT:
            index.time_updated = email_time
        return index


@dataclass
class Item(TimeIndex):
    """An email as shown in a listing."""

    subject: str = ""
    from_: list[str] = field(default_factory=list)
    to: list[str] = field(default_factory=list)
    unread: bool | None = None
    thread_id: str = ""
    is_thread_latest: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"messageID": self.message_id, "type": self.type}
        for key, value in (
            ("timeReceived", self.time_received),
            ("timeUpdated", self.time_updated),
            ("timeSent", self.time_sent),
        ):
            if value:
                data[key] = value
        data["subject"] = self.subject
        data["from"] = list(self.from_)
        data["to"] = list(self.to)
        if self.unread is not None:
            data["unread"] = self.unread
        if self.thread_id:
            data["threadID"] = self.thread_id
        if self.is_thread_latest:
            data["isThreadLatest"] = True
        return data


@dataclass
class RawEmailItem(GSIIndex):
    """An email listing entry as stored in the table."""

    subject: str = ""
    from_: list[str] = field(default_factory=list)
    to: list[str] = field(default_factory=list)
    unread: bool | None = None
    thread_id: str = ""
    is_thread_latest: bool = False

    @classmethod
    def from_attributes(cls, attributes: AttributeMap) -> RawEmailItem:
        return cls(
            message_id=attribute_string(attributes, "MessageID"),
            type_year_month=attribute_string(attributes, "TypeYearMonth"),
            date_time=attribute_string(attributes, "DateTime"),
            subject=attribute_string(attributes, "Subject"),
            from_=attribute_string_list(attributes, "From"),
            to=attribute_string_list(attributes, "To"),
            unread=_attribute_bool(attributes, "Unread"),
            thread_id=attribute_string(attributes, "ThreadID"),
            is_thread_latest=bool(_attribute_bool(attributes, "IsThreadLatest")),
        )

    def to_item(self) -> Item:
        index = self.to_time_index()
        unread = self.unread
        if unread is None and index.type == EmailType.INBOX:
            unread = False
        return Item(
            message_id=index.message_id,
            type=index.type,
            time_received=index.time_received,
            time_updated=index.time_updated,
            time_sent=index.time_sent,
            subject=self.subject,
            from_=list(self.from_),
            to=list(self.to),
            unread=unread,
            thread_id=self.thread_id,
            is_thread_latest=self.is_thread_latest,
        )