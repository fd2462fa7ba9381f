"""Fetching a single email from the table."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sesmailbox.model import (
    AttributeMap,
    AttributeTypeError,
    EmailType,
    NotFoundError,
    ThroughputExceededError,
    TooManyRequestsError,
    attribute_string,
    attribute_string_list,
    unmarshal_gsi,
)
from sesmailbox.read import ReadAction, read

log = logging.getLogger(__name__)


@dataclass
class Verdict:
    """Spam and authentication checks recorded for a received email."""

    spam: bool = False
    dkim: bool = False
    dmarc: bool = False
    spf: bool = False
    virus: bool = False


@dataclass
class GetResult:
    """A full email record."""

    message_id: str = ""
    original_message_id: str = ""
    type: str = ""
    subject: str = ""
    from_: list[str] = field(default_factory=list)
    to: list[str] = field(default_factory=list)
    text: str = ""
    html: str = ""
    reply_to: list[str] = field(default_factory=list)
    in_reply_to: str = ""
    references: str = ""
    thread_id: str = ""
    is_thread_latest: bool = False

    time_received: str = ""
    date_sent: str = ""
    source: str = ""
    destination: list[str] = field(default_factory=list)
    return_path: str = ""
    verdict: Verdict | None = None
    unread: bool | None = None

    time_updated: str = ""
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)

    time_sent: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "messageID": self.message_id,
            "originalMessageID": self.original_message_id,
            "type": self.type,
            "subject": self.subject,
            "from": list(self.from_),
            "to": list(self.to),
            "text": self.text,
            "html": self.html,
            "replyTo": list(self.reply_to),
            "inReplyTo": self.in_reply_to,
            "references": self.references,
        }
        optional: list[tuple[str, Any]] = [
            ("threadID", self.thread_id),
            ("isThreadLatest", self.is_thread_latest),
            ("timeReceived", self.time_received),
            ("dateSent", self.date_sent),
            ("source", self.source),
            ("destination", list(self.destination)),
            ("returnPath", self.return_path),
        ]
        for key, value in optional:
            if value:
                data[key] = value
        if self.verdict is not None:
            data["verdict"] = {
                "spam": self.verdict.spam,
                "dkim": self.verdict.dkim,
                "dmarc": self.verdict.dmarc,
                "spf": self.verdict.spf,
                "virus": self.verdict.virus,
            }
        if self.unread is not None:
            data["unread"] = self.unread
        for key, value in (
            ("timeUpdated", self.time_updated),
            ("cc", list(self.cc)),
            ("bcc", list(self.bcc)),
            ("timeSent", self.time_sent),
        ):
            if value:
                data[key] = value
        return data


def _attribute_bool(attributes: AttributeMap, key: str) -> bool | None:
    value = attributes.get(key)
    if value is None or value.get("NULL"):
        return None
    if "BOOL" in value:
        return bool(value["BOOL"])
    raise AttributeTypeError(f"cannot read {key} as a boolean")


def _parse_verdict(attributes: AttributeMap) -> Verdict | None:
    value = attributes.get("Verdict")
    if value is None or value.get("NULL"):
        return None
    if "M" not in value:
        raise AttributeTypeError("cannot read Verdict as a map")
    checks = value["M"]
    return Verdict(
        spam=bool(_attribute_bool(checks, "Spam")),
        dkim=bool(_attribute_bool(checks, "DKIM")),
        dmarc=bool(_attribute_bool(checks, "DMARC")),
        spf=bool(_attribute_bool(checks, "SPF")),
        virus=bool(_attribute_bool(checks, "Virus")),
    )


def parse_get_result(attributes: AttributeMap) -> GetResult:
    """Build a GetResult from the attributes of a stored email."""
    result = GetResult(
        message_id=attribute_string(attributes, "MessageID"),
        original_message_id=attribute_string(attributes, "OriginalMessageID"),
        subject=attribute_string(attributes, "Subject"),
        from_=attribute_string_list(attributes, "From"),
        to=attribute_string_list(attributes, "To"),
        text=attribute_string(attributes, "Text"),
        html=attribute_string(attributes, "HTML"),
        reply_to=attribute_string_list(attributes, "ReplyTo"),
        in_reply_to=attribute_string(attributes, "InReplyTo"),
        references=attribute_string(attributes, "References"),
        thread_id=attribute_string(attributes, "ThreadID"),
        is_thread_latest=bool(_attribute_bool(attributes, "IsThreadLatest")),
        time_received=attribute_string(attributes, "TimeReceived"),
        date_sent=attribute_string(attributes, "DateSent"),
        source=attribute_string(attributes, "Source"),
        destination=attribute_string_list(attributes, "Destination"),
        return_path=attribute_string(attributes, "ReturnPath"),
        verdict=_parse_verdict(attributes),
        unread=_attribute_bool(attributes, "Unread"),
        time_updated=attribute_string(attributes, "TimeUpdated"),
        cc=attribute_string_list(attributes, "Cc"),
        bcc=attribute_string_list(attributes, "Bcc"),
        time_sent=attribute_string(attributes, "TimeSent"),
    )

    email_type, email_time = unmarshal_gsi(attributes)
    result.type = email_type
    if email_type == EmailType.INBOX:
        result.time_received = email_time
        if result.unread is None:
            result.unread = False
    else:
        if email_type == EmailType.DRAFT:
            result.time_updated = email_time
        elif email_type == EmailType.SENT:
            result.time_sent = email_time
        result.unread = None
    return result


def get(client: Any, message_id: str, table_name: str) -> GetResult:
    """Fetch an email by its message ID."""
    try:
        response = client.get_item(
            TableName=table_name, Key={"MessageID": {"S": message_id}}
        )
    except ThroughputExceededError as err:
        raise TooManyRequestsError() from err

    item = dict(response.get("Item") or {})
    if not item:
        raise NotFoundError()

    # Older records may hold ReplyTo as a single string.
    reply_to = item.get("ReplyTo")
    if reply_to is not None and "S" in reply_to:
        item["ReplyTo"] = {"SS": [reply_to["S"]]}

    result = parse_get_result(item)
    log.info("get method finished successfully")
    return result


def get_and_read(client: Any, message_id: str, table_name: str) -> GetResult:
    """Fetch an email and mark it as read if it is an unread inbox email."""
    result = get(client, message_id, table_name)
    if result.type == EmailType.INBOX and result.unread:
        read(client, message_id, ReadAction.READ, table_name)
        log.info("email marked as read")
    return result