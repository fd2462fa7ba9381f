"""Saving drafts, optionally sending them straight away."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from html.parser import HTMLParser
from typing import Any, Callable

from sesmailbox.model import (
    ConditionalCheckFailedError,
    EmailIsNotDraftError,
    EmailType,
    NotFoundError,
    ThroughputExceededError,
    TimeIndex,
    TooManyRequestsError,
)
from sesmailbox.send import (
    DRAFT_PREFIX,
    EmailInput,
    format_date_time,
    format_type_year_month,
    mark_as_sent,
    send_via_ses,
)

log = logging.getLogger(__name__)


class GenerateText(str, Enum):
    """Whether the plain-text body is generated from the HTML body."""

    ON = "on"
    OFF = "off"
    AUTO = "auto"


class _TextExtractor(HTMLParser):
    _BLOCK = {
        "p", "div", "br", "h1", "h2", "h3", "h4", "h5", "h6", "li", "ul", "ol",
        "tr", "table", "blockquote", "pre", "hr", "section", "article",
        "header", "footer",
    }
    _SKIP = {"script", "style", "head", "title"}

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []
        self._skipping = 0

    def handle_starttag(self, tag: str, attrs: list) -> None:
        if tag in self._SKIP:
            self._skipping += 1
        elif tag in self._BLOCK:
            self.parts.append("\n")
            if tag == "li":
                self.parts.append("* ")

    def handle_endtag(self, tag: str) -> None:
        if tag in self._SKIP:
            self._skipping = max(0, self._skipping - 1)
        elif tag in self._BLOCK:
            self.parts.append("\n")

    def handle_data(self, data: str) -> None:
        if not self._skipping:
            self.parts.append(data)


def html_to_text(html: str) -> str:
    """Return a plain-text rendering of an HTML body."""
    extractor = _TextExtractor()
    extractor.feed(html)
    extractor.close()
    lines = [" ".join(line.split()) for line in "".join(extractor.parts).split("\n")]
    kept: list[str] = []
    for line in lines:
        if line or (kept and kept[-1]):
            kept.append(line)
    while kept and not kept[-1]:
        kept.pop()
    return "\n".join(kept)


@dataclass
class SaveInput(EmailInput):
    """A draft to store; ``send`` sends it once saved."""

    generate_text: str = ""
    send: bool = False


@dataclass
class SaveResult(TimeIndex):
    """The stored (or sent) draft."""

    subject: str = ""
    from_: list[str] = field(default_factory=list)
    to: list[str] = field(default_factory=list)
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    reply_to: list[str] = field(default_factory=list)
    text: str = ""
    html: str = ""
    thread_id: str = ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"messageID": self.message_id, "type": self.type}
        for key, value in (
            ("timeReceived", self.time_received),
            ("timeUpdated", self.time_updated),
            ("timeSent", self.time_sent),
        ):
            if value:
                data[key] = value
        data.update(
            subject=self.subject,
            **{"from": list(self.from_)},
            to=list(self.to),
            cc=list(self.cc),
            bcc=list(self.bcc),
            replyTo=list(self.reply_to),
            text=self.text,
            html=self.html,
        )
        if self.thread_id:
            data["threadID"] = self.thread_id
        return data


_KEPT_FIELDS = ("ThreadID", "InReplyTo", "References")


def save(
    client: Any,
    request: SaveInput,
    table_name: str,
    now: datetime | None = None,
    text_generator: Callable[[str], str] = html_to_text,
) -> SaveResult:
    """Store a draft, keeping its thread attributes, and send it if asked."""
    log.info("save method started")
    if not request.message_id.startswith(DRAFT_PREFIX):
        raise EmailIsNotDraftError()

    when = now or datetime.now(timezone.utc)
    type_year_month = format_type_year_month(EmailType.DRAFT.value, when)
    date_time = format_date_time(when)

    text = request.text
    if request.generate_text == GenerateText.ON or (
        request.generate_text == GenerateText.AUTO and not text
    ):
        text = text_generator(request.html)

    email = EmailInput(
        message_id=request.message_id,
        subject=request.subject,
        from_=list(request.from_),
        to=list(request.to),
        cc=list(request.cc),
        bcc=list(request.bcc),
        reply_to=list(request.reply_to),
        text=text,
        html=request.html,
    )
    item = email.to_attributes(type_year_month, date_time)

    # Thread attributes are set when the draft is created and are not part of
    # the input, so carry them over from the stored record.
    response = client.get_item(
        TableName=table_name, Key={"MessageID": {"S": request.message_id}}
    )
    stored = response.get("Item") or {}
    kept = {key: stored[key]["S"] for key in _KEPT_FIELDS if key in stored}
    for key in kept:
        item[key] = stored[key]
    email.thread_id = kept.get("ThreadID", "")
    email.in_reply_to = kept.get("InReplyTo", "")
    email.references = kept.get("References", "")

    try:
        client.put_item(
            TableName=table_name,
            Item=item,
            ConditionExpression="MessageID = :messageID",
            ExpressionAttributeValues={":messageID": {"S": request.message_id}},
        )
    except ConditionalCheckFailedError as err:
        raise NotFoundError() from err
    except ThroughputExceededError as err:
        raise TooManyRequestsError() from err

    email_type = EmailType.DRAFT.value
    message_id = request.message_id
    if request.send:
        new_message_id = send_via_ses(client, email)
        email.message_id = new_message_id
        mark_as_sent(client, message_id, email, table_name, when)
        message_id = new_message_id
        email_type = EmailType.SENT.value

    result = SaveResult(
        message_id=message_id,
        type=email_type,
        time_updated=when.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
        if when.tzinfo is not None
        else when.strftime("%Y-%m-%dT%H:%M:%SZ"),
        subject=request.subject,
        from_=list(request.from_),
        to=list(request.to),
        cc=list(request.cc),
        bcc=list(request.bcc),
        reply_to=list(request.reply_to),
        text=text,
        html=request.html,
        thread_id=email.thread_id,
    )
    log.info("save method finished successfully")
    return result