"""Sending draft emails through SES and recording them as sent."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.header import Header
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formatdate, parseaddr
from typing import Any, Iterable

from sesmailbox.get import get
from sesmailbox.model import (
    EmailIsNotDraftError,
    EmailType,
    InvalidInputError,
    ThroughputExceededError,
    TooManyRequestsError,
    TransactionCanceledError,
)

log = logging.getLogger(__name__)

DRAFT_PREFIX = "draft-"
_CHARSET = "UTF-8"


def _utc(when: datetime) -> datetime:
    if when.tzinfo is not None:
        return when.astimezone(timezone.utc)
    return when


def format_type_year_month(email_type: str, when: datetime) -> str:
    """Return the ``type#YYYY-MM`` partition key for an email of a type at a time."""
    if email_type not in {t.value for t in EmailType}:
        raise InvalidInputError(f"unknown email type {email_type!r}")
    when = _utc(when)
    return f"{EmailType(email_type).value}#{when.year:04d}-{when.month:02d}"


def format_date_time(when: datetime) -> str:
    """Return the ``DD-hh:mm:ss`` sort key for a time."""
    return _utc(when).strftime("%d-%H:%M:%S")


@dataclass
class EmailInput:
    """The content and recipients of an outgoing email."""

    message_id: str = ""
    subject: str = ""
    from_: list[str] = field(default_factory=list)
    to: list[str] = field(default_factory=list)
    cc: list[str] = field(default_factory=list)
    bcc: list[str] = field(default_factory=list)
    reply_to: list[str] = field(default_factory=list)
    text: str = ""
    html: str = ""
    thread_id: str = ""
    in_reply_to: str = ""
    references: str = ""

    def to_attributes(self, type_year_month: str, date_time: str) -> dict[str, dict[str, Any]]:
        """Return the table item for this email under the given index keys."""
        item: dict[str, dict[str, Any]] = {
            "MessageID": {"S": self.message_id},
            "TypeYearMonth": {"S": type_year_month},
            "DateTime": {"S": date_time},
            "Subject": {"S": self.subject},
            "Text": {"S": self.text},
            "HTML": {"S": self.html},
        }
        for key, values in (
            ("From", self.from_),
            ("To", self.to),
            ("Cc", self.cc),
            ("Bcc", self.bcc),
            ("ReplyTo", self.reply_to),
        ):
            if values:
                item[key] = {"SS": list(dict.fromkeys(values))}
        for key, value in (
            ("ThreadID", self.thread_id),
            ("InReplyTo", self.in_reply_to),
            ("References", self.references),
        ):
            if value:
                item[key] = {"S": value}
        return item


@dataclass
class SendResult:
    """The outcome of sending a draft."""

    message_id: str


def _parse_address(text: str) -> tuple[str, str]:
    name, address = parseaddr(text)
    local, at, domain = address.rpartition("@")
    if not at or not local or not domain:
        raise InvalidInputError(f"invalid address {text!r}")
    return name, address


def parse_addresses(addresses: Iterable[str]) -> list[tuple[str, str]]:
    """Parse addresses into ``(name, address)`` pairs, raising on the first bad one."""
    return [_parse_address(text) for text in addresses]


def _format_address(name: str, address: str) -> str:
    if not name:
        return f"<{address}>"
    if name.isascii():
        escaped = name.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}" <{address}>'
    return f"{Header(name, 'utf-8').encode()} <{address}>"


def _format_address_list(pairs: list[tuple[str, str]]) -> str:
    return ", ".join(_format_address(name, address) for name, address in pairs)


def build_mime_email(email: EmailInput) -> bytes:
    """Build a multipart MIME message carrying the reply headers of ``email``."""
    errors: list[str] = []

    from_header = ""
    if not email.from_:
        errors.append(InvalidInputError.default_message)
    else:
        try:
            from_header = _format_address(*_parse_address(email.from_[0]))
        except InvalidInputError as err:
            errors.append(f"failed to parse from address: {err}")

    recipients: dict[str, list[tuple[str, str]]] = {}
    for label, values in (("to", email.to), ("cc", email.cc), ("bcc", email.bcc)):
        try:
            recipients[label] = parse_addresses(values)
        except InvalidInputError as err:
            errors.append(f"failed to parse {label} address: {err}")

    reply_to_header = ""
    if not email.reply_to:
        errors.append(InvalidInputError.default_message)
    else:
        try:
            reply_to_header = _format_address(*_parse_address(email.reply_to[0]))
        except InvalidInputError as err:
            errors.append(f"failed to parse reply-to address: {err}")

    if errors:
        raise InvalidInputError("; ".join(errors))

    message = MIMEMultipart("alternative")
    if email.subject.isascii():
        message["Subject"] = email.subject
    else:
        message["Subject"] = Header(email.subject, "utf-8")
    message["From"] = from_header
    if recipients["to"]:
        message["To"] = _format_address_list(recipients["to"])
    if recipients["cc"]:
        message["Cc"] = _format_address_list(recipients["cc"])
    message["Reply-To"] = reply_to_header
    message["Date"] = formatdate(usegmt=True)
    if email.in_reply_to:
        message["In-Reply-To"] = email.in_reply_to
    if email.references:
        message["References"] = email.references
    message.attach(MIMEText(email.text, "plain", "utf-8"))
    message.attach(MIMEText(email.html, "html", "utf-8"))
    return message.as_bytes()


def send_via_ses(client: Any, email: EmailInput) -> str:
    """Send ``email`` and return the message ID SES assigned.

    Replies go out as raw MIME so that In-Reply-To and References can be set;
    everything else uses the simple content form.
    """
    log.info("sending email via SES")
    if not email.from_:
        raise InvalidInputError("from address is missing")

    request: dict[str, Any] = {
        "FromEmailAddress": email.from_[0],
        "Destination": {
            "ToAddresses": list(email.to),
            "CcAddresses": list(email.cc),
            "BccAddresses": list(email.bcc),
        },
        "ReplyToAddresses": list(email.reply_to),
    }
    if not email.in_reply_to:
        log.info("sending simple email")
        request["Content"] = {
            "Simple": {
                "Subject": {"Data": email.subject, "Charset": _CHARSET},
                "Body": {
                    "Html": {"Data": email.html, "Charset": _CHARSET},
                    "Text": {"Data": email.text, "Charset": _CHARSET},
                },
            }
        }
    else:
        log.info("sending raw email")
        request["Content"] = {"Raw": {"Data": build_mime_email(email)}}

    response = client.send_email(**request)
    log.info("email sent successfully")
    return response["MessageId"]


def _log_cancellation_reasons(reasons: Iterable[dict[str, Any]]) -> None:
    for reason in reasons:
        code = reason.get("Code")
        if code is None:
            continue
        message = reason.get("Message")
        item = reason.get("Item")
        log.warning(
            "code: %s, message: %s, item: %s",
            code,
            "nil" if message is None else message,
            "nil" if item is None else item,
        )


def mark_as_sent(
    client: Any,
    old_message_id: str,
    email: EmailInput,
    table_name: str,
    now: datetime | None = None,
) -> None:
    """Replace the draft ``old_message_id`` with the sent ``email`` in one transaction.

    For a reply, the thread loses its DraftID and gains the new message ID.
    """
    log.info("marking email as sent")
    when = now or datetime.now(timezone.utc)
    item = email.to_attributes(
        format_type_year_month(EmailType.SENT.value, when), format_date_time(when)
    )

    transact_items: list[dict[str, Any]] = [
        {"Delete": {"TableName": table_name, "Key": {"MessageID": {"S": old_message_id}}}},
        {"Put": {"TableName": table_name, "Item": item}},
    ]
    if email.in_reply_to:
        log.info("include thread update")
        transact_items.append(
            {
                "Update": {
                    "TableName": table_name,
                    "Key": {"MessageID": {"S": email.thread_id}},
                    "UpdateExpression": (
                        "REMOVE DraftID SET EmailIDs = list_append(EmailIDs, :newMessageID)"
                    ),
                    "ExpressionAttributeValues": {
                        ":newMessageID": {"L": [{"S": email.message_id}]}
                    },
                }
            }
        )

    try:
        client.transact_write_items(TransactItems=transact_items)
    except ThroughputExceededError as err:
        raise TooManyRequestsError() from err
    except TransactionCanceledError as err:
        log.warning("transaction canceled, %s", err)
        _log_cancellation_reasons(err.cancellation_reasons)
        raise
    log.info("email marked as sent successfully")


def send(
    client: Any, message_id: str, table_name: str, now: datetime | None = None
) -> SendResult:
    """Send the stored draft ``message_id`` and record it as sent."""
    if not message_id.startswith(DRAFT_PREFIX):
        raise EmailIsNotDraftError()

    draft = get(client, message_id, table_name)
    email = EmailInput(
        message_id=message_id,
        subject=draft.subject,
        from_=list(draft.from_),
        to=list(draft.to),
        cc=list(draft.cc),
        bcc=list(draft.bcc),
        reply_to=list(draft.reply_to),
        text=draft.text,
        html=draft.html,
        thread_id=draft.thread_id,
        in_reply_to=draft.in_reply_to,
        references=draft.references,
    )
    new_message_id = send_via_ses(client, email)
    email.message_id = new_message_id
    mark_as_sent(client, message_id, email, table_name, now)

    log.info("send method finished successfully")
    return SendResult(message_id=new_message_id)