"""Marking inbox emails as read or unread."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

from sesmailbox.model import (
    ConditionalCheckFailedError,
    EmailType,
    ReadActionFailedError,
    ThroughputExceededError,
    TooManyRequestsError,
)

log = logging.getLogger(__name__)


class ReadAction(str, Enum):
    READ = "read"
    UNREAD = "unread"


def read(client: Any, message_id: str, action: str, table_name: str) -> None:
    """Mark an inbox email as read; any action other than "read" marks it unread."""
    request: dict[str, Any] = {
        "TableName": table_name,
        "Key": {"MessageID": {"S": message_id}},
        "ExpressionAttributeValues": {":v_type": {"S": EmailType.INBOX.value}},
    }
    if action == ReadAction.READ:
        request["UpdateExpression"] = "REMOVE Unread"
        request["ConditionExpression"] = (
            "attribute_exists(Unread) AND begins_with(TypeYearMonth, :v_type)"
        )
    else:
        request["UpdateExpression"] = "SET Unread = :val1"
        request["ConditionExpression"] = (
            "attribute_not_exists(Unread) AND begins_with(TypeYearMonth, :v_type)"
        )
        request["ExpressionAttributeValues"][":val1"] = {"BOOL": True}

    try:
        client.update_item(**request)
    except ConditionalCheckFailedError as err:
        raise ReadActionFailedError() from err
    except ThroughputExceededError as err:
        raise TooManyRequestsError() from err

    log.info("read method finished successfully")