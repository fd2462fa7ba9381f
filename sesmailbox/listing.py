"""Listing emails of one type within one month."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from sesmailbox.cursor import Cursor, LastEvaluatedKey, QueryInfo
from sesmailbox.model import (
    EmailType,
    InvalidInputError,
    Item,
    QueryNotMatchError,
    RawEmailItem,
    ThroughputExceededError,
    TooManyRequestsError,
)

log = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100

_INTEGER = re.compile(r"[+-]?\d+")


class ShowTrash(str, Enum):
    """Whether trashed emails are left out, included, or shown alone."""

    EXCLUDE = "exclude"
    INCLUDE = "include"
    ONLY = "only"


@dataclass
class ListInput:
    """A listing request; a page size of 0 means no limit."""

    type: str
    year: str = ""
    month: str = ""
    order: str = ""
    show_trash: str = ""
    page_size: int = 0
    next_cursor: Cursor | None = None


@dataclass
class ListResult:
    """One page of a listing."""

    count: int
    items: list[Item]
    next_cursor: Cursor | None
    has_more: bool


@dataclass
class ListQuery:
    """The parameters of a single partition query."""

    email_type: str
    year: str
    month: str
    order: str = ""
    show_trash: str = ""
    page_size: int = 0
    last_evaluated_key: LastEvaluatedKey | None = None


@dataclass
class QueryResult:
    """Items from a partition query and where it stopped."""

    items: list[Item] = field(default_factory=list)
    last_evaluated_key: LastEvaluatedKey | None = None
    has_more: bool = False


def current_year_month(now: datetime) -> tuple[str, str]:
    """Return the UTC year and two-digit month of ``now``."""
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return str(now.year), f"{now.month:02d}"


def prepare_year_month(year: str, month: str) -> tuple[str, str]:
    """Validate a year and month, padding a one-digit month with a zero."""
    if len(month) == 1:
        month = "0" + month
    if not _INTEGER.fullmatch(year) or int(year) < 1000:
        raise InvalidInputError()
    if not _INTEGER.fullmatch(month) or not 1 <= int(month) <= 12:
        raise InvalidInputError()
    return year, month


def query_by_year_month(
    client: Any, query: ListQuery, table_name: str, index_name: str
) -> QueryResult:
    """Query one TypeYearMonth partition of the index, newest first."""
    type_year_month = f"{query.email_type}#{query.year}-{query.month}"
    log.info("querying for TypeYearMonth: %s", type_year_month)

    request: dict[str, Any] = {
        "TableName": table_name,
        "IndexName": index_name,
        "KeyConditionExpression": "#tym = :val",
        "ExpressionAttributeValues": {":val": {"S": type_year_month}},
        "ExpressionAttributeNames": {"#tym": "TypeYearMonth"},
        "ScanIndexForward": False,
    }
    if query.last_evaluated_key:
        request["ExclusiveStartKey"] = query.last_evaluated_key
    if query.page_size > 0:
        request["Limit"] = query.page_size
    if query.show_trash == ShowTrash.EXCLUDE:
        request["FilterExpression"] = "attribute_not_exists(TrashedTime)"
    elif query.show_trash == ShowTrash.ONLY:
        request["FilterExpression"] = "attribute_exists(TrashedTime)"

    try:
        response = client.query(**request)
    except ThroughputExceededError as err:
        raise TooManyRequestsError() from err

    items = [
        RawEmailItem.from_attributes(attributes).to_item()
        for attributes in response.get("Items") or []
    ]
    last_key = response.get("LastEvaluatedKey") or None
    return QueryResult(items=items, last_evaluated_key=last_key, has_more=bool(last_key))


def list_emails(
    client: Any,
    request: ListInput,
    table_name: str,
    index_name: str,
    now: datetime | None = None,
) -> ListResult:
    """List one page of emails of a type for a month, the current month by default."""
    if request.type not in {t.value for t in EmailType}:
        raise InvalidInputError()

    if not request.year and not request.month:
        year, month = current_year_month(now or datetime.now(timezone.utc))
        order = "desc"
    else:
        year, month = prepare_year_month(request.year, request.month)
        order = request.order or "desc"

    if not request.show_trash:
        show_trash = ShowTrash.EXCLUDE.value
    else:
        show_trash = request.show_trash.lower()
        if show_trash not in {s.value for s in ShowTrash}:
            raise InvalidInputError()

    query = ListQuery(
        email_type=request.type,
        year=year,
        month=month,
        order=order,
        show_trash=show_trash,
        page_size=request.page_size,
    )

    cursor = request.next_cursor
    if cursor is not None and cursor.last_evaluated_key:
        info = cursor.query_info
        if (info.type, info.year, info.month, info.order) != (request.type, year, month, order):
            raise QueryNotMatchError()
        query.last_evaluated_key = cursor.last_evaluated_key

    result = query_by_year_month(client, query, table_name, index_name)

    next_cursor = None
    if result.has_more:
        next_cursor = Cursor(
            query_info=QueryInfo(type=request.type, year=year, month=month, order=order),
            last_evaluated_key=result.last_evaluated_key or {},
        )
    return ListResult(
        count=len(result.items),
        items=result.items,
        next_cursor=next_cursor,
        has_more=result.has_more,
    )