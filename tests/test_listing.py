from datetime import datetime, timezone

import pytest

from sesmailbox.cursor import Cursor, QueryInfo
from sesmailbox.listing import (
    ListInput,
    ListQuery,
    ListResult,
    QueryResult,
    current_year_month,
    list_emails,
    prepare_year_month,
    query_by_year_month,
)
from sesmailbox.model import (
    AttributeTypeError,
    InvalidInputError,
    InvalidTypeYearMonthError,
    Item,
    QueryNotMatchError,
    ThroughputExceededError,
    TooManyRequestsError,
)

TABLE = "list-by-year-month-table-name"
INDEX = "gsi-index-name"

STORED = {
    "MessageID": {"S": "exampleMessageID"},
    "TypeYearMonth": {"S": "inbox#2022-03"},
    "DateTime": {"S": "12-01:01:01"},
}

EXPECTED_ITEM = Item(
    message_id="exampleMessageID",
    type="inbox",
    time_received="2022-03-12T01:01:01Z",
    unread=False,
)


class FakeClient:
    def __init__(self, response=None, error=None):
        self.response = response if response is not None else {}
        self.error = error
        self.calls = []

    def query(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def test_query_exclude_trash_with_limit_and_start_key():
    client = FakeClient({"Count": 1, "Items": [STORED]})
    query = ListQuery(
        email_type="inbox",
        year="2022",
        month="03",
        show_trash="exclude",
        page_size=10,
        last_evaluated_key={"foo": {"S": "bar"}},
    )
    result = query_by_year_month(client, query, TABLE, INDEX)
    assert result == QueryResult(items=[EXPECTED_ITEM], last_evaluated_key=None, has_more=False)

    params = client.calls[0]
    assert params["TableName"] == TABLE
    assert params["IndexName"] == INDEX
    assert params["ExclusiveStartKey"] == {"foo": {"S": "bar"}}
    assert params["KeyConditionExpression"] == "#tym = :val"
    assert params["ExpressionAttributeValues"] == {":val": {"S": "inbox#2022-03"}}
    assert params["ExpressionAttributeNames"] == {"#tym": "TypeYearMonth"}
    assert params["ScanIndexForward"] is False
    assert params["FilterExpression"] == "attribute_not_exists(TrashedTime)"
    assert params["Limit"] == 10


def test_query_only_trash():
    client = FakeClient({"Items": [STORED]})
    query = ListQuery(email_type="inbox", year="2022", month="03", show_trash="only")
    result = query_by_year_month(client, query, TABLE, INDEX)
    assert result.items == [EXPECTED_ITEM]
    assert client.calls[0]["FilterExpression"] == "attribute_exists(TrashedTime)"
    assert "Limit" not in client.calls[0]


def test_query_include_trash():
    client = FakeClient({"Items": [STORED]})
    query = ListQuery(email_type="inbox", year="2022", month="03", show_trash="include")
    result = query_by_year_month(client, query, TABLE, INDEX)
    assert result.items == [EXPECTED_ITEM]
    assert "FilterExpression" not in client.calls[0]


def test_query_bad_attribute_type():
    bad = dict(STORED, Subject={"SS": ["x"]})
    client = FakeClient({"Items": [bad]})
    query = ListQuery(email_type="inbox", year="2022", month="03")
    with pytest.raises(AttributeTypeError):
        query_by_year_month(client, query, TABLE, INDEX)


def test_query_invalid_type_year_month():
    bad = dict(STORED, TypeYearMonth={"S": "invalid"})
    client = FakeClient({"Items": [bad]})
    query = ListQuery(email_type="inbox", year="2022", month="03")
    with pytest.raises(InvalidTypeYearMonthError):
        query_by_year_month(client, query, TABLE, INDEX)


def test_query_client_error_propagates():
    client = FakeClient(error=RuntimeError("error"))
    query = ListQuery(email_type="inbox", year="2022", month="03")
    with pytest.raises(RuntimeError, match="error"):
        query_by_year_month(client, query, TABLE, INDEX)


def test_query_throughput_exceeded():
    client = FakeClient(error=ThroughputExceededError())
    query = ListQuery(email_type="inbox", year="2022", month="03")
    with pytest.raises(TooManyRequestsError):
        query_by_year_month(client, query, TABLE, INDEX)


def test_list_with_cursor_without_key():
    last_key = {"MessageID": {"S": "exampleMessageID"}}
    client = FakeClient({"Items": [STORED], "LastEvaluatedKey": last_key})
    request = ListInput(
        type="inbox",
        year="2022",
        month="03",
        order="desc",
        next_cursor=Cursor(
            query_info=QueryInfo(type="inbox", year="2022", month="03", order="desc")
        ),
    )
    result = list_emails(client, request, TABLE, INDEX)
    assert result == ListResult(
        count=1,
        items=[EXPECTED_ITEM],
        next_cursor=Cursor(
            query_info=QueryInfo(type="inbox", year="2022", month="03", order="desc"),
            last_evaluated_key=last_key,
        ),
        has_more=True,
    )
    assert "ExclusiveStartKey" not in client.calls[0]


def test_list_defaults_to_current_month():
    last_key = {"MessageID": {"S": "exampleMessageID"}}
    client = FakeClient({"Items": [STORED], "LastEvaluatedKey": last_key})
    now = datetime(2022, 3, 1, tzinfo=timezone.utc)
    result = list_emails(client, ListInput(type="inbox"), TABLE, INDEX, now=now)
    assert result.count == 1
    assert result.items == [EXPECTED_ITEM]
    assert result.has_more is True
    assert result.next_cursor == Cursor(
        query_info=QueryInfo(type="inbox", year="2022", month="03", order="desc"),
        last_evaluated_key=last_key,
    )
    assert client.calls[0]["ExpressionAttributeValues"] == {":val": {"S": "inbox#2022-03"}}


def test_list_invalid_show_trash():
    client = FakeClient()
    with pytest.raises(InvalidInputError):
        list_emails(client, ListInput(type="inbox", show_trash="error"), TABLE, INDEX)
    assert client.calls == []


def test_list_show_trash_is_case_insensitive():
    client = FakeClient({"Items": []})
    result = list_emails(
        client, ListInput(type="inbox", year="2022", month="3", show_trash="ONLY"), TABLE, INDEX
    )
    assert result.count == 0
    assert client.calls[0]["FilterExpression"] == "attribute_exists(TrashedTime)"


def test_list_invalid_type():
    client = FakeClient()
    with pytest.raises(InvalidInputError):
        list_emails(client, ListInput(type="invalid"), TABLE, INDEX)
    assert client.calls == []


def test_list_invalid_year():
    client = FakeClient()
    with pytest.raises(InvalidInputError):
        list_emails(client, ListInput(type="sent", year="0"), TABLE, INDEX)
    assert client.calls == []


def test_list_client_error():
    client = FakeClient(error=RuntimeError("error"))
    with pytest.raises(RuntimeError, match="error"):
        list_emails(client, ListInput(type="draft", year="2022", month="3"), TABLE, INDEX)


def test_list_cursor_mismatch():
    client = FakeClient({})
    request = ListInput(
        type="draft",
        next_cursor=Cursor(
            query_info=QueryInfo(type="inbox"),
            last_evaluated_key={"MessageID": {"S": "exampleMessageID"}},
        ),
    )
    with pytest.raises(QueryNotMatchError):
        list_emails(client, request, TABLE, INDEX)
    assert client.calls == []


def test_list_cursor_key_is_passed_on():
    key = {"MessageID": {"S": "exampleMessageID"}}
    client = FakeClient({"Items": []})
    request = ListInput(
        type="sent",
        year="2022",
        month="03",
        next_cursor=Cursor(
            query_info=QueryInfo(type="sent", year="2022", month="03", order="desc"),
            last_evaluated_key=key,
        ),
    )
    result = list_emails(client, request, TABLE, INDEX)
    assert result.next_cursor is None
    assert client.calls[0]["ExclusiveStartKey"] == key


@pytest.mark.parametrize(
    "now, year, month",
    [
        (datetime(2022, 3, 3, tzinfo=timezone.utc), "2022", "03"),
        (datetime(2022, 12, 3, tzinfo=timezone.utc), "2022", "12"),
    ],
)
def test_current_year_month(now, year, month):
    assert current_year_month(now) == (year, month)


@pytest.mark.parametrize(
    "year_in, month_in, expected",
    [
        ("2022", "3", ("2022", "03")),
        ("2020", "1", ("2020", "01")),
        ("2022", "12", ("2022", "12")),
    ],
)
def test_prepare_year_month(year_in, month_in, expected):
    assert prepare_year_month(year_in, month_in) == expected


@pytest.mark.parametrize(
    "year_in, month_in",
    [("999", "1"), ("2022", "0"), ("2022", "13"), ("abcd", "1"), ("2022", "")],
)
def test_prepare_year_month_invalid(year_in, month_in):
    with pytest.raises(InvalidInputError):
        prepare_year_month(year_in, month_in)