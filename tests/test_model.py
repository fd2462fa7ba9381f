import pytest

from sesmailbox.model import (
    AttributeTypeError,
    EmailType,
    GSIIndex,
    InvalidTypeYearMonthError,
    Item,
    RawEmailItem,
    TimeIndex,
    attribute_string,
    attribute_string_list,
    parse_gsi,
    unmarshal_gsi,
)


@pytest.mark.parametrize(
    "gsi, expected",
    [
        (
            GSIIndex("1", "inbox#2022-03", "10-20:20:20"),
            TimeIndex(message_id="1", type="inbox", time_received="2022-03-10T20:20:20Z"),
        ),
        (
            GSIIndex("1", "sent#2022-03", "10-20:20:20"),
            TimeIndex(message_id="1", type="sent", time_sent="2022-03-10T20:20:20Z"),
        ),
        (
            GSIIndex("1", "draft#2022-03", "10-20:20:20"),
            TimeIndex(message_id="1", type="draft", time_updated="2022-03-10T20:20:20Z"),
        ),
    ],
)
def test_to_time_index(gsi, expected):
    assert gsi.to_time_index() == expected


def test_to_time_index_invalid():
    with pytest.raises(InvalidTypeYearMonthError):
        GSIIndex("1", "invalid", "10-20:20:20").to_time_index()


def test_unmarshal_gsi():
    items = {"TypeYearMonth": {"S": "inbox#2022-03"}, "DateTime": {"S": "10-10:10:10"}}
    assert unmarshal_gsi(items) == ("inbox", "2022-03-10T10:10:10Z")


@pytest.mark.parametrize(
    "items",
    [
        {"TypeYearMonth": {"SS": ["inbox"]}, "DateTime": {"S": "10-10:10:10"}},
        {"TypeYearMonth": {"S": "inbox"}, "DateTime": {"SS": ["10-10:10:10"]}},
    ],
)
def test_unmarshal_gsi_type_error(items):
    with pytest.raises(AttributeTypeError):
        unmarshal_gsi(items)


def test_parse_gsi():
    assert parse_gsi("inbox#2022-03", "10-10:00:00") == ("inbox", "2022-03-10T10:00:00Z")


def test_parse_gsi_invalid():
    with pytest.raises(InvalidTypeYearMonthError):
        parse_gsi("invalid", "")


def test_attribute_string_missing_and_present():
    attributes = {"Subject": {"S": "hello"}}
    assert attribute_string(attributes, "Subject") == "hello"
    assert attribute_string(attributes, "Other") == ""


def test_attribute_string_wrong_type():
    with pytest.raises(AttributeTypeError):
        attribute_string({"Subject": {"BOOL": True}}, "Subject")


def test_attribute_string_list_forms():
    attributes = {
        "A": {"SS": ["x@example.com"]},
        "B": {"L": [{"S": "y@example.com"}, {"S": "z@example.com"}]},
    }
    assert attribute_string_list(attributes, "A") == ["x@example.com"]
    assert attribute_string_list(attributes, "B") == ["y@example.com", "z@example.com"]
    assert attribute_string_list(attributes, "C") == []


def test_attribute_string_list_bad_element():
    with pytest.raises(AttributeTypeError):
        attribute_string_list({"A": {"L": [{"N": "1"}]}}, "A")


def test_raw_item_inbox_defaults_unread_false():
    raw = RawEmailItem.from_attributes(
        {
            "MessageID": {"S": "exampleMessageID"},
            "TypeYearMonth": {"S": "inbox#2022-03"},
            "DateTime": {"S": "12-01:01:01"},
        }
    )
    assert raw.to_item() == Item(
        message_id="exampleMessageID",
        type="inbox",
        time_received="2022-03-12T01:01:01Z",
        unread=False,
    )


def test_raw_item_sent_keeps_fields():
    raw = RawEmailItem.from_attributes(
        {
            "MessageID": {"S": "m1"},
            "TypeYearMonth": {"S": "sent#2023-11"},
            "DateTime": {"S": "05-08:00:00"},
            "Subject": {"S": "hi"},
            "From": {"SS": ["a@example.com"]},
            "To": {"SS": ["b@example.com"]},
            "ThreadID": {"S": "t1"},
            "IsThreadLatest": {"BOOL": True},
        }
    )
    item = raw.to_item()
    assert item.type == EmailType.SENT
    assert item.time_sent == "2023-11-05T08:00:00Z"
    assert item.unread is None
    assert item.from_ == ["a@example.com"]
    assert item.thread_id == "t1"
    assert item.is_thread_latest is True


def test_item_to_dict_omits_empty():
    item = Item(message_id="m", type="inbox", time_received="2022-03-12T01:01:01Z", unread=False)
    assert item.to_dict() == {
        "messageID": "m",
        "type": "inbox",
        "timeReceived": "2022-03-12T01:01:01Z",
        "subject": "",
        "from": [],
        "to": [],
        "unread": False,
    }