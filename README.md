# sesmailbox

A library for managing a mailbox kept in a DynamoDB-style table and sent
through an SES-style service. Each email record is addressed by its
`MessageID` and indexed by `TypeYearMonth` (for example `inbox#2022-03`)
and `DateTime` (for example `12-01:01:01`).

The package opens no connections itself. Every operation takes a client
object that has the methods it needs, called with keyword arguments in the
low-level request shape:

- `get_item`, `put_item`, `update_item`, `query` and `transact_write_items`
  for the table;
- `send_email` for the sending service, returning a mapping with `MessageId`.

Attribute values use the wire shape, such as `{"S": "text"}`,
`{"SS": ["a", "b"]}` or `{"BOOL": True}`. A real SDK client or a stub both
work. For the package to turn store failures into its own errors, the client
raises the exceptions from `sesmailbox.model`: `ThroughputExceededError`,
`ConditionalCheckFailedError` and `TransactionCanceledError`.

## Install

    pip install .

## Modules

- `sesmailbox.model`: `EmailType` (`inbox`, `draft`, `sent`), the index
  records `TimeIndex` and `GSIIndex`, the listing entries `Item` and
  `RawEmailItem`, the helpers `parse_gsi`, `unmarshal_gsi`,
  `attribute_string` and `attribute_string_list`, and the errors. All
  package errors derive from `MailboxError`: `NotFoundError`,
  `TooManyRequestsError`, `InvalidInputError`, `QueryNotMatchError`,
  `ReadActionFailedError`, `EmailIsNotDraftError`,
  `InvalidTypeYearMonthError` and `AttributeTypeError`.
- `sesmailbox.read`: `read(client, message_id, action, table_name)` marks an
  inbox email as read or unread (`ReadAction.READ`, `ReadAction.UNREAD`).
  It raises `ReadActionFailedError` when the email is not an inbox email or is
  already in that state.
- `sesmailbox.get`: `get` fetches one email as a `GetResult`, and
  `get_and_read` also marks an unread inbox email as read.
  `parse_get_result` builds a `GetResult` from raw attributes.
  `GetResult.to_dict()` gives the JSON-ready form.
- `sesmailbox.cursor`: `Cursor` and `QueryInfo`. `Cursor.encode()` and
  `Cursor.decode()` give opaque URL-safe base64 pagination cursors.
  `to_json` and `from_json` wrap them as JSON string literals.
- `sesmailbox.listing`: `list_emails` returns one page of a month of a
  mailbox, newest first, as a `ListResult`. Trash filtering goes through
  `ShowTrash` (`exclude` by default, `include`, `only`) and paging through
  `page_size` and `next_cursor`. When no year or month is given, it lists
  the current UTC month. `query_by_year_month` runs the single partition
  query underneath.
- `sesmailbox.send`: `send` sends a stored draft (its ID must start with
  `draft-`) and replaces it with a sent record in one transaction. A reply,
  meaning a draft with `In-Reply-To`, goes out as raw MIME built by
  `build_mime_email` and also updates its thread. `send_via_ses`,
  `mark_as_sent`, `parse_addresses`, `format_type_year_month` and
  `format_date_time` are available on their own.
- `sesmailbox.save`: `save` stores a `SaveInput` draft and keeps its stored
  thread attributes. It can send the draft straight away (`send=True`).
  `generate_text` (`GenerateText.ON`, `OFF`, `AUTO`) controls whether the
  plain-text body is made from the HTML with `html_to_text`.

## Example

    from sesmailbox.cursor import Cursor
    from sesmailbox.listing import ListInput, list_emails

    result = list_emails(client, ListInput(type="inbox", year="2022", month="3"),
                         table_name="mailbox", index_name="TimeIndex")
    for item in result.items:
        print(item.to_dict())

    if result.has_more:
        position = result.next_cursor.encode()
        later = list_emails(
            client,
            ListInput(type="inbox", year="2022", month="03",
                      next_cursor=Cursor.decode(position)),
            table_name="mailbox", index_name="TimeIndex",
        )

A cursor only continues the query it came from. If the type, year, month or
order differ, `list_emails` raises `QueryNotMatchError`.

## What it does not do

- It has no command-line tool, HTTP API or server. It is a library to call
  from your own handlers.
- It does not create or manage tables or indexes, and it does not receive
  incoming mail. It works on records that already exist.
- It does not read raw messages from object storage. It does not re-parse
  stored messages, and it does not serve attachments or inline parts.

## Tests

    pip install .[test]
    pytest