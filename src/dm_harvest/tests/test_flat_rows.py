import csv
import io

from dm_harvest.serialize.flat_rows import (
    CSV_HEADER,
    FlatRow,
    escape_field,
    format_csv_row,
    to_csv,
    to_flat_rows,
)
from dm_harvest.types.records import (
    ConversationDetail,
    Direction,
    MessageRecord,
    QuotedContent,
)


def _detail(identity, *messages):
    return ConversationDetail.from_messages(identity, list(messages))


def _message(text, timestamp, date, direction=Direction.RECEIVED, quoted=None):
    return MessageRecord(
        text=text, timestamp=timestamp, date=date, direction=direction, quoted_content=quoted
    )


def test_escape_field():
    assert escape_field('He said "hi"') == '"He said ""hi"""'
    assert escape_field("plain") == '"plain"'
    assert escape_field("") == '""'


def test_quotes_survive_standard_csv_parsing():
    detail = _detail("alice", _message('He said "hi"', "2024-04-30T09:00:00Z", "2024-04-30"))
    line = format_csv_row(to_flat_rows([detail])[0])

    assert '"He said ""hi"""' in line
    (parsed,) = csv.reader(io.StringIO(line))
    assert parsed[3] == 'He said "hi"'


def test_commas_and_newlines_stay_in_one_field():
    text = "one, two\nthree"
    detail = _detail("alice", _message(text, "2024-04-30T09:00:00Z", "2024-04-30"))
    rows = list(csv.reader(io.StringIO(to_csv([detail]))))

    assert rows[0] == CSV_HEADER.split(",")
    assert rows[1][3] == text


def test_row_order_and_fields():
    alice = _detail(
        "alice",
        _message("later", "2024-05-01T07:30:00Z", "2024-05-01"),
        _message("earlier", "2024-04-30T09:00:00Z", "2024-04-30", direction=Direction.SENT),
    )
    bob = _detail("bob", _message("yo", "2024-04-20T08:00:00Z", "2024-04-20"))

    rows = to_flat_rows([alice, bob])

    assert [(r.profile_id, r.message) for r in rows] == [
        ("alice", "earlier"),
        ("alice", "later"),
        ("bob", "yo"),
    ]
    assert rows[0].sender == "sent by me"
    assert rows[1].sender == "sent by user"
    assert rows[0].date == "2024-04-30"


def test_quoted_content_fields():
    quoted = QuotedContent(text='A "quote"', attributed_user="Someone @so")
    detail = _detail(
        "alice",
        _message("with quote", "2024-04-30T09:00:00Z", "2024-04-30", quoted=quoted),
        _message("without", "2024-04-30T10:00:00Z", "2024-04-30"),
    )
    rows = list(csv.reader(io.StringIO(to_csv([detail]))))

    assert rows[1][5:] == ['A "quote"', "Someone @so"]
    assert rows[2][5:] == ["", ""]


def test_format_csv_row_absent_fields():
    row = FlatRow("carol", "undated", None, "hm", "sent by user", None, None)
    assert format_csv_row(row) == 'carol,undated,,"hm",sent by user,,'


def test_to_csv_empty():
    assert to_csv([]) == CSV_HEADER + "\n"
