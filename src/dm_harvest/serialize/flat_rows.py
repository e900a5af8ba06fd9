from collections.abc import Iterable
from typing import NamedTuple, Optional

from dm_harvest.types.records import ConversationDetail, MessageRecord

CSV_HEADER = "Profile ID,Date,Timestamp,Message,Sender,Quoted Text,Quoted User"

SENT_BY_ME = "sent by me"
SENT_BY_USER = "sent by user"


class FlatRow(NamedTuple):
    profile_id: str
    date: str
    timestamp: Optional[str]
    message: str
    sender: str
    # None when the message quotes nothing
    quoted_text: Optional[str]
    quoted_user: Optional[str]


def sender_label(message: MessageRecord) -> str:
    return SENT_BY_ME if message.is_sent else SENT_BY_USER


def to_flat_rows(details: Iterable[ConversationDetail]) -> list[FlatRow]:
    """One row per message: conversations in order, days in key order, messages in bucket order."""
    rows = []
    for detail in details:
        for day, message in detail.iter_messages():
            quoted = message.quoted_content
            rows.append(
                FlatRow(
                    profile_id=detail.identity,
                    date=day,
                    timestamp=message.timestamp,
                    message=message.text,
                    sender=sender_label(message),
                    quoted_text=quoted.text if quoted else None,
                    quoted_user=quoted.attributed_user if quoted else None,
                )
            )
    return rows


def escape_field(text: str) -> str:
    """Double embedded quotes and wrap the field in quotes."""
    return '"' + text.replace('"', '""') + '"'


def format_csv_row(row: FlatRow) -> str:
    return ",".join(
        [
            row.profile_id,
            row.date,
            row.timestamp or "",
            escape_field(row.message),
            row.sender,
            escape_field(row.quoted_text) if row.quoted_text is not None else "",
            escape_field(row.quoted_user) if row.quoted_user is not None else "",
        ]
    )


def to_csv(details: Iterable[ConversationDetail]) -> str:
    lines = [CSV_HEADER] + [format_csv_row(row) for row in to_flat_rows(details)]
    return "\n".join(lines) + "\n"
