from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from dm_harvest.utils.timestamp import parse_timestamp

# Bucket for messages whose calendar day could not be resolved
UNDATED_KEY = "undated"

# Unparsable timestamps sort before everything else
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Direction(Enum):
    SENT = "sent"
    RECEIVED = "received"


class ConversationSummary(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Handle of the counterpart, used as the dedup key
    identity: str = Field(min_length=1)
    # ISO-8601 timestamp of the last activity shown in the list
    last_activity_timestamp: Optional[str] = None


class QuotedContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""
    attributed_user: str = ""


class MessageRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str = ""
    timestamp: Optional[str] = None
    direction: Direction = Direction.RECEIVED
    # Calendar day (YYYY-MM-DD), carried forward from the last date heading
    date: Optional[str] = None
    quoted_content: Optional[QuotedContent] = None

    @property
    def is_sent(self) -> bool:
        return self.direction == Direction.SENT

    def sort_key(self) -> datetime:
        return parse_timestamp(self.timestamp) or _EPOCH


class ConversationDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    identity: str = Field(min_length=1)
    messages_by_date: dict[str, list[MessageRecord]] = Field(default_factory=dict)
    total_message_count: int = 0
    first_date: Optional[str] = None
    last_date: Optional[str] = None

    @classmethod
    def from_messages(cls, identity: str, messages: list[MessageRecord]) -> "ConversationDetail":
        """Sort messages by timestamp and partition them by calendar day.

        The sort is stable, so messages with equal timestamps keep the order
        they were given in (document order).

        Messages without a date go under `UNDATED_KEY`, so the keys are the
        dates present in the messages plus `UNDATED_KEY` when any message has
        none. It sorts after every date and is left out of first/last date.
        """
        ordered = sorted(messages, key=lambda message: message.sort_key())

        buckets: dict[str, list[MessageRecord]] = {}
        for message in ordered:
            buckets.setdefault(message.date or UNDATED_KEY, []).append(message)

        messages_by_date = {day: buckets[day] for day in sorted(buckets)}
        dated_keys = [day for day in messages_by_date if day != UNDATED_KEY]

        return cls(
            identity=identity,
            messages_by_date=messages_by_date,
            total_message_count=len(ordered),
            first_date=min(dated_keys) if dated_keys else None,
            last_date=max(dated_keys) if dated_keys else None,
        )

    def iter_messages(self):
        """Yield (day, message) pairs in key order."""
        for day, bucket in self.messages_by_date.items():
            for message in bucket:
                yield day, message
