from collections.abc import Iterable
from typing import Any

from dm_harvest.serialize.flat_rows import sender_label
from dm_harvest.types.records import ConversationDetail, ConversationSummary, MessageRecord


def message_to_dict(message: MessageRecord) -> dict[str, Any]:
    quoted = message.quoted_content
    return {
        "text": message.text,
        "timestamp": message.timestamp,
        "direction": message.direction.value,
        "is_sent": message.is_sent,
        "position": sender_label(message),
        "date": message.date,
        "quoted_content": {"text": quoted.text, "user": quoted.attributed_user} if quoted else None,
    }


def detail_to_dict(detail: ConversationDetail) -> dict[str, Any]:
    return {
        "profile_id": detail.identity,
        "messages_by_date": {
            day: [message_to_dict(message) for message in messages]
            for day, messages in detail.messages_by_date.items()
        },
        "total_messages": detail.total_message_count,
        "first_message_date": detail.first_date,
        "last_message_date": detail.last_date,
    }


def to_hierarchical(details: Iterable[ConversationDetail]) -> list[dict[str, Any]]:
    return [detail_to_dict(detail) for detail in details]


def summaries_to_hierarchical(summaries: Iterable[ConversationSummary]) -> list[dict[str, Any]]:
    """Lightweight output for runs that never opened a conversation."""
    return [
        {"profile_id": summary.identity, "last_activity": summary.last_activity_timestamp}
        for summary in summaries
    ]


def harvest_to_hierarchical(
    summaries: Iterable[ConversationSummary], details: Iterable[ConversationDetail]
) -> list[dict[str, Any]]:
    """Every admitted conversation in list order.

    Conversations whose messages could not be read are written with an empty
    `messages_by_date`, zero messages and null dates.
    """
    by_identity = {detail.identity: detail for detail in details}
    return [
        detail_to_dict(
            by_identity.get(summary.identity)
            or ConversationDetail.from_messages(summary.identity, [])
        )
        for summary in summaries
    ]
