from typing import Any, Optional

from dm_harvest.extract.selectors import (
    MESSAGE_DATE_HEADING_SELECTOR,
    MESSAGE_ENTRY_SELECTOR,
    MESSAGE_TEXT_SELECTOR,
    NESTED_ENTRY_BUTTON_SELECTOR,
    OWN_BUBBLE_CLASS,
    QUOTED_BLOCK_SELECTOR,
    QUOTED_USER_SELECTOR,
    TIME_SELECTOR,
)
from dm_harvest.types.environment import Environment
from dm_harvest.types.errors import HarvestError, TransientExtractionError
from dm_harvest.types.records import (
    ConversationDetail,
    Direction,
    MessageRecord,
    QuotedContent,
)
from dm_harvest.utils.logger import logger
from dm_harvest.utils.timestamp import calendar_day


def _has_class(class_attr: Optional[str], class_name: str) -> bool:
    return bool(class_attr) and class_name in class_attr.split()


def classify_direction(env: Environment, node: Any) -> Direction:
    """Best-effort guess of who sent a message bubble.

    Only the own-bubble styling class on the node or its nested entry button
    marks a message as SENT. Links to our own profile are not a cue: they
    also show up in mentions and in quoted tweets of ours. Anything else,
    including read errors, counts as RECEIVED.
    """
    try:
        if _has_class(env.query_attribute(node, "", "class"), OWN_BUBBLE_CLASS):
            return Direction.SENT
        if _has_class(
            env.query_attribute(node, NESTED_ENTRY_BUTTON_SELECTOR, "class"), OWN_BUBBLE_CLASS
        ):
            return Direction.SENT
    except HarvestError as e:
        logger.debug(f"Direction cue unreadable, defaulting to received: {e}")
    return Direction.RECEIVED


def extract_quoted_content(env: Environment, node: Any) -> Optional[QuotedContent]:
    """Extract the first quoted block of a message, if any."""
    blocks = env.query_all(node, QUOTED_BLOCK_SELECTOR)
    if not blocks:
        return None
    block = blocks[0]
    return QuotedContent(
        text=(env.query_text(block, MESSAGE_TEXT_SELECTOR) or "").strip(),
        attributed_user=(env.query_text(block, QUOTED_USER_SELECTOR) or "").strip(),
    )


def extract_message(
    env: Environment,
    node: Any,
    current_date: Optional[str],
) -> tuple[MessageRecord, Optional[str]]:
    """Extract one message node.

    Returns the record and the running date heading to carry to the next node.
    """
    heading_day = calendar_day(env.query_attribute(node, MESSAGE_DATE_HEADING_SELECTOR, "datetime"))
    if heading_day:
        current_date = heading_day

    timestamp = env.query_attribute(node, TIME_SELECTOR, "datetime")
    record = MessageRecord(
        text=(env.query_text(node, MESSAGE_TEXT_SELECTOR) or "").strip(),
        timestamp=timestamp,
        direction=classify_direction(env, node),
        date=current_date or calendar_day(timestamp),
        quoted_content=extract_quoted_content(env, node),
    )
    return record, current_date


def extract_detail(
    env: Environment, opened: Any, identity: str, self_identity: Optional[str] = None
) -> ConversationDetail:
    """Extract the full, date-partitioned message history of an opened conversation.

    Message nodes are read in document order so date headings can be carried
    forward; the resulting records are then re-sorted by their own timestamps.
    `self_identity` is accepted so callers can pass who is logged in, but it
    never decides direction; see `classify_direction`.
    """
    nodes = env.query_all(opened, MESSAGE_ENTRY_SELECTOR)
    logger.debug(f"Found {len(nodes)} message nodes for {identity}")

    messages: list[MessageRecord] = []
    current_date: Optional[str] = None
    for position, node in enumerate(nodes):
        try:
            record, current_date = extract_message(env, node, current_date)
        except TransientExtractionError as e:
            logger.debug(f"Skipping unreadable message {position} in {identity}: {e}")
            continue
        messages.append(record)

    return ConversationDetail.from_messages(identity, messages)
