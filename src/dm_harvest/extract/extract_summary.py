from typing import Any, Optional

from dm_harvest.extract.selectors import CONVERSATION_AVATAR_SELECTOR, TIME_SELECTOR
from dm_harvest.types.environment import Environment
from dm_harvest.types.records import ConversationSummary


def normalize_identity(raw: Optional[str]) -> Optional[str]:
    """Turn an avatar href like "/alice" into the handle "alice".

    Only one leading "/" or "@" is removed, so group links such as
    "/messages/123-456" keep their inner separator and get filtered later.
    """
    if raw is None:
        return None
    identity = raw.strip()
    if identity[:1] in ("/", "@"):
        identity = identity[1:]
    identity = identity.strip()
    return identity or None


def extract_summary(env: Environment, item: Any) -> Optional[ConversationSummary]:
    """Pull identity and last-activity timestamp from one visible conversation item.

    Returns None if the item exposes no resolvable identity (transient DOM state).
    """
    href = env.query_attribute(item, CONVERSATION_AVATAR_SELECTOR, "href")
    identity = normalize_identity(href)
    if identity is None:
        return None

    timestamp = env.query_attribute(item, TIME_SELECTOR, "datetime")
    return ConversationSummary(
        identity=identity,
        last_activity_timestamp=timestamp.strip() if timestamp else None,
    )
