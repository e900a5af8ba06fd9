"""Small HTML builders for list and conversation snapshots."""

from datetime import datetime, timedelta, timezone
from typing import Optional


def conversation_item(identity: str, timestamp: Optional[str]) -> str:
    time_tag = f'<time datetime="{timestamp}">{timestamp}</time>' if timestamp else ""
    return (
        '<div data-testid="conversation">'
        f'<a data-testid="DM_Conversation_Avatar" href="/{identity}"></a>'
        f"<span>{identity}</span>{time_tag}"
        "</div>"
    )


def list_html(items: list[tuple[str, Optional[str]]]) -> str:
    body = "".join(conversation_item(identity, timestamp) for identity, timestamp in items)
    return f'<div aria-label="Timeline: Messages">{body}</div>'


def message_html(
    text: str,
    timestamp: Optional[str],
    heading: Optional[str] = None,
    sent: bool = False,
    quoted: Optional[tuple[str, str]] = None,
    extra: str = "",
) -> str:
    css = "css-175oi2r r-obd0qt" if sent else "css-175oi2r"
    time_tag = f'<time datetime="{timestamp}"></time>' if timestamp else ""
    heading_tag = f'<div dir="ltr"><time datetime="{heading}"></time></div>' if heading else ""
    quoted_tag = ""
    if quoted:
        quoted_tag = (
            '<div data-testid="DMCompositeMessage">'
            f'<div data-testid="tweetText">{quoted[0]}</div>'
            f'<div data-testid="User-Name">{quoted[1]}</div>'
            "</div>"
        )
    return (
        f'<div data-testid="messageEntry" class="{css}">'
        f'{time_tag}{heading_tag}<div data-testid="tweetText">{text}</div>{quoted_tag}{extra}'
        "</div>"
    )


def conversation_html(messages: list[str]) -> str:
    return f'<div data-testid="DmActivityViewport">{"".join(messages)}</div>'


def growing_snapshots(total: int, per_reveal: int, newest: str = "2024-06-01") -> list[str]:
    """List snapshots where each one is the previous plus `per_reveal` older items."""
    start = datetime.fromisoformat(newest).replace(tzinfo=timezone.utc)
    items = [
        (f"user{i:03d}", (start - timedelta(hours=i)).strftime("%Y-%m-%dT%H:%M:%S.000Z"))
        for i in range(total)
    ]
    return [list_html(items[:end]) for end in range(per_reveal, total + per_reveal, per_reveal)]
