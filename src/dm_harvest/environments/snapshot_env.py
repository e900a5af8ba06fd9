from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Optional

from bs4 import BeautifulSoup, Tag

from dm_harvest.extract.extract_summary import normalize_identity
from dm_harvest.extract.selectors import CONVERSATION_AVATAR_SELECTOR, CONVERSATION_SELECTOR
from dm_harvest.types.errors import FatalSetupError, TransientExtractionError
from dm_harvest.utils.logger import logger

LIST_DIR = "list"
CONVERSATIONS_DIR = "conversations"


class SnapshotEnvironment:
    """Replays saved HTML instead of driving a browser.

    Each list snapshot is what the conversation list looked like after one
    more reveal. Conversations are keyed by the handle their avatar links to.
    """

    def __init__(
        self,
        list_snapshots: Sequence[str],
        conversations: Optional[Mapping[str, str]] = None,
        parser: str = "html.parser",
    ):
        self.parser = parser
        self._lists = [BeautifulSoup(html, parser) for html in list_snapshots]
        self._conversations = dict(conversations or {})
        self.position = 0
        self.opened: Optional[str] = None
        # Identities in the order they were opened
        self.open_history: list[str] = []

    @classmethod
    def from_directory(cls, path: str | Path) -> "SnapshotEnvironment":
        """Load `list/*.html` (in name order) and `conversations/<identity>.html`."""
        root = Path(path)
        list_files = sorted((root / LIST_DIR).glob("*.html"))
        if not list_files:
            raise FatalSetupError(f"No list snapshots found in {root / LIST_DIR}")

        conversations = {
            file.stem: file.read_text(encoding="utf-8")
            for file in sorted((root / CONVERSATIONS_DIR).glob("*.html"))
        }
        logger.debug(
            f"Loaded {len(list_files)} list snapshots and {len(conversations)} conversations "
            f"from {root}"
        )
        return cls([file.read_text(encoding="utf-8") for file in list_files], conversations)

    def ensure_ready(self) -> None:
        if not self._lists or not self._lists[0].select(CONVERSATION_SELECTOR):
            raise FatalSetupError("Conversation list snapshot contains no conversations")

    def list_visible_items(self) -> list[Tag]:
        return self._lists[self.position].select(CONVERSATION_SELECTOR)

    def reveal_more(self) -> bool:
        if self.position + 1 < len(self._lists):
            self.position += 1
            return True
        return False

    def open(self, item: Tag) -> BeautifulSoup:
        identity = normalize_identity(
            self.query_attribute(item, CONVERSATION_AVATAR_SELECTOR, "href")
        )
        html = self._conversations.get(identity) if identity else None
        if html is None:
            raise TransientExtractionError(f"No saved conversation for {identity!r}")
        self.opened = identity
        self.open_history.append(identity)
        return BeautifulSoup(html, self.parser)

    def close(self) -> None:
        self.opened = None

    def query_text(self, handle: Tag, selector: str) -> Optional[str]:
        node = handle.select_one(selector) if selector else handle
        if node is None:
            return None
        return node.get_text().strip()

    def query_attribute(self, handle: Tag, selector: str, attr: str) -> Optional[str]:
        node = handle.select_one(selector) if selector else handle
        if node is None:
            return None
        value = node.get(attr)
        # bs4 returns multi-valued attributes such as class as lists
        if isinstance(value, list):
            return " ".join(value)
        return value

    def query_all(self, handle: Tag, selector: str) -> list[Tag]:
        if not selector:
            return [handle]
        return handle.select(selector)
