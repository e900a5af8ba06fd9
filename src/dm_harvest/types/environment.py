from collections.abc import Sequence
from typing import Any, Optional, Protocol


class Environment(Protocol):
    """Narrow capability set the harvester needs from a browser-automation backend.

    Handles are opaque to the core: the Playwright backend hands out
    ElementHandles, the snapshot backend BeautifulSoup tags. An empty selector
    addresses the handle itself.
    """

    def ensure_ready(self) -> None:
        """Block until the conversation list is rendered. Raises FatalSetupError."""
        ...

    def list_visible_items(self) -> Sequence[Any]:
        """Handles of the conversation items currently revealed, in list order."""
        ...

    def reveal_more(self) -> bool:
        """Ask the UI to reveal more items. Returns whether any reveal action succeeded."""
        ...

    def open(self, item: Any) -> Any:
        """Open a conversation and return a handle to its detail view."""
        ...

    def close(self) -> None:
        """Return from the open conversation to the list."""
        ...

    def query_text(self, handle: Any, selector: str) -> Optional[str]: ...

    def query_attribute(self, handle: Any, selector: str, attr: str) -> Optional[str]: ...

    def query_all(self, handle: Any, selector: str) -> Sequence[Any]: ...
