import time
from collections.abc import Callable, Sequence
from contextlib import contextmanager
from typing import Any, Optional

from playwright.sync_api import ElementHandle, Page, TimeoutError
from playwright.sync_api import Error as PlaywrightError

from dm_harvest.extract.selectors import CONVERSATION_SELECTOR, MESSAGE_ENTRY_SELECTOR
from dm_harvest.harvest.reveal_strategies import (
    RevealStrategy,
    default_reveal_strategies,
    reveal_with_strategies,
)
from dm_harvest.types.errors import (
    EnvironmentTimeoutError,
    FatalSetupError,
    TransientExtractionError,
)
from dm_harvest.types.harvest_config import HarvestConfig
from dm_harvest.utils.logger import logger
from dm_harvest.utils.random_delay import random_delay


@contextmanager
def playwright_errors(action: str):
    """Translate Playwright exceptions into harvest errors."""
    try:
        yield
    except TimeoutError as e:
        raise EnvironmentTimeoutError(f"Timed out {action}: {e}") from e
    except PlaywrightError as e:
        raise TransientExtractionError(f"Failed {action}: {e}") from e


class PlaywrightEnvironment:
    """Environment backed by a live, logged-in Playwright page on the messages screen."""

    def __init__(
        self,
        page: Page,
        config: HarvestConfig,
        strategies: Optional[Sequence[RevealStrategy]] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.page = page
        self.config = config
        self.strategies = list(strategies) if strategies is not None else default_reveal_strategies()
        self._sleep = sleep

    def ensure_ready(self) -> None:
        logger.info("Waiting for the conversation list to load...")
        try:
            self.page.wait_for_selector(
                CONVERSATION_SELECTOR, timeout=self.config.initial_load_timeout_ms
            )
        except PlaywrightError as e:
            raise FatalSetupError(f"Conversation list never rendered: {e}") from e

    def list_visible_items(self) -> list[ElementHandle]:
        with playwright_errors("listing conversations"):
            items = self.page.query_selector_all(CONVERSATION_SELECTOR)

        visible = []
        for item in items:
            try:
                if item.is_visible():
                    visible.append(item)
            except PlaywrightError as e:
                # Item was re-rendered between the query and the check
                logger.debug(f"Dropping detached conversation item: {e}")
        return visible

    def reveal_more(self) -> bool:
        return reveal_with_strategies(self.page, self.strategies) is not None

    def open(self, item: ElementHandle) -> Page:
        with playwright_errors("opening conversation"):
            item.click()
            self.page.wait_for_selector(MESSAGE_ENTRY_SELECTOR, timeout=self.config.open_timeout_ms)
        random_delay(self.config.open_settle_ms / 1000, sleep=self._sleep)
        return self.page

    def close(self) -> None:
        with playwright_errors("returning to the conversation list"):
            self.page.keyboard.press("Escape")
        random_delay(self.config.close_settle_ms / 1000, sleep=self._sleep)

    def query_text(self, handle: Any, selector: str) -> Optional[str]:
        with playwright_errors(f"reading text of {selector or 'element'}"):
            element = handle.query_selector(selector) if selector else handle
            if element is None:
                return None
            return element.text_content()

    def query_attribute(self, handle: Any, selector: str, attr: str) -> Optional[str]:
        with playwright_errors(f"reading {attr} of {selector or 'element'}"):
            element = handle.query_selector(selector) if selector else handle
            if element is None:
                return None
            return element.get_attribute(attr)

    def query_all(self, handle: Any, selector: str) -> list[Any]:
        if not selector:
            return [handle]
        with playwright_errors(f"querying {selector}"):
            return handle.query_selector_all(selector)
