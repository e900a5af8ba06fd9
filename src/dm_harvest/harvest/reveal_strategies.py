import random
from collections.abc import Sequence
from enum import Enum
from typing import Optional, Protocol

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page, TimeoutError

from dm_harvest.types.errors import EnvironmentTimeoutError
from dm_harvest.utils.logger import logger


class ScrollPattern(Enum):
    NORMAL = "normal"
    FAST = "fast"
    SLOW = "slow"
    BOUNCE = "bounce"


# Multiplier ranges for viewport height when scrolling in different patterns
# (min_multiplier, max_multiplier) - random value in this range * viewport height = scroll amount
SCROLL_PATTERN_CONFIGS = {
    ScrollPattern.NORMAL: (0.8, 1.2),  # Regular scrolling, ~1 viewport
    ScrollPattern.FAST: (1.5, 2.5),  # Fast scrolling, 1.5-2.5 viewports at once
    ScrollPattern.SLOW: (0.5, 0.8),  # Slow scrolling, less than 1 viewport
    ScrollPattern.BOUNCE: (1.2, 1.5),  # Bounce scrolling, slightly more than 1 viewport
}
# For bounce pattern: ratio range of up-scroll compared to down-scroll
BOUNCE_SCROLL_UP_RATIO = (0.3, 0.5)
# For bounce pattern: pause (ms) between down and up scroll
BOUNCE_SCROLL_PAUSE_MS = (200, 400)

# Scrollable containers that may hold the conversation list, most specific first
DEFAULT_CONTAINER_SELECTORS = (
    '[data-testid="DM_ScrollerContainer"]',
    '[aria-label*="Timeline: Messages"]',
    '[aria-label*="Conversation"]',
    '[data-testid="primaryColumn"]',
    '[data-testid="DMDrawer"]',
    'div[role="region"]',
    'main[role="main"]',
    'section[role="region"]',
)

# Scrolls the first container that actually moves; falls back to the window
CONTAINER_SCROLL_JS = """([selectors, amount]) => {
    for (const selector of selectors) {
        const container = document.querySelector(selector);
        if (container) {
            const before = container.scrollTop;
            container.scrollTop += amount;
            if (container.scrollTop > before) {
                return true;
            }
        }
    }
    const beforeY = window.scrollY;
    window.scrollBy(0, amount);
    return window.scrollY > beforeY;
}"""


class RevealStrategy(Protocol):
    """One way of making the list reveal more items. Returns whether it worked."""

    name: str

    def reveal(self, page: Page) -> bool: ...


class ContainerScrollStrategy:
    name = "container_scroll"

    def __init__(
        self, selectors: Sequence[str] = DEFAULT_CONTAINER_SELECTORS, amount_px: int = 500
    ):
        self.selectors = list(selectors)
        self.amount_px = amount_px

    def reveal(self, page: Page) -> bool:
        return bool(page.evaluate(CONTAINER_SCROLL_JS, [self.selectors, self.amount_px]))


class HumanScrollStrategy:
    """Window scroll by a randomized fraction of the viewport."""

    name = "human_scroll"

    def __init__(self, pattern: Optional[ScrollPattern] = None):
        self.pattern = pattern

    def reveal(self, page: Page) -> bool:
        pattern = self.pattern or random.choice(list(ScrollPattern))
        viewport_height = page.evaluate("window.innerHeight")
        before = page.evaluate("window.scrollY")

        down_amount = int(viewport_height * random.uniform(*SCROLL_PATTERN_CONFIGS[pattern]))
        page.evaluate(f"window.scrollBy(0, {down_amount})")

        if pattern == ScrollPattern.BOUNCE:
            up_amount = int(down_amount * random.uniform(*BOUNCE_SCROLL_UP_RATIO))
            page.wait_for_timeout(random.randint(*BOUNCE_SCROLL_PAUSE_MS))
            page.evaluate(f"window.scrollBy(0, -{up_amount})")

        return page.evaluate("window.scrollY") > before


class MouseWheelStrategy:
    """Small wheel increments over the middle of the viewport."""

    name = "mouse_wheel"

    def __init__(self, steps: int = 15, delta_px: int = 80, step_pause_ms: int = 100):
        self.steps = steps
        self.delta_px = delta_px
        self.step_pause_ms = step_pause_ms

    def reveal(self, page: Page) -> bool:
        viewport = page.viewport_size or {"width": 1280, "height": 800}
        page.mouse.move(viewport["width"] / 2, viewport["height"] / 2)
        page.wait_for_timeout(300)
        for _ in range(self.steps):
            page.mouse.wheel(0, self.delta_px)
            page.wait_for_timeout(self.step_pause_ms)
        return True


class KeyboardStrategy:
    name = "keyboard"

    def __init__(self, arrow_presses: int = 10):
        self.arrow_presses = arrow_presses

    def reveal(self, page: Page) -> bool:
        page.keyboard.press("PageDown")
        page.wait_for_timeout(500)
        for _ in range(self.arrow_presses):
            page.keyboard.press("ArrowDown")
            page.wait_for_timeout(50)
        return True


class ScrollbarDragStrategy:
    """Last resort: drag the right-hand scrollbar area upward."""

    name = "scrollbar_drag"

    def reveal(self, page: Page) -> bool:
        viewport = page.viewport_size or {"width": 1280, "height": 800}
        x = viewport["width"] - 10
        page.mouse.move(x, viewport["height"] / 2)
        page.mouse.down()
        page.wait_for_timeout(300)
        page.mouse.move(x, 100, steps=10)
        page.wait_for_timeout(300)
        page.mouse.up()
        return True


def default_reveal_strategies() -> list[RevealStrategy]:
    """Verifiable strategies first, blind ones after."""
    return [
        ContainerScrollStrategy(),
        HumanScrollStrategy(),
        MouseWheelStrategy(),
        KeyboardStrategy(),
        ScrollbarDragStrategy(),
    ]


def reveal_with_strategies(page: Page, strategies: Sequence[RevealStrategy]) -> Optional[str]:
    """Try each strategy in order until one reports success.

    Returns the name of the strategy that worked, or None if none did.
    Raises EnvironmentTimeoutError if nothing worked and at least one
    strategy timed out.
    """
    timed_out = False
    for strategy in strategies:
        try:
            if strategy.reveal(page):
                logger.debug(f"Revealed more items with {strategy.name}")
                return strategy.name
            logger.debug(f"Reveal strategy {strategy.name} made no progress")
        except TimeoutError as e:
            timed_out = True
            logger.warning(f"Reveal strategy {strategy.name} timed out: {e}")
        except PlaywrightError as e:
            logger.warning(f"Reveal strategy {strategy.name} failed: {e}")

    if timed_out:
        raise EnvironmentTimeoutError("All reveal strategies failed, at least one timed out")
    return None
