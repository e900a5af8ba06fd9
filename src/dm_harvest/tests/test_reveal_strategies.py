from unittest import mock

import pytest
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError

from dm_harvest.harvest.reveal_strategies import (
    ContainerScrollStrategy,
    HumanScrollStrategy,
    KeyboardStrategy,
    MouseWheelStrategy,
    ScrollPattern,
    default_reveal_strategies,
    reveal_with_strategies,
)
from dm_harvest.types.errors import EnvironmentTimeoutError


class StubStrategy:
    def __init__(self, name, outcome):
        self.name = name
        self.outcome = outcome
        self.calls = 0

    def reveal(self, page):
        self.calls += 1
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


class TestRevealWithStrategies:
    def test_first_success_wins(self):
        first = StubStrategy("first", False)
        second = StubStrategy("second", True)
        third = StubStrategy("third", True)

        assert reveal_with_strategies(mock.MagicMock(), [first, second, third]) == "second"
        assert third.calls == 0

    def test_playwright_error_falls_through(self):
        broken = StubStrategy("broken", PlaywrightError("element detached"))
        working = StubStrategy("working", True)
        assert reveal_with_strategies(mock.MagicMock(), [broken, working]) == "working"

    def test_nothing_worked(self):
        assert reveal_with_strategies(mock.MagicMock(), [StubStrategy("a", False)]) is None

    def test_timeout_surfaces_when_nothing_worked(self):
        strategies = [StubStrategy("slow", TimeoutError("timed out")), StubStrategy("b", False)]
        with pytest.raises(EnvironmentTimeoutError):
            reveal_with_strategies(mock.MagicMock(), strategies)

    def test_timeout_ignored_when_a_later_strategy_works(self):
        strategies = [StubStrategy("slow", TimeoutError("timed out")), StubStrategy("ok", True)]
        assert reveal_with_strategies(mock.MagicMock(), strategies) == "ok"


def test_container_scroll_reports_page_result():
    page = mock.MagicMock()
    page.evaluate.return_value = False
    strategy = ContainerScrollStrategy(selectors=["#list"], amount_px=300)

    assert strategy.reveal(page) is False
    script, args = page.evaluate.call_args[0]
    assert args == [["#list"], 300]


def test_human_scroll_detects_movement():
    page = mock.MagicMock()
    # innerHeight, scrollY before, scrollBy, scrollY after
    page.evaluate.side_effect = [800, 0, None, 900]

    assert HumanScrollStrategy(ScrollPattern.NORMAL).reveal(page) is True
    scroll_call = page.evaluate.call_args_list[2][0][0]
    amount = int(scroll_call.split(",")[1].strip(" )"))
    assert 640 <= amount <= 960


def test_human_scroll_bounce_scrolls_back_up():
    page = mock.MagicMock()
    page.evaluate.side_effect = [800, 0, None, None, 700]

    assert HumanScrollStrategy(ScrollPattern.BOUNCE).reveal(page) is True
    assert "-" in page.evaluate.call_args_list[3][0][0]
    page.wait_for_timeout.assert_called_once()


def test_human_scroll_without_movement():
    page = mock.MagicMock()
    page.evaluate.side_effect = [800, 500, None, 500]
    assert HumanScrollStrategy(ScrollPattern.SLOW).reveal(page) is False


def test_mouse_wheel_steps():
    page = mock.MagicMock()
    page.viewport_size = {"width": 1000, "height": 600}

    assert MouseWheelStrategy(steps=4, delta_px=80).reveal(page) is True
    page.mouse.move.assert_called_once_with(500, 300)
    assert page.mouse.wheel.call_count == 4


def test_keyboard_presses():
    page = mock.MagicMock()
    KeyboardStrategy(arrow_presses=3).reveal(page)
    keys = [c[0][0] for c in page.keyboard.press.call_args_list]
    assert keys == ["PageDown", "ArrowDown", "ArrowDown", "ArrowDown"]


def test_default_order_starts_with_verifiable_strategies():
    names = [strategy.name for strategy in default_reveal_strategies()]
    assert names[:2] == ["container_scroll", "human_scroll"]
    assert names[-1] == "scrollbar_drag"
