from datetime import date

from dm_harvest.harvest.termination import TerminationPolicy
from dm_harvest.types.harvest_config import HarvestConfig
from dm_harvest.types.harvest_state import HarvestState, StopReason
from dm_harvest.types.records import ConversationSummary


def _state_with(count, **kwargs):
    state = HarvestState(**kwargs)
    for i in range(count):
        state.accumulated.append(ConversationSummary(identity=f"user{i}"))
        state.processed_identities.add(f"user{i}")
    return state


class TestCrossesCutoff:
    def setup_method(self):
        self.policy = TerminationPolicy(HarvestConfig(cutoff_date=date(2024, 4, 1)))

    def test_strictly_before(self):
        assert self.policy.crosses_cutoff("2024-03-31T23:59:59Z")
        assert not self.policy.crosses_cutoff("2024-04-01T00:00:00Z")
        assert not self.policy.crosses_cutoff("2024-04-15T00:00:00Z")

    def test_unparsable_never_crosses(self):
        assert not self.policy.crosses_cutoff(None)
        assert not self.policy.crosses_cutoff("yesterday-ish")

    def test_no_cutoff(self):
        assert not TerminationPolicy(HarvestConfig()).crosses_cutoff("1999-01-01T00:00:00Z")


class TestEvaluate:
    def test_continue(self):
        policy = TerminationPolicy(HarvestConfig(item_count_cap=5))
        assert policy.evaluate(_state_with(2)) is None

    def test_item_cap(self):
        policy = TerminationPolicy(HarvestConfig(item_count_cap=2))
        assert policy.evaluate(_state_with(2)) == StopReason.ITEM_CAP

    def test_demo_cap(self):
        policy = TerminationPolicy(HarvestConfig(demo_mode=True))
        assert policy.item_cap == 10
        assert policy.evaluate(_state_with(9)) is None
        assert policy.evaluate(_state_with(10)) == StopReason.ITEM_CAP

    def test_cutoff_from_last_seen(self):
        policy = TerminationPolicy(HarvestConfig(cutoff_date=date(2024, 4, 1)))
        state = _state_with(1, last_seen_timestamp="2024-03-01T00:00:00Z")
        assert policy.evaluate(state) == StopReason.CUTOFF

    def test_cutoff_flag(self):
        policy = TerminationPolicy(HarvestConfig(cutoff_date=date(2024, 4, 1)))
        assert policy.evaluate(_state_with(1, cutoff_crossed=True)) == StopReason.CUTOFF

    def test_no_progress(self):
        policy = TerminationPolicy(HarvestConfig())
        assert policy.evaluate(_state_with(1, no_progress_streak=2)) is None
        assert policy.evaluate(_state_with(1, no_progress_streak=3)) == StopReason.NO_PROGRESS

    def test_scroll_ceiling(self):
        policy = TerminationPolicy(HarvestConfig(max_scroll_iterations=4))
        assert policy.evaluate(_state_with(1, scroll_attempts=4)) == StopReason.SCROLL_CEILING

    def test_cap_wins_over_other_reasons(self):
        policy = TerminationPolicy(
            HarvestConfig(item_count_cap=1, cutoff_date=date(2024, 4, 1), max_scroll_iterations=1)
        )
        state = _state_with(
            1,
            cutoff_crossed=True,
            no_progress_streak=5,
            scroll_attempts=5,
        )
        assert policy.evaluate(state) == StopReason.ITEM_CAP
