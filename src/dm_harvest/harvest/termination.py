from datetime import datetime
from typing import Optional

from dm_harvest.types.harvest_config import HarvestConfig
from dm_harvest.types.harvest_state import HarvestState, StopReason
from dm_harvest.utils.timestamp import parse_timestamp, start_of_day_utc


class TerminationPolicy:
    """Decides when the traversal stops. Evaluated once per full pass."""

    def __init__(self, config: HarvestConfig):
        self.config = config
        self.item_cap = config.effective_item_cap
        self._cutoff: Optional[datetime] = (
            start_of_day_utc(config.cutoff_date) if config.cutoff_date else None
        )

    def crosses_cutoff(self, timestamp: Optional[str]) -> bool:
        """True if the item's own last-activity time is strictly before the cutoff.

        Missing or unparsable timestamps never cross, so scanning continues.
        """
        if self._cutoff is None:
            return False
        item_time = parse_timestamp(timestamp)
        if item_time is None:
            return False
        return item_time < self._cutoff

    def cap_reached(self, state: HarvestState) -> bool:
        return self.item_cap is not None and state.admitted_count >= self.item_cap

    def evaluate(self, state: HarvestState) -> Optional[StopReason]:
        if self.cap_reached(state):
            return StopReason.ITEM_CAP
        if state.cutoff_crossed or self.crosses_cutoff(state.last_seen_timestamp):
            return StopReason.CUTOFF
        if state.no_progress_streak >= self.config.no_progress_threshold:
            return StopReason.NO_PROGRESS
        if state.scroll_attempts >= self.config.max_scroll_iterations:
            return StopReason.SCROLL_CEILING
        return None
