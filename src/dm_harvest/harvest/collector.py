import time
from collections.abc import Callable
from typing import Any, Optional

from dm_harvest.extract.extract_detail import extract_detail
from dm_harvest.extract.extract_summary import extract_summary
from dm_harvest.harvest.accumulator import DedupAccumulator
from dm_harvest.harvest.termination import TerminationPolicy
from dm_harvest.types.environment import Environment
from dm_harvest.types.errors import (
    EnvironmentTimeoutError,
    HarvestError,
    TransientExtractionError,
)
from dm_harvest.types.harvest_config import HarvestConfig
from dm_harvest.types.harvest_state import (
    CollectorPhase,
    HarvestResult,
    HarvestState,
)
from dm_harvest.utils.logger import logger
from dm_harvest.utils.random_delay import settle_delay
from dm_harvest.utils.save_harvest_log import save_harvest_log


class HarvestCollector:
    """Drives the scan / evaluate / reveal loop over a lazily rendered conversation list.

    Each call to `step` advances the state machine by one phase:

        SCANNING -> EVALUATING -> REVEALING -> SCANNING ... -> DONE

    SCANNING reads every visible item and admits the new ones (opening each
    for its messages in full-history mode). EVALUATING asks the termination
    policy whether to stop. REVEALING asks the environment for more items and
    waits for them to settle.
    """

    def __init__(
        self,
        env: Environment,
        config: HarvestConfig,
        self_identity: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.env = env
        self.config = config
        self.self_identity = self_identity
        self.policy = TerminationPolicy(config)
        self._sleep = sleep

    def run(self) -> HarvestResult:
        """Harvest until a stop condition holds. FatalSetupError propagates."""
        self.env.ensure_ready()

        state = HarvestState()
        while state.phase != CollectorPhase.DONE:
            self.step(state)

        reason = state.stop_reason.value if state.stop_reason else "unknown"
        logger.success(
            f"Harvest finished ({reason}): {state.admitted_count} conversations, "
            f"{len(state.details)} with messages, {state.passes} passes, "
            f"{state.scroll_attempts} scrolls"
        )
        return HarvestResult.from_state(state)

    def step(self, state: HarvestState) -> HarvestState:
        if state.phase == CollectorPhase.SCANNING:
            self._scan(state)
            state.phase = CollectorPhase.EVALUATING
        elif state.phase == CollectorPhase.EVALUATING:
            stop_reason = self.policy.evaluate(state)
            if stop_reason is not None:
                logger.info(f"Stopping: {stop_reason.value}")
                state.stop_reason = stop_reason
                state.phase = CollectorPhase.DONE
                save_harvest_log(
                    self.config,
                    "stop",
                    {"reason": stop_reason.value, "admitted": state.admitted_count},
                )
            else:
                state.phase = CollectorPhase.REVEALING
        elif state.phase == CollectorPhase.REVEALING:
            self._reveal(state)
            state.phase = CollectorPhase.SCANNING
        return state

    def _scan(self, state: HarvestState) -> None:
        state.passes += 1
        accumulator = DedupAccumulator(state)
        size_before = accumulator.size

        try:
            items = self.env.list_visible_items()
        except (EnvironmentTimeoutError, TransientExtractionError) as e:
            logger.warning(f"Could not list conversations: {e}")
            items = []

        for item in items:
            if self.policy.cap_reached(state):
                break

            try:
                candidate = extract_summary(self.env, item)
            except (TransientExtractionError, EnvironmentTimeoutError) as e:
                logger.debug(f"Skipping unreadable conversation item: {e}")
                continue
            if candidate is None or accumulator.seen(candidate.identity):
                continue

            if candidate.last_activity_timestamp:
                state.last_seen_timestamp = candidate.last_activity_timestamp
            if self.policy.crosses_cutoff(candidate.last_activity_timestamp):
                logger.info(
                    f"Reached conversation older than cutoff ({candidate.identity}, "
                    f"{candidate.last_activity_timestamp})"
                )
                state.cutoff_crossed = True
                break

            if not accumulator.admit(candidate):
                continue
            logger.info(f"Conversation {accumulator.size}: {candidate.identity}")
            save_harvest_log(self.config, "admitted", candidate.model_dump())

            if self.config.full_history:
                self._harvest_detail(state, item, candidate.identity)

        state.admitted_last_pass = accumulator.size - size_before
        if state.admitted_last_pass == 0:
            state.no_progress_streak += 1
            logger.debug(
                f"No new conversations this pass ({state.no_progress_streak}/"
                f"{self.config.no_progress_threshold})"
            )
        else:
            state.no_progress_streak = 0

        save_harvest_log(
            self.config,
            "pass",
            {
                "pass": state.passes,
                "visible": len(items),
                "admitted": state.admitted_last_pass,
                "total": state.admitted_count,
                "no_progress_streak": state.no_progress_streak,
            },
        )

    def _harvest_detail(self, state: HarvestState, item: Any, identity: str) -> None:
        """Open one conversation, extract its messages and return to the list.

        Any failure leaves the conversation summary-only.
        """
        detail = None
        closed = False
        try:
            opened = self.env.open(item)
            detail = extract_detail(self.env, opened, identity, self.self_identity)
        except HarvestError as e:
            logger.warning(f"Could not extract messages for {identity}: {e}")
        except AssertionError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error extracting messages for {identity}: {e}")
        finally:
            closed = self._close_detail(identity)

        if detail is not None and closed:
            state.details[identity] = detail
            logger.debug(f"Extracted {detail.total_message_count} messages for {identity}")
            save_harvest_log(
                self.config,
                "detail",
                {"identity": identity, "messages": detail.total_message_count},
            )
        else:
            state.failed_details.append(identity)

    def _close_detail(self, identity: str) -> bool:
        try:
            self.env.close()
            return True
        except HarvestError as e:
            logger.warning(f"Could not close conversation {identity}: {e}")
            return False

    def _reveal(self, state: HarvestState) -> None:
        state.scroll_attempts += 1
        try:
            revealed = self.env.reveal_more()
        except EnvironmentTimeoutError as e:
            logger.warning(f"Timed out revealing more conversations: {e}")
            state.no_progress_streak += 1
            return

        if not revealed:
            state.reached_end = True
            logger.debug("No reveal action succeeded, list may be exhausted")
        save_harvest_log(
            self.config,
            "reveal",
            {"scroll_attempts": state.scroll_attempts, "revealed": revealed},
        )
        self._settle()

    def _settle(self) -> None:
        if self.config.settle_until_stable:
            self._wait_until_stable()
        else:
            settle_delay(
                self.config.settle_interval_ms,
                self.config.settle_jitter_factor,
                sleep=self._sleep,
            )

    def _visible_count(self) -> Optional[int]:
        try:
            return len(self.env.list_visible_items())
        except HarvestError:
            return None

    def _wait_until_stable(self) -> bool:
        """Poll the visible item count until two consecutive checks agree or time runs out."""
        interval = self.config.stable_poll_interval_ms / 1000
        max_wait = self.config.settle_max_wait_ms / 1000

        waited = 0.0
        previous = self._visible_count()
        while waited < max_wait:
            self._sleep(interval)
            waited += interval
            current = self._visible_count()
            if current is not None and current == previous:
                return True
            previous = current

        logger.debug(f"Item count did not stabilize within {max_wait:.2f} seconds")
        return False
