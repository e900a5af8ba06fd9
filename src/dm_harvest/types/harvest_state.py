from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from dm_harvest.types.records import ConversationDetail, ConversationSummary


class CollectorPhase(Enum):
    SCANNING = "scanning"
    EVALUATING = "evaluating"
    REVEALING = "revealing"
    DONE = "done"


class StopReason(Enum):
    ITEM_CAP = "item_cap"
    CUTOFF = "cutoff"
    NO_PROGRESS = "no_progress"
    SCROLL_CEILING = "scroll_ceiling"


@dataclass
class HarvestState:
    """Everything one harvest run mutates. Owned by the collector, never shared."""

    accumulated: list[ConversationSummary] = field(default_factory=list)
    processed_identities: set[str] = field(default_factory=set)
    # Only conversations whose detail extraction succeeded
    details: dict[str, ConversationDetail] = field(default_factory=dict)
    scroll_attempts: int = 0
    no_progress_streak: int = 0
    reached_end: bool = False
    phase: CollectorPhase = CollectorPhase.SCANNING
    passes: int = 0
    # Last-activity timestamp of the most recently seen (not necessarily admitted) item
    last_seen_timestamp: Optional[str] = None
    cutoff_crossed: bool = False
    stop_reason: Optional[StopReason] = None
    # Identities admitted but left summary-only because open/extract/close failed
    failed_details: list[str] = field(default_factory=list)
    admitted_last_pass: int = 0

    @property
    def admitted_count(self) -> int:
        return len(self.accumulated)


@dataclass
class HarvestResult:
    summaries: list[ConversationSummary]
    details: list[ConversationDetail]
    stop_reason: Optional[StopReason]
    passes: int
    scroll_attempts: int
    failed_details: list[str]

    @classmethod
    def from_state(cls, state: HarvestState) -> "HarvestResult":
        return cls(
            summaries=list(state.accumulated),
            details=[
                state.details[s.identity] for s in state.accumulated if s.identity in state.details
            ],
            stop_reason=state.stop_reason,
            passes=state.passes,
            scroll_attempts=state.scroll_attempts,
            failed_details=list(state.failed_details),
        )
