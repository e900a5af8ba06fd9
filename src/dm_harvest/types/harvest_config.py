import os
from datetime import date, datetime
from typing import Optional

from dateutil.relativedelta import relativedelta
from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Safety valve against runaway scroll loops
MAX_SCROLL_ITERATIONS = 500
# Consecutive passes without a new conversation before stopping
NO_PROGRESS_THRESHOLD = 3
# Number of conversations processed in demo mode
DEMO_LIMIT = 10
# Pause after each reveal so lazily rendered items can appear
SETTLE_INTERVAL_MS = 1500
# Upper bound for the poll-until-stable settle mode
SETTLE_MAX_WAIT_MS = 5000
# Interval between item-count checks in poll-until-stable mode
STABLE_POLL_INTERVAL_MS = 250
# Maximum time to wait for messages to appear after opening a conversation
OPEN_TIMEOUT_MS = 5000
# Brief pause after opening a conversation
OPEN_SETTLE_MS = 1000
# Brief pause after closing a conversation and returning to the list
CLOSE_SETTLE_MS = 500
# Maximum time to wait for the conversation list to render before aborting
INITIAL_LOAD_TIMEOUT_MS = 30000
# Default look-back window when no cutoff date is given
DEFAULT_MONTHS_BACK = 1

ENV_PREFIX = "DM_HARVEST_"


def default_cutoff_date(months_back: int = DEFAULT_MONTHS_BACK) -> date:
    """The date `months_back` calendar months before today."""
    return (datetime.now() - relativedelta(months=months_back)).date()


class HarvestConfig(BaseModel):
    # Items whose last activity is strictly before this date stop the traversal
    cutoff_date: Optional[date] = None

    # Hard cap on admitted conversations (None = unbounded)
    item_count_cap: Optional[int] = Field(default=None, ge=1)

    # Stop conditions
    max_scroll_iterations: int = Field(default=MAX_SCROLL_ITERATIONS, ge=1)
    no_progress_threshold: int = Field(default=NO_PROGRESS_THRESHOLD, ge=1)

    # Demo mode caps the run at demo_limit conversations
    demo_mode: bool = False
    demo_limit: int = Field(default=DEMO_LIMIT, ge=1)

    # Open each admitted conversation and extract its messages
    full_history: bool = True

    # Settle behavior after each reveal
    settle_interval_ms: int = Field(default=SETTLE_INTERVAL_MS, ge=0)
    settle_jitter_factor: float = Field(default=0.0, ge=0.0, le=1.0)
    settle_until_stable: bool = False
    settle_max_wait_ms: int = Field(default=SETTLE_MAX_WAIT_MS, ge=0)
    stable_poll_interval_ms: int = Field(default=STABLE_POLL_INTERVAL_MS, ge=1)

    # Timeouts (in milliseconds)
    open_timeout_ms: int = Field(default=OPEN_TIMEOUT_MS, ge=0)
    open_settle_ms: int = Field(default=OPEN_SETTLE_MS, ge=0)
    close_settle_ms: int = Field(default=CLOSE_SETTLE_MS, ge=0)
    initial_load_timeout_ms: int = Field(default=INITIAL_LOAD_TIMEOUT_MS, ge=0)

    # Debug options
    debug: bool = False
    debug_file: Optional[str] = None

    @property
    def effective_item_cap(self) -> Optional[int]:
        """The tighter of the explicit cap and the demo limit."""
        demo_cap = self.demo_limit if self.demo_mode else None
        caps = [cap for cap in (self.item_count_cap, demo_cap) if cap is not None]
        return min(caps) if caps else None

    @classmethod
    def from_env(cls, **overrides) -> "HarvestConfig":
        """Build a config from DM_HARVEST_* variables (and a .env file), then apply overrides.

        Overrides whose value is None are ignored so CLI flags that were not
        given fall through to the environment and the defaults.
        """
        load_dotenv()

        values: dict = {}
        for name in cls.model_fields:
            raw = os.getenv(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw

        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls.model_validate(values)
