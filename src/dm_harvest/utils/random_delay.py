import random
import time
from collections.abc import Callable

from dm_harvest.utils.logger import logger


def random_delay(
    base_delay: float, variation: float = 0.2, sleep: Callable[[float], None] = time.sleep
) -> None:
    """Add random variation to delays."""
    sleep(base_delay * random.uniform(1 - variation, 1 + variation))


def jittered_seconds(base_ms: int, jitter_factor: float = 0.0) -> float:
    """Convert a millisecond delay to seconds with optional ±jitter applied."""
    base_delay = base_ms / 1000
    if jitter_factor <= 0 or base_delay <= 0:
        return max(0.0, base_delay)
    jitter = base_delay * jitter_factor * random.choice([-1, 1]) * random.random()
    return max(0.0, base_delay + jitter)


def settle_delay(
    base_ms: int, jitter_factor: float = 0.0, sleep: Callable[[float], None] = time.sleep
) -> None:
    """Wait for lazily rendered content to settle."""
    delay = jittered_seconds(base_ms, jitter_factor)
    if delay <= 0:
        return
    logger.debug(f"Waiting for {delay:.2f} seconds...")
    sleep(delay)
