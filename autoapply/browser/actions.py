"""Reusable waiting primitives.

Design rules:
  - All delays randomized. Floor values enforced in code.
  - The pipeline never calls asyncio.sleep() itself; it waits through
    RunContext.sleep/delay, which are built on cancellable_sleep.
  - A stop event turns any wait into a suspension point that returns early.
"""

import asyncio
import logging
import random

logger = logging.getLogger(__name__)


def random_duration(min_s: float, max_s: float) -> float:
    """Pick a random duration between min_s and max_s seconds.

    Floor enforcement: negative minimums become zero and max_s is raised to
    min_s when it is smaller.
    """
    floor = max(min_s, 0.0)
    ceiling = max(max_s, floor)
    return random.uniform(floor, ceiling)


async def cancellable_sleep(seconds: float, stop_event: asyncio.Event) -> bool:
    """Wait up to ``seconds`` or until stop_event is set.

    Returns True if the full duration elapsed, False if the event fired.
    A non-positive duration still yields to the event loop once.
    """
    if stop_event.is_set():
        return False
    if seconds <= 0:
        await asyncio.sleep(0)
        return not stop_event.is_set()
    try:
        await asyncio.wait_for(stop_event.wait(), timeout=seconds)
    except asyncio.TimeoutError:
        return True
    return False
