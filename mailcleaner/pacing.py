"""
Pacing policies used between Gmail API calls to stay under rate limits
"""

import asyncio

from mailcleaner.models import RATE_LIMIT_DELAY


class FixedDelayPacer:
    """Sleeps a fixed delay before the next call"""

    def __init__(self, delay: float = RATE_LIMIT_DELAY):
        self.delay = delay

    async def wait_before_next_call(self) -> None:
        await asyncio.sleep(self.delay)


class NoDelayPacer:
    """Never waits; counts how often it was asked to"""

    def __init__(self):
        self.calls = 0

    async def wait_before_next_call(self) -> None:
        self.calls += 1
