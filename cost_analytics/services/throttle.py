"""
Request throttle shared by every client that draws on the same upstream quota.
"""

import asyncio
from typing import Awaitable, Callable


class RequestThrottle:
    """Holds every call after the first one back by a fixed delay"""

    def __init__(
        self,
        delay_seconds: float,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.delay_seconds = delay_seconds
        self._sleep = sleep
        self._has_called = False
        self.call_count = 0

    async def wait(self) -> None:
        """Await before issuing an upstream call, whatever the previous call's outcome"""
        if self._has_called and self.delay_seconds > 0:
            await self._sleep(self.delay_seconds)
        self._has_called = True
        self.call_count += 1
