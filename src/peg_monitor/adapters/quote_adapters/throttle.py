from __future__ import annotations

import asyncio
import random
import time


class RequestThrottle:
    """Spaces out consecutive request starts to a single provider.

    Each adapter owns one throttle, so providers never wait on each other.
    The request itself runs outside the lock; only the start slot is serialized.
    """

    def __init__(self, interval: float, jitter: float = 0.0):
        if interval < 0 or jitter < 0:
            raise ValueError("Throttle interval and jitter must be non-negative")
        self.interval = interval
        self.jitter = jitter
        self._lock = asyncio.Lock()
        self._next_slot = 0.0

    async def wait(self) -> None:
        """Block until the next request slot for this provider is available."""
        if self.interval <= 0 and self.jitter <= 0:
            return
        async with self._lock:
            delay = self._next_slot - time.monotonic()
            if delay > 0:
                await asyncio.sleep(delay)
            spacing = self.interval + random.random() * self.jitter
            self._next_slot = time.monotonic() + spacing
