from asyncio import Lock, sleep
from time import monotonic


class RateLimiter:

    def __init__(self, rate: int = 0) -> None:
        """Spaces out slots to at most rate per second, in the order requested.

        Args:
            rate (int, optional): Slots per second. 0 means unlimited.
                Defaults to 0.
        """
        if rate < 0:
            raise ValueError("rate must not be negative.")
        self.rate = rate
        self.interval = 1 / rate if rate else 0.0
        self._next_slot: float | None = None
        self._lock = Lock()

    @property
    def unlimited(self) -> bool:
        return not self.rate

    async def take(self) -> float:
        """Wait for the next free slot.

        Returns:
            float: The monotonic time the slot was granted at.
        """
        if self.unlimited:
            return monotonic()

        async with self._lock:
            now = monotonic()
            if self._next_slot is not None and self._next_slot > now:
                await sleep(self._next_slot - now)
                slot = self._next_slot
            else:
                slot = now
            self._next_slot = slot + self.interval
            return slot
