import asyncio
import time
from datetime import datetime, timezone


class MonotonicClock:
    """Time source for cycle pacing; ``now`` is monotonic seconds."""

    def now(self) -> float:
        return time.monotonic()

    def wall(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, ms: float) -> None:
        await asyncio.sleep(ms / 1000)
