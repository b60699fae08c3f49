"""Two-lane priority queue for collection jobs.

High-priority jobs are served first and FIFO within each lane. To keep the
normal lane from starving, one normal job is served after every
`promotion_interval` consecutive high jobs whenever a normal job is waiting.
"""

import asyncio
from collections import deque

from scout.models.job import JobPriority


class TwoLaneQueue:
    """Asyncio queue with a high and a normal lane.

    Items are job IDs. Review jobs are queued in the normal lane once they
    have been promoted.

    Attributes:
        promotion_interval: Consecutive high items served before a waiting normal one
    """

    def __init__(self, promotion_interval: int = 4):
        """Initialize queue.

        Args:
            promotion_interval: Consecutive high items before one normal item
        """
        if promotion_interval < 1:
            raise ValueError("promotion_interval must be at least 1")
        self.promotion_interval = promotion_interval
        self._high: deque[str] = deque()
        self._normal: deque[str] = deque()
        # One token per queued item; lets get() wait without polling
        self._tokens: asyncio.Queue[None] = asyncio.Queue()
        self._high_streak = 0

    def put(self, job_id: str, priority: JobPriority) -> None:
        """Enqueue a job ID in the lane for its priority."""
        if priority == JobPriority.HIGH:
            self._high.append(job_id)
        else:
            self._normal.append(job_id)
        self._tokens.put_nowait(None)

    async def get(self) -> str:
        """Wait for and remove the next job ID."""
        await self._tokens.get()
        return self._pop()

    def get_nowait(self) -> str:
        """Remove the next job ID without waiting.

        Raises:
            asyncio.QueueEmpty: If both lanes are empty
        """
        self._tokens.get_nowait()
        return self._pop()

    def qsize(self) -> int:
        """Number of queued job IDs across both lanes."""
        return len(self._high) + len(self._normal)

    def lane_sizes(self) -> dict[str, int]:
        """Queued job IDs per lane."""
        return {"high": len(self._high), "normal": len(self._normal)}

    def empty(self) -> bool:
        return self.qsize() == 0

    def _pop(self) -> str:
        take_normal = bool(self._normal) and (
            not self._high or self._high_streak >= self.promotion_interval
        )
        if take_normal:
            self._high_streak = 0
            return self._normal.popleft()
        self._high_streak += 1
        return self._high.popleft()


__all__ = ["TwoLaneQueue"]
