"""Weighted token-bucket rate limiting for outbound API requests."""

import asyncio
import itertools
import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional

logger = logging.getLogger(__name__)


@dataclass
class PendingRequest:
    """A caller queued for budget, in arrival order."""

    weight: float
    sequence: int
    arrived_at: float
    turn: "asyncio.Future[None]" = field(repr=False)


class RateLimiter:
    """Token bucket with continuous refill and FIFO grants.

    Budget is measured in request weight. The bucket starts full, refills at
    ``refill_per_second`` up to ``capacity``, and every grant deducts the
    request's weight in one step. Waiters are served strictly in arrival
    order: while the head of the queue waits for refill, later (smaller)
    requests wait behind it.

    A weight larger than ``capacity`` can never be covered by the bucket, so
    it is clamped to ``capacity`` and granted once the bucket is full.
    """

    def __init__(
        self,
        capacity: int = 1200,
        refill_per_second: float = 20.0,
    ):
        """Initialize rate limiter.

        Args:
            capacity: Maximum budget in weight units
            refill_per_second: Weight units regenerated per second
        """
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        if refill_per_second <= 0:
            raise ValueError("refill_per_second must be positive")

        self.capacity = capacity
        self.refill_per_second = refill_per_second

        self._tokens = float(capacity)
        self._last_refill = time.monotonic()
        self._queue: Deque[PendingRequest] = deque()
        self._sequence = itertools.count()

    @property
    def available_tokens(self) -> float:
        """Current budget, refilled up to now."""
        self._refill()
        return self._tokens

    @property
    def pending_count(self) -> int:
        """Number of callers waiting for budget."""
        return len(self._queue)

    async def wait_for_token(self, weight: float = 1) -> None:
        """Suspend until ``weight`` units are available, then deduct them.

        Args:
            weight: Request weight (must be positive)
        """
        if weight <= 0:
            raise ValueError("weight must be positive")

        cost = self._clamp(weight)

        if not self._queue:
            self._refill()
            if self._tokens >= cost:
                self._tokens -= cost
                return

        request = PendingRequest(
            weight=cost,
            sequence=next(self._sequence),
            arrived_at=time.monotonic(),
            turn=asyncio.get_running_loop().create_future(),
        )
        self._queue.append(request)
        if self._queue[0] is request:
            request.turn.set_result(None)

        try:
            await request.turn
            while True:
                self._refill()
                if self._tokens >= request.weight:
                    self._tokens -= request.weight
                    return
                deficit = request.weight - self._tokens
                await asyncio.sleep(deficit / self.refill_per_second)
        finally:
            self._leave(request)

    def _leave(self, request: PendingRequest) -> None:
        """Drop ``request`` from the queue and hand the turn to the new head."""
        was_head = bool(self._queue) and self._queue[0] is request
        try:
            self._queue.remove(request)
        except ValueError:
            return
        if was_head and self._queue:
            head = self._queue[0]
            if not head.turn.done():
                head.turn.set_result(None)

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        if elapsed > 0:
            self._tokens = min(
                float(self.capacity),
                self._tokens + elapsed * self.refill_per_second,
            )
            self._last_refill = now

    def _clamp(self, weight: float) -> float:
        if weight > self.capacity:
            logger.warning(
                "Request weight %s exceeds bucket capacity %s; clamping",
                weight,
                self.capacity,
            )
            return float(self.capacity)
        return float(weight)

    def reset(self, tokens: Optional[float] = None) -> None:
        """Refill the bucket (or set it to ``tokens``) without touching waiters."""
        self._tokens = float(self.capacity if tokens is None else min(tokens, self.capacity))
        self._last_refill = time.monotonic()
