"""
MODULE OVERVIEW:
The reconnect decision for one subscription.

WHAT IS HAPPENING HERE:
Whenever a connection attempt fails, the subscription asks `decide()` what to
do next. The answer is checked in a fixed order: a stop request wins, then the
retry limit, and only then is a new attempt scheduled with a jittered delay.
The delay itself is `wait()`, which races the timer against the stop flag so
an unsubscribe during backoff never lets another attempt start.
"""
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from loguru import logger

from resilient_sse.shared.backoff import backoff_delay
from resilient_sse.shared.client_utils import call_hook
from resilient_sse.shared.models import RetryOptions


class RetryAction(str, Enum):
    STOP = "stop"
    LIMIT = "limit"
    RETRY = "retry"


@dataclass
class RetryDecision:
    action: RetryAction
    next_attempt: int
    delay_ms: float = 0.0


class RetryController:
    def __init__(
        self,
        options: RetryOptions,
        stopped: asyncio.Event,
        delay_fn: Callable[[int, float, float], float] = backoff_delay,
    ):
        self.options = options
        self._stopped = stopped
        self._delay_fn = delay_fn
        self._limit_notified = False

    def decide(self, attempt: int) -> RetryDecision:
        if self._stopped.is_set():
            return RetryDecision(RetryAction.STOP, attempt)

        max_attempts = self.options.max_attempts
        if max_attempts != 0 and attempt >= max_attempts:
            return RetryDecision(RetryAction.LIMIT, attempt)

        delay_ms = self._delay_fn(attempt, self.options.min_delay_ms, self.options.max_delay_ms)
        return RetryDecision(RetryAction.RETRY, attempt + 1, delay_ms)

    async def notify_limit(self) -> None:
        """Run the limit callback, at most once per controller."""
        if self._limit_notified:
            return
        self._limit_notified = True
        logger.info(f"event=limit_reached max_attempts={self.options.max_attempts}")
        await call_hook(self.options.on_limit_reached, name="on_limit_reached")

    async def wait(self, delay_ms: float) -> bool:
        """
        Hold off for `delay_ms`. Returns False if stop was requested meanwhile,
        in which case no further attempt may be made.
        """
        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=delay_ms / 1000.0)
        except asyncio.TimeoutError:
            return not self._stopped.is_set()
        return False
