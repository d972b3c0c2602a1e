"""Unit tests for RetryController decision order, limit callback and cancellable wait."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from resilient_sse.client.retry import RetryAction, RetryController
from resilient_sse.shared.models import RetryOptions


def _fixed_delay(attempt: int, min_delay: float, max_delay: float) -> float:
    return 1234.0


def _controller(**options) -> tuple[RetryController, asyncio.Event]:
    stopped = asyncio.Event()
    return RetryController(RetryOptions(**options), stopped, _fixed_delay), stopped


class TestDecide:
    def test_retry_carries_delay_and_next_attempt(self) -> None:
        controller, _ = _controller(max_attempts=3)
        decision = controller.decide(0)
        assert decision.action is RetryAction.RETRY
        assert decision.next_attempt == 1
        assert decision.delay_ms == 1234.0

    def test_limit_when_attempt_reaches_max(self) -> None:
        controller, _ = _controller(max_attempts=3)
        assert controller.decide(2).action is RetryAction.RETRY
        assert controller.decide(3).action is RetryAction.LIMIT

    def test_zero_max_attempts_means_unlimited(self) -> None:
        controller, _ = _controller(max_attempts=0)
        assert controller.decide(10_000).action is RetryAction.RETRY

    def test_stop_wins_over_limit(self) -> None:
        controller, stopped = _controller(max_attempts=1)
        stopped.set()
        assert controller.decide(5).action is RetryAction.STOP

    def test_delay_fn_gets_attempt_and_bounds(self) -> None:
        delay_fn = MagicMock(return_value=10.0)
        controller = RetryController(
            RetryOptions(min_delay_ms=100, max_delay_ms=900, max_attempts=5), asyncio.Event(), delay_fn
        )
        controller.decide(2)
        delay_fn.assert_called_once_with(2, 100, 900)


class TestNotifyLimit:
    @pytest.mark.asyncio
    async def test_callback_fires_once(self) -> None:
        callback = AsyncMock()
        controller, _ = _controller(max_attempts=1, on_limit_reached=callback)
        await controller.notify_limit()
        await controller.notify_limit()
        callback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_sync_callback_is_supported(self) -> None:
        callback = MagicMock()
        controller, _ = _controller(on_limit_reached=callback)
        await controller.notify_limit()
        callback.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_failing_callback_is_contained(self) -> None:
        callback = MagicMock(side_effect=RuntimeError("boom"))
        controller, _ = _controller(on_limit_reached=callback)
        await controller.notify_limit()
        callback.assert_called_once()

    @pytest.mark.asyncio
    async def test_no_callback_is_fine(self) -> None:
        controller, _ = _controller()
        await controller.notify_limit()


class TestWait:
    @pytest.mark.asyncio
    async def test_elapsed_delay_allows_next_attempt(self) -> None:
        controller, _ = _controller()
        assert await controller.wait(1) is True

    @pytest.mark.asyncio
    async def test_stop_during_delay_cancels_next_attempt(self) -> None:
        controller, stopped = _controller()
        waiter = asyncio.create_task(controller.wait(60_000))
        await asyncio.sleep(0.01)
        stopped.set()
        assert await asyncio.wait_for(waiter, timeout=1.0) is False

    @pytest.mark.asyncio
    async def test_already_stopped_returns_immediately(self) -> None:
        controller, stopped = _controller()
        stopped.set()
        assert await asyncio.wait_for(controller.wait(60_000), timeout=1.0) is False
