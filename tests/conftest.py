"""Shared pytest fixtures and fake-transport helpers.

Key exports:
    - stream_response: build a streamed httpx.Response from text chunks
    - collect: drain a subscription with a safety timeout
    - wait_for_state: poll until a subscription reaches a given state
"""

import asyncio
from typing import Iterable, Optional

import httpx
import pytest

from resilient_sse.shared.models import SubscriptionState


def stream_response(
    *chunks: str,
    error: Optional[Exception] = None,
    hold: Optional[asyncio.Event] = None,
    status_code: int = 200,
) -> httpx.Response:
    """Streamed response whose body yields `chunks`, then raises `error` or waits on `hold`."""

    async def body():
        for chunk in chunks:
            yield chunk.encode("utf-8")
        if error is not None:
            raise error
        if hold is not None:
            await hold.wait()

    return httpx.Response(status_code, content=body(), headers={"content-type": "text/event-stream"})


def no_delay(attempt: int, min_delay: float, max_delay: float) -> float:
    return 0.0


async def collect(subscription, timeout: float = 5.0) -> list:
    async def drain():
        return [event async for event in subscription]

    return await asyncio.wait_for(drain(), timeout=timeout)


async def wait_for_state(subscription, states: Iterable[SubscriptionState], timeout: float = 5.0) -> None:
    wanted = set(states)

    async def poll():
        while subscription.state not in wanted:
            await asyncio.sleep(0.005)

    await asyncio.wait_for(poll(), timeout=timeout)


@pytest.fixture(autouse=True)
def reset_sse_starlette_app_status():
    """sse-starlette keeps a module-level exit event bound to the first loop that used it."""
    from sse_starlette import sse

    status = getattr(sse, "AppStatus", None)
    if status is not None and hasattr(status, "should_exit_event"):
        status.should_exit_event = None
    yield
