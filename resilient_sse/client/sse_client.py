"""
MODULE OVERVIEW:
The Server-Sent Events HTTP client with automatic reconnection.

WHAT IS HAPPENING HERE:
We use HTTPX `stream()` to keep the response body open and feed it, line by
line, into the `EventAssembler`. Each subscription owns one background task
that runs a simple state machine:

    CONNECTING -> STREAMING -> (failure) -> BACKING_OFF -> CONNECTING ...

and ends in STOPPED (unsubscribe) or LIMIT_REACHED (retries exhausted). A clean
end of the body counts as a failure because the protocol has no "done" signal.
All attempts write into the same `asyncio.Queue`, so the consumer iterating
over the subscription sees one continuous sequence with, at worst, a gap.
"""
import asyncio
from typing import Any, Awaitable, Callable

import httpx
from loguru import logger

from resilient_sse.client.retry import RetryAction, RetryController
from resilient_sse.shared.backoff import backoff_delay
from resilient_sse.shared.client_utils import call_hook, make_client_stats, merge_headers, utc_now
from resilient_sse.shared.config import settings
from resilient_sse.shared.errors import BadStatusError, ProtocolViolation, SSEStreamError, StreamEndedError
from resilient_sse.shared.models import RetryOptions, SSEEvent, SubscriptionState
from resilient_sse.shared.parser import EventAssembler

DEFAULT_HEADERS = {"Accept": "text/event-stream", "Cache-Control": "no-cache"}
RETRYABLE_ERRORS = (SSEStreamError, httpx.HTTPError, OSError)

# Pushed into the sink once, when the subscription is over.
_CLOSED = object()


class SSESubscription:
    def __init__(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        body: Any = None,
        retry_options: RetryOptions | None = None,
        *,
        owns_client: bool = False,
        delay_fn: Callable[[int, float, float], float] = backoff_delay,
    ):
        method = method.upper()
        if method not in ("GET", "POST"):
            raise ValueError(f"Unsupported method: {method}")

        self.client = client
        self.method = method
        self.url = url
        self.headers = merge_headers(DEFAULT_HEADERS, headers)
        self.body = body
        self.retry_options = retry_options or RetryOptions.from_settings()

        self.attempt = 0
        self.state = SubscriptionState.IDLE
        self.stats = make_client_stats()
        self.on_status_change_callback: Callable[[SubscriptionState], Awaitable[None]] | None = None

        self._owns_client = owns_client
        self._stopped = asyncio.Event()
        self._retry = RetryController(self.retry_options, self._stopped, delay_fn)
        self._sink: asyncio.Queue = asyncio.Queue()
        self._sink_closed = False
        self._drained = False
        self._task: asyncio.Task | None = None

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    @property
    def closed(self) -> bool:
        return self._sink_closed

    def set_callbacks(self, on_status_change):
        self.on_status_change_callback = on_status_change

    def start(self) -> "SSESubscription":
        if self._task is None and not self.stopped:
            logger.info(f"url={self.url} method={self.method} event=subscribe")
            self._task = asyncio.create_task(self._run())
        return self

    def add_done_callback(self, callback: Callable[["SSESubscription"], None]) -> None:
        """Call `callback(self)` once the reconnect loop has finished."""
        if self._task is None:
            callback(self)
            return
        self._task.add_done_callback(lambda _task: callback(self))

    async def unsubscribe(self) -> None:
        """Stop for good: no more events, no more connection attempts."""
        if not self.stopped:
            logger.info(f"url={self.url} attempt={self.attempt} event=unsubscribe")
        self._stopped.set()

        task = self._task
        if task is not None and not task.done() and task is not asyncio.current_task():
            # Cancelling the run task closes the in-flight response and any pending backoff.
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        if not self.state.is_terminal:
            self.state = SubscriptionState.STOPPED
        self._close_sink()
        if self._owns_client:
            await self.client.aclose()

    aclose = unsubscribe

    # ==========================
    # CONSUMER SIDE
    # ==========================
    def __aiter__(self) -> "SSESubscription":
        return self

    async def __anext__(self) -> SSEEvent:
        if self._drained:
            raise StopAsyncIteration
        item = await self._sink.get()
        if item is _CLOSED:
            self._drained = True
            # Leave the marker for any other task iterating the same handle.
            self._sink.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item

    async def __aenter__(self) -> "SSESubscription":
        return self.start()

    async def __aexit__(self, *exc_info) -> None:
        await self.unsubscribe()

    # ==========================
    # RECONNECT LOOP
    # ==========================
    async def _run(self) -> None:
        try:
            while not self.stopped:
                try:
                    await self._stream_once()
                except RETRYABLE_ERRORS as e:
                    self._record_failure(e)

                decision = self._retry.decide(self.attempt)
                if decision.action is RetryAction.STOP:
                    break
                if decision.action is RetryAction.LIMIT:
                    await self._set_state(SubscriptionState.LIMIT_REACHED)
                    await self._retry.notify_limit()
                    return

                await self._set_state(SubscriptionState.BACKING_OFF)
                logger.info(
                    f"url={self.url} attempt={self.attempt} event=retry "
                    f"next_attempt={decision.next_attempt} delay_ms={decision.delay_ms:.0f}"
                )
                if not await self._retry.wait(decision.delay_ms):
                    break
                self.attempt = decision.next_attempt
                self.stats["reconnect_count"] += 1

            await self._set_state(SubscriptionState.STOPPED)
        except asyncio.CancelledError:
            self.state = SubscriptionState.STOPPED
            raise
        except Exception:
            logger.exception(f"url={self.url} attempt={self.attempt} event=crash")
            self.state = SubscriptionState.CLOSED
        finally:
            self._close_sink()
            if self._owns_client:
                await self.client.aclose()

    async def _stream_once(self) -> None:
        """One connection attempt. Always ends by raising."""
        await self._set_state(SubscriptionState.CONNECTING)
        logger.info(f"url={self.url} attempt={self.attempt} event=connect")

        assembler = EventAssembler(self._publish)
        async with self.client.stream(self.method, self.url, headers=self.headers, json=self.body) as response:
            if response.status_code != 200:
                raise BadStatusError(response.status_code)

            self.stats["connected_at"] = utc_now()
            await self._set_state(SubscriptionState.STREAMING)
            async for line in response.aiter_lines():
                assembler.feed(line)

        raise StreamEndedError()

    def _publish(self, event: SSEEvent) -> None:
        if self.stopped or self._sink_closed:
            return
        self.stats["events_received"] += 1
        self.stats["last_event_at"] = utc_now()
        if event.id:
            self.stats["last_event_id"] = event.id
        logger.debug(f"url={self.url} event=message type='{event.event}' id='{event.id}'")
        self._sink.put_nowait(event)

    def _record_failure(self, error: BaseException) -> None:
        if isinstance(error, ProtocolViolation):
            self.stats["protocol_errors"] += 1
        category = getattr(error, "category", "transport")
        logger.warning(f"url={self.url} attempt={self.attempt} event=failure category={category} reason='{error}'")

    async def _set_state(self, state: SubscriptionState) -> None:
        if state == self.state:
            return
        self.state = state
        await call_hook(self.on_status_change_callback, state, name="on_status_change")

    def _close_sink(self) -> None:
        if not self._sink_closed:
            self._sink_closed = True
            self._sink.put_nowait(_CLOSED)


def make_http_client(transport: httpx.AsyncBaseTransport | None = None, read_timeout: float | None = None) -> httpx.AsyncClient:
    if read_timeout is None:
        read_timeout = settings.SSE_READ_TIMEOUT_S
    # Silence on an open stream is not a failure, so reads wait forever by default.
    timeout = httpx.Timeout(10.0, read=read_timeout)
    return httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)


class SSEClient:
    """
    Shares one HTTPX connection pool between any number of independent
    subscriptions. Closing the client unsubscribes all of them.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport | None = None,
        read_timeout: float | None = None,
        delay_fn: Callable[[int, float, float], float] = backoff_delay,
    ):
        self.client = make_http_client(transport, read_timeout)
        self.delay_fn = delay_fn
        self.subscriptions: list[SSESubscription] = []

    def subscribe(
        self,
        method: str,
        url: str,
        headers: dict[str, str] | None = None,
        body: Any = None,
        retry_options: RetryOptions | None = None,
    ) -> SSESubscription:
        subscription = SSESubscription(
            self.client, method, url, headers, body, retry_options, delay_fn=self.delay_fn
        )
        self.subscriptions.append(subscription)
        subscription.start()
        subscription.add_done_callback(self._forget)
        return subscription

    def _forget(self, subscription: SSESubscription) -> None:
        if subscription in self.subscriptions:
            self.subscriptions.remove(subscription)

    async def aclose(self) -> None:
        for subscription in list(self.subscriptions):
            await subscription.unsubscribe()
        self.subscriptions.clear()
        await self.client.aclose()

    async def __aenter__(self) -> "SSEClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def subscribe(
    method: str,
    url: str,
    headers: dict[str, str] | None = None,
    body: Any = None,
    retry_options: RetryOptions | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    delay_fn: Callable[[int, float, float], float] = backoff_delay,
) -> SSESubscription:
    """Start a standalone subscription with its own HTTP client; must be called from a running event loop."""
    subscription = SSESubscription(
        make_http_client(transport), method, url, headers, body, retry_options,
        owns_client=True, delay_fn=delay_fn,
    )
    return subscription.start()
