"""
MODULE OVERVIEW:
This module defines the typed data structures shared by the SSE client, the
dashboard and the demo server, powered by Pydantic v2.

WHAT IS HAPPENING HERE:
`SSEEvent` is what the consumer receives: a frozen `{event, data, id}` triple.
While a record is still being read off the wire it lives in an `EventDraft`,
which is mutable; the assembler freezes it at the blank-line boundary.
`RetryOptions` carries the reconnect policy and cannot change once a
subscription has started.
"""
from enum import Enum
from typing import Any, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field

from resilient_sse.shared.config import settings

RequestMethod = Literal["GET", "POST"]


class SSEEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    event: str = ""
    data: str = ""
    id: str = ""


class EventDraft(BaseModel):
    event: str = ""
    data: str = ""
    id: str = ""

    def freeze(self) -> SSEEvent:
        return SSEEvent(event=self.event, data=self.data, id=self.id)


class RetryOptions(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    min_delay_ms: int = Field(5000, ge=0)
    max_delay_ms: int = Field(5000, ge=0)
    # Reconnects allowed after the first connection (3 means 4 connections); 0 means retry forever
    max_attempts: int = Field(5, ge=0)
    on_limit_reached: Callable[[], Any] | None = None

    @classmethod
    def from_settings(cls, on_limit_reached: Callable[[], Any] | None = None) -> "RetryOptions":
        return cls(
            min_delay_ms=settings.SSE_MIN_RETRY_MS,
            max_delay_ms=settings.SSE_MAX_RETRY_MS,
            max_attempts=settings.SSE_MAX_RETRIES,
            on_limit_reached=on_limit_reached,
        )


# WHAT IS HAPPENING HERE:
# The lifecycle of one subscription. STOPPED, LIMIT_REACHED and CLOSED are
# terminal: once entered, the output sink is closed and nothing else happens.
class SubscriptionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STREAMING = "streaming"
    BACKING_OFF = "backing_off"
    STOPPED = "stopped"
    LIMIT_REACHED = "limit_reached"
    CLOSED = "closed"

    @property
    def is_terminal(self) -> bool:
        return self in (SubscriptionState.STOPPED, SubscriptionState.LIMIT_REACHED, SubscriptionState.CLOSED)
