import inspect
from datetime import datetime, timezone
from typing import Any, Callable

from loguru import logger


def make_client_stats() -> dict:
    """
    Returns a fresh stats dictionary with zeroed counters.
    Every subscription calls this once in __init__.
    Keys: events_received, reconnect_count, protocol_errors,
          last_event_id, last_event_at, connected_at.
    """
    return {
        "events_received": 0,
        "reconnect_count": 0,
        "protocol_errors": 0,
        "last_event_id": None,
        "last_event_at": None,
        "connected_at": None,
    }


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def merge_headers(defaults: dict[str, str], headers: dict[str, str] | None) -> dict[str, str]:
    """Caller headers win over defaults, compared case-insensitively."""
    merged = dict(defaults)
    for key, value in (headers or {}).items():
        for existing in [k for k in merged if k.lower() == key.lower()]:
            del merged[existing]
        merged[key] = value
    return merged


async def call_hook(hook: Callable[..., Any] | None, *args: Any, name: str = "hook") -> None:
    """
    Invoke a user callback that may be sync or async.
    A failing hook is logged and never takes the subscription down with it.
    """
    if hook is None:
        return
    try:
        result = hook(*args)
        if inspect.isawaitable(result):
            await result
    except Exception as e:
        logger.error(f"Error in {name}: {e}")
