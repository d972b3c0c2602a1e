"""
MODULE OVERVIEW:
The line-level Server-Sent Events parser.

WHAT IS HAPPENING HERE:
The wire format is plain text. Each non-blank line is `field[:[ ]value]` and a
blank line closes the current record. `apply_line` mutates the in-progress
record for one line; `EventAssembler` owns that record and hands it off,
frozen, every time it sees a blank line.

Every field is split on its first colon, `data` included. A server that sends
`data:x` without the conventional space gets `x`, not a truncated value.
"""
from typing import Callable

from loguru import logger

from resilient_sse.shared.errors import ProtocolViolation
from resilient_sse.shared.models import EventDraft, SSEEvent

KNOWN_FIELDS = ("event", "data", "id", "retry")


def split_line(line: str) -> tuple[str, str]:
    field, _, value = line.partition(":")
    if value.startswith(" "):
        value = value[1:]
    return field, value


def apply_line(draft: EventDraft, line: str) -> None:
    """
    Apply one non-blank protocol line to `draft`.

    Raises ProtocolViolation for a field outside KNOWN_FIELDS; the caller
    treats that exactly like a dropped connection.
    """
    field, value = split_line(line)
    if not field:
        logger.debug(f"event=comment text='{value}'")
        return

    if field == "event":
        draft.event = value
    elif field == "data":
        draft.data += value + "\n"
    elif field == "id":
        draft.id = value
    elif field == "retry":
        # The server's retry hint is ignored; reconnect timing is client policy.
        pass
    else:
        raise ProtocolViolation(field, line)


class EventAssembler:
    def __init__(self, emit: Callable[[SSEEvent], None]):
        self._emit = emit
        self._draft = EventDraft()

    @property
    def pending(self) -> EventDraft:
        return self._draft

    def feed(self, line: str) -> None:
        if line:
            apply_line(self._draft, line)
            return
        event = self._draft.freeze()
        self._draft = EventDraft()
        self._emit(event)
