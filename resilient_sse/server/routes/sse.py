import uuid

from fastapi import APIRouter, Query, Response
from loguru import logger
from sse_starlette.sse import EventSourceResponse

from resilient_sse.server.dummy_data import stock_tick_events
from resilient_sse.shared.config import settings

router = APIRouter()


class FlakyGate:
    """Counts requests and refuses `fail` out of every `fail + 1` of them."""

    def __init__(self):
        self.requests = 0

    def should_fail(self, fail: int) -> bool:
        self.requests += 1
        return fail > 0 and self.requests % (fail + 1) != 0


gate = FlakyGate()


@router.api_route("/events", methods=["GET", "POST"])
async def events_endpoint(
    fail: int = Query(0, ge=0, description="Refuse this many requests before accepting one"),
    count: int = Query(settings.DEMO_EVENTS_PER_CONNECTION, ge=0, description="Events to send before dropping the stream"),
):
    cid = f"client-{str(uuid.uuid4())[:4]}"
    if gate.should_fail(fail):
        logger.info(f"client_id={cid} protocol=sse event=refused status=503")
        return Response(status_code=503)

    logger.info(f"client_id={cid} protocol=sse event=connect count={count}")
    return EventSourceResponse(
        stock_tick_events(count, settings.DEMO_EVENT_INTERVAL_S),
        ping=int(settings.DEMO_HEARTBEAT_INTERVAL_S),
    )
