"""
MODULE OVERVIEW:
The FastAPI application for the demo SSE server.

WHAT IS HAPPENING HERE:
A deliberately unreliable event source. `/events` sends a handful of events
and hangs up, and can be told to answer 503 a few times in a row, so the
client's backoff, retry limit and gap behaviour can be observed end to end.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from resilient_sse.server.routes import sse


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Demo SSE server starting up...")
    yield
    logger.info("Shutdown complete.")


app = FastAPI(
    title="resilient-sse demo server",
    description="A flaky Server-Sent Events source for exercising reconnects",
    version="1.0.0",
    lifespan=lifespan
)

app.include_router(sse.router, tags=["Events"])


@app.get("/healthz", tags=["Ops"])
async def health_check():
    return {"status": "ok"}
