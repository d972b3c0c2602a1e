"""
CLI entrypoint for resilient-sse.
"""
import asyncio
import json
from typing import List, Optional

import typer

from resilient_sse.client.sse_client import SSEClient
from resilient_sse.client.visualizer import Visualizer
from resilient_sse.shared.config import configure_logging, settings
from resilient_sse.shared.models import RetryOptions

app = typer.Typer(help="Resilient Server-Sent Events client")


def parse_headers(raw: List[str]) -> dict[str, str]:
    headers = {}
    for item in raw:
        key, sep, value = item.partition(":")
        if not sep or not key.strip():
            raise typer.BadParameter(f"Header must look like 'Name: value', got {item!r}")
        headers[key.strip()] = value.strip()
    return headers


def parse_body(raw: Optional[str]):
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"Body is not valid JSON: {e}")


def build_retry_options(min_delay: int, max_delay: int, max_retries: int) -> RetryOptions:
    def limit_reached():
        typer.echo("Retry limit reached, giving up.", err=True)

    return RetryOptions(
        min_delay_ms=min_delay,
        max_delay_ms=max_delay,
        max_attempts=max_retries,
        on_limit_reached=limit_reached,
    )


@app.command()
def server():
    """Start the demo SSE server using Uvicorn."""
    import uvicorn
    configure_logging()
    typer.echo(f"Starting demo server on port {settings.PORT}...")
    uvicorn.run("resilient_sse.server.main:app", host="0.0.0.0", port=settings.PORT, log_level=settings.LOG_LEVEL.lower())


@app.command()
def listen(
    url: str = typer.Argument(..., help="SSE endpoint URL"),
    method: str = typer.Option("GET", help="GET or POST"),
    header: List[str] = typer.Option([], "--header", "-H", help="Request header 'Name: value', repeatable"),
    body: Optional[str] = typer.Option(None, help="JSON request body"),
    min_delay: int = typer.Option(settings.SSE_MIN_RETRY_MS, help="Minimum reconnect delay in ms"),
    max_delay: int = typer.Option(settings.SSE_MAX_RETRY_MS, help="Maximum reconnect delay in ms"),
    max_retries: int = typer.Option(settings.SSE_MAX_RETRIES, help="Reconnect attempts before giving up, 0 for unlimited"),
    duration: float = typer.Option(60.0, help="How long to watch the stream in seconds"),
):
    """Subscribe to a stream with the rich dashboard."""
    configure_logging("WARNING")
    headers = parse_headers(header)
    payload = parse_body(body)
    options = build_retry_options(min_delay, max_delay, max_retries)

    async def main():
        async with SSEClient() as client:
            subscription = client.subscribe(method, url, headers, payload, options)
            await Visualizer(subscription).run(duration)

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


@app.command()
def tail(
    url: str = typer.Argument(..., help="SSE endpoint URL"),
    method: str = typer.Option("GET", help="GET or POST"),
    header: List[str] = typer.Option([], "--header", "-H", help="Request header 'Name: value', repeatable"),
    body: Optional[str] = typer.Option(None, help="JSON request body"),
    min_delay: int = typer.Option(settings.SSE_MIN_RETRY_MS, help="Minimum reconnect delay in ms"),
    max_delay: int = typer.Option(settings.SSE_MAX_RETRY_MS, help="Maximum reconnect delay in ms"),
    max_retries: int = typer.Option(settings.SSE_MAX_RETRIES, help="Reconnect attempts before giving up, 0 for unlimited"),
):
    """Print every event as one JSON line until the stream gives up."""
    configure_logging()
    headers = parse_headers(header)
    payload = parse_body(body)
    options = build_retry_options(min_delay, max_delay, max_retries)

    async def main():
        async with SSEClient() as client:
            async for event in client.subscribe(method, url, headers, payload, options):
                typer.echo(event.model_dump_json())

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    app()
