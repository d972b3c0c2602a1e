"""
MODULE OVERVIEW:
The Rich Terminal Dashboard.

WHAT IS HAPPENING HERE:
We use Rich to render a live view of one subscription. A background task
drains the event sequence into a feed table while the status hook records
every state transition, so a reconnect shows up as CONNECTING -> BACKING_OFF
-> CONNECTING in the timeline and as a gap in the feed.
"""

import asyncio
from collections import deque
from datetime import datetime

from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from resilient_sse.client.sse_client import SSESubscription
from resilient_sse.shared.models import SSEEvent, SubscriptionState

STATE_COLORS = {
    SubscriptionState.STREAMING: "green",
    SubscriptionState.CONNECTING: "yellow",
    SubscriptionState.BACKING_OFF: "yellow",
}


class Visualizer:
    def __init__(self, subscription: SSESubscription):
        self.subscription = subscription
        self.recent_events = deque(maxlen=10)
        self.status = "INITIALIZING"
        self.timeline = deque(maxlen=5)

    def on_status_change(self, state: SubscriptionState):
        self.status = state.value.upper()
        ts = datetime.now().strftime("%H:%M:%S")
        self.timeline.appendleft(f"[{ts}] State: {self.status} (attempt {self.subscription.attempt})")

    def on_event(self, event: SSEEvent):
        ts = datetime.now().strftime("%H:%M:%S")
        data = event.data.rstrip("\n").replace("\n", " | ")
        data_str = data[:40] + "..." if len(data) > 40 else data
        self.recent_events.appendleft((ts, event.event or "message", event.id, data_str))

    def generate_layout(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="main")
        )
        layout["main"].split_row(
            Layout(name="left", ratio=2),
            Layout(name="right", ratio=1)
        )
        layout["right"].split_column(
            Layout(name="stats"),
            Layout(name="timeline")
        )

        color = STATE_COLORS.get(self.subscription.state, "red")
        layout["header"].update(Panel(f"[{color} bold]{self.subscription.method} {self.subscription.url} | Status: {self.status}[/]", style=color))

        table = Table(title="Live Event Feed", expand=True)
        table.add_column("Time", justify="left", style="cyan", no_wrap=True)
        table.add_column("Event", style="magenta")
        table.add_column("Id", style="blue")
        table.add_column("Data", style="green")

        for e in self.recent_events:
            table.add_row(e[0], e[1], e[2], e[3])

        layout["left"].update(Panel(table, title="Feed"))

        stats = self.subscription.stats
        stats_text = (
            f"Events Received: {stats['events_received']}\n"
            f"Attempt: {self.subscription.attempt} / {self.subscription.retry_options.max_attempts or 'inf'}\n"
            f"Reconnects: {stats['reconnect_count']}\n"
            f"Protocol Errors: {stats['protocol_errors']}\n"
            f"Last Event Id: {stats['last_event_id'] or '-'}"
        )
        layout["stats"].update(Panel(stats_text, title="Connection Stats"))

        layout["timeline"].update(Panel("\n".join(self.timeline), title="Timeline"))

        return layout

    async def _consume(self):
        async for event in self.subscription:
            self.on_event(event)

    async def run(self, duration_s: float):
        async def status_hook(s): self.on_status_change(s)

        self.subscription.set_callbacks(status_hook)
        self.subscription.start()
        consumer_task = asyncio.create_task(self._consume())

        loop = asyncio.get_running_loop()
        deadline = loop.time() + duration_s
        try:
            with Live(self.generate_layout(), refresh_per_second=4) as live:
                while not consumer_task.done() and loop.time() < deadline:
                    live.update(self.generate_layout())
                    await asyncio.sleep(0.25)
                live.update(self.generate_layout())
        finally:
            await self.subscription.unsubscribe()
            await asyncio.gather(consumer_task, return_exceptions=True)
