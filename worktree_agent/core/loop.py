"""Headless consumer: one inbox drained by one loop."""

import queue
import time
from typing import Callable, List, Optional

from worktree_agent.constants import RENDER_TICK_SECONDS
from worktree_agent.core.state import AppSnapshot
from worktree_agent.logging_config import get_logger
from worktree_agent.models.events import Event

logger = get_logger(__name__)


class EventInbox:
    """Unbounded FIFO shared by every producer; `put` never blocks."""

    def __init__(self):
        self._queue: "queue.Queue[Event]" = queue.Queue()

    def put(self, event: Event) -> None:
        self._queue.put(event)

    def get(self, timeout: Optional[float] = None) -> Optional[Event]:
        """Next event, or None once `timeout` passes with nothing queued."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List[Event]:
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def empty(self) -> bool:
        return self._queue.empty()


class EventLoop:
    """Feeds inbox events to the core and calls `render` on a fixed tick.

    Render ticks are independent of event arrival, so a burst of hook output
    never starves the display and an idle inbox never stalls it.
    """

    def __init__(
        self,
        core,
        inbox: EventInbox,
        render: Optional[Callable[[AppSnapshot], None]] = None,
        tick: float = RENDER_TICK_SECONDS,
    ):
        self.core = core
        self.inbox = inbox
        self.render = render
        self.tick = tick

    def process_pending(self) -> int:
        """Handle everything queued right now; returns how many events were applied."""
        events = self.inbox.drain()
        for event in events:
            self.core.handle(event)
        return len(events)

    def run(self) -> None:
        """Run until the core shuts down."""
        next_render = time.monotonic()
        while self.core.running:
            timeout = max(0.0, next_render - time.monotonic())
            event = self.inbox.get(timeout=timeout)
            if event is not None:
                self.core.handle(event)

            if time.monotonic() >= next_render:
                next_render = time.monotonic() + self.tick
                if self.render is not None:
                    self.render(self.core.snapshot())

        if self.render is not None:
            self.render(self.core.snapshot())
        logger.debug("Event loop finished")
