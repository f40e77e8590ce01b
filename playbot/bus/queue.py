"""Bounded event queue plus the stop/quit handshake.

The ingestion task and the dispatcher share nothing else:

    ingestion --publish()--> [queue, maxsize N] --next_event()--> dispatcher
    stop() --------------------> ingestion
    ingestion --acknowledge_quit()--------------> dispatcher

``publish`` blocks while the queue is full, so a slow dispatcher slows
ingestion down instead of losing events.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable

from loguru import logger

from playbot.bus.events import ChatEvent

DEFAULT_QUEUE_SIZE = 100


async def _first_or_flag(aw: Awaitable[Any], flag: asyncio.Event) -> tuple[bool, Any]:
    """Await ``aw`` unless ``flag`` gets set first.

    Returns (completed, result). The losing side is cancelled. If both
    finish in the same step the work wins and the flag is seen by the
    next call; a flag already set before the call is checked by callers.
    """
    work = asyncio.ensure_future(aw)
    waiter = asyncio.ensure_future(flag.wait())
    try:
        done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (work, waiter):
            if not task.done():
                task.cancel()
    if work in done:
        return True, work.result()
    return False, None


class EventBus:
    """Queue of pending ChatEvents and the two one-shot signals."""

    def __init__(self, maxsize: int = DEFAULT_QUEUE_SIZE):
        self.maxsize = maxsize
        self.events: asyncio.Queue[ChatEvent] = asyncio.Queue(maxsize=maxsize)
        self._stop = asyncio.Event()
        self._quit = asyncio.Event()

    # ── Stop request (dispatcher side -> ingestion) ──────────

    def request_stop(self) -> None:
        """Ask the ingestion task to stop. Idempotent."""
        if not self._stop.is_set():
            logger.debug("EventBus: stop requested")
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    async def until_stop(self, aw: Awaitable[Any]) -> tuple[bool, Any]:
        """Await ``aw`` unless a stop is requested first.

        Returns (completed, result); on stop ``aw`` is cancelled.
        """
        if self._stop.is_set():
            asyncio.ensure_future(aw).cancel()
            return False, None
        return await _first_or_flag(aw, self._stop)

    # ── Quit acknowledgment (ingestion -> dispatcher) ────────

    def acknowledge_quit(self) -> None:
        """Signal that ingestion has terminated. May only happen once."""
        if self._quit.is_set():
            raise RuntimeError("quit already acknowledged")
        self._quit.set()
        logger.debug("EventBus: quit acknowledged")

    @property
    def quit_acknowledged(self) -> bool:
        return self._quit.is_set()

    async def wait_quit(self) -> None:
        await self._quit.wait()

    # ── Events ───────────────────────────────────────────────

    async def publish(self, event: ChatEvent) -> bool:
        """Queue an event, blocking while the queue is full.

        Returns False if a stop was requested before the event got in.
        """
        if self._stop.is_set():
            return False
        if not self.events.full():
            self.events.put_nowait(event)
            return True
        logger.debug(f"EventBus: queue full ({self.maxsize}), waiting for dispatcher")
        queued, _ = await _first_or_flag(self.events.put(event), self._stop)
        return queued

    async def next_event(self) -> ChatEvent | None:
        """Wait for the next event. None means ingestion has quit.

        Once the quit acknowledgment is set this returns None even if
        events are still queued; those are discarded. An event that
        arrives in the same step as the acknowledgment is still returned.
        """
        if self._quit.is_set():
            return None
        got, event = await _first_or_flag(self.events.get(), self._quit)
        if not got:
            return None
        return event

    @property
    def pending(self) -> int:
        return self.events.qsize()
