"""Bot loop: the dispatcher consuming events from the bus."""

from __future__ import annotations

from enum import Enum

import httpx
from loguru import logger

from playbot.agent.router import Router, Sender
from playbot.bus.events import ChatEvent
from playbot.bus.queue import EventBus
from playbot.channels.session import Session


class LoopState(str, Enum):
    WAITING = "waiting"
    ROUTING = "routing"
    TERMINATED = "terminated"


class BotLoop:
    """
    The dispatcher. It:
    1. Waits for an event or the ingestion quit acknowledgment
    2. Drops non-messages and messages from the bot itself or the system
    3. Hands the rest to the router, which fetches and replies inline

    Everything runs in this one coroutine, so a slow fetch holds up every
    message behind it.
    """

    def __init__(self, bus: EventBus, session: Session, router: Router, send: Sender):
        self.bus = bus
        self.session = session
        self.router = router
        self._send = send
        self.state = LoopState.WAITING
        self.handled = 0

    async def run(self) -> None:
        """Process events until ingestion acknowledges it has quit."""
        logger.info("Bot loop started")
        while True:
            self.state = LoopState.WAITING
            logger.debug("Awaiting message")
            event = await self.bus.next_event()
            if event is None:
                self.state = LoopState.TERMINATED
                logger.info("Bot loop quit")
                return

            self.state = LoopState.ROUTING
            await self.handle(event)

    def accepts(self, event: ChatEvent) -> bool:
        """Only real user messages get routed."""
        return event.is_message and not self.session.is_bot(event.user)

    async def handle(self, event: ChatEvent) -> str | None:
        """Route a single event. Returns the name of the route that fired."""
        logger.debug(f"New event: {event.model_dump_json(exclude_none=True)}")
        if not self.accepts(event):
            return None

        logger.info(
            f"Message from {self.session.user_id_to_name(event.user) or event.user} "
            f"in #{self.session.channel_id_to_name(event.channel) or event.channel}: "
            f"{event.text[:200]!r}"
        )
        route = await self.router.dispatch(event, self._send_reply)
        if route:
            self.handled += 1
            logger.info(f"Handled via {route} route")
        return route

    async def _send_reply(self, channel: str, text: str) -> None:
        try:
            await self._send(channel, text)
        except httpx.TransportError as e:
            # Not retried; the reply is simply lost
            logger.error(f"Failed to send reply to {channel}: {e}")
