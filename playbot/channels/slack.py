"""Slack channel using the RTM websocket and the Web API."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable

import httpx
import websockets
from loguru import logger
from websockets.exceptions import ConnectionClosed, WebSocketException

from playbot.bus.events import parse_frame
from playbot.bus.queue import EventBus
from playbot.channels.errors import ConnectError, HandshakeError, ResponseShapeError
from playbot.channels.models import Channel, ChannelListResponse, HelloResponse
from playbot.channels.session import Session
from playbot.config.schema import Settings
from playbot.utils.helpers import parse_response


class SlackChannel:
    """Slack RTM session: handshake, frame ingestion and outbound posts.

    Lifecycle:
        1. connect() -- rtm.start, build the Session, open the websocket,
           start the ingestion task
        2. frames flow into ``bus`` until stop() or the socket closes
        3. close() -- wait for ingestion to acknowledge, release sockets
    """

    name = "slack"

    def __init__(
        self,
        settings: Settings,
        bus: EventBus,
        http: httpx.AsyncClient | None = None,
        ws_connect: Callable[[str], Awaitable[Any]] | None = None,
    ):
        self.settings = settings
        self.bus = bus
        self._api_base = settings.slack_api_base.rstrip("/")
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(timeout=settings.http_timeout)
        self._ws_connect = ws_connect or websockets.connect
        self._ws: Any = None
        self._listen_task: asyncio.Task | None = None
        self.session: Session | None = None

    # ── Bootstrap ─────────────────────────────────────────

    async def connect(self) -> Session:
        """Run the rtm.start handshake and open the RTM websocket.

        No retries: any failure raises a BootstrapError and the caller is
        expected to give up.
        """
        logger.info("Connecting to Slack API...")
        try:
            resp = await self._http.get(
                f"{self._api_base}/rtm.start",
                params={"token": self.settings.token},
            )
        except httpx.HTTPError as e:
            raise HandshakeError(f"rtm.start request failed: {e}") from e

        try:
            hello = parse_response(HelloResponse, resp.content, "rtm.start")
        except ResponseShapeError as e:
            raise HandshakeError(str(e)) from e

        if not hello.ok:
            raise HandshakeError(f"rtm.start refused: {hello.error or 'no error given'}")

        # Names must be resolvable before the first event is delivered
        session = Session.from_hello(self.settings.token, hello)
        logger.info(
            f"Slack handshake ok: bot={session.bot_name} ({session.bot_id}), "
            f"{session.names.user_count} users, {session.names.channel_count} channels"
        )

        try:
            self._ws = await self._ws_connect(session.url)
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            raise ConnectError(f"cannot open RTM websocket {session.url!r}: {e}") from e

        self.session = session
        self._listen_task = asyncio.create_task(self._listen())
        return session

    # ── Ingestion ─────────────────────────────────────────

    async def _listen(self) -> None:
        """Read frames and queue the decodable ones until told to stop.

        Always ends with exactly one quit acknowledgment on the bus.
        """
        logger.debug("Slack RTM listener started")
        try:
            while not self.bus.stop_requested:
                try:
                    received, raw = await self.bus.until_stop(self._ws.recv())
                except ConnectionClosed as e:
                    logger.warning(f"Slack RTM connection closed: {e}")
                    break
                if not received:
                    break

                event = parse_frame(raw)
                if event is None:
                    preview = raw[:100] if isinstance(raw, str) else f"<{len(raw)} bytes>"
                    logger.debug(f"Slack RTM: dropping frame {preview!r}")
                    continue

                if not await self.bus.publish(event):
                    break
        except Exception as e:
            logger.error(f"Slack RTM listener failed: {e}")
        finally:
            self.bus.acknowledge_quit()
            logger.debug("Slack RTM listener stopped")

    def stop(self) -> None:
        """Ask the ingestion task to stop. It acknowledges through the bus."""
        self.bus.request_stop()

    async def close(self) -> None:
        """Stop ingestion (if still running) and release the connections."""
        self.stop()
        if self._listen_task:
            await self._listen_task
            self._listen_task = None
        if self._ws is not None:
            await self._ws.close()
            self._ws = None
        if self._owns_http:
            await self._http.aclose()

    # ── Outbound ──────────────────────────────────────────

    def _require_session(self) -> Session:
        if self.session is None:
            raise RuntimeError("Slack channel is not connected")
        return self.session

    async def send_message(self, channel: str, text: str) -> httpx.Response:
        """Post ``text`` to ``channel`` as the bot.

        Transport errors propagate to the caller; the HTTP status is the
        only delivery confirmation.
        """
        session = self._require_session()
        return await self._http.post(
            f"{self._api_base}/chat.postMessage",
            data={
                "token": session.token,
                "channel": channel,
                "username": session.bot_name,
                "text": text,
            },
        )

    # ── Web API ───────────────────────────────────────────

    async def api_call(self, method: str, **params: str) -> dict[str, Any]:
        """Call a Web API method with GET and return the decoded object."""
        query = {**params, "token": self.settings.token}
        resp = await self._http.get(f"{self._api_base}/{method}", params=query)
        try:
            data = resp.json()
        except json.JSONDecodeError as e:
            raise ResponseShapeError(method, f"not JSON: {e}") from e
        if not isinstance(data, dict):
            raise ResponseShapeError(method, f"expected an object, got {type(data).__name__}")
        return data

    async def channel_list(self) -> list[Channel]:
        """Non-archived channels, fetched live (the session roster is not refreshed)."""
        data = await self.api_call("channels.list", exclude_archived="1")
        return parse_response(ChannelListResponse, data, "channels.list").channels
