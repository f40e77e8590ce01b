"""Tests for SlackChannel: handshake, ingestion loop, outbound posts."""

import asyncio
import json
from urllib.parse import parse_qs

import httpx
import pytest
from websockets.exceptions import ConnectionClosedOK, InvalidURI

from playbot.bus.queue import EventBus
from playbot.channels.errors import ConnectError, HandshakeError, ResponseShapeError
from playbot.channels.slack import SlackChannel
from playbot.config.schema import Settings


# ── Helpers ──────────────────────────────────────────────────────────────


HELLO = {
    "ok": True,
    "url": "wss://rtm.example.invalid/websocket/abc",
    "self": {"id": "UBOT", "name": "playbot"},
    "users": [{"id": "U123", "name": "alice"}, {"id": "UBOT", "name": "playbot"}],
    "channels": [{"id": "C1", "name": "general", "members": ["U123"]}],
}


class FakeWebSocket:
    """Serves queued frames, then blocks (or closes) like a quiet socket."""

    def __init__(self, frames=(), close_when_drained: bool = False):
        self._frames = list(frames)
        self._close_when_drained = close_when_drained
        self.closed = False
        self.recv_calls = 0

    async def recv(self):
        self.recv_calls += 1
        if self._frames:
            return self._frames.pop(0)
        if self._close_when_drained:
            raise ConnectionClosedOK(None, None)
        await asyncio.Event().wait()

    async def close(self):
        self.closed = True


def make_settings(**kwargs) -> Settings:
    return Settings(token="xoxb-test", slack_api_base="https://slack.test/api", **kwargs)


def make_http(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def hello_handler(requests: list, hello: dict | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path == "/api/rtm.start":
            return httpx.Response(200, json=HELLO if hello is None else hello)
        if request.url.path == "/api/chat.postMessage":
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(404)
    return handler


def make_channel(handler, ws=None, bus=None, ws_connect=None):
    bus = bus or EventBus()
    ws = ws or FakeWebSocket()
    opened: list[str] = []

    async def fake_connect(url):
        opened.append(url)
        return ws

    channel = SlackChannel(
        make_settings(),
        bus,
        http=make_http(handler),
        ws_connect=ws_connect or fake_connect,
    )
    return channel, bus, ws, opened


def frame(**fields) -> str:
    return json.dumps(fields)


# ── Bootstrap ────────────────────────────────────────────────────────────


class TestConnect:
    @pytest.mark.asyncio
    async def test_handshake_builds_session_and_opens_socket(self):
        requests = []
        channel, bus, ws, opened = make_channel(hello_handler(requests))

        session = await channel.connect()

        assert requests[0].url.params["token"] == "xoxb-test"
        assert session.bot_id == "UBOT"
        assert session.user_id_to_name("U123") == "alice"
        assert session.channel_id_to_name("C1") == "general"
        assert opened == [HELLO["url"]]
        assert channel.session is session
        await channel.close()
        assert ws.closed

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        channel, _, _, opened = make_channel(handler)
        with pytest.raises(HandshakeError):
            await channel.connect()
        assert opened == []

    @pytest.mark.asyncio
    async def test_undecodable_body(self):
        channel, _, _, _ = make_channel(lambda r: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(HandshakeError) as exc:
            await channel.connect()
        assert isinstance(exc.value.__cause__, ResponseShapeError)

    @pytest.mark.asyncio
    async def test_refused_handshake(self):
        channel, _, _, opened = make_channel(
            hello_handler([], {"ok": False, "error": "invalid_auth"})
        )
        with pytest.raises(HandshakeError, match="invalid_auth"):
            await channel.connect()
        assert opened == []

    @pytest.mark.asyncio
    async def test_socket_open_failure(self):
        async def failing_connect(url):
            raise OSError("network unreachable")

        channel, _, _, _ = make_channel(hello_handler([]), ws_connect=failing_connect)
        with pytest.raises(ConnectError):
            await channel.connect()
        assert channel.session is None

    @pytest.mark.asyncio
    async def test_invalid_socket_url(self):
        async def bad_uri(url):
            raise InvalidURI(url, "not a websocket URI")

        channel, _, _, _ = make_channel(hello_handler([]), ws_connect=bad_uri)
        with pytest.raises(ConnectError):
            await channel.connect()


# ── Ingestion ────────────────────────────────────────────────────────────


class TestListen:
    @pytest.mark.asyncio
    async def test_valid_frames_are_queued_in_order(self):
        ws = FakeWebSocket([
            frame(type="hello"),
            frame(type="message", channel="C1", user="U123", text="one"),
            frame(type="message", channel="C1", user="U123", text="two"),
        ])
        channel, bus, _, _ = make_channel(hello_handler([]), ws=ws)
        await channel.connect()

        events = [await asyncio.wait_for(bus.next_event(), 1.0) for _ in range(3)]
        assert [e.type for e in events] == ["hello", "message", "message"]
        assert [e.text for e in events[1:]] == ["one", "two"]
        await channel.close()

    @pytest.mark.asyncio
    async def test_bad_frames_are_dropped(self):
        ws = FakeWebSocket([
            b"\x00\x01binary",
            "{broken json",
            frame(ok=True, reply_to=1),
            frame(type="message", channel="C1", user="U123", text="survivor"),
        ])
        channel, bus, _, _ = make_channel(hello_handler([]), ws=ws)
        await channel.connect()

        event = await asyncio.wait_for(bus.next_event(), 1.0)
        assert event.text == "survivor"
        assert bus.pending == 0
        await channel.close()

    @pytest.mark.asyncio
    async def test_stop_emits_single_quit_ack(self):
        channel, bus, ws, _ = make_channel(hello_handler([]))
        await channel.connect()
        await asyncio.sleep(0.01)
        assert not bus.quit_acknowledged

        channel.stop()
        await asyncio.wait_for(bus.wait_quit(), 1.0)
        assert bus.quit_acknowledged
        # close() after the ack must not acknowledge again
        await channel.close()
        assert ws.closed

    @pytest.mark.asyncio
    async def test_stop_while_queue_full(self):
        frames = [frame(type="message", channel="C1", user="U123", text=str(i)) for i in range(5)]
        channel, bus, _, _ = make_channel(hello_handler([]), ws=FakeWebSocket(frames), bus=EventBus(maxsize=2))
        await channel.connect()
        await asyncio.sleep(0.01)
        assert bus.pending == 2

        channel.stop()
        await asyncio.wait_for(bus.wait_quit(), 1.0)
        await channel.close()

    @pytest.mark.asyncio
    async def test_connection_closed_ends_loop_with_ack(self):
        ws = FakeWebSocket([frame(type="message", user="U1", text="last")], close_when_drained=True)
        channel, bus, _, _ = make_channel(hello_handler([]), ws=ws)
        await channel.connect()

        await asyncio.wait_for(bus.wait_quit(), 1.0)
        assert bus.pending == 1
        await channel.close()


# ── Outbound ─────────────────────────────────────────────────────────────


class TestSendMessage:
    @pytest.mark.asyncio
    async def test_posts_form_as_bot(self):
        requests = []
        channel, _, _, _ = make_channel(hello_handler(requests))
        await channel.connect()

        resp = await channel.send_message("C1", "@alice: ping")

        assert resp.status_code == 200
        post = requests[-1]
        assert post.method == "POST"
        assert post.url.path == "/api/chat.postMessage"
        form = parse_qs(post.content.decode())
        assert form == {
            "token": ["xoxb-test"],
            "channel": ["C1"],
            "username": ["playbot"],
            "text": ["@alice: ping"],
        }
        await channel.close()

    @pytest.mark.asyncio
    async def test_transport_error_propagates(self):
        def handler(request):
            if request.url.path == "/api/chat.postMessage":
                raise httpx.ConnectError("down", request=request)
            return httpx.Response(200, json=HELLO)

        channel, _, _, _ = make_channel(handler)
        await channel.connect()
        with pytest.raises(httpx.TransportError):
            await channel.send_message("C1", "hi")
        await channel.close()

    @pytest.mark.asyncio
    async def test_requires_connection(self):
        channel, _, _, _ = make_channel(hello_handler([]))
        with pytest.raises(RuntimeError):
            await channel.send_message("C1", "hi")


# ── Web API ──────────────────────────────────────────────────────────────


class TestWebApi:
    @pytest.mark.asyncio
    async def test_api_call_adds_token(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ok": True, "user": {"id": "U123"}})

        channel, _, _, _ = make_channel(handler)
        data = await channel.api_call("users.info", user="U123")
        assert data["user"]["id"] == "U123"
        assert seen[0].url.path == "/api/users.info"
        assert seen[0].url.params["user"] == "U123"
        assert seen[0].url.params["token"] == "xoxb-test"

    @pytest.mark.asyncio
    async def test_api_call_rejects_non_object(self):
        channel, _, _, _ = make_channel(lambda r: httpx.Response(200, json=[1, 2]))
        with pytest.raises(ResponseShapeError):
            await channel.api_call("users.list")

    @pytest.mark.asyncio
    async def test_api_call_rejects_non_json(self):
        channel, _, _, _ = make_channel(lambda r: httpx.Response(200, text="nope"))
        with pytest.raises(ResponseShapeError):
            await channel.api_call("users.list")

    @pytest.mark.asyncio
    async def test_channel_list(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={
                "ok": True,
                "channels": [{"id": "C1", "name": "general"}, {"id": "C9", "name": "new"}],
            })

        channel, _, _, _ = make_channel(handler)
        channels = await channel.channel_list()
        assert [c.id for c in channels] == ["C1", "C9"]
        assert seen[0].url.params["exclude_archived"] == "1"

    @pytest.mark.asyncio
    async def test_channel_list_bad_response(self):
        channel, _, _, _ = make_channel(lambda r: httpx.Response(200, json={"ok": False, "error": "not_authed"}))
        with pytest.raises(ResponseShapeError):
            await channel.channel_list()
