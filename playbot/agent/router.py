"""Ordered message routing.

A route pairs an extractor (text -> matches, empty meaning "no match")
with a handler that turns one match into a reply. Routes are tried in
priority order and the first one with any match wins: its handler runs
once per match, the remaining routes are not consulted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Sequence

from playbot.bus.events import ChatEvent
from playbot.channels.session import Session
from playbot.enrich.playground import PlaygroundFetcher
from playbot.enrich.wiki import WikiFetcher

Extractor = Callable[[str], list[str]]
Handler = Callable[[ChatEvent, str], Awaitable[str]]
Sender = Callable[[str, str], Awaitable[object]]

PLAYGROUND_URL_RE = re.compile(r"https?\:\/\/play\.golang\.org\/p\/[^>^/]+")
WIKI_URL_RE = re.compile(
    r"https?\:\/\/[a-z]*\.wikipedia\.org\/wiki\/([a-zA-Z0-9%_\(\)а-яА-я\,\:]+)"
)
PING_KEYWORD = "pong"


@dataclass(frozen=True)
class Route:
    name: str
    extract: Extractor
    handler: Handler


def pattern_extractor(pattern: re.Pattern[str]) -> Extractor:
    """Match ``pattern`` against the lower-cased text.

    Matches are returned as they appear in the original text, so
    case-sensitive parts of a URL (playground snippet ids, article
    titles) survive. If lower-casing changed the text length the spans
    no longer line up and the lower-cased match is returned instead.
    """

    def extract(text: str) -> list[str]:
        lowered = text.lower()
        aligned = len(lowered) == len(text)
        return [
            text[m.start():m.end()] if aligned else m.group(0)
            for m in pattern.finditer(lowered)
        ]

    return extract


def keyword_extractor(keyword: str) -> Extractor:
    """Single match when ``keyword`` occurs anywhere, case-insensitively."""
    keyword = keyword.lower()

    def extract(text: str) -> list[str]:
        return [keyword] if keyword in text.lower() else []

    return extract


class Router:
    def __init__(self, routes: Sequence[Route]):
        self.routes: tuple[Route, ...] = tuple(routes)

    def select(self, text: str) -> tuple[Route, list[str]] | None:
        """The winning route and its matches, or None."""
        for route in self.routes:
            matches = route.extract(text)
            if matches:
                return route, matches
        return None

    async def dispatch(self, event: ChatEvent, send: Sender) -> str | None:
        """Route one message; returns the name of the route that fired.

        Handlers and sends are awaited one after another, never in parallel.
        """
        selected = self.select(event.text)
        if selected is None:
            return None
        route, matches = selected
        for match in matches:
            reply = await route.handler(event, match)
            await send(event.channel, reply)
        return route.name


def default_routes(
    session: Session,
    playground: PlaygroundFetcher,
    wiki: WikiFetcher,
) -> list[Route]:
    """playground > wiki > "pong", in that priority."""

    async def compile_snippet(event: ChatEvent, url: str) -> str:
        return await playground.fetch(url)

    async def quote_article(event: ChatEvent, url: str) -> str:
        return await wiki.fetch(url)

    async def ping(event: ChatEvent, _keyword: str) -> str:
        return f"@{session.user_id_to_name(event.user)}: ping"

    return [
        Route("playground", pattern_extractor(PLAYGROUND_URL_RE), compile_snippet),
        Route("wiki", pattern_extractor(WIKI_URL_RE), quote_article),
        Route("ping", keyword_extractor(PING_KEYWORD), ping),
    ]
