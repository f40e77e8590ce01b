"""Go playground enrichment: fetch a shared snippet, compile it, quote both.

The two failure modes differ:

* fetching the snippet source is best effort -- any error gives ""
* a transport error while submitting to the compile service is not
  handled here and raises CompileServiceError, which ends the bot
"""

from __future__ import annotations

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, field_validator

from playbot.channels.errors import CompileServiceError, ResponseShapeError
from playbot.utils.helpers import parse_response

DEFAULT_COMPILE_URL = "https://play.golang.org/compile"
SOURCE_SUFFIX = ".go"
MAX_SOURCE_CHARS = 1024
ELLIPSIS = "\n..."


class CompileResult(BaseModel):
    """Compile service answer."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    errors: str = Field("", alias="compile_errors")
    output: str = ""

    @field_validator("errors", "output", mode="before")
    @classmethod
    def _null_as_empty(cls, v: object) -> object:
        return "" if v is None else v


def truncate_source(source: str, limit: int = MAX_SOURCE_CHARS) -> str:
    """Cut to ``limit`` code points (not bytes) and mark the cut."""
    if len(source) > limit:
        return source[:limit] + ELLIPSIS
    return source


def format_reply(source: str, result: CompileResult) -> str:
    """Source block, then errors and output blocks when non-empty."""
    reply = "Source:\n```" + truncate_source(source) + "```"
    if result.errors:
        reply += "\n Errors:\n```" + result.errors + "```"
    if result.output:
        reply += "\nResult:```" + result.output + "```"
    return reply


class PlaygroundFetcher:
    """Turns a play.golang.org share URL into a chat reply."""

    def __init__(self, http: httpx.AsyncClient, compile_url: str = DEFAULT_COMPILE_URL):
        self._http = http
        self.compile_url = compile_url

    async def fetch_source(self, url: str) -> str | None:
        """Raw snippet text, or None if it could not be fetched."""
        try:
            resp = await self._http.get(url + SOURCE_SUFFIX)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Playground: could not fetch source for {url}: {e}")
            return None
        return resp.text

    async def compile(self, source: str) -> CompileResult:
        """Submit ``source`` to the compile service.

        Raises:
            CompileServiceError: the request itself failed (not retried).
            ResponseShapeError: the answer is not a compile result.
        """
        try:
            resp = await self._http.post(self.compile_url, data={"body": source})
        except httpx.TransportError as e:
            raise CompileServiceError(f"compile request to {self.compile_url} failed: {e}") from e
        return parse_response(CompileResult, resp.content, "playground compile")

    async def fetch(self, url: str) -> str:
        source = await self.fetch_source(url)
        if source is None:
            return ""

        try:
            result = await self.compile(source)
        except ResponseShapeError as e:
            # Undecodable compile answer: reply with the bare source
            logger.warning(f"Playground: {e}")
            return source

        return format_reply(source, result)
