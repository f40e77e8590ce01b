"""Wikipedia enrichment: quote the intro of a linked article."""

from __future__ import annotations

import re

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from playbot.channels.errors import ResponseShapeError
from playbot.utils.helpers import parse_response

DEFAULT_WIKI_HOST = "wikipedia.org"

_LANG_RE = re.compile(r"[a-z]+\.wiki")
_ARTICLE_RE = re.compile(r".org/wiki/([a-zA-Z0-9а-яА-Я_()%,:]+)")

SUMMARY_QUERY = "format=json&action=query&prop=extracts&exintro=&explaintext=&titles="


class WikiExtract(BaseModel):
    """One page object from the extracts API. Other keys are ignored."""

    model_config = ConfigDict(frozen=True)

    title: str | None = None
    extract: str | None = None


class _Query(BaseModel):
    pages: dict[str, WikiExtract] = Field(default_factory=dict)


class SummaryResponse(BaseModel):
    query: _Query = Field(default_factory=_Query)


def parse_wiki_url(url: str) -> tuple[str, str] | None:
    """Split a wiki URL into (language, article), or None if either is missing."""
    lang = _LANG_RE.search(url.lower())
    article = _ARTICLE_RE.search(url)
    if not lang or not article:
        return None
    return lang.group(0)[: -len(".wiki")], article.group(1)


def format_extract(page: WikiExtract) -> str:
    reply = "*" + (page.title or "") + "*\n"
    if page.extract is not None:
        reply += "```" + page.extract + "```"
    return reply


def pick_page(pages: dict[str, WikiExtract]) -> WikiExtract | None:
    """First page carrying a title.

    Page ids are opaque and the API gives no ordering guarantee; we take
    them in the order the JSON document lists them and do not sort.
    """
    for page in pages.values():
        if page.title is not None:
            return page
    return None


class WikiFetcher:
    """Turns a Wikipedia article URL into a bolded title plus quoted intro."""

    def __init__(self, http: httpx.AsyncClient, host: str = DEFAULT_WIKI_HOST):
        self._http = http
        self.host = host

    def summary_url(self, lang: str, article: str) -> str:
        # article goes in verbatim: links already carry their %-escapes
        return f"https://{lang}.{self.host}/w/api.php?{SUMMARY_QUERY}{article}"

    async def fetch(self, url: str) -> str:
        parsed = parse_wiki_url(url)
        if parsed is None:
            logger.warning(f"Wiki: cannot find language and article in {url}")
            return ""
        lang, article = parsed
        logger.debug(f"Wiki: lang={lang} article={article}")

        try:
            resp = await self._http.get(self.summary_url(lang, article))
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning(f"Wiki: summary request failed for {article}: {e}")
            return ""

        try:
            summary = parse_response(SummaryResponse, resp.content, "wiki summary")
        except ResponseShapeError as e:
            logger.warning(f"Wiki: {e}")
            return ""

        page = pick_page(summary.query.pages)
        if page is None:
            return ""
        return format_extract(page)
