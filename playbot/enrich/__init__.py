"""Enrichment fetchers: stateless lookups invoked once per matched URL."""

from playbot.enrich.playground import CompileResult, PlaygroundFetcher
from playbot.enrich.wiki import WikiExtract, WikiFetcher

__all__ = ["CompileResult", "PlaygroundFetcher", "WikiExtract", "WikiFetcher"]
