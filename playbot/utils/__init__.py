"""Shared helpers."""

from playbot.utils.helpers import parse_response

__all__ = ["parse_response"]
