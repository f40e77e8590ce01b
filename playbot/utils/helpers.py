"""Helpers shared by the Slack channel and the enrichment fetchers."""

from __future__ import annotations

from typing import TypeVar

from pydantic import BaseModel, ValidationError

from playbot.channels.errors import ResponseShapeError

M = TypeVar("M", bound=BaseModel)


def parse_response(model: type[M], body: bytes | str | dict, service: str) -> M:
    """Decode a JSON body (or an already decoded object) into ``model``.

    Raises:
        ResponseShapeError: body is not JSON, or does not fit ``model``.
    """
    try:
        if isinstance(body, dict):
            return model.model_validate(body)
        return model.model_validate_json(body)
    except ValidationError as e:
        first = e.errors()[0]
        where = ".".join(str(p) for p in first.get("loc", ())) or "<root>"
        raise ResponseShapeError(service, f"{where}: {first.get('msg', 'invalid')}") from e
