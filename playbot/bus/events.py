"""Events decoded from RTM websocket frames."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

MESSAGE = "message"


class EventError(BaseModel):
    """Error payload Slack attaches to some frames (e.g. a failed send)."""

    model_config = ConfigDict(frozen=True)

    code: int = 0
    msg: str = ""


class ChatEvent(BaseModel):
    """One RTM event.

    Every frame has a ``type``. Only ``message`` events carry the
    channel/user/text fields; for other types they stay empty.
    """

    model_config = ConfigDict(frozen=True)

    type: str
    channel: str = ""
    user: str = ""
    text: str = ""
    error: EventError | None = None

    @field_validator("channel", "user", "text", mode="before")
    @classmethod
    def _null_as_empty(cls, v: object) -> object:
        return "" if v is None else v

    @property
    def is_message(self) -> bool:
        return self.type == MESSAGE


def parse_frame(raw: str | bytes) -> ChatEvent | None:
    """Decode one frame, or return None if it is not a usable event.

    Binary frames are never events. Anything else that fails validation
    (bad JSON, missing ``type``, a ``user`` object instead of an id...)
    is dropped too.
    """
    if not isinstance(raw, str):
        return None
    try:
        return ChatEvent.model_validate_json(raw)
    except ValidationError:
        return None
