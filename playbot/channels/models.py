"""Slack wire models: the rtm.start handshake and its roster snapshot."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class Profile(BaseModel):
    """Subset of a Slack user profile."""

    model_config = ConfigDict(frozen=True)

    first_name: str = ""
    last_name: str = ""
    real_name: str = ""
    email: str = ""
    skype: str = ""
    phone: str = ""


class User(BaseModel):
    """A workspace member as listed at handshake time."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    profile: Profile = Field(default_factory=Profile)


class Channel(BaseModel):
    """A public channel as listed at handshake time."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""
    members: list[str] = Field(default_factory=list)


class BotInfo(BaseModel):
    """The ``self`` block: who the bot is."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str = ""


class HelloResponse(BaseModel):
    """rtm.start answer."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    ok: bool = False
    url: str = ""
    bot: BotInfo | None = Field(default=None, alias="self")
    users: list[User] = Field(default_factory=list)
    channels: list[Channel] = Field(default_factory=list)
    error: str = ""


class ChannelListResponse(BaseModel):
    """channels.list answer."""

    ok: bool = False
    channels: list[Channel]
    error: str = ""
