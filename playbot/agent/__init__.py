"""Dispatching: the bot loop and its router."""

from playbot.agent.loop import BotLoop, LoopState
from playbot.agent.router import Route, Router, default_routes

__all__ = ["BotLoop", "LoopState", "Route", "Router", "default_routes"]
