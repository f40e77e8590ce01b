"""Process configuration."""

from playbot.config.schema import Settings, load_settings

__all__ = ["Settings", "load_settings"]
