"""Error kinds raised at the Slack and enrichment service boundaries."""

from __future__ import annotations


class PlaybotError(Exception):
    """Base class for playbot errors."""


class BootstrapError(PlaybotError):
    """The session could not be established. Startup must abort."""


class HandshakeError(BootstrapError):
    """The rtm.start handshake failed or returned an unusable answer."""


class ConnectError(BootstrapError):
    """The websocket endpoint returned by the handshake could not be opened."""


class ResponseShapeError(PlaybotError):
    """A service answered with a body that does not match the expected shape."""

    def __init__(self, service: str, detail: str):
        super().__init__(f"{service}: unexpected response shape ({detail})")
        self.service = service
        self.detail = detail


class CompileServiceError(PlaybotError):
    """Transport failure while submitting source to the compile service."""
