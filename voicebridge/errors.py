"""
Error taxonomy for the call-media bridge.

Control-plane errors (UpstreamRequestError, MissingConfiguration) are reported to
whoever triggered the action. Data-plane errors (MalformedFrame, PeerDisconnect,
PeerError) never leave the Bridge Session they occurred in.
"""

from typing import Any, Iterable, Optional


class VoiceBridgeError(Exception):
    """Base class for all application errors."""


class UpstreamRequestError(VoiceBridgeError):
    """A control-plane HTTP request to a provider did not succeed."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body


class MissingConfiguration(VoiceBridgeError):
    """Required credentials or settings are absent."""

    def __init__(self, names: Iterable[str]):
        self.names = sorted(set(names))
        super().__init__(f"Missing required configuration: {', '.join(self.names)}")


class MalformedFrame(VoiceBridgeError):
    """An inbound socket message could not be parsed as a JSON object."""


class PeerDisconnect(VoiceBridgeError):
    """One side of a Bridge Session closed its connection."""

    def __init__(self, side: str, code: Optional[int] = None):
        super().__init__(f"{side} connection closed (code={code})")
        self.side = side
        self.code = code


class PeerError(VoiceBridgeError):
    """One side of a Bridge Session failed with an unexpected error."""

    def __init__(self, side: str, cause: BaseException):
        super().__init__(f"{side} connection failed: {cause!r}")
        self.side = side
        self.cause = cause
