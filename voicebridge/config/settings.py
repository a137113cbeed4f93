"""
Environment-driven settings for the bridge service.

Values are read from the process environment, optionally seeded from a local
``.env`` file. Credentials are not checked here; callers ask for what they need
through :meth:`Settings.require` so that a missing key fails loudly at the point
of use (or at startup, see ``run.py``) rather than silently per request.
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Mapping, Optional

import dotenv

from voicebridge.config.constants import (
    DEFAULT_GREETING,
    DEFAULT_INSTRUCTIONS,
    DEFAULT_PENDING_FRAMES,
    DEFAULT_QUEUE_SIZE,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_REALTIME_URL,
    DEFAULT_TELNYX_API_BASE,
    DEFAULT_VOICE,
    MEDIA_PATH,
    TURN_DETECTION_MANUAL,
    TURN_DETECTION_SERVER_VAD,
)
from voicebridge.errors import MissingConfiguration

# Keys without which the service cannot place calls or bridge audio
REQUIRED_KEYS = (
    "TELNYX_API_KEY",
    "TELNYX_CONNECTION_ID",
    "TELNYX_FROM_NUMBER",
    "OPENAI_API_KEY",
    "PUBLIC_DOMAIN",
)

_ATTRIBUTES = {
    "TELNYX_API_KEY": "telnyx_api_key",
    "TELNYX_CONNECTION_ID": "telnyx_connection_id",
    "TELNYX_FROM_NUMBER": "telnyx_from_number",
    "OPENAI_API_KEY": "openai_api_key",
    "PUBLIC_DOMAIN": "public_domain",
}


@dataclass(frozen=True)
class Settings:
    telnyx_api_key: Optional[str] = None
    telnyx_connection_id: Optional[str] = None
    telnyx_from_number: Optional[str] = None
    telnyx_api_base: str = DEFAULT_TELNYX_API_BASE
    openai_api_key: Optional[str] = None
    openai_realtime_model: str = DEFAULT_REALTIME_MODEL
    openai_realtime_url: str = DEFAULT_REALTIME_URL
    openai_voice: str = DEFAULT_VOICE
    agent_instructions: str = DEFAULT_INSTRUCTIONS
    agent_greeting: Optional[str] = DEFAULT_GREETING
    turn_detection: str = TURN_DETECTION_SERVER_VAD
    public_domain: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 10000
    log_level: str = "INFO"
    bridge_queue_size: int = DEFAULT_QUEUE_SIZE
    pending_frame_limit: int = DEFAULT_PENDING_FRAMES
    activation_max_attempts: int = 1
    activation_backoff_seconds: float = 0.5

    @property
    def media_url(self) -> str:
        """WebSocket URL advertised to Telnyx as the streaming target."""
        self.require("PUBLIC_DOMAIN")
        domain = self.public_domain.strip("/")
        for prefix in ("https://", "http://", "wss://", "ws://"):
            if domain.startswith(prefix):
                domain = domain[len(prefix):]
        return f"wss://{domain}{MEDIA_PATH}"

    def missing(self, *names: str) -> List[str]:
        """Return the required keys (or the given subset) that are not set."""
        keys = names or REQUIRED_KEYS
        return [key for key in keys if not getattr(self, _ATTRIBUTES[key])]

    def require(self, *names: str) -> None:
        missing = self.missing(*names)
        if missing:
            raise MissingConfiguration(missing)


def _int(environ: Mapping[str, str], key: str, default: int) -> int:
    value = environ.get(key)
    return int(value) if value not in (None, "") else default


def _float(environ: Mapping[str, str], key: str, default: float) -> float:
    value = environ.get(key)
    return float(value) if value not in (None, "") else default


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build a Settings instance from an environment mapping.

    Args:
        environ: Mapping to read from; defaults to ``os.environ`` after loading
            ``.env`` from the working directory if one exists.

    Raises:
        ValueError: If TURN_DETECTION names an unknown mode or a numeric
            setting cannot be parsed.
    """
    if environ is None:
        env_path = Path(".") / ".env"
        if env_path.exists():
            dotenv.load_dotenv(env_path)
        environ = os.environ

    turn_detection = environ.get("TURN_DETECTION", TURN_DETECTION_SERVER_VAD).lower()
    if turn_detection not in (TURN_DETECTION_SERVER_VAD, TURN_DETECTION_MANUAL):
        raise ValueError(f"Unknown TURN_DETECTION mode: {turn_detection}")

    greeting = environ.get("AGENT_GREETING", DEFAULT_GREETING)

    return Settings(
        telnyx_api_key=environ.get("TELNYX_API_KEY") or None,
        telnyx_connection_id=environ.get("TELNYX_CONNECTION_ID") or None,
        telnyx_from_number=environ.get("TELNYX_FROM_NUMBER") or None,
        telnyx_api_base=environ.get("TELNYX_API_BASE", DEFAULT_TELNYX_API_BASE).rstrip("/"),
        openai_api_key=environ.get("OPENAI_API_KEY") or None,
        openai_realtime_model=environ.get("OPENAI_REALTIME_MODEL", DEFAULT_REALTIME_MODEL),
        openai_realtime_url=environ.get("OPENAI_REALTIME_URL", DEFAULT_REALTIME_URL),
        openai_voice=environ.get("OPENAI_VOICE", DEFAULT_VOICE),
        agent_instructions=environ.get("AGENT_INSTRUCTIONS", DEFAULT_INSTRUCTIONS),
        agent_greeting=greeting or None,
        turn_detection=turn_detection,
        public_domain=environ.get("PUBLIC_DOMAIN") or environ.get("RENDER_DOMAIN") or None,
        host=environ.get("HOST", "0.0.0.0"),
        port=_int(environ, "PORT", 10000),
        log_level=environ.get("LOG_LEVEL", "INFO").upper(),
        bridge_queue_size=max(1, _int(environ, "BRIDGE_QUEUE_SIZE", DEFAULT_QUEUE_SIZE)),
        pending_frame_limit=max(0, _int(environ, "BRIDGE_PENDING_FRAMES", DEFAULT_PENDING_FRAMES)),
        activation_max_attempts=max(1, _int(environ, "ACTIVATION_MAX_ATTEMPTS", 1)),
        activation_backoff_seconds=max(0.0, _float(environ, "ACTIVATION_BACKOFF_SECONDS", 0.5)),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return load_settings()
