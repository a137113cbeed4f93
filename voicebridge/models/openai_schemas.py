"""
Pydantic models for OpenAI Realtime API message structures.

This module provides type-safe models for the client events the bridge sends to the
Realtime API and helpers for reading the server events it reacts to.
"""

import json
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from voicebridge.config.constants import (
    REALTIME_AUDIO_DELTA_EVENTS,
    TURN_DETECTION_SERVER_VAD,
)


class RealtimeBaseMessage(BaseModel):
    """Base model for Realtime API client events."""
    type: str

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


class TurnDetection(BaseModel):
    """Server-side voice activity detection settings."""
    type: str = TURN_DETECTION_SERVER_VAD
    threshold: Optional[float] = None
    prefix_padding_ms: Optional[int] = None
    silence_duration_ms: Optional[int] = None


class SessionSettings(BaseModel):
    """The session object carried by a session.update event."""
    modalities: List[str] = Field(default_factory=lambda: ["audio", "text"])
    instructions: str
    voice: Optional[str] = None
    input_audio_format: str
    output_audio_format: str
    # None disables server-side turn detection; the key must still be sent
    turn_detection: Optional[TurnDetection] = None


class SessionUpdateMessage(RealtimeBaseMessage):
    """session.update client event."""
    type: Literal["session.update"] = "session.update"
    session: SessionSettings

    def to_json(self) -> str:
        data = self.model_dump(exclude_none=True)
        data["session"]["turn_detection"] = (
            self.session.turn_detection.model_dump(exclude_none=True)
            if self.session.turn_detection is not None
            else None
        )
        return json.dumps(data)


class InputAudioAppendMessage(RealtimeBaseMessage):
    """input_audio_buffer.append client event."""
    type: Literal["input_audio_buffer.append"] = "input_audio_buffer.append"
    audio: str = Field(..., description="Base64 encoded audio in the session input format")


class InputAudioCommitMessage(RealtimeBaseMessage):
    """input_audio_buffer.commit client event."""
    type: Literal["input_audio_buffer.commit"] = "input_audio_buffer.commit"


class ResponseOptions(BaseModel):
    """Per-response overrides for response.create."""
    instructions: Optional[str] = None
    modalities: Optional[List[str]] = None


class ResponseCreateMessage(RealtimeBaseMessage):
    """response.create client event."""
    type: Literal["response.create"] = "response.create"
    response: Optional[ResponseOptions] = None


def extract_audio_delta(event: Dict[str, Any]) -> Optional[str]:
    """
    Return the base64 audio carried by an audio delta event.

    The delta is a base64 string in the Realtime API; some relays wrap it as
    ``{"audio": ...}``. Returns None for other event types or empty deltas.
    """
    if event.get("type") not in REALTIME_AUDIO_DELTA_EVENTS:
        return None
    delta = event.get("delta")
    if isinstance(delta, dict):
        delta = delta.get("audio")
    if isinstance(delta, str) and delta:
        return delta
    return None
