"""
Pydantic models for the Telnyx side of the bridge.

This module covers three Telnyx surfaces:
- Media streaming WebSocket frames (start, media, stop inbound; media, clear outbound)
- Call Control webhook notifications, in both the documented envelope form and the
  flat form some relays forward
- The operator-facing call request and response bodies
"""

from typing import Any, Dict, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from voicebridge.config.constants import (
    CALL_EVENT_ANSWERED,
    CALL_EVENT_HANGUP,
    TELNYX_EVENT_CLEAR,
    TELNYX_EVENT_MEDIA,
)

# Telnyx webhook event types that end a call
TERMINAL_EVENT_KINDS = {CALL_EVENT_HANGUP}


# Media stream frames
class MediaPayload(BaseModel):
    """Audio carried by a media frame, base64 in the agreed encoding."""

    payload: str = Field(..., description="Base64 encoded audio")
    track: Optional[str] = Field(None, description="inbound or outbound leg")


class StreamStartInfo(BaseModel):
    """Details attached to a start frame."""

    model_config = ConfigDict(extra="allow")

    call_control_id: Optional[str] = None
    stream_id: Optional[str] = None
    media_format: Optional[Dict[str, Any]] = None


class StreamStartFrame(BaseModel):
    """Model for the start frame Telnyx sends once streaming is active."""

    model_config = ConfigDict(extra="allow")

    event: Literal["start"]
    stream_id: Optional[str] = None
    start: Optional[StreamStartInfo] = None

    @property
    def resolved_stream_id(self) -> Optional[str]:
        if self.stream_id:
            return self.stream_id
        if self.start is not None:
            return self.start.stream_id
        return None

    @property
    def call_control_id(self) -> Optional[str]:
        return self.start.call_control_id if self.start is not None else None


class OutboundMediaFrame(BaseModel):
    """Model for audio sent back to Telnyx for playback on the call."""

    event: Literal["media"] = TELNYX_EVENT_MEDIA
    stream_id: Optional[str] = None
    media: MediaPayload

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


class ClearFrame(BaseModel):
    """Model for the clear frame that flushes queued playback on Telnyx."""

    event: Literal["clear"] = TELNYX_EVENT_CLEAR
    stream_id: Optional[str] = None

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


def media_frame(payload: str, stream_id: Optional[str] = None) -> OutboundMediaFrame:
    """Build an outbound media frame for a base64 payload."""
    return OutboundMediaFrame(stream_id=stream_id, media=MediaPayload(payload=payload))


# Webhook notifications
def normalize_event_kind(event_type: Optional[str]) -> str:
    """Map Telnyx event types to controller event kinds.

    ``call.answered`` becomes ``answered`` and ``call.hangup`` becomes ``hangup``;
    other event types are returned unchanged (lower-cased).
    """
    kind = (event_type or "").strip().lower()
    if kind.startswith("call."):
        kind = kind[len("call."):]
    return kind


class CallNotification(BaseModel):
    """A call lifecycle notification, normalized from a webhook body."""

    kind: str
    call_id: Optional[str] = None
    raw: Dict[str, Any] = Field(default_factory=dict)

    @property
    def is_answered(self) -> bool:
        return self.kind == CALL_EVENT_ANSWERED

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_EVENT_KINDS

    @classmethod
    def from_webhook(cls, body: Any) -> "CallNotification":
        """
        Build a notification from a webhook body.

        Accepts the Telnyx envelope ``{"data": {"event_type", "payload":
        {"call_control_id"}}}`` and the flat form ``{"event", "call_control_id"}``.

        Raises:
            ValueError: If the body is not a JSON object or names no event kind
        """
        if not isinstance(body, dict):
            raise ValueError("Webhook body must be a JSON object")

        data = body.get("data")
        if isinstance(data, dict):
            payload = data.get("payload") or {}
            event_type = data.get("event_type")
            call_id = payload.get("call_control_id") if isinstance(payload, dict) else None
        else:
            event_type = body.get("event") or body.get("event_type")
            call_id = body.get("call_control_id")

        kind = normalize_event_kind(event_type)
        if not kind:
            raise ValueError("Webhook body does not name an event")
        return cls(kind=kind, call_id=call_id or None, raw=body)


# Operator API
class CallRequest(BaseModel):
    """Model for an operator's request to place an outbound call."""

    to: str = Field(
        ...,
        validation_alias=AliasChoices("to", "destination"),
        description="Destination number in E.164 format",
    )

    @field_validator("to")
    def validate_to(cls, v):
        """Validate that the destination is not empty."""
        if not v.strip():
            raise ValueError("Destination cannot be empty")
        return v.strip()


class CallResponse(BaseModel):
    """Model for the operator-facing result of a call request."""

    ok: bool
    call_control_id: Optional[str] = None
    telnyx: Dict[str, Any] = Field(default_factory=dict)
