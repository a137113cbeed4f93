"""
Models module for data structures and state management in the call-media bridge.

Key components:
- call: Call lifecycle states and the CallRegistry owned by the Call Lifecycle Controller.
- audio: The single narrow-band AudioFormat both peers agree on.
- telnyx_schemas: Pydantic models for Telnyx media frames, webhook notifications and
  the operator call request.
- openai_schemas: Pydantic models for OpenAI Realtime API client events and helpers
  for reading server events.

Usage examples:
```python
from voicebridge.models.telnyx_schemas import CallNotification, media_frame

notification = CallNotification.from_webhook(
    {"data": {"event_type": "call.answered", "payload": {"call_control_id": "call_123"}}}
)
assert notification.is_answered

frame = media_frame("BBB=", stream_id="s1").to_json()
```
"""

from voicebridge.models.audio import TELEPHONY_AUDIO_FORMAT, AudioFormat
from voicebridge.models.call import Call, CallRegistry, CallState
from voicebridge.models.openai_schemas import (
    InputAudioAppendMessage,
    InputAudioCommitMessage,
    ResponseCreateMessage,
    SessionSettings,
    SessionUpdateMessage,
    TurnDetection,
    extract_audio_delta,
)
from voicebridge.models.telnyx_schemas import (
    CallNotification,
    CallRequest,
    CallResponse,
    ClearFrame,
    OutboundMediaFrame,
    StreamStartFrame,
    media_frame,
)
