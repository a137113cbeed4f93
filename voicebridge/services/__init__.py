"""
Services module for external control-plane integrations.

Key components:
- telnyx_client: Telephony Signaling Client for the Telnyx Call Control API. It
  creates outbound calls and activates bidirectional media streaming; it keeps no
  per-call state and never retries.

Usage examples:
```python
from voicebridge.models.audio import TELEPHONY_AUDIO_FORMAT
from voicebridge.services.telnyx_client import TelnyxClient

client = TelnyxClient(api_key, connection_id="123", from_number="+15550100")
created = await client.create_call("+15550199")
await client.activate_streaming(
    created.call_id, "wss://bridge.example.com/media", TELEPHONY_AUDIO_FORMAT
)
```
"""

from voicebridge.services.telnyx_client import CreatedCall, TelnyxClient
