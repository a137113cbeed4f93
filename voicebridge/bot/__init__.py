"""
Bot module bridging Telnyx media streams to the OpenAI Realtime API.

Key components:
- RealtimeSessionClient: Voice-Session Client holding one WebSocket to the OpenAI
  Realtime API per call; translates session parameters into the session.update
  handshake and never reconnects.
- MediaBridge / BridgeSession: accept a Telnyx media WebSocket, open the paired
  Realtime connection, relay audio both ways, and tear both connections down together.

Usage examples:
```python
from fastapi import FastAPI, WebSocket

from voicebridge.bot import MediaBridge
from voicebridge.config.settings import get_settings

app = FastAPI()
media_bridge = MediaBridge(get_settings())

@app.websocket("/media")
async def media(websocket: WebSocket):
    await media_bridge.handle_media_connection(websocket)
```
"""

from voicebridge.bot.media_bridge import BridgeSession, MediaBridge
from voicebridge.bot.realtime_api import RealtimeSessionClient, SessionConfig

__all__ = ["BridgeSession", "MediaBridge", "RealtimeSessionClient", "SessionConfig"]
