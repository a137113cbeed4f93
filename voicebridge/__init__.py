"""
Voice Bridge - Telnyx phone calls to OpenAI Realtime API

This application connects a telephone call placed through Telnyx to an OpenAI
Realtime voice session, so a caller can hold a spoken conversation with an AI agent.

The service plays three roles: it places outbound calls on request, reacts to
Telnyx call notifications by starting bidirectional media streaming, and relays
G.711 mu-law audio between the Telnyx media WebSocket and the Realtime API.

Architecture Overview:
- FastAPI server exposing the operator endpoint, the Telnyx webhook and the media WebSocket
- Call Lifecycle Controller tracking each call from creation to hangup
- Media Bridge running one Bridge Session per media connection
- OpenAI Realtime API client, one WebSocket per Bridge Session

Key Components:
- bot: Realtime API client and the Media Bridge
- config: Constants, logging setup and environment settings
- handlers: The Call Lifecycle Controller
- models: Call state, audio format and wire message schemas
- services: The Telnyx Call Control client

Getting Started:
1. Set up environment variables (or a .env file):
   - TELNYX_API_KEY, TELNYX_CONNECTION_ID, TELNYX_FROM_NUMBER
   - OPENAI_API_KEY
   - PUBLIC_DOMAIN: Host name Telnyx can reach this service on
   - PORT: Port to run the server on (default 10000)
   - TURN_DETECTION: server_vad (default) or manual

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the Telnyx Call Control application's webhook at
   https://PUBLIC_DOMAIN/telnyx-webhook, then place a call:
   ```bash
   curl -X POST https://PUBLIC_DOMAIN/calls -H 'Content-Type: application/json' \\
        -d '{"to": "+15550199"}'
   ```
"""
