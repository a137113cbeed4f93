"""
Client for one OpenAI Realtime API session over WebSocket.

The client owns a single connection for a single Bridge Session. It never reconnects:
a lost connection surfaces as PeerDisconnect so the session can tear both sides down.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed

from voicebridge.config.constants import (
    DEFAULT_INSTRUCTIONS,
    DEFAULT_REALTIME_MODEL,
    DEFAULT_REALTIME_URL,
    LOGGER_NAME,
    TURN_DETECTION_SERVER_VAD,
)
from voicebridge.errors import MissingConfiguration, PeerDisconnect
from voicebridge.models.audio import TELEPHONY_AUDIO_FORMAT, AudioFormat
from voicebridge.models.openai_schemas import (
    RealtimeBaseMessage,
    ResponseCreateMessage,
    ResponseOptions,
    SessionSettings,
    SessionUpdateMessage,
    TurnDetection,
)

logger = logging.getLogger(LOGGER_NAME)

CONNECTION_TIMEOUT = 30  # seconds

# WebSocket configuration for low latency
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio chunks
WS_PING_INTERVAL = 5  # 5 seconds between pings
WS_PING_TIMEOUT = 20

SIDE = "realtime"


@dataclass(frozen=True)
class SessionConfig:
    """Parameters of a voice-model session, fixed for the session's lifetime."""
    audio_format: AudioFormat = TELEPHONY_AUDIO_FORMAT
    instructions: str = DEFAULT_INSTRUCTIONS
    voice: Optional[str] = None
    turn_detection: str = TURN_DETECTION_SERVER_VAD

    @property
    def server_vad(self) -> bool:
        return self.turn_detection == TURN_DETECTION_SERVER_VAD

    def to_message(self) -> SessionUpdateMessage:
        """Translate the parameters into a session.update event."""
        return SessionUpdateMessage(
            session=SessionSettings(
                instructions=self.instructions,
                voice=self.voice,
                input_audio_format=self.audio_format.realtime_format,
                output_audio_format=self.audio_format.realtime_format,
                turn_detection=TurnDetection() if self.server_vad else None,
            )
        )


class RealtimeSessionClient:
    """
    Voice-Session Client for the OpenAI Realtime API.

    Usage:
        client = RealtimeSessionClient(api_key, model)
        await client.connect()
        await client.configure(SessionConfig(instructions="..."))
        await client.send_event(InputAudioAppendMessage(audio=payload))
        raw = await client.receive()
        await client.close()
    """

    def __init__(
        self,
        api_key: Optional[str],
        model: str = DEFAULT_REALTIME_MODEL,
        url: str = DEFAULT_REALTIME_URL,
    ):
        self.api_key = api_key
        self.model = model
        self.url = url
        self.ws = None
        self._closed = False

    @property
    def connected(self) -> bool:
        return self.ws is not None and not self._closed

    async def connect(self) -> None:
        """
        Open the WebSocket to the Realtime endpoint.

        Raises:
            MissingConfiguration: If no API key is configured
            PeerDisconnect: If the client was already closed
        """
        if not self.api_key:
            raise MissingConfiguration(["OPENAI_API_KEY"])
        if self._closed:
            raise PeerDisconnect(SIDE)

        url = f"{self.url}?model={self.model}"
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "OpenAI-Beta": "realtime=v1",
        }
        logger.info(f"Connecting to OpenAI Realtime API with model: {self.model}")
        self.ws = await asyncio.wait_for(
            websockets.connect(
                url,
                max_size=WS_MAX_SIZE,
                ping_interval=WS_PING_INTERVAL,
                ping_timeout=WS_PING_TIMEOUT,
                compression=None,  # Disable compression for lower latency
                additional_headers=headers,
            ),
            timeout=CONNECTION_TIMEOUT,
        )
        logger.info("Connected to OpenAI Realtime API")

    async def send(self, text: str) -> None:
        """Send one serialized client event."""
        if not self.connected:
            raise PeerDisconnect(SIDE)
        try:
            await self.ws.send(text)
        except ConnectionClosed as e:
            raise PeerDisconnect(SIDE, _close_code(e)) from e

    async def send_event(self, message: RealtimeBaseMessage) -> None:
        await self.send(message.to_json())

    async def configure(self, config: SessionConfig) -> None:
        """Send the session configuration handshake."""
        logger.debug(
            f"Configuring realtime session: format={config.audio_format.realtime_format}, "
            f"turn_detection={config.turn_detection}"
        )
        await self.send_event(config.to_message())

    async def request_response(self, instructions: Optional[str] = None) -> None:
        """Ask the model to produce a response, optionally with per-response instructions."""
        options = ResponseOptions(instructions=instructions) if instructions else None
        await self.send_event(ResponseCreateMessage(response=options))

    async def receive(self) -> Union[str, bytes]:
        """
        Await the next raw message from the model.

        Raises:
            PeerDisconnect: When the connection is closed from either end
        """
        if not self.connected:
            raise PeerDisconnect(SIDE)
        try:
            return await self.ws.recv()
        except ConnectionClosed as e:
            raise PeerDisconnect(SIDE, _close_code(e)) from e

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self.ws is None:
            return
        try:
            await self.ws.close()
        except (ConnectionClosed, OSError) as e:
            logger.debug(f"Realtime connection was already closed: {e}")
        logger.info("OpenAI Realtime connection closed")


def _close_code(error: ConnectionClosed) -> Optional[int]:
    frame = error.rcvd or error.sent
    return frame.code if frame is not None else None
