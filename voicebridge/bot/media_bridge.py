"""
Bridge between a Telnyx media stream and an OpenAI Realtime session.

Each accepted telephony WebSocket gets its own BridgeSession, which opens a companion
Realtime connection and relays audio in both directions until either side ends:

- Telnyx ``media`` frames become ``input_audio_buffer.append`` events once the
  session configuration has been sent; earlier frames are dropped.
- Realtime audio deltas become Telnyx ``media`` frames tagged with the stream id.
  Deltas that arrive before Telnyx has announced a stream id are held (bounded) and
  flushed in order when the ``start`` frame arrives.
- Closing or failing either connection closes the other and ends the session.

Sessions share no state. Every outbound frame goes through a bounded per-direction
queue that drops its oldest audio frame when a peer cannot keep up; control frames
are never dropped.
"""

import asyncio
import json
import logging
import uuid
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional, Set, Union

from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from voicebridge.bot.realtime_api import RealtimeSessionClient, SessionConfig
from voicebridge.config.constants import (
    DEFAULT_PENDING_FRAMES,
    DEFAULT_QUEUE_SIZE,
    LOGGER_NAME,
    REALTIME_ERROR,
    REALTIME_RESPONSE_DONE_EVENTS,
    REALTIME_SESSION_CREATED,
    REALTIME_SESSION_UPDATED,
    REALTIME_SPEECH_STARTED,
    TELNYX_EVENT_MEDIA,
    TELNYX_EVENT_START,
    TELNYX_EVENT_STOP,
)
from voicebridge.config.settings import Settings
from voicebridge.errors import (
    MalformedFrame,
    MissingConfiguration,
    PeerDisconnect,
    PeerError,
)
from voicebridge.models.audio import TELEPHONY_AUDIO_FORMAT
from voicebridge.models.openai_schemas import (
    InputAudioAppendMessage,
    InputAudioCommitMessage,
    ResponseCreateMessage,
    extract_audio_delta,
)
from voicebridge.models.telnyx_schemas import (
    ClearFrame,
    OutboundMediaFrame,
    StreamStartFrame,
    media_frame,
)

logger = logging.getLogger(LOGGER_NAME)

TELEPHONY = "telephony"
REALTIME = "realtime"

# Telnyx streams both legs; only the caller's leg goes to the model
INBOUND_TRACKS = (None, "inbound", "inbound_track")


def parse_frame(raw: Union[str, bytes, None]) -> Dict[str, Any]:
    """
    Parse a socket message as a JSON object.

    Raises:
        MalformedFrame: If the message is empty, not JSON, or not an object
    """
    if raw is None:
        raise MalformedFrame("empty frame")
    try:
        frame = json.loads(raw)
    except (ValueError, TypeError, RecursionError) as e:
        raise MalformedFrame(f"invalid JSON: {e}") from e
    if not isinstance(frame, dict):
        raise MalformedFrame(f"expected a JSON object, got {type(frame).__name__}")
    return frame


def greeting_instructions(greeting: str) -> str:
    return f"Greet the caller by saying exactly: {greeting}"


class OutboundQueue:
    """
    Bounded FIFO of outbound frames that drops its oldest audio frame when full.

    Only items accepted by ``droppable`` are ever evicted; control frames are always
    delivered, even if that briefly takes the queue past ``maxsize``.
    """

    def __init__(
        self,
        side: str,
        maxsize: int = DEFAULT_QUEUE_SIZE,
        droppable: Optional[Callable[[Any], bool]] = None,
    ):
        self.side = side
        self.maxsize = maxsize
        self._droppable = droppable or (lambda item: True)
        self._items: Deque[Any] = deque()
        self._not_empty = asyncio.Event()
        self.dropped = 0

    def put(self, item: Any) -> None:
        if len(self._items) >= self.maxsize and not self._evict_oldest():
            if self._droppable(item):
                self._record_drop()
                return
        self._items.append(item)
        self._not_empty.set()

    def _evict_oldest(self) -> bool:
        for index, queued in enumerate(self._items):
            if self._droppable(queued):
                del self._items[index]
                self._record_drop()
                return True
        return False

    def _record_drop(self) -> None:
        self.dropped += 1
        if self.dropped == 1 or self.dropped % 100 == 0:
            logger.warning(
                f"{self.side} peer is not keeping up, dropped {self.dropped} audio frame(s)"
            )

    async def get(self) -> Any:
        while not self._items:
            self._not_empty.clear()
            await self._not_empty.wait()
        return self._items.popleft()

    def qsize(self) -> int:
        return len(self._items)


class BridgeSession:
    """
    One active audio relay: a telephony connection paired with a Realtime connection.

    The session exists exactly as long as its telephony connection. It owns the
    Realtime client exclusively and closes it on teardown.
    """

    def __init__(
        self,
        telephony: WebSocket,
        realtime: RealtimeSessionClient,
        config: Optional[SessionConfig] = None,
        greeting: Optional[str] = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        pending_limit: int = DEFAULT_PENDING_FRAMES,
    ):
        self.session_id = uuid.uuid4().hex[:12]
        self.telephony = telephony
        self.realtime = realtime
        self.config = config or SessionConfig()
        self.audio_format = self.config.audio_format
        self.greeting = greeting

        self.stream_id: Optional[str] = None
        self.call_control_id: Optional[str] = None
        self.ready = False
        self.configured = False
        self.closed = False

        self._to_realtime = OutboundQueue(
            REALTIME, queue_size, droppable=lambda item: isinstance(item, InputAudioAppendMessage)
        )
        self._to_telephony = OutboundQueue(
            TELEPHONY, queue_size, droppable=lambda item: isinstance(item, OutboundMediaFrame)
        )
        self._pending: Deque[str] = deque(maxlen=pending_limit)
        self._tasks: List[asyncio.Task] = []

        self.frames_forwarded = 0
        self.frames_dropped = 0
        self.malformed_frames = 0
        self.deltas_forwarded = 0
        self.end_reason: Optional[BaseException] = None

    # Lifecycle

    async def run(self) -> None:
        """Relay until either connection ends, then tear both down."""
        self._tasks = [
            asyncio.create_task(self._run_realtime()),
            asyncio.create_task(self._read_telephony()),
            asyncio.create_task(self._drain(self._to_realtime, self.realtime.send_event, REALTIME)),
            asyncio.create_task(self._drain(self._to_telephony, self._send_to_telephony, TELEPHONY)),
        ]
        try:
            done, _ = await asyncio.wait(self._tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                if not task.cancelled() and task.exception() is not None:
                    self.end_reason = task.exception()
                    break
            self._log_end_reason()
        finally:
            await self.close()

    async def close(self) -> None:
        """Close both connections and stop relaying. Idempotent."""
        if self.closed:
            return
        self.closed = True
        self.ready = False

        current = asyncio.current_task()
        others = [task for task in self._tasks if task is not current]
        for task in others:
            if not task.done():
                task.cancel()
        await asyncio.gather(*others, return_exceptions=True)

        try:
            await self.telephony.close()
        except (RuntimeError, OSError, WebSocketDisconnect) as e:
            logger.debug(f"[{self.session_id}] Telephony connection was already closed: {e}")
        finally:
            await self.realtime.close()

        logger.info(
            f"[{self.session_id}] Bridge session closed: forwarded={self.frames_forwarded} "
            f"dropped={self.frames_dropped} malformed={self.malformed_frames} "
            f"deltas={self.deltas_forwarded}"
        )

    def _log_end_reason(self) -> None:
        reason = self.end_reason
        if isinstance(reason, PeerDisconnect):
            logger.info(f"[{self.session_id}] {reason}, ending bridge session")
        elif isinstance(reason, MissingConfiguration):
            logger.error(f"[{self.session_id}] Cannot bridge audio: {reason}")
        elif reason is not None:
            logger.warning(f"[{self.session_id}] Ending bridge session after error: {reason}")

    # Connection tasks

    async def _read_telephony(self) -> None:
        try:
            while True:
                message = await self.telephony.receive()
                if message.get("type") == "websocket.disconnect":
                    raise PeerDisconnect(TELEPHONY, message.get("code"))
                raw = message.get("text")
                if raw is None:
                    raw = message.get("bytes")
                self.handle_telephony_frame(raw)
        except PeerDisconnect:
            raise
        except WebSocketDisconnect as e:
            raise PeerDisconnect(TELEPHONY, e.code) from e
        except Exception as e:
            raise PeerError(TELEPHONY, e) from e

    async def _run_realtime(self) -> None:
        try:
            await self.realtime.connect()
            await self.realtime.configure(self.config)
            if self.greeting:
                await self.realtime.request_response(greeting_instructions(self.greeting))
            # No synchronous ack exists; session.updated is only logged when it arrives
            self.ready = True
            logger.info(f"[{self.session_id}] Realtime session configured, relaying audio")
            while True:
                raw = await self.realtime.receive()
                self.handle_realtime_frame(raw)
        except (PeerDisconnect, MissingConfiguration):
            raise
        except Exception as e:
            raise PeerError(REALTIME, e) from e

    async def _drain(
        self,
        queue: OutboundQueue,
        send: Callable[[Any], Awaitable[None]],
        side: str,
    ) -> None:
        try:
            while True:
                item = await queue.get()
                await send(item)
        except PeerDisconnect:
            raise
        except WebSocketDisconnect as e:
            raise PeerDisconnect(side, e.code) from e
        except Exception as e:
            raise PeerError(side, e) from e

    async def _send_to_telephony(self, frame: Union[OutboundMediaFrame, ClearFrame]) -> None:
        await self.telephony.send_text(frame.to_json())

    # Telephony -> Realtime

    def handle_telephony_frame(self, raw: Union[str, bytes, None]) -> None:
        """Apply one inbound Telnyx frame."""
        if self.closed:
            return
        try:
            frame = parse_frame(raw)
        except MalformedFrame as e:
            self.malformed_frames += 1
            logger.debug(f"[{self.session_id}] Dropping malformed telephony frame: {e}")
            return

        event = frame.get("event")
        if event == TELNYX_EVENT_MEDIA:
            self._on_telephony_media(frame)
        elif event == TELNYX_EVENT_START:
            self._on_telephony_start(frame)
        elif event == TELNYX_EVENT_STOP:
            self._on_telephony_stop()
        else:
            logger.debug(f"[{self.session_id}] Ignoring telephony event: {event}")

    def _on_telephony_media(self, frame: Dict[str, Any]) -> None:
        # Fast path - minimal validation for speed
        media = frame.get("media")
        payload = media.get("payload") if isinstance(media, dict) else None
        if not payload or not isinstance(payload, str):
            self.malformed_frames += 1
            return
        if media.get("track") not in INBOUND_TRACKS:
            return
        if not self.ready:
            self.frames_dropped += 1
            return
        self._to_realtime.put(InputAudioAppendMessage(audio=payload))
        self.frames_forwarded += 1

    def _on_telephony_start(self, frame: Dict[str, Any]) -> None:
        try:
            start = StreamStartFrame(**frame)
        except ValidationError as e:
            self.malformed_frames += 1
            logger.debug(f"[{self.session_id}] Dropping invalid start frame: {e}")
            return

        stream_id = start.resolved_stream_id
        self.call_control_id = start.call_control_id or self.call_control_id
        logger.info(
            f"[{self.session_id}] Telnyx stream started: stream_id={stream_id} "
            f"call_control_id={self.call_control_id}"
        )
        if not stream_id:
            return
        self.stream_id = stream_id
        while self._pending:
            self._to_telephony.put(media_frame(self._pending.popleft(), self.stream_id))

    def _on_telephony_stop(self) -> None:
        if self.config.server_vad:
            # The model decides turn boundaries; committing here would double up responses
            logger.info(f"[{self.session_id}] Telnyx stream stopped")
            return
        if not self.ready:
            return
        logger.debug(f"[{self.session_id}] Committing input audio buffer")
        self._to_realtime.put(InputAudioCommitMessage())
        self._to_realtime.put(ResponseCreateMessage())

    # Realtime -> Telephony

    def handle_realtime_frame(self, raw: Union[str, bytes, None]) -> None:
        """Apply one inbound Realtime event."""
        if self.closed:
            return
        try:
            event = parse_frame(raw)
        except MalformedFrame as e:
            self.malformed_frames += 1
            logger.debug(f"[{self.session_id}] Dropping malformed realtime frame: {e}")
            return

        audio = extract_audio_delta(event)
        if audio is not None:
            self._send_audio_to_telephony(audio)
            return

        event_type = event.get("type")
        if event_type in REALTIME_RESPONSE_DONE_EVENTS:
            logger.debug(f"[{self.session_id}] Realtime response complete ({event_type})")
        elif event_type == REALTIME_SPEECH_STARTED:
            self._on_caller_speech_started()
        elif event_type == REALTIME_SESSION_UPDATED:
            self.configured = True
            logger.info(f"[{self.session_id}] Realtime session configuration applied")
        elif event_type == REALTIME_SESSION_CREATED:
            logger.debug(f"[{self.session_id}] Realtime session created")
        elif event_type == REALTIME_ERROR:
            error = event.get("error")
            detail = error.get("message", error) if isinstance(error, dict) else error
            logger.error(f"[{self.session_id}] Realtime API error: {detail}")
        else:
            logger.debug(f"[{self.session_id}] Ignoring realtime event: {event_type}")

    def _send_audio_to_telephony(self, payload: str) -> None:
        if self.stream_id is None:
            if self._pending.maxlen == 0 or len(self._pending) == self._pending.maxlen:
                self.frames_dropped += 1
            self._pending.append(payload)
            return
        self._to_telephony.put(media_frame(payload, self.stream_id))
        self.deltas_forwarded += 1

    def _on_caller_speech_started(self) -> None:
        # Barge-in: flush agent audio Telnyx has queued for playback
        self._pending.clear()
        if self.stream_id is not None:
            logger.debug(f"[{self.session_id}] Caller started speaking, clearing playback")
            self._to_telephony.put(ClearFrame(stream_id=self.stream_id))


class MediaBridge:
    """
    Accepts telephony media connections and runs one BridgeSession per connection.

    Keeps only the set of live sessions for health reporting; there is no
    call-id registry here.
    """

    def __init__(
        self,
        settings: Settings,
        client_factory: Optional[Callable[[], RealtimeSessionClient]] = None,
    ):
        self.settings = settings
        self.client_factory = client_factory or self._default_client
        self.sessions: Set[BridgeSession] = set()

    def _default_client(self) -> RealtimeSessionClient:
        return RealtimeSessionClient(
            self.settings.openai_api_key,
            model=self.settings.openai_realtime_model,
            url=self.settings.openai_realtime_url,
        )

    def session_config(self) -> SessionConfig:
        return SessionConfig(
            audio_format=TELEPHONY_AUDIO_FORMAT,
            instructions=self.settings.agent_instructions,
            voice=self.settings.openai_voice,
            turn_detection=self.settings.turn_detection,
        )

    def create_session(self, websocket: WebSocket) -> BridgeSession:
        return BridgeSession(
            telephony=websocket,
            realtime=self.client_factory(),
            config=self.session_config(),
            greeting=self.settings.agent_greeting,
            queue_size=self.settings.bridge_queue_size,
            pending_limit=self.settings.pending_frame_limit,
        )

    async def handle_media_connection(self, websocket: WebSocket) -> None:
        """
        Bridge one accepted telephony media connection for its whole lifetime.

        Args:
            websocket: The Telnyx media WebSocket
        """
        await websocket.accept()
        session = self.create_session(websocket)
        self.sessions.add(session)
        logger.info(f"[{session.session_id}] Telnyx media connection accepted")
        try:
            await session.run()
        finally:
            self.sessions.discard(session)

    @property
    def active_sessions(self) -> int:
        return len(self.sessions)
