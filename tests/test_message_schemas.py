"""
Unit tests for the message schemas.

These tests validate that the Pydantic models for both providers parse what the
providers send and serialize what they expect to receive.
"""

import json

import pytest
from pydantic import ValidationError

from voicebridge.models.audio import TELEPHONY_AUDIO_FORMAT, AudioFormat
from voicebridge.models.call import Call, CallRegistry, CallState
from voicebridge.models.openai_schemas import (
    InputAudioCommitMessage,
    ResponseCreateMessage,
    ResponseOptions,
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
    StreamStartFrame,
    media_frame,
    normalize_event_kind,
)


class TestTelnyxMediaFrames:
    """Tests for Telnyx media stream frames."""

    def test_start_frame_with_top_level_stream_id(self):
        """Test that the stream id is read from the top level of a start frame."""
        frame = StreamStartFrame(
            event="start",
            stream_id="s1",
            start={"call_control_id": "call_123", "media_format": {"encoding": "PCMU"}},
        )
        assert frame.resolved_stream_id == "s1"
        assert frame.call_control_id == "call_123"

    def test_start_frame_with_nested_stream_id(self):
        """Test that a stream id nested under start is used as a fallback."""
        frame = StreamStartFrame(event="start", start={"stream_id": "s2"})
        assert frame.resolved_stream_id == "s2"
        assert frame.call_control_id is None

    def test_start_frame_wrong_event(self):
        """Test that only start frames validate."""
        with pytest.raises(ValidationError):
            StreamStartFrame(event="media")

    def test_media_frame_tagged(self):
        """Test the outbound media frame layout."""
        assert json.loads(media_frame("BBB=", "s1").to_json()) == {
            "event": "media",
            "stream_id": "s1",
            "media": {"payload": "BBB="},
        }

    def test_media_frame_untagged(self):
        """Test that stream_id is omitted when unknown."""
        assert json.loads(media_frame("BBB=").to_json()) == {"event": "media", "media": {"payload": "BBB="}}

    def test_clear_frame(self):
        """Test the outbound clear frame layout."""
        assert json.loads(ClearFrame(stream_id="s1").to_json()) == {"event": "clear", "stream_id": "s1"}


class TestCallNotifications:
    """Tests for webhook normalization."""

    def test_envelope_form(self):
        """Test the documented Telnyx webhook envelope."""
        body = {"data": {"event_type": "call.answered", "payload": {"call_control_id": "call_123"}}}
        notification = CallNotification.from_webhook(body)

        assert notification.kind == "answered"
        assert notification.call_id == "call_123"
        assert notification.is_answered
        assert notification.raw == body

    def test_flat_form(self):
        """Test the flat form some relays forward."""
        notification = CallNotification.from_webhook({"event": "hangup", "call_control_id": "call_123"})

        assert notification.kind == "hangup"
        assert notification.is_terminal
        assert not notification.is_answered

    def test_other_event_kinds_pass_through(self):
        """Test that unrelated events are normalized but not acted on."""
        notification = CallNotification.from_webhook(
            {"data": {"event_type": "call.initiated", "payload": {"call_control_id": "c"}}}
        )
        assert notification.kind == "initiated"
        assert not notification.is_answered
        assert not notification.is_terminal

    @pytest.mark.parametrize("body", [[], "answered", {}, {"data": {"payload": {}}}])
    def test_unreadable_bodies(self, body):
        """Test that bodies without an event are rejected."""
        with pytest.raises(ValueError):
            CallNotification.from_webhook(body)

    def test_normalize_event_kind(self):
        """Test event kind normalization."""
        assert normalize_event_kind("call.answered") == "answered"
        assert normalize_event_kind("Call.Hangup") == "hangup"
        assert normalize_event_kind(None) == ""


class TestOperatorModels:
    """Tests for the operator call request and response."""

    def test_call_request_accepts_destination_alias(self):
        """Test that both 'to' and 'destination' are accepted."""
        assert CallRequest.model_validate({"to": " +15550199 "}).to == "+15550199"
        assert CallRequest.model_validate({"destination": "+15550199"}).to == "+15550199"

    def test_call_request_rejects_empty(self):
        """Test that a blank destination is invalid."""
        with pytest.raises(ValidationError):
            CallRequest.model_validate({"to": "   "})
        with pytest.raises(ValidationError):
            CallRequest.model_validate({})

    def test_call_response(self):
        """Test the response body layout."""
        response = CallResponse(ok=True, call_control_id="call_123", telnyx={"data": {}})
        assert response.model_dump() == {
            "ok": True,
            "call_control_id": "call_123",
            "telnyx": {"data": {}},
        }


class TestRealtimeMessages:
    """Tests for OpenAI Realtime client events and server event helpers."""

    def test_session_update_with_server_vad(self):
        """Test that server VAD is serialized as a turn_detection object."""
        message = SessionUpdateMessage(
            session=SessionSettings(
                instructions="Be brief.",
                input_audio_format="g711_ulaw",
                output_audio_format="g711_ulaw",
                turn_detection=TurnDetection(),
            )
        )
        data = json.loads(message.to_json())

        assert data["type"] == "session.update"
        assert data["session"]["modalities"] == ["audio", "text"]
        assert data["session"]["turn_detection"] == {"type": "server_vad"}
        assert "voice" not in data["session"]

    def test_session_update_without_turn_detection(self):
        """Test that disabling turn detection sends an explicit null."""
        message = SessionUpdateMessage(
            session=SessionSettings(
                instructions="Be brief.",
                input_audio_format="g711_ulaw",
                output_audio_format="g711_ulaw",
            )
        )
        data = json.loads(message.to_json())
        assert data["session"]["turn_detection"] is None

    def test_commit_and_response_create(self):
        """Test the payload-free client events."""
        assert json.loads(InputAudioCommitMessage().to_json()) == {"type": "input_audio_buffer.commit"}
        message = ResponseCreateMessage(response=ResponseOptions(instructions="Say hi."))
        assert json.loads(message.to_json()) == {
            "type": "response.create",
            "response": {"instructions": "Say hi."},
        }

    @pytest.mark.parametrize(
        "event,expected",
        [
            ({"type": "response.audio.delta", "delta": "BBB="}, "BBB="),
            ({"type": "response.output_audio.delta", "delta": "BBB="}, "BBB="),
            ({"type": "response.audio.delta", "delta": {"audio": "BBB="}}, "BBB="),
            ({"type": "response.audio.delta", "delta": ""}, None),
            ({"type": "response.audio.delta"}, None),
            ({"type": "response.text.delta", "delta": "hi"}, None),
        ],
    )
    def test_extract_audio_delta(self, event, expected):
        """Test audio extraction across delta event shapes."""
        assert extract_audio_delta(event) == expected


class TestAudioFormat:
    """Tests for the agreed audio format."""

    def test_telephony_format(self):
        """Test that the telephony format is 8 kHz mono PCMU."""
        assert TELEPHONY_AUDIO_FORMAT.encoding == "PCMU"
        assert TELEPHONY_AUDIO_FORMAT.sample_rate == 8000
        assert TELEPHONY_AUDIO_FORMAT.channels == 1
        assert TELEPHONY_AUDIO_FORMAT.realtime_format == "g711_ulaw"

    def test_unsupported_encoding(self):
        """Test that encodings without a Realtime equivalent are rejected."""
        with pytest.raises(ValueError):
            AudioFormat(encoding="OPUS")


class TestCallRegistry:
    """Tests for the CallRegistry class."""

    def test_add_get_remove(self):
        """Test the registry lifecycle of a call."""
        registry = CallRegistry()
        call = registry.add(Call(call_id="call_123", destination="+15550199"))

        assert "call_123" in registry
        assert len(registry) == 1
        assert registry.get("call_123") is call
        assert call.state == CallState.PENDING
        assert registry.all() == {"call_123": call}

        assert registry.remove("call_123") is call
        assert registry.remove("call_123") is None
        assert registry.get("call_123") is None
        assert len(registry) == 0
