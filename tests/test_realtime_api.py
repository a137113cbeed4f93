"""
Unit tests for the OpenAI Realtime session client.

These tests verify the connection handshake, event serialization and the mapping
of closed connections to PeerDisconnect.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK
from websockets.frames import Close

from voicebridge.bot.realtime_api import RealtimeSessionClient, SessionConfig
from voicebridge.errors import MissingConfiguration, PeerDisconnect
from voicebridge.models.openai_schemas import InputAudioAppendMessage


@pytest.fixture
def mock_ws():
    """Provide a mock WebSocket connection."""
    ws = AsyncMock()
    ws.send = AsyncMock()
    ws.recv = AsyncMock()
    ws.close = AsyncMock()
    return ws


@pytest.fixture
def realtime_client():
    """Create a RealtimeSessionClient instance for testing."""
    return RealtimeSessionClient("test-api-key", model="gpt-4o-realtime-preview-test")


async def connect(client, ws):
    with patch("voicebridge.bot.realtime_api.websockets.connect", return_value=ws) as mock_connect:
        with patch("asyncio.wait_for", new=AsyncMock(return_value=ws)):
            await client.connect()
    return mock_connect


@pytest.mark.asyncio
async def test_connect_sends_auth_headers(realtime_client, mock_ws):
    """Test that the connection is authenticated and names the model."""
    mock_connect = await connect(realtime_client, mock_ws)

    assert realtime_client.connected
    url = mock_connect.call_args.args[0]
    assert url == "wss://api.openai.com/v1/realtime?model=gpt-4o-realtime-preview-test"
    headers = mock_connect.call_args.kwargs["additional_headers"]
    assert headers["Authorization"] == "Bearer test-api-key"
    assert headers["OpenAI-Beta"] == "realtime=v1"


@pytest.mark.asyncio
async def test_connect_without_api_key():
    """Test that connecting without a key raises before opening a socket."""
    client = RealtimeSessionClient(None)
    with patch("voicebridge.bot.realtime_api.websockets.connect") as mock_connect:
        with pytest.raises(MissingConfiguration):
            await client.connect()
    mock_connect.assert_not_called()


@pytest.mark.asyncio
async def test_connect_after_close_is_refused(realtime_client):
    """Test that a closed client never reconnects."""
    await realtime_client.close()
    with pytest.raises(PeerDisconnect):
        await realtime_client.connect()


@pytest.mark.asyncio
async def test_configure_sends_session_update(realtime_client, mock_ws):
    """Test that configure sends a g711_ulaw session.update."""
    await connect(realtime_client, mock_ws)

    await realtime_client.configure(SessionConfig(instructions="Be brief.", voice="verse"))

    message = json.loads(mock_ws.send.call_args.args[0])
    assert message["type"] == "session.update"
    assert message["session"]["input_audio_format"] == "g711_ulaw"
    assert message["session"]["output_audio_format"] == "g711_ulaw"
    assert message["session"]["voice"] == "verse"
    assert message["session"]["turn_detection"] == {"type": "server_vad"}


@pytest.mark.asyncio
async def test_configure_manual_disables_server_vad(realtime_client, mock_ws):
    """Test that manual turn detection sends an explicit null."""
    await connect(realtime_client, mock_ws)

    await realtime_client.configure(SessionConfig(turn_detection="manual"))

    message = json.loads(mock_ws.send.call_args.args[0])
    assert "turn_detection" in message["session"]
    assert message["session"]["turn_detection"] is None


@pytest.mark.asyncio
async def test_request_response_with_instructions(realtime_client, mock_ws):
    """Test that response.create carries per-response instructions when given."""
    await connect(realtime_client, mock_ws)

    await realtime_client.request_response("Say hello.")
    await realtime_client.request_response()

    first, second = [json.loads(call.args[0]) for call in mock_ws.send.call_args_list]
    assert first == {"type": "response.create", "response": {"instructions": "Say hello."}}
    assert second == {"type": "response.create"}


@pytest.mark.asyncio
async def test_send_event_serializes_message(realtime_client, mock_ws):
    """Test that client events are sent as JSON text."""
    await connect(realtime_client, mock_ws)

    await realtime_client.send_event(InputAudioAppendMessage(audio="AAA="))

    mock_ws.send.assert_awaited_once_with('{"type":"input_audio_buffer.append","audio":"AAA="}')


@pytest.mark.asyncio
async def test_send_before_connect_raises(realtime_client):
    """Test that sending without a connection is a disconnect."""
    with pytest.raises(PeerDisconnect):
        await realtime_client.send("{}")


@pytest.mark.asyncio
async def test_receive_returns_raw_message(realtime_client, mock_ws):
    """Test that receive hands back the next raw server event."""
    await connect(realtime_client, mock_ws)
    mock_ws.recv.return_value = '{"type": "session.created"}'

    assert await realtime_client.receive() == '{"type": "session.created"}'


@pytest.mark.asyncio
async def test_receive_maps_closed_connection(realtime_client, mock_ws):
    """Test that a closed socket surfaces as PeerDisconnect with its close code."""
    await connect(realtime_client, mock_ws)
    mock_ws.recv.side_effect = ConnectionClosedError(Close(1011, "server error"), None)

    with pytest.raises(PeerDisconnect) as exc_info:
        await realtime_client.receive()

    assert exc_info.value.side == "realtime"
    assert exc_info.value.code == 1011


@pytest.mark.asyncio
async def test_send_maps_closed_connection(realtime_client, mock_ws):
    """Test that sending on a closed socket surfaces as PeerDisconnect."""
    await connect(realtime_client, mock_ws)
    mock_ws.send.side_effect = ConnectionClosedOK(None, Close(1000, ""))

    with pytest.raises(PeerDisconnect) as exc_info:
        await realtime_client.send("{}")

    assert exc_info.value.code == 1000


@pytest.mark.asyncio
async def test_close_is_idempotent(realtime_client, mock_ws):
    """Test that close closes the socket once and disables the client."""
    await connect(realtime_client, mock_ws)

    await realtime_client.close()
    await realtime_client.close()

    mock_ws.close.assert_awaited_once()
    assert not realtime_client.connected
    with pytest.raises(PeerDisconnect):
        await realtime_client.receive()
