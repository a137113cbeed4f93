from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from voicebridge.handlers.call_lifecycle import CallLifecycleController
from voicebridge.main import app, get_controller, media_bridge
from voicebridge.services.telnyx_client import TelnyxClient

client = TestClient(app)


@pytest.fixture
def override_controller():
    """Install a controller for the duration of one test"""

    def install(controller):
        app.dependency_overrides[get_controller] = lambda: controller
        return controller

    yield install
    app.dependency_overrides.clear()


def telnyx_controller(handler, **overrides):
    options = {
        "api_key": "KEY_test",
        "connection_id": "conn-1",
        "from_number": "+15550100",
        "transport": httpx.MockTransport(handler),
    }
    options.update(overrides)
    return CallLifecycleController(TelnyxClient(**options), "wss://bridge.example.com/media")


def test_health_check():
    """Test the health check endpoint returns correct response"""
    response = client.get("/health")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["status"] == "healthy"
    assert response_json["active_sessions"] == 0
    assert isinstance(response_json["tracked_calls"], int)
    assert isinstance(response_json["openai_api_key_configured"], bool)
    assert isinstance(response_json["telnyx_configured"], bool)


def test_root_endpoint():
    """Test the root endpoint returns the correct API information"""
    response = client.get("/")
    assert response.status_code == 200

    response_json = response.json()
    assert response_json["name"] == "Voice Bridge"
    assert response_json["version"] == "1.0.0"
    for path in ("/calls", "/telnyx-webhook", "/media", "/health"):
        assert path in response_json["endpoints"]


def test_place_call(override_controller):
    """Test that a created call is reported with its call control id"""
    telnyx_response = {"data": {"call_control_id": "call_123", "is_alive": False}}
    controller = override_controller(
        telnyx_controller(lambda request: httpx.Response(200, json=telnyx_response))
    )

    response = client.post("/calls", json={"to": "+15550199"})

    assert response.status_code == 200
    assert response.json() == {"ok": True, "call_control_id": "call_123", "telnyx": telnyx_response}
    assert "call_123" in controller.registry


def test_place_call_upstream_error(override_controller):
    """Test that a Telnyx rejection maps to 502 with the provider details"""
    errors = {"errors": [{"title": "Invalid destination"}]}
    override_controller(telnyx_controller(lambda request: httpx.Response(422, json=errors)))

    response = client.post("/calls", json={"to": "+1"})

    assert response.status_code == 502
    body = response.json()
    assert body["ok"] is False
    assert body["error"] == "Telnyx returned HTTP 422"
    assert body["details"] == {"status_code": 422, "body": errors}


def test_place_call_missing_configuration(override_controller):
    """Test that missing credentials map to 503"""
    override_controller(
        telnyx_controller(lambda request: httpx.Response(200, json={}), api_key=None)
    )

    response = client.post("/calls", json={"to": "+15550199"})

    assert response.status_code == 503
    body = response.json()
    assert body["ok"] is False
    assert "TELNYX_API_KEY" in body["details"]["missing"]


def test_place_call_requires_destination(override_controller):
    """Test that a request without a destination is rejected before any provider call"""
    controller = MagicMock()
    controller.place_call = AsyncMock()
    override_controller(controller)

    response = client.post("/calls", json={})

    assert response.status_code == 422
    controller.place_call.assert_not_awaited()


def test_webhook_acknowledges_and_processes(override_controller):
    """Test that notifications are acknowledged and handed to the controller"""
    controller = MagicMock()
    controller.handle_notification = AsyncMock()
    override_controller(controller)

    response = client.post(
        "/telnyx-webhook",
        json={"data": {"event_type": "call.answered", "payload": {"call_control_id": "call_123"}}},
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    notification = controller.handle_notification.await_args.args[0]
    assert notification.kind == "answered"
    assert notification.call_id == "call_123"


@pytest.mark.parametrize("content", [b"not json", b"[]", b"{}"])
def test_webhook_acknowledges_unreadable_bodies(override_controller, content):
    """Test that malformed webhooks are still acknowledged but not processed"""
    controller = MagicMock()
    controller.handle_notification = AsyncMock()
    override_controller(controller)

    response = client.post(
        "/telnyx-webhook", content=content, headers={"Content-Type": "application/json"}
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    controller.handle_notification.assert_not_awaited()


@pytest.mark.asyncio
async def test_media_endpoint():
    """Test that the media websocket endpoint hands the connection to the bridge"""
    with patch.object(media_bridge, "handle_media_connection", new=AsyncMock()) as mock_handle:
        mock_websocket = MagicMock()

        # Find the websocket endpoint by path
        websocket_route = next(route for route in app.routes if route.path == "/media")
        await websocket_route.endpoint(mock_websocket)

        mock_handle.assert_awaited_once_with(mock_websocket)
