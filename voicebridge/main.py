"""
FastAPI server for the Telnyx to OpenAI Realtime call-media bridge.

This module initializes and configures the FastAPI application that serves as
both the Telnyx Call Control webhook target and the Telnyx media streaming
endpoint. It wires the Telephony Signaling Client, the Call Lifecycle Controller
and the Media Bridge together from environment settings.

Endpoints:
- POST /calls: operator request to place an outbound call
- POST /telnyx-webhook: Telnyx call notifications, acknowledged immediately
- WS /media: Telnyx media streams, bridged to the OpenAI Realtime API
- GET /health and GET /: service status
"""

from contextlib import asynccontextmanager

from fastapi import BackgroundTasks, Depends, FastAPI, Request, WebSocket
from fastapi.responses import JSONResponse

from voicebridge.bot.media_bridge import MediaBridge
from voicebridge.config.logging_config import configure_logging
from voicebridge.config.settings import get_settings
from voicebridge.errors import MissingConfiguration, UpstreamRequestError
from voicebridge.handlers.call_lifecycle import CallLifecycleController
from voicebridge.models.telnyx_schemas import CallNotification, CallRequest, CallResponse
from voicebridge.services.telnyx_client import TelnyxClient

settings = get_settings()

# Configure logging
logger = configure_logging(settings.log_level)

telnyx_client = TelnyxClient(
    settings.telnyx_api_key,
    connection_id=settings.telnyx_connection_id,
    from_number=settings.telnyx_from_number,
    api_base=settings.telnyx_api_base,
)
controller = CallLifecycleController.from_settings(settings, telnyx_client)
media_bridge = MediaBridge(settings)


def get_controller() -> CallLifecycleController:
    return controller


def get_media_bridge() -> MediaBridge:
    return media_bridge


@asynccontextmanager
async def lifespan(app: FastAPI):
    missing = settings.missing()
    if missing:
        logger.error(f"Missing required configuration: {', '.join(missing)}")
    else:
        logger.info(f"Media endpoint: {settings.media_url}")
    logger.info(f"Turn detection: {settings.turn_detection}")
    yield
    logger.info(f"Shutting down with {media_bridge.active_sessions} active bridge sessions")


# Create FastAPI application
app = FastAPI(
    title="Voice Bridge",
    description="Bridge between Telnyx phone calls and the OpenAI Realtime API",
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(UpstreamRequestError)
async def upstream_error_handler(request: Request, exc: UpstreamRequestError):
    logger.error(f"{request.url.path} failed upstream: {exc.message}")
    return JSONResponse(
        status_code=502,
        content={
            "ok": False,
            "error": exc.message,
            "details": {"status_code": exc.status_code, "body": exc.body},
        },
    )


@app.exception_handler(MissingConfiguration)
async def missing_configuration_handler(request: Request, exc: MissingConfiguration):
    logger.error(f"{request.url.path} unavailable: {exc}")
    return JSONResponse(
        status_code=503,
        content={"ok": False, "error": str(exc), "details": {"missing": exc.names}},
    )


@app.post("/calls", response_model=CallResponse)
async def place_call(
    call_request: CallRequest,
    controller: CallLifecycleController = Depends(get_controller),
):
    """Place an outbound call; streaming starts once Telnyx reports it answered.

    Returns:
        CallResponse with the provider call control id and the raw Telnyx response.
    """
    created = await controller.place_call(call_request.to)
    return CallResponse(ok=True, call_control_id=created.call_id, telnyx=created.response)


@app.post("/telnyx-webhook")
async def telnyx_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    controller: CallLifecycleController = Depends(get_controller),
):
    """Acknowledge a Telnyx call notification and process it after responding.

    Telnyx only needs a timely 2xx; unreadable bodies are logged and still acknowledged.
    """
    try:
        body = await request.json()
        notification = CallNotification.from_webhook(body)
    except ValueError as e:
        logger.warning(f"Ignoring unreadable Telnyx webhook: {e}")
        return {"ok": True}

    logger.info(f"Telnyx webhook: {notification.kind} for call {notification.call_id}")
    background_tasks.add_task(controller.handle_notification, notification)
    return {"ok": True}


@app.websocket("/media")
async def media_endpoint(websocket: WebSocket):
    """WebSocket endpoint for Telnyx bidirectional media streams.

    Each connection is bridged to its own OpenAI Realtime session until either
    side disconnects.
    """
    await get_media_bridge().handle_media_connection(websocket)


@app.get("/health")
async def health_check():
    """Health check endpoint for monitoring system status.

    Returns:
        dict: Status, live bridge sessions, tracked calls and configured credentials.
    """
    return {
        "status": "healthy",
        "active_sessions": media_bridge.active_sessions,
        "tracked_calls": len(controller.registry),
        "turn_detection": settings.turn_detection,
        "telnyx_configured": not settings.missing(
            "TELNYX_API_KEY", "TELNYX_CONNECTION_ID", "TELNYX_FROM_NUMBER"
        ),
        "openai_api_key_configured": bool(settings.openai_api_key),
        "public_domain_configured": bool(settings.public_domain),
    }


@app.get("/")
async def root():
    """Root endpoint to display basic information about the API."""
    return {
        "name": "Voice Bridge",
        "description": "Bridge between Telnyx phone calls and the OpenAI Realtime API",
        "version": "1.0.0",
        "endpoints": {
            "/calls": "Place an outbound call (POST)",
            "/telnyx-webhook": "Telnyx call control webhook (POST)",
            "/media": "WebSocket endpoint for Telnyx media streams",
            "/health": "Health check endpoint",
        },
    }


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{settings.host}:{settings.port}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        ws_ping_interval=5,  # Frequent pings to keep media streams alive
        ws_max_size=16777216,  # 16MB - large enough for audio chunks
        ws_ping_timeout=20,
        http="h11",
    )
