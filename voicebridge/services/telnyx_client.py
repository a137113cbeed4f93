"""
Client for the Telnyx Call Control API.

Issues the two control-plane requests the bridge needs: creating an outbound call and
starting bidirectional media streaming on an answered call. Each request is a single
best-effort HTTP call; failures are raised to the caller, never retried here.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from voicebridge.config.constants import (
    DEFAULT_TELNYX_API_BASE,
    LOGGER_NAME,
    STREAM_BIDIRECTIONAL_MODE,
    STREAM_TRACK_BOTH,
)
from voicebridge.errors import MissingConfiguration, UpstreamRequestError
from voicebridge.models.audio import AudioFormat

logger = logging.getLogger(LOGGER_NAME)

REQUEST_TIMEOUT = 15.0  # seconds


@dataclass(frozen=True)
class CreatedCall:
    """Result of a successful call creation."""
    call_id: str
    response: Dict[str, Any]


class TelnyxClient:
    """
    Telephony Signaling Client for Telnyx.

    Holds no per-call state; every method issues exactly one authenticated request.
    """

    def __init__(
        self,
        api_key: Optional[str],
        connection_id: Optional[str] = None,
        from_number: Optional[str] = None,
        api_base: str = DEFAULT_TELNYX_API_BASE,
        timeout: float = REQUEST_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.connection_id = connection_id
        self.from_number = from_number
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise MissingConfiguration(["TELNYX_API_KEY"])
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def _post(self, path: str, body: Dict[str, Any]) -> Dict[str, Any]:
        headers = self._headers()
        url = f"{self.api_base}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Telnyx request to {path} failed: {e}")
            raise UpstreamRequestError(f"Telnyx request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {"raw": response.text}

        if response.is_error:
            logger.error(f"Telnyx {path} returned {response.status_code}: {data}")
            raise UpstreamRequestError(
                f"Telnyx returned HTTP {response.status_code}",
                status_code=response.status_code,
                body=data,
            )
        return data if isinstance(data, dict) else {"data": data}

    async def create_call(self, destination: str) -> CreatedCall:
        """
        Place an outbound call.

        Args:
            destination: Number to dial, in E.164 format

        Returns:
            CreatedCall with the provider-assigned call control id and the raw response

        Raises:
            MissingConfiguration: If the API key, connection id or caller number is unset
            UpstreamRequestError: If Telnyx does not accept the request
        """
        missing = [
            name
            for name, value in (
                ("TELNYX_API_KEY", self.api_key),
                ("TELNYX_CONNECTION_ID", self.connection_id),
                ("TELNYX_FROM_NUMBER", self.from_number),
            )
            if not value
        ]
        if missing:
            raise MissingConfiguration(missing)

        body = {
            "connection_id": self.connection_id,
            "to": destination,
            "from": self.from_number,
        }
        logger.info(f"Creating outbound call to {destination}")
        data = await self._post("/calls", body)

        payload = data.get("data")
        call_id = payload.get("call_control_id") if isinstance(payload, dict) else None
        if not call_id:
            raise UpstreamRequestError(
                "Telnyx response did not include a call_control_id", body=data
            )
        logger.info(f"Telnyx created call {call_id}")
        return CreatedCall(call_id=call_id, response=data)

    async def activate_streaming(
        self, call_id: str, media_url: str, audio_format: AudioFormat
    ) -> None:
        """
        Ask Telnyx to stream both legs of a call to the media endpoint.

        Streaming is not active until the media WebSocket actually connects.

        Args:
            call_id: Call control id of an answered call
            media_url: wss:// URL of this service's media endpoint
            audio_format: The agreed audio format for both directions

        Raises:
            UpstreamRequestError: If Telnyx does not accept the request
        """
        body = {
            "stream_url": media_url,
            "stream_track": STREAM_TRACK_BOTH,
            "stream_bidirectional_mode": STREAM_BIDIRECTIONAL_MODE,
            "stream_bidirectional_codec": audio_format.encoding,
            "stream_bidirectional_sampling_rate": audio_format.sample_rate,
        }
        logger.info(f"Starting media stream for call {call_id} -> {media_url}")
        data = await self._post(f"/calls/{call_id}/actions/streaming_start", body)
        logger.debug(f"streaming_start response for {call_id}: {data}")
