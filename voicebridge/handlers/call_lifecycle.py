"""
Call Lifecycle Controller.

Tracks each call from creation through hangup and reacts to Telnyx call
notifications. The only action it takes on its own is activating media streaming
once a call is answered; everything after that belongs to the Media Bridge.

State transitions:
    PENDING -> ANSWERED              on "answered" (activates streaming)
    ANSWERED -> STREAMING_REQUESTED  once activation succeeds
    any -> ENDED                     on "hangup" (the call is dropped)

State changes happen synchronously before any request is awaited, so a duplicate
"answered" notification observes the call as already ANSWERED and does nothing.
"""

import asyncio
import logging
from typing import Callable, Optional, Union

from voicebridge.config.constants import LOGGER_NAME
from voicebridge.config.settings import Settings
from voicebridge.errors import MissingConfiguration, UpstreamRequestError
from voicebridge.models.audio import TELEPHONY_AUDIO_FORMAT, AudioFormat
from voicebridge.models.call import Call, CallRegistry, CallState
from voicebridge.models.telnyx_schemas import CallNotification
from voicebridge.services.telnyx_client import CreatedCall, TelnyxClient

logger = logging.getLogger(LOGGER_NAME)


class CallLifecycleController:
    """
    Owns the CallRegistry and drives calls through their lifecycle.

    Args:
        telnyx_client: Signaling client used to create calls and activate streaming
        media_url: Settings (whose ``media_url`` is read at activation time), a
            callable returning the URL, or the URL itself
        audio_format: Audio format requested for both stream directions
        max_attempts: Activation attempts per answered call; 1 disables retries
        backoff_seconds: Base delay between attempts, multiplied by the attempt number
    """

    def __init__(
        self,
        telnyx_client: TelnyxClient,
        media_url: Union[Settings, Callable[[], str], str],
        audio_format: AudioFormat = TELEPHONY_AUDIO_FORMAT,
        max_attempts: int = 1,
        backoff_seconds: float = 0.5,
    ):
        self.telnyx_client = telnyx_client
        self._media_url = media_url
        self.audio_format = audio_format
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = max(0.0, backoff_seconds)
        self.registry = CallRegistry()

    @classmethod
    def from_settings(cls, settings: Settings, telnyx_client: TelnyxClient) -> "CallLifecycleController":
        return cls(
            telnyx_client,
            settings,
            max_attempts=settings.activation_max_attempts,
            backoff_seconds=settings.activation_backoff_seconds,
        )

    @property
    def media_url(self) -> str:
        """Resolve the streaming target; raises MissingConfiguration if unset."""
        if isinstance(self._media_url, Settings):
            return self._media_url.media_url
        if callable(self._media_url):
            return self._media_url()
        return self._media_url

    def get_state(self, call_id: str) -> Optional[CallState]:
        call = self.registry.get(call_id)
        return call.state if call is not None else None

    async def place_call(self, destination: str) -> CreatedCall:
        """
        Create an outbound call and start tracking it as PENDING.

        Raises:
            MissingConfiguration: If Telnyx credentials are unset
            UpstreamRequestError: If Telnyx rejects the call
        """
        created = await self.telnyx_client.create_call(destination)
        self.registry.add(Call(call_id=created.call_id, destination=destination))
        logger.info(f"Call {created.call_id} to {destination} is pending")
        return created

    async def handle_notification(self, notification: CallNotification) -> None:
        """
        Apply one call notification.

        Never raises for provider failures: activation errors are logged and the
        call is left in ANSWERED.
        """
        if not notification.call_id:
            logger.warning(f"Ignoring '{notification.kind}' notification without a call id")
            return

        if notification.is_answered:
            await self._on_answered(notification.call_id)
        elif notification.is_terminal:
            self._on_hangup(notification.call_id)
        else:
            logger.debug(f"Ignoring '{notification.kind}' notification for call {notification.call_id}")

    async def _on_answered(self, call_id: str) -> None:
        call = self.registry.get(call_id)
        if call is None:
            # Inbound, or placed by another process
            call = self.registry.add(Call(call_id=call_id, state=CallState.ANSWERED))
            logger.info(f"Call {call_id} answered (not placed by this service)")
        elif call.state == CallState.PENDING:
            call.state = CallState.ANSWERED
            logger.info(f"Call {call_id} answered")
        else:
            logger.info(f"Duplicate answered notification for call {call_id} in state {call.state.value}")
            return

        if await self._activate(call):
            call.state = CallState.STREAMING_REQUESTED
            logger.info(f"Streaming requested for call {call_id}")

    async def _activate(self, call: Call) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            try:
                await self.telnyx_client.activate_streaming(
                    call.call_id, self.media_url, self.audio_format
                )
                return True
            except MissingConfiguration as e:
                logger.error(f"Cannot activate streaming for call {call.call_id}: {e}")
                return False
            except UpstreamRequestError as e:
                logger.error(
                    f"Streaming activation failed for call {call.call_id} "
                    f"(attempt {attempt}/{self.max_attempts}): {e}"
                )

            if attempt < self.max_attempts:
                await asyncio.sleep(self.backoff_seconds * attempt)
                if self.registry.get(call.call_id) is not call:
                    logger.info(f"Call {call.call_id} ended before activation could be retried")
                    return False
        return False

    def _on_hangup(self, call_id: str) -> None:
        call = self.registry.remove(call_id)
        if call is None:
            logger.info(f"Hangup for untracked call {call_id}")
            return
        call.state = CallState.ENDED
        logger.info(f"Call {call_id} ended")
