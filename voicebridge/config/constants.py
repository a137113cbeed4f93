"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for protocol names and defaults, and making it easier
to maintain consistent naming throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "voicebridge"

# Default OpenAI model and endpoint for the Realtime API
DEFAULT_REALTIME_MODEL = "gpt-4o-realtime-preview"
DEFAULT_REALTIME_URL = "wss://api.openai.com/v1/realtime"
DEFAULT_VOICE = "alloy"

# Telnyx Call Control API
DEFAULT_TELNYX_API_BASE = "https://api.telnyx.com/v2"
MEDIA_PATH = "/media"
STREAM_TRACK_BOTH = "both_tracks"
STREAM_BIDIRECTIONAL_MODE = "rtp"

# Agent persona
DEFAULT_INSTRUCTIONS = (
    "You are a natural-sounding phone assistant. Keep your answers short and human."
)
DEFAULT_GREETING = "Hello, how can I help you?"

# Turn detection modes
TURN_DETECTION_SERVER_VAD = "server_vad"
TURN_DETECTION_MANUAL = "manual"

# Audio format constants
AUDIO_ENCODING_PCMU = "PCMU"
REALTIME_FORMAT_G711_ULAW = "g711_ulaw"
TELEPHONY_SAMPLE_RATE = 8000
TELEPHONY_CHANNELS = 1

# Telnyx media stream events
TELNYX_EVENT_START = "start"
TELNYX_EVENT_MEDIA = "media"
TELNYX_EVENT_STOP = "stop"
TELNYX_EVENT_CLEAR = "clear"

# Telnyx webhook event kinds after normalization
CALL_EVENT_ANSWERED = "answered"
CALL_EVENT_HANGUP = "hangup"

# OpenAI Realtime server events
REALTIME_SESSION_CREATED = "session.created"
REALTIME_SESSION_UPDATED = "session.updated"
REALTIME_AUDIO_DELTA_EVENTS = ("response.audio.delta", "response.output_audio.delta")
REALTIME_RESPONSE_DONE_EVENTS = ("response.done", "response.audio.done")
REALTIME_SPEECH_STARTED = "input_audio_buffer.speech_started"
REALTIME_ERROR = "error"

# Bounded per-session outbound queues
DEFAULT_QUEUE_SIZE = 256
DEFAULT_PENDING_FRAMES = 64
