"""Audio format shared by the telephony stream and the voice model."""

from dataclasses import dataclass

from voicebridge.config.constants import (
    AUDIO_ENCODING_PCMU,
    REALTIME_FORMAT_G711_ULAW,
    TELEPHONY_CHANNELS,
    TELEPHONY_SAMPLE_RATE,
)

# Telnyx codec name -> OpenAI Realtime audio format name
REALTIME_FORMATS = {
    AUDIO_ENCODING_PCMU: REALTIME_FORMAT_G711_ULAW,
}


@dataclass(frozen=True)
class AudioFormat:
    """Sample encoding, rate and channel count of a Bridge Session.

    Both peers use this format as-is; payloads are relayed without transcoding.
    """
    encoding: str = AUDIO_ENCODING_PCMU
    sample_rate: int = TELEPHONY_SAMPLE_RATE
    channels: int = TELEPHONY_CHANNELS

    def __post_init__(self):
        if self.encoding not in REALTIME_FORMATS:
            raise ValueError(f"Unsupported audio encoding: {self.encoding}")

    @property
    def realtime_format(self) -> str:
        return REALTIME_FORMATS[self.encoding]


TELEPHONY_AUDIO_FORMAT = AudioFormat()
