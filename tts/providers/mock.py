"""
Mock TTS Provider

Generates silent MP3 audio for local development and tests, so the whole
reply pipeline (transcoding and lip-sync included) runs without API keys.
"""

import math
import logging
from typing import Optional, Tuple

from tts.config import TTSConfig

logger = logging.getLogger(__name__)

# MPEG-1 Layer III, 32 kbps, 44.1 kHz, mono, no CRC; zeroed side info decodes to silence
MP3_FRAME_HEADER = b"\xff\xfb\x10\xc0"
MP3_FRAME_SIZE = 104
MP3_SAMPLE_RATE = 44100
MP3_SAMPLES_PER_FRAME = 1152


class MockTTSProvider:
    """
    Mock TTS provider for testing without real API calls.

    Audio Characteristics:
        - Silent (all-zero frames)
        - Duration: len(text) * 0.05 seconds (50ms per char), at least one frame
        - Format: MP3 mono 44.1 kHz, same container as the ElevenLabs output
    """

    def __init__(self, config: TTSConfig):
        self.config = config
        self.calls = 0
        logger.info(" Mock TTS initialized (silent audio generation)")

    def _generate_silent_mp3(self, duration_seconds: float) -> bytes:
        frame_seconds = MP3_SAMPLES_PER_FRAME / MP3_SAMPLE_RATE
        num_frames = max(1, math.ceil(duration_seconds / frame_seconds))
        frame = MP3_FRAME_HEADER + b"\x00" * (MP3_FRAME_SIZE - len(MP3_FRAME_HEADER))
        return frame * num_frames

    async def synthesize(self, text: str, voice: Optional[str] = None, **kwargs) -> bytes:
        """Generate silent MP3 audio sized to the text (voice and kwargs ignored)."""
        self.calls += 1
        duration_seconds = len(text) * 0.05
        mp3_audio = self._generate_silent_mp3(duration_seconds)

        logger.debug(f" Mock TTS generated {len(text)} chars → {duration_seconds:.2f}s silence ({len(mp3_audio)} bytes)")
        return mp3_audio

    def validate_config(self) -> Tuple[bool, Optional[str]]:
        return True, None
