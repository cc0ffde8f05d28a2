"""
TTS Provider Implementations

Providers:
    - ElevenLabsTTSProvider: ElevenLabs TTS (production voice, MP3)
    - MockTTSProvider: Mock TTS (silent MP3 for testing)
"""

from .base import TTSProvider
from .elevenlabs import ElevenLabsTTSProvider
from .mock import MockTTSProvider

__all__ = ["TTSProvider", "ElevenLabsTTSProvider", "MockTTSProvider"]
