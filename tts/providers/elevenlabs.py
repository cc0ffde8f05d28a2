"""
ElevenLabs TTS Provider

Implements the ElevenLabs text-to-speech API with:
    - MP3 output (playable directly by the companion front-end)
    - Stability/similarity_boost parameters (no direct emotion support)
    - Blocking SDK calls pushed to a worker thread
"""

import asyncio
import logging
from typing import Optional, Tuple

from elevenlabs import VoiceSettings
from elevenlabs.client import ElevenLabs

from tts.config import TTSConfig

logger = logging.getLogger(__name__)


class ElevenLabsTTSProvider:
    """
    ElevenLabs TTS provider.

    Audio Format:
        - Encoding: MP3 (config.elevenlabs_output_format, default mp3_44100_128)
        - Retained as the replayable artifact; normalized separately for lip-sync
    """

    def __init__(self, config: TTSConfig):
        """
        Initialize ElevenLabs TTS provider.

        Args:
            config: TTSConfig with elevenlabs_api_key, elevenlabs_voice, etc.

        Raises:
            ValueError: If elevenlabs_api_key not set
        """
        self.config = config

        is_valid, error_msg = self.validate_config()
        if not is_valid:
            raise ValueError(f"Invalid ElevenLabs config: {error_msg}")

        self.client = ElevenLabs(api_key=self.config.elevenlabs_api_key)

        logger.info(f" ElevenLabs TTS initialized (voice: {self.config.elevenlabs_voice})")

    def _get_voice_settings(self, **kwargs) -> VoiceSettings:
        return VoiceSettings(
            stability=kwargs.get("stability", self.config.elevenlabs_stability),
            similarity_boost=kwargs.get("similarity_boost", self.config.elevenlabs_similarity_boost),
        )

    def _convert(self, text: str, voice_id: str, voice_settings: VoiceSettings) -> bytes:
        # convert() yields MP3 chunks lazily; drain them on the worker thread
        audio_stream = self.client.text_to_speech.convert(
            text=text,
            voice_id=voice_id,
            model_id=self.config.elevenlabs_model,
            output_format=self.config.elevenlabs_output_format,
            voice_settings=voice_settings,
        )
        return b"".join(chunk for chunk in audio_stream if chunk)

    async def synthesize(self, text: str, voice: Optional[str] = None, **kwargs) -> bytes:
        """
        Synthesize text to MP3 audio using ElevenLabs TTS.

        Args:
            text: Text to synthesize
            voice: ElevenLabs voice ID (config default if None)
            **kwargs: stability / similarity_boost overrides

        Returns:
            bytes: MP3 audio data

        Raises:
            Exception: On API error or empty audio
        """
        voice_id = voice or self.config.elevenlabs_voice
        voice_settings = self._get_voice_settings(**kwargs)

        try:
            audio = await asyncio.to_thread(self._convert, text, voice_id, voice_settings)
        except Exception as e:
            logger.error(f" ElevenLabs TTS synthesis failed: {e}")
            raise

        if not audio:
            raise RuntimeError("Failed to synthesize with ElevenLabs (no audio returned)")

        logger.debug(f" ElevenLabs TTS synthesized {len(text)} chars → {len(audio)} bytes")
        return audio

    def validate_config(self) -> Tuple[bool, Optional[str]]:
        """
        Validate ElevenLabs TTS configuration.

        Checks:
            - elevenlabs_api_key is set
            - API key is non-empty

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not self.config.elevenlabs_api_key:
            return False, "elevenlabs_api_key not set (ELEVENLABS_API_KEY)"

        if len(self.config.elevenlabs_api_key) < 10:
            return False, "elevenlabs_api_key appears invalid (too short)"

        return True, None
