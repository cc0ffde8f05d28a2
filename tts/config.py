"""
TTS Configuration Module

Configuration dataclass for speech synthesis, audio normalization and lip-sync
extraction, with environment variable loading and validation.
"""

import os
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class TTSConfig:
    """
    Configuration for the speech side of the reply pipeline.

    Supports 2 providers:
        - elevenlabs: ElevenLabs TTS (production voice, MP3 output)
        - mock: Mock TTS (silent audio for testing and local development)

    External tools:
        - ffmpeg: converts the synthesized MP3 into the lip-sync input format
        - rhubarb: extracts phonetic mouth cues from the normalized WAV
    """

    # Provider selection
    provider: str = "elevenlabs"  # elevenlabs, mock

    # ElevenLabs TTS
    elevenlabs_api_key: Optional[str] = None
    elevenlabs_voice: str = "21m00Tcm4TlvDq8ikWAM"
    elevenlabs_model: str = "eleven_multilingual_v2"
    elevenlabs_output_format: str = "mp3_44100_128"
    elevenlabs_stability: float = 0.5
    elevenlabs_similarity_boost: float = 0.75

    # Normalized audio (lip-sync extractor input)
    ffmpeg_path: str = "ffmpeg"
    normalized_sample_rate: int = 16000
    normalized_channels: int = 1
    normalized_codec: str = "pcm_s16le"

    # Lip-sync extractor
    rhubarb_path: str = "rhubarb"
    rhubarb_recognizer: str = "phonetic"

    # Timeouts and retries (seconds)
    synthesis_timeout: float = 30.0
    transcode_timeout: float = 30.0
    lipsync_timeout: float = 60.0
    retry_attempts: int = 1
    retry_delay: float = 1.0

    @staticmethod
    def from_env() -> "TTSConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            - COMPANION_TTS_PROVIDER: Provider (default: elevenlabs)
            - ELEVENLABS_API_KEY / ELEVEN_LABS_API_KEY: ElevenLabs API key
            - ELEVENLABS_VOICE_ID / VOICE_ID: ElevenLabs voice ID
            - ELEVENLABS_MODEL: ElevenLabs model (default: eleven_multilingual_v2)
            - ELEVENLABS_OUTPUT_FORMAT: Output format (default: mp3_44100_128)
            - FFMPEG_PATH: ffmpeg executable (default: ffmpeg)
            - RHUBARB_PATH: rhubarb executable (default: rhubarb)
            - COMPANION_TTS_TIMEOUT: Synthesis timeout (default: 30.0s)
            - COMPANION_TRANSCODE_TIMEOUT: ffmpeg timeout (default: 30.0s)
            - COMPANION_LIPSYNC_TIMEOUT: rhubarb timeout (default: 60.0s)
            - COMPANION_TTS_RETRY_ATTEMPTS: Retries on transient failures (default: 1)
            - COMPANION_TTS_RETRY_DELAY: Base retry delay (default: 1.0s)

        Returns:
            TTSConfig instance with values from environment or defaults
        """
        return TTSConfig(
            provider=os.getenv("COMPANION_TTS_PROVIDER", "elevenlabs"),

            elevenlabs_api_key=os.getenv("ELEVENLABS_API_KEY") or os.getenv("ELEVEN_LABS_API_KEY"),
            elevenlabs_voice=os.getenv("ELEVENLABS_VOICE_ID") or os.getenv("VOICE_ID") or "21m00Tcm4TlvDq8ikWAM",
            elevenlabs_model=os.getenv("ELEVENLABS_MODEL", "eleven_multilingual_v2"),
            elevenlabs_output_format=os.getenv("ELEVENLABS_OUTPUT_FORMAT", "mp3_44100_128"),
            elevenlabs_stability=float(os.getenv("ELEVENLABS_STABILITY", "0.5")),
            elevenlabs_similarity_boost=float(os.getenv("ELEVENLABS_SIMILARITY_BOOST", "0.75")),

            ffmpeg_path=os.getenv("FFMPEG_PATH") or "ffmpeg",
            rhubarb_path=os.getenv("RHUBARB_PATH") or "rhubarb",

            synthesis_timeout=float(os.getenv("COMPANION_TTS_TIMEOUT", "30.0")),
            transcode_timeout=float(os.getenv("COMPANION_TRANSCODE_TIMEOUT", "30.0")),
            lipsync_timeout=float(os.getenv("COMPANION_LIPSYNC_TIMEOUT", "60.0")),
            retry_attempts=int(os.getenv("COMPANION_TTS_RETRY_ATTEMPTS", "1")),
            retry_delay=float(os.getenv("COMPANION_TTS_RETRY_DELAY", "1.0")),
        )

    def __post_init__(self):
        """
        Validate configuration after initialization.

        Raises:
            ValueError: If any validation fails
        """
        valid_providers = ["elevenlabs", "mock"]
        if self.provider not in valid_providers:
            raise ValueError(f"Invalid provider: {self.provider}. Must be one of: {valid_providers}")

        if not (0.0 <= self.elevenlabs_stability <= 1.0):
            raise ValueError(f"Invalid elevenlabs_stability: {self.elevenlabs_stability}. Must be between 0.0 and 1.0.")

        if not (0.0 <= self.elevenlabs_similarity_boost <= 1.0):
            raise ValueError(
                f"Invalid elevenlabs_similarity_boost: {self.elevenlabs_similarity_boost}. Must be between 0.0 and 1.0."
            )

        if self.normalized_sample_rate <= 0:
            raise ValueError(f"Invalid normalized_sample_rate: {self.normalized_sample_rate}. Must be positive.")

        for name in ("synthesis_timeout", "transcode_timeout", "lipsync_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"Invalid {name}: {getattr(self, name)}. Must be positive.")

        if self.retry_attempts < 0:
            raise ValueError(f"Invalid retry_attempts: {self.retry_attempts}. Must be zero or more.")

        if self.provider == "elevenlabs" and not self.elevenlabs_api_key:
            logger.warning(
                "️ No ElevenLabs API key configured! "
                "Set ELEVENLABS_API_KEY or use COMPANION_TTS_PROVIDER=mock"
            )

        logger.info(
            f"️ TTS Config: provider={self.provider}, voice={self.elevenlabs_voice}, "
            f"ffmpeg={self.ffmpeg_path}, rhubarb={self.rhubarb_path}"
        )
