"""
Speech Synthesizer - text segment to playable and normalized audio

Wraps the configured TTS provider and the ffmpeg transcoder. Provider errors
are not caught here; they propagate so the caller can degrade the segment.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import httpx

from shared.retry import TRANSIENT_ERRORS, call_with_retry
from tts.config import TTSConfig
from tts.providers.base import TTSProvider
from tts.transcoder import FFmpegTranscoder

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

# The ElevenLabs SDK talks HTTP through httpx
SYNTHESIS_RETRY_ON = TRANSIENT_ERRORS + (httpx.TransportError,)


@dataclass
class SynthesisResult:
    """Result of TTS synthesis"""
    audio_path: Path
    duration_ms: float
    provider: str
    size_bytes: int


class SpeechSynthesizer:
    """
    Synthesizes one reply segment at a time.

    Usage:
        synthesizer = SpeechSynthesizer(TTSConfig.from_env())
        result = await synthesizer.synthesize("Hey!", "audios/users/u1/s_message_0.mp3")
        wav = await synthesizer.normalize(result.audio_path, "audios/users/u1/s_message_0.wav")
    """

    def __init__(
        self,
        config: TTSConfig,
        provider: Optional[TTSProvider] = None,
        transcoder: Optional[FFmpegTranscoder] = None,
    ):
        self.config = config
        self.provider = provider if provider is not None else self._initialize_provider()
        self.transcoder = transcoder or FFmpegTranscoder(config)

        self.stats: Dict[str, int] = {
            "total_requests": 0,
            "failures": 0,
        }

    def _initialize_provider(self) -> Optional[TTSProvider]:
        """Build the configured provider; None when credentials are missing."""
        if self.config.provider == "mock":
            from tts.providers.mock import MockTTSProvider
            return MockTTSProvider(self.config)

        try:
            from tts.providers.elevenlabs import ElevenLabsTTSProvider
            return ElevenLabsTTSProvider(self.config)
        except ValueError as e:
            logger.warning(f"️ ElevenLabs provider unavailable: {e}")
            return None

    @property
    def is_configured(self) -> bool:
        return self.provider is not None

    @property
    def provider_name(self) -> str:
        return type(self.provider).__name__ if self.provider is not None else "none"

    async def synthesize(self, text: str, output_path: PathLike) -> SynthesisResult:
        """
        Synthesize ``text`` and write the audio to ``output_path``.

        Raises:
            RuntimeError: No provider configured
            Exception: Whatever the provider raises (after one retry on transient errors)
        """
        if self.provider is None:
            raise RuntimeError("No TTS provider configured")

        self.stats["total_requests"] += 1
        start = time.time()

        try:
            audio = await call_with_retry(
                lambda: self.provider.synthesize(text, voice=self.config.elevenlabs_voice),
                timeout=self.config.synthesis_timeout,
                retries=self.config.retry_attempts,
                retry_delay=self.config.retry_delay,
                retry_on=SYNTHESIS_RETRY_ON,
                label="speech synthesis",
            )
        except Exception:
            self.stats["failures"] += 1
            raise

        output_path = Path(output_path)
        await asyncio.to_thread(output_path.write_bytes, audio)

        duration_ms = (time.time() - start) * 1000
        logger.info(f" Synthesized {len(text)} chars → {output_path.name} ({len(audio)} bytes, {duration_ms:.0f}ms)")

        return SynthesisResult(
            audio_path=output_path,
            duration_ms=duration_ms,
            provider=self.provider_name,
            size_bytes=len(audio),
        )

    async def normalize(self, source: PathLike, target: PathLike) -> Path:
        """
        Convert the synthesized audio into the lip-sync input format.

        Raises:
            TranscodeError: Optimized and fallback conversions both failed
        """
        return await self.transcoder.normalize(source, target)

    def get_stats(self) -> Dict[str, int]:
        return dict(self.stats)
