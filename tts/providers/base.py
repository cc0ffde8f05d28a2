"""
TTS Provider Base Protocol

Defines the interface every speech synthesis provider implements.
"""

from typing import Protocol, Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class TTSProvider(Protocol):
    """
    Unified interface for TTS providers.

    Providers (ElevenLabs, Mock) implement this protocol so the synthesizer
    can swap them through configuration.

    Methods:
        synthesize: Generate a complete audio file (blocking until complete)
        validate_config: Check if provider is properly configured
    """

    async def synthesize(self, text: str, voice: Optional[str] = None, **kwargs) -> bytes:
        """
        Synthesize text to complete audio.

        Args:
            text: Text to synthesize
            voice: Voice ID (provider-specific, uses config default if None)
            **kwargs: Provider-specific parameters (stability, similarity_boost, etc.)

        Returns:
            bytes: Encoded MP3 audio data

        Raises:
            Exception: On synthesis failure (network, API error, invalid config)
        """
        ...

    def validate_config(self) -> Tuple[bool, Optional[str]]:
        """
        Validate provider configuration (API keys, credentials, etc.).

        Returns:
            Tuple of (is_valid, error_message):
                - (True, None) if configuration is valid
                - (False, "error message") if configuration is invalid
        """
        ...
