"""
Configuration for the Companion Orchestrator

Loads configuration from environment variables once at startup and composes
the per-component configs (Redis, TTS, artifacts).
"""

import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from artifacts.config import ArtifactConfig
from shared.redis_client import RedisConfig
from tts.config import TTSConfig

logger = logging.getLogger(__name__)


@dataclass
class CompanionConfig:
    """Configuration for the message pipeline, HTTP surface and background sweeps"""

    # Reply generation (Gemini)
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash"
    temperature: float = 0.6
    max_output_tokens: int = 500
    generation_timeout: float = 30.0
    persona_name: str = "chatovia"

    # HTTP
    port: int = 3000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    # Background sweeps
    plan_expiry_interval_hours: float = 24.0
    artifact_purge_interval_hours: float = 1.0
    plan_days: int = 30

    # Components
    redis: RedisConfig = field(default_factory=RedisConfig)
    tts: TTSConfig = field(default_factory=TTSConfig)
    artifacts: ArtifactConfig = field(default_factory=ArtifactConfig)

    @staticmethod
    def from_env() -> "CompanionConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            - GEMINI_API_KEY: Reply generation API key
            - GEMINI_MODEL: Model name (default: gemini-1.5-flash)
            - COMPANION_TEMPERATURE: Sampling temperature (default: 0.6)
            - COMPANION_MAX_OUTPUT_TOKENS: Reply token cap (default: 500)
            - COMPANION_GENERATION_TIMEOUT: Generation timeout (default: 30.0s)
            - COMPANION_PERSONA_NAME: Companion name used in the persona (default: chatovia)
            - PORT: Listen port (default: 3000)
            - CORS_ORIGINS: Comma-separated allowed origins (default: *)
            - COMPANION_PLAN_EXPIRY_INTERVAL_HOURS: Plan expiration sweep interval (default: 24)
            - COMPANION_ARTIFACT_PURGE_INTERVAL_HOURS: Artifact purge interval (default: 1)
            - COMPANION_PLAN_DAYS: Paid plan lifetime in days (default: 30)
        """
        return CompanionConfig(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-1.5-flash"),
            temperature=float(os.getenv("COMPANION_TEMPERATURE", "0.6")),
            max_output_tokens=int(os.getenv("COMPANION_MAX_OUTPUT_TOKENS", "500")),
            generation_timeout=float(os.getenv("COMPANION_GENERATION_TIMEOUT", "30.0")),
            persona_name=os.getenv("COMPANION_PERSONA_NAME", "chatovia"),
            port=int(os.getenv("PORT", "3000")),
            cors_origins=CompanionConfig.cors_origins_from_env(),
            plan_expiry_interval_hours=float(os.getenv("COMPANION_PLAN_EXPIRY_INTERVAL_HOURS", "24")),
            artifact_purge_interval_hours=float(os.getenv("COMPANION_ARTIFACT_PURGE_INTERVAL_HOURS", "1")),
            plan_days=int(os.getenv("COMPANION_PLAN_DAYS", "30")),
            redis=RedisConfig.from_env(),
            tts=TTSConfig.from_env(),
            artifacts=ArtifactConfig.from_env(),
        )

    @staticmethod
    def cors_origins_from_env() -> List[str]:
        return [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

    def __post_init__(self):
        """Validate configuration"""
        if not (0.0 <= self.temperature <= 2.0):
            raise ValueError(f"temperature must be between 0.0 and 2.0, got {self.temperature}")
        if self.max_output_tokens <= 0:
            raise ValueError("max_output_tokens must be positive")
        if self.generation_timeout <= 0:
            raise ValueError("generation_timeout must be positive")
        if self.plan_expiry_interval_hours <= 0 or self.artifact_purge_interval_hours <= 0:
            raise ValueError("sweep intervals must be positive")
        if self.plan_days <= 0:
            raise ValueError("plan_days must be positive")

        if not self.gemini_api_key:
            logger.warning("️ No GEMINI_API_KEY configured! /chat will answer with an API configuration error")

        logger.info(
            f"CompanionConfig loaded: model={self.gemini_model}, port={self.port}, "
            f"audio_dir={self.artifacts.audio_dir}, plan_days={self.plan_days}"
        )

    def environment_check(self) -> dict:
        """Which credentials and tool paths are present (never the values)."""
        return {
            "hasGeminiKey": bool(self.gemini_api_key),
            "hasElevenLabsKey": bool(self.tts.elevenlabs_api_key),
            "ttsProvider": self.tts.provider,
            "hasVoiceId": bool(self.tts.elevenlabs_voice),
            "ffmpegPath": self.tts.ffmpeg_path,
            "rhubarbPath": self.tts.rhubarb_path,
            "hasServiceRedis": bool(self.redis.service_url),
            "port": self.port,
        }
