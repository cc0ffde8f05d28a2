"""
Artifact Store Configuration

Environment variables:
    - COMPANION_AUDIO_DIR: Base directory for audio artifacts (default: ./audios)
    - COMPANION_ARTIFACT_RETENTION_HOURS: Hours a session's files are kept (default: 24)
"""

import os
import logging
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class ArtifactConfig:
    """
    On-disk layout for per-user audio artifacts.

    Directory Structure:
        audio_dir/
            ├── templates/             - Default lip-sync templates seeded into new users
            └── users/<user_id>/       - <session_id>_message_<i>.{mp3,wav,json}
    """

    audio_dir: Path = Path("./audios")
    retention_hours: float = 24.0

    @staticmethod
    def from_env() -> "ArtifactConfig":
        return ArtifactConfig(
            audio_dir=Path(os.getenv("COMPANION_AUDIO_DIR", "./audios")),
            retention_hours=float(os.getenv("COMPANION_ARTIFACT_RETENTION_HOURS", "24")),
        )

    def __post_init__(self):
        self.audio_dir = Path(self.audio_dir)
        if self.retention_hours <= 0:
            raise ValueError(f"Invalid retention_hours: {self.retention_hours}. Must be positive.")

    @property
    def users_dir(self) -> Path:
        return self.audio_dir / "users"

    @property
    def templates_dir(self) -> Path:
        return self.audio_dir / "templates"

    @property
    def retention(self) -> timedelta:
        return timedelta(hours=self.retention_hours)
