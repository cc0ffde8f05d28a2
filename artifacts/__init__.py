"""
Artifact Store for per-user, per-session audio and lip-sync files.

Usage:
    from artifacts import ArtifactConfig, ArtifactStore, SessionStatus
"""

from artifacts.config import ArtifactConfig
from artifacts.artifact_store import (
    ArtifactPaths,
    ArtifactStore,
    SessionStatus,
    user_dir_name,
    validate_component,
)
from artifacts.templates import DEFAULT_TEMPLATES

__all__ = [
    "ArtifactConfig",
    "ArtifactStore",
    "ArtifactPaths",
    "SessionStatus",
    "user_dir_name",
    "validate_component",
    "DEFAULT_TEMPLATES",
]
