"""
Artifact store fixtures: a temporary audio directory and a store over the
dict-backed Redis from the root conftest.
"""

import pytest

from artifacts.artifact_store import ArtifactStore
from artifacts.config import ArtifactConfig


@pytest.fixture
def artifact_config(tmp_path):
    return ArtifactConfig(audio_dir=tmp_path / "audios", retention_hours=24)


@pytest.fixture
def artifact_store(artifact_config, record_store):
    return ArtifactStore(artifact_config, record_store)
