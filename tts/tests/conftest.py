"""
pytest Configuration and Fixtures

Provides reusable fixtures for speech pipeline testing:
    - tts_config: TTSConfig with mock provider and no retry delay
    - elevenlabs_config: TTSConfig for the ElevenLabs provider with a fake key
    - timing_document: Rhubarb-style JSON timing document
    - audio_dir: Temporary directory for synthesized and normalized files
"""

import pytest

from tts.config import TTSConfig


@pytest.fixture
def tts_config():
    """
    TTSConfig with mock provider and test settings.

    Uses mock provider to avoid requiring API keys during testing.
    """
    return TTSConfig(
        provider="mock",
        ffmpeg_path="/usr/bin/ffmpeg",
        rhubarb_path="/opt/rhubarb/rhubarb",
        synthesis_timeout=1.0,
        transcode_timeout=1.0,
        lipsync_timeout=1.0,
        retry_attempts=1,
        retry_delay=0.0,
    )


@pytest.fixture
def elevenlabs_config():
    return TTSConfig(
        provider="elevenlabs",
        elevenlabs_api_key="sk_test_0123456789abcdef",
        elevenlabs_voice="voice-123",
        retry_attempts=1,
        retry_delay=0.0,
    )


@pytest.fixture
def timing_document():
    return {
        "metadata": {"soundFile": "session_1_message_0.wav", "duration": 0.6},
        "mouthCues": [
            {"start": 0.27, "end": 0.6, "value": "X"},
            {"start": 0.0, "end": 0.05, "value": "X"},
            {"start": 0.05, "end": 0.27, "value": "D"},
        ],
    }


@pytest.fixture
def audio_dir(tmp_path):
    directory = tmp_path / "users" / "user-1"
    directory.mkdir(parents=True)
    return directory
