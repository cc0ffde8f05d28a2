"""
Provider Tests

Tests each TTS provider against the TTSProvider interface with the remote
SDK mocked out.

Run with:
    pytest tts/tests/test_providers.py -v
"""

from unittest.mock import MagicMock, patch

import pytest

from tts.config import TTSConfig
from tts.providers.elevenlabs import ElevenLabsTTSProvider
from tts.providers.mock import MP3_FRAME_SIZE, MockTTSProvider


@pytest.mark.unit
class TestMockProvider:

    @pytest.mark.asyncio
    async def test_generates_silent_mp3(self, tts_config):
        provider = MockTTSProvider(tts_config)

        audio = await provider.synthesize("Hello world")

        assert len(audio) % MP3_FRAME_SIZE == 0
        frames = [audio[i:i + MP3_FRAME_SIZE] for i in range(0, len(audio), MP3_FRAME_SIZE)]
        assert len(frames) == 22
        assert all(frame[:4] == b"\xff\xfb\x10\xc0" for frame in frames)
        assert all(set(frame[4:]) == {0} for frame in frames)
        assert provider.calls == 1

    @pytest.mark.asyncio
    async def test_duration_scales_with_text(self, tts_config):
        provider = MockTTSProvider(tts_config)

        short = await provider.synthesize("Hi")
        long = await provider.synthesize("Hi there, how was your day?")

        assert len(long) > len(short)

    @pytest.mark.asyncio
    async def test_empty_text_still_one_frame(self, tts_config):
        audio = await MockTTSProvider(tts_config).synthesize("")

        assert len(audio) == MP3_FRAME_SIZE

    def test_always_valid(self, tts_config):
        assert MockTTSProvider(tts_config).validate_config() == (True, None)


@pytest.mark.unit
class TestElevenLabsProvider:

    def test_missing_key_rejected(self):
        config = TTSConfig(provider="elevenlabs", elevenlabs_api_key=None)

        with pytest.raises(ValueError, match="elevenlabs_api_key not set"):
            ElevenLabsTTSProvider(config)

    def test_short_key_rejected(self):
        config = TTSConfig(provider="elevenlabs", elevenlabs_api_key="short")

        with pytest.raises(ValueError, match="too short"):
            ElevenLabsTTSProvider(config)

    @pytest.mark.asyncio
    async def test_synthesize_joins_mp3_chunks(self, elevenlabs_config):
        with patch("tts.providers.elevenlabs.ElevenLabs") as client_cls:
            client = MagicMock()
            client.text_to_speech.convert.return_value = iter([b"ID3", b"", b"frames"])
            client_cls.return_value = client

            provider = ElevenLabsTTSProvider(elevenlabs_config)
            audio = await provider.synthesize("Hey dear")

        assert audio == b"ID3frames"
        client_cls.assert_called_once_with(api_key="sk_test_0123456789abcdef")
        kwargs = client.text_to_speech.convert.call_args.kwargs
        assert kwargs["text"] == "Hey dear"
        assert kwargs["voice_id"] == "voice-123"
        assert kwargs["model_id"] == elevenlabs_config.elevenlabs_model
        assert kwargs["output_format"] == "mp3_44100_128"

    @pytest.mark.asyncio
    async def test_empty_audio_raises(self, elevenlabs_config):
        with patch("tts.providers.elevenlabs.ElevenLabs") as client_cls:
            client_cls.return_value.text_to_speech.convert.return_value = iter([])

            provider = ElevenLabsTTSProvider(elevenlabs_config)
            with pytest.raises(RuntimeError, match="no audio returned"):
                await provider.synthesize("Hey dear")

    @pytest.mark.asyncio
    async def test_api_error_propagates(self, elevenlabs_config):
        with patch("tts.providers.elevenlabs.ElevenLabs") as client_cls:
            client_cls.return_value.text_to_speech.convert.side_effect = RuntimeError("quota exceeded")

            provider = ElevenLabsTTSProvider(elevenlabs_config)
            with pytest.raises(RuntimeError, match="quota exceeded"):
                await provider.synthesize("Hey dear")
