"""
Orchestrator fixtures

The pipeline runs against the real ledger and artifact store (dict-backed
Redis, temporary audio directory). Speech synthesis, ffmpeg, rhubarb and
Gemini are replaced by AsyncMocks that write plausible files.
"""

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from artifacts.artifact_store import ArtifactStore
from artifacts.config import ArtifactConfig
from billing.entitlement_ledger import EntitlementLedger
from orchestrator.models import Animation, FacialExpression, ReplySegment
from orchestrator.pipeline import MessagePipeline
from orchestrator.reply_generator import GeneratedReply, ReplyShape
from tts.config import TTSConfig
from tts.lipsync import RhubarbLipSync

TIMING_DOCUMENT = {
    "metadata": {"duration": 0.5},
    "mouthCues": [
        {"start": 0.0, "end": 0.1, "value": "X"},
        {"start": 0.1, "end": 0.5, "value": "B"},
    ],
}


def make_reply(*texts):
    return GeneratedReply(
        shape=ReplyShape.ENVELOPE,
        segments=[
            ReplySegment(text=text, facial_expression=FacialExpression.SMILE, animation=Animation.TALK_1)
            for text in texts
        ],
    )


async def _write_audio(text, output_path):
    Path(output_path).write_bytes(f"mp3:{text}".encode())


async def _write_wav(source, target):
    Path(target).write_bytes(b"RIFF-normalized")
    return Path(target)


async def _write_timing(audio_path, timing_path):
    Path(timing_path).write_text(json.dumps(TIMING_DOCUMENT))
    return Path(timing_path)


@pytest.fixture
def artifact_store(tmp_path, record_store):
    return ArtifactStore(ArtifactConfig(audio_dir=tmp_path / "audios"), record_store)


@pytest.fixture
def ledger(record_store):
    return EntitlementLedger(record_store)


@pytest.fixture
def synthesizer():
    synthesizer = MagicMock()
    synthesizer.is_configured = True
    synthesizer.synthesize = AsyncMock(side_effect=_write_audio)
    synthesizer.normalize = AsyncMock(side_effect=_write_wav)
    return synthesizer


@pytest.fixture
def lipsync():
    lipsync = RhubarbLipSync(TTSConfig(provider="mock", retry_delay=0.0))
    lipsync.extract = AsyncMock(side_effect=_write_timing)
    return lipsync


@pytest.fixture
def generator():
    generator = MagicMock()
    generator.is_configured = True
    generator.generate = AsyncMock(return_value=make_reply("Hi there!", "I missed you."))
    return generator


@pytest.fixture
def pipeline(ledger, artifact_store, synthesizer, lipsync, generator):
    return MessagePipeline(ledger, artifact_store, synthesizer, lipsync, generator)
