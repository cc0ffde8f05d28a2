"""
HTTP Surface Tests

The lifespan is not run; module globals are replaced per test. /chat uses
a mocked pipeline, /verify-payment and /audio use the real ledger and
artifact store over the dict-backed Redis.

Run with:
    pytest orchestrator/tests/test_app.py -v
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from orchestrator import app as app_module
from orchestrator.models import ReplySegment
from orchestrator.pipeline import (
    ChatOutcome,
    ChatResult,
    PipelineConfigurationError,
    PipelineError,
)
from tts.config import TTSConfig
from tts.tts_synthesizer import SpeechSynthesizer


@pytest.fixture
def chat_pipeline(monkeypatch):
    pipeline = MagicMock()
    pipeline.handle = AsyncMock()
    monkeypatch.setattr(app_module, "pipeline", pipeline)
    return pipeline


@pytest.fixture
def client(monkeypatch, ledger, artifact_store):
    monkeypatch.setattr(app_module, "ledger", ledger)
    monkeypatch.setattr(app_module, "artifact_store", artifact_store)
    return TestClient(app_module.app)


@pytest.mark.unit
class TestBasics:

    def test_root_banner(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.text == "Backend is running! Try POST /chat or GET /health"

    def test_health(self, client):
        body = client.get("/health").json()

        assert body["status"] == "OK"
        assert "timestamp" in body


@pytest.mark.unit
class TestChatEndpoint:

    def test_missing_user_id(self, client, chat_pipeline):
        response = client.post("/chat", json={"message": "hi"})

        assert response.status_code == 400
        assert response.json() == {"error": "User ID is required"}
        chat_pipeline.handle.assert_not_awaited()

    def test_reply(self, client, chat_pipeline):
        chat_pipeline.handle.return_value = ChatResult(
            outcome=ChatOutcome.REPLIED,
            messages=[ReplySegment(text="Hi!", audio="bXAz", lipsync={"mouthCues": []})],
            remaining=5,
        )

        response = client.post("/chat", json={"message": "hi", "userId": "user-1"})

        assert response.status_code == 200
        body = response.json()
        assert body["remainingMessages"] == 5
        assert body["messages"][0] == {
            "text": "Hi!",
            "facialExpression": "default",
            "animation": "Talk0",
            "audio": "bXAz",
            "lipsync": {"mouthCues": []},
        }
        chat_pipeline.handle.assert_awaited_once_with("user-1", "hi")

    def test_quota_exceeded(self, client, chat_pipeline):
        chat_pipeline.handle.return_value = ChatResult(outcome=ChatOutcome.QUOTA_EXCEEDED, remaining=0)

        response = client.post("/chat", json={"message": "hi", "userId": "user-1"})

        assert response.status_code == 429
        body = response.json()
        assert body["error"] == "Message limit reached"
        assert body["upgradeRequired"] is True
        assert body["remaining"] == 0
        assert [p["name"] for p in body["plans"]] == ["Pro", "Pro Plus", "Premium"]
        assert [p["messages"] for p in body["plans"]] == [6, 20, 50]

    def test_configuration_error(self, client, chat_pipeline):
        chat_pipeline.handle.side_effect = PipelineConfigurationError("missing key")

        response = client.post("/chat", json={"message": "hi", "userId": "user-1"})

        assert response.status_code == 500
        assert response.json() == {"error": "API configuration error. Please contact support."}

    def test_pipeline_error(self, client, chat_pipeline):
        chat_pipeline.handle.side_effect = PipelineError(
            "An error occurred while processing your request", detail="reply is not valid JSON"
        )

        response = client.post("/chat", json={"message": "hi", "userId": "user-1"})

        assert response.status_code == 500
        assert response.json() == {
            "error": "An error occurred while processing your request",
            "details": "reply is not valid JSON",
        }


@pytest.mark.unit
class TestVerifyPaymentEndpoint:

    def test_missing_fields(self, client):
        response = client.post("/verify-payment", json={"userId": "user-1", "planType": "pro"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "Missing required fields"}

    def test_valid_code(self, client):
        response = client.post(
            "/verify-payment",
            json={"userId": "user-1", "transactionId": "fq82lw7rm04bzjn", "planType": "pro"},
        )

        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_code_for_other_tier(self, client):
        response = client.post(
            "/verify-payment",
            json={"userId": "user-1", "transactionId": "fq82lw7rm04bzjn", "planType": "premium"},
        )

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_code_used_twice(self, client):
        payload = {"userId": "user-1", "transactionId": "fq82lw7rm04bzjn", "planType": "pro"}
        client.post("/verify-payment", json=payload)

        response = client.post("/verify-payment", json=dict(payload, userId="user-2"))

        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_processing_failure(self, client, monkeypatch, ledger):
        monkeypatch.setattr(ledger.service_records, "insert", AsyncMock(side_effect=RuntimeError("redis down")))

        response = client.post(
            "/verify-payment",
            json={"userId": "user-1", "transactionId": "fq82lw7rm04bzjn", "planType": "pro"},
        )

        assert response.status_code == 500
        assert response.json()["success"] is False


@pytest.mark.unit
class TestReplayEndpoint:

    def test_serves_retained_audio(self, client, artifact_store):
        path = artifact_store.resolve_paths("user-1", "session_1_abcdef12", 0).audio
        path.parent.mkdir(parents=True)
        path.write_bytes(b"ID3-audio")

        response = client.get("/audio/user-1/session_1_abcdef12/0")

        assert response.status_code == 200
        assert response.headers["content-type"] == "audio/mpeg"
        assert response.content == b"ID3-audio"

    def test_mock_synthesized_audio_is_mpeg(self, client, artifact_store):
        synthesizer = SpeechSynthesizer(TTSConfig(provider="mock", retry_delay=0.0))
        path = artifact_store.resolve_paths("user-1", "session_1_abcdef12", 0).audio
        path.parent.mkdir(parents=True)
        asyncio.run(synthesizer.synthesize("Hi there!", path))

        response = client.get("/audio/user-1/session_1_abcdef12/0")

        assert response.status_code == 200
        assert response.headers["content-type"] == "audio/mpeg"
        assert response.content[:2] == b"\xff\xfb"

    def test_provider_style_user_id(self, client, artifact_store):
        path = artifact_store.resolve_paths("auth0|abc123", "session_1_abcdef12", 0).audio
        path.parent.mkdir(parents=True)
        path.write_bytes(b"ID3-audio")

        response = client.get("/audio/auth0%7Cabc123/session_1_abcdef12/0")

        assert response.status_code == 200
        assert response.content == b"ID3-audio"

    def test_missing_audio(self, client):
        response = client.get("/audio/user-1/session_1_abcdef12/0")

        assert response.status_code == 404

    def test_unsafe_identifier(self, client):
        response = client.get("/audio/user-1/session$1/0")

        assert response.status_code == 400
