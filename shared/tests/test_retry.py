"""
Tests for call_with_retry and StructuredLogger.
"""

import asyncio
import json
import logging
from unittest.mock import AsyncMock

import pytest

from shared.retry import call_with_retry
from shared.structured_logger import StructuredLogger


@pytest.mark.unit
class TestCallWithRetry:

    @pytest.mark.asyncio
    async def test_returns_result(self):
        func = AsyncMock(return_value="ok")

        assert await call_with_retry(func, timeout=1.0) == "ok"
        func.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_timeout_enforced(self):
        async def slow():
            await asyncio.sleep(5)

        with pytest.raises(asyncio.TimeoutError):
            await call_with_retry(slow, timeout=0.01)

    @pytest.mark.asyncio
    async def test_retries_transient_then_succeeds(self):
        func = AsyncMock(side_effect=[ConnectionError("reset"), "ok"])

        result = await call_with_retry(func, timeout=1.0, retries=1, retry_delay=0.0)

        assert result == "ok"
        assert func.await_count == 2

    @pytest.mark.asyncio
    async def test_gives_up_after_retries(self):
        func = AsyncMock(side_effect=ConnectionError("down"))

        with pytest.raises(ConnectionError):
            await call_with_retry(func, timeout=1.0, retries=1, retry_delay=0.0)

        assert func.await_count == 2

    @pytest.mark.asyncio
    async def test_non_transient_not_retried(self):
        func = AsyncMock(side_effect=KeyError("text"))

        with pytest.raises(KeyError):
            await call_with_retry(func, timeout=1.0, retries=3, retry_delay=0.0)

        func.assert_awaited_once()


@pytest.mark.unit
class TestStructuredLogger:

    def test_state_transition_is_json(self, capture_logger, caplog):
        structured = StructuredLogger(capture_logger)

        with caplog.at_level(logging.INFO, logger=capture_logger.name):
            structured.state_transition("session_1", "generating", "per_segment", "reply_parsed", {"segments": 2})

        entry = json.loads(caplog.records[-1].getMessage())
        assert entry["event_type"] == "state_transition"
        assert entry["session_id"] == "session_1"
        assert entry["data"]["new_state"] == "per_segment"
        assert entry["data"]["data"] == {"segments": 2}

    def test_segment_failed_logs_error(self, capture_logger, caplog):
        structured = StructuredLogger(capture_logger)

        with caplog.at_level(logging.INFO, logger=capture_logger.name):
            structured.segment_failed("session_1", 1, "synthesizing", RuntimeError("boom"))

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        entry = json.loads(record.getMessage())
        assert entry["data"] == {"segment_index": 1, "stage": "synthesizing", "error_type": "RuntimeError"}

    def test_latency_recorded(self, capture_logger, caplog):
        structured = StructuredLogger(capture_logger)

        with caplog.at_level(logging.INFO, logger=capture_logger.name):
            structured.latency_recorded(None, "segment", 123.4, {"segment_index": 0})

        entry = json.loads(caplog.records[-1].getMessage())
        assert "session_id" not in entry
        assert entry["data"]["duration_ms"] == 123.4
        assert entry["data"]["segment_index"] == 0
