import json
import logging
import time
from typing import Any, Dict, Optional


class StructuredLogger:
    """
    Lightweight structured logger that emits JSON log lines.

    Wraps a standard `logging.Logger` so existing handlers and formatters keep
    working, while pipeline stage changes and timings come out in a
    machine-parseable shape keyed by audio session id.
    """

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    def _log(
        self,
        level: str,
        event_type: str,
        message: str,
        session_id: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        entry: Dict[str, Any] = {
            "timestamp": time.time(),
            "event_type": event_type,
            "message": message,
        }

        if session_id is not None:
            entry["session_id"] = session_id

        if data:
            entry["data"] = dict(data)

        log_method = getattr(self.logger, level.lower(), self.logger.info)
        try:
            log_method(json.dumps(entry, default=str))
        except (TypeError, ValueError):
            log_method(f"[STRUCTURED_LOG_FALLBACK] {entry}")

    # ------------------------------------------------------------------ #
    # Public helpers
    # ------------------------------------------------------------------ #

    def event(
        self,
        session_id: Optional[str],
        event_type: str,
        message: str,
        level: str = "INFO",
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Generic structured event."""
        self._log(level=level, event_type=event_type, message=message, session_id=session_id, data=data)

    def state_transition(
        self,
        session_id: Optional[str],
        old_state: str,
        new_state: str,
        trigger: str,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Structured log for pipeline stage transitions."""
        payload = {"old_state": old_state, "new_state": new_state, "trigger": trigger}
        if data:
            payload["data"] = data
        self._log(
            level="INFO",
            event_type="state_transition",
            message=f"{old_state} -> {new_state} ({trigger})",
            session_id=session_id,
            data=payload,
        )

    def segment_failed(
        self,
        session_id: Optional[str],
        segment_index: int,
        stage: str,
        error: BaseException,
    ) -> None:
        """Structured log for a reply segment degraded to its placeholder."""
        self._log(
            level="ERROR",
            event_type="segment_failed",
            message=f"Segment {segment_index} failed during {stage}: {error}",
            session_id=session_id,
            data={"segment_index": segment_index, "stage": stage, "error_type": type(error).__name__},
        )

    def latency_recorded(
        self,
        session_id: Optional[str],
        operation: str,
        duration_ms: float,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Structured log for latency measurements."""
        data = {"operation": operation, "duration_ms": duration_ms}
        if extra:
            data.update(extra)
        self._log(
            level="INFO",
            event_type="latency",
            message=f"{operation} took {duration_ms:.0f}ms",
            session_id=session_id,
            data=data,
        )
