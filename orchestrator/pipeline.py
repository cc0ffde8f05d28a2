"""
Message pipeline state machine

Turns one user message into up to three reply segments with audio and
lip-sync, coordinated with the entitlement ledger:

    GATED → GENERATING → PER_SEGMENT[SYNTHESIZING → NORMALIZING → LIPSYNCING → ASSEMBLING]
          → FINALIZING → COMPLETED | FAILED

A failing segment is replaced by a placeholder and its siblings continue.
Quota is decremented once, after the session has been closed as completed.
"""

import base64
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from artifacts.artifact_store import ArtifactStore, SessionStatus, utc_now
from billing.entitlement_ledger import EntitlementLedger
from orchestrator.models import Animation, FacialExpression, ReplySegment
from orchestrator.reply_generator import GeminiReplyGenerator
from shared.structured_logger import StructuredLogger
from tts.lipsync import RhubarbLipSync
from tts.tts_synthesizer import SpeechSynthesizer

logger = logging.getLogger(__name__)

PIPELINE_ERROR_MESSAGE = "An error occurred while processing your request"
CONFIGURATION_ERROR_MESSAGE = "API configuration error. Please contact support."


class Stage(Enum):
    """Pipeline stages"""
    GATED = "gated"
    GENERATING = "generating"
    PER_SEGMENT = "per_segment"
    SYNTHESIZING = "synthesizing"
    NORMALIZING = "normalizing"
    LIPSYNCING = "lipsyncing"
    ASSEMBLING = "assembling"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"


class ChatOutcome(Enum):
    REPLIED = "replied"
    CANNED = "canned"
    QUOTA_EXCEEDED = "quota_exceeded"


class PipelineError(Exception):
    """A failure that aborts the whole request (quota untouched)."""

    def __init__(self, message: str, detail: Optional[str] = None, session_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.session_id = session_id


class PipelineConfigurationError(PipelineError):
    """Reply generation or synthesis credentials are missing."""

    def __init__(self, detail: Optional[str] = None):
        super().__init__(CONFIGURATION_ERROR_MESSAGE, detail=detail)


def canned_reply() -> List[ReplySegment]:
    """Greeting for an empty message. No audio, no lip-sync, no external calls."""
    return [
        ReplySegment(
            text="Hey dear... How was your day?",
            facial_expression=FacialExpression.SMILE,
            animation=Animation.TALK_1,
        ),
        ReplySegment(
            text="I missed you so much... Please don't go for so long!",
            facial_expression=FacialExpression.SAD,
            animation=Animation.CRYING,
        ),
    ]


@dataclass
class ChatResult:
    outcome: ChatOutcome
    messages: List[ReplySegment] = field(default_factory=list)
    remaining: int = 0
    session_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "messages": [segment.to_dict() for segment in self.messages],
            "remainingMessages": self.remaining,
        }

    @property
    def failed_segments(self) -> int:
        return sum(1 for segment in self.messages if segment.audio is None)


@dataclass
class PipelineRun:
    """Per-request bookkeeping"""
    user_id: str
    stage: Stage = Stage.GATED
    session_id: Optional[str] = None
    session_closed: bool = False
    started_at: float = field(default_factory=time.time)


class MessagePipeline:
    """
    Orchestrates one chat request end to end.

    Usage:
        pipeline = MessagePipeline(ledger, artifact_store, synthesizer, lipsync, generator)
        result = await pipeline.handle("user-1", "hi!")
    """

    def __init__(
        self,
        ledger: EntitlementLedger,
        artifacts: ArtifactStore,
        synthesizer: SpeechSynthesizer,
        lipsync: RhubarbLipSync,
        generator: GeminiReplyGenerator,
        structured_logger: Optional[StructuredLogger] = None,
    ):
        self.ledger = ledger
        self.artifacts = artifacts
        self.synthesizer = synthesizer
        self.lipsync = lipsync
        self.generator = generator
        self.structured_logger = structured_logger or StructuredLogger(logger)

        self.stats = {
            "requests": 0,
            "denied": 0,
            "canned": 0,
            "completed": 0,
            "failed": 0,
            "segment_failures": 0,
        }

    def _transition(self, run: PipelineRun, new_stage: Stage, trigger: str, data: Optional[Dict[str, Any]] = None):
        self.structured_logger.state_transition(run.session_id, run.stage.value, new_stage.value, trigger, data)
        run.stage = new_stage

    @property
    def is_configured(self) -> bool:
        return self.generator.is_configured and self.synthesizer.is_configured

    async def handle(self, user_id: str, message: Optional[str]) -> ChatResult:
        """
        Run the pipeline for one message.

        Returns:
            ChatResult with outcome QUOTA_EXCEEDED, CANNED or REPLIED

        Raises:
            PipelineConfigurationError: Credentials missing (before any session is opened)
            PipelineError: Generation, session or ledger failure
        """
        self.stats["requests"] += 1
        run = PipelineRun(user_id=user_id)

        quota = await self.ledger.check_quota(user_id)
        if not quota.can_send:
            self.stats["denied"] += 1
            logger.info(f" Message limit reached for user {user_id} (remaining={quota.remaining})")
            return ChatResult(outcome=ChatOutcome.QUOTA_EXCEEDED, remaining=quota.remaining)

        text = (message or "").strip()
        if not text:
            self.stats["canned"] += 1
            return ChatResult(outcome=ChatOutcome.CANNED, messages=canned_reply(), remaining=quota.remaining)

        if not self.is_configured:
            logger.error(
                f"❌ Missing API credentials: generation={self.generator.is_configured}, "
                f"synthesis={self.synthesizer.is_configured}"
            )
            raise PipelineConfigurationError("reply generation or speech synthesis credentials missing")

        try:
            self._transition(run, Stage.GENERATING, "quota_ok")
            reply = await self.generator.generate(text)

            run.session_id = await self.artifacts.open_session(user_id, text)
            self._transition(run, Stage.PER_SEGMENT, "reply_parsed", {"segments": len(reply.segments), "shape": reply.shape.value})

            segments = []
            for index, segment in enumerate(reply.segments):
                segments.append(await self._process_segment(run, index, segment))

            self._transition(run, Stage.FINALIZING, "segments_done")
            await self.artifacts.close_session(
                run.session_id,
                SessionStatus.COMPLETED,
                {"processed_at": utc_now().isoformat()},
            )
            run.session_closed = True

            remaining = await self.ledger.decrement(user_id)

            result = ChatResult(
                outcome=ChatOutcome.REPLIED,
                messages=segments,
                remaining=remaining,
                session_id=run.session_id,
            )
            self._transition(run, Stage.COMPLETED, "decremented", {"failed_segments": result.failed_segments})
            self.structured_logger.latency_recorded(run.session_id, "chat", (time.time() - run.started_at) * 1000)
            self.stats["completed"] += 1
            return result

        except Exception as e:
            self.stats["failed"] += 1
            self._transition(run, Stage.FAILED, type(e).__name__, {"error": str(e)})
            logger.error(f"❌ Error in chat pipeline for user {user_id}: {e}", exc_info=True)
            await self._fail_session(run, e)
            raise PipelineError(PIPELINE_ERROR_MESSAGE, detail=str(e), session_id=run.session_id) from e

    async def _fail_session(self, run: PipelineRun, error: Exception) -> None:
        if run.session_id is None or run.session_closed:
            return
        try:
            await self.artifacts.close_session(run.session_id, SessionStatus.FAILED, {"error_message": str(error)})
            run.session_closed = True
        except Exception as close_error:
            logger.error(f"❌ Could not mark session {run.session_id} as failed: {close_error}")

    async def _process_segment(self, run: PipelineRun, index: int, segment: ReplySegment) -> ReplySegment:
        """Produce audio and lip-sync for one segment, or its failure placeholder."""
        paths = self.artifacts.resolve_paths(run.user_id, run.session_id, index)
        stage = Stage.SYNTHESIZING
        start = time.time()

        try:
            await self.synthesizer.synthesize(segment.text, paths.audio)

            stage = Stage.NORMALIZING
            await self.synthesizer.normalize(paths.audio, paths.normalized)

            stage = Stage.LIPSYNCING
            await self.lipsync.extract(paths.normalized, paths.timing)

            stage = Stage.ASSEMBLING
            audio = await self.artifacts.read_audio(paths.audio)
            track = await self.lipsync.read_track(paths.timing)
            await self.artifacts.discard_intermediates(paths)

            self.structured_logger.latency_recorded(
                run.session_id, "segment", (time.time() - start) * 1000, {"segment_index": index}
            )
            return ReplySegment(
                text=segment.text,
                facial_expression=segment.facial_expression,
                animation=segment.animation,
                audio=base64.b64encode(audio).decode("ascii"),
                lipsync=track.to_dict(),
            )

        except Exception as e:
            self.stats["segment_failures"] += 1
            self.structured_logger.segment_failed(run.session_id, index, stage.value, e)
            logger.error(f"❌ Error processing message {index}: {e}", exc_info=True)
            try:
                await self.artifacts.discard_intermediates(paths)
            except OSError as cleanup_error:
                logger.warning(f"⚠️ Could not remove intermediates for message {index}: {cleanup_error}")
            return segment.failed()

    def get_stats(self) -> Dict[str, int]:
        return dict(self.stats)
