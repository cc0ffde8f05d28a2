"""
Rhubarb lip-sync extractor.

Runs the phonetic recognizer over a normalized WAV file and parses the JSON
timing document it writes:

    {"metadata": {"soundFile": ..., "duration": ...},
     "mouthCues": [{"start": 0.00, "end": 0.05, "value": "X"}, ...]}

There is no fallback here. A missing track is handled by the caller.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

from shared.retry import TRANSIENT_ERRORS, call_with_retry
from tts.config import TTSConfig
from tts.external_tool import ExternalToolError, run_tool

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class LipSyncError(ExternalToolError):
    """Extraction failed or produced an unreadable timing file."""


@dataclass
class MouthCue:
    start: float
    end: float
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start, "end": self.end, "value": self.value}


@dataclass
class LipSyncTrack:
    """Ordered mouth-shape intervals for one audio clip."""

    mouth_cues: List[MouthCue] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LipSyncTrack":
        """
        Build a track from the extractor's JSON document.

        Raises:
            ValueError: Document is not the expected shape
        """
        if not isinstance(data, dict) or not isinstance(data.get("mouthCues"), list):
            raise ValueError("timing document has no mouthCues list")

        cues = []
        for raw in data["mouthCues"]:
            try:
                cues.append(MouthCue(start=float(raw["start"]), end=float(raw["end"]), value=str(raw["value"])))
            except (KeyError, TypeError, ValueError) as e:
                raise ValueError(f"invalid mouth cue {raw!r}: {e}") from e

        cues.sort(key=lambda cue: cue.start)
        return cls(mouth_cues=cues, metadata=dict(data.get("metadata") or {}))

    @classmethod
    def from_file(cls, path: PathLike) -> "LipSyncTrack":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_dict(json.load(f))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": dict(self.metadata),
            "mouthCues": [cue.to_dict() for cue in self.mouth_cues],
        }

    @property
    def duration(self) -> float:
        return self.mouth_cues[-1].end if self.mouth_cues else 0.0


class RhubarbLipSync:
    """Async wrapper around the rhubarb executable."""

    def __init__(self, config: TTSConfig):
        self.config = config

    def command(self, audio_path: PathLike, timing_path: PathLike) -> List[str]:
        return [
            self.config.rhubarb_path,
            "-f", "json",
            "-o", str(timing_path),
            str(audio_path),
            "-r", self.config.rhubarb_recognizer,
        ]

    async def extract(self, audio_path: PathLike, timing_path: PathLike) -> Path:
        """
        Write the timing file for ``audio_path`` to ``timing_path``.

        Timeouts are retried ``config.retry_attempts`` times.

        Raises:
            LipSyncError: Tool failed or wrote nothing
            asyncio.TimeoutError: Every attempt timed out
        """
        command = self.command(audio_path, timing_path)
        try:
            # run_tool bounds the process itself; the outer timeout is a backstop
            await call_with_retry(
                lambda: run_tool(command, timeout=self.config.lipsync_timeout),
                timeout=self.config.lipsync_timeout + 5.0,
                retries=self.config.retry_attempts,
                retry_delay=self.config.retry_delay,
                retry_on=TRANSIENT_ERRORS,
                label="rhubarb",
            )
        except ExternalToolError as e:
            raise LipSyncError(self.config.rhubarb_path, str(e), e.returncode) from e

        timing_path = Path(timing_path)
        if not timing_path.exists():
            raise LipSyncError(self.config.rhubarb_path, f"no timing file written to {timing_path}")

        logger.debug(f" Lip-sync extracted: {audio_path} → {timing_path}")
        return timing_path

    async def read_track(self, timing_path: PathLike) -> LipSyncTrack:
        """
        Parse a timing file written by ``extract``.

        Raises:
            LipSyncError: File unreadable or malformed
        """
        try:
            return await asyncio.to_thread(LipSyncTrack.from_file, timing_path)
        except (OSError, ValueError) as e:
            raise LipSyncError(self.config.rhubarb_path, f"unreadable timing file {timing_path}: {e}") from e
