"""
FFmpeg transcoder.

Converts a synthesized audio artifact into the format the lip-sync extractor
reads (mono, 16-bit PCM, 16 kHz WAV). If the optimized conversion fails a
plain re-encode without resampling is attempted before giving up.
"""

import asyncio
import logging
from pathlib import Path
from typing import List, Union

from tts.config import TTSConfig
from tts.external_tool import ExternalToolError, run_tool

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class TranscodeError(ExternalToolError):
    """Both the optimized and the fallback conversion failed."""


class FFmpegTranscoder:
    """Thin async wrapper around the ffmpeg executable."""

    def __init__(self, config: TTSConfig):
        self.config = config

    def primary_command(self, source: PathLike, target: PathLike) -> List[str]:
        return [
            self.config.ffmpeg_path, "-y",
            "-i", str(source),
            "-acodec", self.config.normalized_codec,
            "-ar", str(self.config.normalized_sample_rate),
            "-ac", str(self.config.normalized_channels),
            str(target),
        ]

    def fallback_command(self, source: PathLike, target: PathLike) -> List[str]:
        return [self.config.ffmpeg_path, "-y", "-i", str(source), str(target)]

    async def normalize(self, source: PathLike, target: PathLike) -> Path:
        """
        Convert ``source`` into ``target``.

        Returns:
            Path of the normalized file

        Raises:
            TranscodeError: Both conversions failed
            asyncio.TimeoutError: The fallback conversion timed out
        """
        try:
            await run_tool(self.primary_command(source, target), timeout=self.config.transcode_timeout)
            return Path(target)
        except (ExternalToolError, asyncio.TimeoutError) as e:
            logger.warning(f"⚠️ Optimized conversion failed for {source} ({e}), falling back to plain re-encode")

        try:
            await run_tool(self.fallback_command(source, target), timeout=self.config.transcode_timeout)
        except ExternalToolError as e:
            raise TranscodeError(self.config.ffmpeg_path, f"fallback conversion failed: {e}", e.returncode) from e

        logger.info(f" Fallback conversion succeeded for {source}")
        return Path(target)
