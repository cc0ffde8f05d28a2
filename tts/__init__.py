"""
Speech side of the companion reply pipeline.

Components:
- SpeechSynthesizer: text → playable audio artifact (ElevenLabs or Mock provider)
- FFmpegTranscoder: playable audio → mono 16-bit 16 kHz WAV, with a plain re-encode fallback
- RhubarbLipSync: normalized WAV → timed mouth-shape track

Architecture:
    Pipeline → SpeechSynthesizer → Provider
                                 → FFmpegTranscoder (ffmpeg)
             → RhubarbLipSync (rhubarb)

Usage:
    from tts import TTSConfig, SpeechSynthesizer, RhubarbLipSync
"""

from tts.config import TTSConfig
from tts.external_tool import ExternalToolError
from tts.lipsync import LipSyncError, LipSyncTrack, MouthCue, RhubarbLipSync
from tts.transcoder import FFmpegTranscoder, TranscodeError
from tts.tts_synthesizer import SpeechSynthesizer, SynthesisResult

__all__ = [
    "TTSConfig",
    "SpeechSynthesizer",
    "SynthesisResult",
    "FFmpegTranscoder",
    "TranscodeError",
    "RhubarbLipSync",
    "LipSyncTrack",
    "MouthCue",
    "LipSyncError",
    "ExternalToolError",
]
