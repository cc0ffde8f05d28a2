"""
Reply generation with Gemini.

The model is asked for JSON ``{"messages": [...]}`` with at most three
segments. Whatever comes back is normalized through ``parse_reply_payload``
into a tagged ``GeneratedReply`` so callers never probe for envelopes.
"""

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional

import google.generativeai as genai

from orchestrator.config import CompanionConfig
from orchestrator.models import Animation, FacialExpression, ReplySegment

logger = logging.getLogger(__name__)

MAX_SEGMENTS = 3

PERSONA_TEMPLATE = """You are {name} an AI companion.
You will always reply with a JSON object of the form {{"messages": [...]}}. With a maximum of 3 messages.
Each message has a text, facialExpression, and animation property.
The different facial expressions are: {expressions}.
The different animations are: {animations}."""


def build_persona(name: str = "chatovia") -> str:
    return PERSONA_TEMPLATE.format(
        name=name,
        expressions=", ".join(e.value for e in FacialExpression),
        animations=", ".join(a.value for a in Animation),
    )


class ReplyGenerationError(Exception):
    """The reply generation call failed or timed out."""


class ReplyFormatError(ReplyGenerationError):
    """The model answered, but not with usable segments."""


class ReplyShape(str, Enum):
    LIST = "list"            # [{...}, {...}]
    ENVELOPE = "envelope"    # {"messages": [{...}]}
    SINGLE = "single"        # {"text": ..., ...}


@dataclass
class GeneratedReply:
    shape: ReplyShape
    segments: List[ReplySegment] = field(default_factory=list)
    truncated: bool = False


def _coerce_enum(enum_cls, value: Any, default, label: str):
    if value is None:
        return default
    try:
        return enum_cls(value)
    except ValueError:
        logger.warning(f"⚠️ Unknown {label} {value!r} in reply, using {default.value}")
        return default


def _parse_segment(index: int, raw: Any) -> ReplySegment:
    if not isinstance(raw, dict):
        raise ReplyFormatError(f"segment {index} is not an object: {raw!r}")

    text = raw.get("text")
    if not isinstance(text, str) or not text.strip():
        raise ReplyFormatError(f"segment {index} has no text")

    return ReplySegment(
        text=text.strip(),
        facial_expression=_coerce_enum(FacialExpression, raw.get("facialExpression"), FacialExpression.DEFAULT, "facialExpression"),
        animation=_coerce_enum(Animation, raw.get("animation"), Animation.TALK_0, "animation"),
    )


def _strip_code_fences(text: str) -> str:
    text = re.sub(r'^```(?:json)?\s*', '', text.strip())
    text = re.sub(r'\s*```$', '', text)
    return text.strip()


def parse_reply_payload(payload: Any) -> GeneratedReply:
    """
    Normalize model output into at most MAX_SEGMENTS reply segments.

    Accepts a JSON string or an already-decoded value in one of three shapes:
    a list of segments, an object with a ``messages`` list, or one segment object.

    Raises:
        ReplyFormatError: Not JSON, unknown shape, empty, or a segment without text
    """
    if isinstance(payload, (str, bytes)):
        text = payload.decode() if isinstance(payload, bytes) else payload
        try:
            payload = json.loads(_strip_code_fences(text))
        except json.JSONDecodeError as e:
            raise ReplyFormatError(f"reply is not valid JSON: {e}") from e

    if isinstance(payload, list):
        shape, items = ReplyShape.LIST, payload
    elif isinstance(payload, dict) and isinstance(payload.get("messages"), list):
        shape, items = ReplyShape.ENVELOPE, payload["messages"]
    elif isinstance(payload, dict) and "text" in payload:
        shape, items = ReplyShape.SINGLE, [payload]
    else:
        raise ReplyFormatError(f"unrecognized reply shape: {type(payload).__name__}")

    if not items:
        raise ReplyFormatError("reply contains no segments")

    truncated = len(items) > MAX_SEGMENTS
    if truncated:
        logger.warning(f"⚠️ Reply had {len(items)} segments, keeping the first {MAX_SEGMENTS}")

    segments = [_parse_segment(i, raw) for i, raw in enumerate(items[:MAX_SEGMENTS])]
    return GeneratedReply(shape=shape, segments=segments, truncated=truncated)


class GeminiReplyGenerator:
    """
    Calls Gemini once per user message.

    Each call is bounded by generation_timeout and is not retried.
    """

    def __init__(self, config: CompanionConfig, model: Optional[Any] = None):
        self.config = config
        self.persona = build_persona(config.persona_name)
        self.model = model

        if self.model is None and config.gemini_api_key:
            genai.configure(api_key=config.gemini_api_key)
            self.model = genai.GenerativeModel(
                config.gemini_model,
                system_instruction=self.persona,
            )
            logger.info(f"✅ Gemini reply generator initialized ({config.gemini_model})")

    @property
    def is_configured(self) -> bool:
        return self.model is not None

    def _generation_config(self) -> "genai.types.GenerationConfig":
        return genai.types.GenerationConfig(
            temperature=self.config.temperature,
            max_output_tokens=self.config.max_output_tokens,
            response_mime_type="application/json",
        )

    async def generate(self, text: str) -> GeneratedReply:
        """
        Ask the model for a reply to ``text``.

        Raises:
            ReplyGenerationError: Not configured, API error or timeout
            ReplyFormatError: Unusable reply
        """
        if self.model is None:
            raise ReplyGenerationError("Reply generation is not configured (GEMINI_API_KEY)")

        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(
                    self.model.generate_content,
                    text.strip(),
                    generation_config=self._generation_config(),
                ),
                timeout=self.config.generation_timeout,
            )
        except asyncio.TimeoutError as e:
            raise ReplyGenerationError(f"Reply generation timed out after {self.config.generation_timeout}s") from e
        except Exception as e:
            raise ReplyGenerationError(f"Reply generation failed: {e}") from e

        try:
            raw = response.text
        except ValueError as e:
            # Blocked or empty candidates make .text raise
            raise ReplyFormatError(f"Reply has no text: {e}") from e

        reply = parse_reply_payload(raw)
        logger.info(f" Generated {len(reply.segments)} segments ({reply.shape.value})")
        return reply
