"""
Models for the Companion Orchestrator

Reply segment types used by the pipeline plus the Pydantic request bodies
of the HTTP surface (field names follow the front-end's camelCase JSON).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class FacialExpression(str, Enum):
    SMILE = "smile"
    SAD = "sad"
    ANGRY = "angry"
    SURPRISED = "surprised"
    FUNNY_FACE = "funnyFace"
    DEFAULT = "default"


class Animation(str, Enum):
    TALK_0 = "Talk0"
    TALK_1 = "Talk1"
    TALK_2 = "Talk2"
    TALK_3 = "Talk3"
    CRYING = "Crying"
    LAUGHING = "Laughing"
    BREAKDANCE = "Breakdance"
    HIPHOP = "Hiphop"
    TWERK_0 = "Twerk0"
    TWERK_1 = "Twerk1"
    IDLE_1 = "Idle1"
    IDLE_2 = "Idle2"
    IDLE_3 = "Idle3"
    IDLE_4 = "Idle4"
    TERRIFIED = "Terrified"
    ANGRY = "Angry"


@dataclass
class ReplySegment:
    """
    One part of a reply.

    ``audio`` is the base64 synthesized audio and ``lipsync`` the timing
    document; both stay None for unprocessed or failed segments.
    """
    text: str
    facial_expression: FacialExpression = FacialExpression.DEFAULT
    animation: Animation = Animation.TALK_0
    audio: Optional[str] = None
    lipsync: Optional[Dict[str, Any]] = None

    def failed(self) -> "ReplySegment":
        """Placeholder for a segment whose audio could not be produced."""
        return ReplySegment(
            text=self.text,
            facial_expression=FacialExpression.SAD,
            animation=Animation.TERRIFIED,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "facialExpression": self.facial_expression.value,
            "animation": self.animation.value,
            "audio": self.audio,
            "lipsync": self.lipsync,
        }


class ChatRequest(BaseModel):
    """POST /chat body"""
    message: Optional[str] = Field(None, description="User message; empty or blank gets the canned greeting")
    userId: Optional[str] = Field(None, description="User identifier")


class VerifyPaymentRequest(BaseModel):
    """POST /verify-payment body"""
    userId: Optional[str] = Field(None, description="User identifier")
    transactionId: Optional[str] = Field(None, description="Payment code from the allow-list")
    planType: Optional[str] = Field(None, description="pro, pro_plus or premium")
