"""
Billing records and ledger results.

Timestamps are stored as ISO-8601 strings with a UTC offset.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from billing.plans import PlanTier


def _parse_time(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


def _format_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass
class EntitlementRecord:
    """One per user: tier, remaining daily quota, reset and expiry times."""
    user_id: str
    tier: PlanTier
    messages_remaining: int
    last_reset_date: datetime
    expires_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "plan_type": self.tier.value,
            "messages_remaining": self.messages_remaining,
            "last_reset_date": _format_time(self.last_reset_date),
            "expires_at": _format_time(self.expires_at),
            "updated_at": _format_time(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EntitlementRecord":
        return cls(
            user_id=data["user_id"],
            tier=PlanTier(data["plan_type"]),
            messages_remaining=max(0, int(data["messages_remaining"])),
            last_reset_date=_parse_time(data["last_reset_date"]),
            expires_at=_parse_time(data.get("expires_at")),
            updated_at=_parse_time(data.get("updated_at")),
        )


@dataclass
class PaymentRecord:
    """One per accepted transaction code. ``status`` is None until expired."""
    transaction_id: str
    user_id: str
    tier: PlanTier
    amount: int
    used_at: datetime
    status: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "user_id": self.user_id,
            "plan_type": self.tier.value,
            "amount": self.amount,
            "used_at": _format_time(self.used_at),
            "status": self.status,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaymentRecord":
        return cls(
            transaction_id=data["transaction_id"],
            user_id=data["user_id"],
            tier=PlanTier(data["plan_type"]),
            amount=int(data["amount"]),
            used_at=_parse_time(data["used_at"]),
            status=data.get("status"),
        )


@dataclass
class QuotaStatus:
    can_send: bool
    remaining: int
    tier: Optional[PlanTier] = None


@dataclass
class PaymentResult:
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    reason: Optional[str] = None  # invalid_code, duplicate_code, processing_failed

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": self.success}
        if self.message:
            body["message"] = self.message
        if self.error:
            body["error"] = self.error
        return body
