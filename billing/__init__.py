"""
Entitlement Ledger: plan tiers, daily quota, payment codes and plan expiry.

Usage:
    from billing import EntitlementLedger, PlanTier, UPGRADE_PLANS
"""

from billing.entitlement_ledger import EntitlementLedger
from billing.models import EntitlementRecord, PaymentRecord, PaymentResult, QuotaStatus
from billing.plans import (
    DAILY_ALLOCATION,
    PLAN_PRICES,
    PLAN_TRANSACTION_IDS,
    UPGRADE_PLANS,
    PlanTier,
    daily_allocation,
    is_valid_code,
    normalize_code,
)

__all__ = [
    "EntitlementLedger",
    "EntitlementRecord",
    "PaymentRecord",
    "PaymentResult",
    "QuotaStatus",
    "PlanTier",
    "DAILY_ALLOCATION",
    "PLAN_PRICES",
    "PLAN_TRANSACTION_IDS",
    "UPGRADE_PLANS",
    "daily_allocation",
    "is_valid_code",
    "normalize_code",
]
