"""
Plan tiers, daily allocations, prices and payment-code allow-lists.

The allow-lists are static: five single-use codes per paid tier, never
regenerated at runtime.
"""

from enum import Enum
from typing import Dict, FrozenSet, List, Union


class PlanTier(str, Enum):
    FREE = "free"
    PRO = "pro"
    PRO_PLUS = "pro_plus"
    PREMIUM = "premium"


DAILY_ALLOCATION: Dict[PlanTier, int] = {
    PlanTier.FREE: 1,
    PlanTier.PRO: 6,
    PlanTier.PRO_PLUS: 20,
    PlanTier.PREMIUM: 50,
}

PLAN_PRICES: Dict[PlanTier, int] = {
    PlanTier.FREE: 0,
    PlanTier.PRO: 2500,
    PlanTier.PRO_PLUS: 5000,
    PlanTier.PREMIUM: 15000,
}

PLAN_TRANSACTION_IDS: Dict[PlanTier, FrozenSet[str]] = {
    PlanTier.PRO: frozenset({
        "fq82lw7rm04bzjn", "yp63vd9gt58xsar", "jm40cq1he79pwlo",
        "vx91bk4zn23dfmt", "ur26ps5cw80ygxh",
    }),
    PlanTier.PRO_PLUS: frozenset({
        "nb77tw0jl42vrea", "ko54mf8ye31qzcd", "ed09rh6sn75vxlp",
        "cz85jg2vm61tuqw", "hs27nw4fx09kldb",
    }),
    PlanTier.PREMIUM: frozenset({
        "qa63vm1pr84jzox", "ly48tf7bw52dshk", "gx20rk5cq37vnlu",
        "pw39cl6jd81xzta", "vb16sy0me49qhkn",
    }),
}

# Shown to users who hit their daily limit
UPGRADE_PLANS: List[Dict[str, Union[str, int]]] = [
    {"name": "Pro", "price": PLAN_PRICES[PlanTier.PRO], "messages": DAILY_ALLOCATION[PlanTier.PRO]},
    {"name": "Pro Plus", "price": PLAN_PRICES[PlanTier.PRO_PLUS], "messages": DAILY_ALLOCATION[PlanTier.PRO_PLUS]},
    {"name": "Premium", "price": PLAN_PRICES[PlanTier.PREMIUM], "messages": DAILY_ALLOCATION[PlanTier.PREMIUM]},
]


def daily_allocation(tier: Union[PlanTier, str]) -> int:
    """Messages per day for ``tier``; unknown tiers get the free allocation."""
    try:
        return DAILY_ALLOCATION[PlanTier(tier)]
    except ValueError:
        return DAILY_ALLOCATION[PlanTier.FREE]


def normalize_code(code: str) -> str:
    return (code or "").strip().lower()


def is_valid_code(tier: PlanTier, code: str) -> bool:
    """True if the normalized ``code`` is on the allow-list for ``tier``."""
    return normalize_code(code) in PLAN_TRANSACTION_IDS.get(tier, frozenset())
