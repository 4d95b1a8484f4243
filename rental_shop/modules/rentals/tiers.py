from __future__ import annotations

from ...constants import (
    TIER_BRONZE,
    TIER_GOLD,
    TIER_NEW,
    TIER_PLATINUM,
    TIER_SILVER,
    TIER_THRESHOLDS,
)

# lowest first
TIERS: tuple[str, ...] = (TIER_NEW, TIER_BRONZE, TIER_SILVER, TIER_GOLD, TIER_PLATINUM)
_RANK = {t: i for i, t in enumerate(TIERS)}


def classify(total_spent: float) -> str:
    """
    Loyalty tier for a lifetime spend. Thresholds are checked highest first
    and are strict (exactly 10,000 is still New). Anything else, including
    negative input, is New.
    """
    for threshold, tier in TIER_THRESHOLDS:
        if total_spent > threshold:
            return tier
    return TIER_NEW


def rank(tier: str) -> int:
    """Position in New < Bronze < Silver < Gold < Platinum."""
    return _RANK[tier]
