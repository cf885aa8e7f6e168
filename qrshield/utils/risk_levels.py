"""
Risk level utilities.
Maps the clamped 0-100 analysis score onto the five discrete levels.
"""

from typing import List, Tuple

from qrshield.schemas.qr_schemas import RiskLevel

MIN_SCORE = 0
MAX_SCORE = 100

# Lower bound (inclusive) of each level, highest first.
RISK_LEVEL_THRESHOLDS: List[Tuple[int, RiskLevel]] = [
    (80, RiskLevel.CRITICAL),
    (60, RiskLevel.HIGH),
    (40, RiskLevel.MEDIUM),
    (20, RiskLevel.LOW),
    (MIN_SCORE, RiskLevel.SAFE),
]

_LEVEL_ORDER = [level for _, level in reversed(RISK_LEVEL_THRESHOLDS)]


def clamp_score(raw_score: float) -> int:
    """Clamp a summed score into [0, 100]."""
    return int(max(MIN_SCORE, min(MAX_SCORE, raw_score)))


def risk_level_for_score(score: float) -> RiskLevel:
    """
    Derive the risk level from a score.

    Buckets are half-open and non-overlapping:
    [0,20) safe, [20,40) low, [40,60) medium, [60,80) high, [80,100] critical.
    Out-of-range scores are clamped first.
    """
    score = clamp_score(score)
    for lower_bound, level in RISK_LEVEL_THRESHOLDS:
        if score >= lower_bound:
            return level
    return RiskLevel.SAFE


def is_at_least(level: RiskLevel, floor: RiskLevel) -> bool:
    return _LEVEL_ORDER.index(level) >= _LEVEL_ORDER.index(floor)
