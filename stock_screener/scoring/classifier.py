"""
종목 유형 분류기

재무비율로 Value / Growth / Dividend 유형을 판별
- 유형별 지표가 기준을 충족할 때마다 가산점
- 최고 점수 유형 선택 (동점 시 Dividend > Growth > Value)
"""
from dataclasses import dataclass
from typing import Mapping

from stock_screener.core.interfaces import ProfileType


@dataclass(frozen=True)
class ClassificationResult:
    """분류 결과"""
    profile_type: ProfileType
    scores: dict[ProfileType, int]
    confidence: str  # "high" | "medium" | "low"


def _tier(value: float | None, steps: tuple[tuple[float, int], ...], lower_is_better: bool) -> int:
    """단계별 가산점 (첫 번째로 충족하는 단계의 점수)"""
    if value is None:
        return 0
    for bound, points in steps:
        if (value < bound) if lower_is_better else (value > bound):
            return points
    return 0


def _positive(value: float | None) -> float | None:
    """배수 지표는 양수일 때만 의미 있음"""
    return value if value is not None and value > 0 else None


def score_stock_types(ratios: Mapping[str, float | None]) -> dict[ProfileType, int]:
    """유형별 가산점 계산"""
    value = (
        _tier(_positive(ratios.get("PE")), ((10, 3), (15, 2), (20, 1)), lower_is_better=True)
        + _tier(_positive(ratios.get("PB")), ((1, 3), (1.5, 2), (2.5, 1)), lower_is_better=True)
        + _tier(_positive(ratios.get("PS")), ((1, 2), (2, 1)), lower_is_better=True)
        + _tier(_positive(ratios.get("PCF")), ((10, 1),), lower_is_better=True)
    )

    growth = (
        _tier(ratios.get("RevenueGrowth"), ((30, 3), (20, 2), (10, 1)), lower_is_better=False)
        + _tier(ratios.get("EPSGrowth"), ((40, 3), (25, 2), (15, 1)), lower_is_better=False)
        + _tier(_positive(ratios.get("PEG")), ((1, 3), (1.5, 2), (2, 1)), lower_is_better=True)
        + _tier(ratios.get("BookValueGrowth"), ((20, 2), (10, 1)), lower_is_better=False)
        + _tier(ratios.get("NetMargin"), ((20, 1),), lower_is_better=False)
    )

    dividend = (
        _tier(ratios.get("DividendYield"), ((5, 4), (4, 3), (3, 2), (2, 1)), lower_is_better=False)
        + _payout_points(ratios.get("PayoutRatio"))
        + _tier(ratios.get("ROE"), ((15, 1),), lower_is_better=False)
    )

    return {
        ProfileType.VALUE: value,
        ProfileType.GROWTH: growth,
        ProfileType.DIVIDEND: dividend,
    }


def _payout_points(payout: float | None) -> int:
    """배당성향: 30-60% 최적, 20-75% 양호, 0-90% 허용"""
    if payout is None:
        return 0
    if 30 <= payout <= 60:
        return 3
    if 20 <= payout <= 75:
        return 2
    if 0 < payout < 90:
        return 1
    return 0


def classify_stock(ratios: Mapping[str, float | None]) -> ProfileType:
    """
    종목 유형 분류

    Args:
        ratios: 비율명 → 값

    Returns:
        ProfileType (판단 근거가 없으면 VALUE)
    """
    return classify_stock_with_confidence(ratios).profile_type


def classify_stock_with_confidence(ratios: Mapping[str, float | None]) -> ClassificationResult:
    """
    종목 유형 분류 + 신뢰도

    신뢰도: 2위와의 점수 차 3 이상 high, 1 이상 medium, 그 외 low
    """
    scores = score_stock_types(ratios)
    best = max(scores.values())

    if best > 0 and scores[ProfileType.DIVIDEND] == best:
        winner = ProfileType.DIVIDEND
    elif best > 0 and scores[ProfileType.GROWTH] == best:
        winner = ProfileType.GROWTH
    else:
        winner = ProfileType.VALUE

    runner_up = max(s for t, s in scores.items() if t != winner)
    lead = scores[winner] - runner_up

    if lead >= 3:
        confidence = "high"
    elif lead >= 1:
        confidence = "medium"
    else:
        confidence = "low"

    return ClassificationResult(profile_type=winner, scores=scores, confidence=confidence)
