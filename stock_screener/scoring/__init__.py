"""
Scoring Layer

프로필별 가중치/임계값을 적용한 저평가 점수화
- Value: PE, PB, 배당수익률 중심
- Growth: 매출/EPS 성장률, PEG 중심
- Dividend: 배당수익률, 배당성향 중심
"""
from stock_screener.scoring.profiles import (
    RatioThresholds,
    RatioDefinition,
    ScoringProfile,
    VALUE_PROFILE,
    GROWTH_PROFILE,
    DIVIDEND_PROFILE,
    DEFAULT_PROFILES,
    get_profile,
)
from stock_screener.scoring.ratio_scorer import score_ratio, NEUTRAL_SCORE
from stock_screener.scoring.aggregator import ScoreAggregator, ScoreBreakdown, ScoreResult
from stock_screener.scoring.classifier import (
    ClassificationResult,
    classify_stock,
    classify_stock_with_confidence,
)

__all__ = [
    "RatioThresholds",
    "RatioDefinition",
    "ScoringProfile",
    "VALUE_PROFILE",
    "GROWTH_PROFILE",
    "DIVIDEND_PROFILE",
    "DEFAULT_PROFILES",
    "get_profile",
    "score_ratio",
    "NEUTRAL_SCORE",
    "ScoreAggregator",
    "ScoreBreakdown",
    "ScoreResult",
    "ClassificationResult",
    "classify_stock",
    "classify_stock_with_confidence",
]
