"""
점수 집계기

프로필의 비율별 점수에 가중치를 적용하여 최종 점수(0-100)와 판정 산출
가중치 합계가 1.0이 아니어도 사용된 가중치 합으로 재정규화
"""
from dataclasses import dataclass, field
from typing import Any, Mapping

from stock_screener.core.exceptions import ScoringError
from stock_screener.core.interfaces import ProfileType, Verdict
from stock_screener.core.logger import get_logger
from stock_screener.scoring.profiles import ScoringProfile, get_profile
from stock_screener.scoring.ratio_scorer import score_ratio


@dataclass(frozen=True)
class ScoreBreakdown:
    """비율별 점수 상세"""
    name: str
    raw_value: float | None
    sub_score: float      # 0-100
    weight: float
    contribution: float   # sub_score * weight

    @property
    def available(self) -> bool:
        return self.raw_value is not None


@dataclass(frozen=True)
class ScoreResult:
    """점수 결과 (요청마다 새로 계산, 저장하지 않음)"""
    score: float  # 0-100
    verdict: Verdict
    profile_type: ProfileType
    profile_name: str
    breakdown: tuple[ScoreBreakdown, ...] = field(default_factory=tuple)

    @property
    def missing_ratios(self) -> list[str]:
        return [b.name for b in self.breakdown if not b.available]

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "verdict": self.verdict.value,
            "verdict_label": self.verdict.label,
            "profile": self.profile_type.value,
            "profile_name": self.profile_name,
            "breakdown": [
                {
                    "name": b.name,
                    "raw_value": b.raw_value,
                    "sub_score": b.sub_score,
                    "weight": b.weight,
                    "contribution": b.contribution,
                }
                for b in self.breakdown
            ],
        }


class ScoreAggregator:
    """
    점수 집계기

    사용법:
        aggregator = ScoreAggregator()

        result = aggregator.aggregate(
            {"PE": 12.5, "PB": 1.2, "DividendYield": 3.1},
            "value",
        )
        print(result.score, result.verdict.label)
        for item in result.breakdown:
            print(item.name, item.sub_score, item.contribution)
    """

    def __init__(self, precision: int = 2):
        self.logger = get_logger(self.__class__.__name__)
        self.precision = precision

    def aggregate(
        self,
        values: Mapping[str, float | None],
        profile: ScoringProfile | ProfileType | str,
    ) -> ScoreResult:
        """
        최종 점수 계산

        Args:
            values: 비율명 → 값 (없는 비율은 중립 점수)
            profile: 프로필 또는 프로필 타입

        Returns:
            ScoreResult (프로필 선언 순서대로 breakdown 포함)
        """
        if not isinstance(profile, ScoringProfile):
            profile = get_profile(profile)

        breakdown = []
        for definition in profile.ratios:
            raw_value = values.get(definition.name)
            sub_score = score_ratio(raw_value, definition)
            breakdown.append(
                ScoreBreakdown(
                    name=definition.name,
                    raw_value=raw_value,
                    sub_score=sub_score,
                    weight=definition.weight,
                    contribution=sub_score * definition.weight,
                )
            )

        total_weight = sum(b.weight for b in breakdown)
        if total_weight <= 0:
            raise ScoringError(f"가중치 합계가 0입니다: {profile.name}")

        raw_score = min(100.0, max(0.0, sum(b.contribution for b in breakdown) / total_weight))
        score = round(raw_score, self.precision)

        # 구간 경계는 반올림 전 점수로 판단 (89.996 → 90.0 표시, EXCELLENTE AFFAIRE)
        result = ScoreResult(
            score=score,
            verdict=Verdict.from_score(raw_score),
            profile_type=profile.profile_type,
            profile_name=profile.name,
            breakdown=tuple(breakdown),
        )

        self.logger.debug(
            f"[{profile.name}] 점수 {score} ({result.verdict.value}), "
            f"누락 {len(result.missing_ratios)}/{len(breakdown)}"
        )
        return result
