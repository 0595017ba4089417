"""
스코어링 프로필

프로필별 사용 비율, 가중치, 임계값(excellent/good/fair/expensive), inverse 여부 정의

- Value: PE 25% + PB 25% + DividendYield 20% + DebtToEquity 15% + ROE 15%
- Growth: RevenueGrowth 30% + EPSGrowth 30% + PEG 25% + ROE 15%
- Dividend: DividendYield 35% + PayoutRatio 25% + DebtToEquity 20% + PE 20%

비율 단위: 백분율 지표는 % 값 (DividendYield 4.0 = 4%), 배수 지표는 배수 그대로
"""
from dataclasses import dataclass, field
from typing import Any

from stock_screener.core.exceptions import ConfigValidationError
from stock_screener.core.interfaces import ProfileType
from stock_screener.core.logger import get_logger

logger = get_logger(__name__)

WEIGHT_TOLERANCE = 1e-3


@dataclass(frozen=True)
class RatioThresholds:
    """비율 임계값 (최선 → 최악 순서)"""
    excellent: float
    good: float
    fair: float
    expensive: float

    def as_tuple(self) -> tuple[float, float, float, float]:
        return (self.excellent, self.good, self.fair, self.expensive)


@dataclass(frozen=True)
class RatioDefinition:
    """
    프로필 내 단일 비율 정의

    inverse=False: 낮을수록 좋음 (PE 등), 임계값 오름차순
    inverse=True: 높을수록 좋음 (DividendYield 등), 임계값 내림차순
    """
    name: str
    weight: float
    thresholds: RatioThresholds
    inverse: bool = False

    def __post_init__(self):
        if not self.name:
            raise ConfigValidationError("비율 이름이 비어 있습니다")

        if not 0 < self.weight <= 1:
            raise ConfigValidationError(
                f"가중치 범위 오류: {self.name}={self.weight}",
                {"allowed": "(0, 1]"},
            )

        points = self.thresholds.as_tuple()
        if self.inverse:
            points = tuple(-p for p in points)

        monotonic = all(a <= b for a, b in zip(points, points[1:]))
        if not monotonic or points[0] == points[-1]:
            raise ConfigValidationError(
                f"임계값 순서 오류: {self.name}",
                {"thresholds": self.thresholds.as_tuple(), "inverse": self.inverse},
            )


@dataclass(frozen=True)
class ScoringProfile:
    """투자 스타일별 스코어링 프로필"""
    name: str
    profile_type: ProfileType
    ratios: tuple[RatioDefinition, ...] = field(default_factory=tuple)

    def __post_init__(self):
        if not self.ratios:
            raise ConfigValidationError(f"프로필에 비율이 없습니다: {self.name}")

        names = [r.name for r in self.ratios]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ConfigValidationError(
                f"프로필 내 비율 이름 중복: {self.name}",
                {"duplicates": duplicates},
            )

        self.check_weights()

    @property
    def weight_sum(self) -> float:
        return sum(r.weight for r in self.ratios)

    def check_weights(self, tolerance: float = WEIGHT_TOLERANCE) -> bool:
        """
        가중치 합계 검증

        1.0이 아니어도 집계 시 재정규화되므로 경고만 남김
        """
        if abs(self.weight_sum - 1.0) > tolerance:
            logger.warning(
                f"[{self.name}] 가중치 합계 {self.weight_sum:.4f} != 1.0 (재정규화 적용)"
            )
            return False
        return True

    def get_ratio(self, name: str) -> RatioDefinition | None:
        for ratio in self.ratios:
            if ratio.name == name:
                return ratio
        return None

    @property
    def ratio_names(self) -> list[str]:
        return [r.name for r in self.ratios]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.profile_type.value,
            "ratios": [
                {
                    "name": r.name,
                    "weight": r.weight,
                    "thresholds": {
                        "excellent": r.thresholds.excellent,
                        "good": r.thresholds.good,
                        "fair": r.thresholds.fair,
                        "expensive": r.thresholds.expensive,
                    },
                    "inverse": r.inverse,
                }
                for r in self.ratios
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScoringProfile":
        """
        사용자 정의 프로필 생성 (JSON/YAML)

        Raises:
            ConfigValidationError: 필수 키 누락 또는 값 오류
        """
        try:
            return cls(
                name=data["name"],
                profile_type=ProfileType(data.get("type", ProfileType.VALUE.value)),
                ratios=tuple(
                    RatioDefinition(
                        name=r["name"],
                        weight=float(r["weight"]),
                        thresholds=RatioThresholds(**{
                            k: float(r["thresholds"][k])
                            for k in ("excellent", "good", "fair", "expensive")
                        }),
                        inverse=bool(r.get("inverse", False)),
                    )
                    for r in data["ratios"]
                ),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigValidationError(f"프로필 정의 오류: {e}", {"profile": data.get("name")})


# ============================================
# 기본 프로필
# ============================================
VALUE_PROFILE = ScoringProfile(
    name="Value (Default)",
    profile_type=ProfileType.VALUE,
    ratios=(
        RatioDefinition("PE", 0.25, RatioThresholds(10, 15, 20, 25)),
        RatioDefinition("PB", 0.25, RatioThresholds(1, 1.5, 2.5, 3.5)),
        RatioDefinition("DividendYield", 0.20, RatioThresholds(4, 3, 2, 1), inverse=True),
        RatioDefinition("DebtToEquity", 0.15, RatioThresholds(0.5, 1, 1.5, 2)),
        RatioDefinition("ROE", 0.15, RatioThresholds(15, 10, 5, 0), inverse=True),
    ),
)

GROWTH_PROFILE = ScoringProfile(
    name="Growth (Default)",
    profile_type=ProfileType.GROWTH,
    ratios=(
        RatioDefinition("RevenueGrowth", 0.30, RatioThresholds(30, 20, 10, 5), inverse=True),
        RatioDefinition("EPSGrowth", 0.30, RatioThresholds(25, 15, 8, 3), inverse=True),
        RatioDefinition("PEG", 0.25, RatioThresholds(0.5, 1, 1.5, 2)),
        RatioDefinition("ROE", 0.15, RatioThresholds(20, 15, 10, 5), inverse=True),
    ),
)

DIVIDEND_PROFILE = ScoringProfile(
    name="Dividend (Default)",
    profile_type=ProfileType.DIVIDEND,
    ratios=(
        RatioDefinition("DividendYield", 0.35, RatioThresholds(5, 4, 3, 2), inverse=True),
        RatioDefinition("PayoutRatio", 0.25, RatioThresholds(50, 60, 75, 90)),
        RatioDefinition("DebtToEquity", 0.20, RatioThresholds(0.5, 1, 1.5, 2)),
        RatioDefinition("PE", 0.20, RatioThresholds(12, 18, 25, 30)),
    ),
)

DEFAULT_PROFILES: dict[ProfileType, ScoringProfile] = {
    ProfileType.VALUE: VALUE_PROFILE,
    ProfileType.GROWTH: GROWTH_PROFILE,
    ProfileType.DIVIDEND: DIVIDEND_PROFILE,
}


def get_profile(profile_type: ProfileType | str) -> ScoringProfile:
    """
    기본 프로필 조회

    Args:
        profile_type: ProfileType 또는 "value" / "growth" / "dividend"

    Raises:
        ConfigValidationError: 알 수 없는 프로필
    """
    if isinstance(profile_type, str):
        try:
            profile_type = ProfileType(profile_type.strip().lower())
        except ValueError:
            raise ConfigValidationError(
                f"알 수 없는 프로필: {profile_type}",
                {"allowed": [p.value for p in ProfileType]},
            )
    return DEFAULT_PROFILES[profile_type]
