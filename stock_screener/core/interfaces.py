"""
핵심 인터페이스 정의

모든 레이어에서 사용하는 표준 인터페이스
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

# 캐시 기본 TTL (5분)
DEFAULT_CACHE_TTL_SECONDS = 300


def utc_now() -> datetime:
    """현재 시각 (UTC, timezone-aware)"""
    return datetime.now(timezone.utc)


# ============================================
# Enums
# ============================================
class ProfileType(Enum):
    """투자 스타일 프로필"""
    VALUE = "value"
    GROWTH = "growth"
    DIVIDEND = "dividend"


class DataSource(Enum):
    """데이터 출처 (우선순위 순서와 무관)"""
    YAHOO_QUERY = "yahoo-query"  # Yahoo JSON API (1순위)
    FMP = "fmp"                  # Financial Modeling Prep (2순위)
    SCRAPING = "scraping"        # Yahoo HTML 스크래핑 (3순위)
    MANUAL = "manual"            # 수동 입력


class Verdict(Enum):
    """점수 구간별 판정"""
    TOO_EXPENSIVE = "TOO_EXPENSIVE"                      # [0, 20)
    EXPENSIVE = "EXPENSIVE"                              # [20, 40)
    FAIR = "FAIR"                                        # [40, 60)
    GOOD_DEAL = "GOOD_DEAL"                              # [60, 75)
    EXCELLENT_DEAL = "EXCELLENT_DEAL"                    # [75, 90)
    EXCEPTIONAL_OPPORTUNITY = "EXCEPTIONAL_OPPORTUNITY"  # [90, 100]

    @property
    def label(self) -> str:
        """화면 표시용 라벨"""
        return _VERDICT_LABELS[self]

    @property
    def color(self) -> str:
        """화면 표시용 색상 (hex)"""
        return _VERDICT_COLORS[self]

    @classmethod
    def from_score(cls, score: float) -> "Verdict":
        """점수 → 판정 (하한 포함)"""
        for lower_bound, verdict in VERDICT_BOUNDARIES:
            if score >= lower_bound:
                return verdict
        return cls.TOO_EXPENSIVE


# 하한 내림차순, 프로필과 무관한 고정 상수
VERDICT_BOUNDARIES: tuple[tuple[float, Verdict], ...] = (
    (90.0, Verdict.EXCEPTIONAL_OPPORTUNITY),
    (75.0, Verdict.EXCELLENT_DEAL),
    (60.0, Verdict.GOOD_DEAL),
    (40.0, Verdict.FAIR),
    (20.0, Verdict.EXPENSIVE),
    (0.0, Verdict.TOO_EXPENSIVE),
)

_VERDICT_LABELS = {
    Verdict.TOO_EXPENSIVE: "TROP CHER",
    Verdict.EXPENSIVE: "CHER",
    Verdict.FAIR: "CORRECT",
    Verdict.GOOD_DEAL: "BONNE AFFAIRE",
    Verdict.EXCELLENT_DEAL: "EXCELLENTE AFFAIRE",
    Verdict.EXCEPTIONAL_OPPORTUNITY: "OPPORTUNITÉ EXCEPTIONNELLE",
}

_VERDICT_COLORS = {
    Verdict.TOO_EXPENSIVE: "#DC2626",
    Verdict.EXPENSIVE: "#F97316",
    Verdict.FAIR: "#FACC15",
    Verdict.GOOD_DEAL: "#22C55E",
    Verdict.EXCELLENT_DEAL: "#10B981",
    Verdict.EXCEPTIONAL_OPPORTUNITY: "#059669",
}


# ============================================
# Data Classes
# ============================================
@dataclass
class StockData:
    """제공자가 반환하는 종목 데이터 (비율 + 메타데이터)"""
    ticker: str
    source: DataSource
    name: str = ""
    price: float | None = None
    currency: str = "USD"

    # 비율명 → 값 (None = 데이터 없음, 0과 구분)
    ratios: dict[str, float | None] = field(default_factory=dict)

    fetched_at: datetime = field(default_factory=utc_now)

    def available_ratios(self) -> dict[str, float]:
        """값이 있는 비율만 반환"""
        return {k: v for k, v in self.ratios.items() if v is not None}

    def to_dict(self) -> dict[str, Any]:
        """JSON 저장용 딕셔너리 변환"""
        return {
            "ticker": self.ticker,
            "name": self.name,
            "price": self.price,
            "currency": self.currency,
            "ratios": dict(self.ratios),
            "source": self.source.value,
            "fetched_at": self.fetched_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "StockData":
        """to_dict() 결과 복원"""
        fetched_at = data.get("fetched_at")
        return cls(
            ticker=data["ticker"],
            source=DataSource(data["source"]),
            name=data.get("name", ""),
            price=data.get("price"),
            currency=data.get("currency", "USD"),
            ratios=dict(data.get("ratios") or {}),
            fetched_at=datetime.fromisoformat(fetched_at) if fetched_at else utc_now(),
        )


@dataclass
class CacheEntry:
    """티커별 캐시 항목 (출처/오류 텔레메트리 포함)"""
    ticker: str
    data: StockData
    source: DataSource
    expires_at: datetime
    updated_at: datetime
    fetch_duration_ms: int | None = None
    error_count: int = 0

    def is_fresh(self, now: datetime) -> bool:
        """만료 시각과 현재 시각이 같으면 이미 만료"""
        return self.expires_at > now


# ============================================
# Abstract Interfaces
# ============================================
class RatioProvider(ABC):
    """재무비율 제공자 인터페이스 (Ingest Layer)"""

    @abstractmethod
    def fetch_ratios(self, ticker: str) -> StockData:
        """
        티커의 비율 데이터 조회

        Raises:
            ProviderError: 조회 실패 (시간 초과, 형식 오류, Rate Limit 등)
        """
        pass

    @abstractmethod
    def get_source(self) -> DataSource:
        """데이터 출처"""
        pass

    def get_cache_ttl(self) -> int:
        """이 제공자 데이터의 캐시 TTL (초)"""
        return DEFAULT_CACHE_TTL_SECONDS
