"""
스크리너 서비스

외부 전송 계층(API 핸들러 등)이 호출하는 단일 진입점
- 점수 계산 / 프로필 조회
- 종목 데이터 조회 (단일/일괄)
- 조회 + 유형 분류 + 점수화
"""
from dataclasses import dataclass
from typing import Any, Sequence

from stock_screener.core.interfaces import ProfileType
from stock_screener.core.logger import get_logger, setup_logger_from_config
from stock_screener.ingest.ticker_resolver import TickerResolution, resolve_ticker_from_name
from stock_screener.resolver.stock_resolver import (
    BatchItem,
    ResolutionResult,
    StockResolver,
    init_resolver_from_config,
)
from stock_screener.scoring.aggregator import ScoreAggregator, ScoreResult
from stock_screener.scoring.classifier import ClassificationResult, classify_stock_with_confidence
from stock_screener.scoring.profiles import DEFAULT_PROFILES, ScoringProfile, get_profile


@dataclass(frozen=True)
class StockAnalysis:
    """종목 분석 결과"""
    resolution: ResolutionResult
    stock_type: ClassificationResult | None  # 프로필을 지정한 경우 None
    score: ScoreResult

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.resolution.to_dict(),
            "stock_type": self.stock_type.profile_type.value if self.stock_type else None,
            "stock_type_confidence": self.stock_type.confidence if self.stock_type else None,
            "score": self.score.to_dict(),
        }


class ScreenerService:
    """
    스크리너 서비스

    사용법:
        with ScreenerService() as service:
            # 비율 직접 입력
            result = service.calculate_score({"PE": 12, "PB": 1.1}, "value")

            # 조회 + 점수화 (프로필 미지정 시 자동 분류)
            analysis = service.analyze("CAP.PA")
            print(analysis.score.score, analysis.score.verdict.label)
    """

    def __init__(
        self,
        resolver: StockResolver | None = None,
        aggregator: ScoreAggregator | None = None,
    ):
        self.logger = get_logger(self.__class__.__name__)
        self._resolver = resolver
        self.aggregator = aggregator or ScoreAggregator()

    @property
    def resolver(self) -> StockResolver:
        """조회기 (최초 사용 시 설정 기반 생성)"""
        if self._resolver is None:
            setup_logger_from_config()
            self._resolver = init_resolver_from_config()
        return self._resolver

    # ============================================
    # Lifecycle
    # ============================================
    def close(self) -> None:
        """조회기 종료 (생성된 경우만)"""
        if self._resolver is not None:
            self._resolver.close()

    def __enter__(self) -> "ScreenerService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ============================================
    # Scoring
    # ============================================
    def calculate_score(
        self,
        ratios: dict[str, float | None],
        profile_type: ProfileType | str,
    ) -> ScoreResult:
        """비율 → 점수"""
        return self.aggregator.aggregate(ratios, profile_type)

    def get_profiles(self) -> list[ScoringProfile]:
        """전체 프로필"""
        return list(DEFAULT_PROFILES.values())

    def get_profile(self, profile_type: ProfileType | str) -> ScoringProfile:
        """단일 프로필"""
        return get_profile(profile_type)

    # ============================================
    # Fetching
    # ============================================
    def fetch(self, ticker: str, force_refresh: bool = False) -> ResolutionResult:
        """단일 종목 조회"""
        return self.resolver.resolve(ticker, force_refresh=force_refresh)

    def search(self, tickers: Sequence[str], force_refresh: bool = False) -> list[BatchItem]:
        """일괄 조회 (최대 10개)"""
        return self.resolver.resolve_batch(tickers, force_refresh=force_refresh)

    def resolve_name(self, query: str) -> TickerResolution:
        """종목명 → 티커"""
        return resolve_ticker_from_name(query)

    # ============================================
    # Analysis
    # ============================================
    def analyze(
        self,
        ticker: str,
        profile_type: ProfileType | str | None = None,
        force_refresh: bool = False,
    ) -> StockAnalysis:
        """
        조회 + 점수화

        Args:
            ticker: 티커
            profile_type: 프로필 (None이면 비율로 유형 자동 분류)
            force_refresh: 캐시 무시

        Returns:
            StockAnalysis
        """
        resolution = self.fetch(ticker, force_refresh=force_refresh)
        ratios = resolution.data.ratios

        stock_type = None
        if profile_type is None:
            stock_type = classify_stock_with_confidence(ratios)
            profile_type = stock_type.profile_type
            self.logger.info(
                f"[{resolution.ticker}] 유형 분류: {profile_type.value} ({stock_type.confidence})"
            )

        score = self.calculate_score(ratios, profile_type)

        if resolution.stale:
            self.logger.warning(f"[{resolution.ticker}] 만료된 데이터 기준 점수")

        return StockAnalysis(resolution=resolution, stock_type=stock_type, score=score)
