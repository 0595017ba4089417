"""
종목 데이터 조회기

티커 → 비율 데이터
1. 유효한 캐시가 있으면 즉시 반환
2. 제공자를 우선순위대로 하나씩 시도 (병렬 시도 없음)
3. 첫 성공 결과를 캐시에 저장 후 반환
4. 전부 실패하면 만료된 캐시라도 반환 (stale 표시)
5. 캐시도 없으면 ResolutionError
"""
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Sequence

from stock_screener.core.cache import CacheStore
from stock_screener.core.exceptions import (
    BaseError,
    BatchSizeExceededError,
    DataValidationError,
    InvalidTickerError,
    ProviderError,
    ResolutionError,
)
from stock_screener.core.interfaces import CacheEntry, DataSource, RatioProvider, StockData
from stock_screener.core.logger import get_logger

DEFAULT_MAX_BATCH_SIZE = 10
DEFAULT_MAX_WORKERS = 4
DEFAULT_ATTEMPT_TIMEOUT = 20.0
MAX_TICKER_LENGTH = 20


def normalize_ticker(ticker: str) -> str:
    """
    티커 정규화 (공백 제거 + 대문자)

    Raises:
        InvalidTickerError: 빈 티커 또는 20자 초과
    """
    if not isinstance(ticker, str):
        raise InvalidTickerError(f"티커는 문자열이어야 합니다: {ticker!r}")

    normalized = ticker.strip().upper()
    if not normalized:
        raise InvalidTickerError("티커가 비어 있습니다")
    if len(normalized) > MAX_TICKER_LENGTH:
        raise InvalidTickerError(
            f"티커가 너무 깁니다: {normalized}",
            {"length": len(normalized), "limit": MAX_TICKER_LENGTH},
        )
    return normalized


def normalize_tickers(tickers: Sequence[str], limit: int = DEFAULT_MAX_BATCH_SIZE) -> list[str]:
    """
    일괄 조회 티커 목록 검증 + 정규화 (입력 순서 유지)

    Raises:
        DataValidationError: 빈 목록
        BatchSizeExceededError: 한도 초과
        InvalidTickerError: 잘못된 티커 포함
    """
    if not tickers:
        raise DataValidationError("티커 목록이 비어 있습니다")
    if len(tickers) > limit:
        raise BatchSizeExceededError(len(tickers), limit)
    return [normalize_ticker(t) for t in tickers]


@dataclass(frozen=True)
class ResolutionResult:
    """조회 결과"""
    ticker: str
    data: StockData
    source: DataSource
    from_cache: bool
    stale: bool = False
    fetch_duration_ms: int | None = None

    def to_dict(self) -> dict:
        return {
            "ticker": self.ticker,
            "data": self.data.to_dict(),
            "source": self.source.value,
            "from_cache": self.from_cache,
            "stale": self.stale,
            "fetch_duration_ms": self.fetch_duration_ms,
        }


@dataclass(frozen=True)
class BatchItem:
    """일괄 조회 항목 (result 또는 error 중 하나)"""
    ticker: str
    result: ResolutionResult | None = None
    error: BaseError | None = None

    @property
    def ok(self) -> bool:
        return self.result is not None


class StockResolver:
    """
    종목 데이터 조회기

    사용법:
        resolver = StockResolver(
            cache=CacheStore(),
            providers=[YahooQueryProvider(), FmpProvider(), YahooScraperProvider()],
        )

        result = resolver.resolve("cap.pa")
        print(result.source, result.from_cache, result.stale)

        for item in resolver.resolve_batch(["AAPL", "MC.PA"]):
            print(item.ticker, item.ok)
    """

    def __init__(
        self,
        cache: CacheStore,
        providers: Sequence[RatioProvider],
        max_batch_size: int = DEFAULT_MAX_BATCH_SIZE,
        max_workers: int = DEFAULT_MAX_WORKERS,
        attempt_timeout: float | None = DEFAULT_ATTEMPT_TIMEOUT,
    ):
        if max_batch_size < 1:
            raise DataValidationError(f"max_batch_size는 1 이상이어야 합니다: {max_batch_size}")
        if max_workers < 1:
            raise DataValidationError(f"max_workers는 1 이상이어야 합니다: {max_workers}")

        self.logger = get_logger(self.__class__.__name__)
        self.cache = cache
        self.providers = list(providers)
        self.max_batch_size = max_batch_size
        self.max_workers = max_workers
        self.attempt_timeout = attempt_timeout

        # 시간 초과된 시도는 완료될 때까지 스레드를 점유함
        self._attempt_executor: ThreadPoolExecutor | None = None
        if attempt_timeout is not None:
            self._attempt_executor = ThreadPoolExecutor(
                max_workers=max(4, max_workers * max(1, len(self.providers))),
                thread_name_prefix="provider-attempt",
            )

    # ============================================
    # Single
    # ============================================
    def resolve(self, ticker: str, force_refresh: bool = False) -> ResolutionResult:
        """
        단일 티커 조회

        Args:
            ticker: 티커 (대소문자/공백 무관)
            force_refresh: True면 유효한 캐시도 무시하고 제공자 조회

        Returns:
            ResolutionResult

        Raises:
            InvalidTickerError: 잘못된 티커
            ResolutionError: 모든 제공자 실패 + 캐시 없음
        """
        ticker = normalize_ticker(ticker)

        if not force_refresh:
            entry = self._cache_get(ticker)
            if entry is not None:
                self.logger.debug(f"[{ticker}] 캐시 적중 ({entry.source.value})")
                return self._from_entry(entry, stale=False)
            self.logger.debug(f"[{ticker}] 캐시 없음/만료")

        attempted: list[str] = []
        last_errors: dict[str, str] = {}

        for provider in self.providers:
            source = provider.get_source()
            attempted.append(source.value)

            started = time.perf_counter()
            try:
                data = self._attempt(provider, ticker)
            except FuturesTimeoutError:
                message = f"응답 시간 초과 ({self.attempt_timeout}초)"
                self._record_failure(ticker, source, message, last_errors)
                continue
            except ProviderError as e:
                self._record_failure(ticker, source, str(e), last_errors)
                continue
            except Exception as e:
                self.logger.opt(exception=e).error(f"[{ticker}] {source.value} 예기치 않은 오류")
                self._record_failure(ticker, source, f"{type(e).__name__}: {e}", last_errors)
                continue

            duration_ms = int((time.perf_counter() - started) * 1000)
            self._cache_put(ticker, data, source, provider.get_cache_ttl(), duration_ms)
            self.logger.info(f"[{ticker}] {source.value} 조회 성공 ({duration_ms}ms)")
            return ResolutionResult(
                ticker=ticker,
                data=data,
                source=source,
                from_cache=False,
                stale=False,
                fetch_duration_ms=duration_ms,
            )

        stale_entry = self._cache_get(ticker, allow_stale=True)
        if stale_entry is not None:
            self.logger.warning(
                f"[{ticker}] 모든 제공자 실패, 만료된 캐시 반환 "
                f"(갱신: {stale_entry.updated_at.isoformat()})"
            )
            return self._from_entry(stale_entry, stale=not self.cache.is_fresh(stale_entry))

        self.logger.error(f"[{ticker}] 조회 실패: {last_errors}")
        raise ResolutionError(ticker, attempted, last_errors)

    # ============================================
    # Batch
    # ============================================
    def resolve_batch(self, tickers: Sequence[str], force_refresh: bool = False) -> list[BatchItem]:
        """
        일괄 조회 (입력 순서 유지)

        한도 초과/잘못된 티커는 조회 시작 전에 거부
        티커별 실패는 BatchItem.error로 반환

        Raises:
            BatchSizeExceededError: 한도 초과
            DataValidationError: 빈 목록 또는 잘못된 티커
        """
        normalized = normalize_tickers(tickers, self.max_batch_size)

        workers = min(self.max_workers, len(normalized))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="resolve") as pool:
            futures = [pool.submit(self.resolve, t, force_refresh) for t in normalized]

            items = []
            for ticker, future in zip(normalized, futures):
                try:
                    items.append(BatchItem(ticker=ticker, result=future.result()))
                except BaseError as e:
                    items.append(BatchItem(ticker=ticker, error=e))

        failed = sum(1 for item in items if not item.ok)
        self.logger.info(f"일괄 조회 완료: {len(items) - failed}/{len(items)} 성공")
        return items

    # ============================================
    # Lifecycle
    # ============================================
    def close(self) -> None:
        """시도 실행기 종료 (진행 중인 시도는 기다리지 않음)"""
        if self._attempt_executor is not None:
            self._attempt_executor.shutdown(wait=False, cancel_futures=True)
            self._attempt_executor = None

    def __enter__(self) -> "StockResolver":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ============================================
    # Internal
    # ============================================
    def _attempt(self, provider: RatioProvider, ticker: str) -> StockData:
        """제공자 1회 시도 (attempt_timeout 초과 시 FuturesTimeoutError)"""
        if self._attempt_executor is None:
            return provider.fetch_ratios(ticker)

        future = self._attempt_executor.submit(provider.fetch_ratios, ticker)
        try:
            return future.result(timeout=self.attempt_timeout)
        except FuturesTimeoutError:
            future.cancel()
            raise

    def _record_failure(
        self,
        ticker: str,
        source: DataSource,
        message: str,
        last_errors: dict[str, str],
    ) -> None:
        last_errors[source.value] = message
        try:
            self.cache.record_error(ticker)
        except BaseError as e:
            self.logger.warning(f"[{ticker}] 오류 횟수 기록 실패: {e}")
        self.logger.warning(f"[{ticker}] {source.value} 실패, 다음 제공자 시도: {message}")

    def _cache_get(self, ticker: str, allow_stale: bool = False) -> CacheEntry | None:
        """캐시 조회 (캐시 오류는 미적중으로 처리)"""
        try:
            return self.cache.get(ticker, allow_stale=allow_stale)
        except BaseError as e:
            self.logger.warning(f"[{ticker}] 캐시 조회 실패, 미적중으로 처리: {e}")
            return None

    def _cache_put(
        self,
        ticker: str,
        data: StockData,
        source: DataSource,
        ttl_seconds: int,
        duration_ms: int,
    ) -> None:
        """캐시 저장 (실패해도 조회 결과는 반환)"""
        try:
            self.cache.put(
                ticker,
                data,
                source,
                ttl_seconds=ttl_seconds,
                fetch_duration_ms=duration_ms,
            )
        except BaseError as e:
            self.logger.warning(f"[{ticker}] 캐시 저장 실패: {e}")

    @staticmethod
    def _from_entry(entry: CacheEntry, stale: bool) -> ResolutionResult:
        return ResolutionResult(
            ticker=entry.ticker,
            data=entry.data,
            source=entry.source,
            from_cache=True,
            stale=stale,
            fetch_duration_ms=entry.fetch_duration_ms,
        )


def init_resolver_from_config(
    cache: CacheStore | None = None,
    providers: Sequence[RatioProvider] | None = None,
) -> StockResolver:
    """설정 파일 기반 조회기 초기화"""
    from stock_screener.core.cache import init_cache_from_config
    from stock_screener.core.config import get_config
    from stock_screener.ingest.registry import build_providers_from_config

    config = get_config()

    return StockResolver(
        cache=cache if cache is not None else init_cache_from_config(),
        providers=providers if providers is not None else build_providers_from_config(),
        max_batch_size=config.get("resolver.max_batch_size", DEFAULT_MAX_BATCH_SIZE),
        max_workers=config.get("resolver.max_workers", DEFAULT_MAX_WORKERS),
        attempt_timeout=config.get("resolver.attempt_timeout_seconds", DEFAULT_ATTEMPT_TIMEOUT),
    )
