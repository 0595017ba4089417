"""
Ingest Layer - 기본 클래스

모든 재무비율 제공자의 공통 기능
- 설정 로드 (timeout, retry, TTL, rate limit)
- HTTP 요청 (재시도 + 지수 백오프, 상태 코드 → 예외 변환)
- 파생 비율 계산 + 범위 검증
"""
import math
import time
from abc import abstractmethod
from datetime import datetime
from typing import Any

import requests

from stock_screener.core.config import get_config
from stock_screener.core.exceptions import (
    MalformedResponseError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    TickerNotFoundError,
)
from stock_screener.core.interfaces import (
    DEFAULT_CACHE_TTL_SECONDS,
    DataSource,
    RatioProvider,
    StockData,
)
from stock_screener.core.logger import get_logger
from stock_screener.ingest.derived import calculate_derived_ratios
from stock_screener.ingest.rate_limiter import RateLimiter
from stock_screener.ingest.ratio_ranges import sanitize_ratios

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    "Accept-Language": "en-US,en;q=0.9",
}

MAX_BACKOFF_SECONDS = 10


def infer_currency(ticker: str) -> str:
    """티커 접미사로 통화 추정"""
    ticker = ticker.upper()
    if ticker.endswith((".PA", ".DE", ".MI", ".AS")):
        return "EUR"
    if ticker.endswith(".L"):
        return "GBP"
    if ticker.endswith(".TO"):
        return "CAD"
    if ticker.endswith(".SW"):
        return "CHF"
    return "USD"


class BaseRatioProvider(RatioProvider):
    """
    재무비율 제공자 기본 클래스

    하위 클래스는 SOURCE와 _fetch()만 구현
    설정 경로: providers.<source>.*
    """

    SOURCE: DataSource

    def __init__(
        self,
        session: requests.Session | None = None,
        rate_limiter: RateLimiter | None = None,
        timeout: float | None = None,
        retry_count: int | None = None,
        cache_ttl_seconds: int | None = None,
    ):
        self.logger = get_logger(self.__class__.__name__, source=self.SOURCE.value)

        # 설정 값은 로드 시점에 검증 + 타입 변환됨
        settings = get_config().provider_settings(self.SOURCE.value)

        self.timeout = timeout if timeout is not None else settings.get("timeout_seconds", 10)
        self.retry_count = retry_count if retry_count is not None else settings.get("retry_count", 2)
        self.cache_ttl_seconds = (
            cache_ttl_seconds
            if cache_ttl_seconds is not None
            else settings.get("cache_ttl_seconds", DEFAULT_CACHE_TTL_SECONDS)
        )

        if rate_limiter is None:
            limits = settings.get("rate_limit") or {}
            rate_limiter = RateLimiter(
                min_interval_seconds=limits.get("min_interval_seconds", 1),
                max_calls_per_hour=limits.get("max_calls_per_hour", 100),
                max_attempts_per_ticker=limits.get("max_attempts_per_ticker", 5),
                max_wait_seconds=limits.get("max_wait_seconds", 2),
            )
        self.rate_limiter = rate_limiter

        self.session = session or requests.Session()
        self.session.headers.update(DEFAULT_HEADERS)

    def get_source(self) -> DataSource:
        return self.SOURCE

    def get_source_name(self) -> str:
        return self.SOURCE.value

    def get_cache_ttl(self) -> int:
        return self.cache_ttl_seconds

    @abstractmethod
    def _fetch(self, ticker: str) -> StockData:
        """제공자별 원시 데이터 조회 (하위 클래스에서 구현)"""
        pass

    def fetch_ratios(self, ticker: str) -> StockData:
        """
        티커 비율 조회

        Raises:
            ProviderError: 조회 실패
        """
        started = self._log_fetch_start(ticker)
        try:
            self.rate_limiter.acquire(ticker, source=self.get_source_name())
            data = self._fetch(ticker)

            data.ratios = sanitize_ratios(calculate_derived_ratios(data.ratios), ticker)
            if data.price is None and not data.available_ratios():
                raise MalformedResponseError(
                    "가격과 비율 모두 없음",
                    source=self.get_source_name(),
                    ticker=ticker,
                )
        except ProviderError as e:
            self._log_fetch_error(ticker, e)
            raise

        self._log_fetch_complete(ticker, started, len(data.available_ratios()))
        return data

    # ============================================
    # HTTP
    # ============================================
    def _request(
        self,
        url: str,
        ticker: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        retry: int = 0,
    ) -> requests.Response:
        """GET 요청 공통 처리 (404/429는 재시도하지 않음)"""
        try:
            response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)

            if response.status_code == 404:
                raise TickerNotFoundError(
                    f"티커를 찾을 수 없음: {ticker}",
                    source=self.get_source_name(),
                    ticker=ticker,
                )
            if response.status_code == 429:
                raise RateLimitError(
                    f"{self.get_source_name()} 요청 한도 초과 (429)",
                    retry_after=_retry_after(response),
                    source=self.get_source_name(),
                    ticker=ticker,
                )

            response.raise_for_status()
            return response

        except requests.RequestException as e:
            if retry < self.retry_count:
                backoff = min(2 ** retry, MAX_BACKOFF_SECONDS)
                self.logger.warning(
                    f"[{self.get_source_name()}] 재시도 ({retry + 1}/{self.retry_count}), "
                    f"{backoff}초 후: {e}"
                )
                time.sleep(backoff)
                return self._request(url, ticker, params, headers, retry + 1)

            if isinstance(e, requests.Timeout):
                raise ProviderTimeoutError(
                    f"{self.get_source_name()} 응답 시간 초과: {e}",
                    source=self.get_source_name(),
                    ticker=ticker,
                ) from e
            raise ProviderError(
                f"{self.get_source_name()} 요청 실패: {e}",
                source=self.get_source_name(),
                ticker=ticker,
            ) from e

    def _get_json(self, url: str, ticker: str, params: dict[str, Any] | None = None) -> Any:
        """JSON 응답 조회"""
        response = self._request(url, ticker, params=params, headers={"Accept": "application/json"})
        try:
            return response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"JSON 파싱 실패: {e}",
                source=self.get_source_name(),
                ticker=ticker,
            ) from e

    # ============================================
    # Logging
    # ============================================
    def _log_fetch_start(self, ticker: str) -> datetime:
        """수집 시작 로깅"""
        self.logger.info(f"[{self.get_source_name()}] {ticker} 조회 시작")
        return datetime.now()

    def _log_fetch_complete(self, ticker: str, started: datetime, count: int = 0) -> None:
        """수집 완료 로깅"""
        elapsed = (datetime.now() - started).total_seconds()
        self.logger.info(
            f"[{self.get_source_name()}] {ticker} 조회 완료: 비율 {count}개, 소요시간: {elapsed:.2f}초"
        )

    def _log_fetch_error(self, ticker: str, error: Exception) -> None:
        """수집 오류 로깅"""
        self.logger.warning(f"[{self.get_source_name()}] {ticker} 조회 실패: {error}")


def _retry_after(response: requests.Response) -> float | None:
    value = response.headers.get("Retry-After")
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


def to_float(value: Any) -> float | None:
    """숫자 변환 (변환 불가/비유한 값은 None)"""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def to_percent(value: Any) -> float | None:
    """소수 비율 → % (0.042 → 4.2)"""
    number = to_float(value)
    return number * 100 if number is not None else None
