"""
호출 빈도 제한기

제공자별 과도한 호출 방지
- 최소 호출 간격
- 시간당 최대 호출 수
- 티커별 시간당 최대 시도 수
"""
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable

from stock_screener.core.exceptions import RateLimitError
from stock_screener.core.logger import get_logger

WINDOW_SECONDS = 3600.0


@dataclass(frozen=True)
class RateLimitDecision:
    """호출 가능 여부"""
    allowed: bool
    wait_seconds: float | None = None  # None이면 대기해도 해소되지 않음
    reason: str = ""


class RateLimiter:
    """
    호출 빈도 제한기 (스레드 안전)

    사용법:
        limiter = RateLimiter(min_interval_seconds=1, max_calls_per_hour=100)

        limiter.acquire("AAPL", source="fmp")  # 필요 시 짧게 대기, 불가하면 RateLimitError
        response = session.get(...)
    """

    def __init__(
        self,
        min_interval_seconds: float = 2.0,
        max_calls_per_hour: int = 100,
        max_attempts_per_ticker: int = 3,
        max_wait_seconds: float = 2.0,
        clock: Callable[[], float] | None = None,
        sleep: Callable[[float], None] | None = None,
    ):
        self.logger = get_logger(self.__class__.__name__)
        self.min_interval_seconds = min_interval_seconds
        self.max_calls_per_hour = max_calls_per_hour
        self.max_attempts_per_ticker = max_attempts_per_ticker
        self.max_wait_seconds = max_wait_seconds

        self._clock = clock or time.monotonic
        self._sleep = sleep or time.sleep
        self._lock = threading.Lock()

        self._last_call: float | None = None
        self._calls: deque[float] = deque()
        self._ticker_attempts: dict[str, deque[float]] = {}

    def check(self, ticker: str | None = None) -> RateLimitDecision:
        """현재 호출 가능 여부 확인 (기록하지 않음)"""
        with self._lock:
            return self._check(self._clock(), ticker)

    def record(self, ticker: str | None = None) -> None:
        """호출 기록"""
        with self._lock:
            self._record(self._clock(), ticker)

    def acquire(self, ticker: str | None = None, source: str | None = None) -> None:
        """
        호출 권한 획득

        대기 시간이 max_wait_seconds 이하면 대기 후 기록

        Raises:
            RateLimitError: 제한 초과 (대기로 해소 불가)
        """
        while True:
            with self._lock:
                now = self._clock()
                decision = self._check(now, ticker)
                if decision.allowed:
                    self._record(now, ticker)
                    return

            wait = decision.wait_seconds
            if wait is None or wait > self.max_wait_seconds:
                raise RateLimitError(
                    decision.reason,
                    retry_after=wait,
                    source=source,
                    ticker=ticker,
                )

            self.logger.debug(f"[{source}] Rate limit 대기 {wait:.2f}초: {decision.reason}")
            self._sleep(wait)

    def reset(self) -> None:
        """상태 초기화"""
        with self._lock:
            self._last_call = None
            self._calls.clear()
            self._ticker_attempts.clear()

    def get_stats(self) -> dict[str, float | int | None]:
        """현재 통계"""
        with self._lock:
            now = self._clock()
            self._prune(now)
            return {
                "calls_last_hour": len(self._calls),
                "seconds_since_last_call": (
                    now - self._last_call if self._last_call is not None else None
                ),
                "tickers_tracked": len(self._ticker_attempts),
            }

    def _check(self, now: float, ticker: str | None) -> RateLimitDecision:
        if self._last_call is not None:
            elapsed = now - self._last_call
            if elapsed < self.min_interval_seconds:
                return RateLimitDecision(
                    allowed=False,
                    wait_seconds=self.min_interval_seconds - elapsed,
                    reason=f"최소 호출 간격 {self.min_interval_seconds}초",
                )

        self._prune(now)
        if len(self._calls) >= self.max_calls_per_hour:
            return RateLimitDecision(
                allowed=False,
                wait_seconds=max(0.0, WINDOW_SECONDS - (now - self._calls[0])),
                reason=f"시간당 호출 한도 도달: {self.max_calls_per_hour}회",
            )

        if ticker:
            attempts = self._ticker_attempts.get(ticker)
            if attempts and len(attempts) >= self.max_attempts_per_ticker:
                return RateLimitDecision(
                    allowed=False,
                    wait_seconds=max(0.0, WINDOW_SECONDS - (now - attempts[0])),
                    reason=f"{ticker} 시도 횟수 초과: 최근 1시간 {len(attempts)}회",
                )

        return RateLimitDecision(allowed=True)

    def _record(self, now: float, ticker: str | None) -> None:
        self._last_call = now
        self._calls.append(now)
        if ticker:
            self._ticker_attempts.setdefault(ticker, deque()).append(now)

    def _prune(self, now: float) -> None:
        """1시간 이전 기록 제거"""
        cutoff = now - WINDOW_SECONDS
        while self._calls and self._calls[0] <= cutoff:
            self._calls.popleft()

        for ticker in list(self._ticker_attempts):
            attempts = self._ticker_attempts[ticker]
            while attempts and attempts[0] <= cutoff:
                attempts.popleft()
            if not attempts:
                del self._ticker_attempts[ticker]
