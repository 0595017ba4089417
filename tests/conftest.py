"""
공통 테스트 픽스처
"""
import threading
from datetime import datetime, timedelta, timezone

import pytest

from stock_screener.core.exceptions import MalformedResponseError, ProviderTimeoutError
from stock_screener.core.interfaces import DataSource, RatioProvider, StockData


@pytest.fixture(autouse=True)
def reset_singletons():
    """각 테스트 전후 Config/Logger 리셋 (파일 로그 없음)"""
    from stock_screener.core.config import Config
    from stock_screener.core.logger import LoggerService

    Config.reset()
    LoggerService.reset()
    LoggerService.configure(level="DEBUG", file_enabled=False)
    yield
    Config.reset()
    LoggerService.reset()


class FakeClock:
    """수동으로 진행하는 시계"""

    def __init__(self, start: datetime | None = None):
        self.current = start or datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class FakeProvider(RatioProvider):
    """
    테스트용 제공자

    mode:
        "ok": data 반환
        "fail": error 발생
        "hang": release 이벤트까지 대기
    """

    def __init__(
        self,
        source: DataSource,
        mode: str = "ok",
        ratios: dict | None = None,
        price: float = 100.0,
        ttl: int = 300,
        error: Exception | None = None,
    ):
        self.source = source
        self.mode = mode
        self.ratios = ratios if ratios is not None else {"PE": 12.0, "PB": 1.5}
        self.price = price
        self.ttl = ttl
        self.error = error
        self.calls: list[str] = []
        self.release = threading.Event()
        self._lock = threading.Lock()

    def fetch_ratios(self, ticker: str) -> StockData:
        with self._lock:
            self.calls.append(ticker)

        if self.mode == "fail":
            raise self.error or MalformedResponseError(
                "잘못된 응답", source=self.source.value, ticker=ticker
            )
        if self.mode == "hang":
            self.release.wait(timeout=5)
            raise ProviderTimeoutError("대기 해제", source=self.source.value, ticker=ticker)

        return StockData(
            ticker=ticker,
            source=self.source,
            name=f"{ticker} Corp",
            price=self.price,
            currency="EUR",
            ratios=dict(self.ratios),
        )

    def get_source(self) -> DataSource:
        return self.source

    def get_cache_ttl(self) -> int:
        return self.ttl


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_provider():
    """FakeProvider 팩토리 (hang 제공자는 테스트 종료 시 해제)"""
    created: list[FakeProvider] = []

    def factory(source: DataSource, mode: str = "ok", **kwargs) -> FakeProvider:
        provider = FakeProvider(source, mode, **kwargs)
        created.append(provider)
        return provider

    yield factory

    for provider in created:
        provider.release.set()


@pytest.fixture
def stock_data() -> StockData:
    return StockData(
        ticker="CAP.PA",
        source=DataSource.YAHOO_QUERY,
        name="Capgemini SE",
        price=180.5,
        currency="EUR",
        ratios={"PE": 15.2, "PB": 2.1, "DividendYield": 2.4, "ROE": 14.0},
    )
