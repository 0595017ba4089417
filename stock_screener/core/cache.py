"""
캐시 서비스

티커별 비율 데이터 스냅샷 저장소 (TTL + 오류 텔레메트리)
- MemoryCacheBackend: 인메모리 (스레드 안전)
- DatabaseCacheBackend: SQLAlchemy (stock_cache 테이블)
"""
import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Callable

from sqlalchemy import delete, select, update

from stock_screener.core.database import DatabaseManager
from stock_screener.core.exceptions import CacheError
from stock_screener.core.interfaces import CacheEntry, DataSource, StockData, utc_now
from stock_screener.core.logger import get_logger
from stock_screener.core.models import StockCacheModel


class CacheBackend(ABC):
    """캐시 백엔드 인터페이스 (만료 판단은 CacheStore 담당)"""

    @abstractmethod
    def load(self, ticker: str) -> CacheEntry | None:
        """항목 조회 (만료 여부 무관)"""
        pass

    @abstractmethod
    def save(self, entry: CacheEntry) -> None:
        """항목 저장 (기존 항목 덮어씀)"""
        pass

    @abstractmethod
    def increment_error(self, ticker: str) -> int | None:
        """오류 횟수 증가, 항목이 없으면 None"""
        pass

    @abstractmethod
    def delete(self, ticker: str) -> bool:
        """항목 삭제"""
        pass

    @abstractmethod
    def clear(self) -> None:
        """전체 삭제"""
        pass


class MemoryCacheBackend(CacheBackend):
    """인메모리 캐시 백엔드"""

    def __init__(self):
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def load(self, ticker: str) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(ticker)
            return replace(entry) if entry else None

    def save(self, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[entry.ticker] = replace(entry)

    def increment_error(self, ticker: str) -> int | None:
        with self._lock:
            entry = self._entries.get(ticker)
            if entry is None:
                return None
            updated = replace(entry, error_count=entry.error_count + 1)
            self._entries[ticker] = updated
            return updated.error_count

    def delete(self, ticker: str) -> bool:
        with self._lock:
            return self._entries.pop(ticker, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _to_db_time(value: datetime) -> datetime:
    """aware → naive UTC (DB 저장용)"""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _from_db_time(value: datetime) -> datetime:
    """naive UTC → aware"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DatabaseCacheBackend(CacheBackend):
    """
    SQLAlchemy 캐시 백엔드

    사용법:
        db = DatabaseManager("sqlite:///data/screener.db")
        db.create_all_tables()
        store = CacheStore(backend=DatabaseCacheBackend(db))
    """

    def __init__(self, db: DatabaseManager):
        self.db = db

    def load(self, ticker: str) -> CacheEntry | None:
        with self.db.session() as session:
            row = session.get(StockCacheModel, ticker)
            if row is None:
                return None
            return self._to_entry(row)

    def save(self, entry: CacheEntry) -> None:
        with self.db.session() as session:
            session.merge(
                StockCacheModel(
                    ticker=entry.ticker,
                    data=entry.data.to_dict(),
                    source=entry.source.value,
                    expires_at=_to_db_time(entry.expires_at),
                    updated_at=_to_db_time(entry.updated_at),
                    fetch_duration_ms=entry.fetch_duration_ms,
                    error_count=entry.error_count,
                )
            )

    def increment_error(self, ticker: str) -> int | None:
        with self.db.session() as session:
            result = session.execute(
                update(StockCacheModel)
                .where(StockCacheModel.ticker == ticker)
                .values(error_count=StockCacheModel.error_count + 1)
            )
            if result.rowcount == 0:
                return None
            return session.execute(
                select(StockCacheModel.error_count).where(StockCacheModel.ticker == ticker)
            ).scalar_one()

    def delete(self, ticker: str) -> bool:
        with self.db.session() as session:
            result = session.execute(
                delete(StockCacheModel).where(StockCacheModel.ticker == ticker)
            )
            return result.rowcount > 0

    def clear(self) -> None:
        with self.db.session() as session:
            session.execute(delete(StockCacheModel))

    @staticmethod
    def _to_entry(row: StockCacheModel) -> CacheEntry:
        return CacheEntry(
            ticker=row.ticker,
            data=StockData.from_dict(row.data),
            source=DataSource(row.source),
            expires_at=_from_db_time(row.expires_at),
            updated_at=_from_db_time(row.updated_at),
            fetch_duration_ms=row.fetch_duration_ms,
            error_count=row.error_count or 0,
        )


class CacheStore:
    """
    종목 캐시 저장소

    만료(expires_at <= now)된 항목도 삭제하지 않음 (폴백용으로 조회 가능)

    사용법:
        store = CacheStore()

        store.put("CAP.PA", stock_data, DataSource.YAHOO_QUERY, ttl_seconds=300)

        entry = store.get("CAP.PA")                    # 유효한 항목만
        stale = store.get("CAP.PA", allow_stale=True)  # 만료 항목 포함

        store.record_error("CAP.PA")
    """

    def __init__(
        self,
        backend: CacheBackend | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.logger = get_logger(self.__class__.__name__)
        self._backend = backend if backend is not None else MemoryCacheBackend()
        self._clock = clock or utc_now

    @property
    def backend(self) -> CacheBackend:
        return self._backend

    def now(self) -> datetime:
        """현재 시각 (주입된 clock 기준)"""
        return self._clock()

    def is_fresh(self, entry: CacheEntry) -> bool:
        """유효 여부 (expires_at > now)"""
        return entry.is_fresh(self.now())

    def get(self, ticker: str, allow_stale: bool = False) -> CacheEntry | None:
        """
        캐시 조회

        Args:
            ticker: 티커
            allow_stale: True면 만료된 항목도 반환

        Returns:
            CacheEntry 또는 None
        """
        entry = self._backend.load(self._key(ticker))
        if entry is None:
            return None

        if not allow_stale and not self.is_fresh(entry):
            self.logger.debug(f"[{entry.ticker}] 캐시 만료 ({entry.expires_at.isoformat()})")
            return None

        return entry

    def put(
        self,
        ticker: str,
        data: StockData,
        source: DataSource,
        ttl_seconds: int,
        fetch_duration_ms: int | None = None,
    ) -> CacheEntry:
        """
        캐시 저장 (기존 항목 덮어쓰기, error_count 초기화)

        Args:
            ticker: 티커
            data: 종목 데이터
            source: 데이터 출처
            ttl_seconds: TTL (초)
            fetch_duration_ms: 조회 소요 시간

        Returns:
            저장된 CacheEntry
        """
        if ttl_seconds < 0:
            raise CacheError(f"TTL은 음수일 수 없습니다: {ttl_seconds}", {"ticker": ticker})

        now = self.now()
        entry = CacheEntry(
            ticker=self._key(ticker),
            data=data,
            source=source,
            expires_at=now + timedelta(seconds=ttl_seconds),
            updated_at=now,
            fetch_duration_ms=fetch_duration_ms,
            error_count=0,
        )
        self._backend.save(entry)

        self.logger.debug(f"[{entry.ticker}] 캐시 저장: {source.value}, TTL {ttl_seconds}초")
        return entry

    def record_error(self, ticker: str) -> None:
        """조회 실패 기록 (항목이 없으면 무시)"""
        count = self._backend.increment_error(self._key(ticker))
        if count is not None:
            self.logger.debug(f"[{self._key(ticker)}] 오류 횟수: {count}")

    def invalidate(self, ticker: str) -> None:
        """특정 티커 캐시 삭제"""
        if self._backend.delete(self._key(ticker)):
            self.logger.info(f"[{self._key(ticker)}] 캐시 무효화")

    def clear(self) -> None:
        """전체 캐시 삭제"""
        self._backend.clear()
        self.logger.info("전체 캐시 삭제")

    @staticmethod
    def _key(ticker: str) -> str:
        return ticker.strip().upper()


def init_cache_from_config() -> CacheStore:
    """설정 파일 기반 캐시 초기화"""
    from stock_screener.core.config import get_config
    from stock_screener.core.database import init_database_from_config

    config = get_config()
    backend_name = config.get("cache.backend", "memory")

    # backend 값은 설정 로드 시 검증됨 (memory | database)
    if backend_name == "database":
        backend: CacheBackend = DatabaseCacheBackend(init_database_from_config())
    else:
        backend = MemoryCacheBackend()

    return CacheStore(backend=backend)
