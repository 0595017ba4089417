"""
CacheStore 단위 테스트 (메모리 + SQLite 백엔드)
"""
from datetime import timedelta

import pytest

from stock_screener.core.interfaces import DataSource


@pytest.fixture(params=["memory", "database"])
def backend(request, tmp_path):
    """백엔드별로 동일한 시나리오 실행"""
    from stock_screener.core.cache import DatabaseCacheBackend, MemoryCacheBackend
    from stock_screener.core.database import DatabaseManager

    if request.param == "memory":
        yield MemoryCacheBackend()
        return

    db = DatabaseManager(f"sqlite:///{tmp_path / 'cache.db'}")
    db.create_all_tables()
    yield DatabaseCacheBackend(db)
    db.close()


@pytest.fixture
def store(backend, clock):
    from stock_screener.core.cache import CacheStore

    return CacheStore(backend=backend, clock=clock)


class TestCacheStore:
    """CacheStore 테스트"""

    def test_put_get(self, store, stock_data):
        """저장 후 조회"""
        entry = store.put("CAP.PA", stock_data, DataSource.YAHOO_QUERY, ttl_seconds=300)

        loaded = store.get("CAP.PA")
        assert loaded is not None
        assert loaded.ticker == "CAP.PA"
        assert loaded.source == DataSource.YAHOO_QUERY
        assert loaded.data.ratios == stock_data.ratios
        assert loaded.data.price == 180.5
        assert loaded.error_count == 0
        assert loaded.expires_at == entry.expires_at

    def test_get_missing(self, store):
        """없는 티커"""
        assert store.get("NOPE") is None

    def test_ticker_normalized(self, store, stock_data):
        """티커 대소문자/공백 무관"""
        store.put(" cap.pa ", stock_data, DataSource.FMP, ttl_seconds=300)
        assert store.get("CAP.PA") is not None

    def test_expiry_boundary(self, store, stock_data, clock):
        """expires_at == now 이면 만료, now + 1초면 유효"""
        store.put("CAP.PA", stock_data, DataSource.YAHOO_QUERY, ttl_seconds=300)

        clock.advance(299)
        assert store.get("CAP.PA") is not None

        clock.advance(1)
        assert store.get("CAP.PA") is None

    def test_is_fresh_boundary(self, store, stock_data, clock):
        """is_fresh: 엄격한 비교"""
        entry = store.put("CAP.PA", stock_data, DataSource.YAHOO_QUERY, ttl_seconds=1)
        assert store.is_fresh(entry) is True

        clock.advance(1)
        assert entry.expires_at == clock()
        assert store.is_fresh(entry) is False

    def test_zero_ttl_immediately_stale(self, store, stock_data):
        """TTL 0은 즉시 만료"""
        store.put("CAP.PA", stock_data, DataSource.MANUAL, ttl_seconds=0)
        assert store.get("CAP.PA") is None
        assert store.get("CAP.PA", allow_stale=True) is not None

    def test_negative_ttl_rejected(self, store, stock_data):
        """음수 TTL 거부"""
        from stock_screener.core.exceptions import CacheError

        with pytest.raises(CacheError):
            store.put("CAP.PA", stock_data, DataSource.YAHOO_QUERY, ttl_seconds=-1)

    def test_stale_entry_kept(self, store, stock_data, clock):
        """만료 항목은 삭제되지 않고 allow_stale로 조회 가능"""
        store.put("CAP.PA", stock_data, DataSource.YAHOO_QUERY, ttl_seconds=60)
        clock.advance(3600)

        assert store.get("CAP.PA") is None
        stale = store.get("CAP.PA", allow_stale=True)
        assert stale is not None
        assert stale.data.ratios["PE"] == 15.2

    def test_put_overwrites_and_resets_errors(self, store, stock_data, clock):
        """put은 기존 항목 덮어쓰기 + error_count 초기화"""
        store.put("CAP.PA", stock_data, DataSource.YAHOO_QUERY, ttl_seconds=60)
        store.record_error("CAP.PA")
        store.record_error("CAP.PA")
        assert store.get("CAP.PA").error_count == 2

        clock.advance(10)
        stock_data.ratios = {"PE": 9.0}
        store.put("CAP.PA", stock_data, DataSource.FMP, ttl_seconds=900, fetch_duration_ms=120)

        entry = store.get("CAP.PA")
        assert entry.error_count == 0
        assert entry.source == DataSource.FMP
        assert entry.data.ratios == {"PE": 9.0}
        assert entry.fetch_duration_ms == 120
        assert entry.updated_at == clock()
        assert entry.expires_at == clock() + timedelta(seconds=900)

    def test_record_error_without_entry(self, store):
        """항목이 없으면 record_error는 아무 일도 하지 않음"""
        store.record_error("NOPE")
        assert store.get("NOPE", allow_stale=True) is None

    def test_invalidate(self, store, stock_data):
        """특정 티커 삭제"""
        store.put("CAP.PA", stock_data, DataSource.YAHOO_QUERY, ttl_seconds=300)
        store.put("AAPL", stock_data, DataSource.YAHOO_QUERY, ttl_seconds=300)

        store.invalidate("cap.pa")

        assert store.get("CAP.PA", allow_stale=True) is None
        assert store.get("AAPL") is not None

    def test_clear(self, store, stock_data):
        """전체 삭제"""
        store.put("CAP.PA", stock_data, DataSource.YAHOO_QUERY, ttl_seconds=300)
        store.put("AAPL", stock_data, DataSource.YAHOO_QUERY, ttl_seconds=300)

        store.clear()

        assert store.get("CAP.PA", allow_stale=True) is None
        assert store.get("AAPL", allow_stale=True) is None

    def test_returned_entry_isolated(self, store, stock_data):
        """조회 결과 수정이 저장 항목에 영향 없음"""
        store.put("CAP.PA", stock_data, DataSource.YAHOO_QUERY, ttl_seconds=300)

        entry = store.get("CAP.PA")
        entry.error_count = 99

        assert store.get("CAP.PA").error_count == 0


class TestMemoryCacheBackend:
    """MemoryCacheBackend 테스트"""

    def test_len(self, stock_data, clock):
        from stock_screener.core.cache import CacheStore, MemoryCacheBackend

        backend = MemoryCacheBackend()
        store = CacheStore(backend=backend, clock=clock)
        store.put("A", stock_data, DataSource.YAHOO_QUERY, ttl_seconds=10)
        store.put("B", stock_data, DataSource.YAHOO_QUERY, ttl_seconds=10)

        assert len(backend) == 2
        assert store.backend is backend

    def test_empty_backend_shared_between_stores(self, stock_data, clock):
        """비어 있는 백엔드도 그대로 사용 (저장소 간 공유)"""
        from stock_screener.core.cache import CacheStore, MemoryCacheBackend

        backend = MemoryCacheBackend()
        writer = CacheStore(backend=backend, clock=clock)
        reader = CacheStore(backend=backend, clock=clock)

        assert writer.backend is backend
        assert reader.backend is backend

        writer.put("AAPL", stock_data, DataSource.FMP, ttl_seconds=60)

        assert reader.get("AAPL").source == DataSource.FMP


class TestInitCacheFromConfig:
    """설정 기반 캐시 생성"""

    def test_memory_backend_default(self):
        from stock_screener.core.cache import MemoryCacheBackend, init_cache_from_config

        store = init_cache_from_config()
        assert isinstance(store.backend, MemoryCacheBackend)

    def test_database_backend(self, monkeypatch, tmp_path):
        from stock_screener.core.cache import DatabaseCacheBackend, init_cache_from_config

        monkeypatch.setenv("SCREENER_CACHE__BACKEND", "database")
        monkeypatch.setenv("SCREENER_DATABASE__CONNECTION_STRING", f"sqlite:///{tmp_path / 'c.db'}")

        store = init_cache_from_config()
        assert isinstance(store.backend, DatabaseCacheBackend)
        assert store.get("AAPL") is None

    def test_unknown_backend(self, monkeypatch):
        """지원하지 않는 백엔드는 설정 로드 시 거부"""
        from stock_screener.core.cache import init_cache_from_config
        from stock_screener.core.exceptions import ConfigValidationError

        monkeypatch.setenv("SCREENER_CACHE__BACKEND", "redis")

        with pytest.raises(ConfigValidationError):
            init_cache_from_config()
