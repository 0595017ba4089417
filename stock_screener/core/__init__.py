"""
Core 모듈 - 공통 인프라

- config: 설정 관리
- logger: 로깅 서비스
- database: DB 관리
- cache: 종목 캐시 저장소
- exceptions: 커스텀 예외
- interfaces: 핵심 인터페이스
- models: ORM 모델
"""
from stock_screener.core.config import Config, get_config
from stock_screener.core.logger import get_logger, LoggerService, setup_logger_from_config
from stock_screener.core.database import DatabaseManager, init_database_from_config, Base
from stock_screener.core.cache import (
    CacheBackend,
    CacheStore,
    DatabaseCacheBackend,
    MemoryCacheBackend,
    init_cache_from_config,
)
from stock_screener.core.exceptions import (
    BaseError,
    ConfigError,
    ConfigNotFoundError,
    ConfigValidationError,
    IngestError,
    ProviderError,
    ProviderTimeoutError,
    RateLimitError,
    MalformedResponseError,
    TickerNotFoundError,
    ProviderNotConfiguredError,
    ResolutionError,
    DataValidationError,
    InvalidTickerError,
    BatchSizeExceededError,
    ScoringError,
    DatabaseError,
    CacheError,
)
from stock_screener.core.interfaces import (
    DEFAULT_CACHE_TTL_SECONDS,
    ProfileType,
    DataSource,
    Verdict,
    StockData,
    CacheEntry,
    RatioProvider,
    utc_now,
)

__all__ = [
    # Config
    "Config",
    "get_config",
    # Logger
    "get_logger",
    "LoggerService",
    "setup_logger_from_config",
    # Database
    "DatabaseManager",
    "init_database_from_config",
    "Base",
    # Cache
    "CacheBackend",
    "CacheStore",
    "DatabaseCacheBackend",
    "MemoryCacheBackend",
    "init_cache_from_config",
    # Exceptions
    "BaseError",
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigValidationError",
    "IngestError",
    "ProviderError",
    "ProviderTimeoutError",
    "RateLimitError",
    "MalformedResponseError",
    "TickerNotFoundError",
    "ProviderNotConfiguredError",
    "ResolutionError",
    "DataValidationError",
    "InvalidTickerError",
    "BatchSizeExceededError",
    "ScoringError",
    "DatabaseError",
    "CacheError",
    # Interfaces
    "DEFAULT_CACHE_TTL_SECONDS",
    "ProfileType",
    "DataSource",
    "Verdict",
    "StockData",
    "CacheEntry",
    "RatioProvider",
    "utc_now",
]
