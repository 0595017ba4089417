"""
Ingest Layer - 재무비율 수집

우선순위:
1. Yahoo Finance Query API (JSON)
2. Financial Modeling Prep (API 키 필요)
3. Yahoo Finance HTML 스크래핑
"""
from stock_screener.ingest.base import BaseRatioProvider, infer_currency
from stock_screener.ingest.derived import calculate_derived_ratios
from stock_screener.ingest.fmp import FmpProvider
from stock_screener.ingest.rate_limiter import RateLimitDecision, RateLimiter
from stock_screener.ingest.ratio_ranges import (
    RATIO_RANGES,
    RatioRange,
    get_range_message,
    is_within_range,
    sanitize_ratios,
)
from stock_screener.ingest.registry import (
    PROVIDER_CLASSES,
    build_providers_from_config,
    create_provider,
)
from stock_screener.ingest.ticker_resolver import (
    TICKER_DATABASE,
    TickerEntry,
    TickerResolution,
    resolve_ticker_from_name,
)
from stock_screener.ingest.yahoo_query import YahooQueryProvider, validate_price
from stock_screener.ingest.yahoo_scraper import YahooScraperProvider, parse_ratio_value

__all__ = [
    # Providers
    "BaseRatioProvider",
    "YahooQueryProvider",
    "FmpProvider",
    "YahooScraperProvider",
    "PROVIDER_CLASSES",
    "build_providers_from_config",
    "create_provider",
    # Validation
    "RATIO_RANGES",
    "RatioRange",
    "is_within_range",
    "get_range_message",
    "sanitize_ratios",
    "validate_price",
    "infer_currency",
    "parse_ratio_value",
    # Derived
    "calculate_derived_ratios",
    # Rate limit
    "RateLimiter",
    "RateLimitDecision",
    # Ticker resolution
    "TICKER_DATABASE",
    "TickerEntry",
    "TickerResolution",
    "resolve_ticker_from_name",
]
