"""
Resolver Layer - 캐시 + 제공자 폴백 체인

티커 → 비율 데이터 (단일/일괄)
"""
from stock_screener.resolver.stock_resolver import (
    BatchItem,
    ResolutionResult,
    StockResolver,
    init_resolver_from_config,
    normalize_ticker,
    normalize_tickers,
)

__all__ = [
    "StockResolver",
    "ResolutionResult",
    "BatchItem",
    "normalize_ticker",
    "normalize_tickers",
    "init_resolver_from_config",
]
