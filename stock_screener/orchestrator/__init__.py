"""
Orchestrator: 외부 호출 진입점

조회 → 유형 분류 → 점수화 조율
"""
from stock_screener.orchestrator.screener_service import ScreenerService, StockAnalysis

__all__ = [
    "ScreenerService",
    "StockAnalysis",
]
