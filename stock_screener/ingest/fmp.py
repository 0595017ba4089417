"""
Financial Modeling Prep 제공자 (2순위)

무료 한도: 250 calls/day
- /profile/{ticker}: 가격, 종목명, 시가총액
- /ratios-ttm/{ticker}: TTM 재무비율 (소수 → %)
- /financial-growth/{ticker}: 최근 연간 성장률
"""
import os
from typing import Any

from stock_screener.core.config import get_config
from stock_screener.core.exceptions import (
    MalformedResponseError,
    ProviderNotConfiguredError,
    TickerNotFoundError,
)
from stock_screener.core.interfaces import DataSource, StockData
from stock_screener.ingest.base import BaseRatioProvider, infer_currency, to_float, to_percent

FMP_BASE_URL = "https://financialmodelingprep.com/api/v3"

# ratios-ttm 필드 → (비율명, % 변환 여부)
TTM_FIELDS: dict[str, tuple[str, bool]] = {
    "peRatioTTM": ("PE", False),
    "priceToBookRatioTTM": ("PB", False),
    "priceToSalesRatioTTM": ("PS", False),
    "pegRatioTTM": ("PEG", False),
    "priceCashFlowRatioTTM": ("PCF", False),
    "priceToFreeCashFlowsRatioTTM": ("PFCF", False),
    "enterpriseValueMultipleTTM": ("EV_EBITDA", False),
    "dividendYieldTTM": ("DividendYield", True),
    "payoutRatioTTM": ("PayoutRatio", True),
    "returnOnEquityTTM": ("ROE", True),
    "returnOnAssetsTTM": ("ROA", True),
    "grossProfitMarginTTM": ("GrossMargin", True),
    "operatingProfitMarginTTM": ("OperatingMargin", True),
    "netProfitMarginTTM": ("NetMargin", True),
    "debtEquityRatioTTM": ("DebtToEquity", False),
    "currentRatioTTM": ("CurrentRatio", False),
    "quickRatioTTM": ("QuickRatio", False),
    "cashRatioTTM": ("CashRatio", False),
    "interestCoverageTTM": ("InterestCoverage", False),
}

GROWTH_FIELDS: dict[str, str] = {
    "revenueGrowth": "RevenueGrowth",
    "epsgrowth": "EPSGrowth",
    "bookValueperShareGrowth": "BookValueGrowth",
}


class FmpProvider(BaseRatioProvider):
    """
    FMP 제공자

    사용법:
        provider = FmpProvider(api_key="...")
        data = provider.fetch_ratios("AAPL")
    """

    SOURCE = DataSource.FMP

    def __init__(self, api_key: str | None = None, **kwargs):
        super().__init__(**kwargs)

        # API 키: 인자 > 환경변수 > 설정파일
        self.api_key = (
            api_key
            or os.getenv("FMP_API_KEY")
            or get_config().provider_settings("fmp").get("api_key", "")
        )
        if not self.api_key or str(self.api_key).startswith("${"):
            self.api_key = ""
            self.logger.warning("FMP API 키가 설정되지 않았습니다")

    def _fetch(self, ticker: str) -> StockData:
        if not self.api_key:
            raise ProviderNotConfiguredError(
                "FMP API 키 없음",
                source=self.get_source_name(),
                ticker=ticker,
            )

        profile = self._first(self._call(f"profile/{ticker}", ticker))
        if profile is None:
            raise TickerNotFoundError(
                f"조회 결과 없음: {ticker}",
                source=self.get_source_name(),
                ticker=ticker,
            )

        ratios: dict[str, float | None] = {
            "MarketCap": to_float(profile.get("mktCap")),
            "Beta": to_float(profile.get("beta")),
        }

        ttm = self._first(self._call(f"ratios-ttm/{ticker}", ticker)) or {}
        for field, (name, is_percent) in TTM_FIELDS.items():
            ratios[name] = to_percent(ttm.get(field)) if is_percent else to_float(ttm.get(field))

        # 구 버전 응답의 오타 필드
        if ratios["DividendYield"] is None:
            ratios["DividendYield"] = to_percent(ttm.get("dividendYielTTM"))

        growth = self._first(self._call(f"financial-growth/{ticker}", ticker, limit=1)) or {}
        for field, name in GROWTH_FIELDS.items():
            ratios[name] = to_percent(growth.get(field))

        return StockData(
            ticker=ticker,
            source=self.SOURCE,
            name=profile.get("companyName") or ticker,
            price=to_float(profile.get("price")),
            currency=profile.get("currency") or infer_currency(ticker),
            ratios=ratios,
        )

    def _call(self, endpoint: str, ticker: str, **params: Any) -> Any:
        """API 호출 (오류 응답 검사)"""
        payload = self._get_json(
            f"{FMP_BASE_URL}/{endpoint}",
            ticker,
            params={**params, "apikey": self.api_key},
        )
        if isinstance(payload, dict) and "Error Message" in payload:
            raise MalformedResponseError(
                f"FMP API 오류: {payload['Error Message']}",
                source=self.get_source_name(),
                ticker=ticker,
            )
        return payload

    @staticmethod
    def _first(payload: Any) -> dict | None:
        if isinstance(payload, list) and payload and isinstance(payload[0], dict):
            return payload[0]
        return None
