"""
Yahoo Finance Query API 제공자 (1순위)

HTML 스크래핑 대신 JSON quote 엔드포인트 사용
Endpoint: https://query1.finance.yahoo.com/v7/finance/quote
"""
from stock_screener.core.exceptions import MalformedResponseError, TickerNotFoundError
from stock_screener.core.interfaces import DataSource, StockData
from stock_screener.core.logger import get_logger
from stock_screener.ingest.base import BaseRatioProvider, infer_currency, to_float, to_percent

logger = get_logger(__name__)

QUERY_BASE_URL = "https://query1.finance.yahoo.com"

QUOTE_FIELDS = (
    "symbol",
    "longName",
    "shortName",
    "regularMarketPrice",
    "currency",
    "marketCap",
    "trailingPE",
    "forwardPE",
    "priceToBook",
    "dividendYield",
    "beta",
    "fiftyTwoWeekHigh",
    "fiftyTwoWeekLow",
    "trailingAnnualDividendYield",
    "epsTrailingTwelveMonths",
    "bookValue",
    "priceToSalesTrailing12Months",
)

MAX_PRICE = 1_000_000
SUSPICIOUS_PRICE = 50_000
MIN_PRICE = 0.001
HIGH_PRICE_EXCEPTIONS = {"BRK.A", "BRK-A", "BRKA"}


def validate_price(price: float | None, ticker: str) -> bool:
    """
    주가 유효성 검증

    - 유한한 양수
    - 1,000,000 이하
    - 50,000 초과는 BRK-A 계열만 허용
    - 0.001 이상
    """
    value = to_float(price)
    if value is None or value <= 0:
        return False

    if value > MAX_PRICE:
        logger.warning(f"[{ticker}] 가격 {value} 상한 초과")
        return False

    if value > SUSPICIOUS_PRICE and ticker.upper() not in HIGH_PRICE_EXCEPTIONS:
        logger.warning(f"[{ticker}] 가격 {value} 비정상적으로 높음 (>{SUSPICIOUS_PRICE})")
        return False

    if value < MIN_PRICE:
        logger.warning(f"[{ticker}] 가격 {value} 비정상적으로 낮음 (상장폐지 가능성)")
        return False

    return True


class YahooQueryProvider(BaseRatioProvider):
    """
    Yahoo Finance Query API 제공자

    사용법:
        provider = YahooQueryProvider()
        data = provider.fetch_ratios("CAP.PA")
        print(data.price, data.ratios["PE"])
    """

    SOURCE = DataSource.YAHOO_QUERY

    def _fetch(self, ticker: str) -> StockData:
        payload = self._get_json(
            f"{QUERY_BASE_URL}/v7/finance/quote",
            ticker,
            params={"symbols": ticker, "fields": ",".join(QUOTE_FIELDS)},
        )

        results = ((payload or {}).get("quoteResponse") or {}).get("result") or []
        if not results:
            raise TickerNotFoundError(
                f"조회 결과 없음: {ticker}",
                source=self.get_source_name(),
                ticker=ticker,
            )

        quote = results[0]
        price = quote.get("regularMarketPrice")
        if price is None:
            raise MalformedResponseError(
                f"가격 정보 없음: {ticker}",
                source=self.get_source_name(),
                ticker=ticker,
            )
        if not validate_price(price, ticker):
            raise MalformedResponseError(
                f"가격 검증 실패: {ticker} = {price}",
                source=self.get_source_name(),
                ticker=ticker,
                details={"price": price},
            )

        return StockData(
            ticker=ticker,
            source=self.SOURCE,
            name=quote.get("longName") or quote.get("shortName") or ticker,
            price=float(price),
            currency=quote.get("currency") or infer_currency(ticker),
            ratios=self._parse_ratios(quote),
        )

    @staticmethod
    def _parse_ratios(quote: dict) -> dict[str, float | None]:
        """quote 필드 → 비율 (배당수익률은 %)"""
        # dividendYield는 이미 %, trailingAnnualDividendYield는 소수
        dividend_yield = to_float(quote.get("dividendYield"))
        if dividend_yield is None:
            dividend_yield = to_percent(quote.get("trailingAnnualDividendYield"))

        pe = to_float(quote.get("trailingPE"))
        if pe is None:
            pe = to_float(quote.get("forwardPE"))

        return {
            "MarketCap": to_float(quote.get("marketCap")),
            "PE": pe,
            "PB": to_float(quote.get("priceToBook")),
            "PS": to_float(quote.get("priceToSalesTrailing12Months")),
            "DividendYield": dividend_yield,
            "Beta": to_float(quote.get("beta")),
        }
