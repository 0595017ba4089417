"""
재무비율 제공자 테스트 (HTTP 세션 Mock)
"""
from unittest.mock import MagicMock, patch

import pytest
import requests
from bs4 import BeautifulSoup

from stock_screener.core.interfaces import DataSource


def make_response(status=200, payload=None, text="", url="", headers=None):
    """requests.Response Mock"""
    response = MagicMock()
    response.status_code = status
    response.json.return_value = payload
    response.text = text
    response.url = url
    response.headers = headers or {}
    if status >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"HTTP {status}")
    return response


YAHOO_QUOTE = {
    "quoteResponse": {
        "result": [
            {
                "symbol": "CAP.PA",
                "longName": "Capgemini SE",
                "shortName": "CAPGEMINI",
                "regularMarketPrice": 180.5,
                "currency": "EUR",
                "marketCap": 3.1e10,
                "trailingPE": 15.2,
                "priceToBook": 2.1,
                "dividendYield": 2.4,
                "beta": 0.9,
            }
        ],
        "error": None,
    }
}


class TestInferCurrency:
    """통화 추정"""

    @pytest.mark.parametrize(
        "ticker, currency",
        [("CAP.PA", "EUR"), ("BMW.DE", "EUR"), ("HSBA.L", "GBP"), ("RY.TO", "CAD"), ("NESN.SW", "CHF"), ("AAPL", "USD")],
    )
    def test_infer_currency(self, ticker, currency):
        from stock_screener.ingest.base import infer_currency

        assert infer_currency(ticker) == currency


class TestValidatePrice:
    """주가 검증"""

    def test_valid_prices(self):
        from stock_screener.ingest.yahoo_query import validate_price

        assert validate_price(180.5, "CAP.PA") is True
        assert validate_price(620000, "BRK-A") is True

    def test_invalid_prices(self):
        from stock_screener.ingest.yahoo_query import validate_price

        assert validate_price(None, "AAPL") is False
        assert validate_price(0, "AAPL") is False
        assert validate_price(-5, "AAPL") is False
        assert validate_price(float("nan"), "AAPL") is False
        assert validate_price(95000, "AAPL") is False
        assert validate_price(2_000_000, "BRK-A") is False
        assert validate_price(0.0005, "AAPL") is False


class TestYahooQueryProvider:
    """YahooQueryProvider 테스트"""

    def setup_method(self):
        from stock_screener.ingest.yahoo_query import YahooQueryProvider

        self.session = MagicMock()
        self.rate_limiter = MagicMock()
        self.provider = YahooQueryProvider(
            session=self.session,
            rate_limiter=self.rate_limiter,
            retry_count=0,
        )

    def test_config_values(self):
        """설정 파일 값 로드"""
        assert self.provider.get_source() == DataSource.YAHOO_QUERY
        assert self.provider.get_source_name() == "yahoo-query"
        assert self.provider.get_cache_ttl() == 300
        assert self.provider.timeout == 10.0

    def test_fetch_success(self):
        """정상 응답 파싱"""
        self.session.get.return_value = make_response(payload=YAHOO_QUOTE)

        data = self.provider.fetch_ratios("CAP.PA")

        assert data.ticker == "CAP.PA"
        assert data.source == DataSource.YAHOO_QUERY
        assert data.name == "Capgemini SE"
        assert data.price == 180.5
        assert data.currency == "EUR"
        assert data.ratios["PE"] == 15.2
        assert data.ratios["PB"] == 2.1
        assert data.ratios["DividendYield"] == 2.4
        assert data.ratios["MarketCap"] == 3.1e10

        self.rate_limiter.acquire.assert_called_once_with("CAP.PA", source="yahoo-query")
        params = self.session.get.call_args.kwargs["params"]
        assert params["symbols"] == "CAP.PA"

    def test_trailing_dividend_yield_converted(self):
        """trailingAnnualDividendYield는 소수 → %"""
        quote = dict(YAHOO_QUOTE["quoteResponse"]["result"][0])
        del quote["dividendYield"]
        quote["trailingAnnualDividendYield"] = 0.031
        self.session.get.return_value = make_response(payload={"quoteResponse": {"result": [quote]}})

        data = self.provider.fetch_ratios("CAP.PA")

        assert data.ratios["DividendYield"] == pytest.approx(3.1)

    def test_forward_pe_fallback_and_sanitize(self):
        """trailingPE 없으면 forwardPE, 범위 밖 값은 None"""
        quote = dict(YAHOO_QUOTE["quoteResponse"]["result"][0])
        del quote["trailingPE"]
        quote["forwardPE"] = 13.0
        quote["priceToBook"] = 900.0
        self.session.get.return_value = make_response(payload={"quoteResponse": {"result": [quote]}})

        data = self.provider.fetch_ratios("CAP.PA")

        assert data.ratios["PE"] == 13.0
        assert data.ratios["PB"] is None

    def test_empty_result(self):
        """결과 없음 → TickerNotFoundError"""
        from stock_screener.core.exceptions import TickerNotFoundError

        self.session.get.return_value = make_response(payload={"quoteResponse": {"result": []}})

        with pytest.raises(TickerNotFoundError):
            self.provider.fetch_ratios("NOPE")

    def test_suspicious_price(self):
        """비정상 가격 → MalformedResponseError"""
        from stock_screener.core.exceptions import MalformedResponseError

        quote = dict(YAHOO_QUOTE["quoteResponse"]["result"][0], symbol="AAPL", regularMarketPrice=95000)
        self.session.get.return_value = make_response(payload={"quoteResponse": {"result": [quote]}})

        with pytest.raises(MalformedResponseError):
            self.provider.fetch_ratios("AAPL")

    def test_invalid_json(self):
        """JSON 파싱 실패"""
        from stock_screener.core.exceptions import MalformedResponseError

        response = make_response()
        response.json.side_effect = ValueError("Expecting value")
        self.session.get.return_value = response

        with pytest.raises(MalformedResponseError):
            self.provider.fetch_ratios("CAP.PA")

    def test_404(self):
        """404 → TickerNotFoundError (재시도 없음)"""
        from stock_screener.core.exceptions import TickerNotFoundError
        from stock_screener.ingest.yahoo_query import YahooQueryProvider

        provider = YahooQueryProvider(session=self.session, rate_limiter=self.rate_limiter, retry_count=2)
        self.session.get.return_value = make_response(status=404)

        with pytest.raises(TickerNotFoundError) as exc_info:
            provider.fetch_ratios("NOPE")

        assert exc_info.value.source == "yahoo-query"
        assert self.session.get.call_count == 1

    def test_429(self):
        """429 → RateLimitError (Retry-After 반영)"""
        from stock_screener.core.exceptions import RateLimitError

        self.session.get.return_value = make_response(status=429, headers={"Retry-After": "30"})

        with pytest.raises(RateLimitError) as exc_info:
            self.provider.fetch_ratios("CAP.PA")

        assert exc_info.value.retry_after == 30.0

    def test_timeout(self):
        """Timeout → ProviderTimeoutError"""
        from stock_screener.core.exceptions import ProviderTimeoutError

        self.session.get.side_effect = requests.Timeout("read timed out")

        with pytest.raises(ProviderTimeoutError):
            self.provider.fetch_ratios("CAP.PA")

    def test_server_error(self):
        """5xx → ProviderError"""
        from stock_screener.core.exceptions import ProviderError, ProviderTimeoutError

        self.session.get.return_value = make_response(status=503)

        with pytest.raises(ProviderError) as exc_info:
            self.provider.fetch_ratios("CAP.PA")

        assert not isinstance(exc_info.value, ProviderTimeoutError)

    @patch("stock_screener.ingest.base.time.sleep")
    def test_retry_then_success(self, mock_sleep):
        """연결 오류 재시도 후 성공 (지수 백오프)"""
        from stock_screener.ingest.yahoo_query import YahooQueryProvider

        provider = YahooQueryProvider(session=self.session, rate_limiter=self.rate_limiter, retry_count=2)
        self.session.get.side_effect = [
            requests.ConnectionError("reset"),
            requests.ConnectionError("reset"),
            make_response(payload=YAHOO_QUOTE),
        ]

        data = provider.fetch_ratios("CAP.PA")

        assert data.price == 180.5
        assert self.session.get.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1, 2]


FMP_PAYLOADS = {
    "profile/AAPL": [
        {
            "symbol": "AAPL",
            "price": 175.5,
            "companyName": "Apple Inc.",
            "currency": "USD",
            "mktCap": 2.8e12,
            "beta": 1.2,
        }
    ],
    "ratios-ttm/AAPL": [
        {
            "peRatioTTM": 28.5,
            "priceToBookRatioTTM": 45.2,
            "dividendYielTTM": 0.0055,
            "payoutRatioTTM": 0.15,
            "returnOnEquityTTM": 1.47,
            "debtEquityRatioTTM": 1.8,
        }
    ],
    "financial-growth/AAPL": [{"revenueGrowth": 0.08, "epsgrowth": 0.1}],
}


class TestFmpProvider:
    """FmpProvider 테스트"""

    def setup_method(self):
        self.session = MagicMock()
        self.rate_limiter = MagicMock()

    def _provider(self, api_key="demo-key"):
        from stock_screener.ingest.fmp import FmpProvider

        return FmpProvider(
            api_key=api_key,
            session=self.session,
            rate_limiter=self.rate_limiter,
            retry_count=0,
        )

    def _serve(self, payloads):
        def get(url, **kwargs):
            endpoint = url.split("/api/v3/", 1)[1]
            return make_response(payload=payloads.get(endpoint, []))

        self.session.get.side_effect = get

    def test_fetch_success(self):
        """세 엔드포인트 병합 + % 변환 + 파생 PEG"""
        self._serve(FMP_PAYLOADS)

        data = self._provider().fetch_ratios("AAPL")

        assert data.source == DataSource.FMP
        assert data.name == "Apple Inc."
        assert data.price == 175.5
        assert data.currency == "USD"
        assert data.ratios["PE"] == 28.5
        assert data.ratios["PB"] == 45.2
        assert data.ratios["DividendYield"] == pytest.approx(0.55)
        assert data.ratios["PayoutRatio"] == pytest.approx(15.0)
        assert data.ratios["ROE"] == pytest.approx(147.0)
        assert data.ratios["DebtToEquity"] == 1.8
        assert data.ratios["RevenueGrowth"] == pytest.approx(8.0)
        assert data.ratios["EPSGrowth"] == pytest.approx(10.0)
        assert data.ratios["PEG"] == pytest.approx(2.85)

        for call in self.session.get.call_args_list:
            assert call.kwargs["params"]["apikey"] == "demo-key"

    def test_api_key_from_env(self, monkeypatch):
        """환경변수 FMP_API_KEY"""
        monkeypatch.setenv("FMP_API_KEY", "env-key")

        assert self._provider(api_key=None).api_key == "env-key"

    def test_missing_api_key(self, monkeypatch):
        """키 없음 → ProviderNotConfiguredError, 호출 없음"""
        from stock_screener.core.exceptions import ProviderNotConfiguredError

        monkeypatch.delenv("FMP_API_KEY", raising=False)
        provider = self._provider(api_key=None)

        with pytest.raises(ProviderNotConfiguredError):
            provider.fetch_ratios("AAPL")

        self.session.get.assert_not_called()

    def test_error_message_payload(self):
        """FMP 오류 응답"""
        from stock_screener.core.exceptions import MalformedResponseError

        self._serve({"profile/AAPL": {"Error Message": "Invalid API KEY."}})

        with pytest.raises(MalformedResponseError):
            self._provider().fetch_ratios("AAPL")

    def test_empty_profile(self):
        """profile 비어 있음 → TickerNotFoundError"""
        from stock_screener.core.exceptions import TickerNotFoundError

        self._serve({})

        with pytest.raises(TickerNotFoundError):
            self._provider().fetch_ratios("AAPL")


QUOTE_HTML = """
<html>
<head><title>Capgemini SE (CAP.PA) Stock Price, News, Quote</title></head>
<body>
  <section><h1>Capgemini SE (CAP.PA)</h1></section>
  <fin-streamer data-field="regularMarketPrice" data-test="qsp-price">180.50</fin-streamer>
</body>
</html>
"""

STATS_HTML = """
<html><body>
<table>
  <tr><td>Market Cap (intraday)</td><td>2.8T</td></tr>
  <tr><td>Trailing P/E</td><td>15.20</td></tr>
  <tr><td>Forward P/E</td><td>13.10</td></tr>
  <tr><td>Price/Book (mrq)</td><td>2.10</td></tr>
  <tr><td>Beta (5Y Monthly)</td><td>N/A</td></tr>
  <tr><td>Return on Equity (ttm)</td><td>14.30%</td></tr>
  <tr><td>Total Debt/Equity (mrq)</td><td>45.20%</td></tr>
  <tr><td>Forward Annual Dividend Yield 4</td><td>2.45%</td></tr>
  <tr><td>Trailing Annual Dividend Yield 3</td><td>2.30%</td></tr>
  <tr><td>5 Year Average Dividend Yield 4</td><td>1.90</td></tr>
  <tr><td>Payout Ratio 4</td><td>33.50%</td></tr>
</table>
</body></html>
"""

CONSENT_HTML = """
<html><body>
  <form action="https://consent.yahoo.com/v2/collectConsent" method="post">
    <button name="agree" value="agree">Accept all</button>
  </form>
</body></html>
"""


class TestYahooScraperParsing:
    """HTML 파싱 함수 테스트"""

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("12.5%", 12.5),
            ("-3.2%", -3.2),
            ("1,234.5", 1234.5),
            ("2.8T", 2.8e12),
            ("45.2B", 45.2e9),
            ("850M", 850e6),
            ("N/A", None),
            ("--", None),
            ("", None),
            (None, None),
            ("abc", None),
        ],
    )
    def test_parse_ratio_value(self, text, expected):
        from stock_screener.ingest.yahoo_scraper import parse_ratio_value

        if expected is None:
            assert parse_ratio_value(text) is None
        else:
            assert parse_ratio_value(text) == pytest.approx(expected)

    def test_extract_statistics(self):
        """라벨 매핑 + 첫 항목 우선 + 부채비율 % → 배수"""
        from stock_screener.ingest.yahoo_scraper import extract_statistics

        ratios = extract_statistics(BeautifulSoup(STATS_HTML, "lxml"))

        assert ratios["MarketCap"] == pytest.approx(2.8e12)
        assert ratios["PE"] == 15.2
        assert ratios["PB"] == 2.1
        assert ratios["ROE"] == 14.3
        assert ratios["DebtToEquity"] == pytest.approx(0.452)
        assert ratios["DividendYield"] == 2.45
        assert ratios["PayoutRatio"] == 33.5
        assert "Beta" not in ratios

    def test_extract_name_and_price(self):
        from stock_screener.ingest.yahoo_scraper import extract_name, extract_price

        soup = BeautifulSoup(QUOTE_HTML, "lxml")

        assert extract_name(soup, "CAP.PA") == "Capgemini SE"
        assert extract_price(soup, QUOTE_HTML) == 180.5

    def test_extract_name_from_title(self):
        from stock_screener.ingest.yahoo_scraper import extract_name

        html = "<html><head><title>Airbus SE (AIR.PA) Stock Price</title></head><body></body></html>"

        assert extract_name(BeautifulSoup(html, "lxml"), "AIR.PA") == "Airbus SE"
        assert extract_name(BeautifulSoup("<html></html>", "lxml"), "AIR.PA") == "AIR.PA"

    def test_extract_price_from_embedded_json(self):
        from stock_screener.ingest.yahoo_scraper import extract_price

        html = '<html><script>{"regularMarketPrice":{"raw":42.5,"fmt":"42.50"}}</script></html>'

        assert extract_price(BeautifulSoup(html, "lxml"), html) == 42.5

    def test_consent_detection(self):
        from stock_screener.ingest.yahoo_scraper import is_consent_page

        assert is_consent_page(CONSENT_HTML) is True
        assert is_consent_page("<html></html>", "https://consent.yahoo.com/v2/collectConsent") is True
        assert is_consent_page(QUOTE_HTML, "https://finance.yahoo.com/quote/CAP.PA") is False


class TestYahooScraperProvider:
    """YahooScraperProvider 테스트"""

    def setup_method(self):
        from stock_screener.ingest.yahoo_scraper import YahooScraperProvider

        self.session = MagicMock()
        self.provider = YahooScraperProvider(
            session=self.session,
            rate_limiter=MagicMock(),
            retry_count=0,
        )

    def test_fetch_success(self):
        """quote + key-statistics 페이지 결합"""
        self.session.get.side_effect = [
            make_response(text=QUOTE_HTML, url="https://finance.yahoo.com/quote/CAP.PA"),
            make_response(text=STATS_HTML, url="https://finance.yahoo.com/quote/CAP.PA/key-statistics"),
        ]

        data = self.provider.fetch_ratios("CAP.PA")

        assert data.source == DataSource.SCRAPING
        assert data.name == "Capgemini SE"
        assert data.price == 180.5
        assert data.currency == "EUR"
        assert data.ratios["PE"] == 15.2
        assert data.ratios["DividendYield"] == 2.45
        assert self.provider.get_cache_ttl() == 1800

        urls = [c.args[0] for c in self.session.get.call_args_list]
        assert urls == [
            "https://finance.yahoo.com/quote/CAP.PA",
            "https://finance.yahoo.com/quote/CAP.PA/key-statistics",
        ]

    def test_consent_wall(self):
        """쿠키 동의 페이지 → MalformedResponseError"""
        from stock_screener.core.exceptions import MalformedResponseError

        self.session.get.return_value = make_response(
            text=CONSENT_HTML,
            url="https://consent.yahoo.com/v2/collectConsent?sessionId=1",
        )

        with pytest.raises(MalformedResponseError):
            self.provider.fetch_ratios("CAP.PA")

    def test_empty_pages(self):
        """가격/비율 모두 없음 → MalformedResponseError"""
        from stock_screener.core.exceptions import MalformedResponseError

        self.session.get.return_value = make_response(text="<html><body></body></html>", url="https://finance.yahoo.com/")

        with pytest.raises(MalformedResponseError):
            self.provider.fetch_ratios("CAP.PA")
