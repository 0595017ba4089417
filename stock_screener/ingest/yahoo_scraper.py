"""
Yahoo Finance HTML 스크래핑 제공자 (3순위)

API 제공자가 모두 실패했을 때 사용
- /quote/{ticker}: 종목명, 가격
- /quote/{ticker}/key-statistics: 재무비율 표
"""
import re

from bs4 import BeautifulSoup

from stock_screener.core.exceptions import MalformedResponseError
from stock_screener.core.interfaces import DataSource, StockData
from stock_screener.ingest.base import BaseRatioProvider, infer_currency

YAHOO_BASE_URL = "https://finance.yahoo.com"

MISSING_MARKERS = {"", "N/A", "--", "—", "-"}

MULTIPLIERS = {
    "T": 1_000_000_000_000,
    "B": 1_000_000_000,
    "M": 1_000_000,
    "K": 1_000,
}

PRICE_SELECTORS = (
    'fin-streamer[data-field="regularMarketPrice"][data-test="qsp-price"]',
    'fin-streamer[data-field="regularMarketPrice"]',
    '[data-testid="qsp-price"]',
    '[data-test="qsp-price"]',
    ".livePrice",
)

PRICE_PATTERN = re.compile(r'"regularMarketPrice":\{"raw":([0-9.]+)')
NUMBER_PATTERN = re.compile(r"-?[0-9]*\.?[0-9]+")

# 표 라벨(소문자, 부분 일치) → 비율명, 앞쪽 항목 우선
LABEL_MAP: tuple[tuple[str, str], ...] = (
    ("trailing p/e", "PE"),
    ("peg ratio", "PEG"),
    ("price/sales", "PS"),
    ("price/book", "PB"),
    ("enterprise value/ebitda", "EV_EBITDA"),
    ("return on equity", "ROE"),
    ("return on assets", "ROA"),
    ("profit margin", "NetMargin"),
    ("operating margin", "OperatingMargin"),
    ("total debt/equity", "DebtToEquity"),
    ("current ratio", "CurrentRatio"),
    ("forward annual dividend yield", "DividendYield"),
    ("trailing annual dividend yield", "DividendYield"),
    ("payout ratio", "PayoutRatio"),
    ("quarterly revenue growth", "RevenueGrowth"),
    ("quarterly earnings growth", "EPSGrowth"),
    ("market cap", "MarketCap"),
    ("beta", "Beta"),
)


def parse_ratio_value(text: str | None) -> float | None:
    """
    표 셀 텍스트 → 숫자

    "12.5%" → 12.5, "2.8T" → 2.8e12, "1,234.5" → 1234.5, "N/A" → None
    """
    if text is None:
        return None

    cleaned = text.strip().replace(",", "")
    if cleaned in MISSING_MARKERS:
        return None

    cleaned = cleaned.rstrip("%").strip()
    multiplier = 1
    if cleaned and cleaned[-1].upper() in MULTIPLIERS:
        multiplier = MULTIPLIERS[cleaned[-1].upper()]
        cleaned = cleaned[:-1]

    match = NUMBER_PATTERN.search(cleaned)
    if match is None:
        return None
    return float(match.group()) * multiplier


def is_consent_page(html: str, url: str = "") -> bool:
    """쿠키 동의 페이지 여부 (EU 접속 시 리다이렉트)"""
    if "consent." in url:
        return True
    soup = BeautifulSoup(html, "lxml")
    return soup.select_one('form[action*="consent"], button[name="agree"]') is not None


def extract_name(soup: BeautifulSoup, ticker: str) -> str:
    """종목명 추출 (괄호 안 티커 제거)"""
    for selector in ('[data-test="quote-header"] h1', "section h1", "h1"):
        element = soup.select_one(selector)
        if element is None:
            continue
        name = re.sub(r"\s*\([^)]+\)\s*$", "", element.get_text(strip=True)).strip()
        if name and name not in ("Yahoo Finance", "Finance"):
            return name

    if soup.title and soup.title.string:
        name = soup.title.string.split("(")[0].strip()
        if name and name != "Yahoo Finance":
            return name

    return ticker


def extract_price(soup: BeautifulSoup, html: str) -> float | None:
    """가격 추출 (셀렉터 → 임베디드 JSON 순)"""
    for selector in PRICE_SELECTORS:
        for element in soup.select(selector):
            price = parse_ratio_value(element.get_text(strip=True))
            if price is not None and price > 0:
                return price

    match = PRICE_PATTERN.search(html)
    if match:
        return float(match.group(1))
    return None


def extract_statistics(soup: BeautifulSoup) -> dict[str, float | None]:
    """key-statistics 표 → 비율 (%)"""
    ratios: dict[str, float | None] = {}

    for row in soup.select("tr"):
        cols = row.select("td")
        if len(cols) < 2:
            continue

        label = cols[0].get_text(" ", strip=True).lower()
        value = parse_ratio_value(cols[1].get_text(strip=True))
        if value is None:
            continue

        for key, name in LABEL_MAP:
            if key in label:
                if ratios.get(name) is None:
                    ratios[name] = value
                break

    # Yahoo는 부채비율을 %로 표시 (45.2 → 0.452)
    if ratios.get("DebtToEquity") is not None:
        ratios["DebtToEquity"] = ratios["DebtToEquity"] / 100

    return ratios


class YahooScraperProvider(BaseRatioProvider):
    """
    Yahoo Finance 스크래핑 제공자

    사용법:
        provider = YahooScraperProvider()
        data = provider.fetch_ratios("MC.PA")
    """

    SOURCE = DataSource.SCRAPING

    def _fetch(self, ticker: str) -> StockData:
        quote_html = self._get_page(f"{YAHOO_BASE_URL}/quote/{ticker}", ticker)
        quote_soup = BeautifulSoup(quote_html, "lxml")

        stats_html = self._get_page(f"{YAHOO_BASE_URL}/quote/{ticker}/key-statistics", ticker)
        ratios = extract_statistics(BeautifulSoup(stats_html, "lxml"))

        return StockData(
            ticker=ticker,
            source=self.SOURCE,
            name=extract_name(quote_soup, ticker),
            price=extract_price(quote_soup, quote_html),
            currency=infer_currency(ticker),
            ratios=ratios,
        )

    def _get_page(self, url: str, ticker: str) -> str:
        response = self._request(url, ticker, headers={"Accept": "text/html"})
        if is_consent_page(response.text, response.url or ""):
            raise MalformedResponseError(
                "쿠키 동의 페이지로 리다이렉트됨",
                source=self.get_source_name(),
                ticker=ticker,
            )
        return response.text
