"""
종목명 → 티커 변환

"LVMH" → "MC.PA", "Airbus" → "AIR.PA", "Apple" → "AAPL"

매칭 순서:
1. 티커 직접 입력 (신뢰도 1.0)
2. 종목명/별칭 완전 일치
3. 접두어 일치 ("Cap" → Capgemini)
4. 유사도 매칭 (오타 허용)
"""
import re
import unicodedata
from dataclasses import dataclass
from difflib import SequenceMatcher

from stock_screener.core.exceptions import InvalidTickerError, TickerNotFoundError
from stock_screener.core.logger import get_logger

logger = get_logger(__name__)

FUZZY_MIN_RATIO = 0.75

EXCHANGE_SUFFIXES = {
    "PA": "Paris",
    "DE": "XETRA",
    "L": "London",
    "MI": "Milan",
    "AS": "Amsterdam",
    "SW": "SIX",
    "TO": "TSX",
}

DIRECT_TICKER_PATTERN = re.compile(r"^[A-Z0-9-]{1,6}\.(" + "|".join(EXCHANGE_SUFFIXES) + r")$")


@dataclass(frozen=True)
class TickerEntry:
    """종목 정보"""
    ticker: str
    name: str
    aliases: tuple[str, ...]
    exchange: str


@dataclass(frozen=True)
class TickerResolution:
    """변환 결과"""
    query: str
    ticker: str
    name: str
    exchange: str
    confidence: float  # 0-1


TICKER_DATABASE: tuple[TickerEntry, ...] = (
    # Euronext Paris
    TickerEntry("MC.PA", "LVMH Moët Hennessy Louis Vuitton SE", ("LVMH", "Moët Hennessy", "Louis Vuitton"), "Paris"),
    TickerEntry("AIR.PA", "Airbus SE", ("Airbus", "Air"), "Paris"),
    TickerEntry("CAP.PA", "Capgemini SE", ("Capgemini", "Cap"), "Paris"),
    TickerEntry("TTE.PA", "TotalEnergies SE", ("Total", "TotalEnergies"), "Paris"),
    TickerEntry("BNP.PA", "BNP Paribas", ("BNP", "BNP Paribas"), "Paris"),
    TickerEntry("OR.PA", "L'Oréal", ("Loreal", "L'Oréal", "Oreal"), "Paris"),
    TickerEntry("SAN.PA", "Sanofi", ("Sanofi",), "Paris"),
    TickerEntry("DG.PA", "Vinci SA", ("Vinci",), "Paris"),
    TickerEntry("SU.PA", "Schneider Electric SE", ("Schneider", "Schneider Electric"), "Paris"),
    TickerEntry("CS.PA", "AXA SA", ("AXA",), "Paris"),
    # XETRA
    TickerEntry("BMW.DE", "Bayerische Motoren Werke AG", ("BMW",), "XETRA"),
    TickerEntry("SIE.DE", "Siemens AG", ("Siemens",), "XETRA"),
    TickerEntry("VOW.DE", "Volkswagen AG", ("Volkswagen", "VW"), "XETRA"),
    TickerEntry("SAP.DE", "SAP SE", ("SAP",), "XETRA"),
    TickerEntry("MBG.DE", "Mercedes-Benz Group AG", ("Mercedes", "Mercedes-Benz", "Daimler"), "XETRA"),
    TickerEntry("ADS.DE", "Adidas AG", ("Adidas",), "XETRA"),
    TickerEntry("BAS.DE", "BASF SE", ("BASF",), "XETRA"),
    # US
    TickerEntry("AAPL", "Apple Inc.", ("Apple",), "NASDAQ"),
    TickerEntry("MSFT", "Microsoft Corporation", ("Microsoft",), "NASDAQ"),
    TickerEntry("GOOGL", "Alphabet Inc.", ("Google", "Alphabet"), "NASDAQ"),
    TickerEntry("AMZN", "Amazon.com Inc.", ("Amazon",), "NASDAQ"),
    TickerEntry("TSLA", "Tesla Inc.", ("Tesla",), "NASDAQ"),
    TickerEntry("META", "Meta Platforms Inc.", ("Meta", "Facebook"), "NASDAQ"),
    TickerEntry("NVDA", "NVIDIA Corporation", ("NVIDIA", "Nvidia"), "NASDAQ"),
    TickerEntry("JPM", "JPMorgan Chase & Co.", ("JPMorgan", "JP Morgan"), "NYSE"),
    TickerEntry("V", "Visa Inc.", ("Visa",), "NYSE"),
    TickerEntry("JNJ", "Johnson & Johnson", ("Johnson & Johnson", "J&J"), "NYSE"),
)


def _normalize(text: str) -> str:
    """악센트/구두점/공백 제거 + 소문자"""
    decomposed = unicodedata.normalize("NFKD", text)
    ascii_text = "".join(c for c in decomposed if not unicodedata.combining(c))
    return re.sub(r"[^a-z0-9]", "", ascii_text.casefold())


def _candidates(entry: TickerEntry) -> list[str]:
    return [_normalize(alias) for alias in (entry.name, *entry.aliases)]


def _result(query: str, entry: TickerEntry, confidence: float) -> TickerResolution:
    return TickerResolution(
        query=query,
        ticker=entry.ticker,
        name=entry.name,
        exchange=entry.exchange,
        confidence=round(confidence, 3),
    )


def resolve_ticker_from_name(query: str) -> TickerResolution:
    """
    종목명 → 티커

    Args:
        query: 종목명, 별칭 또는 티커

    Returns:
        TickerResolution

    Raises:
        InvalidTickerError: 빈 입력
        TickerNotFoundError: 일치하는 종목 없음
    """
    if not query or not query.strip():
        raise InvalidTickerError("종목명이 비어 있습니다")

    raw = query.strip()
    upper = raw.upper()

    # 1. 티커 직접 입력
    for entry in TICKER_DATABASE:
        if entry.ticker == upper:
            return _result(raw, entry, 1.0)

    if DIRECT_TICKER_PATTERN.match(upper):
        suffix = upper.rsplit(".", 1)[1]
        return TickerResolution(
            query=raw,
            ticker=upper,
            name=upper,
            exchange=EXCHANGE_SUFFIXES[suffix],
            confidence=1.0,
        )

    key = _normalize(raw)
    if not key:
        raise TickerNotFoundError(f"종목을 찾을 수 없음: {raw}", ticker=raw)

    # 2. 완전 일치
    for entry in TICKER_DATABASE:
        if key in _candidates(entry):
            return _result(raw, entry, 0.95)

    # 3. 접두어 일치 (가장 짧은 후보 우선)
    prefix_matches = [
        (len(candidate), entry)
        for entry in TICKER_DATABASE
        for candidate in _candidates(entry)
        if candidate.startswith(key)
    ]
    if prefix_matches:
        length, entry = min(prefix_matches, key=lambda m: m[0])
        return _result(raw, entry, 0.6 + 0.3 * len(key) / length)

    # 4. 유사도 매칭
    best_ratio = 0.0
    best_entry: TickerEntry | None = None
    for entry in TICKER_DATABASE:
        for candidate in _candidates(entry):
            ratio = SequenceMatcher(None, key, candidate).ratio()
            if ratio > best_ratio:
                best_ratio, best_entry = ratio, entry

    if best_entry is not None and best_ratio >= FUZZY_MIN_RATIO:
        logger.debug(f"유사도 매칭: {raw} → {best_entry.ticker} ({best_ratio:.2f})")
        return _result(raw, best_entry, best_ratio * 0.95)

    raise TickerNotFoundError(f"종목을 찾을 수 없음: {raw}", ticker=raw)
