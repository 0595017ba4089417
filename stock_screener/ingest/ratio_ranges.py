"""
재무비율 허용 범위

제공자 응답의 이상값(단위 오류, 파싱 오류) 검출용
백분율 지표는 % 단위 (ROE 15.0 = 15%)
"""
import math
from dataclasses import dataclass
from typing import Mapping

from stock_screener.core.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RatioRange:
    """허용 범위"""
    min: float
    max: float
    description: str = ""


RATIO_RANGES: dict[str, RatioRange] = {
    # 밸류에이션 (배수)
    "PE": RatioRange(0, 500, "Price-to-Earnings, 적자 기업은 None"),
    "PB": RatioRange(0, 50, "Price-to-Book"),
    "PEG": RatioRange(0, 10, "PE / EPS 성장률"),
    "PS": RatioRange(0, 100, "Price-to-Sales"),
    "PCF": RatioRange(0, 100, "Price-to-Cash-Flow"),
    "PFCF": RatioRange(0, 100, "Price-to-Free-Cash-Flow"),
    "EV_EBITDA": RatioRange(0, 100, "Enterprise Value / EBITDA"),

    # 수익성 (%)
    "ROE": RatioRange(-100, 200, "자기자본이익률"),
    "ROA": RatioRange(-50, 100, "총자산이익률"),
    "ROIC": RatioRange(-50, 150, "투하자본이익률"),
    "GrossMargin": RatioRange(0, 100, "매출총이익률"),
    "OperatingMargin": RatioRange(-50, 100, "영업이익률"),
    "NetMargin": RatioRange(-50, 100, "순이익률"),
    "FCFMargin": RatioRange(-50, 100, "FCF 마진"),
    "CashReturn": RatioRange(-50, 100, "현금 수익률"),

    # 유동성 (배수)
    "CurrentRatio": RatioRange(0, 10, "유동자산 / 유동부채"),
    "QuickRatio": RatioRange(0, 10, "당좌비율"),
    "CashRatio": RatioRange(0, 10, "현금 / 유동부채"),

    # 부채 (배수)
    "DebtToEquity": RatioRange(0, 15, "총부채 / 자기자본"),
    "DebtToAssets": RatioRange(0, 1, "총부채 / 총자산"),
    "DebtToEBITDA": RatioRange(0, 20, "총부채 / EBITDA"),
    "NetDebtToEBITDA": RatioRange(-10, 20, "순부채 / EBITDA (현금 > 부채면 음수)"),
    "InterestCoverage": RatioRange(-10, 100, "EBIT / 이자비용"),

    # 효율성 (배수)
    "AssetTurnover": RatioRange(0, 10, "매출 / 총자산"),

    # 성장 (%, YoY)
    "RevenueGrowth": RatioRange(-100, 500, "매출 성장률"),
    "EPSGrowth": RatioRange(-100, 500, "EPS 성장률"),
    "BookValueGrowth": RatioRange(-100, 500, "BPS 성장률"),
    "IGR": RatioRange(-50, 100, "내부성장률"),
    "SGR": RatioRange(-50, 100, "지속가능성장률"),

    # 배당 (%)
    "DividendYield": RatioRange(0, 25, "배당수익률"),
    "PayoutRatio": RatioRange(0, 200, "배당성향 (100% 초과 가능)"),

    # 시장 데이터
    "MarketCap": RatioRange(1e6, 5e12, "시가총액"),
    "Beta": RatioRange(-5, 5, "시장 대비 변동성"),
}


def is_within_range(name: str, value: float | None) -> bool:
    """
    허용 범위 확인

    값이 없거나 범위가 정의되지 않은 비율은 허용
    """
    if value is None:
        return True
    if isinstance(value, float) and not math.isfinite(value):
        return False

    ratio_range = RATIO_RANGES.get(name)
    if ratio_range is None:
        return True

    return ratio_range.min <= value <= ratio_range.max


def get_range_message(name: str, value: float) -> str:
    """범위 초과 메시지"""
    ratio_range = RATIO_RANGES.get(name)
    if ratio_range is None:
        return f"알 수 없는 비율: {name}"
    return (
        f"{name} 값 {value} 허용 범위 초과 [{ratio_range.min}, {ratio_range.max}]"
        f" {ratio_range.description}".rstrip()
    )


def sanitize_ratios(
    ratios: Mapping[str, float | None],
    ticker: str = "",
) -> dict[str, float | None]:
    """
    범위를 벗어난 값을 None으로 교체

    Returns:
        정리된 비율 딕셔너리 (원본 변경 없음)
    """
    cleaned: dict[str, float | None] = {}
    for name, value in ratios.items():
        if is_within_range(name, value):
            cleaned[name] = value
        else:
            logger.warning(f"[{ticker}] {get_range_message(name, value)} → 제외")
            cleaned[name] = None
    return cleaned
