"""
파생 비율 계산

제공자가 재무제표 원시 항목(매출, 자본, 부채 등)을 함께 반환한 경우
누락된 비율을 계산하여 채움 (제공자 값은 덮어쓰지 않음)
백분율 지표는 % 단위로 산출
"""
from typing import Mapping

# 법인세율 근사 (ROIC 계산용)
APPROX_TAX_RATE = 0.25


def _div(numerator: float | None, denominator: float | None) -> float | None:
    """안전한 나눗셈"""
    if numerator is None or denominator is None or denominator == 0:
        return None
    return numerator / denominator


def _pct(value: float | None) -> float | None:
    return value * 100 if value is not None else None


def _all(*values: float | None) -> bool:
    return all(v is not None for v in values)


def calculate_derived_ratios(ratios: Mapping[str, float | None]) -> dict[str, float | None]:
    """
    파생 비율 계산

    Args:
        ratios: 비율 + 원시 재무 항목

    Returns:
        누락 비율이 채워진 새 딕셔너리
    """
    r: dict[str, float | None] = dict(ratios)
    g = r.get

    def fill(name: str, value: float | None) -> None:
        if r.get(name) is None and value is not None:
            r[name] = value

    market_cap = g("MarketCap")
    revenue = g("Revenue")
    total_debt = g("TotalDebt")
    cash = g("CashAndEquivalents")

    # 밸류에이션
    fill("PEG", _div(g("PE"), g("EPSGrowth")) if (g("EPSGrowth") or 0) > 0 else None)
    fill("PB", _div(market_cap, g("TotalEquity")))
    fill("PS", _div(market_cap, revenue))
    fill("PCF", _div(market_cap, g("OperatingCashFlow")))
    fill("PFCF", _div(market_cap, g("FreeCashFlow")))

    enterprise_value = None
    if _all(market_cap, total_debt, cash):
        enterprise_value = market_cap + total_debt - cash
        fill("EV_EBITDA", _div(enterprise_value, g("EBITDA")))

    # 수익성
    fill("GrossMargin", _pct(_div(g("GrossProfit"), revenue)))
    fill("OperatingMargin", _pct(_div(g("OperatingIncome"), revenue)))
    fill("NetMargin", _pct(_div(g("NetIncome"), revenue)))
    fill("FCFMargin", _pct(_div(g("FreeCashFlow"), revenue)))
    fill("ROA", _pct(_div(g("NetIncome"), g("TotalAssets"))))
    fill("ROE", _pct(_div(g("NetIncome"), g("TotalEquity"))))

    if _all(g("OperatingIncome"), g("TotalEquity"), total_debt, cash):
        nopat = g("OperatingIncome") * (1 - APPROX_TAX_RATE)
        invested_capital = g("TotalEquity") + total_debt - cash
        fill("ROIC", _pct(_div(nopat, invested_capital)))

    if enterprise_value is not None and _all(g("FreeCashFlow"), g("InterestExpense")):
        fill("CashReturn", _pct(_div(g("FreeCashFlow") + g("InterestExpense"), enterprise_value)))

    # 유동성
    current_liabilities = g("TotalCurrentLiabilities")
    fill("CurrentRatio", _div(g("TotalCurrentAssets"), current_liabilities))
    if _all(g("TotalCurrentAssets"), g("Inventory")):
        fill("QuickRatio", _div(g("TotalCurrentAssets") - g("Inventory"), current_liabilities))
    elif _all(cash, g("AccountsReceivable")):
        fill("QuickRatio", _div(cash + g("AccountsReceivable"), current_liabilities))
    fill("CashRatio", _div(cash, current_liabilities))

    # 부채
    fill("DebtToEquity", _div(total_debt, g("TotalEquity")))
    fill("DebtToAssets", _div(total_debt, g("TotalAssets")))
    fill("DebtToEBITDA", _div(total_debt, g("EBITDA")))
    fill("InterestCoverage", _div(g("OperatingIncome"), g("InterestExpense")))

    # 효율성
    fill("AssetTurnover", _div(revenue, g("TotalAssets")))

    # 성장 (유보율 b = 1 - 배당성향)
    payout = g("PayoutRatio")
    if payout is not None:
        retention = 1 - payout / 100
        for target, source in (("IGR", "ROA"), ("SGR", "ROE")):
            base = r.get(source)
            if base is not None:
                reinvested = base / 100 * retention
                fill(target, _pct(_div(reinvested, 1 - reinvested)))

    return r
