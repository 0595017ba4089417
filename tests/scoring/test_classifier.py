"""
종목 유형 분류기 테스트
"""
from stock_screener.core.interfaces import ProfileType


class TestClassifyStock:
    """classify_stock 테스트"""

    def test_dividend_stock(self):
        """고배당 + 적정 배당성향 → Dividend"""
        from stock_screener.scoring.classifier import classify_stock_with_confidence

        result = classify_stock_with_confidence(
            {"DividendYield": 5.5, "PayoutRatio": 45, "ROE": 18, "PE": 14, "PB": 1.2}
        )

        assert result.profile_type == ProfileType.DIVIDEND
        assert result.scores[ProfileType.DIVIDEND] == 8
        assert result.scores[ProfileType.VALUE] == 4
        assert result.confidence == "high"

    def test_growth_stock(self):
        """고성장 → Growth"""
        from stock_screener.scoring.classifier import classify_stock

        ratios = {"RevenueGrowth": 35, "EPSGrowth": 45, "PEG": 0.8, "PE": 40, "DividendYield": 0.5}

        assert classify_stock(ratios) == ProfileType.GROWTH

    def test_value_stock(self):
        """저PER/저PBR → Value"""
        from stock_screener.scoring.classifier import classify_stock_with_confidence

        result = classify_stock_with_confidence({"PE": 8, "PB": 0.9, "PS": 0.7, "RevenueGrowth": 12})

        assert result.profile_type == ProfileType.VALUE
        assert result.scores[ProfileType.VALUE] == 8
        assert result.scores[ProfileType.GROWTH] == 1

    def test_no_data_defaults_to_value(self):
        """데이터 없음 → Value, 신뢰도 low"""
        from stock_screener.scoring.classifier import classify_stock_with_confidence

        result = classify_stock_with_confidence({})

        assert result.profile_type == ProfileType.VALUE
        assert result.confidence == "low"
        assert all(score == 0 for score in result.scores.values())

    def test_tie_prefers_dividend(self):
        """동점이면 Dividend 우선"""
        from stock_screener.scoring.classifier import classify_stock_with_confidence

        result = classify_stock_with_confidence({"PE": 8, "DividendYield": 4.5})

        assert result.scores[ProfileType.VALUE] == result.scores[ProfileType.DIVIDEND] == 3
        assert result.profile_type == ProfileType.DIVIDEND
        assert result.confidence == "low"

    def test_negative_multiples_ignored(self):
        """적자 기업의 음수 PER은 가산점 없음"""
        from stock_screener.scoring.classifier import score_stock_types

        scores = score_stock_types({"PE": -5, "PB": -1, "PEG": -0.5})

        assert scores[ProfileType.VALUE] == 0
        assert scores[ProfileType.GROWTH] == 0

    def test_payout_bands(self):
        """배당성향 구간별 점수"""
        from stock_screener.scoring.classifier import score_stock_types

        assert score_stock_types({"PayoutRatio": 45})[ProfileType.DIVIDEND] == 3
        assert score_stock_types({"PayoutRatio": 70})[ProfileType.DIVIDEND] == 2
        assert score_stock_types({"PayoutRatio": 85})[ProfileType.DIVIDEND] == 1
        assert score_stock_types({"PayoutRatio": 120})[ProfileType.DIVIDEND] == 0
