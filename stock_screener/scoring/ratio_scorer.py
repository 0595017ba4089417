"""
비율 점수 계산기

단일 비율 값을 임계값 사다리에 따라 0-100 점수로 변환

    excellent 이상  -> 100
    excellent~good  -> 100~75 (선형 보간)
    good~fair       -> 75~50
    fair~expensive  -> 50~25
    expensive 미만  -> 25에서 fair~expensive 기울기로 외삽, 0에서 하한
"""
import math

import numpy as np

from stock_screener.scoring.profiles import RatioDefinition

NEUTRAL_SCORE = 50.0
LADDER_SCORES = (100.0, 75.0, 50.0, 25.0)


def _ladder(definition: RatioDefinition) -> tuple[list[float], list[float]]:
    """
    '낮을수록 좋음' 방향으로 정렬된 보간 좌표

    같은 값의 임계값이 연속되면 더 좋은 구간 점수만 유지
    """
    sign = -1.0 if definition.inverse else 1.0
    xp: list[float] = []
    fp: list[float] = []
    for threshold, score in zip(definition.thresholds.as_tuple(), LADDER_SCORES):
        x = sign * threshold
        if xp and x == xp[-1]:
            continue
        xp.append(x)
        fp.append(score)
    return xp, fp


def score_ratio(raw_value: float | None, definition: RatioDefinition) -> float:
    """
    비율 점수 계산 (순수 함수)

    Args:
        raw_value: 비율 값 (None이면 데이터 없음)
        definition: 비율 정의 (임계값, inverse)

    Returns:
        0-100 점수 (데이터 없으면 중립 50)
    """
    if raw_value is None or (isinstance(raw_value, float) and math.isnan(raw_value)):
        return NEUTRAL_SCORE

    sign = -1.0 if definition.inverse else 1.0
    value = sign * float(raw_value)
    xp, fp = _ladder(definition)

    if value <= xp[0]:
        return 100.0

    if value <= xp[-1]:
        return float(np.interp(value, xp, fp))

    # expensive 초과: 마지막 구간 기울기로 외삽
    slope = (fp[-2] - fp[-1]) / (xp[-1] - xp[-2])
    extrapolated = fp[-1] - slope * (value - xp[-1])
    return float(np.clip(extrapolated, 0.0, 100.0))
