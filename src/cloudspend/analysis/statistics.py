"""
Statistics Primitives
Descriptive statistics, least-squares slope and moving averages over cost series.
"""

import math
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd

from ..core.base.cost import DailyCost, costs_of

DEFAULT_WINDOW = 7


@dataclass(frozen=True)
class SeriesStatistics:
    """Population statistics of a numeric series.

    An empty series yields all zeros; check ``is_empty`` before treating the
    values as a distribution.
    """
    mean: float
    std_dev: float
    min: float
    max: float
    count: int = 0

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    def threshold(self, multiplier: float) -> float:
        """mean + multiplier * standard deviation"""
        return self.mean + multiplier * self.std_dev

    def to_dict(self) -> Dict[str, float]:
        return {
            "mean": round(self.mean, 2),
            "std_dev": round(self.std_dev, 2),
            "min": round(self.min, 2),
            "max": round(self.max, 2),
        }


@dataclass(frozen=True)
class MovingAveragePoint:
    """Actual cost of a day next to its trailing average"""
    date: date
    actual: float
    moving_average: float
    deviation: float
    deviation_percent: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "actual": self.actual,
            "moving_average": self.moving_average,
            "deviation": self.deviation,
            "deviation_percent": self.deviation_percent,
        }


def calculate_statistics(values: Sequence[float]) -> SeriesStatistics:
    """Mean, population standard deviation, min and max"""
    if len(values) == 0:
        return SeriesStatistics(mean=0.0, std_dev=0.0, min=0.0, max=0.0, count=0)

    arr = np.asarray(values, dtype=float)
    return SeriesStatistics(
        mean=float(arr.mean()),
        std_dev=float(arr.std()),
        min=float(arr.min()),
        max=float(arr.max()),
        count=len(arr),
    )


def safe_divide(numerator: float, denominator: float) -> float:
    """Ratio that is 0 instead of NaN/Infinity when there is no signal"""
    if denominator == 0 or not math.isfinite(denominator):
        return 0.0
    result = numerator / denominator
    return result if math.isfinite(result) else 0.0


def safe_percent(numerator: float, denominator: float) -> float:
    return safe_divide(numerator, denominator) * 100


def coefficient_of_variation(values: Sequence[float]) -> float:
    """Standard deviation divided by mean"""
    stats = calculate_statistics(values)
    return safe_divide(stats.std_dev, stats.mean)


def linear_regression(values: Sequence[float], start_index: int = 1) -> Tuple[float, float]:
    """Ordinary least squares over (index, value) pairs.

    Returns ``(slope, intercept)``; with fewer than two points the slope is 0
    and the intercept is the mean.
    """
    n = len(values)
    if n < 2:
        return 0.0, (float(values[0]) if n else 0.0)

    x = np.arange(start_index, start_index + n, dtype=float)
    y = np.asarray(values, dtype=float)

    sum_x = x.sum()
    sum_y = y.sum()
    denominator = n * (x * x).sum() - sum_x * sum_x
    slope = safe_divide(n * (x * y).sum() - sum_x * sum_y, denominator)
    intercept = (sum_y - slope * sum_x) / n

    return float(slope), float(intercept)


def calculate_moving_average(daily_costs: Sequence[DailyCost],
                             window: int = DEFAULT_WINDOW) -> List[MovingAveragePoint]:
    """Trailing moving average, one point per input day.

    The first ``window - 1`` days average over whatever history exists
    (window ``[max(0, i - window + 1), i]``).
    """
    if not daily_costs:
        return []
    if window < 1:
        raise ValueError(f"window must be >= 1, got {window}")

    totals = pd.Series(costs_of(list(daily_costs)), dtype=float)
    averages = totals.rolling(window=window, min_periods=1).mean()

    points = []
    for day, actual, average in zip(daily_costs, totals, averages):
        deviation = actual - average
        points.append(MovingAveragePoint(
            date=day.date,
            actual=round(float(actual), 2),
            moving_average=round(float(average), 2),
            deviation=round(float(deviation), 2),
            deviation_percent=round(safe_percent(deviation, average), 2),
        ))

    return points
