"""
Trend Analysis and Cost Forecasting
Provides least-squares trend classification and short-horizon cost forecasts.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..core.base.cost import DailyCost, costs_of
from .statistics import calculate_statistics, linear_regression, safe_divide, safe_percent

logger = logging.getLogger(__name__)

DAYS_PER_MONTH = 30


class TrendDirection(str, Enum):
    """Trend direction types"""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


class ForecastConfidence(str, Enum):
    """Forecast confidence levels"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ForecastStrategy(str, Enum):
    """Supported forecasting methods"""
    DAMPED_TREND = "damped_trend"
    LINEAR_REGRESSION = "linear_regression"


@dataclass(frozen=True)
class TrendAnalysis:
    """Trend analysis results.

    ``direction == INSUFFICIENT_DATA`` marks a sentinel with zeroed fields;
    check ``is_sufficient`` before using the numbers.
    """
    direction: TrendDirection
    average_daily: float
    projected_monthly: float
    slope: float = 0.0
    has_anomaly: bool = False
    anomaly_threshold: float = 0.0
    std_deviation: float = 0.0
    data_points: int = 0

    @classmethod
    def insufficient(cls, data_points: int = 0) -> "TrendAnalysis":
        return cls(
            direction=TrendDirection.INSUFFICIENT_DATA,
            average_daily=0.0,
            projected_monthly=0.0,
            data_points=data_points,
        )

    @property
    def is_sufficient(self) -> bool:
        return self.direction != TrendDirection.INSUFFICIENT_DATA

    @property
    def is_growing(self) -> bool:
        return self.direction == TrendDirection.INCREASING

    @property
    def trend_percentage(self) -> float:
        """Daily slope as a percentage of the average daily cost"""
        return round(safe_percent(self.slope, self.average_daily), 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "trend": self.direction.value,
            "average_daily": round(self.average_daily, 2),
            "projected_monthly": round(self.projected_monthly, 2),
            "slope": round(self.slope, 4),
            "trend_percentage": self.trend_percentage,
            "anomaly": self.has_anomaly,
            "anomaly_threshold": round(self.anomaly_threshold, 2),
            "standard_deviation": round(self.std_deviation, 2),
            "data_points": self.data_points,
        }


@dataclass(frozen=True)
class ForecastPoint:
    """Predicted cost for one future day"""
    date: date
    predicted: float
    lower_bound: float
    upper_bound: float
    confidence: float  # 0-1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "predicted": self.predicted,
            "lower_bound": self.lower_bound,
            "upper_bound": self.upper_bound,
            "confidence": self.confidence,
        }


@dataclass(frozen=True)
class CostForecast:
    """Cost forecast results"""
    strategy: ForecastStrategy
    points: List[ForecastPoint] = field(default_factory=list)
    confidence_level: ForecastConfidence = ForecastConfidence.LOW
    average_daily: float = 0.0
    trend: TrendDirection = TrendDirection.INSUFFICIENT_DATA
    based_on_days: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.points

    @property
    def horizon_days(self) -> int:
        return len(self.points)

    @property
    def total_forecast(self) -> float:
        return round(sum(p.predicted for p in self.points), 2)

    @property
    def average_daily_forecast(self) -> float:
        return round(safe_divide(self.total_forecast, len(self.points)), 2)

    @property
    def projected_monthly(self) -> float:
        return round(self.average_daily * DAYS_PER_MONTH, 2)

    def days_until_exceeding(self, budget_remaining: float) -> Optional[int]:
        """First forecast day on which cumulative predicted spend passes the budget"""
        cumulative = 0.0
        for day, point in enumerate(self.points, start=1):
            cumulative += point.predicted
            if cumulative > budget_remaining:
                return day
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "forecast": [p.to_dict() for p in self.points],
            "confidence": self.confidence_level.value,
            "average_daily": round(self.average_daily, 2),
            "projected_monthly": self.projected_monthly,
            "trend": self.trend.value,
            "total_forecast": self.total_forecast,
            "avg_daily_forecast": self.average_daily_forecast,
            "based_on_days": self.based_on_days,
        }


class TrendAnalyzer:
    """Classifies the direction of a daily cost series using an OLS slope"""

    def __init__(self, min_points: int = 7, anomaly_multiplier: float = 2.0):
        self.min_points = min_points
        self.anomaly_multiplier = anomaly_multiplier

    def analyze(self, daily_costs: Sequence[DailyCost]) -> TrendAnalysis:
        """
        Analyze the trend of a daily series.

        Args:
            daily_costs: Ordered daily cost series

        Returns:
            TrendAnalysis, or the insufficient-data sentinel below ``min_points``
        """
        costs = costs_of(list(daily_costs))
        if len(costs) < self.min_points:
            return TrendAnalysis.insufficient(len(costs))

        stats = calculate_statistics(costs)
        slope, _ = linear_regression(costs, start_index=1)
        threshold = stats.threshold(self.anomaly_multiplier)

        return TrendAnalysis(
            direction=self.classify(slope, stats.mean),
            average_daily=stats.mean,
            projected_monthly=stats.mean * DAYS_PER_MONTH,
            slope=slope,
            has_anomaly=any(cost > threshold for cost in costs),
            anomaly_threshold=threshold,
            std_deviation=stats.std_dev,
            data_points=len(costs),
        )

    @staticmethod
    def classify(slope: float, mean: float) -> TrendDirection:
        """Increasing/decreasing when the slope exceeds 1% of the mean"""
        if slope > mean * 0.01:
            return TrendDirection.INCREASING
        if slope < -mean * 0.01:
            return TrendDirection.DECREASING
        return TrendDirection.STABLE


class CostForecaster:
    """
    Short-horizon daily cost forecaster.

    DAMPED_TREND averages the last week and applies half of the week-over-week
    change across the horizon; LINEAR_REGRESSION extrapolates an OLS line fitted
    over the trailing window with decaying confidence.
    """

    WINDOW = 7
    DAMPING = 0.5
    INTERVAL = 0.10
    MIN_CONFIDENCE = 0.7
    CONFIDENCE_DECAY = 0.05

    def __init__(self, strategy: ForecastStrategy = ForecastStrategy.DAMPED_TREND,
                 lookback_days: int = 30):
        self.strategy = ForecastStrategy(strategy)
        self.lookback_days = lookback_days

    def forecast(self, daily_costs: Sequence[DailyCost], horizon_days: int = 30,
                 start_date: Optional[date] = None) -> CostForecast:
        """
        Forecast daily costs.

        Args:
            daily_costs: Ordered daily cost history
            horizon_days: Number of future days to predict
            start_date: First forecast day (defaults to the day after the last observation)

        Returns:
            CostForecast; empty when the history is too short for the strategy
        """
        if horizon_days < 1:
            raise ValueError(f"horizon_days must be >= 1, got {horizon_days}")

        days = list(daily_costs)
        if start_date is None:
            start_date = days[-1].date + timedelta(days=1) if days else date.today() + timedelta(days=1)

        if self.strategy == ForecastStrategy.LINEAR_REGRESSION:
            return self._linear_forecast(days, horizon_days, start_date)
        return self._damped_forecast(days, horizon_days, start_date)

    def _damped_forecast(self, days: List[DailyCost], horizon_days: int, start_date: date) -> CostForecast:
        if len(days) < self.WINDOW * 2:
            logger.debug(f"Damped forecast needs {self.WINDOW * 2} days, got {len(days)}")
            return CostForecast(strategy=self.strategy, based_on_days=len(days))

        costs = costs_of(days)
        average_recent = sum(costs[-self.WINDOW:]) / self.WINDOW
        average_older = sum(costs[-self.WINDOW * 2:-self.WINDOW]) / self.WINDOW
        trend = safe_divide(average_recent - average_older, average_older)
        dampened = trend * self.DAMPING

        high_confidence = len(days) >= DAYS_PER_MONTH
        confidence = 0.9 if high_confidence else 0.8

        points = []
        for i in range(1, horizon_days + 1):
            predicted = max(0.0, average_recent * (1 + dampened * (i / horizon_days)))
            points.append(self._point(start_date + timedelta(days=i - 1), predicted, confidence))

        if trend > 0.05:
            direction = TrendDirection.INCREASING
        elif trend < -0.05:
            direction = TrendDirection.DECREASING
        else:
            direction = TrendDirection.STABLE

        return CostForecast(
            strategy=self.strategy,
            points=points,
            confidence_level=ForecastConfidence.HIGH if high_confidence else ForecastConfidence.MEDIUM,
            average_daily=average_recent,
            trend=direction,
            based_on_days=len(days),
        )

    def _linear_forecast(self, days: List[DailyCost], horizon_days: int, start_date: date) -> CostForecast:
        window = days[-self.lookback_days:]
        if len(window) < 2:
            return CostForecast(strategy=self.strategy, based_on_days=len(window))

        costs = costs_of(window)
        n = len(costs)
        slope, intercept = linear_regression(costs, start_index=0)

        points = []
        for i in range(1, horizon_days + 1):
            predicted = max(0.0, intercept + slope * (n + i))
            confidence = max(self.MIN_CONFIDENCE, 1 - i * self.CONFIDENCE_DECAY)
            points.append(self._point(start_date + timedelta(days=i - 1), predicted, confidence))

        if slope > 0:
            direction = TrendDirection.INCREASING
        elif slope < 0:
            direction = TrendDirection.DECREASING
        else:
            direction = TrendDirection.STABLE

        if n >= DAYS_PER_MONTH:
            level = ForecastConfidence.HIGH
        elif n >= self.WINDOW * 2:
            level = ForecastConfidence.MEDIUM
        else:
            level = ForecastConfidence.LOW

        return CostForecast(
            strategy=self.strategy,
            points=points,
            confidence_level=level,
            average_daily=sum(costs) / n,
            trend=direction,
            based_on_days=n,
        )

    def _point(self, day: date, predicted: float, confidence: float) -> ForecastPoint:
        return ForecastPoint(
            date=day,
            predicted=round(predicted, 2),
            lower_bound=round(predicted * (1 - self.INTERVAL), 2),
            upper_bound=round(predicted * (1 + self.INTERVAL), 2),
            confidence=round(confidence, 2),
        )
