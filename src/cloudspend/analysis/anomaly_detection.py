"""
Cost Anomaly and Spike Detection
Flags days whose cost is far above the trailing distribution or above the recent average.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..core.base.cost import DailyCost, costs_of
from .cost_patterns import CostPatternAnalyzer, PatternReport
from .statistics import (
    MovingAveragePoint, SeriesStatistics, calculate_moving_average, calculate_statistics,
    safe_divide, safe_percent
)

logger = logging.getLogger(__name__)

ANOMALY_PENALTY = 15
WARNING_PENALTY = 5


class AnomalySeverity(str, Enum):
    """Anomaly severity levels"""
    ERROR = "error"
    WARNING = "warning"


class SpikeSeverity(str, Enum):
    """Spike severity levels"""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"


@dataclass(frozen=True)
class AnomalyRecord:
    """A day whose cost exceeded the anomaly or warning threshold"""
    date: Any
    actual_cost: float
    expected_cost: float
    threshold: float
    z_score: float
    deviation_percent: float
    severity: AnomalySeverity
    message: str
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "actual_cost": self.actual_cost,
            "expected_cost": self.expected_cost,
            "threshold": self.threshold,
            "z_score": self.z_score,
            "deviation_percent": self.deviation_percent,
            "severity": self.severity.value,
            "message": self.message,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class AnomalyReport:
    """Anomaly detection results for one trailing period"""
    period: int
    statistics: SeriesStatistics
    error_threshold: float
    warning_threshold: float
    anomalies: List[AnomalyRecord]
    warnings: List[AnomalyRecord]
    health_score: int

    @property
    def total_anomalies(self) -> int:
        return len(self.anomalies)

    @property
    def total_warnings(self) -> int:
        return len(self.warnings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "statistics": {
                **self.statistics.to_dict(),
                "threshold": round(self.error_threshold, 2),
                "warning_threshold": round(self.warning_threshold, 2),
            },
            "anomalies": [a.to_dict() for a in self.anomalies],
            "warnings": [w.to_dict() for w in self.warnings],
            "total_anomalies": self.total_anomalies,
            "total_warnings": self.total_warnings,
            "health_score": self.health_score,
        }


@dataclass(frozen=True)
class SpikeRecord:
    """A day whose cost jumped above its trailing average"""
    date: Any
    current_cost: float
    average_cost: float
    increase_percent: float
    severity: SpikeSeverity
    message: str
    recommendation: str
    breakdown: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "current_cost": self.current_cost,
            "average_cost": self.average_cost,
            "increase_percent": self.increase_percent,
            "severity": self.severity.value,
            "message": self.message,
            "recommendation": self.recommendation,
            "breakdown": dict(self.breakdown),
        }


@dataclass(frozen=True)
class SpikeReport:
    """Spike detection results"""
    lookback_days: int
    spikes: List[SpikeRecord]

    @property
    def total_spikes(self) -> int:
        return len(self.spikes)

    def count(self, severity: SpikeSeverity) -> int:
        return sum(1 for spike in self.spikes if spike.severity == severity)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lookback_days": self.lookback_days,
            "spikes": [s.to_dict() for s in self.spikes],
            "total_spikes": self.total_spikes,
            "critical_spikes": self.count(SpikeSeverity.CRITICAL),
            "high_spikes": self.count(SpikeSeverity.HIGH),
            "medium_spikes": self.count(SpikeSeverity.MEDIUM),
        }


def calculate_health_score(anomaly_count: int, warning_count: int) -> int:
    """Heuristic 0-100 score: 15 points per anomaly, 5 per warning.

    Not calibrated against any ground truth.
    """
    return max(0, 100 - ANOMALY_PENALTY * anomaly_count - WARNING_PENALTY * warning_count)


def health_label(score: int) -> str:
    if score >= 80:
        return "good"
    if score >= 50:
        return "fair"
    return "poor"


class AnomalyDetector:
    """
    Statistical anomaly detector.
    A day is an anomaly above mean + 2 sigma and a warning above mean + 1.5 sigma
    of the trailing period.
    """

    def __init__(self, error_multiplier: float = 2.0, warning_multiplier: float = 1.5,
                 default_period: int = 30):
        if warning_multiplier > error_multiplier:
            raise ValueError("warning_multiplier must not exceed error_multiplier")
        if default_period < 1:
            raise ValueError(f"default_period must be >= 1, got {default_period}")
        self.error_multiplier = error_multiplier
        self.warning_multiplier = warning_multiplier
        self.default_period = default_period

    def detect(self, daily_costs: Sequence[DailyCost], period: Optional[int] = None) -> AnomalyReport:
        """
        Detect anomalies over the trailing period.

        Args:
            daily_costs: Ordered daily cost series
            period: Number of trailing days to analyze

        Returns:
            AnomalyReport with anomalies, warnings and health score
        """
        if period is None:
            period = self.default_period
        if period < 1:
            raise ValueError(f"period must be >= 1, got {period}")
        recent = list(daily_costs)[-period:]
        stats = calculate_statistics(costs_of(recent))

        error_threshold = stats.threshold(self.error_multiplier)
        warning_threshold = stats.threshold(self.warning_multiplier)

        anomalies = []
        warnings = []

        for day in recent:
            if day.total > error_threshold:
                anomalies.append(self._build_record(day, stats, error_threshold, AnomalySeverity.ERROR))
            elif day.total > warning_threshold:
                warnings.append(self._build_record(day, stats, warning_threshold, AnomalySeverity.WARNING))

        if anomalies:
            logger.info(f"Detected {len(anomalies)} anomalies and {len(warnings)} warnings over {period} days")

        return AnomalyReport(
            period=period,
            statistics=stats,
            error_threshold=error_threshold,
            warning_threshold=warning_threshold,
            anomalies=anomalies,
            warnings=warnings,
            health_score=calculate_health_score(len(anomalies), len(warnings)),
        )

    def _build_record(self, day: DailyCost, stats: SeriesStatistics, threshold: float,
                      severity: AnomalySeverity) -> AnomalyRecord:
        z_score = safe_divide(day.total - stats.mean, stats.std_dev)
        deviation_percent = safe_percent(day.total - stats.mean, stats.mean)

        if severity == AnomalySeverity.ERROR:
            message = f"Cost spike detected on {day.date.isoformat()} ({deviation_percent:.0f}% above average)"
            recommendation = ("Investigate sudden cost increase - check for new deployments, "
                              "traffic spikes, or misconfigured resources")
        else:
            message = f"Elevated costs on {day.date.isoformat()} ({deviation_percent:.0f}% above average)"
            recommendation = "Monitor closely - costs are trending higher than normal"

        return AnomalyRecord(
            date=day.date,
            actual_cost=day.total,
            expected_cost=round(stats.mean, 2),
            threshold=round(threshold, 2),
            z_score=round(z_score, 2),
            deviation_percent=round(deviation_percent, 2),
            severity=severity,
            message=message,
            recommendation=recommendation,
        )


class CostSpikeDetector:
    """Compares each day against the average of the preceding lookback window"""

    RECOMMENDATIONS = {
        SpikeSeverity.CRITICAL: ("CRITICAL: Immediate investigation required. Check for runaway processes, "
                                 "unauthorized deployments, or DDoS attacks."),
        SpikeSeverity.HIGH: ("HIGH: Review recent changes. Check auto-scaling policies, new resource "
                             "deployments, and data transfer costs."),
        SpikeSeverity.MEDIUM: "MEDIUM: Monitor closely. Review service breakdown to identify cost drivers.",
    }

    def __init__(self, lookback_days: int = 7, threshold_percent: float = 50.0):
        if lookback_days < 1:
            raise ValueError(f"lookback_days must be >= 1, got {lookback_days}")
        self.lookback_days = lookback_days
        self.threshold_percent = threshold_percent

    def detect(self, daily_costs: Sequence[DailyCost]) -> SpikeReport:
        days = list(daily_costs)
        spikes = []

        for i in range(self.lookback_days, len(days)):
            window = days[i - self.lookback_days:i]
            historical_avg = sum(costs_of(window)) / self.lookback_days
            if historical_avg == 0:
                continue

            current = days[i].total
            increase_percent = (current - historical_avg) / historical_avg * 100
            if increase_percent <= self.threshold_percent:
                continue

            severity = self.classify(increase_percent)
            spikes.append(SpikeRecord(
                date=days[i].date,
                current_cost=round(current, 2),
                average_cost=round(historical_avg, 2),
                increase_percent=round(increase_percent, 2),
                severity=severity,
                message=(f"Cost spike detected: {increase_percent:.0f}% increase compared to "
                         f"{self.lookback_days}-day average"),
                recommendation=self.RECOMMENDATIONS[severity],
                breakdown=dict(days[i].breakdown),
            ))

        return SpikeReport(lookback_days=self.lookback_days, spikes=spikes)

    @staticmethod
    def classify(increase_percent: float) -> SpikeSeverity:
        if increase_percent > 100:
            return SpikeSeverity.CRITICAL
        if increase_percent > 75:
            return SpikeSeverity.HIGH
        return SpikeSeverity.MEDIUM


@dataclass(frozen=True)
class FullAnalysis:
    """Anomalies, spikes, pattern opportunities and recent moving averages"""
    period: int
    generated_at: datetime
    anomaly_detection: AnomalyReport
    spike_detection: SpikeReport
    patterns: PatternReport
    moving_averages: List[MovingAveragePoint]

    @property
    def critical_issues(self) -> int:
        return self.spike_detection.count(SpikeSeverity.CRITICAL) + sum(
            1 for a in self.anomaly_detection.anomalies if a.severity == AnomalySeverity.ERROR
        )

    def summary(self) -> Dict[str, Any]:
        score = self.anomaly_detection.health_score
        return {
            "overall_health": health_label(score),
            "health_score": score,
            "total_anomalies": self.anomaly_detection.total_anomalies,
            "total_spikes": self.spike_detection.total_spikes,
            "critical_issues": self.critical_issues,
            "potential_savings": self.patterns.total_potential_savings,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "generated_at": self.generated_at.isoformat(),
            "anomaly_detection": self.anomaly_detection.to_dict(),
            "spike_detection": self.spike_detection.to_dict(),
            "optimization_opportunities": self.patterns.to_dict(),
            "moving_averages": [p.to_dict() for p in self.moving_averages],
            "summary": self.summary(),
        }


def run_full_analysis(daily_costs: Sequence[DailyCost], period: int = 30,
                      detector: Optional[AnomalyDetector] = None,
                      spike_detector: Optional[CostSpikeDetector] = None,
                      window: int = 7,
                      generated_at: Optional[datetime] = None) -> FullAnalysis:
    """Run anomaly, spike and pattern analysis over a daily series"""
    if period < 1:
        raise ValueError(f"period must be >= 1, got {period}")
    detector = detector or AnomalyDetector()
    spike_detector = spike_detector or CostSpikeDetector()
    days = list(daily_costs)

    moving_averages = calculate_moving_average(days[-period:], window)

    return FullAnalysis(
        period=period,
        generated_at=generated_at or datetime.now(timezone.utc),
        anomaly_detection=detector.detect(days, period),
        spike_detection=spike_detector.detect(days),
        patterns=CostPatternAnalyzer().identify(days, period),
        moving_averages=moving_averages[-14:],
    )
