"""
Cost Insights Aggregator
Combines trend, anomaly, forecast and recommendation results into one report
with a plain-language summary.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from jinja2 import Template

from ..core.base.analyzer import Recommendation
from ..core.base.cost import CostSnapshot, DailyCost
from ..core.base.resource import Resource
from .anomaly_detection import AnomalyDetector, AnomalyRecord
from .recommendations import RecommendationEngine, SavingsPotential, calculate_savings_potential
from .statistics import safe_percent
from .trend_forecasting import CostForecast, CostForecaster, TrendAnalyzer, TrendDirection

logger = logging.getLogger(__name__)

NARRATIVE_TEMPLATE = Template(
    "Your cloud spending this period is ${{ '%.2f' | format(summary.total_cost) }}"
    "{% if summary.trend == 'increasing' %}"
    ", showing an increasing trend ({{ '%.2f' | format(summary.trend_percentage) }}% above average)."
    "{% elif summary.trend == 'decreasing' %}"
    ", showing a decreasing trend ({{ '%.2f' | format(summary.trend_percentage | abs) }}% below average)."
    "{% else %}"
    ", remaining relatively stable."
    "{% endif %}"
    "{% if anomaly_count > 0 %}"
    " We detected {{ anomaly_count }} cost anomalies that require attention."
    "{% endif %}"
    "{% if savings.total > 0 %}"
    " You could save up to ${{ '%.2f' | format(savings.total) }} per month by implementing"
    " {{ savings.count }} optimization recommendations."
    "{% endif %}"
)


@dataclass(frozen=True)
class ServiceShare:
    name: str
    cost: float
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "cost": self.cost, "percentage": self.percentage}


@dataclass(frozen=True)
class CostSummary:
    """Headline numbers for the current period"""
    total_cost: float
    average_daily: float
    projected_monthly: float
    trend: str
    trend_percentage: float
    has_anomaly: bool
    top_services: List[ServiceShare] = field(default_factory=list)
    generated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_cost": round(self.total_cost, 2),
            "average_daily": round(self.average_daily, 2),
            "projected_monthly": round(self.projected_monthly, 2),
            "trend": self.trend,
            "trend_percentage": self.trend_percentage,
            "has_anomaly": self.has_anomaly,
            "top_services": [s.to_dict() for s in self.top_services],
            "generated_at": self.generated_at.isoformat() if self.generated_at else None,
        }


@dataclass(frozen=True)
class Insights:
    """Aggregated analysis results"""
    summary: CostSummary
    anomalies: List[AnomalyRecord]
    recommendations: List[Recommendation]
    forecast: CostForecast
    optimizations: List[Recommendation]
    savings_potential: SavingsPotential

    def narrative(self) -> str:
        """One-paragraph plain-language summary"""
        return NARRATIVE_TEMPLATE.render(
            summary=self.summary,
            anomaly_count=len(self.anomalies),
            savings=self.savings_potential,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "summary": self.summary.to_dict(),
            "anomalies": [a.to_dict() for a in self.anomalies],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "forecasts": self.forecast.to_dict(),
            "optimizations": [o.to_dict() for o in self.optimizations],
            "savings_potential": self.savings_potential.to_dict(),
            "narrative": self.narrative(),
        }


class InsightsAggregator:
    """Runs every analyzer over one period's data and assembles the results"""

    TOP_SERVICES = 5

    def __init__(self, engine: Optional[RecommendationEngine] = None,
                 trend_analyzer: Optional[TrendAnalyzer] = None,
                 forecaster: Optional[CostForecaster] = None,
                 detector: Optional[AnomalyDetector] = None,
                 forecast_days: int = 30):
        self.engine = engine or RecommendationEngine()
        self.trend_analyzer = trend_analyzer or TrendAnalyzer()
        self.forecaster = forecaster or CostForecaster()
        self.detector = detector or AnomalyDetector()
        self.forecast_days = forecast_days

    def generate(self, snapshot: CostSnapshot, resources: Sequence[Resource],
                 history: Sequence[DailyCost],
                 generated_at: Optional[datetime] = None) -> Insights:
        """
        Build insights for a period.

        Args:
            snapshot: Current-period total and per-service series
            resources: Resources to evaluate for rightsizing and placement
            history: Daily cost history used for trend, anomalies and forecast

        Returns:
            Insights
        """
        history = list(history)
        logger.info(f"Generating insights over {len(history)} days and {len(resources)} resources")

        optimizations = self.engine.identify_opportunities(snapshot.service_costs, resources)

        return Insights(
            summary=self._summarize(snapshot, history, generated_at or datetime.now(timezone.utc)),
            anomalies=self.detector.detect(history, period=max(len(history), 1)).anomalies,
            recommendations=self.engine.generate(snapshot.service_costs, resources),
            forecast=self.forecaster.forecast(history, self.forecast_days),
            optimizations=optimizations,
            savings_potential=calculate_savings_potential(optimizations),
        )

    def _summarize(self, snapshot: CostSnapshot, history: List[DailyCost],
                   generated_at: datetime) -> CostSummary:
        trend = self.trend_analyzer.analyze(history)

        ranked = sorted(snapshot.service_costs, key=lambda s: s.total, reverse=True)
        top_services = [
            ServiceShare(
                name=service.service_name,
                cost=round(service.total, 2),
                percentage=round(safe_percent(service.total, snapshot.total_cost), 1),
            )
            for service in ranked[:self.TOP_SERVICES]
        ]

        return CostSummary(
            total_cost=snapshot.total_cost,
            average_daily=trend.average_daily,
            projected_monthly=trend.projected_monthly,
            trend=trend.direction.value,
            trend_percentage=trend.trend_percentage if trend.direction != TrendDirection.INSUFFICIENT_DATA else 0.0,
            has_anomaly=trend.has_anomaly,
            top_services=top_services,
            generated_at=generated_at,
        )
