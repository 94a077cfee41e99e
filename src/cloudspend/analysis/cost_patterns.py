"""
Daily Cost Pattern Analysis
Finds schedule, stability and peak-day savings opportunities in a daily cost series.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Sequence

from ..core.base.cost import DailyCost, costs_of
from .statistics import calculate_statistics, safe_divide

WEEKEND_DAYS = (5, 6)  # Saturday, Sunday


@dataclass(frozen=True)
class PatternOpportunity:
    """Savings opportunity derived from the shape of the daily series"""
    opportunity_type: str
    title: str
    description: str
    current_cost: float
    potential_savings: float
    confidence: float  # 0-100
    effort: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.opportunity_type,
            "title": self.title,
            "description": self.description,
            "current_cost": self.current_cost,
            "potential_savings": self.potential_savings,
            "confidence": self.confidence,
            "effort": self.effort,
        }


@dataclass(frozen=True)
class PatternReport:
    period: int
    opportunities: List[PatternOpportunity]

    @property
    def total_potential_savings(self) -> float:
        return round(sum(o.potential_savings for o in self.opportunities), 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "opportunities": [o.to_dict() for o in self.opportunities],
            "total_opportunities": len(self.opportunities),
            "total_potential_savings": self.total_potential_savings,
        }


class CostPatternAnalyzer:
    """Weekend, variability and peak-day heuristics"""

    WEEKEND_RATIO_THRESHOLD = 0.5
    CV_THRESHOLD = 0.3
    MIN_PEAK_DAYS = 3

    def identify(self, daily_costs: Sequence[DailyCost], period: int = 30) -> PatternReport:
        if period < 1:
            raise ValueError(f"period must be >= 1, got {period}")
        recent = list(daily_costs)[-period:]
        opportunities: List[PatternOpportunity] = []

        if not recent:
            return PatternReport(period=period, opportunities=opportunities)

        stats = calculate_statistics(costs_of(recent))

        weekend = [d.total for d in recent if d.date.weekday() in WEEKEND_DAYS]
        weekday = [d.total for d in recent if d.date.weekday() not in WEEKEND_DAYS]
        avg_weekend = sum(weekend) / len(weekend) if weekend else 0.0
        avg_weekday = sum(weekday) / len(weekday) if weekday else 0.0

        if avg_weekend > 0 and avg_weekday > 0:
            if avg_weekend / avg_weekday > self.WEEKEND_RATIO_THRESHOLD:
                # four weekends a month, non-production scaled down to 30% of a weekday
                savings = max(0.0, (avg_weekend - avg_weekday * 0.3) * 4)
                opportunities.append(PatternOpportunity(
                    opportunity_type="weekend_optimization",
                    title="Weekend Cost Optimization",
                    description=("Your weekend costs are relatively high. Consider scheduling "
                                 "non-production resources to stop during weekends."),
                    current_cost=round(avg_weekend * 8, 2),
                    potential_savings=round(savings, 2),
                    confidence=85,
                    effort="low",
                ))

        cv = safe_divide(stats.std_dev, stats.mean)
        if cv > self.CV_THRESHOLD:
            opportunities.append(PatternOpportunity(
                opportunity_type="cost_stability",
                title="Reduce Cost Variability",
                description=("Your costs show high variability. Consider reserved instances or "
                             "savings plans for predictable workloads."),
                current_cost=round(stats.mean * 30, 2),
                potential_savings=round(stats.mean * 30 * 0.15, 2),
                confidence=75,
                effort="medium",
            ))

        peak_threshold = stats.threshold(1.0)
        peak_days = [d.total for d in recent if d.total > peak_threshold]
        if len(peak_days) > self.MIN_PEAK_DAYS:
            peak_total = sum(peak_days)
            opportunities.append(PatternOpportunity(
                opportunity_type="peak_optimization",
                title="Optimize Peak Cost Days",
                description=(f"{len(peak_days)} days had unusually high costs. Investigate patterns "
                             "and consider cost allocation strategies."),
                current_cost=round(peak_total, 2),
                potential_savings=round(peak_total * 0.2, 2),
                confidence=70,
                effort="medium",
            ))

        return PatternReport(period=period, opportunities=opportunities)
