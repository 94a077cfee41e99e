"""
Cost Overview
Period totals, provider and service-type breakdowns, and period-over-period comparison.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from ..core.base.cost import DailyCost
from .statistics import safe_divide, safe_percent

PROVIDER_NAMES = {
    "aws": "Amazon Web Services",
    "azure": "Microsoft Azure",
    "gcp": "Google Cloud Platform",
}

STABLE_BAND_PERCENT = 10.0


@dataclass(frozen=True)
class CostShare:
    key: str
    name: str
    total: float
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.key, "name": self.name, "total": self.total, "percentage": self.percentage}


@dataclass(frozen=True)
class CostOverview:
    """Totals and breakdowns for one period"""
    period: int
    total_cost: float
    average_daily: float
    by_provider: List[CostShare]
    by_service_type: List[CostShare]
    highest_day: Optional[DailyCost]
    lowest_day: Optional[DailyCost]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "total_cost": self.total_cost,
            "avg_daily_cost": self.average_daily,
            "cost_by_provider": [s.to_dict() for s in self.by_provider],
            "cost_by_service_type": [s.to_dict() for s in self.by_service_type],
            "summary": {
                "highest_day": self.highest_day.to_dict() if self.highest_day else None,
                "lowest_day": self.lowest_day.to_dict() if self.lowest_day else None,
            },
        }


@dataclass(frozen=True)
class PeriodComparison:
    current_total: float
    current_average: float
    previous_total: float
    previous_average: float
    absolute_change: float
    percent_change: float
    direction: str
    insight: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current": {"total": self.current_total, "avg_daily": self.current_average},
            "previous": {"total": self.previous_total, "avg_daily": self.previous_average},
            "change": {
                "absolute": self.absolute_change,
                "percentage": self.percent_change,
                "direction": self.direction,
            },
            "insight": self.insight,
        }


def _breakdown(frame: pd.DataFrame, total: float, names: Dict[str, str]) -> List[CostShare]:
    if frame.empty:
        return []
    sums = frame.fillna(0.0).sum().sort_values(ascending=False)
    return [
        CostShare(
            key=str(key),
            name=names.get(str(key), str(key).replace("_", " ").title()),
            total=round(float(value), 2),
            percentage=round(safe_percent(float(value), total), 1),
        )
        for key, value in sums.items()
    ]


def build_cost_overview(daily_costs: Sequence[DailyCost]) -> CostOverview:
    """Summarize a daily series: totals, averages, breakdowns and extreme days"""
    days = list(daily_costs)
    total = sum(day.total for day in days)

    providers = pd.DataFrame([day.breakdown for day in days])
    service_types = pd.DataFrame([day.services for day in days])

    return CostOverview(
        period=len(days),
        total_cost=round(total, 2),
        average_daily=round(safe_divide(total, len(days)), 2),
        by_provider=_breakdown(providers, total, PROVIDER_NAMES),
        by_service_type=_breakdown(service_types, total, {}),
        highest_day=max(days, key=lambda d: d.total) if days else None,
        lowest_day=min(days, key=lambda d: d.total) if days else None,
    )


def compare_periods(current: Sequence[DailyCost], previous: Sequence[DailyCost]) -> PeriodComparison:
    """Compare two periods; changes within +/-10% are reported as stable"""
    current_overview = build_cost_overview(current)
    previous_overview = build_cost_overview(previous)

    change = current_overview.total_cost - previous_overview.total_cost
    change_percent = safe_percent(change, previous_overview.total_cost)

    if change > 0:
        direction = "increase"
    elif change < 0:
        direction = "decrease"
    else:
        direction = "no_change"

    if change_percent > STABLE_BAND_PERCENT:
        insight = f"Costs increased by {change_percent:.1f}% compared to previous period"
    elif change_percent < -STABLE_BAND_PERCENT:
        insight = f"Costs decreased by {abs(change_percent):.1f}% compared to previous period"
    else:
        insight = "Costs remained stable compared to previous period"

    return PeriodComparison(
        current_total=current_overview.total_cost,
        current_average=current_overview.average_daily,
        previous_total=previous_overview.total_cost,
        previous_average=previous_overview.average_daily,
        absolute_change=round(change, 2),
        percent_change=round(change_percent, 2),
        direction=direction,
        insight=insight,
    )


def compare_trailing_periods(daily_costs: Sequence[DailyCost], days: int = 7) -> Optional[PeriodComparison]:
    """Compare the last ``days`` days with the ``days`` before them; None with less history"""
    if days < 1:
        raise ValueError(f"days must be >= 1, got {days}")
    series = list(daily_costs)
    if len(series) < days * 2:
        return None
    return compare_periods(series[-days:], series[-days * 2:-days])
