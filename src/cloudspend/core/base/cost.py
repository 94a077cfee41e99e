from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Any, List, Tuple


@dataclass(frozen=True)
class DailyCost:
    """Total spend for one calendar day"""

    date: date
    total: float
    breakdown: Dict[str, float] = field(default_factory=dict)  # provider -> cost
    services: Dict[str, float] = field(default_factory=dict)  # service type -> cost

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "total": self.total,
            "breakdown": dict(self.breakdown),
            "services": dict(self.services),
        }


@dataclass(frozen=True)
class ServiceCostSeries:
    """Daily cost history of a single service"""

    service_name: str
    cloud_provider: str
    data_points: Tuple[Tuple[date, float], ...] = ()

    @property
    def costs(self) -> List[float]:
        return [cost for _, cost in self.data_points]

    @property
    def total(self) -> float:
        return sum(self.costs)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service_name": self.service_name,
            "cloud_provider": self.cloud_provider,
            "total": round(self.total, 2),
            "data_points": [
                {"date": day.isoformat(), "cost": cost} for day, cost in self.data_points
            ],
        }


@dataclass(frozen=True)
class CostRecord:
    """One billed line: a service's cost on a given day"""

    date: date
    cloud_provider: str
    service_name: str
    cost: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "cloud_provider": self.cloud_provider,
            "service_name": self.service_name,
            "cost": self.cost,
        }


@dataclass(frozen=True)
class CostSnapshot:
    """Current-period totals handed to the insights aggregator"""

    total_cost: float
    service_costs: Tuple[ServiceCostSeries, ...] = ()


def costs_of(daily_costs: List[DailyCost]) -> List[float]:
    """Extract the totals of a daily series"""
    return [day.total for day in daily_costs]
