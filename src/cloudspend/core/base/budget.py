from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class BudgetPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    def start_of(self, now: datetime) -> datetime:
        """Start of the period containing ``now`` (weeks start on Sunday)"""
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        if self == BudgetPeriod.DAILY:
            return midnight
        if self == BudgetPeriod.WEEKLY:
            return midnight - timedelta(days=(now.weekday() + 1) % 7)
        if self == BudgetPeriod.MONTHLY:
            return midnight.replace(day=1)
        if self == BudgetPeriod.QUARTERLY:
            return midnight.replace(month=(now.month - 1) // 3 * 3 + 1, day=1)
        return midnight.replace(month=1, day=1)


class BudgetStatus(str, Enum):
    ACTIVE = "active"
    EXCEEDED = "exceeded"
    INACTIVE = "inactive"


@dataclass(frozen=True)
class BudgetThreshold:
    """Alert when spend reaches ``percentage`` of the budget amount"""
    percentage: float
    recipients: Tuple[str, ...] = ()


@dataclass
class Budget:
    """Spending limit for a period, optionally scoped to one provider.

    ``status``, ``actual_spend`` and ``last_alerts`` are updated by the cost
    monitor on every budget check.
    """
    name: str
    amount: float
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    cloud_provider: Optional[str] = None  # None or "all" covers every provider
    thresholds: List[BudgetThreshold] = field(default_factory=list)
    alerts_enabled: bool = True
    status: BudgetStatus = BudgetStatus.ACTIVE
    actual_spend: float = 0.0
    last_alerts: Dict[float, datetime] = field(default_factory=dict)

    @property
    def covers_all_providers(self) -> bool:
        return self.cloud_provider in (None, "", "all")

    @property
    def is_active(self) -> bool:
        return self.status != BudgetStatus.INACTIVE

    @property
    def percent_used(self) -> float:
        if self.amount <= 0:
            return 0.0
        return self.actual_spend / self.amount * 100

    @property
    def daily_budget(self) -> float:
        """Monthly amount spread over 30 days"""
        return self.amount / 30

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "amount": self.amount,
            "period": self.period.value,
            "cloud_provider": self.cloud_provider or "all",
            "thresholds": [
                {"percentage": t.percentage, "recipients": list(t.recipients)} for t in self.thresholds
            ],
            "alerts_enabled": self.alerts_enabled,
            "status": self.status.value,
            "actual_spend": round(self.actual_spend, 2),
            "percent_used": round(self.percent_used, 2),
        }
