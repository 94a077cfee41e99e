"""
Cost Monitoring
Budget threshold checks, week-over-week service spike detection and daily
summaries. Every entry point logs and reports failures instead of raising.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from ..core.base.budget import Budget, BudgetPeriod, BudgetStatus
from ..core.base.cost import CostRecord
from ..core.config import SchedulerConfig
from .guard import AlertGuard
from .service import AlertService

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

RECORD_COLUMNS = ["date", "cloud_provider", "service_name", "cost"]


class CostRepository(ABC):
    """Read access to billed cost records"""

    @abstractmethod
    def total_between(self, start: date, end: date, cloud_provider: Optional[str] = None) -> float:
        """Sum of costs with start <= date <= end"""
        pass

    @abstractmethod
    def average_daily_by_service(self, start: date, end: date) -> Dict[Tuple[str, str], float]:
        """Average daily cost per (provider, service) over the days that have data"""
        pass

    @abstractmethod
    def top_services(self, start: date, end: date, limit: int = 5) -> List[Tuple[str, float]]:
        """Highest-spend services in the range"""
        pass


class InMemoryCostRepository(CostRepository):
    """Cost records held in a pandas DataFrame"""

    def __init__(self, records: Iterable[CostRecord] = ()):
        self._frame = pd.DataFrame(columns=RECORD_COLUMNS)
        self.add(records)

    def add(self, records: Iterable[CostRecord]):
        rows = [
            {"date": r.date, "cloud_provider": r.cloud_provider, "service_name": r.service_name, "cost": r.cost}
            for r in records
        ]
        if not rows:
            return
        new = pd.DataFrame(rows, columns=RECORD_COLUMNS)
        self._frame = new if self._frame.empty else pd.concat([self._frame, new], ignore_index=True)

    def __len__(self) -> int:
        return len(self._frame)

    def _between(self, start: date, end: date) -> pd.DataFrame:
        frame = self._frame
        return frame[(frame["date"] >= start) & (frame["date"] <= end)]

    def total_between(self, start: date, end: date, cloud_provider: Optional[str] = None) -> float:
        rows = self._between(start, end)
        if cloud_provider:
            rows = rows[rows["cloud_provider"] == cloud_provider]
        return float(rows["cost"].sum()) if not rows.empty else 0.0

    def average_daily_by_service(self, start: date, end: date) -> Dict[Tuple[str, str], float]:
        rows = self._between(start, end)
        if rows.empty:
            return {}
        daily = rows.groupby(["cloud_provider", "service_name", "date"])["cost"].sum()
        averages = daily.groupby(level=["cloud_provider", "service_name"]).mean()
        return {(provider, service): float(value) for (provider, service), value in averages.items()}

    def top_services(self, start: date, end: date, limit: int = 5) -> List[Tuple[str, float]]:
        rows = self._between(start, end)
        if rows.empty:
            return []
        totals = rows.groupby("service_name")["cost"].sum().sort_values(ascending=False).head(limit)
        return [(str(name), float(cost)) for name, cost in totals.items()]


@dataclass
class MonitorResult:
    """Outcome of one monitoring task"""
    success: bool
    alerts_sent: int = 0
    error: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"success": self.success, "alerts_sent": self.alerts_sent}
        if self.error:
            result["error"] = self.error
        result.update(self.details)
        return result


class CostMonitor:
    """
    Runs the recurring cost checks.

    Alerts are de-duplicated with an AlertGuard: a budget threshold or a
    service spike alerts at most once per cooldown window, even when checks
    overlap.
    """

    WEEK = 7

    def __init__(self, repository: CostRepository, alert_service: AlertService,
                 clock: Optional[Clock] = None, guard: Optional[AlertGuard] = None,
                 config: Optional[SchedulerConfig] = None):
        self.repository = repository
        self.alert_service = alert_service
        self.clock = clock or datetime.now
        self.config = config or SchedulerConfig()
        self.guard = guard or AlertGuard(timedelta(hours=self.config.alert_cooldown_hours))

    def check_budget_thresholds(self, budgets: Sequence[Budget]) -> MonitorResult:
        """Update each budget's spend and alert on newly crossed thresholds"""
        logger.info("Checking budget thresholds...")
        now = self.clock()
        alerts_sent = 0

        try:
            for budget in budgets:
                if not budget.is_active:
                    continue

                start = budget.period.start_of(now)
                provider = None if budget.covers_all_providers else budget.cloud_provider
                budget.actual_spend = self.repository.total_between(start.date(), now.date(), provider)
                percentage_used = budget.percent_used

                if percentage_used >= 100:
                    budget.status = BudgetStatus.EXCEEDED

                if not budget.alerts_enabled:
                    continue

                for threshold in sorted(budget.thresholds, key=lambda t: t.percentage):
                    if percentage_used < threshold.percentage:
                        continue
                    key = f"budget:{budget.name}:{threshold.percentage:g}"
                    if not self.guard.try_acquire(key, now):
                        continue

                    try:
                        alerts = self.alert_service.send_budget_alert(
                            budget_name=budget.name,
                            budget_amount=budget.amount,
                            current_spend=budget.actual_spend,
                            percentage_used=percentage_used,
                            threshold=threshold.percentage,
                            recipients=list(threshold.recipients) or None,
                            cloud_provider=budget.cloud_provider,
                        )
                    except Exception:
                        # a failed send must not consume the cooldown
                        self.guard.reset(key)
                        raise
                    budget.last_alerts[threshold.percentage] = now
                    alerts_sent += len(alerts)
                    logger.info(f"Alert sent for {budget.name} at {threshold.percentage:g}% threshold",
                                extra={"budget": budget.name})
        except Exception as e:
            logger.error(f"Error checking budget thresholds: {e}")
            return MonitorResult(success=False, alerts_sent=alerts_sent, error=str(e))

        logger.info(f"Total budget alerts sent: {alerts_sent}")
        return MonitorResult(success=True, alerts_sent=alerts_sent)

    def detect_cost_spikes(self) -> MonitorResult:
        """Compare each service's last-7-day average with the 7 days before"""
        logger.info("Detecting cost spikes...")
        now = self.clock()
        today = now.date()
        threshold = self.config.spike_threshold_percent
        alerts_sent = 0
        spikes = 0

        try:
            recent = self.repository.average_daily_by_service(today - timedelta(days=self.WEEK - 1), today)
            previous = self.repository.average_daily_by_service(
                today - timedelta(days=self.WEEK * 2 - 1), today - timedelta(days=self.WEEK)
            )

            for (provider, service), current_avg in sorted(recent.items()):
                previous_avg = previous.get((provider, service), 0.0)
                if previous_avg <= 0 or current_avg <= previous_avg:
                    continue

                spike_percentage = (current_avg - previous_avg) / previous_avg * 100
                if spike_percentage < threshold or current_avg <= self.config.spike_min_daily_cost:
                    continue

                spikes += 1
                logger.warning(f"Spike detected: {service} ({spike_percentage:.1f}%)",
                               extra={"provider": provider, "service": service})

                key = f"spike:{provider}:{service}"
                if not self.guard.try_acquire(key, now):
                    continue

                try:
                    alerts = self.alert_service.send_spike_alert(
                        service_name=service,
                        cloud_provider=provider,
                        current_cost=current_avg,
                        average_cost=previous_avg,
                        spike_percentage=spike_percentage,
                    )
                except Exception:
                    self.guard.reset(key)
                    raise
                alerts_sent += len(alerts)
        except Exception as e:
            logger.error(f"Error detecting cost spikes: {e}")
            return MonitorResult(success=False, alerts_sent=alerts_sent, error=str(e))

        logger.info(f"Total spike alerts sent: {alerts_sent}")
        return MonitorResult(success=True, alerts_sent=alerts_sent, details={"spikes_detected": spikes})

    def send_daily_summary(self, budgets: Sequence[Budget] = (),
                           recommendation_count: int = 0) -> MonitorResult:
        """E-mail today's spend, top services and the daily budget"""
        logger.info("Sending daily summary...")
        today = self.clock().date()

        try:
            total_spend = self.repository.total_between(today, today)
            top_services = self.repository.top_services(today, today, limit=5)

            monthly = next((b for b in budgets if b.period == BudgetPeriod.MONTHLY), None)
            daily_budget = monthly.daily_budget if monthly else self.config.default_daily_budget

            alerts = self.alert_service.send_summary_alert(
                period="Daily",
                total_spend=total_spend,
                budget_amount=daily_budget,
                top_services=top_services,
                recommendations=recommendation_count,
            )
        except Exception as e:
            logger.error(f"Error sending daily summary: {e}")
            return MonitorResult(success=False, error=str(e))

        logger.info(f"Daily summary sent to {len(alerts)} recipients")
        return MonitorResult(success=True, alerts_sent=len(alerts),
                             details={"total_spend": round(total_spend, 2), "daily_budget": round(daily_budget, 2)})

    def run_monitoring(self, budgets: Sequence[Budget]) -> Dict[str, MonitorResult]:
        """Budget check followed by spike detection"""
        logger.info("Starting cost monitoring...")
        results = {
            "budget_check": self.check_budget_thresholds(budgets),
            "spike_detection": self.detect_cost_spikes(),
        }
        logger.info("Monitoring complete")
        return results
