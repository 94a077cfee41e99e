"""Tests for cost monitoring"""

from datetime import date
from typing import Optional

import pytest

from cloudspend.alerts.messages import AlertMessage
from cloudspend.alerts.monitor import CostMonitor, InMemoryCostRepository, MonitorResult
from cloudspend.alerts.notifiers import Alert, Notifier
from cloudspend.alerts.service import AlertService
from cloudspend.core.base.budget import Budget, BudgetPeriod, BudgetStatus, BudgetThreshold
from cloudspend.core.base.cost import CostRecord

# fake_clock stands at Wednesday 2024-05-15 10:00
TODAY = date(2024, 5, 15)


class BrokenRepository(InMemoryCostRepository):
    def total_between(self, start, end, cloud_provider=None):
        raise RuntimeError("database unavailable")

    def average_daily_by_service(self, start, end):
        raise RuntimeError("database unavailable")


class FlakyNotifier(Notifier):
    """Raises on the first sends, then delegates"""

    channel = "email"

    def __init__(self, delegate: Notifier, failures: int = 1):
        self.delegate = delegate
        self.failures = failures

    def send(self, message: AlertMessage, recipient: Optional[str] = None) -> Alert:
        if self.failures:
            self.failures -= 1
            raise RuntimeError("smtp timeout")
        return self.delegate.send(message, recipient)


@pytest.fixture
def make_monitor(fake_clock, email_notifier):
    def _make(records=(), repository=None, notifier=None, **kwargs):
        return CostMonitor(
            repository=repository if repository is not None else InMemoryCostRepository(records),
            alert_service=AlertService(email=notifier or email_notifier),
            clock=fake_clock,
            **kwargs,
        )
    return _make


class TestInMemoryCostRepository:
    """Test the DataFrame-backed repository"""

    def test_total_between_is_inclusive(self, make_records):
        repo = InMemoryCostRepository(make_records("EC2", date(2024, 5, 1), date(2024, 5, 10), 10))

        assert repo.total_between(date(2024, 5, 1), date(2024, 5, 10)) == 100
        assert repo.total_between(date(2024, 5, 10), date(2024, 5, 10)) == 10
        assert repo.total_between(date(2024, 6, 1), date(2024, 6, 30)) == 0

    def test_provider_filter(self, make_records):
        repo = InMemoryCostRepository(
            make_records("EC2", date(2024, 5, 1), date(2024, 5, 2), 10)
            + make_records("VMs", date(2024, 5, 1), date(2024, 5, 2), 7, provider="azure")
        )

        assert repo.total_between(date(2024, 5, 1), date(2024, 5, 2), "azure") == 14
        assert len(repo) == 4

    def test_average_daily_by_service(self):
        repo = InMemoryCostRepository([
            CostRecord(date(2024, 5, 1), "aws", "EC2", 10),
            CostRecord(date(2024, 5, 1), "aws", "EC2", 20),
            CostRecord(date(2024, 5, 3), "aws", "EC2", 60),
            CostRecord(date(2024, 5, 1), "gcp", "BigQuery", 5),
        ])

        averages = repo.average_daily_by_service(date(2024, 5, 1), date(2024, 5, 7))

        assert averages == {("aws", "EC2"): 45.0, ("gcp", "BigQuery"): 5.0}

    def test_top_services(self, make_records):
        repo = InMemoryCostRepository(
            make_records("EC2", TODAY, TODAY, 50)
            + make_records("S3", TODAY, TODAY, 30)
            + make_records("RDS", TODAY, TODAY, 40)
        )

        assert repo.top_services(TODAY, TODAY, limit=2) == [("EC2", 50.0), ("RDS", 40.0)]

    def test_empty(self):
        repo = InMemoryCostRepository()

        assert repo.total_between(TODAY, TODAY) == 0
        assert repo.average_daily_by_service(TODAY, TODAY) == {}
        assert repo.top_services(TODAY, TODAY) == []

    def test_add(self, make_records):
        repo = InMemoryCostRepository()
        repo.add(make_records("EC2", TODAY, TODAY, 5))
        repo.add([])

        assert len(repo) == 1


class TestBudgetChecks:
    """Test budget threshold alerts"""

    def test_crossed_threshold_alerts_once(self, make_monitor, make_records, monthly_budget, email_notifier):
        # 15 days at 20 against 400 is 75%
        monitor = make_monitor(make_records("EC2", date(2024, 5, 1), TODAY, 20))

        result = monitor.check_budget_thresholds([monthly_budget])

        assert result.success
        assert result.alerts_sent == 1
        assert monthly_budget.actual_spend == 300
        assert monthly_budget.percent_used == 75
        assert monthly_budget.status == BudgetStatus.ACTIVE
        message, recipient = email_notifier.sent[0]
        assert message.subject == "Budget Alert: Monthly Cloud Budget - 75.0% Used"
        assert recipient == "admin@company.com"
        assert 50.0 in monthly_budget.last_alerts

    def test_repeated_checks_do_not_realert(self, make_monitor, make_records, monthly_budget):
        monitor = make_monitor(make_records("EC2", date(2024, 5, 1), TODAY, 20))

        monitor.check_budget_thresholds([monthly_budget])
        second = monitor.check_budget_thresholds([monthly_budget])

        assert second.success
        assert second.alerts_sent == 0

    def test_realerts_after_cooldown(self, make_monitor, make_records, monthly_budget, fake_clock):
        monitor = make_monitor(make_records("EC2", date(2024, 5, 1), TODAY, 20))
        monitor.check_budget_thresholds([monthly_budget])

        fake_clock.advance(hours=25)

        assert monitor.check_budget_thresholds([monthly_budget]).alerts_sent == 1

    def test_failed_send_does_not_start_cooldown(self, make_monitor, make_records, monthly_budget,
                                                 email_notifier, fake_clock):
        monitor = make_monitor(make_records("EC2", date(2024, 5, 1), TODAY, 20),
                               notifier=FlakyNotifier(email_notifier))

        first = monitor.check_budget_thresholds([monthly_budget])
        assert not first.success
        assert first.error == "smtp timeout"
        assert monitor.guard.last_fired("budget:Monthly Cloud Budget:50") is None

        fake_clock.advance(hours=1)
        second = monitor.check_budget_thresholds([monthly_budget])

        assert second.success
        assert second.alerts_sent == 1
        assert len(email_notifier.sent) == 1

    def test_exceeded_budget(self, make_monitor, make_records, monthly_budget, email_notifier):
        monitor = make_monitor(make_records("EC2", date(2024, 5, 1), TODAY, 30))

        result = monitor.check_budget_thresholds([monthly_budget])

        assert result.alerts_sent == 3
        assert monthly_budget.status == BudgetStatus.EXCEEDED
        assert email_notifier.sent[-1][0].subject == "Budget Alert: Monthly Cloud Budget - 112.5% Used"

    def test_spend_before_period_ignored(self, make_monitor, make_records, monthly_budget):
        monitor = make_monitor(make_records("EC2", date(2024, 4, 1), date(2024, 4, 30), 100))

        result = monitor.check_budget_thresholds([monthly_budget])

        assert result.alerts_sent == 0
        assert monthly_budget.actual_spend == 0

    def test_weekly_period(self, make_monitor, make_records):
        budget = Budget(name="Weekly", amount=100, period=BudgetPeriod.WEEKLY,
                        thresholds=[BudgetThreshold(50)])
        # only Sunday 12 May onwards counts
        monitor = make_monitor(make_records("EC2", date(2024, 5, 10), TODAY, 10))

        monitor.check_budget_thresholds([budget])

        assert budget.actual_spend == 40

    def test_provider_scope(self, make_monitor, make_records):
        budget = Budget(name="Azure", amount=400, cloud_provider="azure", thresholds=[BudgetThreshold(50)])
        monitor = make_monitor(
            make_records("EC2", date(2024, 5, 1), TODAY, 100)
            + make_records("VMs", date(2024, 5, 1), TODAY, 10, provider="azure")
        )

        result = monitor.check_budget_thresholds([budget])

        assert budget.actual_spend == 150
        assert result.alerts_sent == 0

    def test_alerts_disabled(self, make_monitor, make_records, monthly_budget, email_notifier):
        monthly_budget.alerts_enabled = False
        monitor = make_monitor(make_records("EC2", date(2024, 5, 1), TODAY, 30))

        result = monitor.check_budget_thresholds([monthly_budget])

        assert result.alerts_sent == 0
        assert monthly_budget.actual_spend == 450
        assert monthly_budget.status == BudgetStatus.EXCEEDED
        assert email_notifier.sent == []

    def test_inactive_budget_skipped(self, make_monitor, make_records, monthly_budget):
        monthly_budget.status = BudgetStatus.INACTIVE
        monitor = make_monitor(make_records("EC2", date(2024, 5, 1), TODAY, 30))

        monitor.check_budget_thresholds([monthly_budget])

        assert monthly_budget.actual_spend == 0

    def test_threshold_recipients(self, make_monitor, make_records, email_notifier):
        budget = Budget(name="Team", amount=100,
                        thresholds=[BudgetThreshold(50, ("finance@example.com", "cto@example.com"))])
        monitor = make_monitor(make_records("EC2", date(2024, 5, 1), TODAY, 5))

        result = monitor.check_budget_thresholds([budget])

        assert result.alerts_sent == 2
        assert [r for _, r in email_notifier.sent] == ["finance@example.com", "cto@example.com"]

    def test_repository_failure(self, make_monitor, monthly_budget):
        result = make_monitor(repository=BrokenRepository()).check_budget_thresholds([monthly_budget])

        assert not result.success
        assert result.error == "database unavailable"
        assert result.to_dict() == {"success": False, "alerts_sent": 0, "error": "database unavailable"}


class TestSpikeDetection:
    """Test week-over-week service spikes"""

    def _history(self, make_records, service, previous, recent, provider="aws"):
        return (
            make_records(service, date(2024, 5, 2), date(2024, 5, 8), previous, provider=provider)
            + make_records(service, date(2024, 5, 9), TODAY, recent, provider=provider)
        )

    def test_spike_alerts(self, make_monitor, make_records, email_notifier):
        monitor = make_monitor(self._history(make_records, "EC2", 100, 200))

        result = monitor.detect_cost_spikes()

        assert result.success
        assert result.details["spikes_detected"] == 1
        assert result.alerts_sent == 1
        assert email_notifier.sent[0][0].subject == "Cost Spike Detected: EC2 (AWS)"

    def test_below_threshold(self, make_monitor, make_records):
        result = make_monitor(self._history(make_records, "EC2", 100, 140)).detect_cost_spikes()
        assert result.details["spikes_detected"] == 0

    def test_small_services_ignored(self, make_monitor, make_records):
        result = make_monitor(self._history(make_records, "Lambda", 2, 8)).detect_cost_spikes()
        assert result.details["spikes_detected"] == 0

    def test_new_service_ignored(self, make_monitor, make_records):
        monitor = make_monitor(make_records("EKS", date(2024, 5, 9), TODAY, 500))
        assert monitor.detect_cost_spikes().details["spikes_detected"] == 0

    def test_custom_threshold(self, make_monitor, make_records):
        from cloudspend.core.config import SchedulerConfig

        monitor = make_monitor(self._history(make_records, "EC2", 100, 140),
                               config=SchedulerConfig(spike_threshold_percent=30))
        assert monitor.detect_cost_spikes().details["spikes_detected"] == 1

    def test_spike_alert_deduplicated(self, make_monitor, make_records):
        monitor = make_monitor(self._history(make_records, "EC2", 100, 200))
        monitor.detect_cost_spikes()

        second = monitor.detect_cost_spikes()

        assert second.details["spikes_detected"] == 1
        assert second.alerts_sent == 0

    def test_failed_send_does_not_start_cooldown(self, make_monitor, make_records, email_notifier, fake_clock):
        monitor = make_monitor(self._history(make_records, "EC2", 100, 200),
                               notifier=FlakyNotifier(email_notifier))

        assert not monitor.detect_cost_spikes().success

        fake_clock.advance(hours=1)
        second = monitor.detect_cost_spikes()

        assert second.alerts_sent == 1
        assert email_notifier.sent[0][0].subject == "Cost Spike Detected: EC2 (AWS)"

    def test_services_keyed_by_provider(self, make_monitor, make_records):
        records = (self._history(make_records, "Storage", 100, 200)
                   + self._history(make_records, "Storage", 100, 100, provider="azure"))

        assert make_monitor(records).detect_cost_spikes().details["spikes_detected"] == 1

    def test_repository_failure(self, make_monitor):
        result = make_monitor(repository=BrokenRepository()).detect_cost_spikes()

        assert not result.success
        assert result.error == "database unavailable"


class TestDailySummary:
    """Test the daily summary"""

    def test_summary(self, make_monitor, make_records, monthly_budget, email_notifier):
        monitor = make_monitor(
            make_records("EC2", TODAY, TODAY, 50)
            + make_records("S3", TODAY, TODAY, 30)
            + make_records("EC2", date(2024, 5, 14), date(2024, 5, 14), 999)
        )

        result = monitor.send_daily_summary([monthly_budget], recommendation_count=2)

        assert result.success
        assert result.alerts_sent == 1
        assert result.details == {"total_spend": 80.0, "daily_budget": 13.33}
        message = email_notifier.sent[0][0]
        assert message.subject == "Cloud Cost Summary - Daily"
        assert "1. EC2: $50.00" in message.body
        assert "*Active Recommendations:* 2" in message.body

    def test_default_daily_budget(self, make_monitor):
        result = make_monitor().send_daily_summary()

        assert result.details == {"total_spend": 0.0, "daily_budget": 1000.0}

    def test_repository_failure(self, make_monitor):
        result = make_monitor(repository=BrokenRepository()).send_daily_summary()
        assert not result.success


class TestRunMonitoring:
    def test_runs_both_checks(self, make_monitor, make_records, monthly_budget):
        monitor = make_monitor(make_records("EC2", date(2024, 5, 1), TODAY, 20))

        results = monitor.run_monitoring([monthly_budget])

        assert set(results) == {"budget_check", "spike_detection"}
        assert all(isinstance(r, MonitorResult) and r.success for r in results.values())
        assert results["spike_detection"].to_dict() == {"success": True, "alerts_sent": 0, "spikes_detected": 0}
