"""Pytest configuration and fixtures"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

import pytest

from cloudspend.alerts.messages import AlertMessage
from cloudspend.alerts.notifiers import Alert, Notifier
from cloudspend.core.base.budget import Budget, BudgetPeriod, BudgetThreshold
from cloudspend.core.base.cost import CostRecord, DailyCost, ServiceCostSeries
from cloudspend.core.base.resource import Resource, ResourceUtilization
from cloudspend.core.monitoring import MetricsCollector

# A Monday
START = date(2024, 1, 1)


class FakeClock:
    """Manually advanced clock for the scheduler and monitor"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class RecordingNotifier(Notifier):
    """Notifier that keeps every message instead of delivering it"""

    def __init__(self, channel: str = "email", delivered: bool = True):
        self.channel = channel
        self.delivered = delivered
        self.sent = []

    def send(self, message: AlertMessage, recipient: Optional[str] = None) -> Alert:
        self.sent.append((message, recipient))
        return self._record(message, recipient, delivered=self.delivered)


@pytest.fixture
def make_daily_costs():
    """Build a consecutive daily series from a list of totals"""
    def _make(values, start: date = START, breakdown=None, services=None) -> List[DailyCost]:
        return [
            DailyCost(
                date=start + timedelta(days=i),
                total=float(value),
                breakdown=dict(breakdown or {}),
                services=dict(services or {}),
            )
            for i, value in enumerate(values)
        ]
    return _make


@pytest.fixture
def make_service():
    """Build a service cost series from a list of daily costs"""
    def _make(name: str, values, provider: str = "aws", start: date = START) -> ServiceCostSeries:
        return ServiceCostSeries(
            service_name=name,
            cloud_provider=provider,
            data_points=tuple((start + timedelta(days=i), float(v)) for i, v in enumerate(values)),
        )
    return _make


@pytest.fixture
def make_resource():
    """Build a resource with the given utilization"""
    counter = iter(range(1000))

    def _make(cpu: Optional[float] = None, memory: Optional[float] = None, cost: float = 100.0,
              resource_type: str = "ec2_instance", region: str = "us-east-1", **kwargs) -> Resource:
        index = next(counter)
        utilization = None
        if cpu is not None or memory is not None:
            utilization = ResourceUtilization(cpu=cpu or 0.0, memory=memory or 0.0)
        return Resource(
            resource_id=kwargs.pop("resource_id", f"i-{index:04d}"),
            resource_type=resource_type,
            monthly_cost=cost,
            region=region,
            utilization=utilization,
            **kwargs,
        )
    return _make


@pytest.fixture
def sample_resources(make_resource):
    """Sample cloud resources for testing"""
    return [
        make_resource(cpu=8, memory=12, cost=348.0, name="web-server-1"),
        make_resource(cpu=1, memory=2, cost=200.0, name="batch-worker"),
        make_resource(cpu=55, memory=70, cost=500.0, name="api-server"),
    ]


@pytest.fixture
def make_records():
    """Cost records for one service over an inclusive date range"""
    def _make(service: str, start: date, end: date, cost: float, provider: str = "aws") -> List[CostRecord]:
        days = (end - start).days + 1
        return [
            CostRecord(date=start + timedelta(days=i), cloud_provider=provider, service_name=service, cost=cost)
            for i in range(days)
        ]
    return _make


@pytest.fixture
def monthly_budget():
    return Budget(
        name="Monthly Cloud Budget",
        amount=400.0,
        period=BudgetPeriod.MONTHLY,
        thresholds=[BudgetThreshold(50.0), BudgetThreshold(80.0), BudgetThreshold(100.0)],
    )


@pytest.fixture
def fake_clock():
    return FakeClock(datetime(2024, 5, 15, 10, 0))


@pytest.fixture
def email_notifier():
    return RecordingNotifier("email")


@pytest.fixture
def make_notifier():
    """Build recording notifiers for other channels"""
    return RecordingNotifier


@pytest.fixture
def metrics_collector():
    """Create metrics collector"""
    return MetricsCollector()


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset singleton instances between tests"""
    import cloudspend.core.config as config_module
    config_module.settings = None
    yield
    config_module.settings = None


@pytest.fixture(autouse=True)
def restore_root_logger():
    """setup_logging replaces the root handlers; put them back after each test"""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


def pytest_configure(config):
    """Configure pytest"""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow"
    )
