"""Tests for synthetic data generators"""

from datetime import date, timedelta

from cloudspend.collectors.synthetic import (
    SERVICES, generate_cost_records, generate_daily_costs, generate_resources, generate_service_costs
)

END = date(2024, 3, 31)


class TestGenerateDailyCosts:
    def test_shape(self):
        days = generate_daily_costs(days=30, seed=1, end_date=END)

        assert len(days) == 30
        assert days[-1].date == END
        assert days[0].date == END - timedelta(days=29)
        assert all(b.date - a.date == timedelta(days=1) for a, b in zip(days, days[1:]))

    def test_bounds(self):
        days = generate_daily_costs(days=365, seed=7, end_date=END)

        # 150 * 0.7 * 0.8 at the low end, 150 * 1.2 * 2.5 at the high end
        assert all(84 <= d.total <= 450 for d in days)
        assert set(days[0].breakdown) == {"aws", "azure", "gcp"}
        assert set(days[0].services) == {"compute", "storage", "database", "network"}

    def test_weekends_cheaper_on_average(self):
        days = generate_daily_costs(days=364, seed=3, end_date=END)
        weekday = [d.total for d in days if d.date.weekday() < 5]
        weekend = [d.total for d in days if d.date.weekday() >= 5]

        assert sum(weekend) / len(weekend) < sum(weekday) / len(weekday)

    def test_seeded(self):
        assert generate_daily_costs(seed=42, end_date=END) == generate_daily_costs(seed=42, end_date=END)
        assert generate_daily_costs(seed=1, end_date=END) != generate_daily_costs(seed=2, end_date=END)


class TestGenerateServices:
    def test_service_costs(self):
        series = generate_service_costs(days=14, seed=5, end_date=END)

        assert [s.service_name for s in series] == [name for name, _, _ in SERVICES]
        assert all(len(s.data_points) == 14 for s in series)
        assert series[0].data_points[-1][0] == END

    def test_cost_records(self):
        records = generate_cost_records(days=10, seed=5, end_date=END)

        assert len(records) == 10 * len(SERVICES)
        assert {r.cloud_provider for r in records} == {"aws", "azure", "gcp"}


class TestGenerateResources:
    def test_resources(self):
        resources = generate_resources(count=12, seed=9)

        assert len(resources) == 12
        assert len({r.resource_id for r in resources}) == 12
        assert all(1 <= r.utilization.cpu <= 85 for r in resources)
        assert all(20 <= r.monthly_cost <= 600 for r in resources)
        assert all(set(r.tags) == {"environment", "team"} for r in resources)

    def test_seeded(self):
        assert generate_resources(seed=9) == generate_resources(seed=9)
