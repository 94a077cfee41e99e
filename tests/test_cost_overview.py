"""Tests for cost overview and period comparison"""

from datetime import date

import pytest

from cloudspend.analysis.cost_overview import build_cost_overview, compare_periods, compare_trailing_periods
from cloudspend.core.base.cost import DailyCost


@pytest.fixture
def two_days():
    return [
        DailyCost(date(2024, 1, 1), 100.0, breakdown={"aws": 60.0, "azure": 40.0},
                  services={"compute": 70.0, "storage": 30.0}),
        DailyCost(date(2024, 1, 2), 100.0, breakdown={"aws": 90.0, "gcp": 10.0},
                  services={"compute": 80.0, "network": 20.0}),
    ]


class TestCostOverview:
    """Test overview aggregation"""

    def test_totals(self, two_days):
        overview = build_cost_overview(two_days)

        assert overview.period == 2
        assert overview.total_cost == 200
        assert overview.average_daily == 100

    def test_provider_breakdown(self, two_days):
        overview = build_cost_overview(two_days)

        assert [(s.key, s.total, s.percentage) for s in overview.by_provider] == [
            ("aws", 150, 75.0),
            ("azure", 40, 20.0),
            ("gcp", 10, 5.0),
        ]
        assert overview.by_provider[0].name == "Amazon Web Services"

    def test_service_type_breakdown(self, two_days):
        overview = build_cost_overview(two_days)

        assert overview.by_service_type[0].key == "compute"
        assert overview.by_service_type[0].name == "Compute"
        assert overview.by_service_type[0].total == 150

    def test_extreme_days(self, make_daily_costs):
        overview = build_cost_overview(make_daily_costs([50, 300, 10, 120]))

        assert overview.highest_day.total == 300
        assert overview.lowest_day.total == 10
        assert overview.by_provider == []

    def test_empty(self):
        overview = build_cost_overview([])

        assert overview.total_cost == 0
        assert overview.average_daily == 0
        assert overview.highest_day is None
        assert overview.to_dict()["summary"] == {"highest_day": None, "lowest_day": None}


class TestComparePeriods:
    """Test period-over-period comparison"""

    def test_increase(self, make_daily_costs):
        comparison = compare_periods(make_daily_costs([150] * 10), make_daily_costs([100] * 10))

        assert comparison.absolute_change == 500
        assert comparison.percent_change == 50
        assert comparison.direction == "increase"
        assert comparison.insight == "Costs increased by 50.0% compared to previous period"

    def test_decrease(self, make_daily_costs):
        comparison = compare_periods(make_daily_costs([50] * 10), make_daily_costs([100] * 10))

        assert comparison.direction == "decrease"
        assert comparison.insight == "Costs decreased by 50.0% compared to previous period"

    def test_small_change_is_stable(self, make_daily_costs):
        comparison = compare_periods(make_daily_costs([105] * 10), make_daily_costs([100] * 10))

        assert comparison.direction == "increase"
        assert comparison.insight == "Costs remained stable compared to previous period"

    def test_no_previous_data(self, make_daily_costs):
        comparison = compare_periods(make_daily_costs([100] * 5), [])

        assert comparison.percent_change == 0
        assert comparison.previous_total == 0

    def test_to_dict(self, make_daily_costs):
        data = compare_periods(make_daily_costs([100]), make_daily_costs([100])).to_dict()

        assert data["change"]["direction"] == "no_change"
        assert data["current"] == {"total": 100, "avg_daily": 100}


class TestCompareTrailingPeriods:
    """Test last-N-days against the N days before"""

    def test_week_over_week(self, make_daily_costs):
        comparison = compare_trailing_periods(make_daily_costs([999] * 3 + [100] * 7 + [120] * 7), days=7)

        assert comparison.previous_total == 700
        assert comparison.current_total == 840
        assert comparison.percent_change == 20
        assert comparison.direction == "increase"

    def test_not_enough_history(self, make_daily_costs):
        assert compare_trailing_periods(make_daily_costs([100] * 13), days=7) is None

    def test_invalid_days(self, make_daily_costs):
        with pytest.raises(ValueError):
            compare_trailing_periods(make_daily_costs([100] * 20), days=0)
