"""Tests for daily cost pattern opportunities"""

import pytest

from cloudspend.analysis.cost_patterns import CostPatternAnalyzer


def _types(report):
    return [o.opportunity_type for o in report.opportunities]


class TestCostPatternAnalyzer:
    """Test weekend, stability and peak-day heuristics"""

    def test_flat_spend_suggests_weekend_schedule(self, make_daily_costs):
        # 4 full weeks starting on a Monday
        report = CostPatternAnalyzer().identify(make_daily_costs([100] * 28))

        assert _types(report) == ["weekend_optimization"]
        weekend = report.opportunities[0]
        assert weekend.potential_savings == 280
        assert weekend.current_cost == 800
        assert weekend.confidence == 85

    def test_cheap_weekends_are_not_flagged(self, make_daily_costs):
        week = [100] * 5 + [10, 10]
        report = CostPatternAnalyzer().identify(make_daily_costs(week * 4))

        assert "weekend_optimization" not in _types(report)

    def test_variable_spend_suggests_commitments(self, make_daily_costs):
        week = [100] * 5 + [10, 10]
        report = CostPatternAnalyzer().identify(make_daily_costs(week * 4))

        stability = next(o for o in report.opportunities if o.opportunity_type == "cost_stability")
        assert stability.confidence == 75
        assert stability.potential_savings == round(stability.current_cost * 0.15, 2)

    def test_peak_days(self, make_daily_costs):
        report = CostPatternAnalyzer().identify(make_daily_costs([100] * 26 + [300] * 4))

        peak = next(o for o in report.opportunities if o.opportunity_type == "peak_optimization")
        assert peak.current_cost == 1200
        assert peak.potential_savings == 240

    def test_three_peak_days_are_not_enough(self, make_daily_costs):
        report = CostPatternAnalyzer().identify(make_daily_costs([100] * 27 + [300] * 3))
        assert "peak_optimization" not in _types(report)

    def test_invalid_period(self, make_daily_costs):
        with pytest.raises(ValueError):
            CostPatternAnalyzer().identify(make_daily_costs([100] * 28), period=0)

    def test_empty_series(self):
        report = CostPatternAnalyzer().identify([])

        assert report.opportunities == []
        assert report.total_potential_savings == 0

    def test_total_potential_savings(self, make_daily_costs):
        report = CostPatternAnalyzer().identify(make_daily_costs([100] * 26 + [300] * 4))

        assert report.total_potential_savings == round(sum(o.potential_savings for o in report.opportunities), 2)
        assert report.to_dict()["total_opportunities"] == len(report.opportunities)
