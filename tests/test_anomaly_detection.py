"""Tests for anomaly and spike detection"""

import json
from datetime import date, datetime, timezone

import pytest

from cloudspend.analysis.anomaly_detection import (
    AnomalyDetector, AnomalySeverity, CostSpikeDetector, SpikeSeverity,
    calculate_health_score, health_label, run_full_analysis
)


class TestAnomalyDetector:
    """Test statistical anomaly detection"""

    def test_constant_series_has_no_anomalies(self, make_daily_costs):
        report = AnomalyDetector().detect(make_daily_costs([120] * 30))

        assert report.total_anomalies == 0
        assert report.total_warnings == 0
        assert report.health_score == 100

    def test_injected_outlier_is_error(self, make_daily_costs):
        days = make_daily_costs([100] * 29 + [1000])
        report = AnomalyDetector().detect(days)

        assert report.total_anomalies == 1
        anomaly = report.anomalies[0]
        assert anomaly.date == days[-1].date
        assert anomaly.severity == AnomalySeverity.ERROR
        assert anomaly.actual_cost == 1000
        assert anomaly.expected_cost == 130
        assert report.health_score == 85

    def test_eight_day_scenario(self, make_daily_costs):
        days = make_daily_costs([100] * 7 + [500])
        report = AnomalyDetector().detect(days, period=8)

        assert report.statistics.mean == pytest.approx(150.0)
        assert report.statistics.std_dev == pytest.approx(132.29, abs=0.01)
        assert report.error_threshold == pytest.approx(414.58, abs=0.01)
        assert [a.date for a in report.anomalies] == [date(2024, 1, 8)]
        assert report.anomalies[0].z_score == pytest.approx(2.65, abs=0.01)
        assert report.anomalies[0].deviation_percent == pytest.approx(233.33, abs=0.01)

    def test_warning_between_thresholds(self, make_daily_costs):
        # one outlier among n equal values has z = sqrt(n - 1)
        report = AnomalyDetector().detect(make_daily_costs([100, 100, 100, 200]))

        assert report.total_anomalies == 0
        assert report.total_warnings == 1
        assert report.warnings[0].severity == AnomalySeverity.WARNING
        assert report.health_score == 95

    def test_only_trailing_period_is_analyzed(self, make_daily_costs):
        report = AnomalyDetector().detect(make_daily_costs([5000, 100, 100, 100]), period=3)

        assert report.period == 3
        assert report.total_anomalies == 0
        assert report.statistics.mean == 100

    def test_default_period(self, make_daily_costs):
        report = AnomalyDetector(default_period=10).detect(make_daily_costs([100] * 40))
        assert report.period == 10
        assert report.statistics.count == 10

    @pytest.mark.parametrize("period", [0, -5])
    def test_invalid_period(self, make_daily_costs, period):
        with pytest.raises(ValueError, match="period must be >= 1"):
            AnomalyDetector().detect(make_daily_costs([100] * 10), period=period)

    def test_invalid_default_period(self):
        with pytest.raises(ValueError):
            AnomalyDetector(default_period=0)

    def test_empty_series(self):
        report = AnomalyDetector().detect([])
        assert report.statistics.is_empty
        assert report.health_score == 100

    def test_detection_is_repeatable(self, make_daily_costs):
        days = make_daily_costs([100, 90, 130, 100, 400, 95, 105, 98])
        detector = AnomalyDetector()

        assert detector.detect(days).to_dict() == detector.detect(days).to_dict()

    def test_invalid_multipliers(self):
        with pytest.raises(ValueError):
            AnomalyDetector(error_multiplier=1.0, warning_multiplier=2.0)

    def test_to_dict(self, make_daily_costs):
        data = AnomalyDetector().detect(make_daily_costs([100] * 7 + [500]), period=8).to_dict()

        assert data["statistics"]["threshold"] == pytest.approx(414.58)
        assert data["anomalies"][0]["severity"] == "error"
        assert data["anomalies"][0]["date"] == "2024-01-08"
        json.dumps(data)


class TestHealthScore:
    """Test health score heuristic"""

    def test_penalties(self):
        assert calculate_health_score(0, 0) == 100
        assert calculate_health_score(1, 2) == 75

    def test_floor_at_zero(self):
        assert calculate_health_score(7, 3) == 0

    def test_labels(self):
        assert health_label(100) == "good"
        assert health_label(80) == "good"
        assert health_label(50) == "fair"
        assert health_label(49) == "poor"


class TestCostSpikeDetector:
    """Test trailing-average spike detection"""

    @pytest.mark.parametrize("last,severity", [
        (250, SpikeSeverity.CRITICAL),
        (180, SpikeSeverity.HIGH),
        (160, SpikeSeverity.MEDIUM),
    ])
    def test_severity_bands(self, make_daily_costs, last, severity):
        report = CostSpikeDetector().detect(make_daily_costs([100] * 7 + [last]))

        assert report.total_spikes == 1
        spike = report.spikes[0]
        assert spike.severity == severity
        assert spike.average_cost == 100
        assert spike.increase_percent == last - 100

    def test_threshold_is_exclusive(self, make_daily_costs):
        report = CostSpikeDetector().detect(make_daily_costs([100] * 7 + [150]))
        assert report.total_spikes == 0

    def test_zero_history_is_skipped(self, make_daily_costs):
        report = CostSpikeDetector().detect(make_daily_costs([0] * 7 + [100]))
        assert report.total_spikes == 0

    def test_short_series(self, make_daily_costs):
        assert CostSpikeDetector().detect(make_daily_costs([100, 900])).total_spikes == 0

    def test_breakdown_and_counts(self, make_daily_costs):
        days = make_daily_costs([100] * 7 + [300], breakdown={"aws": 1.0})
        report = CostSpikeDetector().detect(days)

        assert report.spikes[0].breakdown == {"aws": 1.0}
        assert report.count(SpikeSeverity.CRITICAL) == 1
        assert report.to_dict()["critical_spikes"] == 1
        assert "CRITICAL" in report.spikes[0].recommendation

    def test_classify_boundaries(self):
        assert CostSpikeDetector.classify(100) == SpikeSeverity.HIGH
        assert CostSpikeDetector.classify(100.1) == SpikeSeverity.CRITICAL
        assert CostSpikeDetector.classify(75) == SpikeSeverity.MEDIUM

    def test_invalid_lookback(self):
        with pytest.raises(ValueError):
            CostSpikeDetector(lookback_days=0)


class TestFullAnalysis:
    """Test combined analysis"""

    def test_summary(self, make_daily_costs):
        generated_at = datetime(2024, 2, 1, tzinfo=timezone.utc)
        days = make_daily_costs([100] * 29 + [1000])
        result = run_full_analysis(days, period=30, generated_at=generated_at)

        summary = result.summary()
        assert summary["total_anomalies"] == 1
        assert summary["total_spikes"] == 1
        assert summary["critical_issues"] == 2
        assert summary["health_score"] == 85
        assert summary["overall_health"] == "good"
        assert len(result.moving_averages) == 14

    def test_invalid_period(self, make_daily_costs):
        with pytest.raises(ValueError, match="period must be >= 1"):
            run_full_analysis(make_daily_costs([100] * 10), period=-3)

    def test_to_dict_is_json_serializable(self, make_daily_costs):
        generated_at = datetime(2024, 2, 1, tzinfo=timezone.utc)
        data = run_full_analysis(make_daily_costs([100] * 20), generated_at=generated_at).to_dict()

        assert data["generated_at"] == "2024-02-01T00:00:00+00:00"
        assert set(data) == {
            "period", "generated_at", "anomaly_detection", "spike_detection",
            "optimization_opportunities", "moving_averages", "summary",
        }
        json.dumps(data)
