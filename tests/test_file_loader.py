"""Tests for input file loaders"""

import json
from datetime import date

import pytest

from cloudspend.collectors.file_loader import (
    load_analysis_request, load_cost_records_csv, load_daily_costs_csv
)
from cloudspend.core.exceptions import DataLoadError


@pytest.fixture
def document():
    return {
        "daily_costs": [
            {"date": "2024-01-02", "total": 120.0, "breakdown": {"aws": 80.0, "gcp": 40.0}},
            {"date": "2024-01-01", "total": 100.0},
        ],
        "service_costs": [
            {"service": "Amazon EC2", "data": [{"date": "2024-01-01", "cost": 40.0}]},
        ],
        "resources": [
            {"resource_id": "i-1", "resource_type": "ec2_instance", "monthly_cost": 250.0,
             "utilization": {"cpu": 10, "memory": 20}},
        ],
        "budgets": [
            {"name": "Monthly", "amount": 3000, "thresholds": [{"percentage": 80}]},
        ],
    }


class TestLoadAnalysisRequest:
    """Test JSON and YAML documents"""

    def test_json(self, tmp_path, document):
        path = tmp_path / "costs.json"
        path.write_text(json.dumps(document))

        request = load_analysis_request(path)

        assert [d.date for d in request.daily_cost_series()] == [date(2024, 1, 1), date(2024, 1, 2)]
        assert request.service_cost_series()[0].service_name == "Amazon EC2"
        assert request.resource_list()[0].utilization.cpu == 10
        assert request.budget_list()[0].thresholds[0].percentage == 80

    def test_yaml(self, tmp_path):
        path = tmp_path / "costs.yaml"
        path.write_text(
            "daily_costs:\n"
            "  - date: 2024-01-01\n"
            "    total: 100.5\n"
            "    services:\n"
            "      compute: 60.5\n"
        )

        days = load_analysis_request(str(path)).daily_cost_series()

        assert days[0].total == 100.5
        assert days[0].services == {"compute": 60.5}

    def test_bare_list(self, tmp_path):
        path = tmp_path / "days.json"
        path.write_text(json.dumps([{"date": "2024-01-01", "total": 10.0}]))

        assert len(load_analysis_request(path).daily_costs) == 1

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataLoadError, match="not found"):
            load_analysis_request(tmp_path / "missing.json")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{")

        with pytest.raises(DataLoadError, match="Could not parse"):
            load_analysis_request(path)

    def test_scalar_document(self, tmp_path):
        path = tmp_path / "scalar.yaml"
        path.write_text("42\n")

        with pytest.raises(DataLoadError, match="Unexpected document type"):
            load_analysis_request(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "negative.json"
        path.write_text(json.dumps({"daily_costs": [{"date": "2024-01-01", "total": -5.0}]}))

        with pytest.raises(DataLoadError, match="Invalid input"):
            load_analysis_request(path)


class TestLoadDailyCostsCsv:
    """Test daily cost CSV files"""

    def test_columns(self, tmp_path):
        path = tmp_path / "daily.csv"
        path.write_text(
            "date,total,aws,azure,service_compute,service_storage,notes\n"
            "2024-01-02,200.5,150.5,50.0,120.5,80.0,x\n"
            "2024-01-01,100.5,100.5,,60.5,40.0,y\n"
        )

        days = load_daily_costs_csv(path)

        assert [d.date for d in days] == [date(2024, 1, 1), date(2024, 1, 2)]
        assert days[0].breakdown == {"aws": 100.5, "azure": 0.0}
        assert days[1].services == {"compute": 120.5, "storage": 80.0}

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "daily.csv"
        path.write_text("day,amount\n2024-01-01,10.5\n")

        with pytest.raises(DataLoadError, match="date, total"):
            load_daily_costs_csv(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.csv"
        path.write_text("")

        with pytest.raises(DataLoadError, match="Could not parse"):
            load_daily_costs_csv(path)

    def test_invalid_row(self, tmp_path):
        path = tmp_path / "daily.csv"
        path.write_text("date,total\n2024-01-01,-10.5\n")

        with pytest.raises(DataLoadError, match="Invalid row for 2024-01-01"):
            load_daily_costs_csv(path)


class TestLoadCostRecordsCsv:
    """Test billed cost record CSV files"""

    def test_records(self, tmp_path):
        path = tmp_path / "records.csv"
        path.write_text(
            "date,cloud_provider,service_name,cost\n"
            "2024-05-01,aws,Amazon EC2,12.5\n"
            "2024-05-01,AZURE,Virtual Machines,7.25\n"
        )

        records = load_cost_records_csv(path)

        assert len(records) == 2
        assert records[0].date == date(2024, 5, 1)
        assert records[1].cloud_provider == "azure"
        assert records[1].cost == 7.25

    def test_unknown_provider(self, tmp_path):
        path = tmp_path / "records.csv"
        path.write_text("date,cloud_provider,service_name,cost\n2024-05-01,oracle,DB,1.5\n")

        with pytest.raises(DataLoadError, match="Invalid cost record"):
            load_cost_records_csv(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(DataLoadError):
            load_cost_records_csv(tmp_path / "missing.csv")
