"""Shared input handling for CLI commands"""

from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from ..collectors.file_loader import load_analysis_request, load_cost_records_csv, load_daily_costs_csv
from ..collectors.synthetic import (
    generate_cost_records, generate_daily_costs, generate_resources, generate_service_costs
)
from ..core.base.budget import Budget, BudgetThreshold
from ..core.base.cost import CostRecord, CostSnapshot, DailyCost, ServiceCostSeries
from ..core.base.resource import Resource
from ..core.exceptions import DataLoadError


@dataclass
class AnalysisInputs:
    daily_costs: List[DailyCost] = field(default_factory=list)
    service_costs: List[ServiceCostSeries] = field(default_factory=list)
    resources: List[Resource] = field(default_factory=list)
    budgets: List[Budget] = field(default_factory=list)
    cost_records: List[CostRecord] = field(default_factory=list)

    def snapshot(self) -> CostSnapshot:
        """Current-period totals; falls back to the daily series when no services are given"""
        if self.service_costs:
            total = sum(s.total for s in self.service_costs)
        else:
            total = sum(d.total for d in self.daily_costs)
        return CostSnapshot(total_cost=round(total, 2), service_costs=tuple(self.service_costs))

    def to_document(self) -> Dict[str, Any]:
        return {
            "daily_costs": [d.to_dict() for d in self.daily_costs],
            "service_costs": [s.to_dict() for s in self.service_costs],
            "resources": [r.to_dict() for r in self.resources],
            "budgets": [b.to_dict() for b in self.budgets],
            "cost_records": [r.to_dict() for r in self.cost_records],
        }


def sample_inputs(days: int = 90, seed: Optional[int] = 42, end_date: Optional[date] = None) -> AnalysisInputs:
    """Synthetic inputs for demos"""
    return AnalysisInputs(
        daily_costs=generate_daily_costs(days, seed, end_date),
        service_costs=generate_service_costs(min(days, 30), seed, end_date),
        resources=generate_resources(seed=seed),
        budgets=[Budget(name="Monthly Cloud Budget", amount=4000.0,
                        thresholds=[BudgetThreshold(50.0), BudgetThreshold(80.0), BudgetThreshold(100.0)])],
        cost_records=generate_cost_records(min(days, 30), seed, end_date),
    )


def load_inputs(input_file: Optional[str], csv_file: Optional[str] = None,
                records_file: Optional[str] = None, days: int = 90,
                seed: Optional[int] = 42) -> AnalysisInputs:
    """Load inputs from files, or generate sample data when none are given"""
    try:
        if input_file:
            request = load_analysis_request(Path(input_file))
            inputs = AnalysisInputs(
                daily_costs=request.daily_cost_series(),
                service_costs=request.service_cost_series(),
                resources=request.resource_list(),
                budgets=request.budget_list(),
                cost_records=request.cost_record_list(),
            )
        elif csv_file or records_file:
            inputs = AnalysisInputs()
        else:
            return sample_inputs(days, seed)

        if csv_file:
            inputs.daily_costs = load_daily_costs_csv(Path(csv_file))
        if records_file:
            inputs.cost_records = load_cost_records_csv(Path(records_file))
    except DataLoadError as e:
        raise click.ClickException(str(e))

    return inputs
