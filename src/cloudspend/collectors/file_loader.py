"""
File Loaders
Reads analysis inputs from JSON, YAML or CSV files.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import pandas as pd
import yaml
from pydantic import ValidationError as PydanticValidationError

from ..core.base.cost import CostRecord, DailyCost
from ..core.exceptions import DataLoadError
from ..core.validation import AnalysisRequest, CostRecordInput, DailyCostInput

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def _read_document(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise DataLoadError(f"Input file not found: {path}")

    with open(path, 'r') as f:
        try:
            if path.suffix in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            else:
                data = json.load(f)
        except (yaml.YAMLError, json.JSONDecodeError) as e:
            raise DataLoadError(f"Could not parse {path}: {e}")

    if isinstance(data, list):
        # a bare list is a daily cost series
        return {"daily_costs": data}
    if not isinstance(data, dict):
        raise DataLoadError(f"Unexpected document type in {path}: {type(data).__name__}")
    return data


def load_analysis_request(path: PathLike) -> AnalysisRequest:
    """Load and validate a JSON or YAML analysis document"""
    path = Path(path)
    data = _read_document(path)

    try:
        request = AnalysisRequest.model_validate(data)
    except PydanticValidationError as e:
        raise DataLoadError(f"Invalid input in {path}: {e}")

    logger.info(f"Loaded {len(request.daily_costs)} daily costs, {len(request.service_costs)} services "
                f"and {len(request.resources)} resources from {path}")
    return request


def _read_csv(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise DataLoadError(f"Input file not found: {path}")
    try:
        return pd.read_csv(path)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise DataLoadError(f"Could not parse {path}: {e}")


def load_daily_costs_csv(path: PathLike) -> List[DailyCost]:
    """
    Load a daily cost series from CSV.

    Required columns are ``date`` and ``total``. Columns named after a cloud
    provider (aws, azure, gcp) fill the provider breakdown; columns prefixed
    with ``service_`` fill the service-type breakdown.
    """
    path = Path(path)
    frame = _read_csv(path)

    missing = {"date", "total"} - set(frame.columns)
    if missing:
        raise DataLoadError(f"{path} is missing required columns: {', '.join(sorted(missing))}")

    provider_columns = [c for c in frame.columns if c in ("aws", "azure", "gcp")]
    service_columns = [c for c in frame.columns if c.startswith("service_")]

    days = []
    for row in frame.fillna(0).to_dict(orient="records"):
        payload = {
            "date": str(row["date"])[:10],
            "total": row["total"],
            "breakdown": {c: row[c] for c in provider_columns},
            "services": {c[len("service_"):]: row[c] for c in service_columns},
        }
        try:
            days.append(DailyCostInput.model_validate(payload).to_domain())
        except PydanticValidationError as e:
            raise DataLoadError(f"Invalid row for {payload['date']} in {path}: {e}")

    days.sort(key=lambda d: d.date)
    logger.info(f"Loaded {len(days)} daily costs from {path}")
    return days


def load_cost_records_csv(path: PathLike) -> List[CostRecord]:
    """Load billed cost records (date, cloud_provider, service_name, cost) from CSV"""
    path = Path(path)
    frame = _read_csv(path)

    records = []
    for row in frame.to_dict(orient="records"):
        row["date"] = str(row.get("date", ""))[:10]
        try:
            records.append(CostRecordInput.model_validate(row).to_domain())
        except PydanticValidationError as e:
            raise DataLoadError(f"Invalid cost record in {path}: {e}")

    logger.info(f"Loaded {len(records)} cost records from {path}")
    return records
