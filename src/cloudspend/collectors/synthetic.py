"""
Synthetic Cost Data
Seeded generators for demo and test data: daily costs, service series,
resources and billed cost records.
"""

from datetime import date, timedelta
from typing import List, Optional

import numpy as np

from ..core.base.cost import CostRecord, DailyCost, ServiceCostSeries
from ..core.base.resource import Resource, ResourceUtilization

BASE_DAILY_COST = 150.0
WEEKEND_MULTIPLIER = 0.7
SPIKE_PROBABILITY = 0.05

PROVIDER_SHARES = {"aws": 0.55, "azure": 0.30, "gcp": 0.15}
SERVICE_TYPE_SHARES = {"compute": 0.45, "storage": 0.25, "database": 0.18, "network": 0.12}

# (service name, provider, share of daily spend)
SERVICES = [
    ("Amazon EC2", "aws", 0.25),
    ("Azure Virtual Machines", "azure", 0.18),
    ("Amazon S3", "aws", 0.12),
    ("Compute Engine", "gcp", 0.10),
    ("Amazon RDS", "aws", 0.08),
    ("Azure Blob Storage", "azure", 0.07),
]

RESOURCE_TEMPLATES = [
    ("EC2 Instance", "aws", "us-east-1"),
    ("Virtual Machine", "azure", "eastus"),
    ("Compute Engine", "gcp", "us-central1"),
    ("RDS Database", "aws", "us-east-1"),
    ("S3 Bucket", "aws", "us-east-1"),
]


def _end(end_date: Optional[date]) -> date:
    return end_date or date.today()


def generate_daily_costs(days: int = 90, seed: Optional[int] = None,
                         end_date: Optional[date] = None) -> List[DailyCost]:
    """
    Daily cost series around a base of 150: weekends at 70%, +/-20% noise
    and an occasional 1.5-2.5x spike.
    """
    rng = np.random.default_rng(seed)
    end = _end(end_date)
    series = []

    for offset in range(days - 1, -1, -1):
        day = end - timedelta(days=offset)
        weekend = WEEKEND_MULTIPLIER if day.weekday() >= 5 else 1.0
        variation = rng.uniform(0.8, 1.2)
        spike = rng.uniform(1.5, 2.5) if rng.random() < SPIKE_PROBABILITY else 1.0
        total = round(BASE_DAILY_COST * weekend * variation * spike, 2)

        series.append(DailyCost(
            date=day,
            total=total,
            breakdown={k: round(total * share, 2) for k, share in PROVIDER_SHARES.items()},
            services={k: round(total * share, 2) for k, share in SERVICE_TYPE_SHARES.items()},
        ))

    return series


def generate_service_costs(days: int = 30, seed: Optional[int] = None,
                           end_date: Optional[date] = None) -> List[ServiceCostSeries]:
    """Per-service daily series with mild noise"""
    rng = np.random.default_rng(seed)
    end = _end(end_date)
    result = []

    for name, provider, share in SERVICES:
        points = []
        for offset in range(days - 1, -1, -1):
            cost = BASE_DAILY_COST * share * rng.uniform(0.9, 1.1)
            points.append((end - timedelta(days=offset), round(float(cost), 2)))
        result.append(ServiceCostSeries(service_name=name, cloud_provider=provider, data_points=tuple(points)))

    return result


def generate_resources(count: int = 12, seed: Optional[int] = None) -> List[Resource]:
    """Resources with a spread of utilization, including idle ones"""
    rng = np.random.default_rng(seed)
    resources = []

    for i in range(count):
        resource_type, provider, region = RESOURCE_TEMPLATES[i % len(RESOURCE_TEMPLATES)]
        cpu = round(float(rng.uniform(1, 85)), 1)
        memory = round(float(rng.uniform(1, 85)), 1)
        resources.append(Resource(
            resource_id=f"{provider}-res-{i:03d}",
            name=f"{resource_type.lower().replace(' ', '-')}-{i:03d}",
            resource_type=resource_type,
            cloud_provider=provider,
            region=region,
            utilization=ResourceUtilization(cpu=cpu, memory=memory),
            monthly_cost=round(float(rng.uniform(20, 600)), 2),
            tags={"environment": str(rng.choice(["production", "staging", "development"])),
                  "team": str(rng.choice(["platform", "data", "web"]))},
        ))

    return resources


def generate_cost_records(days: int = 30, seed: Optional[int] = None,
                          end_date: Optional[date] = None) -> List[CostRecord]:
    """Billed records, one per service per day"""
    return [
        CostRecord(date=day, cloud_provider=series.cloud_provider, service_name=series.service_name, cost=cost)
        for series in generate_service_costs(days, seed, end_date)
        for day, cost in series.data_points
    ]
