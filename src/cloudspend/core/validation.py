"""Input validation for cost data, resources and budgets"""

import re
from datetime import date
from typing import Any, Callable, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from .base.budget import Budget, BudgetPeriod, BudgetThreshold
from .base.cost import CostRecord, DailyCost, ServiceCostSeries
from .base.resource import CloudProvider, Resource, ResourceUtilization
from .exceptions import ValidationError as CustomValidationError


class Validator:
    """Central validation utility"""

    PATTERNS = {
        'email': re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'),
    }

    @classmethod
    def validate_email(cls, email: str) -> str:
        """Validate email address"""
        if not cls.PATTERNS['email'].match(email):
            raise CustomValidationError(f"Invalid email address: {email}")
        return email.lower()

    @classmethod
    def validate_cloud_provider(cls, provider: str) -> str:
        """Validate cloud provider"""
        try:
            return CloudProvider(provider.lower()).value
        except ValueError:
            raise CustomValidationError(f"Invalid cloud provider: {provider}")


def _pydantic_check(validate: Callable[[Any], Any], value: Any) -> Any:
    """Re-raise validation failures as ValueError so pydantic reports them"""
    try:
        return validate(value)
    except CustomValidationError as e:
        raise ValueError(str(e)) from e


class InputModel(BaseModel):
    """Base model for input validation"""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")


class DailyCostInput(InputModel):
    date: date
    total: float = Field(ge=0)
    breakdown: Dict[str, float] = Field(default_factory=dict)
    services: Dict[str, float] = Field(default_factory=dict)

    @field_validator("breakdown", "services")
    @classmethod
    def non_negative_parts(cls, value: Dict[str, float]) -> Dict[str, float]:
        for key, cost in value.items():
            if cost < 0:
                raise ValueError(f"Cost for {key} must be non-negative")
        return value

    def to_domain(self) -> DailyCost:
        return DailyCost(date=self.date, total=self.total,
                         breakdown=dict(self.breakdown), services=dict(self.services))


class DataPointInput(InputModel):
    date: date
    cost: float = Field(ge=0)


class ServiceCostInput(InputModel):
    service_name: str = Field(min_length=1, validation_alias=AliasChoices("service_name", "service"))
    cloud_provider: str = CloudProvider.AWS.value
    data: List[DataPointInput] = Field(default_factory=list, validation_alias=AliasChoices("data", "data_points"))

    @field_validator("cloud_provider")
    @classmethod
    def known_provider(cls, value: str) -> str:
        return _pydantic_check(Validator.validate_cloud_provider, value)

    def to_domain(self) -> ServiceCostSeries:
        points = sorted((p.date, p.cost) for p in self.data)
        return ServiceCostSeries(service_name=self.service_name, cloud_provider=self.cloud_provider,
                                 data_points=tuple(points))


class UtilizationInput(InputModel):
    cpu: float = Field(default=0.0, ge=0, le=100)
    memory: float = Field(default=0.0, ge=0, le=100)
    storage: Optional[float] = Field(default=None, ge=0, le=100)
    network: Optional[float] = Field(default=None, ge=0)


class ResourceInput(InputModel):
    resource_id: str = Field(min_length=1)
    resource_type: str = Field(min_length=1)
    monthly_cost: float = Field(ge=0, validation_alias=AliasChoices("monthly_cost", "cost"))
    name: Optional[str] = None
    cloud_provider: str = CloudProvider.AWS.value
    region: Optional[str] = None
    availability_zone: Optional[str] = None
    utilization: Optional[UtilizationInput] = None
    tags: Dict[str, str] = Field(default_factory=dict)

    @field_validator("cloud_provider")
    @classmethod
    def known_provider(cls, value: str) -> str:
        return _pydantic_check(Validator.validate_cloud_provider, value)

    def to_domain(self) -> Resource:
        utilization = None
        if self.utilization is not None:
            utilization = ResourceUtilization(**self.utilization.model_dump())
        return Resource(
            resource_id=self.resource_id,
            resource_type=self.resource_type,
            monthly_cost=self.monthly_cost,
            name=self.name,
            cloud_provider=self.cloud_provider,
            region=self.region,
            availability_zone=self.availability_zone,
            utilization=utilization,
            tags=dict(self.tags),
        )


class BudgetThresholdInput(InputModel):
    percentage: float = Field(gt=0)
    recipients: List[str] = Field(default_factory=list)

    @field_validator("recipients")
    @classmethod
    def valid_recipients(cls, value: List[str]) -> List[str]:
        return [_pydantic_check(Validator.validate_email, email) for email in value]


class BudgetInput(InputModel):
    name: str = Field(min_length=1)
    amount: float = Field(gt=0)
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    cloud_provider: Optional[str] = None
    thresholds: List[BudgetThresholdInput] = Field(default_factory=list)
    alerts_enabled: bool = True

    @field_validator("cloud_provider")
    @classmethod
    def known_provider(cls, value: Optional[str]) -> Optional[str]:
        if value in (None, "", "all"):
            return None
        return _pydantic_check(Validator.validate_cloud_provider, value)

    def to_domain(self) -> Budget:
        thresholds = sorted(
            (BudgetThreshold(percentage=t.percentage, recipients=tuple(t.recipients)) for t in self.thresholds),
            key=lambda t: t.percentage,
        )
        return Budget(
            name=self.name,
            amount=self.amount,
            period=self.period,
            cloud_provider=self.cloud_provider,
            thresholds=thresholds,
            alerts_enabled=self.alerts_enabled,
        )


class CostRecordInput(InputModel):
    date: date
    cloud_provider: str
    service_name: str = Field(min_length=1)
    cost: float = Field(ge=0)

    @field_validator("cloud_provider")
    @classmethod
    def known_provider(cls, value: str) -> str:
        return _pydantic_check(Validator.validate_cloud_provider, value)

    def to_domain(self) -> CostRecord:
        return CostRecord(date=self.date, cloud_provider=self.cloud_provider,
                          service_name=self.service_name, cost=self.cost)


class AnalysisRequest(InputModel):
    """A complete analysis input document"""
    daily_costs: List[DailyCostInput] = Field(default_factory=list)
    service_costs: List[ServiceCostInput] = Field(default_factory=list)
    resources: List[ResourceInput] = Field(default_factory=list)
    budgets: List[BudgetInput] = Field(default_factory=list)
    cost_records: List[CostRecordInput] = Field(default_factory=list)

    @model_validator(mode="after")
    def unique_days(self) -> "AnalysisRequest":
        seen = set()
        for day in self.daily_costs:
            if day.date in seen:
                raise ValueError(f"Duplicate daily cost entry for {day.date.isoformat()}")
            seen.add(day.date)
        return self

    def daily_cost_series(self) -> List[DailyCost]:
        """Daily costs in chronological order"""
        return sorted((d.to_domain() for d in self.daily_costs), key=lambda d: d.date)

    def service_cost_series(self) -> List[ServiceCostSeries]:
        return [s.to_domain() for s in self.service_costs]

    def resource_list(self) -> List[Resource]:
        return [r.to_domain() for r in self.resources]

    def budget_list(self) -> List[Budget]:
        return [b.to_domain() for b in self.budgets]

    def cost_record_list(self) -> List[CostRecord]:
        return [r.to_domain() for r in self.cost_records]
