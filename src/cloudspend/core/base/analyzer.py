from abc import ABC, abstractmethod
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, ClassVar, Dict, List, Optional, Sequence, Tuple

from ..exceptions import ValidationError
from .cost import ServiceCostSeries
from .resource import Resource


class RecommendationCategory(str, Enum):
    RIGHTSIZING = "rightsizing"
    IDLE_RESOURCES = "idle_resources"
    RESERVED_INSTANCES = "reserved_instances"
    HIGH_SPEND_SERVICE = "high_spend_service"
    RAPID_GROWTH = "rapid_growth"
    STORAGE_OPTIMIZATION = "storage_optimization"
    ARCHITECTURE = "architecture"
    SPOT_INSTANCES = "spot_instances"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ImplementationEffort(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Recommendation:
    """A single cost optimization opportunity.

    Subclasses fix ``category`` and add the fields specific to that kind of
    recommendation; ``details()`` returns those extra fields.
    """

    priority: Priority
    title: str
    description: str
    estimated_savings: float
    savings_percentage: float
    confidence: float  # 0-100, deterministic heuristic
    implementation_effort: ImplementationEffort = ImplementationEffort.MEDIUM
    resource_id: Optional[str] = None

    category: ClassVar[RecommendationCategory]

    def __post_init__(self):
        if self.estimated_savings < 0:
            raise ValidationError(f"estimated_savings must be >= 0, got {self.estimated_savings}")
        if not 0 <= self.savings_percentage <= 100:
            raise ValidationError(f"savings_percentage must be within 0-100, got {self.savings_percentage}")
        if not 0 <= self.confidence <= 100:
            raise ValidationError(f"confidence must be within 0-100, got {self.confidence}")

    @property
    def annual_savings(self) -> float:
        return round(self.estimated_savings * 12, 2)

    def details(self) -> Dict[str, Any]:
        """Category-specific fields"""
        base = {f.name for f in fields(Recommendation)}
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name not in base}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        return {
            "category": self.category.value,
            "priority": self.priority.value,
            "title": self.title,
            "description": self.description,
            "estimated_savings": self.estimated_savings,
            "annual_savings": self.annual_savings,
            "savings_percentage": self.savings_percentage,
            "confidence": self.confidence,
            "implementation_effort": self.implementation_effort.value,
            "resource_id": self.resource_id,
            "details": _jsonable(self.details()),
        }


@dataclass(frozen=True)
class RightsizingRecommendation(Recommendation):
    category: ClassVar[RecommendationCategory] = RecommendationCategory.RIGHTSIZING

    cpu: float = 0.0
    memory: float = 0.0
    current_cost: float = 0.0
    suggested_action: str = "Downsize instance"


@dataclass(frozen=True)
class IdleResourceRecommendation(Recommendation):
    category: ClassVar[RecommendationCategory] = RecommendationCategory.IDLE_RESOURCES

    cpu: float = 0.0
    memory: float = 0.0
    monthly_cost: float = 0.0
    suggested_action: str = "Stop"


@dataclass(frozen=True)
class ReservedInstanceRecommendation(Recommendation):
    category: ClassVar[RecommendationCategory] = RecommendationCategory.RESERVED_INSTANCES

    service_name: str = ""
    monthly_on_demand: float = 0.0
    estimated_monthly_reserved: float = 0.0
    coefficient_of_variation: float = 0.0
    commitment_term: str = "1 year"


@dataclass(frozen=True)
class HighSpendRecommendation(Recommendation):
    category: ClassVar[RecommendationCategory] = RecommendationCategory.HIGH_SPEND_SERVICE

    service_name: str = ""
    cost: float = 0.0
    share_percentage: float = 0.0


@dataclass(frozen=True)
class RapidGrowthRecommendation(Recommendation):
    category: ClassVar[RecommendationCategory] = RecommendationCategory.RAPID_GROWTH

    service_name: str = ""
    cost: float = 0.0
    growth_percentage: float = 0.0


@dataclass(frozen=True)
class StorageRecommendation(Recommendation):
    category: ClassVar[RecommendationCategory] = RecommendationCategory.STORAGE_OPTIMIZATION

    service_name: str = ""
    current_storage_cost: float = 0.0
    actions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ArchitectureRecommendation(Recommendation):
    category: ClassVar[RecommendationCategory] = RecommendationCategory.ARCHITECTURE

    location_distribution: Tuple[Tuple[str, int], ...] = ()
    dominant_location: str = ""
    dominant_share: float = 0.0
    risk: str = "Single point of failure"


@dataclass(frozen=True)
class SpotInstanceRecommendation(Recommendation):
    category: ClassVar[RecommendationCategory] = RecommendationCategory.SPOT_INSTANCES

    eligible_instances: int = 0
    eligible_resource_ids: Tuple[str, ...] = ()


@dataclass
class RuleContext:
    """Inputs shared by all rules in one analysis run"""

    service_costs: Sequence[ServiceCostSeries] = field(default_factory=list)
    resources: Sequence[Resource] = field(default_factory=list)

    @property
    def total_service_cost(self) -> float:
        return sum(service.total for service in self.service_costs)


class RecommendationRule(ABC):
    """Abstract base class for recommendation rules"""

    category: ClassVar[RecommendationCategory]

    def __init__(self, name: str = None):
        self.name = name or self.__class__.__name__

    @abstractmethod
    def evaluate(self, context: RuleContext) -> List[Recommendation]:
        """Return the recommendations this rule produces for the context"""
        pass


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, tuple) and value and all(isinstance(v, tuple) and len(v) == 2 for v in value):
        return {str(k): _jsonable(v) for k, v in value}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value
