"""
Recommendation Engine
Rule-based cost optimization recommendations over service cost series and resources.

Confidence scores are deterministic linear heuristics, not the output of a
trained model.
"""

import logging
import math
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..core.base.analyzer import (
    ArchitectureRecommendation, HighSpendRecommendation, IdleResourceRecommendation,
    ImplementationEffort, Priority, RapidGrowthRecommendation, Recommendation,
    RecommendationRule, ReservedInstanceRecommendation,
    RightsizingRecommendation, RuleContext, SpotInstanceRecommendation, StorageRecommendation
)
from ..core.base.cost import ServiceCostSeries
from ..core.base.resource import Resource
from ..core.config import RecommendationConfig
from ..core.exceptions import AnalysisError
from .statistics import coefficient_of_variation, safe_divide, safe_percent

logger = logging.getLogger(__name__)

# Service names treated as object/blob storage across providers
STORAGE_SERVICE_MARKERS = ("s3", "storage", "blob", "gcs", "glacier")


def is_storage_service(service_name: str) -> bool:
    lowered = service_name.lower()
    return any(marker in lowered for marker in STORAGE_SERVICE_MARKERS)


class RightsizingRule(RecommendationRule):
    """Downsize resources whose CPU and memory both sit below the threshold"""

    def __init__(self, max_utilization: float = 30.0, savings_rate: float = 0.4):
        super().__init__()
        self.max_utilization = max_utilization
        self.savings_rate = savings_rate

    def evaluate(self, context: RuleContext) -> List[Recommendation]:
        recommendations = []
        for resource in context.resources:
            usage = resource.utilization
            if usage is None:
                continue
            if usage.cpu >= self.max_utilization or usage.memory >= self.max_utilization:
                continue

            recommendations.append(RightsizingRecommendation(
                priority=Priority.HIGH if usage.cpu < 10 else Priority.MEDIUM,
                title=f"Rightsize {resource.display_name}",
                description=(f"This {resource.resource_type} has low utilization "
                             f"(CPU: {usage.cpu:.1f}%, Memory: {usage.memory:.1f}%). "
                             "Consider downsizing to a smaller instance type."),
                estimated_savings=round(resource.monthly_cost * self.savings_rate, 2),
                savings_percentage=round(self.savings_rate * 100, 2),
                confidence=min(95.0, 70 + (self.max_utilization - usage.peak)),
                implementation_effort=ImplementationEffort.LOW,
                resource_id=resource.resource_id,
                cpu=usage.cpu,
                memory=usage.memory,
                current_cost=resource.monthly_cost,
            ))
        return recommendations


class IdleResourceRule(RecommendationRule):
    """Stop or terminate resources that are effectively unused"""

    def __init__(self, max_utilization: float = 5.0):
        super().__init__()
        self.max_utilization = max_utilization

    def evaluate(self, context: RuleContext) -> List[Recommendation]:
        recommendations = []
        for resource in context.resources:
            usage = resource.utilization
            if usage is None:
                continue
            if usage.cpu >= self.max_utilization or usage.memory >= self.max_utilization:
                continue

            recommendations.append(IdleResourceRecommendation(
                priority=Priority.HIGH,
                title=f"Terminate or stop idle {resource.display_name}",
                description=(f"This {resource.resource_type} appears to be idle "
                             f"(CPU: {usage.cpu}%, Memory: {usage.memory}%). "
                             "Consider stopping or terminating if not needed."),
                estimated_savings=round(resource.monthly_cost, 2),
                savings_percentage=100.0,
                confidence=85.0,
                implementation_effort=ImplementationEffort.LOW,
                resource_id=resource.resource_id,
                cpu=usage.cpu,
                memory=usage.memory,
                monthly_cost=resource.monthly_cost,
                suggested_action="Terminate" if usage.cpu < 2 else "Stop",
            ))
        return recommendations


class ReservedInstanceRule(RecommendationRule):
    """Commit to reserved capacity for services with steady spend"""

    def __init__(self, min_total: float = 100.0, min_points: int = 30,
                 max_cv: float = 0.3, discount: float = 0.3):
        super().__init__()
        self.min_total = min_total
        self.min_points = min_points
        self.max_cv = max_cv
        self.discount = discount

    def evaluate(self, context: RuleContext) -> List[Recommendation]:
        recommendations = []
        for service in context.service_costs:
            if service.total <= self.min_total or len(service.data_points) < self.min_points:
                continue

            cv = coefficient_of_variation(service.costs)
            if cv >= self.max_cv:
                continue

            recommendations.append(ReservedInstanceRecommendation(
                priority=Priority.HIGH if service.total > 500 else Priority.MEDIUM,
                title=f"Purchase Reserved Instances for {service.service_name}",
                description=(f"{service.service_name} shows consistent usage patterns. Reserved Instances "
                             f"could save up to {self.discount * 100:.0f}% compared to On-Demand pricing."),
                estimated_savings=round(service.total * self.discount, 2),
                savings_percentage=round(self.discount * 100, 2),
                confidence=round(min(90.0, 75 + (self.max_cv - cv) * 50), 2),
                implementation_effort=ImplementationEffort.MEDIUM,
                service_name=service.service_name,
                monthly_on_demand=round(service.total, 2),
                estimated_monthly_reserved=round(service.total * (1 - self.discount), 2),
                coefficient_of_variation=round(cv, 4),
            ))
        return recommendations


class HighSpendRule(RecommendationRule):
    """Review services that dominate total spend"""

    SAVINGS_RATE = 0.15

    def __init__(self, share_percent: float = 30.0):
        super().__init__()
        self.share_percent = share_percent

    def evaluate(self, context: RuleContext) -> List[Recommendation]:
        grand_total = context.total_service_cost
        if grand_total <= 0:
            return []

        recommendations = []
        for service in context.service_costs:
            share = safe_percent(service.total, grand_total)
            if share <= self.share_percent:
                continue

            recommendations.append(HighSpendRecommendation(
                priority=Priority.HIGH,
                title=f"Review {service.service_name} spending",
                description=f"{service.service_name} represents {share:.1f}% of total costs",
                estimated_savings=round(service.total * self.SAVINGS_RATE, 2),
                savings_percentage=round(self.SAVINGS_RATE * 100, 2),
                confidence=70.0,
                service_name=service.service_name,
                cost=round(service.total, 2),
                share_percentage=round(share, 2),
            ))
        return recommendations


class RapidGrowthRule(RecommendationRule):
    """Flag services whose last week cost well above the week before"""

    SAVINGS_RATE = 0.10
    WEEK = 7

    def __init__(self, growth_percent: float = 20.0):
        super().__init__()
        self.growth_percent = growth_percent

    def evaluate(self, context: RuleContext) -> List[Recommendation]:
        recommendations = []
        for service in context.service_costs:
            costs = service.costs
            if len(costs) < self.WEEK * 2:
                continue

            recent_week = sum(costs[-self.WEEK:])
            previous_week = sum(costs[-self.WEEK * 2:-self.WEEK])
            if previous_week <= 0:
                continue

            growth = (recent_week - previous_week) / previous_week * 100
            if growth <= self.growth_percent:
                continue

            recommendations.append(RapidGrowthRecommendation(
                priority=Priority.MEDIUM,
                title=f"Investigate {service.service_name} cost growth",
                description=f"{service.service_name} costs grew {growth:.1f}% week over week",
                estimated_savings=round(service.total * self.SAVINGS_RATE, 2),
                savings_percentage=round(self.SAVINGS_RATE * 100, 2),
                confidence=60.0,
                service_name=service.service_name,
                cost=round(service.total, 2),
                growth_percentage=round(growth, 2),
            ))
        return recommendations


class StorageOptimizationRule(RecommendationRule):
    """Move cold data in storage services to cheaper tiers"""

    SAVINGS_RATE = 0.4
    ACTIONS = (
        "Enable intelligent tiering",
        "Move old data to archive storage",
        "Set up lifecycle policies",
    )

    def __init__(self, min_total: float = 100.0):
        super().__init__()
        self.min_total = min_total

    def evaluate(self, context: RuleContext) -> List[Recommendation]:
        recommendations = []
        for service in context.service_costs:
            if not is_storage_service(service.service_name) or service.total <= self.min_total:
                continue

            recommendations.append(StorageRecommendation(
                priority=Priority.MEDIUM,
                title=f"Optimize {service.service_name} storage classes",
                description=("Consider moving infrequently accessed data to infrequent-access or "
                             "archive tiers for significant cost savings."),
                estimated_savings=round(service.total * self.SAVINGS_RATE, 2),
                savings_percentage=round(self.SAVINGS_RATE * 100, 2),
                confidence=70.0,
                service_name=service.service_name,
                current_storage_cost=round(service.total, 2),
                actions=self.ACTIONS,
            ))
        return recommendations


class ArchitectureRule(RecommendationRule):
    """Warn when most resources share one region or availability zone"""

    MIN_RESOURCES = 5
    MAX_SHARE = 0.8

    def evaluate(self, context: RuleContext) -> List[Recommendation]:
        total = len(context.resources)
        if total <= self.MIN_RESOURCES:
            return []

        distribution = Counter(resource.location for resource in context.resources)
        dominant_location, dominant_count = distribution.most_common(1)[0]
        share = dominant_count / total
        if share <= self.MAX_SHARE:
            return []

        return [ArchitectureRecommendation(
            priority=Priority.MEDIUM,
            title="Improve high availability",
            description=("Most resources are in a single region or availability zone. Consider "
                         "distributing across multiple zones for better fault tolerance."),
            estimated_savings=0.0,
            savings_percentage=0.0,
            confidence=80.0,
            implementation_effort=ImplementationEffort.HIGH,
            location_distribution=tuple(sorted(distribution.items())),
            dominant_location=dominant_location,
            dominant_share=round(share * 100, 2),
        )]


class SpotInstanceRule(RecommendationRule):
    """Suggest spot pricing for moderately loaded compute fleets"""

    SAVINGS_RATE = 0.6

    def __init__(self, max_cpu: float = 60.0, min_instances: int = 3):
        super().__init__()
        self.max_cpu = max_cpu
        self.min_instances = min_instances

    def evaluate(self, context: RuleContext) -> List[Recommendation]:
        eligible = [
            resource for resource in context.resources
            if resource.is_compute and resource.utilization is not None
            and resource.utilization.cpu < self.max_cpu
        ]
        if len(eligible) <= self.min_instances:
            return []

        savings = sum(resource.monthly_cost * self.SAVINGS_RATE for resource in eligible)
        return [SpotInstanceRecommendation(
            priority=Priority.MEDIUM,
            title="Use Spot Instances for fault-tolerant workloads",
            description=f"{len(eligible)} instances could potentially use Spot pricing for up to 70% savings.",
            estimated_savings=round(savings, 2),
            savings_percentage=round(self.SAVINGS_RATE * 100, 2),
            confidence=75.0,
            eligible_instances=len(eligible),
            eligible_resource_ids=tuple(resource.resource_id for resource in eligible),
        )]


class RecommendationEngine:
    """
    Runs the recommendation rules over services and resources.

    ``generate`` produces the full recommendation set; ``identify_opportunities``
    produces the quicker opportunity set used by the insights summary.
    """

    def __init__(self, config: Optional[RecommendationConfig] = None):
        self.config = config or RecommendationConfig()
        rightsizing = RightsizingRule(self.config.rightsizing_max_utilization,
                                      self.config.rightsizing_savings_rate)
        idle = IdleResourceRule(self.config.idle_max_utilization)

        self.recommendation_rules: List[RecommendationRule] = [
            rightsizing,
            ReservedInstanceRule(self.config.reserved_min_total, self.config.reserved_min_points,
                                 self.config.reserved_max_cv, self.config.reserved_discount),
            idle,
            StorageOptimizationRule(self.config.storage_min_total),
            ArchitectureRule(),
            SpotInstanceRule(self.config.spot_max_cpu, self.config.spot_min_instances),
        ]
        self.opportunity_rules: List[RecommendationRule] = [
            HighSpendRule(self.config.high_spend_share_percent),
            RapidGrowthRule(self.config.rapid_growth_percent),
            rightsizing,
            idle,
        ]

    def generate(self, service_costs: Sequence[ServiceCostSeries],
                 resources: Sequence[Resource]) -> List[Recommendation]:
        """Recommendations sorted by estimated savings, highest first"""
        context = RuleContext(service_costs=list(service_costs), resources=list(resources))
        return self._run(self.recommendation_rules, context)

    def identify_opportunities(self, service_costs: Sequence[ServiceCostSeries],
                               resources: Sequence[Resource]) -> List[Recommendation]:
        """Opportunities sorted by estimated savings, highest first"""
        context = RuleContext(service_costs=list(service_costs), resources=list(resources))
        return self._run(self.opportunity_rules, context)

    def _run(self, rules: List[RecommendationRule], context: RuleContext) -> List[Recommendation]:
        results: List[Recommendation] = []
        for rule in rules:
            try:
                produced = rule.evaluate(context)
            except Exception as e:
                logger.error(f"Rule {rule.name} failed: {e}")
                raise AnalysisError(f"Recommendation rule {rule.name} failed: {e}") from e
            logger.debug(f"{rule.name} produced {len(produced)} recommendations")
            results.extend(produced)

        return sorted(results, key=lambda r: r.estimated_savings, reverse=True)


@dataclass(frozen=True)
class SavingsPotential:
    """Aggregated savings over a set of recommendations"""
    total: float
    by_priority: Dict[str, float]
    by_category: Dict[str, float]
    count: int
    average_per_recommendation: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "by_priority": dict(self.by_priority),
            "by_category": dict(self.by_category),
            "count": self.count,
            "average_per_recommendation": self.average_per_recommendation,
        }


def calculate_savings_potential(recommendations: Sequence[Recommendation]) -> SavingsPotential:
    """Total savings, broken down by priority and category"""
    by_priority = {priority.value: 0.0 for priority in Priority}
    by_category: Dict[str, float] = defaultdict(float)

    for rec in recommendations:
        by_priority[rec.priority.value] += rec.estimated_savings
        by_category[rec.category.value] += rec.estimated_savings

    total = sum(rec.estimated_savings for rec in recommendations)
    return SavingsPotential(
        total=round(total, 2),
        by_priority={k: round(v, 2) for k, v in by_priority.items()},
        by_category={k: round(v, 2) for k, v in by_category.items()},
        count=len(recommendations),
        average_per_recommendation=round(total / (len(recommendations) or 1), 2),
    )


@dataclass(frozen=True)
class ReservedInstanceROI:
    on_demand_total: float
    reserved_total: float
    savings: float
    roi_percent: float
    payback_months: int
    break_even_month: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "on_demand_total": self.on_demand_total,
            "reserved_total": self.reserved_total,
            "savings": self.savings,
            "roi": self.roi_percent,
            "payback_period": self.payback_months,
            "break_even_month": self.break_even_month,
        }


def calculate_reserved_instance_roi(on_demand_monthly: float, reserved_monthly: float,
                                    term_years: int = 1) -> ReservedInstanceROI:
    """
    Return on a reserved-capacity commitment.

    Args:
        on_demand_monthly: Monthly cost at on-demand rates
        reserved_monthly: Monthly cost of the reservation
        term_years: Commitment length
    """
    if on_demand_monthly < 0 or reserved_monthly < 0:
        raise ValueError("Monthly costs must be non-negative")
    if term_years < 1:
        raise ValueError(f"term_years must be >= 1, got {term_years}")

    total_on_demand = on_demand_monthly * 12 * term_years
    total_reserved = reserved_monthly * 12 * term_years
    savings = total_on_demand - total_reserved
    monthly_difference = on_demand_monthly - reserved_monthly

    return ReservedInstanceROI(
        on_demand_total=round(total_on_demand, 2),
        reserved_total=round(total_reserved, 2),
        savings=round(savings, 2),
        roi_percent=round(safe_percent(savings, total_reserved), 2),
        payback_months=round(safe_divide(total_reserved, total_on_demand / 12)),
        break_even_month=math.ceil(reserved_monthly / monthly_difference) if monthly_difference > 0 else None,
    )


@dataclass
class TagValueSummary:
    value: str
    count: int = 0
    cost: float = 0.0
    resources: List[str] = field(default_factory=list)


@dataclass
class TagSummary:
    tag: str
    values: List[TagValueSummary]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tag": self.tag,
            "values": [
                {"value": v.value, "count": v.count, "cost": round(v.cost, 2), "resources": v.resources}
                for v in self.values
            ],
        }


def analyze_tags(resources: Sequence[Resource], top_resources: int = 5) -> List[TagSummary]:
    """Group resource cost by tag key and value, values sorted by cost"""
    grouped: Dict[str, Dict[str, TagValueSummary]] = defaultdict(dict)

    for resource in resources:
        for key, value in resource.tags.items():
            key = key or "untagged"
            value = value or "unknown"
            summary = grouped[key].setdefault(value, TagValueSummary(value=value))
            summary.count += 1
            summary.cost += resource.monthly_cost
            summary.resources.append(resource.name or resource.resource_id)

    result = []
    for key, values in grouped.items():
        ordered = sorted(values.values(), key=lambda v: v.cost, reverse=True)
        for summary in ordered:
            summary.resources = summary.resources[:top_resources]
        result.append(TagSummary(tag=key, values=ordered))

    return result
