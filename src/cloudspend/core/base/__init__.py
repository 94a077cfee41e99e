from .resource import CloudProvider, Resource, ResourceType, ResourceUtilization
from .cost import CostRecord, CostSnapshot, DailyCost, ServiceCostSeries, costs_of
from .budget import Budget, BudgetPeriod, BudgetStatus, BudgetThreshold
from .analyzer import (
    Recommendation, RecommendationCategory, Priority, ImplementationEffort, RecommendationRule, RuleContext,
    RightsizingRecommendation, IdleResourceRecommendation, ReservedInstanceRecommendation,
    HighSpendRecommendation, RapidGrowthRecommendation, StorageRecommendation,
    ArchitectureRecommendation, SpotInstanceRecommendation
)

__all__ = [
    'CloudProvider', 'Resource', 'ResourceType', 'ResourceUtilization',
    'CostRecord', 'CostSnapshot', 'DailyCost', 'ServiceCostSeries', 'costs_of',
    'Budget', 'BudgetPeriod', 'BudgetStatus', 'BudgetThreshold',
    'Recommendation', 'RecommendationCategory', 'Priority', 'ImplementationEffort', 'RecommendationRule', 'RuleContext',
    'RightsizingRecommendation', 'IdleResourceRecommendation', 'ReservedInstanceRecommendation',
    'HighSpendRecommendation', 'RapidGrowthRecommendation', 'StorageRecommendation',
    'ArchitectureRecommendation', 'SpotInstanceRecommendation'
]
