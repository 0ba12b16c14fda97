"""Model-tier routing: complexity analysis, model selection and cost estimation."""

from chatflow.routing.analyzer import QueryAnalyzer
from chatflow.routing.cost_estimator import CostEstimator
from chatflow.routing.models import (
    AffordabilityResult,
    ComplexityAnalysis,
    ComplexityMetrics,
    CostEstimate,
    ModelSelection,
    PoolBalances,
    PoolType,
    RoutingDecision,
    RoutingStats,
    RoutingStrategy,
)
from chatflow.routing.query_router import QueryRouter, RoutingStatsTracker
from chatflow.routing.selector import ModelSelector

__all__ = [
    # Main components
    "QueryRouter",
    "QueryAnalyzer",
    "ModelSelector",
    "CostEstimator",
    "RoutingStatsTracker",
    # Models
    "RoutingDecision",
    "RoutingStrategy",
    "RoutingStats",
    "ComplexityAnalysis",
    "ComplexityMetrics",
    "ModelSelection",
    "CostEstimate",
    "AffordabilityResult",
    "PoolBalances",
    "PoolType",
]
