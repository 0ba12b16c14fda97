"""Query Router.

Main entry point for model-tier routing: analyzes complexity, selects a
model from the caller's plan, estimates token cost and recommends a pool.
"""

import threading
from typing import Dict, List, Optional, Sequence, Union

import structlog

from chatflow.config.plans import (
    FREE_PLAN,
    ModelDescriptor,
    PlanCatalog,
    PlanType,
    RoutingTier,
    default_catalog,
)
from chatflow.config.settings import RoutingSettings
from chatflow.core.exceptions import RoutingError
from chatflow.routing.analyzer import QueryAnalyzer
from chatflow.routing.cost_estimator import CostEstimator
from chatflow.routing.models import (
    AffordabilityResult,
    ComplexityAnalysis,
    ComplexityMetrics,
    CostEstimate,
    PoolBalances,
    PoolType,
    RoutingDecision,
    RoutingStats,
    RoutingStrategy,
)
from chatflow.routing.selector import ModelSelector

logger = structlog.get_logger()

DEFAULT_ROUTING_REASON = "Default routing due to error"

# Used only when the plan itself cannot be resolved
FALLBACK_MODEL = ModelDescriptor(
    model_id="gemini-2.5-flash-lite",
    display_name="Gemini Flash Lite",
    tier=RoutingTier.CASUAL,
    cost_per_1m=0.40,
    is_lite=True,
)


def _copy_stats(stats: RoutingStats) -> RoutingStats:
    return RoutingStats(
        total_requests=stats.total_requests,
        model_usage=dict(stats.model_usage),
        average_confidence=stats.average_confidence,
    )


class RoutingStatsTracker:
    """Per-plan routing counters.

    Counters are observational only; nothing reads them back into a
    routing decision. All updates happen under one lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stats: Dict[PlanType, RoutingStats] = {}
        self.reset()

    def record(self, plan: PlanType, model_id: str, confidence: float) -> None:
        """Record one routed request."""
        with self._lock:
            stats = self._stats.setdefault(plan, RoutingStats())
            stats.total_requests += 1
            stats.model_usage[model_id] = stats.model_usage.get(model_id, 0) + 1
            # Running mean
            stats.average_confidence += (
                confidence - stats.average_confidence
            ) / stats.total_requests

    def get(self, plan: PlanType) -> RoutingStats:
        """Snapshot of one plan's counters."""
        with self._lock:
            return _copy_stats(self._stats.get(plan, RoutingStats()))

    def all(self) -> Dict[PlanType, RoutingStats]:
        """Snapshot of every plan's counters."""
        with self._lock:
            return {plan: _copy_stats(stats) for plan, stats in self._stats.items()}

    def reset(self) -> None:
        with self._lock:
            self._stats = {plan: RoutingStats() for plan in PlanType}


class QueryRouter:
    """Routes messages to a model allowed by the caller's plan.

    Routing never raises: any internal failure produces a conservative
    default decision on the plan's first model.

    Example:
        ```python
        router = QueryRouter()
        decision = router.route("Design a scalable chat backend", PlanType.PRO)
        print(decision.model.model_id, decision.strategy)
        ```
    """

    def __init__(
        self,
        catalog: Optional[PlanCatalog] = None,
        analyzer: Optional[QueryAnalyzer] = None,
        selector: Optional[ModelSelector] = None,
        cost_estimator: Optional[CostEstimator] = None,
        settings: Optional[RoutingSettings] = None,
    ) -> None:
        """Initialize query router.

        Args:
            catalog: Plan catalog (defaults to the built-in catalog)
            analyzer: Query complexity analyzer
            selector: Model selector bound to the same catalog
            cost_estimator: Token cost estimator
            settings: Routing settings passed to the default cost estimator
        """
        self.catalog = catalog or default_catalog()
        self.analyzer = analyzer or QueryAnalyzer()
        self.selector = selector or ModelSelector(self.catalog)
        self.cost_estimator = cost_estimator or CostEstimator(settings)
        self.stats = RoutingStatsTracker()

        logger.info("query_router_initialized", plans=[p.value for p in self.catalog.plans()])

    def route(
        self,
        message: str,
        plan: Union[PlanType, str],
        pool_balances: Optional[PoolBalances] = None,
    ) -> RoutingDecision:
        """Route a message for a plan.

        Args:
            message: User message
            plan: Caller's plan
            pool_balances: Remaining pool balances, used for pool recommendation

        Returns:
            RoutingDecision (a default decision if anything goes wrong)
        """
        try:
            if plan not in self.catalog:
                raise RoutingError(f"Plan not in catalog: {plan}")

            plan_type = PlanType(plan)
            analysis = self.analyzer.analyze(message)
            selection = self.selector.select_model(plan_type, analysis.tier)

            estimate = self.cost_estimator.estimate(message, selection.model)
            pool = self.cost_estimator.recommend_pool(selection.model, estimate, pool_balances)

            decision = RoutingDecision(
                model=selection.model,
                fallback_model=selection.fallback_model,
                analysis=analysis,
                strategy=RoutingStrategy.SMART if selection.is_routed else RoutingStrategy.FIXED,
                cost_estimate=estimate,
                pool=pool,
                plan=plan_type,
            )

        except Exception as e:
            logger.error("routing_failed", plan=str(plan), error=str(e))
            return self._default_decision(plan, message)

        self.stats.record(plan_type, decision.model.model_id, analysis.confidence)

        logger.info(
            "routing_decision_made",
            plan=plan_type.value,
            model=decision.model.model_id,
            tier=analysis.tier.value,
            strategy=decision.strategy.value,
            confidence=analysis.confidence,
            estimated_tokens=estimate.estimated_total_tokens,
        )

        return decision

    def route_with_fallback(
        self,
        message: str,
        plan: Union[PlanType, str],
        primary_failed: bool = False,
        pool_balances: Optional[PoolBalances] = None,
    ) -> RoutingDecision:
        """Route, swapping primary and fallback when the primary failed."""
        decision = self.route(message, plan, pool_balances)

        if primary_failed and decision.fallback_model is not None:
            logger.warning(
                "primary_model_failed_using_fallback",
                primary=decision.model.model_id,
                fallback=decision.fallback_model.model_id,
            )
            estimate = self.cost_estimator.estimate(message, decision.fallback_model)
            return RoutingDecision(
                model=decision.fallback_model,
                fallback_model=decision.model,
                analysis=decision.analysis,
                strategy=decision.strategy,
                cost_estimate=estimate,
                pool=self.cost_estimator.recommend_pool(
                    decision.fallback_model, estimate, pool_balances
                ),
                plan=decision.plan,
            )

        return decision

    def route_batch(
        self,
        messages: Sequence[str],
        plan: Union[PlanType, str],
    ) -> List[RoutingDecision]:
        """Route several messages for the same plan."""
        return [self.route(message, plan) for message in messages]

    def check_affordability(
        self,
        decision: RoutingDecision,
        balances: PoolBalances,
    ) -> AffordabilityResult:
        """Check whether the caller's pools cover a routed request."""
        return self.cost_estimator.check_affordability(
            decision.model, decision.cost_estimate, balances
        )

    def get_routing_stats(self, plan: Union[PlanType, str]) -> RoutingStats:
        return self.stats.get(PlanType(plan))

    def get_all_stats(self) -> Dict[PlanType, RoutingStats]:
        return self.stats.all()

    def reset_stats(self) -> None:
        self.stats.reset()
        logger.info("routing_stats_reset")

    def plan_supports_smart_routing(self, plan: Union[PlanType, str]) -> bool:
        return self.catalog.get(plan).smart_routing

    def validate_model_for_plan(self, plan: Union[PlanType, str], model_id: str) -> bool:
        return self.catalog.plan_supports_model(plan, model_id)

    def _default_decision(
        self,
        plan: Union[PlanType, str],
        message: str,
    ) -> RoutingDecision:
        """Conservative decision used when routing fails."""
        try:
            plan_type = PlanType(plan)
            model = self.catalog.get(plan_type).pinned_model
        except Exception as e:
            logger.error("default_routing_plan_lookup_failed", plan=str(plan), error=str(e))
            plan_type = FREE_PLAN
            model = FALLBACK_MODEL

        try:
            estimate = self.cost_estimator.estimate(message, model)
        except Exception as e:
            logger.error("default_routing_estimate_failed", error=str(e))
            estimate = CostEstimate(
                estimated_input_tokens=0,
                estimated_output_tokens=0,
                estimated_total_tokens=0,
                estimated_cost_usd=0.0,
                model_used=model.model_id,
            )

        logger.warning(
            "default_routing_used",
            plan=plan_type.value,
            model=model.model_id,
        )

        return RoutingDecision(
            model=model,
            fallback_model=None,
            analysis=ComplexityAnalysis(
                tier=model.tier,
                confidence=0.0,
                reasoning=DEFAULT_ROUTING_REASON,
                metrics=ComplexityMetrics(
                    word_count=0,
                    sentence_count=0,
                    has_code=False,
                    has_questions=False,
                    has_technical_terms=False,
                    has_emotional_context=False,
                ),
            ),
            strategy=RoutingStrategy.FIXED,
            cost_estimate=estimate,
            pool=PoolType.PRIMARY,
            plan=plan_type,
        )
