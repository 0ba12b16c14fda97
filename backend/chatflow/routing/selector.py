"""Model selection by plan and routing tier."""

from typing import Optional, Sequence

import structlog

from chatflow.config.plans import (
    TIER_HIERARCHY,
    ModelDescriptor,
    PlanCatalog,
    PlanConfig,
    PlanType,
    RoutingTier,
    default_catalog,
)
from chatflow.routing.models import ModelSelection

logger = structlog.get_logger()


class ModelSelector:
    """Selects a model from a plan for a routing tier.

    Plans with routing disabled always get their pinned (first) model.
    Otherwise the model tagged with the requested tier is used; when the
    plan has none, the tier hierarchy is walked downward and then upward.
    """

    def __init__(self, catalog: Optional[PlanCatalog] = None) -> None:
        self.catalog = catalog or default_catalog()

    def select_model(self, plan: PlanType, tier: RoutingTier) -> ModelSelection:
        """Select a model and an optional fallback.

        Args:
            plan: Caller's plan
            tier: Tier requested by the complexity analyzer

        Returns:
            ModelSelection with the chosen model

        Raises:
            ConfigurationError: If the plan is not in the catalog
        """
        config = self.catalog.get(plan)

        if not config.smart_routing:
            return ModelSelection(
                model=config.pinned_model,
                fallback_model=None,
                is_routed=False,
                plan_supports_routing=False,
            )

        model = self._select_by_tier(config, tier)
        fallback = self._fallback_for(config.models, model)

        return ModelSelection(
            model=model,
            fallback_model=fallback,
            is_routed=True,
            plan_supports_routing=True,
        )

    def _select_by_tier(self, config: PlanConfig, tier: RoutingTier) -> ModelDescriptor:
        match = self._first_with_tier(config.models, tier)
        if match is not None:
            return match

        closest = self._closest_tier_model(config.models, tier)
        logger.warning(
            "routing_tier_unavailable",
            plan=config.plan.value,
            requested_tier=tier.value,
            selected_model=closest.model_id,
            selected_tier=closest.tier.value,
        )
        return closest

    def _closest_tier_model(
        self,
        models: Sequence[ModelDescriptor],
        requested: RoutingTier,
    ) -> ModelDescriptor:
        """Walk down the hierarchy from the requested tier, then up."""
        index = TIER_HIERARCHY.index(requested)

        for tier in reversed(TIER_HIERARCHY[: index + 1]):
            model = self._first_with_tier(models, tier)
            if model is not None:
                return model

        for tier in TIER_HIERARCHY[index + 1 :]:
            model = self._first_with_tier(models, tier)
            if model is not None:
                return model

        return models[0]

    def _fallback_for(
        self,
        models: Sequence[ModelDescriptor],
        primary: ModelDescriptor,
    ) -> Optional[ModelDescriptor]:
        """One tier below the primary, then simple, then casual."""
        candidates = [
            self._tier_below(primary.tier),
            RoutingTier.SIMPLE,
            RoutingTier.CASUAL,
        ]

        for tier in candidates:
            if tier is None:
                continue
            for model in models:
                if model.tier == tier and model.model_id != primary.model_id:
                    return model

        return None

    @staticmethod
    def _tier_below(tier: RoutingTier) -> Optional[RoutingTier]:
        index = TIER_HIERARCHY.index(tier)
        return TIER_HIERARCHY[index - 1] if index > 0 else None

    @staticmethod
    def _first_with_tier(
        models: Sequence[ModelDescriptor],
        tier: RoutingTier,
    ) -> Optional[ModelDescriptor]:
        for model in models:
            if model.tier == tier:
                return model
        return None
