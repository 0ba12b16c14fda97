"""Configuration module for chatflow."""

from chatflow.config.settings import (
    ClassifierSettings,
    CompactionSettings,
    CoreSettings,
    RoutingSettings,
    ValidationSettings,
    get_classifier_settings,
    get_compaction_settings,
    get_core_settings,
    get_routing_settings,
    get_validation_settings,
)
from chatflow.config.plans import (
    FREE_PLAN,
    TIER_HIERARCHY,
    CompactionStrategy,
    ModelDescriptor,
    PlanCatalog,
    PlanConfig,
    PlanType,
    RoutingTier,
    default_catalog,
)

__all__ = [
    "CoreSettings",
    "ClassifierSettings",
    "RoutingSettings",
    "CompactionSettings",
    "ValidationSettings",
    "get_core_settings",
    "get_classifier_settings",
    "get_routing_settings",
    "get_compaction_settings",
    "get_validation_settings",
    # Plan catalog
    "PlanCatalog",
    "PlanConfig",
    "PlanType",
    "ModelDescriptor",
    "RoutingTier",
    "CompactionStrategy",
    "TIER_HIERARCHY",
    "FREE_PLAN",
    "default_catalog",
]
