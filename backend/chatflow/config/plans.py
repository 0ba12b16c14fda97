"""Plan and model catalog.

The catalog is immutable configuration: it is built (or loaded from YAML)
once at startup and handed to the components that need it. Every plan owns
an ordered list of model descriptors tagged by routing tier, a context token
budget and a default compaction strategy.

Example:
    ```python
    catalog = PlanCatalog.from_yaml("plans.yaml")
    plan = catalog.get(PlanType.PRO)
    print(plan.models[0].model_id)
    ```
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import structlog
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from chatflow.core.exceptions import ConfigurationError

logger = structlog.get_logger()


class RoutingTier(str, Enum):
    """Complexity buckets used to pick a model, from cheapest to most capable."""

    CASUAL = "casual"
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"
    EXPERT = "expert"


TIER_HIERARCHY: Tuple[RoutingTier, ...] = (
    RoutingTier.CASUAL,
    RoutingTier.SIMPLE,
    RoutingTier.MEDIUM,
    RoutingTier.COMPLEX,
    RoutingTier.EXPERT,
)


class PlanType(str, Enum):
    """Subscription plans."""

    STARTER = "starter"  # Free plan, pinned model
    LITE = "lite"
    PLUS = "plus"
    PRO = "pro"
    APEX = "apex"


FREE_PLAN = PlanType.STARTER


class CompactionStrategy(str, Enum):
    """Algorithms used to fit a conversation window into a token budget."""

    TRUNCATION = "truncation"
    SELECTIVE = "selective"
    SLIDING_WINDOW = "sliding-window"
    SMART_SUMMARY = "smart-summary"


class ModelDescriptor(BaseModel):
    """A model a plan may route to."""

    model_config = ConfigDict(frozen=True)

    model_id: str
    display_name: str
    tier: RoutingTier
    cost_per_1m: float = Field(default=0.0, ge=0.0)
    is_lite: bool = False

    @field_validator("model_id")
    @classmethod
    def validate_model_id(cls, v: str) -> str:
        """Validate that the model id is not empty."""
        if not v or not v.strip():
            raise ValueError("Model id cannot be empty")
        return v.strip()


class PlanConfig(BaseModel):
    """Routing and context configuration for one plan."""

    model_config = ConfigDict(frozen=True)

    plan: PlanType
    models: Tuple[ModelDescriptor, ...]
    smart_routing: bool = True
    context_token_budget: int = Field(default=4000, ge=1)
    compaction_strategy: CompactionStrategy = CompactionStrategy.TRUNCATION
    max_output_tokens: int = Field(default=1024, ge=1)

    @model_validator(mode="after")
    def validate_models(self) -> "PlanConfig":
        """Plans need at least one model; the free plan is pinned to one."""
        if not self.models:
            raise ValueError(f"Plan {self.plan.value} has no models")
        if self.plan == FREE_PLAN and self.smart_routing:
            raise ValueError("The free plan cannot enable smart routing")
        return self

    @property
    def pinned_model(self) -> ModelDescriptor:
        """First model of the plan, used whenever routing is disabled."""
        return self.models[0]

    def model_ids(self) -> List[str]:
        """Ids of all models the plan allows."""
        return [m.model_id for m in self.models]


FLASH_LITE = ModelDescriptor(
    model_id="gemini-2.5-flash-lite",
    display_name="Gemini Flash Lite",
    tier=RoutingTier.CASUAL,
    cost_per_1m=0.40,
    is_lite=True,
)
HAIKU = ModelDescriptor(
    model_id="claude-3-haiku-20240307",
    display_name="Claude 3 Haiku",
    tier=RoutingTier.SIMPLE,
    cost_per_1m=1.25,
)
GEMINI_PRO = ModelDescriptor(
    model_id="gemini-2.5-pro",
    display_name="Gemini 2.5 Pro",
    tier=RoutingTier.MEDIUM,
    cost_per_1m=10.0,
)
SONNET = ModelDescriptor(
    model_id="claude-sonnet-4-20250514",
    display_name="Claude Sonnet 4",
    tier=RoutingTier.COMPLEX,
    cost_per_1m=15.0,
)
GPT_5_1 = ModelDescriptor(
    model_id="gpt-5.1",
    display_name="GPT-5.1",
    tier=RoutingTier.EXPERT,
    cost_per_1m=10.0,
)


DEFAULT_PLANS: Tuple[PlanConfig, ...] = (
    PlanConfig(
        plan=PlanType.STARTER,
        models=(FLASH_LITE,),
        smart_routing=False,
        context_token_budget=2000,
        compaction_strategy=CompactionStrategy.TRUNCATION,
        max_output_tokens=512,
    ),
    PlanConfig(
        plan=PlanType.LITE,
        models=(FLASH_LITE, HAIKU),
        context_token_budget=3000,
        compaction_strategy=CompactionStrategy.TRUNCATION,
        max_output_tokens=768,
    ),
    PlanConfig(
        plan=PlanType.PLUS,
        models=(FLASH_LITE, HAIKU, GEMINI_PRO),
        context_token_budget=4000,
        compaction_strategy=CompactionStrategy.SELECTIVE,
        max_output_tokens=1024,
    ),
    PlanConfig(
        plan=PlanType.PRO,
        models=(FLASH_LITE, HAIKU, GEMINI_PRO, SONNET, GPT_5_1),
        context_token_budget=8000,
        compaction_strategy=CompactionStrategy.SLIDING_WINDOW,
        max_output_tokens=2048,
    ),
    PlanConfig(
        plan=PlanType.APEX,
        models=(HAIKU, GEMINI_PRO, SONNET, GPT_5_1),
        context_token_budget=16000,
        compaction_strategy=CompactionStrategy.SMART_SUMMARY,
        max_output_tokens=4096,
    ),
)


class PlanCatalog:
    """Immutable lookup of plan configurations."""

    def __init__(self, plans: Tuple[PlanConfig, ...]) -> None:
        """Initialize the catalog.

        Args:
            plans: Plan configurations (one per plan type)

        Raises:
            ConfigurationError: If a plan is defined twice
        """
        by_plan: Dict[PlanType, PlanConfig] = {}
        for plan in plans:
            if plan.plan in by_plan:
                raise ConfigurationError(f"Plan {plan.plan.value} defined twice")
            by_plan[plan.plan] = plan
        self._plans: Mapping[PlanType, PlanConfig] = by_plan

        logger.info("plan_catalog_loaded", plans=[p.value for p in by_plan])

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PlanCatalog":
        """Build a catalog from a ``{"plans": [...]}`` mapping.

        Raises:
            ConfigurationError: If the data does not describe valid plans
        """
        raw_plans = data.get("plans") if isinstance(data, Mapping) else None
        if not isinstance(raw_plans, list) or not raw_plans:
            raise ConfigurationError("Catalog must contain a non-empty 'plans' list")

        try:
            plans = tuple(PlanConfig.model_validate(p) for p in raw_plans)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid plan catalog: {e}") from e

        return cls(plans)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "PlanCatalog":
        """Load a catalog from a YAML file.

        Raises:
            ConfigurationError: If the file is missing or invalid
        """
        path = Path(path)
        try:
            with path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Cannot read plan catalog {path}: {e}") from e

        return cls.from_dict(data or {})

    def get(self, plan: Union[PlanType, str]) -> PlanConfig:
        """Get configuration for a plan.

        Raises:
            ConfigurationError: If the plan is unknown
        """
        try:
            plan_type = PlanType(plan)
        except ValueError as e:
            raise ConfigurationError(f"Unknown plan: {plan}") from e

        config = self._plans.get(plan_type)
        if config is None:
            raise ConfigurationError(f"Plan {plan_type.value} not in catalog")
        return config

    def plans(self) -> List[PlanType]:
        """All plans in the catalog."""
        return list(self._plans)

    def models_for(self, plan: Union[PlanType, str]) -> Tuple[ModelDescriptor, ...]:
        """Ordered models allowed for a plan."""
        return self.get(plan).models

    def plan_supports_model(self, plan: Union[PlanType, str], model_id: str) -> bool:
        """Check whether a model id belongs to a plan."""
        return any(m.model_id == model_id for m in self.models_for(plan))

    def plan_supports_tier(self, plan: Union[PlanType, str], tier: RoutingTier) -> bool:
        """Check whether a plan has a model tagged with a tier."""
        return any(m.tier == tier for m in self.models_for(plan))

    def __contains__(self, plan: object) -> bool:
        try:
            return PlanType(plan) in self._plans
        except ValueError:
            return False


_default_catalog: Optional[PlanCatalog] = None


def default_catalog() -> PlanCatalog:
    """Get the built-in plan catalog."""
    global _default_catalog
    if _default_catalog is None:
        _default_catalog = PlanCatalog(DEFAULT_PLANS)
    return _default_catalog
