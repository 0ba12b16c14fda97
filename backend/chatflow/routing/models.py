"""Data models for model-tier routing and token cost estimation."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from chatflow.config.plans import ModelDescriptor, PlanType, RoutingTier


class RoutingStrategy(str, Enum):
    """How the model was chosen."""

    FIXED = "fixed"  # Plan pinned to one model
    SMART = "smart"  # Routed by query complexity


class PoolType(str, Enum):
    """Token pools a request can be billed against."""

    PRIMARY = "primary"
    SECONDARY = "secondary"  # Only lite models may draw from it


@dataclass(frozen=True)
class ComplexityMetrics:
    """Surface features of a query."""

    word_count: int
    sentence_count: int
    has_code: bool
    has_questions: bool
    has_technical_terms: bool
    has_emotional_context: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "word_count": self.word_count,
            "sentence_count": self.sentence_count,
            "has_code": self.has_code,
            "has_questions": self.has_questions,
            "has_technical_terms": self.has_technical_terms,
            "has_emotional_context": self.has_emotional_context,
        }


@dataclass(frozen=True)
class ComplexityAnalysis:
    """Tier assessment of a query."""

    tier: RoutingTier
    confidence: float  # 0-1
    reasoning: str
    metrics: ComplexityMetrics


@dataclass(frozen=True)
class PoolBalances:
    """Remaining tokens in each pool."""

    primary: int = 0
    secondary: int = 0


@dataclass(frozen=True)
class CostEstimate:
    """Token and cost estimation for one request."""

    estimated_input_tokens: int
    estimated_output_tokens: int
    estimated_total_tokens: int
    estimated_cost_usd: float
    model_used: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "estimated_input_tokens": self.estimated_input_tokens,
            "estimated_output_tokens": self.estimated_output_tokens,
            "estimated_total_tokens": self.estimated_total_tokens,
            "estimated_cost_usd": round(self.estimated_cost_usd, 6),
            "model_used": self.model_used,
        }


@dataclass(frozen=True)
class AffordabilityResult:
    """Whether a request fits into the available pools."""

    can_afford: bool
    pool: Optional[PoolType] = None
    shortfall: int = 0


@dataclass(frozen=True)
class ModelSelection:
    """Model chosen for a tier within a plan."""

    model: ModelDescriptor
    fallback_model: Optional[ModelDescriptor]
    is_routed: bool
    plan_supports_routing: bool


@dataclass(frozen=True)
class RoutingDecision:
    """Complete routing decision for a message."""

    model: ModelDescriptor
    fallback_model: Optional[ModelDescriptor]
    analysis: ComplexityAnalysis
    strategy: RoutingStrategy
    cost_estimate: CostEstimate
    pool: PoolType
    plan: PlanType
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def model_id(self) -> str:
        return self.model.model_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "model": self.model.model_id,
            "display_name": self.model.display_name,
            "fallback_model": self.fallback_model.model_id if self.fallback_model else None,
            "tier": self.analysis.tier.value,
            "confidence": self.analysis.confidence,
            "reasoning": self.analysis.reasoning,
            "metrics": self.analysis.metrics.to_dict(),
            "strategy": self.strategy.value,
            "cost_estimate": self.cost_estimate.to_dict(),
            "pool": self.pool.value,
            "plan": self.plan.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class RoutingStats:
    """Introspective counters for one plan."""

    total_requests: int = 0
    model_usage: Dict[str, int] = field(default_factory=dict)
    average_confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_requests": self.total_requests,
            "model_usage": dict(self.model_usage),
            "average_confidence": round(self.average_confidence, 4),
        }
