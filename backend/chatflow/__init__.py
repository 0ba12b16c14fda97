"""Chatflow request-time decision pipeline."""

from chatflow.classification.classifier import PatternClassifier, classify_conflict
from chatflow.classification.guard import HardBlockGuard
from chatflow.classification.models import (
    ConflictAnalysis,
    ConflictCategory,
    ConflictSeverity,
    SuggestedAction,
    UserIntent,
)
from chatflow.config.plans import (
    CompactionStrategy,
    ModelDescriptor,
    PlanCatalog,
    PlanConfig,
    PlanType,
    RoutingTier,
    default_catalog,
)
from chatflow.core.exceptions import (
    ChatflowError,
    ConfigurationError,
    GenerationError,
    GenerationTimeoutError,
)
from chatflow.core.logging import configure_logging
from chatflow.core.orchestrator import (
    PipelineAnalytics,
    PipelineOrchestrator,
    PipelineResult,
    PipelineState,
    create_pipeline,
)
from chatflow.llm.client import CallableGenerationClient, MockGenerationClient
from chatflow.llm.interface import GenerationClientInterface
from chatflow.routing.models import PoolBalances, RoutingDecision, RoutingStrategy
from chatflow.routing.query_router import QueryRouter
from chatflow.session.compactor import ContextCompactor
from chatflow.session.types import CompressionResult
from chatflow.types import ConversationWindow, Message, MessageRole
from chatflow.validation.models import ValidationResult, ViolationSeverity, ViolationType
from chatflow.validation.regenerator import RegenerationCoordinator
from chatflow.validation.validator import ResponseValidator

__version__ = "0.1.0"

__all__ = [
    # Pipeline
    "PipelineOrchestrator",
    "PipelineResult",
    "PipelineAnalytics",
    "PipelineState",
    "create_pipeline",
    # Conflict classification
    "PatternClassifier",
    "HardBlockGuard",
    "classify_conflict",
    "ConflictAnalysis",
    "ConflictCategory",
    "ConflictSeverity",
    "SuggestedAction",
    "UserIntent",
    # Routing
    "QueryRouter",
    "RoutingDecision",
    "RoutingStrategy",
    "PoolBalances",
    # Compaction
    "ContextCompactor",
    "CompressionResult",
    "CompactionStrategy",
    # Validation
    "ResponseValidator",
    "RegenerationCoordinator",
    "ValidationResult",
    "ViolationType",
    "ViolationSeverity",
    # Plans
    "PlanCatalog",
    "PlanConfig",
    "PlanType",
    "ModelDescriptor",
    "RoutingTier",
    "default_catalog",
    # Generation
    "GenerationClientInterface",
    "CallableGenerationClient",
    "MockGenerationClient",
    # Types
    "Message",
    "MessageRole",
    "ConversationWindow",
    # Errors and logging
    "ChatflowError",
    "ConfigurationError",
    "GenerationError",
    "GenerationTimeoutError",
    "configure_logging",
]
