"""Pipeline orchestrator - main entry point for processing one user message."""

import asyncio
import time
from collections import Counter, deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Sequence, Union

import structlog

from chatflow.classification.classifier import PatternClassifier
from chatflow.classification.guard import HardBlockGuard
from chatflow.classification.models import ConflictAnalysis
from chatflow.config.plans import PlanCatalog, PlanType, default_catalog
from chatflow.config.settings import (
    CompactionSettings,
    CoreSettings,
    get_compaction_settings,
    get_core_settings,
)
from chatflow.core.exceptions import (
    ConfigurationError,
    GenerationError,
    GenerationTimeoutError,
)
from chatflow.llm.client import as_generation_client
from chatflow.llm.interface import GenerateFn, GenerationClientInterface
from chatflow.llm.prompts import build_reply_prompt
from chatflow.routing.models import PoolBalances, RoutingDecision
from chatflow.routing.query_router import QueryRouter
from chatflow.session.compactor import ContextCompactor
from chatflow.types import Message
from chatflow.validation.models import ValidationResult
from chatflow.validation.regenerator import RegenerationCoordinator
from chatflow.validation.validator import ResponseValidator

logger = structlog.get_logger()

DEFAULT_MAX_OUTPUT_TOKENS = 1024


class PipelineState(str, Enum):
    """States a request passes through."""

    RECEIVED = "received"
    HARD_BLOCK_CHECKED = "hard_block_checked"
    TERMINATED_WITH_FIXED_REPLY = "terminated_with_fixed_reply"
    CONFLICT_CLASSIFIED = "conflict_classified"
    ROUTED = "routed"
    CONTEXT_COMPACTED = "context_compacted"
    GENERATED = "generated"
    VALIDATED = "validated"
    REGENERATION_REQUESTED = "regeneration_requested"
    REGENERATED = "regenerated"
    REVALIDATED = "revalidated"
    DONE = "done"


@dataclass
class PipelineAnalytics:
    """Per-request analytics attached to every result."""

    conflict_detected: bool = False
    category: Optional[str] = None
    severity: Optional[str] = None
    intent: Optional[str] = None
    suggested_action: Optional[str] = None
    routed_model: Optional[str] = None
    tier: Optional[str] = None
    routing_strategy: Optional[str] = None
    compaction_strategy: Optional[str] = None
    messages_removed: int = 0
    validation_score: Optional[int] = None
    passed_validation: Optional[bool] = None
    critical_violations: int = 0
    was_regenerated: bool = False
    regeneration_exhausted: bool = False
    hard_blocked: bool = False
    processing_time_ms: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


@dataclass
class PipelineResult:
    """Final outcome of processing one message."""

    final_reply: str
    was_regenerated: bool
    analytics: PipelineAnalytics
    state_trail: List[PipelineState] = field(default_factory=list)
    routing: Optional[RoutingDecision] = None
    validation: Optional[ValidationResult] = None

    @property
    def final_state(self) -> Optional[PipelineState]:
        return self.state_trail[-1] if self.state_trail else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "final_reply": self.final_reply,
            "was_regenerated": self.was_regenerated,
            "analytics": self.analytics.to_dict(),
            "state_trail": [s.value for s in self.state_trail],
            "routing": self.routing.to_dict() if self.routing else None,
            "validation": self.validation.to_dict() if self.validation else None,
        }


class PipelineOrchestrator:
    """Coordinates the request-time decisions around one generation call.

    For every user message the orchestrator:
    1. Checks the hard-block guard (fixed safety reply on a hit)
    2. Classifies the message for pushback against the assistant
    3. Routes it to a model the plan allows
    4. Compacts the conversation window into the plan's budget
    5. Generates a reply and validates it
    6. Regenerates at most once when the reply to a conflict is poor

    Example:
        ```python
        orchestrator = PipelineOrchestrator(generate=my_async_generate)
        result = await orchestrator.process(
            "you are completely wrong, it's not Delhi it's Mumbai",
            plan=PlanType.PRO,
            window=history,
        )
        print(result.final_reply, result.analytics.was_regenerated)
        ```
    """

    def __init__(
        self,
        generate: Union[GenerationClientInterface, GenerateFn],
        catalog: Optional[PlanCatalog] = None,
        guard: Optional[HardBlockGuard] = None,
        classifier: Optional[PatternClassifier] = None,
        router: Optional[QueryRouter] = None,
        compactor: Optional[ContextCompactor] = None,
        validator: Optional[ResponseValidator] = None,
        regenerator: Optional[RegenerationCoordinator] = None,
        settings: Optional[CoreSettings] = None,
        compaction_settings: Optional[CompactionSettings] = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            generate: Generation client or async ``generate(prompt, max_tokens)``
            catalog: Plan catalog shared by router and compactor
            guard: Hard-block guard (built from settings if not provided)
            classifier: Conflict classifier
            router: Query router
            compactor: Context compactor
            validator: Reply validator
            regenerator: Regeneration coordinator
            settings: Core settings (timeout, hard-block message, log size)
            compaction_settings: Compaction settings (``enabled`` switch)
        """
        self.settings = settings or get_core_settings()
        self.compaction_settings = compaction_settings or get_compaction_settings()
        self.catalog = catalog or default_catalog()

        self.client = as_generation_client(generate)
        self.guard = guard or HardBlockGuard(enabled=self.settings.enable_hard_block)
        self.classifier = classifier or PatternClassifier()
        self.router = router or QueryRouter(catalog=self.catalog)
        self.compactor = compactor or ContextCompactor(
            catalog=self.catalog, settings=self.compaction_settings
        )
        self.validator = validator or ResponseValidator()
        self.regenerator = regenerator or RegenerationCoordinator(self.validator.settings)

        self._violation_log: Deque[Dict[str, Any]] = deque(
            maxlen=self.settings.violation_log_size
        )

        logger.info(
            "pipeline_orchestrator_initialized",
            generator=self.client.get_model_name(),
            hard_block_enabled=self.guard.enabled,
            compaction_enabled=self.compaction_settings.enabled,
        )

    async def process(
        self,
        user_message: str,
        plan: Union[PlanType, str],
        window: Sequence[Message] = (),
        pool_balances: Optional[PoolBalances] = None,
    ) -> PipelineResult:
        """Process one user message.

        Args:
            user_message: The message to answer
            plan: Caller's plan
            window: Conversation history, oldest first (not modified)
            pool_balances: Remaining pool balances for pool recommendation

        Returns:
            PipelineResult with the final reply, analytics and state trail

        Raises:
            GenerationError: If the generation call fails or times out
        """
        start_time = time.perf_counter()
        trail: List[PipelineState] = [PipelineState.RECEIVED]
        analytics = PipelineAnalytics()

        # Step 1: Hard-block guard
        guard_result = self.guard.check(user_message)
        trail.append(PipelineState.HARD_BLOCK_CHECKED)

        if guard_result.blocked:
            trail.append(PipelineState.TERMINATED_WITH_FIXED_REPLY)
            analytics.hard_blocked = True
            analytics.processing_time_ms = _elapsed_ms(start_time)

            logger.info(
                "pipeline_terminated_hard_block",
                category=guard_result.category.value if guard_result.category else None,
            )

            return PipelineResult(
                final_reply=self.settings.hard_block_message,
                was_regenerated=False,
                analytics=analytics,
                state_trail=trail,
            )

        # Step 2: Conflict classification
        analysis = self._classify(user_message, window)
        trail.append(PipelineState.CONFLICT_CLASSIFIED)
        analytics.conflict_detected = analysis.has_conflict
        analytics.category = analysis.category.value
        analytics.severity = analysis.severity.value
        analytics.intent = analysis.intent.value
        analytics.suggested_action = analysis.suggested_action.value

        # Step 3: Routing
        decision = self.router.route(user_message, plan, pool_balances)
        trail.append(PipelineState.ROUTED)
        analytics.routed_model = decision.model_id
        analytics.tier = decision.analysis.tier.value
        analytics.routing_strategy = decision.strategy.value

        # Step 4: Context compaction
        context = list(window)
        if self.compaction_settings.enabled:
            compression = self.compactor.compact(context, decision.plan)
            context = compression.messages
            analytics.compaction_strategy = compression.strategy.value
            analytics.messages_removed = compression.messages_removed
        trail.append(PipelineState.CONTEXT_COMPACTED)

        # Step 5: Generation
        max_tokens = self._max_output_tokens(decision.plan)
        prompt = build_reply_prompt(context, user_message, analysis)
        reply = await self._generate(prompt, max_tokens, decision.model_id)
        trail.append(PipelineState.GENERATED)

        # Step 6: Validation
        result = self.validator.validate(reply, analysis.category)
        trail.append(PipelineState.VALIDATED)
        if self._is_failing(result):
            self._record_violations(analysis, result, regenerated=False)

        # Step 7: At most one regeneration
        was_regenerated = False
        if self._wants_regeneration(analysis, result):
            trail.append(PipelineState.REGENERATION_REQUESTED)

            context_for_retry = self.regenerator.build_context(
                user_message, reply, result, analysis
            )
            guidance = self.regenerator.build_guidance(context_for_retry)

            retry_tokens = self.validator.settings.regeneration_max_tokens or max_tokens
            reply = await self._generate(guidance.to_prompt(), retry_tokens, decision.model_id)
            trail.append(PipelineState.REGENERATED)
            was_regenerated = True

            result = self.validator.validate(reply, analysis.category)
            trail.append(PipelineState.REVALIDATED)

            if self._is_failing(result):
                self._record_violations(analysis, result, regenerated=True)
            if self.regenerator.should_regenerate(result):
                analytics.regeneration_exhausted = True
                logger.warning(
                    "regeneration_exhausted",
                    category=analysis.category.value,
                    score=result.score,
                )

        trail.append(PipelineState.DONE)

        analytics.validation_score = result.score
        analytics.passed_validation = result.is_valid
        analytics.critical_violations = result.critical_count
        analytics.was_regenerated = was_regenerated
        analytics.processing_time_ms = _elapsed_ms(start_time)

        logger.info(
            "pipeline_complete",
            model=decision.model_id,
            category=analysis.category.value,
            score=result.score,
            was_regenerated=was_regenerated,
            processing_time_ms=analytics.processing_time_ms,
        )

        return PipelineResult(
            final_reply=reply,
            was_regenerated=was_regenerated,
            analytics=analytics,
            state_trail=trail,
            routing=decision,
            validation=result,
        )

    def get_violation_stats(self) -> Dict[str, Any]:
        """Aggregate statistics over the recent violation log."""
        entries = list(self._violation_log)
        if not entries:
            return {
                "total_logged": 0,
                "by_type": {},
                "by_category": {},
                "average_score": None,
                "regenerated_failures": 0,
            }

        by_type: Counter = Counter()
        for entry in entries:
            by_type.update(entry["violations"])

        return {
            "total_logged": len(entries),
            "by_type": dict(by_type),
            "by_category": dict(Counter(e["category"] for e in entries)),
            "average_score": round(sum(e["score"] for e in entries) / len(entries), 2),
            "regenerated_failures": sum(1 for e in entries if e["regenerated"]),
        }

    def clear_violation_log(self) -> None:
        """Clear the violation log."""
        self._violation_log.clear()
        logger.info("violation_log_cleared")

    def _classify(self, message: str, window: Sequence[Message]) -> ConflictAnalysis:
        try:
            return self.classifier.classify(message, history=window)
        except Exception as e:
            logger.error("conflict_classification_failed", error=str(e))
            return ConflictAnalysis.no_conflict()

    def _is_failing(self, result: ValidationResult) -> bool:
        return not result.is_valid or result.score < self.validator.settings.acceptance_threshold

    def _wants_regeneration(self, analysis: ConflictAnalysis, result: ValidationResult) -> bool:
        if not (analysis.has_conflict or self.validator.settings.regenerate_without_conflict):
            return False
        return self.regenerator.should_regenerate(result)

    def _max_output_tokens(self, plan: PlanType) -> int:
        try:
            return self.catalog.get(plan).max_output_tokens
        except ConfigurationError:
            return DEFAULT_MAX_OUTPUT_TOKENS

    async def _generate(self, prompt: str, max_tokens: int, model_id: str) -> str:
        """Call the generator under the configured timeout."""
        timeout = self.settings.generation_timeout_seconds
        try:
            return await asyncio.wait_for(
                self.client.generate(prompt, max_tokens),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error("generation_timed_out", model=model_id, timeout_seconds=timeout)
            raise GenerationTimeoutError(
                f"Generation exceeded {timeout}s", model=model_id
            ) from e
        except GenerationError:
            raise
        except Exception as e:
            logger.error("generation_failed", model=model_id, error=str(e))
            raise GenerationError(f"Generation failed: {e}", model=model_id) from e

    def _record_violations(
        self,
        analysis: ConflictAnalysis,
        result: ValidationResult,
        regenerated: bool,
    ) -> None:
        self._violation_log.append({
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "category": analysis.category.value,
            "score": result.score,
            "violations": [v.type.value for v in result.violations],
            "regenerated": regenerated,
        })


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 2)


def create_pipeline(
    generate: Union[GenerationClientInterface, GenerateFn],
    catalog: Optional[PlanCatalog] = None,
) -> PipelineOrchestrator:
    """Create an orchestrator with default components.

    Args:
        generate: Generation client or async ``generate(prompt, max_tokens)``
        catalog: Plan catalog (defaults to the built-in catalog)

    Returns:
        Ready PipelineOrchestrator
    """
    return PipelineOrchestrator(generate=generate, catalog=catalog)
