"""Token cost estimation and pool allocation for routed requests."""

import math
from typing import Dict, Optional

import structlog
import tiktoken

from chatflow.config.plans import ModelDescriptor
from chatflow.config.settings import RoutingSettings, get_routing_settings
from chatflow.routing.models import (
    AffordabilityResult,
    CostEstimate,
    PoolBalances,
    PoolType,
)

logger = structlog.get_logger()


class CostEstimator:
    """Estimates token counts and costs for a message.

    Input tokens come from a words-to-tokens ratio, or from tiktoken when
    ``use_tiktoken`` is enabled. Output tokens are a fixed multiple of the
    input.

    Example:
        ```python
        estimator = CostEstimator()
        estimate = estimator.estimate("Explain recursion", model)
        print(f"Estimated cost: ${estimate.estimated_cost_usd:.6f}")
        ```
    """

    def __init__(self, settings: Optional[RoutingSettings] = None) -> None:
        """Initialize the cost estimator.

        Args:
            settings: Routing settings (defaults to cached settings)
        """
        self.settings = settings or get_routing_settings()
        self._encoders: Dict[str, tiktoken.Encoding] = {}

    def estimate(self, message: str, model: ModelDescriptor) -> CostEstimate:
        """Estimate tokens and cost of answering a message.

        Args:
            message: User message
            model: Model the request is routed to

        Returns:
            CostEstimate with token breakdown
        """
        input_tokens = self.count_input_tokens(message)
        output_tokens = int(math.ceil(input_tokens * self.settings.response_multiplier))
        total_tokens = input_tokens + output_tokens
        cost = total_tokens / 1_000_000 * model.cost_per_1m

        logger.debug(
            "cost_estimated",
            model=model.model_id,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            cost_usd=cost,
        )

        return CostEstimate(
            estimated_input_tokens=input_tokens,
            estimated_output_tokens=output_tokens,
            estimated_total_tokens=total_tokens,
            estimated_cost_usd=cost,
            model_used=model.model_id,
        )

    def count_input_tokens(self, text: str) -> int:
        """Count input tokens for a message."""
        if self.settings.use_tiktoken:
            return self._count_tokens_tiktoken(text)
        return self._count_tokens_by_words(text)

    def _count_tokens_by_words(self, text: str) -> int:
        word_count = len(text.split())
        return int(math.ceil(word_count * self.settings.tokens_per_word))

    def _count_tokens_tiktoken(self, text: str) -> int:
        """Count tokens using a tiktoken encoding."""
        encoding_name = self.settings.tiktoken_encoding
        try:
            if encoding_name not in self._encoders:
                self._encoders[encoding_name] = tiktoken.get_encoding(encoding_name)
            return len(self._encoders[encoding_name].encode(text))

        except Exception as e:
            logger.warning(
                "tiktoken_counting_failed",
                encoding=encoding_name,
                error=str(e),
                fallback="word_based",
            )
            return self._count_tokens_by_words(text)

    def recommend_pool(
        self,
        model: ModelDescriptor,
        estimate: CostEstimate,
        balances: Optional[PoolBalances] = None,
    ) -> PoolType:
        """Pick the pool a request should draw from.

        Lite models use the secondary pool when it covers the whole
        estimate; everything else bills the primary pool.
        """
        if (
            balances is not None
            and model.is_lite
            and self.settings.allow_secondary_pool
            and balances.secondary >= estimate.estimated_total_tokens
        ):
            return PoolType.SECONDARY
        return PoolType.PRIMARY

    def check_affordability(
        self,
        model: ModelDescriptor,
        estimate: CostEstimate,
        balances: PoolBalances,
    ) -> AffordabilityResult:
        """Check whether any pool can cover the estimate.

        The primary pool is checked first; the secondary pool only counts
        for lite models.
        """
        needed = estimate.estimated_total_tokens

        if balances.primary >= needed:
            return AffordabilityResult(can_afford=True, pool=PoolType.PRIMARY)

        secondary_allowed = model.is_lite and self.settings.allow_secondary_pool
        if secondary_allowed and balances.secondary >= needed:
            return AffordabilityResult(can_afford=True, pool=PoolType.SECONDARY)

        best_balance = balances.primary
        if secondary_allowed:
            best_balance = max(best_balance, balances.secondary)

        shortfall = max(needed - best_balance, 0)
        logger.info(
            "insufficient_token_balance",
            model=model.model_id,
            needed=needed,
            shortfall=shortfall,
        )
        return AffordabilityResult(can_afford=False, pool=None, shortfall=shortfall)
