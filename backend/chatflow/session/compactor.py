"""Context compactor for fitting conversation windows into a token budget."""

from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import structlog

from chatflow.config.plans import CompactionStrategy, PlanCatalog, PlanType, default_catalog
from chatflow.config.settings import CompactionSettings, get_compaction_settings
from chatflow.core.exceptions import CompactionError
from chatflow.session.cache import SummaryCache
from chatflow.session.summarizer import ConversationSummarizer
from chatflow.session.token_manager import TokenManager
from chatflow.session.types import CompressionResult
from chatflow.types import Message, MessageRole

logger = structlog.get_logger()

SUMMARY_PREFIX = "[Previous conversation summary]"

# (position, message). Original messages carry their int index; a synthesized
# summary carries a float position just before the block it replaces.
IndexedMessage = Tuple[Union[int, float], Message]


class ContextCompactor:
    """Compacts conversation history to fit a plan's context budget.

    Strategies:
    1. truncation: keep the newest messages that fit
    2. selective: keep the most recent messages, then the highest
       priority older ones that fit
    3. sliding-window: like selective, but system messages are always kept
    4. smart-summary: replace a long run of older messages with one
       summary message

    Retained messages keep their original relative order. Whatever the
    strategy, the result is at most ``budget`` tokens or exactly the
    minimum-message floor.

    Example:
        ```python
        compactor = ContextCompactor()

        if compactor.needs_compaction(messages, PlanType.PRO):
            result = compactor.compact(messages, PlanType.PRO)
            messages = result.messages
        ```
    """

    def __init__(
        self,
        catalog: Optional[PlanCatalog] = None,
        settings: Optional[CompactionSettings] = None,
        token_manager: Optional[TokenManager] = None,
        summarizer: Optional[ConversationSummarizer] = None,
        cache: Optional[SummaryCache] = None,
    ) -> None:
        """Initialize context compactor.

        Args:
            catalog: Plan catalog providing budgets and default strategies
            settings: Compaction tunables
            token_manager: Token estimator
            summarizer: Rule-based summarizer for smart-summary
            cache: Summary cache (one per compactor by default)
        """
        self.catalog = catalog or default_catalog()
        self.settings = settings or get_compaction_settings()
        self.token_manager = token_manager or TokenManager(self.settings)
        self.summarizer = summarizer or ConversationSummarizer(self.settings)
        self.cache = cache or SummaryCache(
            ttl_seconds=self.settings.summary_cache_ttl_seconds,
            max_size=self.settings.summary_cache_max_size,
        )

        self._strategies: Dict[CompactionStrategy, Callable[..., Tuple[List[IndexedMessage], bool]]] = {
            CompactionStrategy.TRUNCATION: self._truncation,
            CompactionStrategy.SELECTIVE: self._selective,
            CompactionStrategy.SLIDING_WINDOW: self._sliding_window,
            CompactionStrategy.SMART_SUMMARY: self._smart_summary,
        }

        logger.info(
            "context_compactor_initialized",
            min_messages=self.settings.min_messages,
            keep_recent=self.settings.keep_recent,
        )

    def compact(
        self,
        window: Sequence[Message],
        plan: Union[PlanType, str],
        strategy: Optional[CompactionStrategy] = None,
        max_tokens: Optional[int] = None,
        min_messages: Optional[int] = None,
        keep_recent: Optional[int] = None,
    ) -> CompressionResult:
        """Compact a conversation window.

        Args:
            window: Ordered conversation messages (not modified)
            plan: Caller's plan (budget and default strategy)
            strategy: Override the plan's default strategy
            max_tokens: Override the plan's token budget
            min_messages: Override the minimum-message floor
            keep_recent: Override how many recent messages are always kept

        Returns:
            CompressionResult; never raises
        """
        floor = min_messages if min_messages is not None else self.settings.min_messages
        original_tokens = self.token_manager.calculate_total_tokens(window)

        try:
            budget = max_tokens if max_tokens is not None else self.get_token_limit(plan)
            chosen = CompactionStrategy(strategy or self.get_recommended_strategy(plan))

            if original_tokens <= budget:
                logger.debug(
                    "no_compaction_needed",
                    message_count=len(window),
                    tokens=original_tokens,
                    budget=budget,
                )
                return CompressionResult(
                    messages=list(window),
                    strategy=chosen,
                    original_tokens=original_tokens,
                    compacted_tokens=original_tokens,
                )

            logger.info(
                "starting_compaction",
                strategy=chosen.value,
                total_messages=len(window),
                tokens=original_tokens,
                budget=budget,
            )

            indexed = list(enumerate(window))
            recent = max(keep_recent if keep_recent is not None else self.settings.keep_recent, 1)
            handler = self._strategies.get(chosen)
            if handler is None:
                raise CompactionError(f"Unknown compaction strategy: {chosen}")

            retained, summary_injected = handler(indexed, budget, floor, recent)
            retained = self._enforce_budget(indexed, retained, budget, floor)

        except Exception as e:
            logger.error("compaction_failed", plan=str(plan), error=str(e))
            fallback = list(window[-floor:]) if floor > 0 else []
            return CompressionResult(
                messages=fallback,
                strategy=CompactionStrategy.TRUNCATION,
                original_tokens=original_tokens,
                compacted_tokens=self.token_manager.calculate_total_tokens(fallback),
                messages_removed=len(window) - len(fallback),
                metadata={"error": str(e)},
            )

        messages = [m for _, m in retained]
        kept_originals = sum(1 for i, _ in retained if not isinstance(i, float))
        summary_kept = summary_injected and kept_originals < len(retained)
        compacted_tokens = self.token_manager.calculate_total_tokens(messages)

        result = CompressionResult(
            messages=messages,
            strategy=chosen,
            original_tokens=original_tokens,
            compacted_tokens=compacted_tokens,
            messages_removed=len(window) - kept_originals,
            summary_injected=summary_kept,
        )

        logger.info(
            "compaction_complete",
            strategy=chosen.value,
            original_count=len(window),
            compacted_count=len(messages),
            tokens_removed=result.tokens_removed,
            summary_injected=summary_kept,
        )

        return result

    def needs_compaction(
        self,
        window: Sequence[Message],
        plan: Union[PlanType, str],
        max_tokens: Optional[int] = None,
    ) -> bool:
        """Check whether a window is over its budget."""
        budget = max_tokens if max_tokens is not None else self.get_token_limit(plan)
        return self.token_manager.exceeds(window, budget)

    def get_recommended_strategy(self, plan: Union[PlanType, str]) -> CompactionStrategy:
        """Default strategy for a plan."""
        return self.catalog.get(plan).compaction_strategy

    def get_token_limit(self, plan: Union[PlanType, str]) -> int:
        """Context token budget for a plan."""
        return self.catalog.get(plan).context_token_budget

    def estimate_tokens(self, messages: Sequence[Message]) -> int:
        return self.token_manager.calculate_total_tokens(messages)

    def clear_cache(self) -> None:
        self.cache.clear()

    def calculate_priority(self, message: Message, index: int, total: int) -> float:
        """Priority score used to choose which older messages survive."""
        s = self.settings
        priority = (index / total) * s.recency_weight if total else 0.0

        if message.is_question or "?" in message.content:
            priority += s.question_bonus
        if message.has_code or "`" in message.content:
            priority += s.code_bonus
        if message.important:
            priority += s.important_bonus
        if message.role == MessageRole.USER:
            priority += s.user_role_bonus
        if len(message.content) > s.long_message_chars:
            priority += s.long_message_bonus

        return priority

    # Strategies

    def _truncation(
        self,
        indexed: List[IndexedMessage],
        budget: int,
        floor: int,
        recent: int,
    ) -> Tuple[List[IndexedMessage], bool]:
        return self._truncate(indexed, budget, floor), False

    def _selective(
        self,
        indexed: List[IndexedMessage],
        budget: int,
        floor: int,
        recent: int,
    ) -> Tuple[List[IndexedMessage], bool]:
        if len(indexed) <= recent:
            return list(indexed), False

        newest = indexed[-recent:]
        older = indexed[:-recent]
        remaining = budget - self._tokens(newest)

        selected = self._select_important(older, remaining, self._span(indexed))
        return self._in_order(selected + newest), False

    def _sliding_window(
        self,
        indexed: List[IndexedMessage],
        budget: int,
        floor: int,
        recent: int,
    ) -> Tuple[List[IndexedMessage], bool]:
        system = [im for im in indexed if im[1].role == MessageRole.SYSTEM]
        non_system = [im for im in indexed if im[1].role != MessageRole.SYSTEM]

        newest = non_system[-recent:]
        older = non_system[:-recent] if len(non_system) > recent else []
        remaining = budget - self._tokens(system) - self._tokens(newest)

        selected = self._select_important(older, remaining, self._span(indexed))
        return self._in_order(system + selected + newest), False

    def _smart_summary(
        self,
        indexed: List[IndexedMessage],
        budget: int,
        floor: int,
        recent: int,
    ) -> Tuple[List[IndexedMessage], bool]:
        system = [im for im in indexed if im[1].role == MessageRole.SYSTEM]
        non_system = [im for im in indexed if im[1].role != MessageRole.SYSTEM]

        newest = non_system[-recent:]
        older = non_system[:-recent] if len(non_system) > recent else []

        if len(older) < self.settings.summary_min_messages:
            return self._sliding_window(indexed, budget, floor, recent)

        older_messages = [m for _, m in older]
        summary_text = self.cache.get_or_set(
            SummaryCache.key_for(older_messages),
            lambda: self.summarizer.summarize(older_messages),
        )
        summary = Message.system(f"{SUMMARY_PREFIX}\n{summary_text}", important=True)

        summary_position = older[0][0] - 0.5
        combined = self._in_order(system + [(summary_position, summary)] + newest)

        if self._tokens(combined) > budget:
            combined, _ = self._selective(combined, budget, floor, recent)

        return combined, True

    # Helpers

    def _truncate(
        self,
        indexed: Sequence[IndexedMessage],
        budget: int,
        floor: int,
    ) -> List[IndexedMessage]:
        """Keep newest messages while they fit, never fewer than the floor."""
        kept: List[IndexedMessage] = []
        current = 0

        for item in reversed(indexed):
            tokens = self.token_manager.calculate_message_tokens(item[1])
            if current + tokens > budget and len(kept) >= floor:
                break
            kept.append(item)
            current += tokens

        kept.reverse()
        return kept

    def _select_important(
        self,
        candidates: Sequence[IndexedMessage],
        remaining: int,
        total: int,
    ) -> List[IndexedMessage]:
        """Greedily pick highest-priority candidates within ``remaining`` tokens."""
        if remaining <= 0 or not candidates:
            return []

        scored = sorted(
            candidates,
            key=lambda im: (-self.calculate_priority(im[1], max(im[0], 0), total), -im[0]),
        )

        selected: List[IndexedMessage] = []
        used = 0
        for item in scored:
            tokens = self.token_manager.calculate_message_tokens(item[1])
            if used + tokens <= remaining:
                selected.append(item)
                used += tokens

        return selected

    def _enforce_budget(
        self,
        indexed: List[IndexedMessage],
        retained: List[IndexedMessage],
        budget: int,
        floor: int,
    ) -> List[IndexedMessage]:
        """Truncate a strategy's output until it fits or reaches the floor."""
        if len(retained) < min(floor, len(indexed)):
            logger.warning("compaction_below_floor", retained=len(retained), floor=floor)
            return self._truncate(indexed, budget, floor)

        if self._tokens(retained) <= budget:
            return retained

        logger.debug("compaction_over_budget_truncating", retained=len(retained))
        return self._truncate(retained, budget, floor)

    @staticmethod
    def _span(items: Sequence[IndexedMessage]) -> int:
        """Number of original positions covered by a list of messages."""
        return int(max(i for i, _ in items)) + 1 if items else 0

    def _tokens(self, items: Sequence[IndexedMessage]) -> int:
        return self.token_manager.calculate_total_tokens(m for _, m in items)

    @staticmethod
    def _in_order(items: Sequence[IndexedMessage]) -> List[IndexedMessage]:
        return sorted(items, key=lambda im: im[0])
