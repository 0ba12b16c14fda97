"""Context compaction test suite."""

import threading
import time
from concurrent.futures import ThreadPoolExecutor
from unittest.mock import patch

import pytest

from chatflow.config.plans import CompactionStrategy, PlanType
from chatflow.session.cache import SummaryCache
from chatflow.session.compactor import SUMMARY_PREFIX, ContextCompactor
from chatflow.session.summarizer import EMPTY_SUMMARY, ConversationSummarizer, truncate_text
from chatflow.session.token_manager import TokenManager
from chatflow.types import Message, MessageRole


@pytest.fixture
def compactor(catalog, compaction_settings):
    return ContextCompactor(catalog=catalog, settings=compaction_settings)


def _is_in_order(result_messages, window):
    positions = [window.index(m) for m in result_messages if m in window]
    return positions == sorted(positions)


class TestTokenManager:
    """Test TokenManager functionality."""

    def test_estimate_tokens(self, compaction_settings):
        """Test raw text estimation."""
        manager = TokenManager(compaction_settings)

        assert manager.estimate_tokens("") == 0
        assert manager.estimate_tokens("abcd") == 1
        assert manager.estimate_tokens("abcde") == 2

    def test_message_tokens_include_role(self, compaction_settings):
        """Test that the role name counts toward the estimate."""
        manager = TokenManager(compaction_settings)

        assert manager.calculate_message_tokens(Message.user("abcd")) == 2

    def test_budget_helpers(self, compaction_settings):
        """Test budget checks."""
        manager = TokenManager(compaction_settings)
        messages = [Message.user("abcd"), Message.user("abcd")]

        assert manager.calculate_total_tokens(messages) == 4
        assert manager.exceeds(messages, 3) is True
        assert manager.exceeds(messages, 4) is False
        assert manager.get_remaining_tokens(messages, 10) == 6
        assert manager.get_usage_percentage(messages, 8) == 50.0


class TestSummaryCache:
    """Test SummaryCache functionality."""

    def test_get_or_set_computes_once(self):
        """Test that a factory runs only on a miss."""
        cache = SummaryCache()
        calls = []

        def factory():
            calls.append(1)
            return "summary"

        assert cache.get_or_set("k", factory) == "summary"
        assert cache.get_or_set("k", factory) == "summary"
        assert len(calls) == 1
        assert cache.get_stats()["hits"] == 1

    def test_get_or_set_under_concurrency(self):
        """Test that concurrent callers compute each summary exactly once."""
        cache = SummaryCache()
        threads = 8
        barrier = threading.Barrier(threads)
        calls = {"a": 0, "b": 0}

        def factory(key):
            def compute():
                calls[key] += 1
                time.sleep(0.01)
                return "summary-%s" % key

            return compute

        def worker():
            barrier.wait()
            return [cache.get_or_set(key, factory(key)) for key in ("a", "b")]

        with ThreadPoolExecutor(max_workers=threads) as pool:
            results = [f.result() for f in [pool.submit(worker) for _ in range(threads)]]

        assert calls == {"a": 1, "b": 1}
        assert all(r == ["summary-a", "summary-b"] for r in results)
        stats = cache.get_stats()
        assert stats["misses"] == 2
        assert stats["hits"] == threads * 2 - 2

    def test_key_depends_on_content(self):
        """Test cache keys for different windows."""
        a = SummaryCache.key_for([Message.user("one")])
        b = SummaryCache.key_for([Message.user("two")])

        assert a != b
        assert a == SummaryCache.key_for([Message.user("one")])

    def test_expired_entry(self):
        """Test that expired entries are dropped."""
        cache = SummaryCache(ttl_seconds=1)
        cache.set("k", "summary")
        cache._cache["k"].timestamp -= 10

        assert cache.get("k") is None
        assert len(cache) == 0

    def test_eviction(self):
        """Test that the oldest entry is evicted at capacity."""
        cache = SummaryCache(max_size=3)
        for key in ["a", "b", "c", "d"]:
            cache.set(key, key)

        assert len(cache) == 3
        assert cache.get("a") is None
        assert cache.get("d") == "d"

    def test_clear(self):
        """Test clearing the cache."""
        cache = SummaryCache()
        cache.set("k", "v")
        cache.clear()

        assert len(cache) == 0
        assert cache.hit_rate == 0.0


class TestConversationSummarizer:
    """Test ConversationSummarizer functionality."""

    def test_detects_goal(self, compaction_settings):
        """Test goal extraction from user phrasing."""
        summarizer = ConversationSummarizer(compaction_settings)
        goal = summarizer.detect_user_goal(
            [Message.user("I need to deploy the app on kubernetes")]
        )

        assert goal == "deploy the app on kubernetes"

    def test_topics_boost_domain_keywords(self, compaction_settings):
        """Test that domain keywords rank first."""
        summarizer = ConversationSummarizer(compaction_settings)
        topics = summarizer.extract_topics([
            Message.user("banana banana docker"),
        ])

        assert topics[0] in ("banana", "docker")
        assert set(topics) == {"banana", "docker"}

    def test_key_points(self, compaction_settings):
        """Test key point extraction."""
        summarizer = ConversationSummarizer(compaction_settings)
        points = summarizer.extract_key_points([
            Message.user("Why is the server down?"),
            Message.assistant("The solution is to restart the server."),
        ])

        assert "to restart the server." in points
        assert "User asked: Why is the server down?" in points

    def test_empty_summary(self, compaction_settings):
        """Test the placeholder for messages with no extractable content."""
        summarizer = ConversationSummarizer(compaction_settings)

        assert summarizer.summarize([Message.assistant("ok")]) == EMPTY_SUMMARY

    def test_truncate_text(self):
        """Test truncation helper."""
        assert truncate_text("short", 10) == "short"
        assert truncate_text("a" * 20, 10) == "a" * 7 + "..."


class TestContextCompactor:
    """Test ContextCompactor functionality."""

    def test_under_budget_is_unchanged(self, compactor, long_conversation):
        """Test that a window within budget is returned as-is."""
        window = long_conversation[:3]
        result = compactor.compact(window, PlanType.PRO)

        assert result.messages == window
        assert result.messages_removed == 0
        assert result.tokens_removed == 0

        again = compactor.compact(result.messages, PlanType.PRO)
        assert again.messages == result.messages

    @pytest.mark.parametrize("strategy", list(CompactionStrategy))
    def test_floor_always_retained(self, compactor, long_conversation, strategy):
        """Test that a tiny budget still keeps the minimum messages."""
        result = compactor.compact(
            long_conversation,
            PlanType.PRO,
            strategy=strategy,
            max_tokens=10,
            min_messages=3,
        )

        assert len(result.messages) == 3
        assert result.messages == long_conversation[-3:]
        assert result.messages_removed == 27

    @pytest.mark.parametrize("strategy", list(CompactionStrategy))
    def test_budget_or_floor(self, compactor, long_conversation, strategy):
        """Test that output fits the budget or is exactly the floor."""
        result = compactor.compact(
            long_conversation, PlanType.PRO, strategy=strategy, max_tokens=700
        )

        assert (
            result.compacted_tokens <= 700
            or len(result.messages) == compactor.settings.min_messages
        )
        assert _is_in_order(result.messages, long_conversation)

    def test_truncation_keeps_newest(self, compactor, long_conversation):
        """Test truncation keeps a suffix of the window."""
        result = compactor.compact(
            long_conversation,
            PlanType.PRO,
            strategy=CompactionStrategy.TRUNCATION,
            max_tokens=700,
        )

        assert len(result.messages) == 10
        assert result.messages == long_conversation[-10:]
        assert result.strategy == CompactionStrategy.TRUNCATION

    def test_selective_keeps_recent_and_important(self, compactor, long_conversation):
        """Test selective keeps recent messages plus high-priority older ones."""
        result = compactor.compact(
            long_conversation,
            PlanType.PRO,
            strategy=CompactionStrategy.SELECTIVE,
            max_tokens=700,
        )

        assert result.messages[-5:] == long_conversation[-5:]
        assert long_conversation[24] in result.messages
        assert len(result.messages) > 5
        assert result.compacted_tokens <= 700

    def test_sliding_window_keeps_system(self, compactor, long_conversation):
        """Test sliding window always retains system messages."""
        window = [Message.system("You are a helpful assistant.")] + long_conversation
        result = compactor.compact(
            window,
            PlanType.PRO,
            strategy=CompactionStrategy.SLIDING_WINDOW,
            max_tokens=700,
        )

        assert result.messages[0].role == MessageRole.SYSTEM
        assert result.messages[-5:] == window[-5:]
        assert result.compacted_tokens <= 700

    def test_smart_summary_injects_summary(self, compactor, long_conversation):
        """Test that older messages are replaced by one summary message."""
        result = compactor.compact(
            long_conversation,
            PlanType.APEX,
            max_tokens=1500,
        )

        assert result.strategy == CompactionStrategy.SMART_SUMMARY
        assert result.summary_injected is True
        assert result.messages[0].role == MessageRole.SYSTEM
        assert result.messages[0].content.startswith(SUMMARY_PREFIX)
        assert result.messages[1:] == long_conversation[-5:]
        assert result.messages_removed == 25

    def test_smart_summary_uses_cache(self, compactor, long_conversation):
        """Test that a repeated compaction reuses the cached summary."""
        first = compactor.compact(long_conversation, PlanType.APEX, max_tokens=1500)
        second = compactor.compact(long_conversation, PlanType.APEX, max_tokens=1500)

        assert first.messages[0] == second.messages[0]
        assert compactor.cache.get_stats()["hits"] == 1

        compactor.clear_cache()
        assert len(compactor.cache) == 0

    def test_smart_summary_falls_back_for_short_history(self, compactor, long_conversation):
        """Test that few older messages use sliding window instead."""
        window = long_conversation[:8]
        result = compactor.compact(
            window,
            PlanType.APEX,
            max_tokens=300,
        )

        assert result.summary_injected is False
        assert all(not m.content.startswith(SUMMARY_PREFIX) for m in result.messages)

    def test_internal_error_keeps_floor(self, compactor, long_conversation):
        """Test that a failing strategy degrades to the newest floor messages."""
        with patch.object(
            compactor.summarizer, "summarize", side_effect=RuntimeError("boom")
        ):
            result = compactor.compact(long_conversation, PlanType.APEX, max_tokens=1500)

        assert result.messages == long_conversation[-3:]
        assert result.strategy == CompactionStrategy.TRUNCATION
        assert result.metadata["error"] == "boom"

    def test_unknown_plan_keeps_floor(self, compactor, long_conversation):
        """Test that an unknown plan degrades to the floor."""
        result = compactor.compact(long_conversation, "platinum")

        assert result.messages == long_conversation[-3:]
        assert "error" in result.metadata

    def test_window_shorter_than_floor(self, compactor, long_conversation):
        """Test that a window below the floor is kept whole."""
        window = long_conversation[:2]
        result = compactor.compact(window, PlanType.PRO, max_tokens=10, min_messages=3)

        assert result.messages == window

    def test_input_not_modified(self, compactor, long_conversation):
        """Test that the caller's window is left untouched."""
        window = list(long_conversation)
        compactor.compact(window, PlanType.PRO, max_tokens=100)

        assert window == long_conversation

    def test_plan_helpers(self, compactor, long_conversation):
        """Test plan budget and strategy lookups."""
        assert compactor.get_token_limit(PlanType.PRO) == 8000
        assert compactor.get_recommended_strategy(PlanType.APEX) == CompactionStrategy.SMART_SUMMARY
        assert compactor.needs_compaction(long_conversation, PlanType.PRO) is False
        assert compactor.needs_compaction(long_conversation, PlanType.PRO, max_tokens=100) is True

    def test_calculate_priority(self, compactor):
        """Test priority scoring bonuses."""
        question = compactor.calculate_priority(Message.user("What?"), 0, 10)
        statement = compactor.calculate_priority(Message.assistant("Fine."), 0, 10)

        assert question == pytest.approx(25.0)
        assert statement == pytest.approx(0.0)

    def test_result_to_dict(self, compactor, long_conversation):
        """Test result serialization."""
        data = compactor.compact(
            long_conversation, PlanType.PRO, max_tokens=700
        ).to_dict()

        assert data["strategy"] == "sliding-window"
        assert data["compression_ratio"] < 1.0
