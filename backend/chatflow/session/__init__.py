"""Conversation window compaction."""

from chatflow.session.cache import SummaryCache
from chatflow.session.compactor import SUMMARY_PREFIX, ContextCompactor
from chatflow.session.summarizer import ConversationSummarizer
from chatflow.session.token_manager import TokenManager
from chatflow.session.types import CompactionStrategy, CompressionResult

__all__ = [
    "ContextCompactor",
    "ConversationSummarizer",
    "SummaryCache",
    "TokenManager",
    "CompactionStrategy",
    "CompressionResult",
    "SUMMARY_PREFIX",
]
