"""Type definitions for context compaction."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List

from chatflow.config.plans import CompactionStrategy
from chatflow.types import Message


@dataclass
class CompressionResult:
    """Outcome of compacting a conversation window."""

    messages: List[Message]
    strategy: CompactionStrategy
    original_tokens: int
    compacted_tokens: int
    messages_removed: int = 0
    summary_injected: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def tokens_removed(self) -> int:
        return max(0, self.original_tokens - self.compacted_tokens)

    @property
    def compression_ratio(self) -> float:
        """Compacted tokens as a fraction of the original."""
        if self.original_tokens <= 0:
            return 1.0
        return self.compacted_tokens / self.original_tokens

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "strategy": self.strategy.value,
            "message_count": len(self.messages),
            "original_tokens": self.original_tokens,
            "compacted_tokens": self.compacted_tokens,
            "tokens_removed": self.tokens_removed,
            "compression_ratio": round(self.compression_ratio, 4),
            "messages_removed": self.messages_removed,
            "summary_injected": self.summary_injected,
            "metadata": self.metadata,
        }


__all__ = ["CompactionStrategy", "CompressionResult"]
