"""Token manager for estimating conversation window usage."""

import math
from typing import Iterable, Optional

from chatflow.config.settings import CompactionSettings, get_compaction_settings
from chatflow.types import Message


class TokenManager:
    """Estimates token usage of messages against a budget.

    Uses a fixed characters-to-tokens ratio over the content and role
    name. Estimation never calls a model.

    Example:
        ```python
        manager = TokenManager()
        tokens = manager.calculate_total_tokens(messages)
        if manager.exceeds(messages, budget=4000):
            ...
        ```
    """

    def __init__(self, settings: Optional[CompactionSettings] = None) -> None:
        """Initialize token manager.

        Args:
            settings: Compaction settings providing ``tokens_per_char``
        """
        self.settings = settings or get_compaction_settings()
        self.tokens_per_char = self.settings.tokens_per_char

    def estimate_tokens(self, text: str) -> int:
        """Estimate token count for raw text."""
        if not text:
            return 0
        return int(math.ceil(len(text) * self.tokens_per_char))

    def calculate_message_tokens(self, message: Message) -> int:
        """Calculate tokens for a message including its role name.

        Args:
            message: Message to calculate

        Returns:
            Token count
        """
        chars = len(message.content) + len(message.role.value)
        return int(math.ceil(chars * self.tokens_per_char))

    def calculate_total_tokens(self, messages: Iterable[Message]) -> int:
        """Calculate total tokens for a list of messages."""
        return sum(self.calculate_message_tokens(m) for m in messages)

    def exceeds(self, messages: Iterable[Message], budget: int) -> bool:
        """Check whether messages are over a token budget."""
        return self.calculate_total_tokens(messages) > budget

    def get_remaining_tokens(self, messages: Iterable[Message], budget: int) -> int:
        """Get remaining tokens before hitting the budget."""
        return max(0, budget - self.calculate_total_tokens(messages))

    def get_usage_percentage(self, messages: Iterable[Message], budget: int) -> float:
        """Get budget usage as a percentage (may exceed 100)."""
        if budget <= 0:
            return 100.0
        return (self.calculate_total_tokens(messages) / budget) * 100
