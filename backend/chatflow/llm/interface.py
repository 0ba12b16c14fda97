"""Generation collaborator interface."""

from abc import ABC, abstractmethod
from typing import Awaitable, Callable

# Plain async callable accepted wherever a client is expected
GenerateFn = Callable[[str, int], Awaitable[str]]


class GenerationClientInterface(ABC):
    """Abstract interface for the external text generator.

    The pipeline only needs "prompt in, text out" under a max-token
    budget; provider specifics stay behind this interface.
    """

    @abstractmethod
    async def generate(self, prompt: str, max_tokens: int) -> str:
        """Generate a reply.

        Args:
            prompt: Full prompt (conversation context plus user message)
            max_tokens: Maximum tokens to generate

        Returns:
            Generated text

        Raises:
            GenerationError: If the provider call fails
        """
        ...

    @abstractmethod
    def get_model_name(self) -> str:
        """Get the name of the model being used."""
        ...
