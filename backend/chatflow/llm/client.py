"""Generation client adapters and a scripted test double."""

import asyncio
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

import structlog

from chatflow.core.exceptions import GenerationError
from chatflow.llm.interface import GenerateFn, GenerationClientInterface

logger = structlog.get_logger()


class CallableGenerationClient(GenerationClientInterface):
    """Adapts a plain ``async def generate(prompt, max_tokens)`` callable."""

    def __init__(self, generate: GenerateFn, model: str = "external") -> None:
        self._generate = generate
        self.model = model

    async def generate(self, prompt: str, max_tokens: int) -> str:
        try:
            return await self._generate(prompt, max_tokens)
        except (GenerationError, asyncio.TimeoutError):
            raise
        except Exception as e:
            logger.error("generation_call_failed", model=self.model, error=str(e))
            raise GenerationError(f"Generation failed: {e}", model=self.model) from e

    def get_model_name(self) -> str:
        return self.model


@dataclass
class GenerationCall:
    """One recorded call to the mock client."""

    prompt: str
    max_tokens: int


class MockGenerationClient(GenerationClientInterface):
    """Returns scripted replies in order and records every call.

    Once the script is exhausted the last reply is repeated. A script
    entry that is an exception instance is raised instead of returned.

    Example:
        ```python
        client = MockGenerationClient(["Got it! What would you like instead?"])
        reply = await client.generate("prompt", max_tokens=128)
        assert client.call_count == 1
        ```
    """

    def __init__(
        self,
        replies: Optional[Sequence[Union[str, Exception]]] = None,
        model: str = "mock-model",
        delay_seconds: float = 0.0,
    ) -> None:
        self._replies: List[Union[str, Exception]] = list(replies or ["OK"])
        self.model = model
        self.delay_seconds = delay_seconds
        self.calls: List[GenerationCall] = []

    async def generate(self, prompt: str, max_tokens: int) -> str:
        self.calls.append(GenerationCall(prompt=prompt, max_tokens=max_tokens))

        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        index = min(len(self.calls) - 1, len(self._replies) - 1)
        reply = self._replies[index]
        if isinstance(reply, Exception):
            raise reply
        return reply

    def get_model_name(self) -> str:
        return self.model

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def last_prompt(self) -> Optional[str]:
        return self.calls[-1].prompt if self.calls else None


def as_generation_client(
    generate: Union[GenerationClientInterface, GenerateFn],
) -> GenerationClientInterface:
    """Wrap a bare callable so the pipeline can treat it as a client."""
    if isinstance(generate, GenerationClientInterface):
        return generate
    return CallableGenerationClient(generate)
