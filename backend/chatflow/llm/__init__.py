"""Generation collaborator interface, adapters and reply prompts."""

from chatflow.llm.client import (
    CallableGenerationClient,
    GenerationCall,
    MockGenerationClient,
    as_generation_client,
)
from chatflow.llm.interface import GenerateFn, GenerationClientInterface
from chatflow.llm.prompts import build_reply_prompt, get_action_hint

__all__ = [
    "GenerationClientInterface",
    "GenerateFn",
    "CallableGenerationClient",
    "MockGenerationClient",
    "GenerationCall",
    "as_generation_client",
    "build_reply_prompt",
    "get_action_hint",
]
