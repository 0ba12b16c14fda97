"""Core chatflow components."""

from chatflow.core.exceptions import (
    ChatflowError,
    CompactionError,
    ConfigurationError,
    GenerationError,
    GenerationTimeoutError,
    RoutingError,
)

__all__ = [
    "ChatflowError",
    "ConfigurationError",
    "GenerationError",
    "GenerationTimeoutError",
    "RoutingError",
    "CompactionError",
]
