"""Custom exceptions for chatflow."""


class ChatflowError(Exception):
    """Base exception for chatflow errors."""
    pass


class ConfigurationError(ChatflowError):
    """Raised when configuration or the plan catalog is invalid."""
    pass


class GenerationError(ChatflowError):
    """Raised when the external generation call fails."""

    def __init__(self, message: str, model: str = ""):
        super().__init__(message)
        self.model = model


class GenerationTimeoutError(GenerationError):
    """Raised when the generation call exceeds its timeout."""
    pass


class RoutingError(ChatflowError):
    """Error during model routing."""
    pass


class CompactionError(ChatflowError):
    """Error during context compaction."""
    pass
