"""Reply validation and regeneration guidance."""

from chatflow.validation.models import (
    RegenerationContext,
    RegenerationGuidance,
    ValidationResult,
    Violation,
    ViolationSeverity,
    ViolationType,
)
from chatflow.validation.regenerator import RegenerationCoordinator
from chatflow.validation.validator import ResponseValidator

__all__ = [
    "ResponseValidator",
    "RegenerationCoordinator",
    "ValidationResult",
    "Violation",
    "ViolationSeverity",
    "ViolationType",
    "RegenerationContext",
    "RegenerationGuidance",
]
