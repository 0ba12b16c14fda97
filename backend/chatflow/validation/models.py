"""Data models for reply validation and regeneration."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from chatflow.classification.models import ConflictCategory, UserIntent


class ViolationType(str, Enum):
    """Rules a generated reply can break."""

    OVER_APOLOGIZING = "over_apologizing"
    DEFENSIVE = "defensive"
    MAKING_EXCUSES = "making_excuses"
    TOO_LONG = "too_long"
    TOO_SHORT = "too_short"
    NO_ACTION = "no_action"
    REPEATING_COMPLAINT = "repeating_complaint"


class ViolationSeverity(str, Enum):
    """How much a violation costs."""

    CRITICAL = "critical"  # Must fix
    MODERATE = "moderate"  # Should fix
    MINOR = "minor"        # Nice to fix


@dataclass(frozen=True)
class Violation:
    """One broken rule."""

    type: ViolationType
    severity: ViolationSeverity
    evidence: str
    suggestion: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "evidence": self.evidence,
            "suggestion": self.suggestion,
        }


@dataclass
class ValidationResult:
    """Outcome of validating one reply."""

    score: int  # 0-100
    violations: List[Violation] = field(default_factory=list)
    passed_checks: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Valid means no CRITICAL violation."""
        return self.critical_count == 0

    @property
    def critical_count(self) -> int:
        return sum(1 for v in self.violations if v.severity == ViolationSeverity.CRITICAL)

    def has_violation(self, violation_type: ViolationType) -> bool:
        return any(v.type == violation_type for v in self.violations)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "score": self.score,
            "is_valid": self.is_valid,
            "violations": [v.to_dict() for v in self.violations],
            "passed_checks": list(self.passed_checks),
        }


@dataclass(frozen=True)
class LengthLimit:
    """Allowed reply length for a conflict category."""

    max_words: int
    max_chars: int
    min_words: Optional[int] = None


@dataclass(frozen=True)
class RegenerationContext:
    """Everything needed to ask for a better reply."""

    original_message: str
    failed_reply: str
    violations: Tuple[str, ...]
    category: ConflictCategory
    intent: UserIntent
    violation_types: Tuple[ViolationType, ...] = ()


@dataclass(frozen=True)
class RegenerationGuidance:
    """Prompts and targets for a regeneration attempt."""

    system_prompt: str
    user_prompt: str
    changes_needed: Tuple[str, ...]
    target_words: Tuple[int, int]

    def to_prompt(self) -> str:
        """Single prompt string for generators without a system role."""
        return f"{self.system_prompt}\n\n{self.user_prompt}"
