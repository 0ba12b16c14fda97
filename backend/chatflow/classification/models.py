"""Data models for conflict classification and the hard-block guard."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern, Tuple


class ConflictCategory(str, Enum):
    """Types of user pushback."""

    TONE_COMPLAINT = "tone_complaint"                # "stop calling me bro"
    FACTUAL_CORRECTION = "factual_correction"        # "this is wrong"
    STYLE_ADJUSTMENT = "style_adjustment"            # "stop being so formal"
    IDENTITY_CHALLENGE = "identity_challenge"        # "are you ChatGPT?"
    HELPFULNESS_COMPLAINT = "helpfulness_complaint"  # "this is useless"
    NONE = "none"


class ConflictSeverity(str, Enum):
    """How strongly the user is pushing back."""

    LOW = "low"        # Minor correction
    MEDIUM = "medium"  # Clear complaint
    HIGH = "high"      # Strong frustration


SEVERITY_ORDER: Tuple[ConflictSeverity, ...] = (
    ConflictSeverity.LOW,
    ConflictSeverity.MEDIUM,
    ConflictSeverity.HIGH,
)


class UserIntent(str, Enum):
    """What the user is most likely doing."""

    GENUINE = "genuine"  # Actually upset or correcting
    TESTING = "testing"  # Probing the assistant's boundaries
    PLAYFUL = "playful"  # Light-hearted nudge


class SuggestedAction(str, Enum):
    """How the reply should handle the conflict."""

    ACKNOWLEDGE = "acknowledge"
    ASK_PREFERENCE = "ask_preference"
    ADJUST_IMMEDIATELY = "adjust_immediately"
    DEFLECT = "deflect"


@dataclass(frozen=True)
class ConflictPattern:
    """Catalog entry describing how to detect one conflict category."""

    category: ConflictCategory
    priority: int  # Higher wins confidence ties
    patterns: Tuple[Pattern[str], ...]
    keywords: Tuple[str, ...]
    severity: ConflictSeverity
    intent: UserIntent


@dataclass(frozen=True)
class ConflictAnalysis:
    """Result of classifying one user message."""

    has_conflict: bool
    category: ConflictCategory
    severity: ConflictSeverity
    intent: UserIntent
    confidence: float  # 0-1
    evidence: Tuple[str, ...]
    suggested_action: SuggestedAction

    @classmethod
    def no_conflict(cls) -> "ConflictAnalysis":
        """Result used when no category has any evidence."""
        return cls(
            has_conflict=False,
            category=ConflictCategory.NONE,
            severity=ConflictSeverity.LOW,
            intent=UserIntent.GENUINE,
            confidence=0.0,
            evidence=(),
            suggested_action=SuggestedAction.ACKNOWLEDGE,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for analytics."""
        return {
            "has_conflict": self.has_conflict,
            "category": self.category.value,
            "severity": self.severity.value,
            "intent": self.intent.value,
            "confidence": round(self.confidence, 3),
            "evidence": list(self.evidence),
            "suggested_action": self.suggested_action.value,
        }


@dataclass
class CategoryMatch:
    """Evidence collected for one category while classifying."""

    pattern: ConflictPattern
    weight: float = 0.0
    evidence: List[str] = field(default_factory=list)

    @property
    def confidence(self) -> float:
        """Matched weight over pattern count, clamped to [0, 1]."""
        pattern_count = len(self.pattern.patterns) or 1
        return max(0.0, min(self.weight / pattern_count, 1.0))


class HarmCategory(str, Enum):
    """Content that is refused before any generation happens."""

    SELF_HARM_INCITEMENT = "self_harm_incitement"
    VIOLENT_PLANNING = "violent_planning"
    EXPLOITATION = "exploitation"


@dataclass(frozen=True)
class GuardResult:
    """Outcome of the hard-block check."""

    blocked: bool
    category: Optional[HarmCategory] = None
    evidence: Optional[str] = None
