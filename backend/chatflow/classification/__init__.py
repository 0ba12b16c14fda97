"""Conflict classification and hard-block filtering."""

from chatflow.classification.classifier import PatternClassifier, classify_conflict
from chatflow.classification.guard import HardBlockGuard
from chatflow.classification.models import (
    ConflictAnalysis,
    ConflictCategory,
    ConflictPattern,
    ConflictSeverity,
    GuardResult,
    HarmCategory,
    SuggestedAction,
    UserIntent,
)
from chatflow.classification.patterns import CONFLICT_PATTERNS

__all__ = [
    "PatternClassifier",
    "classify_conflict",
    "HardBlockGuard",
    "ConflictAnalysis",
    "ConflictCategory",
    "ConflictPattern",
    "ConflictSeverity",
    "GuardResult",
    "HarmCategory",
    "SuggestedAction",
    "UserIntent",
    "CONFLICT_PATTERNS",
]
