"""Rule-based conflict classifier for incoming user messages."""

import re
from typing import Dict, List, Optional, Sequence

import structlog

from chatflow.classification.models import (
    SEVERITY_ORDER,
    CategoryMatch,
    ConflictAnalysis,
    ConflictCategory,
    ConflictPattern,
    ConflictSeverity,
    SuggestedAction,
)
from chatflow.classification.patterns import (
    ACTION_TABLE,
    CONFLICT_PATTERNS,
    INTENSITY_WORDS,
    REPEATED_EXCLAMATION,
)
from chatflow.config.settings import ClassifierSettings, get_classifier_settings
from chatflow.types import Message, MessageRole

logger = structlog.get_logger()


class PatternClassifier:
    """Classifies a user message into at most one conflict category.

    Each category carries structural patterns and keyword phrases. The
    category with the highest matched-weight / pattern-count wins; ties go
    to the higher ``priority``. Intensity cues (superlatives, shouting,
    repeated exclamation marks) may escalate the category's base severity.

    Example:
        ```python
        classifier = PatternClassifier()
        analysis = classifier.classify("you are completely wrong, it's not Delhi it's Mumbai")
        print(analysis.category)  # ConflictCategory.FACTUAL_CORRECTION
        ```
    """

    def __init__(
        self,
        settings: Optional[ClassifierSettings] = None,
        patterns: Sequence[ConflictPattern] = CONFLICT_PATTERNS,
    ) -> None:
        """Initialize the classifier.

        Args:
            settings: Classifier tunables (defaults to cached settings)
            patterns: Category catalog to match against
        """
        self.settings = settings or get_classifier_settings()
        self._patterns = tuple(patterns)
        self._by_category: Dict[ConflictCategory, ConflictPattern] = {
            p.category: p for p in self._patterns
        }
        self._uppercase_run = re.compile(
            r"[A-Z]{%d,}" % self.settings.uppercase_run_length
        )
        self._intensity_words = [
            re.compile(r"\b%s\b" % re.escape(word), re.IGNORECASE)
            for word in INTENSITY_WORDS
        ]

    def classify(
        self,
        message: str,
        history: Optional[Sequence[Message]] = None,
    ) -> ConflictAnalysis:
        """Classify a message.

        Args:
            message: Raw user message
            history: Recent conversation, used only to strengthen an
                existing match when the previous turn was from the assistant

        Returns:
            ConflictAnalysis (NONE with confidence 0 when nothing matches)
        """
        if not message or not message.strip():
            return ConflictAnalysis.no_conflict()

        matches = [m for m in self._collect_matches(message) if m.weight > 0]
        if not matches:
            logger.debug("no_conflict_detected", message=message[:50])
            return ConflictAnalysis.no_conflict()

        best = max(matches, key=lambda m: (m.confidence, m.pattern.priority))
        confidence = best.confidence

        # Pushback right after an assistant turn is more likely aimed at it
        if history and history[-1].role == MessageRole.ASSISTANT:
            confidence = min(confidence + 0.05, 1.0)

        severity = self._escalate(best.pattern.severity, message)
        action = self._suggest_action(best.pattern.category, severity)

        analysis = ConflictAnalysis(
            has_conflict=True,
            category=best.pattern.category,
            severity=severity,
            intent=best.pattern.intent,
            confidence=confidence,
            evidence=tuple(best.evidence),
            suggested_action=action,
        )

        logger.info(
            "conflict_detected",
            category=analysis.category.value,
            severity=analysis.severity.value,
            confidence=round(analysis.confidence, 3),
            evidence_count=len(analysis.evidence),
        )

        return analysis

    def available_categories(self) -> List[ConflictCategory]:
        """Categories known to the catalog, highest priority first."""
        ordered = sorted(self._patterns, key=lambda p: p.priority, reverse=True)
        return [p.category for p in ordered]

    def matches_category(self, message: str, category: ConflictCategory) -> bool:
        """Check a message against one category's structural patterns."""
        pattern = self._by_category.get(category)
        if pattern is None:
            return False
        return any(regex.search(message) for regex in pattern.patterns)

    def intensity_bonus(self, message: str) -> float:
        """Accumulated escalation bonus for a message."""
        bonus = 0.0
        for regex in self._intensity_words:
            if regex.search(message):
                bonus += self.settings.intensity_word_bonus
        if self._uppercase_run.search(message):
            bonus += self.settings.uppercase_run_bonus
        if REPEATED_EXCLAMATION.search(message):
            bonus += self.settings.repeated_punctuation_bonus
        return bonus

    def _collect_matches(self, message: str) -> List[CategoryMatch]:
        """Score every category against the message."""
        lowered = message.lower()
        matches = []

        for pattern in self._patterns:
            match = CategoryMatch(pattern=pattern)

            for regex in pattern.patterns:
                if regex.search(message):
                    match.weight += self.settings.pattern_weight
                    match.evidence.append(regex.pattern)

            for keyword in pattern.keywords:
                if keyword in lowered:
                    match.weight += self.settings.keyword_weight
                    match.evidence.append(keyword)

            matches.append(match)

        return matches

    def _escalate(self, base: ConflictSeverity, message: str) -> ConflictSeverity:
        """Raise severity one level when intensity cues are strong enough."""
        if self.intensity_bonus(message) < self.settings.escalation_threshold:
            return base

        index = min(SEVERITY_ORDER.index(base) + 1, len(SEVERITY_ORDER) - 1)
        return SEVERITY_ORDER[index]

    @staticmethod
    def _suggest_action(
        category: ConflictCategory,
        severity: ConflictSeverity,
    ) -> SuggestedAction:
        if (
            category == ConflictCategory.HELPFULNESS_COMPLAINT
            and severity == ConflictSeverity.HIGH
        ):
            return SuggestedAction.ASK_PREFERENCE
        return ACTION_TABLE.get(category, SuggestedAction.ACKNOWLEDGE)


_default_classifier: Optional[PatternClassifier] = None


def classify_conflict(
    message: str,
    history: Optional[Sequence[Message]] = None,
) -> ConflictAnalysis:
    """Classify a message with a shared default classifier."""
    global _default_classifier
    if _default_classifier is None:
        _default_classifier = PatternClassifier()
    return _default_classifier.classify(message, history)
