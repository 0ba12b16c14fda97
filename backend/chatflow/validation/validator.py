"""Response validator for replies to conflict messages."""

import re
from typing import Dict, List, Optional, Pattern, Sequence

import structlog

from chatflow.classification.models import ConflictCategory
from chatflow.config.settings import ValidationSettings, get_validation_settings
from chatflow.validation.models import (
    LengthLimit,
    ValidationResult,
    Violation,
    ViolationSeverity,
    ViolationType,
)

logger = structlog.get_logger()

_I = re.IGNORECASE

EXCESSIVE_APOLOGY_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\bi('m| am) (so |very |really |extremely )?sorry\b", _I),
    re.compile(r"\bi (sincerely |deeply |truly )?apologi[sz]e\b", _I),
    re.compile(r"\bmy (deepest |sincerest )?apologies\b", _I),
    re.compile(r"\bmaafi (chahta|chahti|mangta) (hu|hoon)\b", _I),
]
APOLOGY_PHRASE = re.compile(r"\b(sorry|apologi[sz]e|apologies|maafi)\b", _I)

DEFENSIVE_PATTERNS: List[Pattern[str]] = [
    re.compile(r"let me explain why", _I),
    re.compile(r"the reason (i|that)\b", _I),
    re.compile(r"\bi (was trying|meant) to\b", _I),
    re.compile(r"\b(because|kyunki) (i|main)\b", _I),
    re.compile(r"main toh bas", _I),
    re.compile(r"\bi didn'?t mean to\b", _I),
    re.compile(r"\bi thought\b", _I),
    re.compile(r"my intention was", _I),
    re.compile(r"\bi was just\b", _I),
]

EXCUSE_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\bi must have (misunderstood|confused)\b", _I),
    re.compile(r"\bit seems (like )?i\b", _I),
    re.compile(r"\bperhaps i\b", _I),
    re.compile(r"\bmaybe i\b", _I),
    re.compile(r"\bi might have\b", _I),
]

REPEATING_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\byou (said|mentioned) (that )?", _I),
    re.compile(r"\bi (understand|see) (you|that) (don'?t|didn'?t)\b", _I),
]

ACTION_INDICATORS: Dict[str, List[Pattern[str]]] = {
    "ask_preference": [
        re.compile(r"aap kais[ie] tone prefer", _I),
        re.compile(r"\b(what|how) (would you|do you) (like|prefer)\b", _I),
        re.compile(r"kya chahiye", _I),
        re.compile(r"bataiye", _I),
    ],
    "provide_solution": [
        re.compile(r"\bhere'?s (the|how|what)\b", _I),
        re.compile(r"\blet me (fix|correct|show)\b", _I),
        re.compile(r"\btry this\b", _I),
    ],
    "adjust_tone": [
        re.compile(r"chill mode", _I),
        re.compile(r"\baccordingly\b", _I),
        re.compile(r"\badjust", _I),
    ],
    "engaging_question": [
        re.compile(r"\?\s*$"),
        re.compile(r"\b(aur|kya|what|which|how|when|where|why|shall we|would you like|want to)\b", _I),
        re.compile(r"\b(chahoge|chahiye|jaanna|discuss|explore|know|tell|help|continue|more)\b", _I),
        re.compile(r"(dhanyavaad|thanks|shukriya|appreciate).+(kya|\?)", _I),
    ],
}

LENGTH_LIMITS: Dict[ConflictCategory, LengthLimit] = {
    ConflictCategory.TONE_COMPLAINT: LengthLimit(max_words=30, max_chars=200),
    ConflictCategory.STYLE_ADJUSTMENT: LengthLimit(max_words=25, max_chars=150),
    ConflictCategory.FACTUAL_CORRECTION: LengthLimit(max_words=50, max_chars=300, min_words=20),
    ConflictCategory.IDENTITY_CHALLENGE: LengthLimit(max_words=20, max_chars=120),
    ConflictCategory.HELPFULNESS_COMPLAINT: LengthLimit(max_words=35, max_chars=220),
    ConflictCategory.NONE: LengthLimit(max_words=100, max_chars=600),
}

NO_ACTION_SUGGESTIONS: Dict[ConflictCategory, str] = {
    ConflictCategory.TONE_COMPLAINT: 'Ask: "Aap kaisi tone prefer karte ho?"',
    ConflictCategory.STYLE_ADJUSTMENT: 'Acknowledge and adjust: "Chill mode ON"',
    ConflictCategory.FACTUAL_CORRECTION: 'Add an engaging follow-up question: "Aur kya jaanna chahoge?"',
    ConflictCategory.IDENTITY_CHALLENGE: "Deflect briefly and offer help with the user's actual task",
    ConflictCategory.HELPFULNESS_COMPLAINT: 'Ask: "What specifically would help?"',
}


class ResponseValidator:
    """Scores a generated reply against graceful-handling rules.

    Checks run in a fixed order (apologies, defensiveness, excuses,
    length, engagement, repetition). Each violation subtracts a
    severity-based penalty from 100; a reply is valid when it has no
    CRITICAL violation.

    Example:
        ```python
        validator = ResponseValidator()
        result = validator.validate("Got it! What would you like instead?", ConflictCategory.TONE_COMPLAINT)
        print(result.score, result.is_valid)
        ```
    """

    def __init__(self, settings: Optional[ValidationSettings] = None) -> None:
        """Initialize the validator.

        Args:
            settings: Validation settings (defaults to cached settings)
        """
        self.settings = settings or get_validation_settings()
        self._penalties = {
            ViolationSeverity.CRITICAL: self.settings.critical_penalty,
            ViolationSeverity.MODERATE: self.settings.moderate_penalty,
            ViolationSeverity.MINOR: self.settings.minor_penalty,
        }

    def validate(self, reply: str, category: ConflictCategory) -> ValidationResult:
        """Validate a reply for a conflict category.

        Args:
            reply: Generated reply text
            category: Category of the user message being answered

        Returns:
            ValidationResult with score, violations and passed checks
        """
        violations: List[Violation] = []
        passed: List[str] = []

        checks = [
            ("no_excessive_apologies", self._check_apologies(reply)),
            ("not_defensive", self._check_defensive(reply)),
            ("no_excuses", self._check_excuses(reply)),
            ("appropriate_length", self._check_length(reply, category)),
        ]
        if category != ConflictCategory.NONE:
            checks.append(("has_action", self._check_action(reply, category)))
        checks.append(("no_repetition", self._check_repetition(reply)))

        for name, violation in checks:
            if violation is None:
                passed.append(name)
            else:
                violations.append(violation)

        result = ValidationResult(
            score=self.calculate_score(violations),
            violations=violations,
            passed_checks=passed,
        )

        logger.debug(
            "reply_validated",
            category=category.value,
            score=result.score,
            is_valid=result.is_valid,
            violations=[v.type.value for v in violations],
        )

        return result

    def calculate_score(self, violations: Sequence[Violation]) -> int:
        """100 minus severity penalties, floored at 0."""
        score = 100
        for violation in violations:
            score -= self._penalties[violation.severity]
        return max(0, score)

    def is_graceful(self, reply: str, category: ConflictCategory) -> bool:
        """Quick check: does the reply reach the graceful threshold?"""
        return self.validate(reply, category).score >= self.settings.graceful_threshold

    def get_report(self, result: ValidationResult) -> str:
        """Human-readable validation report (for debugging)."""
        lines = [
            f"Validation Score: {result.score}/100",
            f"Status: {'VALID' if result.is_valid else 'INVALID'}",
            "",
        ]

        if result.violations:
            lines.append("VIOLATIONS:")
            for i, v in enumerate(result.violations, start=1):
                lines.append(f"{i}. [{v.severity.value.upper()}] {v.type.value}")
                lines.append(f'   Evidence: "{v.evidence}"')
                if v.suggestion:
                    lines.append(f"   Fix: {v.suggestion}")
            lines.append("")

        if result.passed_checks:
            lines.append("PASSED CHECKS:")
            lines.extend(f"- {check}" for check in result.passed_checks)

        return "\n".join(lines).rstrip()

    # Checks

    def _check_apologies(self, reply: str) -> Optional[Violation]:
        for pattern in EXCESSIVE_APOLOGY_PATTERNS:
            match = pattern.search(reply)
            if match:
                return Violation(
                    type=ViolationType.OVER_APOLOGIZING,
                    severity=ViolationSeverity.CRITICAL,
                    evidence=match.group(0),
                    suggestion='Use a quick acknowledgment instead: "Got it!" or "Samajh gaya!"',
                )

        # One light "sorry" / "arre sorry" / "oops" is fine
        apology_count = len(APOLOGY_PHRASE.findall(reply))
        if apology_count >= 2:
            return Violation(
                type=ViolationType.OVER_APOLOGIZING,
                severity=ViolationSeverity.CRITICAL,
                evidence=f"Multiple apologies detected ({apology_count} times)",
                suggestion="Apologize once at most, or not at all",
            )

        return None

    def _check_defensive(self, reply: str) -> Optional[Violation]:
        match = _first_match(DEFENSIVE_PATTERNS, reply)
        if match is None:
            return None
        return Violation(
            type=ViolationType.DEFENSIVE,
            severity=ViolationSeverity.CRITICAL,
            evidence=match,
            suggestion="Don't justify the earlier reply. Acknowledge and move forward.",
        )

    def _check_excuses(self, reply: str) -> Optional[Violation]:
        match = _first_match(EXCUSE_PATTERNS, reply)
        if match is None:
            return None
        return Violation(
            type=ViolationType.MAKING_EXCUSES,
            severity=ViolationSeverity.MODERATE,
            evidence=match,
            suggestion="Skip excuses. Focus on the solution.",
        )

    def _check_length(self, reply: str, category: ConflictCategory) -> Optional[Violation]:
        limit = LENGTH_LIMITS.get(category, LENGTH_LIMITS[ConflictCategory.NONE])
        word_count = len(reply.split())
        char_count = len(reply)

        if limit.min_words is not None and word_count < limit.min_words:
            return Violation(
                type=ViolationType.TOO_SHORT,
                severity=ViolationSeverity.MODERATE,
                evidence=f"{word_count} words (minimum: {limit.min_words} words)",
                suggestion=(
                    f"Expand the reply to {limit.min_words}-{limit.max_words} words "
                    "with natural warmth and engagement"
                ),
            )

        if word_count > limit.max_words or char_count > limit.max_chars:
            return Violation(
                type=ViolationType.TOO_LONG,
                severity=ViolationSeverity.MODERATE,
                evidence=(
                    f"{word_count} words, {char_count} chars "
                    f"(limit: {limit.max_words} words, {limit.max_chars} chars)"
                ),
                suggestion="Keep conflict replies brief. 1-2 lines max.",
            )

        return None

    def _check_action(self, reply: str, category: ConflictCategory) -> Optional[Violation]:
        if category == ConflictCategory.FACTUAL_CORRECTION and "?" in reply:
            return None

        for patterns in ACTION_INDICATORS.values():
            if any(p.search(reply) for p in patterns):
                return None

        return Violation(
            type=ViolationType.NO_ACTION,
            severity=ViolationSeverity.CRITICAL,
            evidence="No solution or engagement detected",
            suggestion=NO_ACTION_SUGGESTIONS.get(category),
        )

    def _check_repetition(self, reply: str) -> Optional[Violation]:
        match = _first_match(REPEATING_PATTERNS, reply)
        if match is None:
            return None
        return Violation(
            type=ViolationType.REPEATING_COMPLAINT,
            severity=ViolationSeverity.MINOR,
            evidence=match,
            suggestion="Don't restate the complaint; act on it.",
        )


def _first_match(patterns: Sequence[Pattern[str]], text: str) -> Optional[str]:
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            return match.group(0)
    return None
