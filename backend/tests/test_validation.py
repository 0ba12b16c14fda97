"""Reply validation and regeneration test suite."""

import pytest

from chatflow.classification.classifier import PatternClassifier
from chatflow.classification.models import ConflictCategory
from chatflow.validation.models import ViolationSeverity, ViolationType
from chatflow.validation.regenerator import (
    BRIEF_TARGET_WORDS,
    FACTUAL_TARGET_WORDS,
    RegenerationCoordinator,
)
from chatflow.validation.validator import ResponseValidator

GOOD_TONE_REPLY = "Got it! What would you like to talk about?"
BAD_TONE_REPLY = "Sorry sorry sorry, I apologize, I was trying to be friendly."
GOOD_FACTUAL_REPLY = (
    "Bilkul sahi! Taj Mahal Agra mein hi hai. Thanks for the correction, "
    "really appreciate it! Aur kya details jaanna chahoge iske baare mein?"
)


@pytest.fixture
def validator(validation_settings):
    return ResponseValidator(validation_settings)


@pytest.fixture
def coordinator(validation_settings):
    return RegenerationCoordinator(validation_settings)


class TestResponseValidator:
    """Tests for ResponseValidator."""

    def test_graceful_reply_passes(self, validator):
        """Test that a brief engaging reply scores full marks."""
        result = validator.validate(GOOD_TONE_REPLY, ConflictCategory.TONE_COMPLAINT)

        assert result.score == 100
        assert result.is_valid is True
        assert result.violations == []
        assert "has_action" in result.passed_checks

    def test_apologetic_defensive_reply(self, validator):
        """Test the classic over-apologizing, defensive reply."""
        result = validator.validate(BAD_TONE_REPLY, ConflictCategory.TONE_COMPLAINT)

        assert result.has_violation(ViolationType.OVER_APOLOGIZING)
        assert result.has_violation(ViolationType.DEFENSIVE)
        assert result.has_violation(ViolationType.NO_ACTION)
        assert result.critical_count == 3
        assert result.score == 10
        assert result.score <= 40
        assert result.is_valid is False

    def test_single_light_apology_allowed(self, validator):
        """Test that one plain 'sorry' is not a violation."""
        result = validator.validate(
            "Oops, sorry! Here's the fix you asked for.",
            ConflictCategory.HELPFULNESS_COMPLAINT,
        )

        assert not result.has_violation(ViolationType.OVER_APOLOGIZING)

    def test_repeated_apologies(self, validator):
        """Test that two apology words count as over-apologizing."""
        result = validator.validate(
            "Sorry, sorry. What would you like?", ConflictCategory.TONE_COMPLAINT
        )

        assert result.has_violation(ViolationType.OVER_APOLOGIZING)

    def test_excuses_are_moderate(self, validator):
        """Test excuse detection and its penalty."""
        result = validator.validate(
            "Maybe I misread that. What would you like instead?",
            ConflictCategory.TONE_COMPLAINT,
        )

        assert result.has_violation(ViolationType.MAKING_EXCUSES)
        assert result.score == 85
        assert result.is_valid is True

    def test_repetition_is_minor(self, validator):
        """Test repetition detection and its penalty."""
        result = validator.validate(
            "You said that it felt too casual. Got it, what next?",
            ConflictCategory.TONE_COMPLAINT,
        )

        assert result.has_violation(ViolationType.REPEATING_COMPLAINT)
        assert result.score == 95

    def test_factual_reply_length(self, validator):
        """Test the factual correction length window."""
        good = validator.validate(GOOD_FACTUAL_REPLY, ConflictCategory.FACTUAL_CORRECTION)
        short = validator.validate("Right, Agra.", ConflictCategory.FACTUAL_CORRECTION)

        assert good.score == 100
        assert short.has_violation(ViolationType.TOO_SHORT)

    def test_too_long(self, validator):
        """Test the per-category maximum length."""
        reply = " ".join(["word"] * 25) + " ?"
        result = validator.validate(reply, ConflictCategory.IDENTITY_CHALLENGE)

        assert result.has_violation(ViolationType.TOO_LONG)

    def test_factual_question_counts_as_action(self, validator):
        """Test that a question mark satisfies the action check for corrections."""
        result = validator.validate("Agra it is, noted. Anything else?", ConflictCategory.FACTUAL_CORRECTION)

        assert not result.has_violation(ViolationType.NO_ACTION)

    def test_no_action_check_without_conflict(self, validator):
        """Test that ordinary replies skip the action check."""
        result = validator.validate("The capital of France is Paris.", ConflictCategory.NONE)

        assert result.score == 100
        assert "has_action" not in result.passed_checks

    def test_score_never_increases_with_violations(self, validator):
        """Test score monotonicity over violation sets."""
        result = validator.validate(BAD_TONE_REPLY, ConflictCategory.TONE_COMPLAINT)

        for n in range(len(result.violations)):
            subset = result.violations[:n]
            superset = result.violations[: n + 1]
            assert validator.calculate_score(superset) <= validator.calculate_score(subset)

    def test_score_floor(self, validator):
        """Test that the score never drops below zero."""
        result = validator.validate(BAD_TONE_REPLY, ConflictCategory.TONE_COMPLAINT)

        assert validator.calculate_score(result.violations * 5) == 0

    def test_validity_tracks_critical_violations(self, validator):
        """Test is_valid iff there is no critical violation."""
        for reply in [GOOD_TONE_REPLY, BAD_TONE_REPLY, "Maybe I misread that. What now?"]:
            result = validator.validate(reply, ConflictCategory.TONE_COMPLAINT)
            has_critical = any(
                v.severity == ViolationSeverity.CRITICAL for v in result.violations
            )
            assert result.is_valid == (not has_critical)

    def test_is_graceful(self, validator):
        """Test the graceful threshold shortcut."""
        assert validator.is_graceful(GOOD_TONE_REPLY, ConflictCategory.TONE_COMPLAINT)
        assert not validator.is_graceful(BAD_TONE_REPLY, ConflictCategory.TONE_COMPLAINT)

    def test_report(self, validator):
        """Test the human-readable report."""
        result = validator.validate(BAD_TONE_REPLY, ConflictCategory.TONE_COMPLAINT)
        report = validator.get_report(result)

        assert "Validation Score: 10/100" in report
        assert "INVALID" in report
        assert "over_apologizing" in report

    def test_result_to_dict(self, validator):
        """Test serialization."""
        data = validator.validate(BAD_TONE_REPLY, ConflictCategory.TONE_COMPLAINT).to_dict()

        assert data["is_valid"] is False
        assert data["violations"][0]["type"] == "over_apologizing"


class TestRegenerationCoordinator:
    """Tests for RegenerationCoordinator."""

    def test_should_regenerate(self, validator, coordinator):
        """Test the acceptance threshold."""
        bad = validator.validate(BAD_TONE_REPLY, ConflictCategory.TONE_COMPLAINT)
        good = validator.validate(GOOD_TONE_REPLY, ConflictCategory.TONE_COMPLAINT)

        assert coordinator.should_regenerate(bad) is True
        assert coordinator.should_regenerate(good) is False

    def test_regeneration_disabled(self, validator, validation_settings):
        """Test that disabling regeneration wins over a low score."""
        settings = validation_settings.model_copy(update={"enable_regeneration": False})
        coordinator = RegenerationCoordinator(settings)
        bad = validator.validate(BAD_TONE_REPLY, ConflictCategory.TONE_COMPLAINT)

        assert coordinator.should_regenerate(bad) is False

    def test_brief_guidance_for_tone(self, validator, coordinator):
        """Test guidance for a tone complaint."""
        message = "don't call me yaar"
        analysis = PatternClassifier().classify(message)
        result = validator.validate(BAD_TONE_REPLY, analysis.category)

        context = coordinator.build_context(message, BAD_TONE_REPLY, result, analysis)
        guidance = coordinator.build_guidance(context)

        assert context.category == ConflictCategory.TONE_COMPLAINT
        assert len(context.violations) == 3
        assert guidance.target_words == BRIEF_TARGET_WORDS
        assert "Reply format:" in guidance.system_prompt
        assert message in guidance.user_prompt
        assert BAD_TONE_REPLY in guidance.user_prompt
        assert "Make the reply more confident" in guidance.changes_needed
        assert "Remove defensive language" in guidance.changes_needed
        assert guidance.to_prompt().startswith(guidance.system_prompt)

    def test_factual_guidance(self, validator, coordinator):
        """Test guidance for a factual correction."""
        message = "you are completely wrong, it's not Delhi it's Agra"
        analysis = PatternClassifier().classify(message)
        result = validator.validate("Right, Agra.", analysis.category)

        guidance = coordinator.build_guidance(
            coordinator.build_context(message, "Right, Agra.", result, analysis)
        )

        assert guidance.target_words == FACTUAL_TARGET_WORDS
        assert "20-50 words" in guidance.system_prompt
        assert "Is 20-50 words long" in guidance.user_prompt

    def test_extract_changes_deduplicates(self):
        """Test change list order and deduplication."""
        changes = RegenerationCoordinator.extract_changes([
            ViolationType.DEFENSIVE,
            ViolationType.DEFENSIVE,
            ViolationType.NO_ACTION,
        ])

        assert changes == [
            "Remove defensive language",
            "End with a question or a concrete next step",
        ]
