"""Regeneration coordinator: decides on and prepares a second generation attempt."""

from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from chatflow.classification.models import ConflictAnalysis, ConflictCategory
from chatflow.config.settings import ValidationSettings, get_validation_settings
from chatflow.validation.models import (
    RegenerationContext,
    RegenerationGuidance,
    ValidationResult,
    ViolationType,
)

logger = structlog.get_logger()


FACTUAL_TARGET_WORDS: Tuple[int, int] = (20, 50)
BRIEF_TARGET_WORDS: Tuple[int, int] = (3, 15)

CHANGE_DESCRIPTIONS: Dict[ViolationType, str] = {
    ViolationType.OVER_APOLOGIZING: "Make the reply more confident",
    ViolationType.DEFENSIVE: "Remove defensive language",
    ViolationType.MAKING_EXCUSES: "Drop the excuses",
    ViolationType.TOO_LONG: "Shorten the reply",
    ViolationType.TOO_SHORT: "Expand the reply naturally (20-50 words)",
    ViolationType.NO_ACTION: "End with a question or a concrete next step",
    ViolationType.REPEATING_COMPLAINT: "Avoid repeating the complaint back",
}

BASE_GUIDANCE = """You are a helpful AI assistant having a natural conversation.

When users give feedback about your communication:
- Keep responses brief and confident
- A simple acknowledgment works best
- Avoid lengthy explanations or justifications
- Move the conversation forward naturally
- Focus on being helpful rather than apologetic"""

FACTUAL_GUIDANCE = """When the user corrects you:

Response length: 20-50 words.

Structure:
1. Energetic acceptance (3-5 words), e.g. "Bilkul sahi!", "Oh absolutely right!", "Right you are!"
2. State the corrected fact briefly (6-10 words)
3. Genuine thanks to the user for the correction (3-6 words)
4. An engaging follow-up question (6-12 words), matching the user's language (Hinglish/English)

No apologies and no defensive language. Sound like a grateful friend, not a robot.

Example:
"Bilkul sahi! Taj Mahal Agra mein hi hai. Thanks for the correction, really appreciate it! Aur kya details jaanna chahoge iske baare mein?\""""

CATEGORY_GUIDANCE: Dict[ConflictCategory, str] = {
    ConflictCategory.TONE_COMPLAINT: """When adjusting communication tone:
- "Got it! What would you like to discuss?"
- "Sure thing. How can I help?"
Acknowledge briefly, then engage with their question.""",
    ConflictCategory.STYLE_ADJUSTMENT: """When adjusting communication style:
- "Will do. What can I help with?"
- "Chill mode on. What's up?"
Adapt your style immediately in the same reply.""",
    ConflictCategory.IDENTITY_CHALLENGE: """When asked which model or company is behind you:
- Deflect lightly without naming vendors
- Offer to continue with what the user needs""",
    ConflictCategory.HELPFULNESS_COMPLAINT: """When the user says you were not helpful:
- Acknowledge in a few words
- Ask what specifically would help""",
}

BRIEF_FORMAT = """Reply format:
- Line 1: brief acknowledgment (3-5 words)
- Line 2: helpful forward-moving question (3-6 words)
- Two short sentences maximum"""


class RegenerationCoordinator:
    """Builds regeneration prompts for replies that failed validation.

    The coordinator never calls a generator; the orchestrator owns the
    single regeneration attempt and feeds it these prompts.
    """

    def __init__(self, settings: Optional[ValidationSettings] = None) -> None:
        self.settings = settings or get_validation_settings()

    def should_regenerate(self, result: ValidationResult) -> bool:
        """Regenerate when enabled and the score is below the acceptance threshold."""
        return (
            self.settings.enable_regeneration
            and result.score < self.settings.acceptance_threshold
        )

    def build_context(
        self,
        original_message: str,
        failed_reply: str,
        result: ValidationResult,
        analysis: ConflictAnalysis,
    ) -> RegenerationContext:
        """Collect what the regeneration prompt needs."""
        descriptions = tuple(
            f"{v.type.value}: {v.suggestion or v.evidence}" for v in result.violations
        )
        return RegenerationContext(
            original_message=original_message,
            failed_reply=failed_reply,
            violations=descriptions,
            category=analysis.category,
            intent=analysis.intent,
            violation_types=tuple(v.type for v in result.violations),
        )

    def build_guidance(self, context: RegenerationContext) -> RegenerationGuidance:
        """Build category-tailored prompts for the second attempt.

        Args:
            context: Regeneration context from build_context()

        Returns:
            RegenerationGuidance with system/user prompts and targets
        """
        is_factual = context.category == ConflictCategory.FACTUAL_CORRECTION
        target = FACTUAL_TARGET_WORDS if is_factual else BRIEF_TARGET_WORDS
        changes = tuple(self.extract_changes(context.violation_types))

        guidance = RegenerationGuidance(
            system_prompt=self._build_system_prompt(context.category),
            user_prompt=self._build_user_prompt(context, target),
            changes_needed=changes,
            target_words=target,
        )

        logger.info(
            "regeneration_guidance_built",
            category=context.category.value,
            violations=len(context.violations),
            changes=list(changes),
        )

        return guidance

    @staticmethod
    def extract_changes(violation_types: Sequence[ViolationType]) -> List[str]:
        """Map violation types to short change descriptions."""
        changes: List[str] = []
        for violation_type in violation_types:
            change = CHANGE_DESCRIPTIONS.get(violation_type, "Improve reply quality")
            if change not in changes:
                changes.append(change)
        return changes

    @staticmethod
    def _build_system_prompt(category: ConflictCategory) -> str:
        parts = [BASE_GUIDANCE]

        if category == ConflictCategory.FACTUAL_CORRECTION:
            parts.append(FACTUAL_GUIDANCE)
        else:
            specific = CATEGORY_GUIDANCE.get(category)
            if specific:
                parts.append(specific)
            parts.append(BRIEF_FORMAT)

        return "\n\n".join(parts)

    @staticmethod
    def _build_user_prompt(context: RegenerationContext, target: Tuple[int, int]) -> str:
        lines = [
            "The user said:",
            f'"{context.original_message}"',
            "",
            "Your previous response was:",
            f'"{context.failed_reply}"',
            "",
            "This response could be improved because:",
        ]
        lines.extend(f"{i}. {d}" for i, d in enumerate(context.violations, start=1))
        lines.append("")

        if context.category == ConflictCategory.FACTUAL_CORRECTION:
            lines.extend([
                "Please provide a better response that:",
                f"- Is {target[0]}-{target[1]} words long",
                "- Shows energetic acceptance and restates the corrected fact",
                "- Thanks the user for the correction",
                "- Ends with an engaging follow-up question",
            ])
        else:
            lines.extend([
                "Please provide a better response that:",
                f"- Is brief and confident (under {target[1]} words)",
                "- Acknowledges the feedback naturally",
                "- Moves the conversation forward with a question",
            ])

        lines.extend(["", "Your improved response:"])
        return "\n".join(lines)
