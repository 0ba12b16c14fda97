"""Hard-block harm filter checked before any classification or generation."""

import re
from typing import Dict, Optional, Tuple

import structlog

from chatflow.classification.models import GuardResult, HarmCategory
from chatflow.classification.patterns import HARM_PATTERNS

logger = structlog.get_logger()


class HardBlockGuard:
    """Refuses messages that fall into a narrow set of harm categories.

    The guard runs independently of conflict classification;
    a hit short-circuits the pipeline with a fixed safety reply.
    """

    def __init__(
        self,
        patterns: Optional[Dict[HarmCategory, Tuple[re.Pattern, ...]]] = None,
        enabled: bool = True,
    ) -> None:
        self._patterns = patterns if patterns is not None else HARM_PATTERNS
        self.enabled = enabled

    def check(self, message: str) -> GuardResult:
        """Check a message against the harm patterns.

        Args:
            message: Raw user message

        Returns:
            GuardResult, blocked with the first matching category
        """
        if not self.enabled or not message:
            return GuardResult(blocked=False)

        for category, patterns in self._patterns.items():
            for regex in patterns:
                found = regex.search(message)
                if found:
                    logger.warning(
                        "message_hard_blocked",
                        category=category.value,
                    )
                    return GuardResult(
                        blocked=True,
                        category=category,
                        evidence=found.group(0),
                    )

        return GuardResult(blocked=False)
