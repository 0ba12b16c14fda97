"""Rule-based conversation summarizer used by smart-summary compaction."""

import re
from collections import Counter
from typing import List, Optional, Pattern, Sequence, Tuple

import structlog

from chatflow.config.settings import CompactionSettings, get_compaction_settings
from chatflow.types import Message, MessageRole

logger = structlog.get_logger()


STOP_WORDS = frozenset({
    "the", "a", "an", "is", "are", "was", "were", "be", "been",
    "being", "have", "has", "had", "do", "does", "did", "will",
    "would", "could", "should", "may", "might", "must", "shall",
    "can", "need", "dare", "ought", "used", "to", "of", "in",
    "for", "on", "with", "at", "by", "from", "as", "into",
    "through", "during", "before", "after", "above", "below",
    "between", "under", "again", "further", "then", "once",
    "here", "there", "when", "where", "why", "how", "all",
    "each", "few", "more", "most", "other", "some", "such",
    "no", "nor", "not", "only", "own", "same", "so", "than",
    "too", "very", "just", "and", "but", "if", "or", "because",
    "until", "while", "this", "that", "these", "those",
    "i", "me", "my", "myself", "we", "our", "ours", "ourselves",
    "you", "your", "yours", "yourself", "yourselves", "he", "him",
    "his", "himself", "she", "her", "hers", "herself", "it", "its",
    "itself", "they", "them", "their", "theirs", "themselves",
    "what", "which", "who", "whom", "please", "thanks", "thank",
    "yes", "okay", "ok", "sure", "right", "well", "also",
    "like", "want", "know", "think", "make", "get", "use", "try",
})

# Counted twice when ranking topics
DOMAIN_KEYWORDS = frozenset({
    "api", "database", "function", "class", "error", "bug", "deploy",
    "deployment", "server", "client", "model", "query", "schema", "test",
    "component", "config", "cache", "auth", "authentication", "python",
    "typescript", "javascript", "docker", "kubernetes", "react",
})

INTENT_PATTERNS: Tuple[Tuple[Pattern[str], str], ...] = (
    (re.compile(r"(?:help me|want to|need to|trying to)\s+(.+)", re.IGNORECASE), ""),
    (re.compile(r"(?:how (?:do i|can i|to))\s+(.+)", re.IGNORECASE), "Learn how to "),
    (re.compile(r"(?:create|build|make|implement)\s+(.+)", re.IGNORECASE), "Create "),
    (re.compile(r"(?:fix|solve|resolve|debug)\s+(.+)", re.IGNORECASE), "Fix "),
    (re.compile(r"(?:explain|understand|what is)\s+(.+)", re.IGNORECASE), "Understand "),
)

KEY_POINT_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"(?:important|key|main|critical|must|need to|should|remember)[:.]?\s*(.+)", re.IGNORECASE),
    re.compile(r"(?:the solution is|answer is|result is|conclusion)[:.]?\s*(.+)", re.IGNORECASE),
    re.compile(r"(?:we decided|decided to|let's|plan is)[:.]?\s*(.+)", re.IGNORECASE),
    re.compile(r"(?:problem is|issue is|error is|bug is)[:.]?\s*(.+)", re.IGNORECASE),
    re.compile(r"(?:working now|fixed|resolved|done|completed)[:.]?\s*(.+)", re.IGNORECASE),
)

CODE_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"(?:file|component|class|function|method)[:.]?\s*[`\"']?(\w+(?:\.\w+)?)[`\"']?", re.IGNORECASE),
    re.compile(r"(\w+\.(?:py|ts|js|tsx|jsx|css|html|json|yaml|yml))", re.IGNORECASE),
    re.compile(r"```(\w+)"),
)

DECISION_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"(?:let's go with|decided|will use|using|chose|selected)\s+(.+)", re.IGNORECASE),
    re.compile(r"(?:done|fixed|resolved|completed)[:.]?\s*(.+)", re.IGNORECASE),
    re.compile(r"(?:final|solution|answer)[:.]?\s*(.+)", re.IGNORECASE),
)

WORD_PATTERN = re.compile(r"\b[a-z]{3,}\b")
EMPTY_SUMMARY = "Previous conversation context available."


def truncate_text(text: str, max_length: int) -> str:
    """Shorten text to ``max_length`` characters with an ellipsis."""
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


class ConversationSummarizer:
    """Builds a short structured summary of older conversation turns.

    The summary lists the user's goal, main topics, key points, code
    references and decisions. Everything is extracted with patterns; no
    model is called.
    """

    def __init__(self, settings: Optional[CompactionSettings] = None) -> None:
        self.settings = settings or get_compaction_settings()

    def summarize(self, messages: Sequence[Message]) -> str:
        """Summarize a run of messages.

        Args:
            messages: Older messages being replaced by the summary

        Returns:
            Multi-line summary text
        """
        parts = []

        goal = self.detect_user_goal(messages)
        if goal:
            parts.append(f"User's goal: {goal}")

        topics = self.extract_topics(messages)
        if topics:
            parts.append(f"Topics discussed: {', '.join(topics)}")

        key_points = self.extract_key_points(messages)
        if key_points:
            parts.append("Key points:\n" + "\n".join(f"- {p}" for p in key_points))

        code_refs = self.extract_code_context(messages)
        if code_refs:
            parts.append(f"Code context: {', '.join(code_refs)}")

        decisions = self.extract_decisions(messages)
        if decisions:
            parts.append("Decisions made:\n" + "\n".join(f"- {d}" for d in decisions))

        logger.debug(
            "conversation_summarized",
            message_count=len(messages),
            topics=len(topics),
            key_points=len(key_points),
            decisions=len(decisions),
        )

        return "\n\n".join(parts) or EMPTY_SUMMARY

    def detect_user_goal(self, messages: Sequence[Message]) -> Optional[str]:
        """Goal phrasing from the first three user messages, else the first user message."""
        user_messages = [m for m in messages if m.role == MessageRole.USER]
        if not user_messages:
            return None

        for message in user_messages[:3]:
            for pattern, prefix in INTENT_PATTERNS:
                match = pattern.search(message.content)
                if match and match.group(1).strip():
                    return prefix + truncate_text(match.group(1).strip(), 60)

        return truncate_text(user_messages[0].content, 80)

    def extract_topics(self, messages: Sequence[Message]) -> List[str]:
        """Most frequent non-stopword words, domain keywords boosted."""
        text = " ".join(m.content for m in messages).lower()
        counts: Counter = Counter()

        for word in WORD_PATTERN.findall(text):
            if word in STOP_WORDS:
                continue
            counts[word] += 2 if word in DOMAIN_KEYWORDS else 1

        # Stable ordering for equal counts: first appearance wins
        ranked = sorted(counts.items(), key=lambda item: -item[1])
        return [word for word, _ in ranked[: self.settings.summary_max_topics]]

    def extract_key_points(self, messages: Sequence[Message]) -> List[str]:
        """Key statements from the assistant plus questions the user asked."""
        key_points: List[str] = []

        for message in messages:
            if message.role != MessageRole.ASSISTANT:
                continue
            for pattern in KEY_POINT_PATTERNS:
                match = pattern.search(message.content)
                if match and match.group(1):
                    point = truncate_text(match.group(1).strip(), 100)
                    if len(point) > 10 and point not in key_points:
                        key_points.append(point)

        for message in messages:
            if message.role == MessageRole.USER and "?" in message.content:
                question = truncate_text(re.sub(r"\?+", "?", message.content), 80)
                if len(question) > 10:
                    key_points.append(f"User asked: {question}")

        return key_points[: self.settings.summary_max_key_points]

    def extract_code_context(self, messages: Sequence[Message]) -> List[str]:
        """File names, identifiers and fenced-code languages."""
        refs: List[str] = []

        for message in messages:
            for pattern in CODE_PATTERNS:
                for match in pattern.finditer(message.content):
                    ref = (match.group(1) or "").lower()
                    if len(ref) > 2 and ref not in refs:
                        refs.append(ref)

        return refs[: self.settings.summary_max_code_refs]

    def extract_decisions(self, messages: Sequence[Message]) -> List[str]:
        """Decisions and resolutions stated by the assistant."""
        decisions: List[str] = []

        for message in messages:
            if message.role != MessageRole.ASSISTANT:
                continue
            for pattern in DECISION_PATTERNS:
                match = pattern.search(message.content)
                if match and match.group(1):
                    decision = truncate_text(match.group(1).strip(), 60)
                    if len(decision) > 5:
                        decisions.append(decision)

        return decisions[: self.settings.summary_max_decisions]
