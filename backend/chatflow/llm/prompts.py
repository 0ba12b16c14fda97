"""Reply prompts for the generation collaborator."""

from typing import Optional, Sequence

from chatflow.classification.models import ConflictAnalysis, SuggestedAction
from chatflow.types import Message, MessageRole

REPLY_SYSTEM_PROMPT = """You are a helpful AI assistant having a natural conversation.
Reply in the user's language and register. Be brief, warm and confident."""

# Extra instruction added when the user pushed back on the assistant
ACTION_HINTS = {
    SuggestedAction.ACKNOWLEDGE: (
        "The user corrected you. Accept the correction briefly, restate the right "
        "fact, thank them and continue the conversation. No apologies."
    ),
    SuggestedAction.ASK_PREFERENCE: (
        "The user is unhappy with how you replied. Acknowledge it in a few words "
        "and ask what they would prefer."
    ),
    SuggestedAction.ADJUST_IMMEDIATELY: (
        "The user asked you to change how you talk. Adopt the new style in this "
        "very reply without commenting on it at length."
    ),
    SuggestedAction.DEFLECT: (
        "The user is asking what is behind you. Deflect lightly without naming "
        "vendors and offer to continue with what they need."
    ),
}

ROLE_LABELS = {
    MessageRole.USER: "User",
    MessageRole.ASSISTANT: "Assistant",
    MessageRole.SYSTEM: "System",
}


def get_action_hint(analysis: Optional[ConflictAnalysis]) -> Optional[str]:
    """Get the instruction for a detected conflict, if any."""
    if analysis is None or not analysis.has_conflict:
        return None
    return ACTION_HINTS.get(analysis.suggested_action)


def build_reply_prompt(
    window: Sequence[Message],
    user_message: str,
    analysis: Optional[ConflictAnalysis] = None,
) -> str:
    """Build the prompt for a first-attempt reply.

    Args:
        window: Compacted conversation history, oldest first
        user_message: The message being answered
        analysis: Conflict analysis of the message

    Returns:
        Prompt string
    """
    parts = [REPLY_SYSTEM_PROMPT]

    hint = get_action_hint(analysis)
    if hint:
        parts.append(hint)

    if window:
        history = "\n".join(
            f"{ROLE_LABELS[m.role]}: {m.content}" for m in window
        )
        parts.append(f"## Conversation so far\n{history}")

    parts.append(f"User: {user_message}\nAssistant:")
    return "\n\n".join(parts)
