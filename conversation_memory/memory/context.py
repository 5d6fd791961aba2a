"""Prompt rendering and context-window error detection for conversation history."""

import re
from typing import Iterable, List

from ..schemas import ConversationMessage

REVIEW_REQUEST_MARKER = "[Review Agent Request]"
REVIEW_RESPONSE_MARKER = "[Review Agent Response]"
SUMMARY_MARKER = "[Conversation Summary]"

USER_LABEL = "user:"
AGENT_LABEL = "cursor:"

CONTEXT_WINDOW_ERROR_PATTERNS: List[re.Pattern] = [
    re.compile(r"context.*window.*too.*large", re.IGNORECASE),
    re.compile(r"context.*length.*exceeded", re.IGNORECASE),
    re.compile(r"token.*limit.*exceeded", re.IGNORECASE),
    re.compile(r"maximum.*context.*length", re.IGNORECASE),
    re.compile(r"context.*too.*long", re.IGNORECASE),
]


def is_review_message(message: ConversationMessage) -> bool:
    """Check whether a message belongs to the review-agent exchange."""
    return message.content.startswith((REVIEW_REQUEST_MARKER, REVIEW_RESPONSE_MARKER))


def render_context(messages: Iterable[ConversationMessage]) -> str:
    """Build the conversation history block handed to the coding agent.

    Review-agent messages are dropped. Each remaining message becomes
    "user: ..." or "cursor: ...", separated by blank lines.

    Args:
        messages: Conversation messages in order

    Returns:
        Rendered history, or an empty string if nothing remains
    """
    lines = []
    for message in messages:
        if is_review_message(message):
            continue
        label = USER_LABEL if message.role == "user" else AGENT_LABEL
        lines.append(f"{label} {message.content}")
    return "\n\n".join(lines)


def is_context_window_error(output: str) -> bool:
    """Check if agent output reports an exhausted context window."""
    if not output:
        return False
    return any(pattern.search(output) for pattern in CONTEXT_WINDOW_ERROR_PATTERNS)
