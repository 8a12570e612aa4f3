"""
Client-side pieces of the study assistant: the chat session state machine,
the HTTP client it talks through, and the shared UI preferences store.

Nothing in this package reads server settings, so it can be imported
without backend credentials configured.
"""

from studygroup.client.api import StudyGroupClient
from studygroup.client.chat import (
    ChatMessage,
    ChatRole,
    ChatSession,
    ChatState,
    format_confidence,
    format_source,
)
from studygroup.client.ui_state import UISnapshot, UIState

__all__ = [
    "ChatMessage",
    "ChatRole",
    "ChatSession",
    "ChatState",
    "StudyGroupClient",
    "UISnapshot",
    "UIState",
    "format_confidence",
    "format_source",
]
