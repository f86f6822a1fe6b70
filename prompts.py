"""System/user message construction for editing requests."""

from __future__ import annotations

from typing import List, Optional, Tuple

from models import ChatMessage

SYSTEM_PROMPT = "You are an AI writing assistant that helps edit and improve text."

MODE_SELECTION = "selection"
MODE_DOCUMENT = "document"


def select_mode(selected_text: Optional[str]) -> str:
    """Selection mode when there is non-blank selected text."""
    if selected_text and selected_text.strip():
        return MODE_SELECTION
    return MODE_DOCUMENT


def build_user_prompt(prompt: str, selected_text: Optional[str], markdown: str) -> str:
    if select_mode(selected_text) == MODE_SELECTION:
        return (
            f'Edit the selected text: "{selected_text}"\n\n'
            f"User request: {prompt}\n\n"
            f"Full document context: {markdown}"
        )
    return f"Edit this document based on the request: {prompt}\n\nDocument: {markdown}"


def build_messages(
    prompt: str,
    selected_text: Optional[str],
    markdown: str,
) -> Tuple[str, List[ChatMessage]]:
    """
    Build the (system, user) message pair.

    Returns the composition mode alongside the messages so the caller can
    report which one was used.
    """
    mode = select_mode(selected_text)
    messages = [
        ChatMessage(role="system", content=SYSTEM_PROMPT),
        ChatMessage(role="user", content=build_user_prompt(prompt, selected_text, markdown)),
    ]
    return mode, messages
