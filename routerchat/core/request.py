"""Build the chat completions payload from the session."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from .session import Message, Session
from .settings import Settings


def attach_image(messages: List[Message], url: str) -> Optional[Message]:
    """Attach *url* to the most recent user message, in place.

    Scalar content becomes a two-part list (text, then image). Content that is
    already a part list gets the image appended. Returns the message that was
    changed, or None when there is no user message.
    """
    for message in reversed(messages):
        if message.get("role") != "user":
            continue
        image_part = {"type": "image_url", "image_url": {"url": url}}
        content = message.get("content")
        if isinstance(content, list):
            content.append(image_part)
        else:
            message["content"] = [{"type": "text", "text": content or ""}, image_part]
        return message
    return None


def build_request(settings: Settings, session: Session) -> Dict[str, Any]:
    """Return ``{model, messages, temperature, max_tokens}`` for *session*.

    A pending image is folded into the last user message and then cleared,
    so it is sent exactly once and stays structured in the history.
    """
    if session.pending_image:
        attach_image(session.messages, session.pending_image)
        session.pending_image = None

    return {
        "model": session.model,
        "messages": session.messages,
        "temperature": settings.temperature,
        "max_tokens": settings.max_tokens,
    }
