"""OpenAI SDK wrapper pointed at the OpenRouter chat completions endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import openai
from openai import OpenAI  # type: ignore

from ..utils import ASSISTANT_LABEL, Spinner
from .settings import Settings

logger = logging.getLogger(__name__)

# Attribution headers OpenRouter uses to identify the calling application.
APP_URL = "https://github.com/routerchat/routerchat"
APP_TITLE = "routerchat"


@dataclass
class CompletionResult:
    """Outcome of one completion call: either a reply or an error message."""

    reply: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reply is not None


class OpenRouterClient:
    """Thin wrapper around the OpenAI Python SDK returning results, not exceptions."""

    def __init__(self, client: OpenAI):
        self.client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "OpenRouterClient":
        client = OpenAI(
            base_url=settings.endpoint,
            api_key=settings.api_key,
            default_headers={"HTTP-Referer": APP_URL, "X-Title": APP_TITLE},
        )
        return cls(client)

    def set_api_key(self, api_key: str) -> None:
        self.client = self.client.with_options(api_key=api_key)

    # ------------------------------------------------------------------
    # Helper methods
    # ------------------------------------------------------------------

    @staticmethod
    def _message_to_dict(message: Any) -> Dict[str, Any]:
        if isinstance(message, dict):
            return message
        return message.model_dump(exclude_none=True)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def complete(self, payload: Dict[str, Any]) -> CompletionResult:
        """POST *payload* and return ``choices[0].message`` as the reply.

        Network failures and non-2xx responses come back as an error result;
        the caller decides what to roll back.
        """
        logger.debug(
            "requesting completion: model=%s messages=%d",
            payload.get("model"),
            len(payload.get("messages", [])),
        )
        try:
            with Spinner(prefix=f"{ASSISTANT_LABEL}> "):
                response = self.client.chat.completions.create(**payload)  # type: ignore[arg-type]
        except openai.APIStatusError as e:
            return CompletionResult(error=f"API error {e.status_code}: {e.message}")
        except openai.OpenAIError as e:
            return CompletionResult(error=f"Request failed: {e}")
        except KeyboardInterrupt:
            return CompletionResult(error="Request interrupted.")

        choices = getattr(response, "choices", None) or []
        if not choices:
            return CompletionResult(error="API returned no choices.")
        return CompletionResult(reply=self._message_to_dict(choices[0].message))

    def validate_key(self, model: str) -> bool:
        """Probe the API with a one-token request; True if the key is accepted."""
        try:
            self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": "ping"}],
                max_tokens=1,
            )
        except openai.OpenAIError as e:
            logger.debug("API key probe failed: %s", e)
            return False
        return True
