"""Interactive terminal chat client for the OpenRouter API.

Type a message and press Enter to send it. Lines starting with `/` are commands:

    /help                 - show this help
    /exit                 - quit (saves first when started with --save-on-exit)
    /save [PATH]          - save the conversation to PATH or a new timestamped file
    /system [TEXT]        - show the system prompt, or replace it with TEXT
    /model [NAME]         - show the model, or switch to NAME (stored in the settings file)
    /image URL            - attach the image at URL to your next message
    /clear                - forget the conversation, keeping the system prompt
    /key [API_KEY]        - show the masked API key, or check and store a new one
    /history              - list the messages in the conversation

Run `routerchat` or `python -m routerchat`.
"""
# Re-export useful symbols for convenience
from .core import Session, SessionStore, Settings, ConfigError, load_settings, build_request
from .core.client import OpenRouterClient, CompletionResult
from .cli import ChatCLI, run_cli

__all__ = [
    "Session",
    "SessionStore",
    "Settings",
    "ConfigError",
    "load_settings",
    "build_request",
    "OpenRouterClient",
    "CompletionResult",
    "ChatCLI",
    "run_cli",
]
