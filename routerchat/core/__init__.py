from .settings import Settings, ConfigError, load_settings, DEFAULT_SYSTEM_PROMPT
from .session import Session, SessionStore
from .request import build_request
# client module will be imported lazily to avoid heavy dependencies when not needed.

__all__ = [
    "Settings",
    "ConfigError",
    "load_settings",
    "DEFAULT_SYSTEM_PROMPT",
    "Session",
    "SessionStore",
    "build_request",
]
