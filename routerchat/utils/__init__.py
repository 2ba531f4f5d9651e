from .ansi import (
    Ansi,
    USER_LABEL,
    ASSISTANT_LABEL,
    SYSTEM_LABEL,
    console,
    report_error,
    report_warning,
)
from .render import parse_reply, render_reply
from .spinner import Spinner

__all__ = [
    "Ansi",
    "USER_LABEL",
    "ASSISTANT_LABEL",
    "SYSTEM_LABEL",
    "console",
    "report_error",
    "report_warning",
    "parse_reply",
    "render_reply",
    "Spinner",
]
