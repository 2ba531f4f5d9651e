"""Colour and styling helpers built on :mod:`rich`."""

import os
from rich.console import Console
from rich.markup import escape


console = Console()


class Ansi:
    """Lightweight collection of style names used throughout the app."""

    BOLD = "bold"

    FG_GREEN = "green"
    FG_CYAN = "cyan"
    FG_MAGENTA = "magenta"
    FG_YELLOW = "yellow"
    FG_RED = "red"

    @staticmethod
    def style(text: str, *codes: str) -> str:
        """Return *text* wrapped in rich markup unless ``NO_COLOR`` is set.

        *text* is escaped, so brackets coming from user input or files are
        printed literally.
        """
        text = escape(text)
        if os.getenv("NO_COLOR") is not None:
            return text
        style = " ".join(codes)
        return f"[{style}]{text}[/]"


# Common labels used throughout the application
USER_LABEL = Ansi.style("you", Ansi.FG_CYAN, Ansi.BOLD)
ASSISTANT_LABEL = Ansi.style("assistant", Ansi.FG_GREEN, Ansi.BOLD)
ERROR_LABEL = Ansi.style("error", Ansi.FG_RED, Ansi.BOLD)
WARNING_LABEL = Ansi.style("warning", Ansi.FG_YELLOW, Ansi.BOLD)
SYSTEM_LABEL = Ansi.style("system", Ansi.FG_MAGENTA, Ansi.BOLD)


def report_error(message: str) -> None:
    """Print a single-line diagnostic prefixed with the error label."""
    # "\[" keeps the bracket literal when NO_COLOR leaves the label unstyled.
    console.print(f"\\[{ERROR_LABEL}] ", end="")
    # Messages can quote API responses or paths; never read them as markup.
    console.print(message, markup=False, highlight=False)


def report_warning(message: str) -> None:
    console.print(f"\\[{WARNING_LABEL}] ", end="")
    console.print(message, markup=False, highlight=False)
