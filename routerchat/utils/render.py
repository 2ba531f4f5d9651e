"""Render assistant replies, highlighting fenced code blocks."""
from __future__ import annotations

from typing import List, NamedTuple, Optional

from rich.console import Console
from rich.syntax import Syntax
from rich.text import Text

from .ansi import console as default_console

FENCE = "```"


class Block(NamedTuple):
    kind: str  # "text" or "code"
    language: Optional[str]
    lines: List[str]


def parse_reply(text: str) -> List[Block]:
    """Split *text* into alternating plain and fenced-code blocks.

    A line whose stripped form starts with three backticks toggles code mode.
    The opening fence may carry a language tag (```` ```python ````). A block
    left open at the end of the text is closed implicitly.
    """
    blocks: List[Block] = []
    current: List[str] = []
    in_code = False
    language: Optional[str] = None

    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith(FENCE):
            if current or in_code:
                blocks.append(Block("code" if in_code else "text", language, current))
            current = []
            if in_code:
                in_code = False
                language = None
            else:
                in_code = True
                language = stripped[len(FENCE):].strip() or None
            continue
        current.append(line)

    if current or in_code:
        blocks.append(Block("code" if in_code else "text", language, current))
    return blocks


def render_reply(text: str, console: Optional[Console] = None) -> None:
    """Print *text* with code blocks rendered through :class:`rich.syntax.Syntax`."""
    out = console or default_console
    for block in parse_reply(text):
        body = "\n".join(block.lines)
        if block.kind == "code":
            out.print(
                Syntax(body, block.language or "text", theme="monokai", word_wrap=True)
            )
        else:
            # Text() keeps square brackets in replies from being read as markup
            out.print(Text(body))
