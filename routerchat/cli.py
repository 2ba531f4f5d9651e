"""Terminal chat REPL for the OpenRouter API.

Reads a line, dispatches slash commands, and otherwise sends the conversation
upstream and renders the reply.
"""
from __future__ import annotations

import argparse
import logging
import sys
import readline  # noqa: F401 – side-effect: history & line editing
from pathlib import Path
from typing import Any, Optional

import questionary
from rich.logging import RichHandler
from rich.panel import Panel

from .core import (
    ConfigError,
    Session,
    SessionStore,
    Settings,
    build_request,
    load_settings,
)
from .core.client import OpenRouterClient
from .core.settings import (
    DEFAULT_CONFIG_PATH,
    ENV_API_KEY,
    persist_setting,
    save_env_value,
)
from .utils import (
    Ansi,
    ASSISTANT_LABEL,
    SYSTEM_LABEL,
    USER_LABEL,
    console,
    render_reply,
    report_error,
    report_warning,
)

logger = logging.getLogger(__name__)

PREVIEW_WIDTH = 60


def _content_text(content: Any) -> str:
    """Flatten message content (plain string or part list) to display text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        texts = []
        for part in content:
            if not isinstance(part, dict):
                continue
            if part.get("type") == "text":
                texts.append(part.get("text", ""))
            elif part.get("type") == "image_url":
                texts.append(f"[image: {part.get('image_url', {}).get('url', '')}]")
        return " ".join(texts)
    return "" if content is None else str(content)


# ---------------------------------------------------------------------------
# Helper classes
# ---------------------------------------------------------------------------


class ChatCLI:
    """High-level orchestration class for the interactive REPL."""

    def __init__(
        self,
        session: Session,
        settings: Settings,
        client: OpenRouterClient,
        store: SessionStore,
        save_on_exit: bool = False,
    ):
        self.session = session
        self.settings = settings
        self.client = client
        self.store = store
        self.save_on_exit = save_on_exit

    # ---------------- Conversation turn ---------------

    def send(self, text: str) -> bool:
        """Send *text* as a user turn. Returns False if the request failed.

        The user message is appended before the request is built; on failure it
        is removed again so history never ends with an unanswered turn.
        """
        self.session.add_user_message(text)
        payload = build_request(self.settings, self.session)
        result = self.client.complete(payload)

        if not result.ok:
            logger.debug("turn abandoned, %d message(s) kept", len(self.session.messages) - 1)
            self.session.rollback_last_user_message()
            report_error(result.error or "Request failed.")
            return False

        self.session.add_reply(result.reply)
        console.print(f"{ASSISTANT_LABEL}>")
        render_reply(_content_text(result.reply.get("content")))
        self.store.persist_current(self.session)
        return True

    # ---------------- Command handling ---------------

    def _exit(self) -> bool:
        if self.save_on_exit:
            path = self.store.save(self.session)
            if path is not None:
                console.print(f"Session saved to {path}. Bye!", highlight=False)
                return False
        console.print("Bye!")
        return False

    def handle_command(self, line: str) -> bool:
        """Handle slash commands. Return False to exit REPL."""

        parts = line.strip().split(maxsplit=1)
        if not parts:
            return True

        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) == 2 else ""

        if cmd == "/help":
            from . import __doc__ as _doc  # lazy import to avoid circularity

            console.print(_doc or "(no help available)", highlight=False, markup=False)

        elif cmd == "/exit":
            return self._exit()

        elif cmd == "/save":
            path = self.store.save(self.session, Path(arg) if arg else None)
            if path is not None:
                console.print(f"[session saved to {path}]", highlight=False, markup=False)

        elif cmd == "/system":
            if not arg:
                console.print(f"{SYSTEM_LABEL}> ", end="")
                console.print(self.session.system_prompt, highlight=False, markup=False)
                return True
            self.session.system_prompt = arg
            self.store.persist_current(self.session)
            console.print("[system prompt updated]", markup=False)

        elif cmd == "/model":
            if not arg:
                console.print(f"Current model: {self.session.model}", highlight=False, markup=False)
                return True
            self.session.model = arg
            self.settings.model = arg
            if not persist_setting(self.settings, "api", "model", arg):
                report_warning("Model switched for this run but could not be stored in the settings file.")
            self.store.persist_current(self.session)
            console.print(f"[model switched to {arg}]", highlight=False, markup=False)

        elif cmd == "/image":
            if not arg:
                if self.session.pending_image:
                    console.print(
                        f"Pending image: {self.session.pending_image}", highlight=False, markup=False
                    )
                else:
                    console.print("Usage: /image <url>")
                return True
            self.session.pending_image = arg
            console.print("[image will be attached to your next message]", markup=False)

        elif cmd == "/clear":
            self.session.clear()
            self.store.persist_current(self.session)
            console.print("[conversation cleared – system prompt kept]", markup=False)

        elif cmd == "/key":
            if not arg:
                console.print(f"API key: {self.settings.masked_api_key}", highlight=False, markup=False)
                return True
            self._change_api_key(arg)

        elif cmd == "/history":
            self._print_history()

        else:
            console.print(Ansi.style(f"Unknown command: {cmd} (see /help)", Ansi.FG_RED))

        return True

    def _change_api_key(self, api_key: str) -> None:
        previous = self.settings.api_key
        self.client.set_api_key(api_key)
        if not self.client.validate_key(self.session.model):
            self.client.set_api_key(previous)
            report_error("The API key was rejected; keeping the current key.")
            return
        self.settings.api_key = api_key
        if not persist_setting(self.settings, "api", "apiKey", api_key):
            report_warning("Key accepted for this run but could not be stored in the settings file.")
        console.print("[API key updated]", markup=False)

    def _print_history(self) -> None:
        console.print(f"{len(self.session.messages)} message(s), model {self.session.model}", highlight=False)
        for idx, message in enumerate(self.session.messages):
            text = " ".join(_content_text(message.get("content")).split())
            if len(text) > PREVIEW_WIDTH:
                text = text[: PREVIEW_WIDTH - 1] + "…"
            role = Ansi.style(f"{message.get('role', '?'):>9}", Ansi.FG_CYAN)
            console.print(f"  {idx:>3} {role}  ", end="")
            console.print(text, highlight=False, markup=False)

    # ---------------- Interaction loop ---------------

    def repl(self) -> None:
        """Run the interactive read–eval–print-loop."""
        console.print(Panel.fit("OpenRouter Chat", style="bold magenta"))

        console.print(
            Ansi.style("Type your message and press Enter. Commands start with '/'.", Ansi.FG_YELLOW),
            Ansi.style(f"Current model: {self.session.model}.", Ansi.FG_YELLOW),
            Ansi.style("Type /help for help.", Ansi.FG_YELLOW),
            sep="\n",
        )

        while True:
            try:
                line = console.input(f"{USER_LABEL}> ").strip()
            except (EOFError, KeyboardInterrupt):
                console.print("\n[signal caught – exiting]", markup=False)
                self._exit()
                break

            if not line:
                continue

            if line.startswith("/"):
                if not self.handle_command(line):
                    break
                continue

            self.send(line)


# ---------------------------------------------------------------------------
# Entrypoint helpers (keeping it separate simplifies __main__ handling)
# ---------------------------------------------------------------------------


def _parse_args(argv: Optional[list] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Interactive CLI for chat models served through OpenRouter."
    )
    parser.add_argument("session", nargs="?", help="Session file to continue")
    parser.add_argument("--system", "-s", help="System prompt (overrides the configured default)")
    parser.add_argument(
        "--save-on-exit", "-a", action="store_true", help="Save the session automatically on exit"
    )
    parser.add_argument(
        "--config", "-c", type=Path, default=DEFAULT_CONFIG_PATH, help="Settings file (default: config.json)"
    )
    parser.add_argument("--env", type=Path, help="Override file (default: .env beside the settings file)")
    parser.add_argument(
        "--auto-persist",
        action="store_true",
        help="Keep the current session file updated after every change",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug output")
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    # The SDK and its HTTP stack are chatty at DEBUG.
    for name in ("openai", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING)


def _store_api_key(settings: Settings) -> None:
    env_choice = f"In {settings.env_path}"
    config_choice = f"In {settings.config_path}"
    choice = questionary.select(
        "Where should the key be stored?",
        choices=[env_choice, config_choice, "Don't store it"],
    ).ask()

    if choice == env_choice:
        stored = save_env_value(settings.env_path, ENV_API_KEY, settings.api_key)
    elif choice == config_choice:
        stored = persist_setting(settings, "api", "apiKey", settings.api_key)
    else:
        return
    if stored:
        console.print(f"[API key stored {choice[0].lower()}{choice[1:]}]", highlight=False, markup=False)
    else:
        report_warning("Could not store the API key; it will only be used for this run.")


def connect(settings: Settings) -> OpenRouterClient:
    """Return a client for *settings*, prompting for an API key if none is set."""
    if settings.api_key:
        return OpenRouterClient.from_settings(settings)

    console.print(Ansi.style("No OpenRouter API key is configured.", Ansi.FG_YELLOW))
    try:
        api_key = questionary.password("OpenRouter API key:").ask()
    except (EOFError, KeyboardInterrupt):
        api_key = None
    if not api_key or not api_key.strip():
        raise ConfigError("An OpenRouter API key is required.")

    settings.api_key = api_key.strip()
    client = OpenRouterClient.from_settings(settings)
    if not client.validate_key(settings.model):
        report_warning("The API key could not be verified; requests may fail.")
    _store_api_key(settings)
    return client


def build_session(args: argparse.Namespace, settings: Settings, store: SessionStore) -> Session:
    messages = None
    model = settings.model
    if args.session:
        document = store.load_document(Path(args.session))
        if document is not None:
            messages = document["messages"]
            model = document.get("model") or model
            console.print(
                f"[loaded {len(messages)} message(s) from {args.session}]", highlight=False, markup=False
            )

    session = Session(
        model=model,
        messages=messages,
        system_prompt=args.system or settings.default_system_prompt,
    )
    if args.system:
        session.system_prompt = args.system
    settings.model = session.model
    if messages is not None:
        store.persist_current(session)
    return session


def run_cli(argv: Optional[list] = None) -> None:
    args = _parse_args(argv)
    _configure_logging(args.verbose)

    try:
        settings = load_settings(args.config, args.env)
        client = connect(settings)
    except ConfigError as exc:
        report_error(str(exc))
        sys.exit(1)

    if args.auto_persist:
        settings.auto_persist = True
    store = SessionStore.from_settings(settings)
    store.reset_current()

    session = build_session(args, settings, store)
    ChatCLI(session, settings, client, store, save_on_exit=args.save_on_exit).repl()


if __name__ == "__main__":  # pragma: no cover
    run_cli()
