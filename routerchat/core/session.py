"""Session state and its JSON persistence."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..utils.ansi import report_error
from .settings import DEFAULT_SYSTEM_PROMPT, Settings

logger = logging.getLogger(__name__)

Message = Dict[str, Any]


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


class Session:
    """An ordered conversation plus the model it is held with.

    The first message is always the system prompt; it is synthesised from
    *system_prompt* when *messages* is empty or does not start with one.
    """

    def __init__(
        self,
        model: str,
        messages: Optional[List[Message]] = None,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        timestamp: Optional[str] = None,
    ) -> None:
        self.model = model
        self.messages: List[Message] = messages if messages is not None else []
        self.timestamp = timestamp or _now()
        # Image URL queued for the next outgoing user message; never saved.
        self.pending_image: Optional[str] = None

        if not self.messages or self.messages[0].get("role") != "system":
            self.messages.insert(0, {"role": "system", "content": system_prompt})

    @property
    def system_prompt(self) -> str:
        return self.messages[0].get("content", "")

    @system_prompt.setter
    def system_prompt(self, text: str) -> None:
        self.messages[0]["content"] = text

    def add_user_message(self, content: str) -> None:
        self.messages.append({"role": "user", "content": content})

    def add_reply(self, message: Message) -> None:
        """Append the assistant message exactly as the API returned it."""
        self.messages.append(message)

    def rollback_last_user_message(self) -> None:
        """Drop the trailing user message left behind by a failed turn."""
        if len(self.messages) > 1 and self.messages[-1].get("role") == "user":
            self.messages.pop()

    def clear(self) -> None:
        system = self.messages[0]
        self.messages[:] = [system]
        self.pending_image = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": _now(),
            "model": self.model,
            "messages": self.messages,
        }


class SessionStore:
    """Reads and writes session documents under a save directory."""

    FILENAME_SUFFIX = ".json"

    def __init__(
        self,
        save_directory: Path,
        default_filename: str = "chat_session",
        current_filename: str = "current_session.json",
        auto_persist: bool = False,
    ) -> None:
        self.save_directory = Path(save_directory)
        self.default_filename = default_filename
        self.current_filename = current_filename
        self.auto_persist = auto_persist

    @classmethod
    def from_settings(cls, settings: Settings) -> "SessionStore":
        return cls(
            save_directory=settings.save_directory,
            default_filename=settings.default_filename,
            current_filename=settings.current_session_filename,
            auto_persist=settings.auto_persist,
        )

    @property
    def current_path(self) -> Path:
        return self.save_directory / self.current_filename

    def default_path(self) -> Path:
        stem = self.default_filename
        if stem.endswith(self.FILENAME_SUFFIX):
            stem = stem[: -len(self.FILENAME_SUFFIX)]
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        return self.save_directory / f"{stem}_{stamp}{self.FILENAME_SUFFIX}"

    def _write(self, session: Session, path: Path) -> None:
        document = session.to_dict()
        text = json.dumps(document, ensure_ascii=False, indent=2)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(path.name + ".tmp")
        tmp_path.write_text(text, encoding="utf-8")
        tmp_path.replace(path)
        session.timestamp = document["timestamp"]
        logger.debug("wrote %d messages to %s", len(session.messages), path)

    def save(self, session: Session, path: Optional[Path] = None) -> Optional[Path]:
        """Write *session* to *path* (or a fresh timestamped file).

        Returns the path written, or None after reporting the failure.
        """
        target = Path(path).expanduser() if path else self.default_path()
        try:
            self._write(session, target)
        except (OSError, TypeError, ValueError) as exc:
            report_error(f"Could not save session to '{target}': {exc}")
            return None
        return target

    def load_document(self, path: Path) -> Optional[Dict[str, Any]]:
        """Return the whole session document, or None after reporting why not."""
        path = Path(path).expanduser()
        if not path.exists():
            report_error(f"Session file '{path}' does not exist.")
            return None
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            report_error(f"Could not read session file '{path}': {exc}")
            return None
        except json.JSONDecodeError as exc:
            report_error(f"Session file '{path}' is not valid JSON: {exc}")
            return None
        if not isinstance(document, dict) or not isinstance(document.get("messages"), list):
            report_error(f"Session file '{path}' has no message list.")
            return None
        for idx, message in enumerate(document["messages"]):
            if not isinstance(message, dict) or not isinstance(message.get("role"), str):
                report_error(f"Session file '{path}': message {idx} has no role.")
                return None
        if "model" in document and not isinstance(document["model"], str):
            report_error(f"Session file '{path}': 'model' must be a string.")
            return None
        return document

    def load(self, path: Path) -> Optional[List[Message]]:
        document = self.load_document(path)
        if document is None:
            return None
        return document["messages"]

    # ---------------- Current-session file ---------------

    def reset_current(self) -> None:
        """Remove the current-session file left over from a previous run."""
        if not self.auto_persist:
            return
        try:
            self.current_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            report_error(f"Could not remove '{self.current_path}': {exc}")

    def persist_current(self, session: Session) -> None:
        if not self.auto_persist:
            return
        try:
            self._write(session, self.current_path)
        except (OSError, TypeError, ValueError) as exc:
            report_error(f"Could not update '{self.current_path}': {exc}")
