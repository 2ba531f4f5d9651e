"""Settings loading: a JSON base file merged with env-style overrides."""

from __future__ import annotations

import json
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import dotenv_values, set_key

from ..utils.ansi import report_warning

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.json")
TEMPLATE_NAME = "config.example.json"
ENV_FILENAME = ".env"

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_ENDPOINT = "https://openrouter.ai/api/v1"
CURRENT_SESSION_FILENAME = "current_session.json"

# Override keys recognised in the env file and the process environment,
# mapped to the Settings attribute they replace.
ENV_API_KEY = "OPENROUTER_API_KEY"
ENV_MODEL = "OPENROUTER_MODEL"
ENV_TEMPERATURE = "OPENROUTER_TEMPERATURE"
ENV_MAX_TOKENS = "OPENROUTER_MAX_TOKENS"

ENV_OVERRIDES = {
    ENV_API_KEY: "api_key",
    ENV_MODEL: "model",
    ENV_TEMPERATURE: "temperature",
    ENV_MAX_TOKENS: "max_tokens",
}


class ConfigError(Exception):
    """Raised when the settings file is missing, unparsable or invalid."""


@dataclass
class Settings:
    endpoint: str
    api_key: str
    model: str
    temperature: float
    max_tokens: int
    save_directory: Path
    default_filename: str = "chat_session"
    default_system_prompt: str = DEFAULT_SYSTEM_PROMPT
    auto_persist: bool = False
    current_session_filename: str = CURRENT_SESSION_FILENAME
    config_path: Optional[Path] = field(default=None, compare=False)
    env_path: Optional[Path] = field(default=None, compare=False)

    @property
    def masked_api_key(self) -> str:
        if not self.api_key:
            return "(not set)"
        if len(self.api_key) <= 8:
            return "*" * len(self.api_key)
        return f"{self.api_key[:4]}…{self.api_key[-4:]}"


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------


def _require_str(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{name}' must be a non-empty string")
    return value.strip()


def _to_float(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"'{name}' must be a number, got {value!r}")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{name}' must be a number, got {value!r}") from None


def _to_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"'{name}' must be a positive integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{name}' must be a positive integer, got {value!r}") from None
    if number <= 0:
        raise ConfigError(f"'{name}' must be a positive integer, got {value!r}")
    return number


def _to_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"1", "true", "yes", "on"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"'{name}' must be true or false, got {value!r}")


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _read_base_file(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        template = config_path.parent / TEMPLATE_NAME
        if not template.exists():
            raise ConfigError(
                f"Settings file '{config_path}' not found and no '{TEMPLATE_NAME}' "
                "template is available to start from."
            )
        try:
            shutil.copyfile(template, config_path)
        except OSError as exc:
            raise ConfigError(f"Cannot create '{config_path}' from '{template}': {exc}") from exc
        report_warning(f"Created '{config_path}' from '{template}'; review it before chatting.")

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Cannot read settings file '{config_path}': {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Settings file '{config_path}' is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Settings file '{config_path}' must contain a JSON object")
    for section in ("api", "chat"):
        if not isinstance(data.get(section, {}), dict):
            raise ConfigError(f"'{section}' in '{config_path}' must be an object")
    return data


def read_overrides(
    env_path: Optional[Path], environ: Optional[Mapping[str, str]] = None
) -> Dict[str, str]:
    """Collect override values: the env file first, the process environment on top.

    Empty values are dropped so a blank ``KEY=`` line never clears a setting.
    """
    environ = os.environ if environ is None else environ
    values: Dict[str, str] = {}
    if env_path is not None and env_path.exists():
        for key, value in dotenv_values(env_path).items():
            if key in ENV_OVERRIDES and value:
                values[key] = value
    for key in ENV_OVERRIDES:
        if environ.get(key):
            values[key] = environ[key]
    return values


def load_settings(
    config_path: Path = DEFAULT_CONFIG_PATH,
    env_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build a validated :class:`Settings` from *config_path* plus overrides.

    *env_path* defaults to ``.env`` beside the settings file. Raises
    :class:`ConfigError` for any missing, unparsable or invalid value.
    """
    config_path = Path(config_path)
    if env_path is None:
        env_path = config_path.parent / ENV_FILENAME

    data = _read_base_file(config_path)
    api = data.get("api", {})
    chat = data.get("chat", {})

    raw: Dict[str, Any] = {
        "api_key": api.get("apiKey") or "",
        "model": api.get("model"),
        "temperature": api.get("temperature", 0.7),
        "max_tokens": api.get("max_tokens", 1024),
    }
    overrides = read_overrides(env_path, environ)
    for key, value in overrides.items():
        raw[ENV_OVERRIDES[key]] = value
    if overrides:
        logger.debug("settings overridden from environment: %s", sorted(overrides))

    save_directory = Path(
        os.path.expanduser(_require_str(chat.get("save_directory", "sessions"), "chat.save_directory"))
    )
    if not save_directory.is_absolute():
        save_directory = config_path.parent / save_directory

    return Settings(
        endpoint=_require_str(api.get("endpoint", DEFAULT_ENDPOINT), "api.endpoint").rstrip("/"),
        api_key=str(raw["api_key"]).strip(),
        model=_require_str(raw["model"], "api.model"),
        temperature=_to_float(raw["temperature"], "api.temperature"),
        max_tokens=_to_int(raw["max_tokens"], "api.max_tokens"),
        save_directory=save_directory,
        default_filename=_require_str(
            chat.get("default_filename", "chat_session"), "chat.default_filename"
        ),
        default_system_prompt=_require_str(
            chat.get("default_system_prompt", DEFAULT_SYSTEM_PROMPT),
            "chat.default_system_prompt",
        ),
        auto_persist=_to_bool(chat.get("auto_persist", False), "chat.auto_persist"),
        current_session_filename=_require_str(
            chat.get("current_session_file", CURRENT_SESSION_FILENAME),
            "chat.current_session_file",
        ),
        config_path=config_path,
        env_path=env_path,
    )


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


def persist_setting(settings: Settings, section: str, key: str, value: Any) -> bool:
    """Rewrite ``section.key`` in the base settings file.

    Returns False (after logging) when the file cannot be read or written; the
    caller reports the failure to the user.
    """
    if settings.config_path is None:
        return False
    path = settings.config_path
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        data.setdefault(section, {})[key] = value
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
        tmp_path.replace(path)
    except (OSError, ValueError, AttributeError) as exc:
        logger.debug("could not update %s: %s", path, exc)
        return False
    logger.debug("updated %s.%s in %s", section, key, path)
    return True


def save_env_value(env_path: Path, key: str, value: str) -> bool:
    """Store ``KEY=VALUE`` in the env-style file, creating it if needed."""
    try:
        env_path.touch(exist_ok=True)
        set_key(str(env_path), key, value)
    except OSError as exc:
        logger.debug("could not update %s: %s", env_path, exc)
        return False
    return True
