"""tom configuration: Pydantic BaseSettings with env var support."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)

# camelCase keys accepted in the "tom" block of settings.json.
_SETTINGS_KEYS: dict[str, str] = {
    "enabled": "enabled",
    "consultThreshold": "consult_threshold",
    "preferenceDecayDays": "preference_decay_days",
    "maxSessionsRetained": "max_sessions_retained",
}
_MODEL_KEYS: dict[str, str] = {
    "memoryUpdate": "memory_update_model",
    "consultation": "consultation_model",
}


def _default_settings_path() -> Path:
    return Path.home() / ".claude" / "settings.json"


class TomConfig(BaseSettings):
    """Central configuration for tom.

    All fields can be overridden via environment variables prefixed with TOM_.
    Example: TOM_PREFERENCE_DECAY_DAYS=14
    """

    model_config = {
        "env_prefix": "TOM_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    enabled: bool = False
    consult_threshold: Literal["low", "medium", "high"] = "medium"

    # Model routing
    memory_update_model: str = "haiku"
    consultation_model: str = "sonnet"

    # Preference lifecycle
    preference_decay_days: float = Field(default=30, gt=0)
    max_sessions_retained: int = Field(default=100, ge=1)

    # Retrieval
    search_k: int = Field(default=3, ge=1)
    max_memory_operations: int = Field(default=3, ge=0)

    # Storage
    global_dir: Path = Field(default_factory=lambda: Path.home() / ".claude" / "tom")
    project_dir: Path = Field(default_factory=lambda: Path.cwd() / ".claude" / "tom")
    settings_path: Path = Field(default_factory=_default_settings_path)


def settings_to_kwargs(block: dict[str, Any]) -> dict[str, Any]:
    """Translate a camelCase ``tom`` settings block into TomConfig kwargs.

    Raises:
        ValueError: If the block contains keys tom does not know.
    """
    kwargs: dict[str, Any] = {}
    for key, value in block.items():
        if key == "models":
            if not isinstance(value, dict):
                raise ValueError("'models' must be an object")
            for model_key, model_value in value.items():
                if model_key not in _MODEL_KEYS:
                    raise ValueError(f"Unknown models key: {model_key}")
                kwargs[_MODEL_KEYS[model_key]] = model_value
        elif key in _SETTINGS_KEYS:
            kwargs[_SETTINGS_KEYS[key]] = value
        else:
            raise ValueError(f"Unknown tom setting: {key}")
    return kwargs


def load_config(settings_path: Path | None = None, **overrides: Any) -> TomConfig:
    """Load TomConfig from the ``tom`` key of the agent's settings.json.

    The file is *settings_path* if given, else ``TOM_SETTINGS_PATH``, else
    ``~/.claude/settings.json``. Values from the settings file take precedence over TOM_ environment
    variables; explicit *overrides* take precedence over both. A missing
    file, a missing ``tom`` key or an invalid block all fall back to the
    defaults.
    """
    path = settings_path or TomConfig().settings_path
    kwargs: dict[str, Any] = {}

    try:
        settings = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        settings = {}
    except (OSError, ValueError) as e:
        logger.warning("Could not read settings %s: %s", path, e)
        settings = {}

    block = settings.get("tom") if isinstance(settings, dict) else None
    if isinstance(block, dict):
        try:
            kwargs = settings_to_kwargs(block)
            TomConfig(**kwargs)
        except (ValueError, ValidationError) as e:
            logger.warning("Invalid tom settings in %s, using defaults: %s", path, e)
            kwargs = {}

    return TomConfig(settings_path=path, **{**kwargs, **overrides})
