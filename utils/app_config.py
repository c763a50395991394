"""Application configuration read from the environment.

`main.py` calls `load_dotenv()` before building the config, so values may
also come from a `.env` file in the working directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class AppConfig:
    """Settings shared by the store, the agents and the orchestrator."""

    openai_api_key: str = ""
    database_dir: str = ""
    teacher_model: str = "gpt-5-mini"
    historian_model: str = "gpt-5"
    architect_model: str = "gpt-5-mini"
    illustrator_model: str = "gpt-image-1"
    speech_model: str = "gpt-4o-mini-tts"
    speech_voice: str = "alloy"
    narration_max_chars: int = 1200
    max_upload_bytes: int = 20 * 1024 * 1024
    discard_stale_writes: bool = True
    narration_enabled: bool = True
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Build the config from environment variables, keeping defaults for unset ones."""
        defaults = cls()
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),
            database_dir=os.getenv("DATABASE_DIR", ""),
            teacher_model=os.getenv("TEACHER_MODEL", defaults.teacher_model),
            historian_model=os.getenv("HISTORIAN_MODEL", defaults.historian_model),
            architect_model=os.getenv("ARCHITECT_MODEL", defaults.architect_model),
            # An explicitly empty ILLUSTRATOR_MODEL switches to placeholder images.
            illustrator_model=os.getenv("ILLUSTRATOR_MODEL", defaults.illustrator_model),
            speech_model=os.getenv("SPEECH_MODEL", defaults.speech_model),
            speech_voice=os.getenv("SPEECH_VOICE", defaults.speech_voice),
            narration_max_chars=_env_int("NARRATION_MAX_CHARS", defaults.narration_max_chars),
            max_upload_bytes=_env_int("MAX_UPLOAD_BYTES", defaults.max_upload_bytes),
            discard_stale_writes=_env_bool("DISCARD_STALE_WRITES", defaults.discard_stale_writes),
            narration_enabled=_env_bool("NARRATION_ENABLED", defaults.narration_enabled),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level).upper(),
        )
