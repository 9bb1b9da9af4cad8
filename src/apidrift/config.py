"""Runtime configuration loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from apidrift.errors import ConfigurationError, MissingConfigurationError

DEFAULT_MODEL = "gemini-2.0-flash"
DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TIMEOUT_SECONDS = 60.0
DEFAULT_MAX_OUTPUT_TOKENS = 8192


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def _path_env(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return Path(raw).expanduser()


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str] = None
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS
    cache_dir: Optional[Path] = None
    output_dir: Optional[Path] = None

    @classmethod
    def from_environment(cls) -> "Settings":
        api_key = os.getenv("GEMINI_API_KEY")
        return cls(
            api_key=api_key.strip() if api_key and api_key.strip() else None,
            model=os.getenv("APIDRIFT_MODEL", "").strip() or DEFAULT_MODEL,
            base_url=os.getenv("APIDRIFT_ORACLE_URL", "").strip() or DEFAULT_BASE_URL,
            timeout_seconds=_float_env("APIDRIFT_ORACLE_TIMEOUT", DEFAULT_TIMEOUT_SECONDS),
            max_output_tokens=int(_float_env("APIDRIFT_MAX_OUTPUT_TOKENS", DEFAULT_MAX_OUTPUT_TOKENS)),
            cache_dir=_path_env("APIDRIFT_CACHE_DIR"),
            output_dir=_path_env("APIDRIFT_OUTPUT_DIR"),
        )

    def require_api_key(self) -> str:
        """Only called once an oracle call is actually needed."""
        if not self.api_key:
            raise MissingConfigurationError("Missing configuration for: GEMINI_API_KEY")
        return self.api_key
