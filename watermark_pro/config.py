"""Application configuration read from environment variables."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .i18n import Language

# Defaults used when a variable is unset or unparsable
_DEFAULTS = {
    "ai_model": "gemini-2.5-flash",
    "ai_timeout_ms": 15000,
    "preview_max_size": 1200,
    "preview_debounce_ms": 50,
    "language": Language.EN,
}


@dataclass(frozen=True)
class AppConfig:
    api_key: str = ""
    ai_model: str = _DEFAULTS["ai_model"]
    ai_timeout_ms: int = _DEFAULTS["ai_timeout_ms"]
    preview_max_size: int = _DEFAULTS["preview_max_size"]
    preview_debounce_ms: int = _DEFAULTS["preview_debounce_ms"]
    language: Language = _DEFAULTS["language"]


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    try:
        return int(env[name])
    except (KeyError, ValueError):
        return default


def load_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Build an AppConfig from ``env`` (defaults to ``os.environ``)."""
    env = os.environ if env is None else env

    language = env.get("WATERMARK_LANGUAGE", "")
    if language not in {lang.value for lang in Language}:
        language = _DEFAULTS["language"]

    return AppConfig(
        api_key=env.get("GEMINI_API_KEY") or env.get("API_KEY", ""),
        ai_model=env.get("WATERMARK_AI_MODEL") or _DEFAULTS["ai_model"],
        ai_timeout_ms=_int_env(env, "WATERMARK_AI_TIMEOUT_MS", _DEFAULTS["ai_timeout_ms"]),
        preview_max_size=_int_env(env, "WATERMARK_PREVIEW_MAX", _DEFAULTS["preview_max_size"]),
        preview_debounce_ms=_int_env(env, "WATERMARK_PREVIEW_DEBOUNCE_MS", _DEFAULTS["preview_debounce_ms"]),
        language=Language(language),
    )
