from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping

from .diffing import DEFAULT_LOOKAHEAD
from .hover import DEFAULT_AFFORDANCE_OFFSET_X, DEFAULT_CLEAR_DELAY

DEFAULT_API_URL = "http://127.0.0.1:8080"
DEFAULT_MODEL = "kazllm"
TRANSLATION_MODELS = ("kazllm", "claude", "chatgpt")


@dataclass(slots=True)
class ViewerConfig:
    api_url: str = DEFAULT_API_URL
    token: str | None = None
    model: str = DEFAULT_MODEL
    timeout: float = 30.0
    clear_delay: float = DEFAULT_CLEAR_DELAY
    affordance_offset_x: float = DEFAULT_AFFORDANCE_OFFSET_X
    diff_lookahead: int = DEFAULT_LOOKAHEAD
    source_language: str = "English"
    target_language: str = "Kazakh"

    def with_overrides(self, **changes: object) -> "ViewerConfig":
        cleaned = {key: value for key, value in changes.items() if value is not None}
        return replace(self, **cleaned)


def _env_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        parsed = float(raw)
    except ValueError:
        return default
    return parsed if parsed >= 0 else default


def load_config(env: Mapping[str, str] | None = None) -> ViewerConfig:
    """Build a config from ``TANDEM_*`` environment variables, ignoring malformed values."""
    if env is None:
        env = os.environ
    config = ViewerConfig()
    api_url = (env.get("TANDEM_API_URL") or "").strip()
    if api_url:
        config.api_url = api_url.rstrip("/")
    token = (env.get("TANDEM_TOKEN") or "").strip()
    if token:
        config.token = token
    model = (env.get("TANDEM_MODEL") or "").strip()
    if model:
        config.model = model
    config.timeout = _env_float(env, "TANDEM_TIMEOUT", config.timeout)
    config.clear_delay = _env_float(env, "TANDEM_CLEAR_DELAY", config.clear_delay)
    return config


__all__ = [
    "DEFAULT_API_URL",
    "DEFAULT_MODEL",
    "TRANSLATION_MODELS",
    "ViewerConfig",
    "load_config",
]
