"""
Configuration and environment loading for the chess coach.

- Loads .env (python-dotenv) and settings.yml (YAML) from repo root if present.
- YAML keys take precedence over environment variables; both fall back to defaults.
- Exposes SETTINGS with the credential, endpoint, model and orchestration knobs.
"""
from dataclasses import dataclass
import logging
import os
from typing import Any, Callable

import yaml
from dotenv import load_dotenv

load_dotenv()

log = logging.getLogger("config")


def _repo_root() -> str:
    # this file: src/llmchess_coach/config.py → repo root is two levels up
    return os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))


def _load_yaml(path: str) -> dict:
    if not os.path.isfile(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError):
        log.exception("Failed to read %s; using environment only", path)
        return {}
    return data if isinstance(data, dict) else {}


_cfg = _load_yaml(os.path.join(_repo_root(), "settings.yml"))


def _get(name: str, default: Any, cast: Callable[[Any], Any] | None = None) -> Any:
    if name in _cfg:
        val = _cfg[name]
        return cast(val) if cast else val
    env = os.environ.get(name)
    if env is not None:
        return cast(env) if cast else env
    return default


def _flag(val: Any) -> bool:
    if isinstance(val, bool):
        return val
    return str(val).strip().lower() not in ("0", "false", "no", "off", "")


@dataclass(frozen=True)
class Settings:
    # Auth / endpoint (OpenAI-compatible wire format)
    llm_api_key: str
    api_base: str
    model: str

    # Orchestration knobs
    bot_move_delay_s: float
    advise_on_start: bool
    log_level: str


SETTINGS = Settings(
    llm_api_key=_get("LLMCHESS_COACH_API_KEY", _get("OPENAI_API_KEY", _get("API_KEY", ""))),
    api_base=_get("LLMCHESS_COACH_BASE_URL", "https://api.openai.com/v1"),
    model=_get("LLMCHESS_COACH_MODEL", "gpt-4o"),
    bot_move_delay_s=float(_get("LLMCHESS_COACH_BOT_DELAY_S", 0.5, cast=float)),
    advise_on_start=bool(_get("LLMCHESS_COACH_ADVISE_ON_START", True, cast=_flag)),
    log_level=str(_get("LLMCHESS_COACH_LOG_LEVEL", "INFO")).upper(),
)
