"""Provider selection (``ai-config.json``) and API-key (``.env``) persistence.

Both files live in the ntrn home directory, ``~/.ntrn`` unless ``NTRN_HOME``
points elsewhere. The JSON file is read once on start and rewritten on every
change; the env file holds one ``KEY=value`` line per provider key.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path

import structlog
from dotenv import dotenv_values, load_dotenv, set_key
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

log = structlog.get_logger("ntrn.providers")

AI_CONFIG_FILENAME = "ai-config.json"
ENV_FILENAME = ".env"
MIN_API_KEY_LENGTH = 10


def ntrn_home() -> Path:
    return Path(os.environ.get("NTRN_HOME") or Path.home() / ".ntrn")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class FeatureFlags(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    smart_analysis: bool = True
    code_fixing: bool = True
    contextual_conversion: bool = True
    quality_validation: bool = True


class AIConfig(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    selected_provider: str | None = None
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    created: str = Field(default_factory=_now_iso)


def save_ai_config(config: AIConfig, path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = config.model_dump(by_alias=True)
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def load_ai_config(path: str | Path) -> AIConfig:
    """Read the provider-selection file.

    Never raises: a missing, malformed or schema-invalid file is replaced by
    the default configuration, which is written back to *path* when possible.
    """
    path = Path(path)
    if path.is_file():
        try:
            return AIConfig.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, ValidationError) as exc:
            log.warning("ai_config.load_failed", path=str(path), error=str(exc))

    config = AIConfig()
    try:
        save_ai_config(config, path)
    except OSError as exc:
        log.warning("ai_config.save_failed", path=str(path), error=str(exc))
    return config


def load_env_file(path: str | Path) -> dict[str, str]:
    """Load ``KEY=value`` lines into ``os.environ`` without overriding set values."""
    path = Path(path)
    if not path.is_file():
        return {}
    load_dotenv(path, override=False)
    return {k: v for k, v in dotenv_values(path).items() if v is not None}


def save_api_key(path: str | Path, key_name: str, api_key: str) -> None:
    """Update or append ``key_name=api_key`` in the env file at *path*.

    The key is also exported into the current process environment.
    """
    api_key = api_key.strip()
    if len(api_key) < MIN_API_KEY_LENGTH:
        raise ValueError(f"API key for {key_name} must be at least {MIN_API_KEY_LENGTH} characters")

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch(exist_ok=True)
    set_key(str(path), key_name, api_key, quote_mode="never")
    os.environ[key_name] = api_key
    log.info("api_key.saved", key_name=key_name, path=str(path))


def is_usable_key(value: str | None) -> bool:
    return bool(value) and len(value.strip()) > MIN_API_KEY_LENGTH
