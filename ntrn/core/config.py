"""Per-project conversion settings (``ntrn.config.json``).

The file is optional. Any keys it provides are merged over the defaults, one
section at a time, so a project can override a single value without restating
the rest. Keys use camelCase on disk, matching the JavaScript tooling that
usually sits beside it.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from ntrn.analysis.filters import matches_any

log = structlog.get_logger("ntrn.config")

CONFIG_FILENAME = "ntrn.config.json"


class _Section(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AISettings(_Section):
    temperature: float = 0.1
    max_tokens: int = 8192
    retry_attempts: int = Field(default=3, ge=1)
    timeout: float = 60.0


class ConversionSettings(_Section):
    generate_navigation: bool = True
    auto_fix: bool = True
    runtime_fix: bool = True
    copy_assets: bool = True


class StylingSettings(_Section):
    framework: Literal["nativewind", "stylesheet", "styled-components"] = "nativewind"


class FileSettings(_Section):
    include_patterns: list[str] = Field(
        default_factory=lambda: ["**/*.tsx", "**/*.ts", "**/*.jsx", "**/*.js"]
    )
    exclude_patterns: list[str] = Field(
        default_factory=lambda: ["*.test.*", "*.spec.*", "__tests__/**", "node_modules/**"]
    )
    backup_originals: bool = True

    def selects(self, path: str) -> bool:
        """True when *path* matches an include pattern and no exclude pattern."""
        return matches_any(path, self.include_patterns) and not matches_any(
            path, self.exclude_patterns
        )


class QualitySettings(_Section):
    enabled: bool = True
    max_iterations: int = Field(default=1, ge=0)


class ConversionConfig(_Section):
    ai: AISettings = Field(default_factory=AISettings)
    conversion: ConversionSettings = Field(default_factory=ConversionSettings)
    styling: StylingSettings = Field(default_factory=StylingSettings)
    files: FileSettings = Field(default_factory=FileSettings)
    quality_improvement: QualitySettings = Field(default_factory=QualitySettings)


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_conversion_config(project_path: str | Path) -> ConversionConfig:
    """Load ``ntrn.config.json`` from *project_path*, falling back to defaults.

    A missing file yields the defaults silently. An unreadable, malformed or
    invalid file yields the defaults with a warning.
    """
    path = Path(project_path) / CONFIG_FILENAME
    if not path.is_file():
        return ConversionConfig()

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        log.warning("config.load_failed", path=str(path), error=str(exc))
        return ConversionConfig()
    if not isinstance(raw, dict):
        log.warning("config.load_failed", path=str(path), error="top level is not an object")
        return ConversionConfig()

    defaults = ConversionConfig().model_dump(by_alias=True)
    try:
        return ConversionConfig.model_validate(_merge(defaults, raw))
    except ValidationError as exc:
        log.warning("config.invalid", path=str(path), error=str(exc))
        return ConversionConfig()
