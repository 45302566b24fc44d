"""YAML configuration loader.

Layers an optional YAML file over the environment-derived config.
When no YAML is present, env vars work exactly as before.

Example YAML:
    companion:
      happy_home_dir: ~/.happy
      codex_home_dir: ~/.codex
      codex_command: codex
      disable_codex_diffs: false
      log_level: INFO

    resume:
      exec_summary_timeout_seconds: 120
      tail_count: 30
      ui_tail_count: 8
      picker_limit: 20
"""
from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

import yaml

from .config import CompanionConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "companion.yaml"

_COMPANION_KEYS = {
    "happy_home_dir": str,
    "codex_home_dir": str,
    "codex_command": str,
    "disable_codex_diffs": bool,
    "log_level": str,
}

# YAML key -> CompanionConfig field
_RESUME_KEYS = {
    "exec_summary_timeout_seconds": ("exec_summary_timeout_seconds", float),
    "tail_count": ("resume_tail_count", int),
    "ui_tail_count": ("resume_ui_tail_count", int),
    "picker_limit": ("resume_picker_limit", int),
}


def _coerce(value, kind, key: str):
    if kind is bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in {"1", "true", "yes"}
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid value for '{key}': {value!r}") from None


def load_yaml_config(
    path: str | Path,
    base: CompanionConfig | None = None,
) -> CompanionConfig:
    """Load a YAML config file and overlay it onto *base*.

    *base* defaults to ``CompanionConfig.from_env()``. Unknown keys are
    logged and ignored.
    """
    path = Path(path)
    logger.info(
        "load_yaml_config: attempting to load config from %s (exists=%s)",
        path, path.exists(),
    )
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.error("load_yaml_config: config file not found at %s", path)
        raise
    except yaml.YAMLError as exc:
        logger.error("load_yaml_config: YAML parse error in %s: %s", path, exc)
        raise

    if not isinstance(raw, dict):
        raise ValueError(f"{path}: top level must be a mapping")

    config = base if base is not None else CompanionConfig.from_env()
    overrides: dict = {}

    companion_raw = raw.get("companion") or {}
    for key, value in companion_raw.items():
        kind = _COMPANION_KEYS.get(key)
        if kind is None:
            logger.warning("load_yaml_config: unknown companion key '%s'", key)
            continue
        overrides[key] = _coerce(value, kind, key)

    resume_raw = raw.get("resume") or {}
    for key, value in resume_raw.items():
        target = _RESUME_KEYS.get(key)
        if target is None:
            logger.warning("load_yaml_config: unknown resume key '%s'", key)
            continue
        field_name, kind = target
        overrides[field_name] = _coerce(value, kind, key)

    logger.info(
        "Parsed YAML config %s: overrides %s",
        path.name, ", ".join(sorted(overrides)) if overrides else "(none)",
    )
    return dataclasses.replace(config, **overrides)


def load_default_config() -> CompanionConfig:
    """Return env config, overlaid with ``<home>/companion.yaml`` if present."""
    config = CompanionConfig.from_env()
    candidate = config.happy_home_dir / CONFIG_FILENAME
    if not candidate.is_file():
        logger.debug("load_default_config: no %s at %s", CONFIG_FILENAME, candidate)
        return config
    return load_yaml_config(candidate, base=config)
