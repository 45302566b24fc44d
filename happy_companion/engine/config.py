"""Configuration loaded from environment variables.

All settings have sensible defaults. Override via HAPPY_* env vars
(and CODEX_HOME for the Codex transcript root). A config instance is
passed explicitly into every store and resolver; nothing reads it
from module state.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes"}


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in _TRUTHY


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def _resolve_dir(value: str | Path) -> Path:
    return Path(value).expanduser().absolute()


def _default_happy_home() -> Path:
    return Path.home() / ".happy"


def _default_codex_home() -> Path:
    return Path.home() / ".codex"


@dataclass
class CompanionConfig:
    """Companion process configuration."""

    # Data root for markers and persisted sessions.
    happy_home_dir: Path = field(default_factory=_default_happy_home)
    # Codex home; transcripts live under <codex_home_dir>/sessions.
    codex_home_dir: Path = field(default_factory=_default_codex_home)
    codex_command: str = "codex"

    # Suppress CodexDiff emission while still tracking the latest diff.
    disable_codex_diffs: bool = False

    # Max wall-clock time for `codex exec resume` summary generation.
    # Set to 0 (or a negative value) to wait indefinitely.
    exec_summary_timeout_seconds: float = 120.0
    resume_tail_count: int = 30
    resume_ui_tail_count: int = 8
    resume_picker_limit: int = 20

    log_level: str = "INFO"

    def __post_init__(self) -> None:
        self.happy_home_dir = _resolve_dir(self.happy_home_dir)
        self.codex_home_dir = _resolve_dir(self.codex_home_dir)

    @property
    def sessions_dir(self) -> Path:
        return self.happy_home_dir / "sessions"

    @property
    def daemon_sessions_dir(self) -> Path:
        return self.happy_home_dir / "tmp" / "daemon-sessions"

    @property
    def codex_sessions_dir(self) -> Path:
        return self.codex_home_dir / "sessions"

    @property
    def exec_summary_timeout(self) -> float | None:
        """Timeout for asyncio.wait_for, or None when unbounded."""
        if self.exec_summary_timeout_seconds <= 0:
            return None
        return self.exec_summary_timeout_seconds

    @classmethod
    def from_env(cls) -> CompanionConfig:
        """Load configuration from HAPPY_* / CODEX_HOME environment variables."""
        happy_vars = {
            k: v for k, v in os.environ.items()
            if k.startswith("HAPPY_") or k == "CODEX_HOME"
        }
        if happy_vars:
            logger.info(
                "CompanionConfig.from_env: env overrides: %s",
                ", ".join(f"{k}={v}" for k, v in sorted(happy_vars.items())),
            )
        else:
            logger.debug("CompanionConfig.from_env: no HAPPY_* env vars set, using defaults")

        home = os.getenv("HAPPY_HOME_DIR")
        codex_home = os.getenv("CODEX_HOME")
        config = cls(
            happy_home_dir=home if home else _default_happy_home(),
            codex_home_dir=codex_home if codex_home else _default_codex_home(),
            codex_command=os.getenv("HAPPY_CODEX_COMMAND", cls.codex_command),
            disable_codex_diffs=(
                _env_flag("HAPPY_DISABLE_CODEX_DIFFS")
                or _env_flag("HAPPY_DISABLE_DIFFS")
            ),
            exec_summary_timeout_seconds=_env_float(
                "HAPPY_EXEC_SUMMARY_TIMEOUT", cls.exec_summary_timeout_seconds,
            ),
            log_level=os.getenv("HAPPY_LOG_LEVEL", cls.log_level),
        )
        logger.debug(
            "CompanionConfig.from_env: home=%s codex_home=%s diffs_disabled=%s",
            config.happy_home_dir, config.codex_home_dir,
            config.disable_codex_diffs,
        )
        return config
