"""Enums shared by the session stores and the resume resolver."""
from __future__ import annotations

from enum import Enum


class Flavor(str, Enum):
    """Which external agent implementation a session belongs to."""
    CLAUDE = "claude"
    CODEX = "codex"
    GEMINI = "gemini"


class EncryptionVariant(str, Enum):
    """Opaque tag describing how the stored key material is used."""
    LEGACY = "legacy"
    DATA_KEY = "dataKey"


# Codex resume requires a build with MCP resume support.
RESUMABLE_AGENTS: tuple[Flavor, ...] = (Flavor.CLAUDE, Flavor.CODEX)


def can_agent_resume(flavor: Flavor | str | None) -> bool:
    """Return True if sessions of this flavor can be resumed.

    A missing flavor is treated as claude.
    """
    if flavor is None:
        return Flavor.CLAUDE in RESUMABLE_AGENTS
    try:
        return Flavor(flavor) in RESUMABLE_AGENTS
    except ValueError:
        return False
