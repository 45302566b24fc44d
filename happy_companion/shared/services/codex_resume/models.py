"""Data types for Codex transcript resume."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal


class _ResumeMostRecent:
    """Sentinel for "resume the most recent transcript"."""

    _instance: _ResumeMostRecent | None = None

    def __new__(cls) -> _ResumeMostRecent:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "RESUME_MOST_RECENT"

    def __bool__(self) -> bool:
        return True


RESUME_MOST_RECENT = _ResumeMostRecent()

# None: no resume; RESUME_MOST_RECENT / True: most recent; str: path or session id.
ResumeRequest = Any


@dataclass(frozen=True)
class TranscriptFile:
    """A Codex rollout log discovered on disk."""

    path: Path
    mtime_ms: float


@dataclass(frozen=True)
class TranscriptMessage:
    role: Literal["user", "assistant"]
    text: str


@dataclass
class TranscriptSessionMeta:
    """Fields recovered from a transcript's ``session_meta`` record."""

    session_id: str | None = None
    cwd: str | None = None
    git_branch: str | None = None
    git_commit: str | None = None
    model_provider: str | None = None

    def header(self) -> str:
        parts: list[str] = []
        if self.cwd:
            parts.append(f"cwd: {self.cwd}")
        if self.git_branch:
            parts.append(f"git.branch: {self.git_branch}")
        if self.git_commit:
            parts.append(f"git.commit: {self.git_commit}")
        if self.model_provider:
            parts.append(f"provider: {self.model_provider}")
        return " | ".join(parts) if parts else "previous session"


@dataclass
class ResumeContext:
    """Reconstructed resume material handed to the session launcher."""

    resume_transcript_file: str | None = None
    resume_context: str | None = None
    resume_context_for_ui: str | None = None
    resume_exec_summary: str | None = None

    @classmethod
    def empty(cls) -> ResumeContext:
        return cls()

    @property
    def is_empty(self) -> bool:
        return self.resume_transcript_file is None

    def to_dict(self) -> dict[str, str | None]:
        return {
            "resumeTranscriptFile": self.resume_transcript_file,
            "resumeContext": self.resume_context,
            "resumeContextForUi": self.resume_context_for_ui,
            "resumeExecSummary": self.resume_exec_summary,
        }
