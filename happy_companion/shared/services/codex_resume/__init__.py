"""Resume context reconstruction from Codex rollout transcripts."""

from .exec_summary import ExecSummaryGenerator, select_last_agent_message
from .models import (
    RESUME_MOST_RECENT,
    ResumeContext,
    TranscriptFile,
    TranscriptMessage,
    TranscriptSessionMeta,
)
from .picker import TranscriptPicker
from .resolver import CodexResumeResolver

__all__ = [
    "RESUME_MOST_RECENT",
    "CodexResumeResolver",
    "ExecSummaryGenerator",
    "ResumeContext",
    "TranscriptFile",
    "TranscriptMessage",
    "TranscriptPicker",
    "TranscriptSessionMeta",
    "select_last_agent_message",
]
