"""Rebuild resume context for Codex sessions from their rollout transcripts.

Resolution of *which* transcript to use surfaces errors to the caller
(an explicit target that does not exist, a bad menu answer). Once a
transcript is chosen, any failure degrades to an empty context so the
agent starts fresh instead of failing to start.
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path

from happy_companion.engine.config import CompanionConfig
from happy_companion.engine.errors import ResumeNotFoundError

from .exec_summary import ExecSummaryGenerator
from .models import RESUME_MOST_RECENT, ResumeContext, ResumeRequest
from .picker import TranscriptPicker, is_interactive
from .transcripts import (
    find_transcript_for_session,
    list_transcript_files,
    parse_transcript,
    read_session_meta,
    render_transcript_tail,
)

logger = logging.getLogger(__name__)

SUMMARY_HEADING = "## Resume summary (from codex exec resume)"


class CodexResumeResolver:
    """Resolve a resume request into a ``ResumeContext``."""

    def __init__(
        self,
        config: CompanionConfig,
        *,
        summary_generator: ExecSummaryGenerator | None = None,
        picker: TranscriptPicker | None = None,
        interactive: bool | None = None,
    ) -> None:
        self._config = config
        self._summary_generator = summary_generator or ExecSummaryGenerator(
            config.codex_command,
            timeout_seconds=config.exec_summary_timeout,
        )
        self._picker = picker or TranscriptPicker(limit=config.resume_picker_limit)
        self._interactive = interactive

    @property
    def transcripts_root(self) -> Path:
        return self._config.codex_sessions_dir

    def _is_interactive(self) -> bool:
        if self._interactive is not None:
            return self._interactive
        return is_interactive()

    async def resolve_transcript(self, resume: ResumeRequest) -> Path | None:
        """Pick the transcript for *resume*, or None to start fresh.

        Raises ``ResumeNotFoundError`` for an unknown session id and
        ``InvalidSelectionError`` for a bad interactive answer.
        """
        if resume is None or resume is False or resume == "":
            return None

        root = self.transcripts_root
        if isinstance(resume, (str, os.PathLike)):
            target = os.fspath(resume)
            candidate = Path(target)
            if await asyncio.to_thread(candidate.is_file):
                return candidate
            found = await asyncio.to_thread(find_transcript_for_session, root, target)
            if found is None:
                raise ResumeNotFoundError(target)
            return found

        if resume is not True and resume is not RESUME_MOST_RECENT:
            raise TypeError(f"Unsupported resume request: {resume!r}")

        candidates = await asyncio.to_thread(list_transcript_files, root)
        if not candidates:
            logger.debug("No Codex transcripts under %s; starting fresh", root)
            return None
        if not self._is_interactive():
            return candidates[0].path
        return await self._picker.select(candidates)

    async def resume(self, resume: ResumeRequest) -> ResumeContext:
        """Build the full resume context for *resume*."""
        transcript = await self.resolve_transcript(resume)
        if transcript is None:
            return ResumeContext.empty()

        try:
            return await self._build_context(transcript)
        except Exception as exc:
            logger.debug("Failed to build resume context from %s: %s", transcript, exc, exc_info=True)
            return ResumeContext.empty()

    async def _build_context(self, transcript: Path) -> ResumeContext:
        head_meta = await asyncio.to_thread(read_session_meta, transcript)
        cwd = head_meta.cwd or os.getcwd()

        exec_summary = None
        if head_meta.session_id:
            exec_summary = await self._summary_generator.generate(head_meta.session_id, cwd)

        meta, messages = await asyncio.to_thread(parse_transcript, transcript)
        transcript_tail = render_transcript_tail(meta, messages, self._config.resume_tail_count)
        ui_tail_count = self._config.resume_ui_tail_count
        transcript_tail_for_ui = render_transcript_tail(meta, messages, ui_tail_count)

        summary_block = f"{SUMMARY_HEADING}\n\n{exec_summary}" if exec_summary else None

        resume_context = "\n\n".join(part for part in (
            summary_block,
            f"## Recent messages (from transcript)\n\n{transcript_tail}",
        ) if part)

        resume_context_for_ui = "\n".join(part for part in (
            "**Resume context injected**",
            f"- Transcript: {transcript}",
            summary_block,
            f"## Recent messages (from transcript; last {ui_tail_count})\n\n{transcript_tail_for_ui}",
        ) if part)

        logger.debug(
            "Loaded resume context: transcript=%s has_exec_summary=%s messages=%d",
            transcript, bool(exec_summary), len(messages),
        )
        return ResumeContext(
            resume_transcript_file=str(transcript),
            resume_context=resume_context,
            resume_context_for_ui=resume_context_for_ui,
            resume_exec_summary=exec_summary,
        )
