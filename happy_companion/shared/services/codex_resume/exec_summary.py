"""Resume summaries generated by `codex exec resume`.

Codex is run non-interactively against the transcript's own session id
with a read-only sandbox. Its stdout is JSONL; the last completed
``agent_message`` item is taken as the summary, superseding any
earlier partial messages.
"""
from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Iterable

logger = logging.getLogger(__name__)

RESUME_SUMMARY_PROMPT = "\n".join([
    "Write a compaction-style resume of the resumed session.",
    "",
    "Output markdown with these sections:",
    "- Goal",
    "- Current state",
    "- Key decisions",
    "- Files/paths mentioned (if any)",
    "- Open questions / blockers (if any)",
    "- Next steps (prioritized)",
    "",
    "Keep it concise, factual, and actionable. No preamble.",
])

SESSION_NOT_FOUND_MARKER = "Session not found"
_TERMINATE_GRACE_SECONDS = 5.0


def select_last_agent_message(lines: Iterable[str]) -> str | None:
    """Return the text of the last ``item.completed`` agent message.

    Non-JSON lines and other event types are ignored. Blank results
    count as no summary.
    """
    best: str | None = None
    for line in lines:
        line = line.strip()
        if not line:
            continue
        try:
            event = json.loads(line)
        except json.JSONDecodeError:
            continue
        if not isinstance(event, dict) or event.get("type") != "item.completed":
            continue
        item = event.get("item")
        if (
            isinstance(item, dict)
            and item.get("type") == "agent_message"
            and isinstance(item.get("text"), str)
        ):
            best = item["text"]
    if best and best.strip():
        return best.strip()
    return None


class ExecSummaryGenerator:
    """Ask the Codex CLI to summarize a past session.

    Every failure (missing binary, non-zero exit, unknown session,
    timeout) yields None.
    """

    def __init__(
        self,
        command: str = "codex",
        *,
        timeout_seconds: float | None = 120.0,
        prompt: str = RESUME_SUMMARY_PROMPT,
    ) -> None:
        self._command = command
        self._timeout = timeout_seconds if timeout_seconds and timeout_seconds > 0 else None
        self._prompt = prompt

    def build_args(self, session_id: str, cwd: str) -> list[str]:
        return [
            self._command,
            "exec",
            "--json",
            "-s", "read-only",
            "-C", cwd,
            "resume", session_id,
            self._prompt,
        ]

    async def generate(self, session_id: str, cwd: str) -> str | None:
        args = self.build_args(session_id, cwd)
        try:
            # create_subprocess_exec passes args as an array, no shell
            proc = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            logger.debug("'%s' CLI not found; skipping resume summary", self._command)
            return None
        except OSError as exc:
            logger.debug("Failed to spawn codex exec resume: %s", exc)
            return None

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "codex exec resume for %s timed out after %ss; terminating",
                session_id, self._timeout,
            )
            await self._terminate(proc)
            return None
        except asyncio.CancelledError:
            await self._terminate(proc)
            raise
        except Exception as exc:
            logger.debug("codex exec resume failed: %s", exc)
            await self._terminate(proc)
            return None

        out_text = (stdout or b"").decode("utf-8", errors="replace")
        err_text = (stderr or b"").decode("utf-8", errors="replace")

        summary = select_last_agent_message(out_text.split("\n"))
        if summary is not None:
            return summary
        if SESSION_NOT_FOUND_MARKER in err_text:
            logger.debug("Codex does not know session %s", session_id)
        else:
            logger.debug(
                "codex exec resume produced no summary (rc=%s)", proc.returncode,
            )
        return None

    @staticmethod
    async def _terminate(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is not None:
            return
        try:
            proc.terminate()
            try:
                await asyncio.wait_for(proc.wait(), timeout=_TERMINATE_GRACE_SECONDS)
            except asyncio.TimeoutError:
                proc.kill()
                await proc.wait()
        except ProcessLookupError:
            pass
