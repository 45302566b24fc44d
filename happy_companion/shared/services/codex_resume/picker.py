"""Interactive terminal picker for "resume the most recent session"."""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime
from pathlib import Path

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from happy_companion.engine.errors import InvalidSelectionError

from .models import TranscriptFile

DEFAULT_PICKER_LIMIT = 20


def is_interactive() -> bool:
    """True when both stdin and stdout are attached to a terminal."""
    try:
        return sys.stdin.isatty() and sys.stdout.isatty()
    except (AttributeError, ValueError):
        return False


def parse_selection(answer: str, count: int) -> int | None:
    """Map a 1-based answer to an index; empty means start fresh."""
    answer = answer.strip()
    if not answer:
        return None
    try:
        idx = int(answer)
    except ValueError:
        raise InvalidSelectionError(answer) from None
    if idx < 1 or idx > count:
        raise InvalidSelectionError(answer)
    return idx - 1


class TranscriptPicker:
    """List recent transcripts and read a numeric choice from the terminal."""

    def __init__(
        self,
        console: Console | None = None,
        *,
        limit: int = DEFAULT_PICKER_LIMIT,
    ) -> None:
        self._console = console or Console()
        self._limit = max(1, limit)

    def render(self, candidates: list[TranscriptFile]) -> Table:
        table = Table(title="Select a Codex session to resume", show_lines=False)
        table.add_column("#", justify="right", style="bold")
        table.add_column("Transcript")
        table.add_column("Modified", style="dim")
        for idx, entry in enumerate(candidates, start=1):
            when = datetime.fromtimestamp(entry.mtime_ms / 1000).strftime("%Y-%m-%d %H:%M:%S")
            table.add_row(str(idx), entry.path.name, when)
        return table

    def choose(self, candidates: list[TranscriptFile]) -> Path | None:
        """Blocking selection. Returns None to start fresh."""
        shown = candidates[: self._limit]
        if not shown:
            return None
        self._console.print(self.render(shown))
        answer = Prompt.ask(
            "Enter number (or press Enter to start fresh)",
            console=self._console,
            default="",
            show_default=False,
        )
        idx = parse_selection(answer or "", len(shown))
        return shown[idx].path if idx is not None else None

    async def select(self, candidates: list[TranscriptFile]) -> Path | None:
        return await asyncio.to_thread(self.choose, candidates)
