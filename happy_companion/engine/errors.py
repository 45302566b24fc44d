"""Exception hierarchy for session state and resume handling.

Only failures the caller must act on are raised. Corrupt documents,
unreadable transcripts and failed summary subprocesses are recovered
where they happen and never reach these types.
"""
from __future__ import annotations


class CompanionError(Exception):
    """Base exception for all companion errors."""


class ValidationError(CompanionError):
    """A record does not match its structural schema."""
    def __init__(self, record_type: str, problems: list[str]):
        self.record_type = record_type
        self.problems = list(problems)
        super().__init__(
            f"Invalid {record_type}: {'; '.join(self.problems)}"
        )


class NotFoundError(CompanionError):
    """A requested entity does not exist."""


class ResumeNotFoundError(NotFoundError):
    """An explicit resume target does not match any transcript."""
    def __init__(self, target: str):
        self.target = target
        super().__init__(
            f"Could not find Codex resume transcript for session: {target}"
        )


class InvalidSelectionError(CompanionError):
    """The interactive transcript picker received an unusable answer."""
    def __init__(self, answer: str):
        self.answer = answer
        super().__init__(f"Invalid selection: {answer}")
