"""Errors raised when a supervised child process does not succeed."""

from __future__ import annotations

from rsubprocess.execution.base import ProcessOutcome


class ExecutionError(RuntimeError):
    """Base error for a failed child run.

    Carries the full captured output so callers can diagnose the failure
    without running the child again.
    """

    def __init__(self, message: str, outcome: ProcessOutcome) -> None:
        super().__init__(message)
        self.outcome = outcome

    @property
    def stdout(self) -> str:
        return self.outcome.stdout

    @property
    def stderr(self) -> str:
        return self.outcome.stderr

    @property
    def status(self) -> int:
        return self.outcome.status


class CommandTimeoutError(ExecutionError):
    """Raised when the child did not finish within its timeout."""


class NonzeroStatusError(ExecutionError):
    """Raised when the child exited with a nonzero status and that counts as failure."""
