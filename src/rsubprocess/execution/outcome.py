"""Classification of a finished run into success, timeout or failure."""

from __future__ import annotations

from rsubprocess.execution.base import ProcessOutcome
from rsubprocess.execution.errors import CommandTimeoutError, NonzeroStatusError


def translate_outcome(outcome: ProcessOutcome, fail_on_status: bool) -> ProcessOutcome:
    """Return the outcome of a successful run or raise the matching error.

    A timeout always raises. A nonzero status raises only with
    ``fail_on_status``; otherwise the caller is expected to check ``status``.

    Raises:
        CommandTimeoutError: If the child was killed at its timeout.
        NonzeroStatusError: If the child failed and ``fail_on_status`` is set.
    """

    if outcome.timed_out:
        raise CommandTimeoutError("System command timeout", outcome)
    if outcome.status != 0 and fail_on_status:
        raise NonzeroStatusError(
            f"System command {outcome.command[0]!r} failed with status {outcome.status}",
            outcome,
        )
    return outcome
