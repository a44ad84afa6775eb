"""Persisting captured child output to files."""

from __future__ import annotations

import os
from pathlib import Path

from rsubprocess.execution.base import ProcessOutcome


def write_outputs(
    outcome: ProcessOutcome,
    stdout_path: Path | None = None,
    stderr_path: Path | None = None,
) -> None:
    """Write captured stdout and stderr to their destinations.

    Each file is truncated, except that stderr is appended after stdout when
    both paths refer to the same file. A missing destination discards that
    stream.

    Args:
        outcome: The finished run.
        stdout_path: Optional destination for standard output.
        stderr_path: Optional destination for standard error.
    """

    if stdout_path is not None:
        Path(stdout_path).write_text(outcome.stdout, encoding="utf-8")

    if stderr_path is not None:
        append = stdout_path is not None and _same_file(stdout_path, stderr_path)
        with open(stderr_path, "a" if append else "w", encoding="utf-8") as handle:
            handle.write(outcome.stderr)


def _same_file(first: Path, second: Path) -> bool:
    return os.path.realpath(first) == os.path.realpath(second)
