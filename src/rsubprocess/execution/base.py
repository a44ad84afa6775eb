"""Request and outcome types for supervised child R processes."""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Final

TIMEOUT_STATUS: Final[int] = -1000
"""Status recorded when the child was killed for exceeding its timeout."""

LineCallback = Callable[[str], None]
BlockCallback = Callable[[str], None]
RepositorySetting = str | Sequence[str] | Mapping[str, str] | None
Timeout = float | int | timedelta | None


@dataclass(frozen=True)
class ExecutionRequest:
    """Everything needed to run one child process.

    Attributes:
        binary: Path or name of the executable to start.
        args: Command line arguments passed after the binary.
        libpath: Library directories exposed to the child.
        repos: Value of the child's ``repos`` option.
        stdout: Optional file receiving the captured standard output.
        stderr: Optional file receiving the captured standard error.
        echo: Whether to print the command line before running it.
        show: Whether to copy the child's output to the console while it runs.
        callback: Optional handler called once per complete output line.
        block_callback: Optional handler called with raw output chunks.
        spinner: Whether to show a spinner while the child runs.
        system_profile: Whether the child reads its own system profile.
        user_profile: Whether the child reads the user's profile.
        env: Environment variables set by the caller.
        timeout: Seconds, a timedelta, or None/inf for no timeout.
        wd: Working directory of the child.
        fail_on_status: Whether a nonzero exit status raises.
    """

    binary: str
    args: Sequence[str] = ()
    libpath: Sequence[str] = ()
    repos: RepositorySetting = None
    stdout: Path | None = None
    stderr: Path | None = None
    echo: bool = False
    show: bool = False
    callback: LineCallback | None = None
    block_callback: BlockCallback | None = None
    spinner: bool = False
    system_profile: bool = True
    user_profile: bool = True
    env: Mapping[str, str] = field(default_factory=dict)
    timeout: Timeout = None
    wd: Path = Path(".")
    fail_on_status: bool = True

    def command(self) -> list[str]:
        """Return the full command line as a list."""

        return [self.binary, *self.args]

    def timeout_seconds(self) -> float | None:
        """Return the timeout in seconds, or None when there is none."""

        return normalize_timeout(self.timeout)


@dataclass(frozen=True)
class ProcessOutcome:
    """Captured result of one supervised run.

    Attributes:
        command: The command executed as a list of strings.
        stdout: Everything the child wrote to standard output.
        stderr: Everything the child wrote to standard error.
        status: Exit status, or ``TIMEOUT_STATUS`` after a timeout.
        duration_s: Wall-clock duration of the run in seconds.
    """

    command: list[str]
    stdout: str
    stderr: str
    status: int
    duration_s: float = 0.0

    @property
    def timed_out(self) -> bool:
        return self.status == TIMEOUT_STATUS


def normalize_timeout(timeout: Timeout) -> float | None:
    """Convert a timeout value to seconds.

    ``None`` and infinity mean "no timeout". Negative values are rejected.
    """

    if timeout is None:
        return None
    seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)
    if math.isnan(seconds) or seconds < 0:
        raise ValueError(f"Timeout must be a non-negative duration, got {timeout!r}")
    if math.isinf(seconds):
        return None
    return seconds
