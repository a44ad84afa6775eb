"""High-level entry point: evaluate R code in a fresh child session."""

from __future__ import annotations

import os
import shutil
import sys
import tempfile
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from rsubprocess.config import HarnessConfig, load_config
from rsubprocess.execution.base import ExecutionRequest, ProcessOutcome
from rsubprocess.execution.harness import run_r
from rsubprocess.execution.output import ConsoleWriter
from rsubprocess.util.logging import get_logger
from rsubprocess.util.observability import ObservabilityManager

_LOGGER = get_logger(__name__)

_REQUEST_OVERRIDES = frozenset(
    {
        "libpath",
        "repos",
        "stdout",
        "stderr",
        "echo",
        "show",
        "callback",
        "block_callback",
        "spinner",
        "system_profile",
        "user_profile",
        "env",
        "timeout",
        "wd",
        "fail_on_status",
    }
)


def default_r_binary() -> str:
    """Locate the R executable: ``$R_HOME/bin/R``, then ``R`` on PATH."""

    r_home = os.environ.get("R_HOME")
    if r_home:
        candidate = Path(r_home) / "bin" / ("R.exe" if os.name == "nt" else "R")
        if candidate.exists():
            return str(candidate)
    return shutil.which("R") or "R"


def build_command(binary: str, cmdargs: Sequence[str], script_path: Path) -> list[str]:
    """Return the command line that makes R run ``script_path``."""

    return [binary, *cmdargs, "-f", str(script_path)]


def build_request(
    script_path: Path,
    config: HarnessConfig,
    *,
    binary: str | None = None,
    cmdargs: Sequence[str] | None = None,
    **overrides: Any,
) -> ExecutionRequest:
    """Combine configuration defaults and per-call overrides into a request.

    Raises:
        TypeError: If an override is not a request field.
    """

    unknown = set(overrides) - _REQUEST_OVERRIDES
    if unknown:
        raise TypeError(f"Unexpected options: {', '.join(sorted(unknown))}")

    command = build_command(
        binary or config.r_binary or default_r_binary(),
        config.cmdargs if cmdargs is None else cmdargs,
        script_path,
    )
    show = overrides.get("show", config.show)
    env: Mapping[str, str] = {**config.env, **(overrides.get("env") or {})}
    fields: dict[str, Any] = {
        "libpath": list(config.libpath),
        "repos": config.repos,
        "echo": config.echo,
        "show": show,
        "spinner": show and _interactive(),
        "system_profile": config.system_profile,
        "user_profile": config.user_profile,
        "timeout": config.timeout_s,
        "fail_on_status": config.fail_on_status,
        "wd": Path("."),
    }
    fields.update(overrides)
    fields["env"] = env
    return ExecutionRequest(binary=command[0], args=command[1:], **fields)


def run_script(
    script: str | Path,
    *,
    config: HarnessConfig | None = None,
    binary: str | None = None,
    cmdargs: Sequence[str] | None = None,
    observability: ObservabilityManager | None = None,
    console: ConsoleWriter | None = None,
    **overrides: Any,
) -> ProcessOutcome:
    """Evaluate R code in a new R session and return its captured output.

    Args:
        script: Path of an R script, or R source text.
        config: Defaults for the call; loaded from the working directory when None.
        binary: R executable; overrides the configured one.
        cmdargs: Arguments placed before ``-f <script>``.
        observability: Optional event logger and metrics sink.
        console: Writer used when output is shown.
        **overrides: Any ExecutionRequest field (stdout, stderr, show,
            callback, block_callback, spinner, env, timeout, wd, libpath,
            repos, system_profile, user_profile, fail_on_status, echo).

    Returns:
        ProcessOutcome of the run.

    Raises:
        CommandTimeoutError: If the session exceeded its timeout.
        NonzeroStatusError: If R failed and ``fail_on_status`` is set.
    """

    config = config or load_config()
    with _script_file(script) as script_path:
        request = build_request(
            script_path, config, binary=binary, cmdargs=cmdargs, **overrides
        )
        return run_r(request, observability=observability, console=console)


def _interactive() -> bool:
    stream = sys.stdin
    try:
        return stream is not None and stream.isatty()
    except (AttributeError, ValueError):
        return False


@contextmanager
def _script_file(script: str | Path) -> Iterator[Path]:
    if isinstance(script, Path):
        yield script.resolve()
        return

    fd, name = tempfile.mkstemp(prefix="rsubprocess-script-", suffix=".R")
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(script)
        if not script.endswith("\n"):
            handle.write("\n")
    path = Path(name)
    try:
        yield path
    finally:
        try:
            path.unlink()
        except OSError as exc:
            _LOGGER.debug("Could not remove script %s: %s", path, exc)
