"""One supervised child run, from request to result."""

from __future__ import annotations

import contextlib
from pathlib import Path

from rsubprocess.execution.base import ExecutionRequest, ProcessOutcome
from rsubprocess.execution.environment import resolve_environment
from rsubprocess.execution.errors import CommandTimeoutError, NonzeroStatusError
from rsubprocess.execution.outcome import translate_outcome
from rsubprocess.execution.output import ConsoleWriter, build_output_handlers
from rsubprocess.execution.process import run_process
from rsubprocess.execution.profile import transient_profile
from rsubprocess.execution.writer import write_outputs
from rsubprocess.util.logging import get_logger
from rsubprocess.util.observability import ObservabilityManager

_LOGGER = get_logger(__name__)


def run_r(
    request: ExecutionRequest,
    *,
    observability: ObservabilityManager | None = None,
    console: ConsoleWriter | None = None,
) -> ProcessOutcome:
    """Run the requested child process and translate how it ended.

    The child runs in ``request.wd`` with a freshly generated profile and the
    resolved library path variables. Relative output paths are taken relative
    to ``request.wd``. The profile is removed however the call ends.

    Args:
        request: What to run and how to route its output.
        observability: Optional event logger and metrics sink.
        console: Writer used when ``show`` or ``echo`` is set; defaults to stdout.

    Returns:
        The ProcessOutcome of a successful run (or of a failed one when
        ``fail_on_status`` is off).

    Raises:
        CommandTimeoutError: If the child exceeded its timeout.
        NonzeroStatusError: If the child failed and ``fail_on_status`` is set.
    """

    wd = Path(request.wd).resolve()
    timeout_s = request.timeout_seconds()
    command = request.command()

    with transient_profile(request.repos) as profile:
        env = resolve_environment(
            request.env,
            request.libpath,
            profile,
            use_system_profile=request.system_profile,
            use_user_profile=request.user_profile,
        )
        handlers = build_output_handlers(
            request.show,
            callback=request.callback,
            block_callback=request.block_callback,
            console=console,
        )

        _LOGGER.info("Running %s in %s", command, wd)
        if observability is not None:
            observability.log_event(
                "process.started",
                {"command": command, "wd": str(wd), "timeout_s": timeout_s},
            )
            observability.metrics.increment("runs")

        with _tracked(observability):
            outcome = run_process(
                command,
                env=env,
                cwd=wd,
                line_handler=handlers.line,
                block_handler=handlers.block,
                echo_cmd=request.echo,
                spinner=request.spinner,
                timeout_s=timeout_s,
                console=console,
            )
        if observability is not None and not outcome.timed_out:
            observability.log_event("process.finished", _summary(outcome))

    write_outputs(
        outcome,
        _under(wd, request.stdout),
        _under(wd, request.stderr),
    )

    try:
        return translate_outcome(outcome, request.fail_on_status)
    except CommandTimeoutError:
        _LOGGER.warning("%s timed out after %.2fs", command[0], outcome.duration_s)
        if observability is not None:
            observability.metrics.increment("timeouts")
            observability.log_event("process.timeout", _summary(outcome), level="WARNING")
        raise
    except NonzeroStatusError:
        _LOGGER.warning("%s exited with status %s", command[0], outcome.status)
        if observability is not None:
            observability.metrics.increment("failures")
        raise


def _tracked(
    observability: ObservabilityManager | None,
) -> contextlib.AbstractContextManager[None]:
    if observability is None:
        return contextlib.nullcontext()
    return observability.track_duration("process.run")


def _summary(outcome: ProcessOutcome) -> dict[str, object]:
    return {
        "command": outcome.command,
        "status": outcome.status,
        "duration_s": round(outcome.duration_s, 3),
        "stdout_chars": len(outcome.stdout),
        "stderr_chars": len(outcome.stderr),
    }


def _under(wd: Path, path: Path | None) -> Path | None:
    if path is None:
        return None
    path = Path(path)
    return path if path.is_absolute() else wd / path
