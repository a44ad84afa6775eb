"""Supervised execution of a child process with streaming output.

The child's stdout and stderr are pumped on two reader threads. Each chunk is
decoded as it arrives, recorded, passed to the block handler and split into
lines for the line handler, so handlers observe the child's live behavior
rather than its final output. The caller's thread only waits for the exit or
for the timeout, whichever comes first; at the timeout the child is killed and
the outcome carries ``TIMEOUT_STATUS``.

On POSIX the child leads its own process group and kills go to the whole
group, so processes it started cannot keep the pipes open past a timeout.
"""

from __future__ import annotations

import codecs
import contextlib
import logging
import os
import shlex
import signal
import subprocess
import threading
import time
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import IO

from rich.console import Console

from rsubprocess.execution.base import (
    TIMEOUT_STATUS,
    BlockCallback,
    LineCallback,
    ProcessOutcome,
)
from rsubprocess.execution.output import ConsoleWriter, write_to_console
from rsubprocess.util.logging import get_logger

_CHUNK_SIZE = 64 * 1024
_DRAIN_GRACE_S = 2.0
_POSIX = os.name == "posix"


class _Delivery:
    """Serializes handler calls from both pumps and ends them when the call returns."""

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.closed = False

    def close(self) -> None:
        with self.lock:
            self.closed = True


class _StreamPump(threading.Thread):
    """Reads one pipe to EOF, recording and dispatching its text."""

    def __init__(
        self,
        name: str,
        pipe: IO[bytes],
        line_handler: LineCallback | None,
        block_handler: BlockCallback | None,
        delivery: _Delivery,
        on_error: _HandlerErrors,
    ) -> None:
        super().__init__(name=f"rsubprocess-{name}", daemon=True)
        self._pipe = pipe
        self._line_handler = line_handler
        self._block_handler = block_handler
        self._delivery = delivery
        self._on_error = on_error
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending: list[str] = []
        self._parts: list[str] = []

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def run(self) -> None:
        try:
            while True:
                data = self._pipe.read1(_CHUNK_SIZE)  # type: ignore[attr-defined]
                if not data:
                    break
                self._dispatch(self._decoder.decode(data))
            self._dispatch(self._decoder.decode(b"", final=True), final=True)
        except Exception as exc:  # handler failures surface in the caller's thread
            self._on_error.record(exc)
            # keep draining so the child never blocks on a full pipe
            with contextlib.suppress(OSError):
                while self._pipe.read(_CHUNK_SIZE):
                    pass
        finally:
            self._pipe.close()

    def _dispatch(self, text: str, final: bool = False) -> None:
        with self._delivery.lock:
            if self._delivery.closed:
                return
            if text:
                self._parts.append(text)
                if self._block_handler is not None:
                    self._block_handler(text)
            if self._line_handler is None:
                return
            for line in self._complete_lines(text, final):
                self._line_handler(line[:-1] if line.endswith("\r") else line)

    def _complete_lines(self, text: str, final: bool) -> list[str]:
        pieces = text.split("\n")
        if len(pieces) == 1:
            if text:
                self._pending.append(text)
            lines = []
        else:
            pieces[0] = "".join(self._pending) + pieces[0]
            self._pending = [pieces[-1]] if pieces[-1] else []
            lines = pieces[:-1]
        if final and self._pending:
            lines.append("".join(self._pending))
            self._pending = []
        return lines


class _HandlerErrors:
    """First exception raised by an output handler, shared by both pumps."""

    def __init__(self, process: subprocess.Popen[bytes]) -> None:
        self._process = process
        self._lock = threading.Lock()
        self.error: BaseException | None = None

    def record(self, exc: BaseException) -> None:
        with self._lock:
            if self.error is None:
                self.error = exc
        _kill(self._process)


def run_process(
    command: Sequence[str],
    *,
    env: Mapping[str, str] | None = None,
    cwd: Path | None = None,
    line_handler: LineCallback | None = None,
    block_handler: BlockCallback | None = None,
    echo_cmd: bool = False,
    spinner: bool = False,
    timeout_s: float | None = None,
    console: ConsoleWriter | None = None,
) -> ProcessOutcome:
    """Run a command to completion or timeout and capture its output.

    A nonzero exit status is reported in the outcome, never raised. Handlers
    are never called concurrently and never after this function returns.

    Args:
        command: Executable followed by its arguments.
        env: Variables set on top of the host environment.
        cwd: Working directory of the child.
        line_handler: Called per complete line of stdout or stderr.
        block_handler: Called per decoded chunk of stdout or stderr.
        echo_cmd: Print the command line before starting.
        spinner: Show a spinner on stderr while the child runs.
        timeout_s: Seconds before the child is killed, or None.
        console: Writer used for the command echo.

    Returns:
        ProcessOutcome with the captured output and exit status.

    Raises:
        OSError: If the child cannot be started.
        Exception: Whatever an output handler raised; the child is killed first.
    """

    logger = get_logger(__name__)
    argv = [str(part) for part in command]
    merged_env = os.environ.copy()
    if env:
        merged_env.update(env)

    if echo_cmd:
        (console or write_to_console)(f"Running {shlex.join(argv)}\n")

    start = time.monotonic()
    process = subprocess.Popen(
        argv,
        cwd=str(cwd) if cwd is not None else None,
        env=merged_env,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        # own process group, so a kill reaches everything the child started
        start_new_session=_POSIX,
    )
    delivery = _Delivery()
    errors = _HandlerErrors(process)
    assert process.stdout is not None and process.stderr is not None
    pumps = [
        _StreamPump("stdout", process.stdout, line_handler, block_handler, delivery, errors),
        _StreamPump("stderr", process.stderr, line_handler, block_handler, delivery, errors),
    ]
    for pump in pumps:
        pump.start()

    timed_out = False
    with _spinner(spinner, argv):
        try:
            status = process.wait(timeout=timeout_s)
        except subprocess.TimeoutExpired:
            logger.warning("Killing %s after %.2fs timeout.", argv[0], timeout_s)
            timed_out = True
            _kill(process)
            status = process.wait()
        except BaseException:
            _kill(process)
            process.wait()
            raise
        finally:
            _drain(pumps, delivery, logger)

    if errors.error is not None:
        raise errors.error

    return ProcessOutcome(
        command=argv,
        stdout=pumps[0].text,
        stderr=pumps[1].text,
        status=TIMEOUT_STATUS if timed_out else status,
        duration_s=time.monotonic() - start,
    )


def _drain(pumps: list[_StreamPump], delivery: _Delivery, logger: logging.Logger) -> None:
    # the pipes stay open while any process the child started still holds them
    deadline = time.monotonic() + _DRAIN_GRACE_S
    for pump in pumps:
        pump.join(max(0.0, deadline - time.monotonic()))
    if any(pump.is_alive() for pump in pumps):
        logger.debug("Output pipes still open after exit; ignoring further output.")
    delivery.close()


def _spinner(enabled: bool, argv: list[str]) -> contextlib.AbstractContextManager[object]:
    if not enabled:
        return contextlib.nullcontext()
    return Console(stderr=True).status(f"Running {os.path.basename(argv[0])}")


def _kill(process: subprocess.Popen[bytes]) -> None:
    if _POSIX:
        try:
            os.killpg(process.pid, signal.SIGKILL)
            return
        except ProcessLookupError:
            return
        except PermissionError:
            pass
    if process.poll() is not None:
        return
    try:
        process.kill()
    except ProcessLookupError:
        pass
