"""Routing of child output to the console and to user callbacks."""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable
from dataclasses import dataclass

from rsubprocess.execution.base import BlockCallback, LineCallback

ConsoleWriter = Callable[[str], None]


@dataclass(frozen=True)
class OutputHandlers:
    """Handlers passed to the process supervisor for both streams.

    Attributes:
        line: Called once per complete line, or None.
        block: Called with each raw output chunk, or None.
    """

    line: LineCallback | None = None
    block: BlockCallback | None = None


def write_to_console(text: str) -> None:
    """Write ``text`` to the host's current standard output and flush it."""

    stream = sys.stdout
    stream.write(text)
    stream.flush()


def build_output_handlers(
    show: bool,
    callback: LineCallback | None = None,
    block_callback: BlockCallback | None = None,
    console: ConsoleWriter | None = None,
) -> OutputHandlers:
    """Compose the line and block handlers for one call.

    With ``show`` every chunk is written to the console, and then handed to
    ``block_callback`` when one is given. Without ``show`` the block handler
    only calls ``block_callback``, if any. The line handler calls ``callback``.
    All handlers of one call share a lock, so user callbacks never run
    concurrently even though stdout and stderr are read on separate threads.

    Args:
        show: Whether to echo output chunks to the console.
        callback: Optional per-line handler.
        block_callback: Optional per-chunk handler.
        console: Writer used for echoing; defaults to ``write_to_console``.

    Returns:
        OutputHandlers for the process supervisor.
    """

    write = console or write_to_console
    lock = threading.Lock()

    line: LineCallback | None = None
    if callback is not None:
        line_callback = callback

        def locked_line(text: str) -> None:
            with lock:
                line_callback(text)

        line = locked_line

    block: BlockCallback | None = None
    if show or block_callback is not None:

        def locked_block(chunk: str) -> None:
            with lock:
                if show:
                    write(chunk)
                if block_callback is not None:
                    block_callback(chunk)

        block = locked_block

    return OutputHandlers(line=line, block=block)
