from __future__ import annotations

import sys
import threading
import time
from pathlib import Path

import pytest

from rsubprocess.execution.base import TIMEOUT_STATUS
from rsubprocess.execution.process import run_process


def _python(code: str) -> list[str]:
    return [sys.executable, "-c", code]


def test_captures_stdout_stderr_and_status() -> None:
    outcome = run_process(
        _python("import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)")
    )

    assert outcome.stdout == "out\n"
    assert outcome.stderr == "err\n"
    assert outcome.status == 3
    assert outcome.timed_out is False
    assert outcome.command[0] == sys.executable
    assert outcome.duration_s >= 0


def test_line_handler_receives_lines_from_both_streams() -> None:
    lines: list[str] = []

    run_process(
        _python(
            "import sys\n"
            "sys.stdout.write('a\\nb\\r\\npartial')\n"
            "sys.stderr.write('e1\\n')\n"
        ),
        line_handler=lines.append,
    )

    assert sorted(lines) == ["a", "b", "e1", "partial"]
    assert lines.index("a") < lines.index("b") < lines.index("partial")


def test_block_handler_sees_all_output() -> None:
    chunks: list[str] = []

    outcome = run_process(_python("print('x' * 100000)"), block_handler=chunks.append)

    assert "".join(chunks) == outcome.stdout
    assert outcome.stdout == "x" * 100000 + "\n"


def test_lines_arrive_while_child_is_running(tmp_path: Path) -> None:
    flag = tmp_path / "flag"
    seen: list[str] = []
    code = (
        "import os, sys, time\n"
        "print('ready', flush=True)\n"
        "while not os.path.exists(sys.argv[1]):\n"
        "    time.sleep(0.01)\n"
        "print('done', flush=True)\n"
    )

    def on_line(line: str) -> None:
        seen.append(line)
        if line == "ready":
            # the child only finishes once it sees this file
            flag.write_text("go")

    outcome = run_process(
        [sys.executable, "-c", code, str(flag)], line_handler=on_line, timeout_s=30
    )

    assert outcome.status == 0
    assert outcome.stdout == "ready\ndone\n"
    assert seen == ["ready", "done"]


def test_timeout_kills_child_and_keeps_partial_output() -> None:
    outcome = run_process(
        _python("import time; print('started', flush=True); time.sleep(60)"),
        timeout_s=2.0,
    )

    assert outcome.status == TIMEOUT_STATUS
    assert outcome.timed_out is True
    assert outcome.stdout == "started\n"
    assert outcome.duration_s < 30


def test_env_and_cwd_are_applied(tmp_path: Path) -> None:
    outcome = run_process(
        _python("import os; print(os.environ['RSUB_TEST']); print(os.getcwd())"),
        env={"RSUB_TEST": "value"},
        cwd=tmp_path,
    )

    out_lines = outcome.stdout.splitlines()
    assert out_lines[0] == "value"
    assert Path(out_lines[1]).resolve() == tmp_path.resolve()


def test_echo_cmd_writes_command_to_console() -> None:
    console: list[str] = []

    run_process(_python("pass"), echo_cmd=True, console=console.append)

    assert console[0].startswith("Running ")
    assert console[0].endswith("-c pass\n")


def test_handler_exception_propagates_and_child_is_stopped() -> None:
    def explode(line: str) -> None:
        raise ValueError(f"bad line {line}")

    with pytest.raises(ValueError, match="bad line first"):
        run_process(
            _python("import time; print('first', flush=True); time.sleep(60)"),
            line_handler=explode,
            timeout_s=30,
        )


def test_missing_binary_raises_os_error(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        run_process([str(tmp_path / "no-such-binary")])


def test_undecodable_bytes_are_replaced() -> None:
    outcome = run_process(_python("import sys; sys.stdout.buffer.write(b'ok\\xff\\n')"))

    assert outcome.stdout == "ok\ufffd\n"


_TICKER = "import time\nfor _ in range({count}):\n    print('tick', flush=True)\n    time.sleep(0.2)\n"


def _spawn_ticker(count: int, then: str) -> list[str]:
    ticker = _TICKER.format(count=count)
    return _python(
        "import subprocess, sys, time\n"
        f"subprocess.Popen([sys.executable, '-c', {ticker!r}])\n"
        f"{then}\n"
    )


@pytest.mark.skipif(sys.platform == "win32", reason="process groups are POSIX only")
def test_timeout_also_stops_processes_started_by_the_child() -> None:
    lines: list[str] = []

    start = time.monotonic()
    outcome = run_process(
        _spawn_ticker(300, "time.sleep(60)"),
        line_handler=lines.append,
        timeout_s=1.0,
    )
    elapsed = time.monotonic() - start
    seen_at_return = len(lines)
    time.sleep(0.6)

    assert outcome.status == TIMEOUT_STATUS
    assert elapsed < 4.0
    assert len(lines) == seen_at_return


def test_no_handler_runs_after_return_while_pipes_stay_open() -> None:
    lines: list[str] = []

    start = time.monotonic()
    outcome = run_process(_spawn_ticker(25, "pass"), line_handler=lines.append)
    elapsed = time.monotonic() - start
    seen_at_return = len(lines)
    time.sleep(0.6)

    assert outcome.status == 0
    assert elapsed < 4.5
    assert len(lines) == seen_at_return


def test_handlers_are_never_called_concurrently() -> None:
    busy = threading.Event()
    overlaps: list[str] = []
    count = [0]

    def handler(text: str) -> None:
        if busy.is_set():
            overlaps.append(text)
        busy.set()
        time.sleep(0.0005)
        count[0] += 1
        busy.clear()

    run_process(
        _python(
            "import sys\n"
            "for i in range(200):\n"
            "    print(i, flush=True)\n"
            "    print(i, file=sys.stderr, flush=True)\n"
        ),
        line_handler=handler,
        block_handler=handler,
    )

    assert overlaps == []
    assert count[0] >= 400


def test_long_line_written_in_many_pieces_is_one_line() -> None:
    lines: list[str] = []

    outcome = run_process(
        _python(
            "import sys\n"
            "for _ in range(2000):\n"
            "    sys.stdout.write('y' * 100)\n"
            "    sys.stdout.flush()\n"
            "sys.stdout.write('\\nend\\n')\n"
        ),
        line_handler=lines.append,
    )

    assert lines == ["y" * 200000, "end"]
    assert outcome.stdout == "y" * 200000 + "\nend\n"
