from __future__ import annotations

import sys
from pathlib import Path

import pytest

from rsubprocess.config import HarnessConfig

FAKE_R = """\
import sys

args = sys.argv[1:]
script = args[args.index("-f") + 1]
with open(script, encoding="utf-8") as handle:
    exec(compile(handle.read(), script, "exec"))
"""


@pytest.fixture()
def fake_r_config(tmp_path: Path) -> HarnessConfig:
    """Config whose "R" runs the script file as Python."""

    fake_r = tmp_path / "fake_r.py"
    fake_r.write_text(FAKE_R, encoding="utf-8")
    return HarnessConfig(r_binary=sys.executable, cmdargs=[str(fake_r)], libpath=[])
