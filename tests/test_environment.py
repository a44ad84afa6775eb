from __future__ import annotations

import os
import tempfile
from pathlib import Path

from rsubprocess.execution.environment import resolve_environment

PROFILE = Path("/tmp/profile.R")


def test_libpath_joined_with_path_separator() -> None:
    env = resolve_environment({}, ["/a", "/b"], PROFILE, True, True)

    expected = "/a" + os.pathsep + "/b"
    assert env["R_LIBS"] == expected
    assert env["R_LIBS_USER"] == expected
    assert env["R_LIBS_SITE"] == expected


def test_caller_library_path_is_not_overridden() -> None:
    env = resolve_environment({"R_LIBS": "/mine"}, ["/a"], PROFILE, True, True)

    assert env["R_LIBS"] == "/mine"
    assert env["R_LIBS_USER"] == "/a"


def test_empty_libpath_uses_missing_placeholder() -> None:
    env = resolve_environment({}, [], PROFILE, True, True)

    placeholder = env["R_LIBS"]
    assert placeholder
    assert placeholder.startswith(tempfile.gettempdir())
    assert not os.path.exists(placeholder)
    assert env["R_LIBS_USER"] == placeholder == env["R_LIBS_SITE"]


def test_profiles_left_alone_when_flags_are_set() -> None:
    env = resolve_environment({}, ["/a"], PROFILE, True, True)

    assert "R_PROFILE" not in env
    assert "R_PROFILE_USER" not in env


def test_profiles_point_at_generated_file_when_disabled() -> None:
    env = resolve_environment({}, ["/a"], PROFILE, False, False)

    assert env["R_PROFILE"] == str(PROFILE)
    assert env["R_PROFILE_USER"] == str(PROFILE)


def test_only_user_profile_replaced() -> None:
    env = resolve_environment({}, ["/a"], PROFILE, True, False)

    assert "R_PROFILE" not in env
    assert env["R_PROFILE_USER"] == str(PROFILE)


def test_caller_variables_are_preserved() -> None:
    caller = {"R_PROFILE_USER": "/custom.R", "LANG": "C"}

    env = resolve_environment(caller, ["/a"], PROFILE, False, False)

    assert env["R_PROFILE_USER"] == "/custom.R"
    assert env["LANG"] == "C"
    assert caller == {"R_PROFILE_USER": "/custom.R", "LANG": "C"}
