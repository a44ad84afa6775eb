"""Environment variables handed to the child R process."""

from __future__ import annotations

import os
import tempfile
import uuid
from collections.abc import Mapping, Sequence
from pathlib import Path

LIBRARY_PATH_VARIABLES: tuple[str, ...] = ("R_LIBS", "R_LIBS_USER", "R_LIBS_SITE")
SYSTEM_PROFILE_VARIABLE = "R_PROFILE"
USER_PROFILE_VARIABLE = "R_PROFILE_USER"


def resolve_environment(
    caller_env: Mapping[str, str],
    libpath: Sequence[str],
    profile_path: Path,
    use_system_profile: bool,
    use_user_profile: bool,
) -> dict[str, str]:
    """Compute the environment overrides for one child process.

    Variables present in ``caller_env`` are kept as given; the library path and
    profile variables are only filled in where the caller left them unset.

    Args:
        caller_env: Variables set explicitly by the caller.
        libpath: Library directories, joined with ``os.pathsep``.
        profile_path: Generated profile file.
        use_system_profile: Leave ``R_PROFILE`` to R's own discovery.
        use_user_profile: Leave ``R_PROFILE_USER`` to R's own discovery.

    Returns:
        The caller's variables plus the resolved defaults.
    """

    env = {str(key): str(value) for key, value in caller_env.items()}

    lib = os.pathsep.join(str(entry) for entry in libpath)
    if not lib:
        # R ignores an empty value, so point at a directory that does not exist.
        lib = _missing_library_path()
    for name in LIBRARY_PATH_VARIABLES:
        env.setdefault(name, lib)

    if not use_system_profile:
        env.setdefault(SYSTEM_PROFILE_VARIABLE, str(profile_path))
    if not use_user_profile:
        env.setdefault(USER_PROFILE_VARIABLE, str(profile_path))
    return env


def _missing_library_path() -> str:
    return os.path.join(tempfile.gettempdir(), f"rsubprocess-nolib-{uuid.uuid4().hex}")
