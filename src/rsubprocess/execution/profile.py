"""Transient R profile files carrying the ``repos`` option for one call."""

from __future__ import annotations

import os
import tempfile
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from pathlib import Path

from rsubprocess.execution.base import RepositorySetting
from rsubprocess.util.logging import get_logger

_LOGGER = get_logger(__name__)

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
}


class ProfileManager:
    """Creates and removes the profile file read by the child at startup."""

    @staticmethod
    def create(repos: RepositorySetting) -> Path:
        """Write ``options(repos=...)`` to a new temporary file.

        Args:
            repos: None, a URL, a sequence of URLs, or a name-to-URL mapping.

        Returns:
            Path of the generated profile.
        """

        statement = f"options(repos={render_r_value(repos)})\n"
        fd, name = tempfile.mkstemp(prefix="rsubprocess-profile-", suffix=".R")
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(statement)
        return Path(name)

    @staticmethod
    def destroy(path: Path) -> None:
        """Delete a profile, ignoring any failure."""

        try:
            path.unlink()
        except OSError as exc:
            _LOGGER.debug("Could not remove profile %s: %s", path, exc)


@contextmanager
def transient_profile(repos: RepositorySetting) -> Iterator[Path]:
    """Yield a profile path that is removed when the block exits."""

    path = ProfileManager.create(repos)
    try:
        yield path
    finally:
        ProfileManager.destroy(path)


def render_r_value(value: RepositorySetting) -> str:
    """Render a repository setting as an R expression.

    Only ``NULL``, string literals and ``c(...)`` of string literals are
    produced, so the result is always a single value.
    """

    if value is None:
        return "NULL"
    if isinstance(value, str):
        return render_r_string(value)
    if isinstance(value, Mapping):
        items = [
            f"{render_r_string(str(name))} = {render_r_string(str(url))}"
            for name, url in value.items()
        ]
        return f"c({', '.join(items)})"
    if isinstance(value, Sequence):
        return f"c({', '.join(render_r_string(str(url)) for url in value)})"
    raise TypeError(f"Unsupported repos setting: {value!r}")


def render_r_string(text: str) -> str:
    """Return ``text`` as a double-quoted R string literal."""

    out = []
    for char in text:
        if char in _ESCAPES:
            out.append(_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) == 0x7F:
            out.append(f"\\x{ord(char):02x}")
        else:
            out.append(char)
    return '"' + "".join(out) + '"'
