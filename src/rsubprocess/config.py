"""Configuration models and loaders for rsubprocess."""

from __future__ import annotations

import json
import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from rsubprocess.execution.base import RepositorySetting

CONFIG_FILE_NAMES: tuple[str, ...] = ("rsubprocess.yaml", "rsubprocess.yml")
DEFAULT_CMDARGS: list[str] = ["--slave"]
DEFAULT_REPOS: dict[str, str] = {"CRAN": "https://cloud.r-project.org"}


class ConfigError(ValueError):
    """Raised when a configuration file is missing pieces or has the wrong shape."""


def default_libpath() -> list[str]:
    """Return the host's ``R_LIBS`` entries, or an empty list."""

    raw = os.environ.get("R_LIBS", "")
    return [entry for entry in raw.split(os.pathsep) if entry]


@dataclass(frozen=True)
class HarnessConfig:
    """Defaults for running child R processes.

    Attributes:
        r_binary: Explicit R executable; discovered from R_HOME/PATH when None.
        cmdargs: Arguments passed to R before ``-f <script>``.
        libpath: Library directories exposed to the child.
        repos: Value of the child's ``repos`` option.
        timeout_s: Seconds before the child is killed; None means no limit.
        env: Extra environment variables for the child.
        show: Copy the child's output to the console while it runs.
        echo: Print the command line before running it.
        system_profile: Let the child read R's system profile.
        user_profile: Let the child read the user's profile.
        fail_on_status: Raise when the child exits with a nonzero status.
    """

    r_binary: str | None = None
    cmdargs: list[str] = field(default_factory=lambda: list(DEFAULT_CMDARGS))
    libpath: list[str] = field(default_factory=default_libpath)
    repos: RepositorySetting = field(default_factory=lambda: dict(DEFAULT_REPOS))
    timeout_s: float | None = None
    env: dict[str, str] = field(default_factory=dict)
    show: bool = False
    echo: bool = False
    system_profile: bool = True
    user_profile: bool = True
    fail_on_status: bool = True


def load_config(path: Path | None = None) -> HarnessConfig:
    """Load harness configuration from disk.

    Args:
        path: Optional config file or directory to search.

    Returns:
        Parsed HarnessConfig, or the defaults when no config exists.
    """

    config_path = _resolve_config_path(path)
    if config_path is None:
        return HarnessConfig()

    if config_path.suffix in {".yaml", ".yml"}:
        raw_data = _load_yaml(config_path)
    elif config_path.suffix == ".toml":
        raw_data = _load_toml(config_path)
    else:
        raise ConfigError(f"Unsupported config file type: {config_path}")

    return _parse_harness_config(raw_data, base_path=config_path.parent)


def config_to_dict(config: HarnessConfig) -> dict[str, Any]:
    """Serialize a HarnessConfig into a JSON-compatible dictionary."""

    repos = config.repos
    if repos is not None and not isinstance(repos, (str, dict)):
        repos = list(repos)
    return {
        "r_binary": config.r_binary,
        "cmdargs": list(config.cmdargs),
        "libpath": list(config.libpath),
        "repos": repos,
        "timeout_s": config.timeout_s,
        "env": dict(config.env),
        "show": config.show,
        "echo": config.echo,
        "system_profile": config.system_profile,
        "user_profile": config.user_profile,
        "fail_on_status": config.fail_on_status,
    }


def update_timeout(config: HarnessConfig, timeout_s: float | None) -> HarnessConfig:
    """Return a config copy with an updated timeout."""

    return replace(config, timeout_s=timeout_s)


def _resolve_config_path(path: Path | None) -> Path | None:
    candidate_paths: list[Path] = []
    if path is None:
        candidate_paths.extend(Path(name) for name in CONFIG_FILE_NAMES)
        candidate_paths.append(Path("pyproject.toml"))
    elif path.is_dir():
        candidate_paths.extend(path / name for name in CONFIG_FILE_NAMES)
        candidate_paths.append(path / "pyproject.toml")
    else:
        candidate_paths.append(path)

    for candidate in candidate_paths:
        if candidate.exists():
            return candidate
    return None


def _load_toml(path: Path) -> dict[str, Any]:
    with path.open("rb") as handle:
        data = tomllib.load(handle)
    if path.name == "pyproject.toml":
        tool_config = data.get("tool", {}).get("rsubprocess", {})
        if not isinstance(tool_config, dict):
            raise ConfigError("tool.rsubprocess must be a mapping.")
        return tool_config
    return data


def _load_yaml(path: Path) -> dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = None
    if data is not None:
        if not isinstance(data, dict):
            raise ConfigError("YAML configuration must be a mapping.")
        return data

    import yaml

    parsed = yaml.safe_load(text)
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ConfigError("YAML configuration must be a mapping.")
    return parsed


def _parse_harness_config(raw: dict[str, Any], base_path: Path) -> HarnessConfig:
    defaults = HarnessConfig()
    libpath = defaults.libpath
    if raw.get("libpath") is not None:
        libpath = [
            str(_relative_to(base_path, entry))
            for entry in _parse_str_list(raw["libpath"], "libpath", [])
        ]
    return HarnessConfig(
        r_binary=_optional_str(raw.get("r_binary")),
        cmdargs=_parse_str_list(raw.get("cmdargs"), "cmdargs", defaults.cmdargs),
        libpath=libpath,
        repos=_parse_repos(raw.get("repos", defaults.repos)),
        timeout_s=_optional_float(raw.get("timeout_s")),
        env=_parse_env(raw.get("env", {})),
        show=bool(raw.get("show", defaults.show)),
        echo=bool(raw.get("echo", defaults.echo)),
        system_profile=bool(raw.get("system_profile", defaults.system_profile)),
        user_profile=bool(raw.get("user_profile", defaults.user_profile)),
        fail_on_status=bool(raw.get("fail_on_status", defaults.fail_on_status)),
    )


def _parse_str_list(raw: Any, name: str, default: list[str]) -> list[str]:
    if raw is None:
        return list(default)
    if isinstance(raw, str):
        return [raw]
    if not isinstance(raw, list):
        raise ConfigError(f"{name} must be a list of strings.")
    return [str(item) for item in raw]


def _parse_repos(raw: Any) -> RepositorySetting:
    if raw is None or isinstance(raw, str):
        return raw
    if isinstance(raw, dict):
        return {str(name): str(url) for name, url in raw.items()}
    if isinstance(raw, list):
        return [str(url) for url in raw]
    raise ConfigError("repos must be a URL, a list of URLs or a name-to-URL mapping.")


def _parse_env(raw: Any) -> dict[str, str]:
    if not isinstance(raw, dict):
        raise ConfigError("env must be a mapping of variable names to values.")
    return {str(key): str(value) for key, value in raw.items()}


def _relative_to(base_path: Path, entry: str) -> Path:
    candidate = Path(entry).expanduser()
    if candidate.is_absolute():
        return candidate
    return (base_path / candidate).resolve()


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _optional_float(value: Any) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"timeout_s must be a number, got {value!r}") from exc
