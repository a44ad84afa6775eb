"""CLI entrypoints for rsubprocess."""

from __future__ import annotations

import json
from pathlib import Path

import typer

from rsubprocess.api import run_script
from rsubprocess.config import (
    ConfigError,
    HarnessConfig,
    config_to_dict,
    load_config,
    update_timeout,
)
from rsubprocess.execution.errors import CommandTimeoutError, NonzeroStatusError
from rsubprocess.util.logging import configure_logging, get_logger

app = typer.Typer(help="Run R code in a supervised child R session.")

_LOGGER = get_logger("rsubprocess.cli")


@app.callback()
def main(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Logging level (e.g., DEBUG, INFO, WARNING).",
    ),
) -> None:
    """Configure CLI-level options."""

    configure_logging(log_level)


@app.command()
def init(workspace: Path = typer.Argument(Path("."))) -> None:
    """Write a default rsubprocess.yaml into a workspace."""

    config_path = workspace.resolve() / "rsubprocess.yaml"
    if config_path.exists():
        typer.echo(f"Error: Config file already exists at {config_path}.")
        raise typer.Exit(code=1)
    config_path.write_text(
        json.dumps(config_to_dict(HarnessConfig()), indent=2),
        encoding="utf-8",
    )
    _LOGGER.info("Initialized configuration at %s", config_path)
    typer.echo(f"Created configuration at {config_path}")


@app.command("config")
def config_command(
    config_path: Path | None = typer.Option(
        None, "--config", "-c", help="Config file or directory to load."
    ),
) -> None:
    """Print the resolved configuration as JSON."""

    config = _load(config_path)
    typer.echo(json.dumps(config_to_dict(config), indent=2))


@app.command("run")
def run_command(
    script: str = typer.Argument(..., help="R script file, or R code with --expr."),
    expr: bool = typer.Option(False, "--expr", "-e", help="Treat SCRIPT as R code."),
    config_path: Path | None = typer.Option(
        None, "--config", "-c", help="Config file or directory to load."
    ),
    stdout: Path | None = typer.Option(None, "--stdout", help="File for standard output."),
    stderr: Path | None = typer.Option(None, "--stderr", help="File for standard error."),
    timeout: float | None = typer.Option(None, "--timeout", help="Timeout in seconds."),
    libpath: list[str] = typer.Option([], "--libpath", help="Library directory (repeatable)."),
    env: list[str] = typer.Option([], "--env", help="KEY=VALUE for the child (repeatable)."),
    show: bool = typer.Option(True, "--show/--no-show", help="Stream output while running."),
    fail_on_status: bool = typer.Option(
        True, "--fail-on-status/--no-fail-on-status", help="Fail when R exits nonzero."
    ),
    wd: Path = typer.Option(Path("."), "--wd", help="Working directory of the R session."),
) -> None:
    """Run an R script in a new R session."""

    config = _load(config_path)
    if timeout is not None:
        config = update_timeout(config, timeout)

    overrides: dict[str, object] = {
        "stdout": stdout,
        "stderr": stderr,
        "show": show,
        "fail_on_status": fail_on_status,
        "wd": wd,
        "env": _parse_env(env),
    }
    if libpath:
        overrides["libpath"] = libpath

    source: str | Path = script if expr else Path(script)
    if isinstance(source, Path) and not source.is_file():
        typer.echo(f"Error: Script not found: {source}")
        raise typer.Exit(code=1)

    try:
        outcome = run_script(source, config=config, **overrides)
    except CommandTimeoutError as exc:
        typer.echo(f"Error: R session timed out after {config.timeout_s}s")
        raise typer.Exit(code=1) from exc
    except NonzeroStatusError as exc:
        if not show:
            typer.echo(exc.stderr, nl=False)
        typer.echo(f"Error: R exited with status {exc.status}")
        raise typer.Exit(code=1) from exc
    except OSError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc

    if not show:
        typer.echo(outcome.stdout, nl=False)
    typer.echo(f"R exited with status {outcome.status} after {outcome.duration_s:.2f}s.")


def _load(config_path: Path | None) -> HarnessConfig:
    try:
        return load_config(config_path)
    except ConfigError as exc:
        typer.echo(f"Error: {exc}")
        raise typer.Exit(code=1) from exc


def _parse_env(pairs: list[str]) -> dict[str, str]:
    env: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected KEY=VALUE, got {pair!r}", param_hint="--env")
        env[key] = value
    return env
