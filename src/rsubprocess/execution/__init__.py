"""Supervised child process execution."""

from rsubprocess.execution.base import (
    TIMEOUT_STATUS,
    ExecutionRequest,
    ProcessOutcome,
    normalize_timeout,
)
from rsubprocess.execution.environment import resolve_environment
from rsubprocess.execution.errors import (
    CommandTimeoutError,
    ExecutionError,
    NonzeroStatusError,
)
from rsubprocess.execution.harness import run_r
from rsubprocess.execution.outcome import translate_outcome
from rsubprocess.execution.output import OutputHandlers, build_output_handlers
from rsubprocess.execution.process import run_process
from rsubprocess.execution.profile import ProfileManager, transient_profile
from rsubprocess.execution.writer import write_outputs

__all__ = [
    "TIMEOUT_STATUS",
    "CommandTimeoutError",
    "ExecutionError",
    "ExecutionRequest",
    "NonzeroStatusError",
    "OutputHandlers",
    "ProcessOutcome",
    "ProfileManager",
    "build_output_handlers",
    "normalize_timeout",
    "resolve_environment",
    "run_process",
    "run_r",
    "transient_profile",
    "translate_outcome",
    "write_outputs",
]
