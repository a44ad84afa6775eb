"""Run R code in a supervised child R session."""

from rsubprocess.api import build_command, default_r_binary, run_script
from rsubprocess.config import ConfigError, HarnessConfig, load_config
from rsubprocess.execution import (
    TIMEOUT_STATUS,
    CommandTimeoutError,
    ExecutionError,
    ExecutionRequest,
    NonzeroStatusError,
    ProcessOutcome,
    run_r,
)

__all__ = [
    "TIMEOUT_STATUS",
    "CommandTimeoutError",
    "ConfigError",
    "ExecutionError",
    "ExecutionRequest",
    "HarnessConfig",
    "NonzeroStatusError",
    "ProcessOutcome",
    "build_command",
    "default_r_binary",
    "load_config",
    "run_r",
    "run_script",
]
