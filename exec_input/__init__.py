"""
Exec Input

Periodically runs a shell command and turns its output into structured
events, on a fixed interval or a cron schedule (APScheduler).

Features:
- Interval or cron-style scheduling, never overlapping runs
- Events annotated with host, command line, exit code and elapsed time
- Legacy or ECS field naming
- Graceful stop, also while a command is running or the input is sleeping
"""

from exec_input.config import ExecConfig, ExecInputConfig
from exec_input.errors import ConfigurationError
from exec_input.event import Event
from exec_input.executor import RunExecutor
from exec_input.process import ProcessRunner
from exec_input.service import ExecInput

__version__ = "0.1.0"
__all__ = [
    "ExecInput",
    "ExecConfig",
    "ExecInputConfig",
    "RunExecutor",
    "ProcessRunner",
    "Event",
    "ConfigurationError",
]
