"""
Error types raised by the exec input.

Only ConfigurationError is meant to escape to callers; everything raised
while running a command is contained by the run executor and logged.
"""


class ExecInputError(Exception):
    """Base class for all exec input errors."""
    pass


class ConfigurationError(ExecInputError):
    """Raised when the input is configured inconsistently."""
    pass


class ProcessError(ExecInputError):
    """Raised when a command cannot be run to completion."""

    def __init__(self, message: str, command: str = None):
        super().__init__(message)
        self.command = command


class ProcessSpawnError(ProcessError):
    """Raised when the command could not be started."""
    pass


class ProcessReadError(ProcessError):
    """Raised when draining the command's output fails."""
    pass


class DecodeError(ExecInputError):
    """Raised when captured output cannot be turned into events."""
    pass
