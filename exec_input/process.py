"""
Runs a single command and captures its standard output.

The runner owns the child process for exactly one execution. The handle can
be closed from two places, the thread that ran the command once it is done
and a stop request coming from any other thread, so it is swapped out under
a lock and closing it a second time does nothing.
"""

import logging
import os
import signal
import subprocess
import threading
from enum import Enum
from typing import Optional, Tuple

from exec_input.errors import ProcessReadError, ProcessSpawnError

logger = logging.getLogger(__name__)

# Commands containing any of these are handed to /bin/sh, others are exec'd directly
SHELL_METACHARACTERS = frozenset("*?{}[]<>()~&|\\$;'`\"\n#=%")


def needs_shell(command: str) -> bool:
    """Check whether a command string needs a shell to be interpreted."""
    return any(c in SHELL_METACHARACTERS for c in command)


class ProcessState(str, Enum):
    """Lifecycle of one execution."""
    IDLE = "idle"
    SPAWNING = "spawning"
    READING = "reading"
    EXITED = "exited"
    CLOSED = "closed"


class ProcessRunner:
    """
    Spawns a command, reads its output to the end and reports its exit code.

    Only one command can be outstanding at a time. close() may be called
    from another thread while run_once() is blocked reading; it kills the
    child's process group so the read reaches end-of-stream.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._process: Optional[subprocess.Popen] = None
        self._shutdown = False
        self.state = ProcessState.IDLE

    @property
    def running(self) -> bool:
        with self._lock:
            return self._process is not None

    def _spawn(self, command: str) -> subprocess.Popen:
        if needs_shell(command):
            args, shell = command, True
        else:
            args, shell = command.split(), False

        return subprocess.Popen(
            args,
            shell=shell,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            start_new_session=True
        )

    def run_once(self, command: str) -> Tuple[bytes, Optional[int]]:
        """
        Run a command to completion.

        Args:
            command: Command line to execute

        Returns:
            Tuple of (captured stdout, exit code). The exit code is None when
            the process was terminated by a signal.

        Raises:
            ProcessSpawnError: If the command could not be started
            ProcessReadError: If its output could not be read, or the process
                was closed by another thread before it finished
        """
        with self._lock:
            if self._shutdown:
                raise ProcessSpawnError("Runner has been stopped", command)
            if self._process is not None:
                raise ProcessSpawnError("Another command is still running", command)

            self.state = ProcessState.SPAWNING
            try:
                process = self._spawn(command)
            except (OSError, ValueError) as e:
                self.state = ProcessState.CLOSED
                raise ProcessSpawnError(f"Failed to start command: {e}", command) from e

            self._process = process
            self.state = ProcessState.READING

        try:
            try:
                output = process.stdout.read()
            except (OSError, ValueError) as e:
                raise ProcessReadError(f"Failed to read command output: {e}", command) from e

            returncode = process.wait()
            with self._lock:
                # Cleared by close() from another thread: output is truncated
                if self._process is not process:
                    raise ProcessReadError("Command was stopped while its output was read", command)
                self.state = ProcessState.EXITED

            return output, (returncode if returncode >= 0 else None)
        finally:
            self.close()
            # Reap the child even if the read failed
            if process.poll() is None:
                process.wait()

    def close(self, shutdown: bool = False):
        """
        Release the current process, if any.

        Safe to call from any thread and any number of times.

        Args:
            shutdown: Also refuse to start further commands
        """
        with self._lock:
            if shutdown:
                self._shutdown = True
            process, self._process = self._process, None
            if process is None:
                return
            self.state = ProcessState.CLOSED

        if process.poll() is None:
            logger.debug(f"Killing process group of pid {process.pid}")
            try:
                os.killpg(process.pid, signal.SIGKILL)
            except OSError as e:
                logger.debug(f"Ignoring error while killing pid {process.pid}: {e}")

        if process.stdout is not None:
            try:
                process.stdout.close()
            except (OSError, ValueError) as e:
                logger.debug(f"Ignoring exception raised while closing output of pid {process.pid}: {e}")
