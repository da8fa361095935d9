"""
One execution of the configured command.

Runs the command, decodes its output into events, annotates each event
with the execution metadata and pushes it to the sink. Failures are logged
and never propagate: a broken command simply yields no events for that run.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from exec_input.ecs import FieldPaths
from exec_input.errors import DecodeError
from exec_input.event import Event, TAGS_FIELD
from exec_input.process import ProcessRunner

logger = logging.getLogger(__name__)

NANOS_PER_SECOND = 1_000_000_000


def to_nanos(seconds: float) -> int:
    """Convert fractional seconds to whole nanoseconds."""
    return int(seconds * NANOS_PER_SECOND)


@dataclass
class ExecutionResult:
    """Outcome of running the command once."""
    output: Optional[bytes]
    exit_code: Optional[int]
    elapsed: float


class RunExecutor:
    """
    Performs executions of a command and emits the resulting events.

    Field paths and host name are fixed at construction, so nothing is
    looked up while the input is running.
    """

    def __init__(
        self,
        command: str,
        codec,
        field_paths: FieldPaths,
        hostname: str,
        runner: Optional[ProcessRunner] = None,
        event_type: Optional[str] = None,
        tags: Optional[List[str]] = None,
        add_field: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize run executor.

        Args:
            command: Command line to run
            codec: Decoder with a decode(bytes) method yielding events
            field_paths: Where annotations are written
            hostname: Host name recorded on every event
            runner: Process runner (a new one if not provided)
            event_type: Value for the event's type field, if not already set
            tags: Tags added to every event
            add_field: Extra fields set on every event
        """
        self.command = command
        self.codec = codec
        self.field_paths = field_paths
        self.hostname = hostname
        self.runner = runner or ProcessRunner()
        self.event_type = event_type
        self.tags = list(tags or [])
        self.add_field = dict(add_field or {})

    def run(self) -> ExecutionResult:
        """Run the command once and measure how long it took."""
        output = exit_code = None
        start = time.monotonic()
        try:
            logger.debug(f"Running exec: {self.command}")
            output, exit_code = self.runner.run_once(self.command)
        except Exception as e:
            logger.error(f"Error while running command '{self.command}': {e}", exc_info=True)
        elapsed = time.monotonic() - start
        logger.debug(f"Command completed: {self.command} (duration: {elapsed:.3f}s, exit code: {exit_code})")
        return ExecutionResult(output=output, exit_code=exit_code, elapsed=elapsed)

    def execute(self, sink) -> float:
        """
        Execute the command and push its events to the sink.

        Args:
            sink: Object with a push(event) method

        Returns:
            Elapsed wall time of the execution in seconds, also when it failed
        """
        result = self.run()
        if result.output is not None:
            self._emit(result, sink)
        return result.elapsed

    def _emit(self, result: ExecutionResult, sink):
        count = 0
        try:
            for event in self.codec.decode(result.output):
                self.decorate(event)
                self.annotate(event, result)
                sink.push(event)
                count += 1
        except DecodeError as e:
            logger.error(f"Failed to decode output of command '{self.command}': {e}")
            return
        except Exception as e:
            logger.error(
                f"Error while emitting output of command '{self.command}' "
                f"({count} event(s) emitted): {e}",
                exc_info=True
            )
            return
        logger.debug(f"Emitted {count} event(s) for command: {self.command}")

    def decorate(self, event: Event):
        """Apply type, tags and add_field settings."""
        if self.event_type and not event.include("type"):
            event.set("type", self.event_type)
        for tag in self.tags:
            event.tag(tag)
        for reference, value in self.add_field.items():
            if reference == TAGS_FIELD:
                event.tag(value)
            else:
                event.set(reference, value)

    def annotate(self, event: Event, result: ExecutionResult):
        """Write execution metadata; decoder-provided values win except for timings."""
        paths = self.field_paths
        if not event.include(paths.host_name):
            event.set(paths.host_name, self.hostname)
        if not event.include(paths.command_line):
            event.set(paths.command_line, self.command)
        if not event.include(paths.exit_code):
            event.set(paths.exit_code, result.exit_code)
        if paths.elapsed_time_nanos:
            event.set(paths.elapsed_time_nanos, to_nanos(result.elapsed))
        if paths.legacy_duration:
            event.set(paths.legacy_duration, result.elapsed)
