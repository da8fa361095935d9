"""
Exec input service.

Decides when the command runs: in a loop with an interruptible sleep
between executions (interval mode) or on a cron schedule driven by
APScheduler with a single worker (schedule mode).
"""

import logging
import socket
import threading
from typing import Optional

from apscheduler.events import (
    EVENT_JOB_ERROR,
    EVENT_JOB_EXECUTED,
    EVENT_JOB_MAX_INSTANCES,
    EVENT_JOB_MISSED
)
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler

from exec_input.codecs import get_codec
from exec_input.config import ExecConfig, build_cron_trigger
from exec_input.ecs import FieldPaths, resolve_field_paths
from exec_input.errors import ConfigurationError
from exec_input.executor import RunExecutor
from exec_input.process import ProcessRunner

logger = logging.getLogger(__name__)

JOB_ID = "exec"


class ExecInput:
    """
    Periodically runs a command and turns its output into events.

    Usage:
        exec_input = ExecInput(ExecConfig(command="uptime", interval=60))
        exec_input.register()
        exec_input.run(sink)       # blocks until stop() is called
    """

    def __init__(self, config: ExecConfig, runner: Optional[ProcessRunner] = None):
        """
        Initialize exec input.

        Args:
            config: Exec input options
            runner: Process runner (a new one if not provided)
        """
        self.config = config
        self.runner = runner or ProcessRunner()
        self.hostname: Optional[str] = None
        self.field_paths: Optional[FieldPaths] = None
        self.executor: Optional[RunExecutor] = None
        self.scheduler: Optional[BackgroundScheduler] = None

        self._trigger = None
        self._stop_event = threading.Event()
        self._lock = threading.RLock()

    @property
    def schedule_mode(self) -> bool:
        return self.config.schedule is not None

    def register(self):
        """
        Validate the configuration and prepare everything run() needs.

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        errors = self.config.validate()
        if errors:
            for error in errors:
                logger.error(f"exec input: {error}")
            raise ConfigurationError(f"exec input: {'; '.join(errors)}")

        self.hostname = socket.gethostname()
        self.field_paths = resolve_field_paths(self.config.ecs_compatibility)
        if self.schedule_mode:
            self._trigger = build_cron_trigger(self.config.schedule)

        self.executor = RunExecutor(
            command=self.config.command,
            codec=get_codec(self.config.codec, self.config.charset),
            field_paths=self.field_paths,
            hostname=self.hostname,
            runner=self.runner,
            event_type=self.config.type,
            tags=self.config.tags,
            add_field=self.config.add_field
        )

        mode = f"schedule '{self.config.schedule}'" if self.schedule_mode else f"interval {self.config.interval}s"
        logger.info(f"Registered exec input for command '{self.config.command}' ({mode})")

    def stop_requested(self) -> bool:
        return self._stop_event.is_set()

    def execute(self, sink) -> float:
        """Run the command once; returns the elapsed seconds."""
        if self.executor is None:
            raise ConfigurationError("exec input: register() must be called before running")
        return self.executor.execute(sink)

    def run(self, sink):
        """
        Run until stopped.

        Args:
            sink: Object with a push(event) method
        """
        if self.executor is None:
            raise ConfigurationError("exec input: register() must be called before run()")

        if self.schedule_mode:
            self._run_scheduled(sink)
        else:
            self._run_interval(sink)
        logger.info(f"Exec input for command '{self.config.command}' finished")

    def _run_interval(self, sink):
        while not self.stop_requested():
            duration = self.execute(sink)
            self.wait_until_end_of_interval(duration)

    def wait_until_end_of_interval(self, duration: float):
        """
        Sleep for the remainder of the interval, or not at all if the
        execution took longer than the interval. Returns early on stop().
        """
        sleeptime = max(0.0, self.config.interval - duration)
        if sleeptime > 0:
            self._stop_event.wait(sleeptime)
        else:
            logger.warning(
                f"Execution ran longer than the interval. Skipping sleep. "
                f"(command: {self.config.command}, duration: {duration:.3f}s, "
                f"interval: {self.config.interval}s)"
            )

    def _run_scheduled(self, sink):
        with self._lock:
            if self.stop_requested():
                return
            scheduler = self._create_scheduler()
            scheduler.add_job(
                self.execute,
                self._trigger,
                args=[sink],
                id=JOB_ID,
                name=self.config.command
            )
            scheduler.start()
            self.scheduler = scheduler
            logger.info(f"Scheduled command '{self.config.command}' with cron '{self.config.schedule}'")

        self._stop_event.wait()
        self._shutdown_scheduler()

    def _create_scheduler(self) -> BackgroundScheduler:
        executors = {
            'default': ThreadPoolExecutor(1)
        }

        job_defaults = {
            'coalesce': True,  # Combine multiple missed runs into one
            'max_instances': 1,  # A fire while the previous run is busy is skipped
            'misfire_grace_time': 1
        }

        scheduler = BackgroundScheduler(executors=executors, job_defaults=job_defaults)
        self._setup_event_listeners(scheduler)
        return scheduler

    def _setup_event_listeners(self, scheduler: BackgroundScheduler):
        """Setup APScheduler event listeners for logging."""

        def job_executed_listener(event):
            logger.debug(f"Scheduled run of '{self.config.command}' finished (duration: {event.retval:.3f}s)")

        def job_error_listener(event):
            logger.error(
                f"Scheduled run of '{self.config.command}' raised exception: {event.exception}\n{event.traceback}"
            )

        def job_skipped_listener(event):
            logger.warning(f"Skipping scheduled run of '{self.config.command}': previous run still in progress")

        def job_missed_listener(event):
            logger.warning(f"Scheduled run of '{self.config.command}' missed its run time")

        scheduler.add_listener(job_executed_listener, EVENT_JOB_EXECUTED)
        scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)
        scheduler.add_listener(job_skipped_listener, EVENT_JOB_MAX_INSTANCES)
        scheduler.add_listener(job_missed_listener, EVENT_JOB_MISSED)

    def _shutdown_scheduler(self):
        # Held across shutdown so a concurrent caller returns only once the worker is gone
        with self._lock:
            scheduler, self.scheduler = self.scheduler, None
            if scheduler is not None and scheduler.running:
                logger.debug("Waiting for the scheduler worker to finish")
                scheduler.shutdown(wait=True)

    def stop(self):
        """
        Stop the input.

        Idempotent and callable from any thread, before, during or after
        run(). Kills a command that is still running and, in schedule mode,
        waits for the scheduler worker to exit.
        """
        if not self._stop_event.is_set():
            logger.info(f"Stopping exec input for command '{self.config.command}'")
        self._stop_event.set()
        self.runner.close(shutdown=True)
        self._shutdown_scheduler()
