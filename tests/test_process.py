import time

import pytest

from exec_input.errors import ProcessReadError, ProcessSpawnError
from exec_input.process import ProcessRunner, ProcessState, needs_shell

from conftest import start_in_thread, wait_for


def test_needs_shell():
    assert not needs_shell("ls -la /tmp")
    assert needs_shell("echo hi | wc -c")
    assert needs_shell("/bin/sh -c 'exit 3'")
    assert needs_shell("FOO=bar env")


def test_captures_output_and_exit_code():
    runner = ProcessRunner()
    output, exit_code = runner.run_once("echo hello")
    assert output == b"hello\n"
    assert exit_code == 0
    assert runner.state == ProcessState.CLOSED
    assert not runner.running


def test_shell_command_exit_code():
    output, exit_code = ProcessRunner().run_once("printf two; exit 3")
    assert output == b"two"
    assert exit_code == 3


def test_missing_executable_fails_to_spawn():
    runner = ProcessRunner()
    with pytest.raises(ProcessSpawnError) as exc_info:
        runner.run_once("/nonexistent/command --flag")
    assert exc_info.value.command == "/nonexistent/command --flag"
    assert runner.state == ProcessState.CLOSED
    assert not runner.running


def test_runner_is_reusable():
    runner = ProcessRunner()
    assert runner.run_once("echo one")[0] == b"one\n"
    assert runner.run_once("echo two")[0] == b"two\n"


def test_close_without_process_is_noop():
    runner = ProcessRunner()
    runner.close()
    runner.close()
    assert runner.state == ProcessState.IDLE


def test_shutdown_refuses_new_commands():
    runner = ProcessRunner()
    runner.close(shutdown=True)
    with pytest.raises(ProcessSpawnError):
        runner.run_once("echo never")


def test_close_from_other_thread_unblocks_read():
    runner = ProcessRunner()
    results = []
    errors = []

    def run():
        try:
            results.append(runner.run_once("printf started; sleep 30"))
        except ProcessReadError as e:
            errors.append(e)

    started = time.monotonic()
    thread = start_in_thread(run)
    assert wait_for(lambda: runner.running)

    runner.close()
    runner.close()
    thread.join(timeout=5)

    assert not thread.is_alive()
    assert time.monotonic() - started < 10
    assert runner.state == ProcessState.CLOSED
    # Truncated output is reported as a read failure, never as a result
    assert results == []
    assert len(errors) == 1
