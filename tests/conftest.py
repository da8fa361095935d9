"""
Shared pytest fixtures for exec input tests.
"""

import os
import sys
import threading
import time

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from exec_input.codecs import PlainCodec
from exec_input.ecs import resolve_field_paths
from exec_input.executor import RunExecutor
from exec_input.sinks import ListSink


@pytest.fixture(autouse=True)
def isolated_config_path(tmp_path, monkeypatch):
    """Keep tests away from a real ~/.exec_input/config.json."""
    path = tmp_path / "exec_input_config.json"
    monkeypatch.setenv("EXEC_INPUT_CONFIG_PATH", str(path))
    return path


@pytest.fixture
def sink():
    return ListSink()


@pytest.fixture
def make_executor():
    """Build a RunExecutor with legacy field names and the plain codec."""

    def _make(command, ecs_compatibility="disabled", codec=None, **kwargs):
        return RunExecutor(
            command=command,
            codec=codec or PlainCodec(),
            field_paths=resolve_field_paths(ecs_compatibility),
            hostname="test-host",
            **kwargs
        )

    return _make


def wait_for(predicate, timeout=5.0, interval=0.01):
    """Poll until predicate() is true; returns whether it became true."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def start_in_thread(target, *args):
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread
