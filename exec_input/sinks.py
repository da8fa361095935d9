"""
Destinations for finished events.

A sink is anything with a push(event) method. Pushing is fire-and-forget.
"""

import json
import queue
import sys
import threading
from typing import List, Optional, TextIO

from exec_input.event import Event


class ListSink:
    """Collects events in memory."""

    def __init__(self):
        self.events: List[Event] = []
        self._lock = threading.Lock()

    def push(self, event: Event):
        with self._lock:
            self.events.append(event)

    def __len__(self):
        with self._lock:
            return len(self.events)


class QueueSink:
    """Hands events to a queue.Queue consumed by another thread."""

    def __init__(self, event_queue: Optional[queue.Queue] = None):
        self.queue = event_queue if event_queue is not None else queue.Queue()

    def push(self, event: Event):
        self.queue.put(event)


class JsonLinesSink:
    """Writes each event as one JSON document per line."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout
        self._lock = threading.Lock()

    def push(self, event: Event):
        line = json.dumps(event.to_dict(), default=str)
        with self._lock:
            self.stream.write(line + "\n")
            self.stream.flush()
