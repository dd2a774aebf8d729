"""Task queue interface.

Delivery is at-most-once: whatever sits in the buffer or is being handled
when the process stops is gone. A durable implementation can replace the
in-process one behind this interface without touching the engines.
"""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from comic_video.jobs.models import TaskRecord

TaskHandler = Callable[[TaskRecord], None]


class TaskQueue(ABC):
    """Abstract interface for task intake and execution."""

    @abstractmethod
    def enqueue(self, task: TaskRecord, timeout: Optional[float] = None) -> None:
        """Append a task to the buffer.

        Blocks while the buffer is full, up to ``timeout`` seconds, then raises
        QueueFullError. Never drops a task silently.
        """
        ...

    @abstractmethod
    def start(self, worker_count: int, handler: TaskHandler) -> None:
        """Launch ``worker_count`` workers that feed tasks to ``handler``."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop the workers. Queued tasks are discarded."""
        ...

    @abstractmethod
    def depth(self) -> int:
        """Number of tasks waiting in the buffer."""
        ...
