"""In-process task queue backed by a bounded FIFO and a fixed thread pool.

Each worker takes one task, runs the handler to completion, then takes the
next. No Redis or Celery needed; nothing survives a restart.
"""

import logging
import queue
import threading
import time
from typing import List, Optional

from comic_video.errors import QueueFullError
from comic_video.jobs.dispatcher import TaskHandler, TaskQueue
from comic_video.jobs.models import TaskRecord

logger = logging.getLogger(__name__)


class InProcessQueue(TaskQueue):
    """Bounded in-memory buffer drained by ``worker_count`` threads."""

    def __init__(
        self,
        capacity: int,
        name: str = "tasks",
        enqueue_timeout: Optional[float] = None,
        poll_interval: float = 0.5,
    ):
        """
        capacity: maximum number of buffered tasks (must be >= 1).
        enqueue_timeout: default seconds enqueue() blocks on a full buffer;
            None blocks indefinitely, 0 rejects immediately.
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.name = name
        self.capacity = capacity
        self._queue: "queue.Queue[TaskRecord]" = queue.Queue(maxsize=capacity)
        self._enqueue_timeout = enqueue_timeout
        self._poll_interval = poll_interval
        self._threads: List[threading.Thread] = []
        self._running = threading.Event()

    def enqueue(self, task: TaskRecord, timeout: Optional[float] = None) -> None:
        if timeout is None:
            timeout = self._enqueue_timeout
        try:
            if timeout is not None and timeout <= 0:
                self._queue.put_nowait(task)
            else:
                self._queue.put(task, block=True, timeout=timeout)
        except queue.Full:
            raise QueueFullError(
                f"{self.name} queue is full ({self.capacity} tasks buffered)"
            ) from None
        logger.debug("Enqueued %s task %s on %s", task.type.value, task.id, self.name)

    def start(self, worker_count: int, handler: TaskHandler) -> None:
        if worker_count < 1:
            raise ValueError("worker_count must be at least 1")
        if self._running.is_set():
            raise RuntimeError(f"{self.name} workers already started")
        self._running.set()
        for i in range(worker_count):
            thread = threading.Thread(
                target=self._worker_loop,
                args=(handler,),
                name=f"{self.name}-worker-{i}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)
        logger.info("Started %d %s worker(s), capacity %d", worker_count, self.name, self.capacity)

    def stop(self, join_timeout: float = 5.0) -> None:
        self._running.clear()
        deadline = time.monotonic() + join_timeout
        for thread in self._threads:
            thread.join(timeout=max(0.0, deadline - time.monotonic()))
        self._threads = []
        dropped = 0
        while True:
            try:
                self._queue.get_nowait()
            except queue.Empty:
                break
            dropped += 1
        if dropped:
            logger.warning("Discarded %d queued %s task(s) on shutdown", dropped, self.name)

    def depth(self) -> int:
        return self._queue.qsize()

    @property
    def worker_count(self) -> int:
        return len(self._threads)

    def _worker_loop(self, handler: TaskHandler) -> None:
        """Process tasks one at a time until stopped."""
        while self._running.is_set():
            try:
                task = self._queue.get(timeout=self._poll_interval)
            except queue.Empty:
                continue

            try:
                handler(task)
            except Exception:
                # No retry, no re-enqueue: log and move on to the next task.
                logger.exception("Handler crashed on %s task %s", task.type.value, task.id)
            finally:
                self._queue.task_done()
