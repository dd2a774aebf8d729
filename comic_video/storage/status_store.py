"""Key-value store recording task progress/status/result with a TTL.

Records live under ``task:<id>:status`` as serialized JSON and expire after
the TTL; nothing deletes them explicitly.
"""

import threading
import time
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

import redis

from comic_video.jobs.models import TaskRecord


def status_key(task_id: str) -> str:
    return f"task:{task_id}:status"


class StatusStore(ABC):
    """Abstract task status store."""

    @abstractmethod
    def put(self, task: TaskRecord, ttl_seconds: int) -> None:
        """Write the full record, resetting its TTL."""
        ...

    @abstractmethod
    def get(self, task_id: str) -> Optional[TaskRecord]:
        """Return the record, or None if unknown or expired."""
        ...


class RedisStatusStore(StatusStore):
    """Status store backed by Redis SET with EX."""

    def __init__(self, client: redis.Redis):
        self._redis = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStatusStore":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def put(self, task: TaskRecord, ttl_seconds: int) -> None:
        self._redis.set(status_key(task.id), task.model_dump_json(), ex=ttl_seconds)

    def get(self, task_id: str) -> Optional[TaskRecord]:
        raw = self._redis.get(status_key(task_id))
        if raw is None:
            return None
        return TaskRecord.model_validate_json(raw)

    def ping(self) -> bool:
        return bool(self._redis.ping())


class MemoryStatusStore(StatusStore):
    """Process-local status store for development and tests.

    Stores serialized JSON so readers never share a mutable record with the
    worker writing it.
    """

    def __init__(self, clock=time.monotonic):
        self._items: Dict[str, Tuple[str, float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def put(self, task: TaskRecord, ttl_seconds: int) -> None:
        with self._lock:
            self._items[status_key(task.id)] = (
                task.model_dump_json(),
                self._clock() + ttl_seconds,
            )

    def get(self, task_id: str) -> Optional[TaskRecord]:
        key = status_key(task_id)
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            raw, expires_at = item
            if self._clock() >= expires_at:
                del self._items[key]
                return None
        return TaskRecord.model_validate_json(raw)
