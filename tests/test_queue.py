"""Tests for the bounded in-process task queue and its worker pool."""

import threading

import pytest

from comic_video.errors import QueueFullError
from comic_video.jobs.in_process_queue import InProcessQueue
from comic_video.jobs.models import TaskRecord, TaskType


def make_task(n: int) -> TaskRecord:
    return TaskRecord(type=TaskType.RENDER, params={"n": n})


def test_single_worker_preserves_fifo_order():
    q = InProcessQueue(capacity=10, poll_interval=0.05)
    seen = []
    done = threading.Event()

    def handler(task):
        seen.append(task.params["n"])
        if len(seen) == 5:
            done.set()

    for n in range(5):
        q.enqueue(make_task(n))
    q.start(1, handler)
    try:
        assert done.wait(5)
    finally:
        q.stop()
    assert seen == [0, 1, 2, 3, 4]


def test_full_buffer_rejects_instead_of_dropping():
    q = InProcessQueue(capacity=2, name="render", enqueue_timeout=0)
    q.enqueue(make_task(1))
    q.enqueue(make_task(2))
    with pytest.raises(QueueFullError, match="render queue is full"):
        q.enqueue(make_task(3))
    assert q.depth() == 2


def test_enqueue_times_out_when_buffer_stays_full():
    q = InProcessQueue(capacity=1)
    q.enqueue(make_task(1))
    with pytest.raises(QueueFullError):
        q.enqueue(make_task(2), timeout=0.05)


def test_handler_crash_does_not_kill_worker():
    """A raising handler is logged; the same worker keeps taking tasks."""
    q = InProcessQueue(capacity=10, poll_interval=0.05)
    handled = []
    done = threading.Event()

    def handler(task):
        handled.append(task.params["n"])
        if task.params["n"] == 0:
            raise RuntimeError("boom")
        done.set()

    q.enqueue(make_task(0))
    q.enqueue(make_task(1))
    q.start(1, handler)
    try:
        assert done.wait(5)
    finally:
        q.stop()
    assert handled == [0, 1]


def test_handler_is_not_retried():
    q = InProcessQueue(capacity=10, poll_interval=0.05)
    calls = []
    second = threading.Event()

    def handler(task):
        calls.append(task.id)
        if task.params["n"] == 1:
            second.set()
            return
        raise RuntimeError("fails once")

    failing = make_task(0)
    q.enqueue(failing)
    q.enqueue(make_task(1))
    q.start(1, handler)
    try:
        assert second.wait(5)
    finally:
        q.stop()
    assert calls.count(failing.id) == 1


def test_stop_discards_buffered_tasks():
    q = InProcessQueue(capacity=5)
    for n in range(3):
        q.enqueue(make_task(n))
    q.stop()
    assert q.depth() == 0


def test_start_launches_requested_workers():
    q = InProcessQueue(capacity=5, name="narrative", poll_interval=0.05)
    q.start(3, lambda task: None)
    try:
        assert q.worker_count == 3
    finally:
        q.stop()
    assert q.worker_count == 0


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        InProcessQueue(capacity=0)


def test_enqueue_blocks_until_a_slot_frees():
    q = InProcessQueue(capacity=1, poll_interval=0.05)
    started = threading.Event()
    gate = threading.Event()
    handled = []
    all_done = threading.Event()
    errors = []

    def handler(task):
        started.set()
        gate.wait(5)
        handled.append(task.params["n"])
        if len(handled) == 3:
            all_done.set()

    q.start(1, handler)
    try:
        q.enqueue(make_task(0))
        assert started.wait(5)
        q.enqueue(make_task(1))  # buffer now full

        def producer():
            try:
                q.enqueue(make_task(2), timeout=5)
            except QueueFullError as e:
                errors.append(e)

        blocked = threading.Thread(target=producer)
        blocked.start()
        blocked.join(0.2)
        assert blocked.is_alive()

        gate.set()
        blocked.join(5)
        assert not blocked.is_alive()
        assert all_done.wait(5)
    finally:
        gate.set()
        q.stop()
    assert errors == []
    assert handled == [0, 1, 2]


def test_concurrent_producers_and_workers_handle_each_task_once():
    q = InProcessQueue(capacity=10, poll_interval=0.05, enqueue_timeout=10)
    lock = threading.Lock()
    handled = []
    total = 4 * 50
    all_done = threading.Event()

    def handler(task):
        with lock:
            handled.append(task.params["n"])
            if len(handled) == total:
                all_done.set()

    def produce(base):
        for n in range(base, base + 50):
            q.enqueue(make_task(n))

    q.start(4, handler)
    producers = [threading.Thread(target=produce, args=(p * 50,)) for p in range(4)]
    try:
        for t in producers:
            t.start()
        for t in producers:
            t.join(10)
        assert all_done.wait(10)
    finally:
        q.stop()
    assert sorted(handled) == list(range(total))
