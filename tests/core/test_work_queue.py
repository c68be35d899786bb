"""Tests for the bounded, closable work queue."""

import threading
import time

import pytest

from hyperbench.work_queue import QueueClosed, WorkQueue


class TestWorkQueue:
    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            WorkQueue(0)

    def test_fifo_order(self):
        q = WorkQueue(3)
        for item in ("a", "b", "c"):
            q.put(item)
        assert [q.get(), q.get(), q.get()] == ["a", "b", "c"]

    def test_put_blocks_when_full(self):
        q = WorkQueue(1)
        q.put(1)
        done = threading.Event()

        def producer():
            q.put(2)
            done.set()

        t = threading.Thread(target=producer)
        t.start()
        assert not done.wait(0.1)
        assert q.get() == 1
        assert done.wait(1.0)
        t.join()
        assert q.get() == 2

    def test_close_drains_remaining_items_first(self):
        q = WorkQueue(2)
        q.put("x")
        q.put("y")
        q.close()
        assert q.get() == "x"
        assert q.get() == "y"
        with pytest.raises(QueueClosed):
            q.get()

    def test_put_after_close_raises(self):
        q = WorkQueue(1)
        q.close()
        with pytest.raises(QueueClosed):
            q.put("late")

    def test_close_wakes_blocked_consumers(self):
        q = WorkQueue(1)
        outcomes = []

        def consumer():
            try:
                q.get()
            except QueueClosed:
                outcomes.append("closed")

        threads = [threading.Thread(target=consumer) for _ in range(4)]
        for t in threads:
            t.start()
        time.sleep(0.05)
        q.close()
        for t in threads:
            t.join(timeout=1.0)
        assert outcomes == ["closed"] * 4

    def test_close_is_idempotent(self):
        q = WorkQueue(1)
        q.close()
        q.close()
        assert q.closed
