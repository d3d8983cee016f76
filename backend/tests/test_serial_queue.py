"""Unit tests for the serial execution queue."""
import threading
import pytest
from soundml.services.serial_queue import SerialQueue


def test_serial_queue_runs_fifo_on_one_thread():
    """Test that submitted work runs in order on the worker thread."""
    queue = SerialQueue("test-fifo")
    order = []
    threads = set()

    def work(i):
        order.append(i)
        threads.add(threading.current_thread().name)

    try:
        for i in range(50):
            assert queue.submit(work, i)
        assert queue.join(timeout=5)
    finally:
        queue.close(timeout=5)

    assert order == list(range(50))
    assert threads == {"test-fifo"}


def test_serial_queue_is_current():
    """Test worker thread detection."""
    queue = SerialQueue("test-current")
    seen = []

    try:
        queue.submit(lambda: seen.append(queue.is_current()))
        assert queue.join(timeout=5)
    finally:
        queue.close(timeout=5)

    assert seen == [True]
    assert not queue.is_current()


def test_serial_queue_survives_failing_work():
    """Test that an exception in one item does not stop later items."""
    queue = SerialQueue("test-errors")
    done = []

    def explode():
        raise RuntimeError("boom")

    try:
        queue.submit(explode)
        queue.submit(done.append, "after")
        assert queue.join(timeout=5)
    finally:
        queue.close(timeout=5)

    assert done == ["after"]


def test_serial_queue_close_drains_then_rejects():
    """Test that close runs the backlog and refuses new work."""
    queue = SerialQueue("test-close")
    gate = threading.Event()
    done = []

    queue.submit(gate.wait, 5)
    queue.submit(done.append, 1)
    gate.set()
    queue.close(timeout=5)

    assert done == [1]
    assert queue.closed
    assert not queue.submit(done.append, 2)
    assert queue.join(timeout=1)
    assert done == [1]


def test_serial_queue_join_from_worker_raises():
    """Test that joining from the worker itself is refused instead of deadlocking."""
    queue = SerialQueue("test-self-join")
    raised = []

    def join_self():
        try:
            queue.join(timeout=1)
        except RuntimeError:
            raised.append(True)

    try:
        queue.submit(join_self)
        assert queue.join(timeout=5)
    finally:
        queue.close(timeout=5)

    assert raised == [True]
