import threading

import pytest

from iqresample.work_queue import WorkQueue


def test_zero_capacity_rejected():
    with pytest.raises(ValueError):
        WorkQueue(0)


def test_fifo_order():
    q = WorkQueue(4)
    for item in ("a", "b", "c"):
        assert q.enqueue(item) is True
    assert [q.dequeue(), q.dequeue(), q.dequeue()] == ["a", "b", "c"]


def test_len_tracks_items():
    q = WorkQueue(3)
    q.enqueue(1)
    q.enqueue(2)
    assert len(q) == 2
    q.dequeue()
    assert len(q) == 1


def test_try_dequeue_empty_returns_none():
    q = WorkQueue(2)
    assert q.try_dequeue() is None
    q.enqueue(7)
    assert q.try_dequeue() == 7
    assert q.try_dequeue() is None


def test_enqueue_after_shutdown_fails():
    q = WorkQueue(2)
    q.signal_shutdown()
    assert q.enqueue(1) is False
    assert len(q) == 0


def test_dequeue_drains_after_shutdown_then_none():
    q = WorkQueue(3)
    q.enqueue(1)
    q.enqueue(2)
    q.signal_shutdown()
    assert q.dequeue() == 1
    assert q.dequeue() == 2
    assert q.dequeue() is None


def test_try_dequeue_refuses_after_shutdown():
    q = WorkQueue(3)
    q.enqueue(1)
    q.signal_shutdown()
    assert q.try_dequeue() is None
    assert len(q) == 1


def test_blocked_dequeue_released_by_shutdown():
    q = WorkQueue(1)
    results = []
    worker = threading.Thread(target=lambda: results.append(q.dequeue()))
    worker.start()
    q.signal_shutdown()
    worker.join(timeout=5)
    assert not worker.is_alive()
    assert results == [None]


def test_blocked_enqueue_released_by_shutdown():
    q = WorkQueue(1)
    q.enqueue("full")
    results = []
    worker = threading.Thread(target=lambda: results.append(q.enqueue("more")))
    worker.start()
    q.signal_shutdown()
    worker.join(timeout=5)
    assert not worker.is_alive()
    assert results == [False]


def test_blocked_enqueue_proceeds_when_space_frees():
    q = WorkQueue(1)
    q.enqueue("first")
    results = []
    worker = threading.Thread(target=lambda: results.append(q.enqueue("second")))
    worker.start()
    assert q.dequeue() == "first"
    worker.join(timeout=5)
    assert results == [True]
    assert q.dequeue() == "second"


def test_producer_consumer_preserves_all_items():
    q = WorkQueue(4)
    received = []

    def consume():
        while True:
            item = q.dequeue()
            if item is None:
                break
            received.append(item)

    consumer = threading.Thread(target=consume)
    consumer.start()
    for i in range(100):
        assert q.enqueue(i)
    while len(q):
        pass
    q.signal_shutdown()
    consumer.join(timeout=5)
    assert received == list(range(100))