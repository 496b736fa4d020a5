from __future__ import annotations

import threading

import pytest

from geo_incident_service.common.errors import QueueError, TaskNotFoundError
from geo_incident_service.delivery.base import DeliveryResult
from geo_incident_service.domain.enums import DeliveryOutcome
from geo_incident_service.domain.models import DeliveryTask
from geo_incident_service.queue.task_store import TaskStore
from geo_incident_service.queue.worker import DeliveryWorker

URL = "http://hooks.local/incident"


class _FakeSender:
    def __init__(self, results: list[bool]) -> None:
        self.results = list(results)
        self.calls: list[tuple[str, int, str]] = []

    def send(self, task: DeliveryTask, target_url: str) -> DeliveryResult:
        self.calls.append((task.id, task.retry_count, target_url))
        ok = self.results.pop(0) if self.results else False
        if ok:
            return DeliveryResult(ok=True, provider="fake", status_code=200)
        return DeliveryResult(ok=False, provider="fake", status_code=500, error="boom")


class _ExplodingSender:
    def send(self, task: DeliveryTask, target_url: str) -> DeliveryResult:
        raise RuntimeError("sender bug")


def _task() -> DeliveryTask:
    return DeliveryTask(name="Пожар", user_id="u1", incident_id="z1")


@pytest.fixture()
def store(redis_client) -> TaskStore:
    return TaskStore(redis_client, poll_timeout_sec=1)


def _worker(store: TaskStore, sender, max_retries: int = 3) -> DeliveryWorker:
    return DeliveryWorker(store, sender, webhook_url=URL, max_retries=max_retries)


def test_success_acks_task(store) -> None:
    task = _task()
    store.enqueue(task)
    sender = _FakeSender([True])

    outcome = _worker(store, sender).run_once(timeout_sec=1)

    assert outcome == DeliveryOutcome.delivered
    assert sender.calls == [(task.id, 0, URL)]
    assert store.get(task.id) is None
    assert store.pending_count() == 0


def test_failure_requeues_with_incremented_counter(store) -> None:
    task = _task()
    store.enqueue(task)

    outcome = _worker(store, _FakeSender([False])).run_once(timeout_sec=1)

    assert outcome == DeliveryOutcome.retried
    assert store.pending_ids() == [task.id]
    assert store.get(task.id).retry_count == 1
    assert store.dead_count() == 0


def test_retry_exhaustion_moves_to_dlq(store) -> None:
    max_retries = 3
    task = _task()
    store.enqueue(task)
    sender = _FakeSender([])
    worker = _worker(store, sender, max_retries=max_retries)

    outcomes = [worker.run_once(timeout_sec=1) for _ in range(max_retries + 1)]

    assert outcomes == [DeliveryOutcome.retried] * max_retries + [DeliveryOutcome.dead]
    assert [c[1] for c in sender.calls] == [0, 1, 2, 3]
    assert store.dead_ids() == [task.id]
    assert store.get(task.id).retry_count == max_retries + 1
    assert store.ttl(task.id) == -1
    assert task.id not in store.pending_ids()
    assert worker.run_once(timeout_sec=1) is None


def test_zero_max_retries_goes_straight_to_dlq(store) -> None:
    task = _task()
    store.enqueue(task)

    outcome = _worker(store, _FakeSender([False]), max_retries=0).run_once(timeout_sec=1)

    assert outcome == DeliveryOutcome.dead
    assert store.get(task.id).retry_count == 1


def test_process_task_error_is_logged_and_loop_survives(store) -> None:
    store.enqueue(_task())

    assert _worker(store, _ExplodingSender()).run_once(timeout_sec=1) is None
    assert store.pending_count() == 0


def test_run_once_reraises_dequeue_errors(store, redis_client) -> None:
    redis_client.lpush(store.pending_key, "ghost")

    with pytest.raises(TaskNotFoundError):
        _worker(store, _FakeSender([True])).run_once(timeout_sec=1)


def test_run_once_with_empty_queue_returns_none(store) -> None:
    assert _worker(store, _FakeSender([True])).run_once(timeout_sec=0) is None


def test_run_exits_when_stop_is_set(store) -> None:
    stop = threading.Event()
    sender = _FakeSender([True, True])
    store.enqueue(_task())
    store.enqueue(_task())
    worker = _worker(store, sender)

    t = threading.Thread(target=worker.run, args=(stop,), daemon=True)
    t.start()
    for _ in range(50):
        if len(sender.calls) == 2:
            break
        stop.wait(0.1)
    stop.set()
    t.join(timeout=5)

    assert not t.is_alive()
    assert len(sender.calls) == 2
    assert store.pending_count() == 0


class _FlakyStore:
    """dequeue: сначала ошибка Redis, потом битый blob, потом stop."""

    pending_key = "webhook:pending"

    def __init__(self, stop: threading.Event) -> None:
        self.stop = stop
        self.calls = 0

    def dequeue(self, *, stop=None, timeout_sec=None):
        self.calls += 1
        if self.calls == 1:
            raise QueueError("redis down")
        if self.calls == 2:
            raise TaskNotFoundError("ghost")
        self.stop.set()
        return None


def test_run_survives_queue_errors() -> None:
    stop = threading.Event()
    store = _FlakyStore(stop)
    worker = DeliveryWorker(
        store, _FakeSender([]), webhook_url=URL, max_retries=1, error_backoff_sec=0
    )

    worker.run(stop)

    assert store.calls == 3
