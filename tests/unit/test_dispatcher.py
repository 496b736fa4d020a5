from __future__ import annotations

import threading

from geo_incident_service.common.errors import QueueError
from geo_incident_service.domain.models import DeliveryTask
from geo_incident_service.queue.dispatcher import EnqueueDispatcher
from geo_incident_service.queue.task_store import TaskStore


class _RecordingStore:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.enqueued: list[str] = []
        self.event = threading.Event()

    def enqueue(self, task: DeliveryTask) -> None:
        if self.fail:
            raise QueueError("redis down", {"task_id": task.id})
        self.enqueued.append(task.id)
        self.event.set()


def _task(user_id: str = "u1") -> DeliveryTask:
    return DeliveryTask(name="Пожар", user_id=user_id, incident_id="z1")


def test_submit_is_enqueued_by_background_thread() -> None:
    store = _RecordingStore()
    dispatcher = EnqueueDispatcher(store, buffer_size=10)
    dispatcher.start()
    try:
        task = _task()
        assert dispatcher.submit(task) is True
        assert store.event.wait(timeout=5)
        assert store.enqueued == [task.id]
    finally:
        dispatcher.stop()
    assert not dispatcher.running


def test_full_buffer_drops_without_blocking() -> None:
    store = _RecordingStore()
    dispatcher = EnqueueDispatcher(store, buffer_size=2)  # поток не запущен

    assert dispatcher.submit(_task("a")) is True
    assert dispatcher.submit(_task("b")) is True
    assert dispatcher.submit(_task("c")) is False
    assert dispatcher.pending() == 2


def test_stop_flushes_buffered_tasks() -> None:
    store = _RecordingStore()
    dispatcher = EnqueueDispatcher(store, buffer_size=10)
    first, second = _task("a"), _task("b")
    dispatcher.submit(first)
    dispatcher.submit(second)

    dispatcher.stop()

    assert store.enqueued == [first.id, second.id]
    assert dispatcher.pending() == 0


def test_enqueue_failure_is_swallowed() -> None:
    dispatcher = EnqueueDispatcher(_RecordingStore(fail=True), buffer_size=10)
    dispatcher.submit(_task())

    dispatcher.stop()  # не бросает

    assert dispatcher.pending() == 0


def test_dispatcher_writes_into_task_store(redis_client) -> None:
    store = TaskStore(redis_client)
    dispatcher = EnqueueDispatcher(store)
    task = _task()
    dispatcher.submit(task)
    dispatcher.stop()

    assert store.pending_ids() == [task.id]
    assert store.get(task.id) == task
