"""
In-process pub/sub for farm events.

Topics are ``FarmEvent`` members (plain strings are accepted too) and
payloads are the pydantic models in ``coopclimate.schemas.events``.
Subscribers always receive plain JSON-ready data, never the model.

Callbacks run on a small worker pool, so a slow subscriber never stalls the
tick that published. When the queue is full the event is dropped and
counted. Each ServiceContainer owns its own bus.
"""

from __future__ import annotations

import logging
import threading
import time
from collections import Counter, defaultdict
from dataclasses import asdict, dataclass, field, is_dataclass
from enum import Enum
from queue import Empty, Full, Queue
from typing import Any, Callable

from pydantic import BaseModel

from coopclimate.enums.events import EventType

logger = logging.getLogger(__name__)

Callback = Callable[[Any], None]

DROP_WARNING_EVERY = 10
DROP_WARNING_MIN_SECONDS = 60.0


def _topic(event_name: EventType | str) -> str:
    return event_name.value if isinstance(event_name, Enum) else str(event_name)


def _plain(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if is_dataclass(data) and not isinstance(data, type):
        return asdict(data)
    return data


@dataclass
class _DropStats:
    total: int = 0
    by_topic: Counter = field(default_factory=Counter)
    unreported: int = 0
    last_warning: float = 0.0

    def add(self, topic: str) -> bool:
        """Count one drop; True when a summary warning is due."""
        self.total += 1
        self.by_topic[topic] += 1
        self.unreported += 1
        now = time.monotonic()
        if self.unreported >= DROP_WARNING_EVERY and now - self.last_warning >= DROP_WARNING_MIN_SECONDS:
            self.last_warning = now
            return True
        return False


class EventBus:
    def __init__(self, queue_size: int = 1024, worker_count: int = 2, *, autostart: bool = True) -> None:
        self.queue_size = queue_size
        self._queue: Queue = Queue(maxsize=queue_size)
        self._subscribers: dict[str, list[Callback]] = defaultdict(list)
        self._lock = threading.Lock()
        self._worker_count = max(1, worker_count)
        self._workers: list[threading.Thread] = []
        self._halt = threading.Event()
        self._drops = _DropStats()
        if autostart:
            self.start()

    # ---------------------------------------------------------------- workers

    def start(self) -> None:
        with self._lock:
            if self._workers:
                return
            self._halt.clear()
            self._workers = [
                threading.Thread(target=self._work, name=f"EventBus-{n}", daemon=True)
                for n in range(self._worker_count)
            ]
            for worker in self._workers:
                worker.start()
        logger.info("EventBus started (workers=%s queue=%s)", self._worker_count, self.queue_size)

    def stop(self, timeout: float = 2.0) -> None:
        """Let queued callbacks finish, then stop the workers."""
        with self._lock:
            workers, self._workers = self._workers, []
        if not workers:
            return
        self.drain(timeout=timeout)
        self._halt.set()
        for worker in workers:
            worker.join(timeout=timeout)
        logger.info("EventBus stopped")

    def drain(self, timeout: float = 2.0) -> bool:
        """Block until every queued callback has run; False if ``timeout`` expires first."""
        deadline = time.monotonic() + timeout
        while self._queue.unfinished_tasks:
            if time.monotonic() >= deadline:
                return False
            time.sleep(0.01)
        return True

    def _work(self) -> None:
        while not self._halt.is_set():
            try:
                topic, callback, payload = self._queue.get(timeout=0.2)
            except Empty:
                continue
            try:
                callback(payload)
            except Exception:
                logger.exception("Subscriber %r failed on %s", callback, topic)
            finally:
                self._queue.task_done()

    # ---------------------------------------------------------------- pub/sub

    def subscribe(self, event_name: EventType | str, callback: Callback) -> Callable[[], None]:
        """Register ``callback`` for a topic and return a function that unregisters it."""
        topic = _topic(event_name)
        with self._lock:
            self._subscribers[topic].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(topic, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def listener(self, event_name: EventType | str) -> Callable[[Callback], Callback]:
        """Decorator form of ``subscribe``."""

        def register(func: Callback) -> Callback:
            self.subscribe(event_name, func)
            return func

        return register

    def publish(self, event_name: EventType | str, data: Any = None) -> None:
        topic = _topic(event_name)
        payload = _plain(data)
        with self._lock:
            callbacks = list(self._subscribers.get(topic, ()))
        for callback in callbacks:
            try:
                self._queue.put_nowait((topic, callback, payload))
            except Full:
                self._dropped(topic)

    def _dropped(self, topic: str) -> None:
        with self._lock:
            warn = self._drops.add(topic)
            if warn:
                unreported, self._drops.unreported = self._drops.unreported, 0
                worst = ", ".join(f"{t}:{n}" for t, n in self._drops.by_topic.most_common(5))
        if warn:
            logger.warning(
                "EventBus queue full (size=%d): %d events dropped recently, %d total [%s]. "
                "Raise COOPCLIMATE_EVENTBUS_QUEUE_SIZE.",
                self.queue_size,
                unreported,
                self._drops.total,
                worst,
            )

    def get_metrics(self) -> dict[str, Any]:
        with self._lock:
            return {
                "queue_depth": self._queue.qsize(),
                "queue_size": self.queue_size,
                "dropped_events": self._drops.total,
                "drops_by_event_top5": dict(self._drops.by_topic.most_common(5)),
                "subscribers": sum(len(callbacks) for callbacks in self._subscribers.values()),
                "is_dropping": self._drops.unreported > 0,
            }
