# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""EventBus — typed, synchronous publish/subscribe hub.

Delivery model:
  - publish() takes a snapshot of the topic's subscribers and calls each
    handler in subscription order on the caller's thread.
  - A handler that raises is logged and skipped; the publisher never sees
    the exception and the remaining handlers still run.
  - Unsubscribing (from anywhere, including inside a handler) only affects
    later publishes.

Usage::

    bus = EventBus()
    unsubscribe = bus.subscribe(Topic.TELEMETRY, lambda evt: print(evt.robot_id))
    bus.publish(Topic.TELEMETRY, TelemetryEvent(...))
    unsubscribe()
"""

from __future__ import annotations

import threading
from typing import Any, Callable

from loguru import logger

from .events import TOPIC_PAYLOADS, Topic

Handler = Callable[[Any], None]


class _Subscription:
    __slots__ = ("topic", "handler")

    def __init__(self, topic: Topic, handler: Handler) -> None:
        self.topic = topic
        self.handler = handler


class EventBus:
    """In-process pub/sub with a closed set of topics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[Topic, list[_Subscription]] = {
            topic: [] for topic in Topic
        }

    def subscribe(self, topic: Topic | str, handler: Handler) -> Callable[[], None]:
        """Register *handler* for *topic*. Returns an idempotent unsubscribe."""
        topic = Topic(topic)
        if not callable(handler):
            raise TypeError(f"handler for {topic.value} is not callable")
        sub = _Subscription(topic, handler)
        with self._lock:
            self._subscribers[topic].append(sub)

        def unsubscribe() -> None:
            self._remove(sub)

        return unsubscribe

    # Alias used by the view layer
    on = subscribe

    def _remove(self, sub: _Subscription) -> None:
        with self._lock:
            subs = self._subscribers[sub.topic]
            for i, existing in enumerate(subs):
                if existing is sub:
                    del subs[i]
                    return

    def publish(self, topic: Topic | str, payload: Any) -> int:
        """Deliver *payload* to every current subscriber of *topic*.

        Returns the number of handlers that completed without raising.
        """
        topic = Topic(topic)
        expected = TOPIC_PAYLOADS[topic]
        if not isinstance(payload, expected):
            raise TypeError(
                f"topic {topic.value!r} expects {expected.__name__}, "
                f"got {type(payload).__name__}"
            )
        with self._lock:
            snapshot = list(self._subscribers[topic])

        delivered = 0
        for sub in snapshot:
            try:
                sub.handler(payload)
                delivered += 1
            except Exception:
                logger.exception(f"Error in event handler for {topic.value}")
        return delivered

    def unsubscribe_all(self, topic: Topic | str | None = None) -> None:
        """Drop every handler of *topic*, or of all topics when None."""
        with self._lock:
            if topic is None:
                for subs in self._subscribers.values():
                    subs.clear()
            else:
                self._subscribers[Topic(topic)].clear()

    def subscriber_count(self, topic: Topic | str) -> int:
        with self._lock:
            return len(self._subscribers[Topic(topic)])
