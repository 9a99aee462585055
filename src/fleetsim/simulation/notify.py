# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Helpers that record a change in the store and publish it on the bus."""

from __future__ import annotations

from fleetsim.comms import AlertEvent, EventBus, TaskUpdateEvent, Topic

from .entities import Alert, Task
from .store import EntityStore


def raise_alert(
    store: EntityStore,
    bus: EventBus,
    robot_id: str,
    severity: str,
    message: str,
) -> Alert:
    """Store a new alert and publish it on Topic.ALERT."""
    alert = store.add_alert(robot_id, severity, message)
    bus.publish(
        Topic.ALERT,
        AlertEvent(
            id=alert.id,
            robot_id=alert.robot_id,
            severity=alert.severity,
            message=alert.message,
            timestamp=alert.timestamp,
        ),
    )
    return alert


def publish_task_update(bus: EventBus, task: Task, message: str) -> None:
    bus.publish(
        Topic.TASK_UPDATE,
        TaskUpdateEvent(
            task_id=task.id,
            status=task.status,
            message=message,
            robot_id=task.assigned_robot,
        ),
    )
