# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Demo fleet: five robots, four tasks and three alerts on the bundled
hospital facility.  Timestamps are relative to the moment of seeding.
"""

from __future__ import annotations

from datetime import timedelta

from .entities import Alert, Pose, Robot, Task, utc_now
from .facility import Facility
from .store import EntityStore


def seed_robots() -> list[Robot]:
    now = utc_now()
    return [
        Robot(
            id="robot_R07", name="R-07", status="en_route", battery=72, floor=2,
            pose=Pose(120, 180, 1.57), localization_confidence=0.95,
            current_task_id="task_001", last_seen=now, speed=0.8,
        ),
        Robot(
            id="robot_R08", name="R-08", status="idle", battery=98, floor=1,
            pose=Pose(80, 120, 0.2), localization_confidence=0.99,
            last_seen=now, speed=0.0,
        ),
        Robot(
            id="robot_R09", name="R-09", status="charging", battery=45, floor=1,
            pose=Pose(50, 50, 0.0), localization_confidence=0.97,
            last_seen=now, speed=0.0,
        ),
        Robot(
            id="robot_R10", name="R-10", status="en_route", battery=85, floor=3,
            pose=Pose(200, 150, 3.14), localization_confidence=0.92,
            current_task_id="task_003", last_seen=now, speed=1.2,
        ),
        Robot(
            id="robot_R11", name="R-11", status="error", battery=60, floor=2,
            pose=Pose(150, 100, 0.5), localization_confidence=0.75,
            last_seen=now - timedelta(minutes=5), speed=0.0,
        ),
    ]


def seed_tasks() -> list[Task]:
    now = utc_now()
    return [
        Task(
            id="task_001", requester="u_clinician", from_zone="Pharmacy",
            to_zone="Ward 5B", priority="high", payload="Medication",
            status="in_progress", assigned_robot="robot_R07",
            created_at=now - timedelta(minutes=10), eta_minutes=8,
            notes="Urgent insulin delivery",
        ),
        Task(
            id="task_002", requester="u_clinician", from_zone="Lab",
            to_zone="Ward 3A", priority="normal", payload="Sample",
            created_at=now - timedelta(minutes=5),
        ),
        Task(
            id="task_003", requester="u_operator", from_zone="Storage",
            to_zone="ICU", priority="critical", payload="Equipment",
            status="in_progress", assigned_robot="robot_R10",
            created_at=now - timedelta(minutes=15), eta_minutes=3,
        ),
        Task(
            id="task_004", requester="u_clinician", from_zone="Pharmacy",
            to_zone="ER", priority="high", payload="Medication",
            status="completed", assigned_robot="robot_R08",
            created_at=now - timedelta(hours=1),
            completed_at=now - timedelta(minutes=50),
        ),
    ]


def seed_alerts() -> list[Alert]:
    now = utc_now()
    return [
        Alert(
            id="alert_103", robot_id="robot_R09", severity="info",
            message="Battery low - Returning to charging station",
            timestamp=now - timedelta(minutes=10), acknowledged=True,
        ),
        Alert(
            id="alert_101", robot_id="robot_R07", severity="warning",
            message="Low localization confidence in Corridor B (75%)",
            timestamp=now - timedelta(minutes=3),
        ),
        Alert(
            id="alert_102", robot_id="robot_R11", severity="critical",
            message="Wheel slip detected - Robot stopped",
            timestamp=now - timedelta(minutes=1),
        ),
    ]


def seeded_store(facility: Facility | None = None) -> EntityStore:
    """Build a store holding the demo fleet on *facility* (default layout)."""
    store = EntityStore(facility or Facility.default())
    for robot in seed_robots():
        store.add_robot(robot)
    for task in seed_tasks():
        store.add_task(task)
    for alert in seed_alerts():
        store.add_existing_alert(alert)
    return store
