# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""EntityStore — authoritative in-memory state for robots, tasks and alerts.

The store is owned by one FleetSimulation.  Readers get copies, never the
live objects, so the only way to change state is through the mutators
below.  Every mutator validates ids and enumerations and raises from the
errors module instead of silently ignoring a bad request.

Robot/task binding is changed only by assign_task(), complete_task(),
cancel_task(), fail_task() and release_robot(); together they keep the
invariant that a robot has current_task_id set exactly when it is en_route
and the referenced task is in_progress with assigned_robot == robot.id.

Tasks and alerts are never removed, only status-flagged.  Waypoint paths
for moving robots live here too, so they survive a clock restart.
"""

from __future__ import annotations

import threading
import uuid
from dataclasses import fields, replace
from typing import TYPE_CHECKING, Iterable, Optional

from loguru import logger

from .entities import (
    PRIORITIES,
    ROBOT_STATUSES,
    SEVERITIES,
    TASK_STATUSES,
    Alert,
    LogEntry,
    Pose,
    Robot,
    Task,
    utc_now,
)
from .errors import (
    AlertNotFoundError,
    InvalidTransitionError,
    RobotNotFoundError,
    TaskNotFoundError,
    UnknownZoneError,
)

if TYPE_CHECKING:
    from .facility import Facility

_ROBOT_FIELDS = {f.name for f in fields(Robot)}
_TASK_FIELDS = {f.name for f in fields(Task)}

# Binding fields only move through the dedicated transition methods
_ROBOT_PROTECTED = {"id", "current_task_id"}
_TASK_PROTECTED = {"id", "assigned_robot", "status", "eta_minutes", "completed_at"}

_CANCELLABLE = {"queued", "assigned", "in_progress"}


def _new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def _clamp_battery(value: float) -> float:
    return max(0.0, min(100.0, float(value)))


def _copy_robot(robot: Robot) -> Robot:
    return replace(robot, pose=replace(robot.pose))


class EntityStore:
    """Robots, tasks, alerts, waypoint paths and the activity log."""

    def __init__(self, facility: Facility | None = None) -> None:
        self._lock = threading.RLock()
        self._facility = facility
        self._robots: dict[str, Robot] = {}
        self._tasks: dict[str, Task] = {}
        self._alerts: dict[str, Alert] = {}
        self._paths: dict[str, list[tuple[float, float]]] = {}
        self._logs: list[LogEntry] = []

    @property
    def facility(self) -> Facility | None:
        return self._facility

    # -- Seeding -----------------------------------------------------------

    def add_robot(self, robot: Robot) -> Robot:
        if robot.status not in ROBOT_STATUSES:
            raise ValueError(f"invalid robot status: {robot.status!r}")
        with self._lock:
            if robot.id in self._robots:
                raise ValueError(f"duplicate robot id: {robot.id}")
            stored = _copy_robot(robot)
            stored.battery = _clamp_battery(stored.battery)
            self._robots[robot.id] = stored
            return _copy_robot(stored)

    def add_task(self, task: Task) -> Task:
        if task.status not in TASK_STATUSES:
            raise ValueError(f"invalid task status: {task.status!r}")
        if task.priority not in PRIORITIES:
            raise ValueError(f"invalid task priority: {task.priority!r}")
        if task.status == "in_progress":
            if task.assigned_robot is None or task.eta_minutes is None:
                raise InvalidTransitionError(
                    f"in_progress task {task.id} needs an assigned robot and an ETA"
                )
        elif task.eta_minutes is not None:
            raise InvalidTransitionError(
                f"task {task.id} is {task.status}, ETA exists only while in_progress"
            )
        with self._lock:
            if task.id in self._tasks:
                raise ValueError(f"duplicate task id: {task.id}")
            self._tasks[task.id] = replace(task)
            return replace(task)

    def add_existing_alert(self, alert: Alert) -> Alert:
        if alert.severity not in SEVERITIES:
            raise ValueError(f"invalid alert severity: {alert.severity!r}")
        if alert.resolved and not alert.acknowledged:
            raise ValueError(f"alert {alert.id} is resolved but not acknowledged")
        with self._lock:
            if alert.id in self._alerts:
                raise ValueError(f"duplicate alert id: {alert.id}")
            self._alerts[alert.id] = replace(alert)
            return replace(alert)

    # -- Robots ------------------------------------------------------------

    def robots(self) -> list[Robot]:
        """All robots in seeding order."""
        with self._lock:
            return [_copy_robot(r) for r in self._robots.values()]

    def robot(self, robot_id: str) -> Robot:
        with self._lock:
            return _copy_robot(self._require_robot(robot_id))

    def has_robot(self, robot_id: str) -> bool:
        with self._lock:
            return robot_id in self._robots

    def update_robot(self, robot_id: str, **changes) -> Robot:
        """Apply field *changes* to a robot; battery is clamped to [0, 100]."""
        unknown = set(changes) - _ROBOT_FIELDS
        if unknown:
            raise ValueError(f"unknown robot fields: {sorted(unknown)}")
        protected = set(changes) & _ROBOT_PROTECTED
        if protected:
            raise InvalidTransitionError(
                f"robot fields {sorted(protected)} change only through task transitions"
            )
        if "status" in changes and changes["status"] not in ROBOT_STATUSES:
            raise ValueError(f"invalid robot status: {changes['status']!r}")
        if "battery" in changes:
            changes["battery"] = _clamp_battery(changes["battery"])
        if "pose" in changes:
            pose = changes["pose"]
            changes["pose"] = Pose(pose.x, pose.y, pose.theta)
        with self._lock:
            robot = self._require_robot(robot_id)
            if changes.get("status", "en_route") != "en_route" and robot.current_task_id:
                raise InvalidTransitionError(
                    f"robot {robot_id} is bound to task {robot.current_task_id}; "
                    "release it before leaving en_route"
                )
            updated = replace(robot, **changes)
            self._robots[robot_id] = updated
            return _copy_robot(updated)

    def _require_robot(self, robot_id: str) -> Robot:
        robot = self._robots.get(robot_id)
        if robot is None:
            raise RobotNotFoundError(robot_id)
        return robot

    # -- Tasks -------------------------------------------------------------

    def tasks(self, status: str | None = None) -> list[Task]:
        """Tasks in creation order, optionally filtered by status."""
        with self._lock:
            return [
                replace(t) for t in self._tasks.values()
                if status is None or t.status == status
            ]

    def task(self, task_id: str) -> Task:
        with self._lock:
            return replace(self._require_task(task_id))

    def update_task(self, task_id: str, **changes) -> Task:
        """Edit descriptive task fields (zones, priority, payload, notes)."""
        unknown = set(changes) - _TASK_FIELDS
        if unknown:
            raise ValueError(f"unknown task fields: {sorted(unknown)}")
        protected = set(changes) & _TASK_PROTECTED
        if protected:
            raise InvalidTransitionError(
                f"task fields {sorted(protected)} change only through task transitions"
            )
        if "priority" in changes and changes["priority"] not in PRIORITIES:
            raise ValueError(f"invalid task priority: {changes['priority']!r}")
        for key in ("from_zone", "to_zone"):
            if key in changes:
                self._check_zone(changes[key])
        with self._lock:
            task = self._require_task(task_id)
            updated = replace(task, **changes)
            self._tasks[task_id] = updated
            return replace(updated)

    def create_task(
        self,
        requester: str,
        from_zone: str,
        to_zone: str,
        priority: str = "normal",
        payload: str = "",
        notes: Optional[str] = None,
    ) -> Task:
        """Append a new queued task. Zones are validated against the facility."""
        if priority not in PRIORITIES:
            raise ValueError(f"invalid task priority: {priority!r}")
        self._check_zone(from_zone)
        self._check_zone(to_zone)
        task = Task(
            id=_new_id("task"),
            requester=requester,
            from_zone=from_zone,
            to_zone=to_zone,
            priority=priority,
            payload=payload,
            notes=notes,
        )
        with self._lock:
            self._tasks[task.id] = task
            self._log(
                "task_created",
                f"New delivery task created: {from_zone} -> {to_zone}",
                task_id=task.id,
                user_id=requester,
            )
        logger.debug(f"Task {task.id} queued: {from_zone} -> {to_zone} ({priority})")
        return replace(task)

    def assign_task(self, task_id: str, robot_id: str, eta_minutes: float) -> Task:
        """Bind a queued task to an idle robot and start it."""
        with self._lock:
            task = self._require_task(task_id)
            robot = self._require_robot(robot_id)
            if task.status != "queued":
                raise InvalidTransitionError(
                    f"task {task_id} is {task.status}, only queued tasks can be assigned"
                )
            if robot.status != "idle":
                raise InvalidTransitionError(
                    f"robot {robot_id} is {robot.status}, only idle robots can take tasks"
                )
            task.status = "in_progress"
            task.assigned_robot = robot_id
            task.eta_minutes = float(eta_minutes)
            robot.status = "en_route"
            robot.current_task_id = task_id
            self._log(
                "task_assigned",
                f"Task assigned to robot {robot.name}",
                robot_id=robot_id,
                task_id=task_id,
            )
            return replace(task)

    def set_eta(self, task_id: str, eta_minutes: float) -> Task:
        with self._lock:
            task = self._require_task(task_id)
            if task.status != "in_progress":
                raise InvalidTransitionError(
                    f"task {task_id} is {task.status}, ETA exists only while in_progress"
                )
            task.eta_minutes = float(eta_minutes)
            return replace(task)

    def complete_task(self, task_id: str) -> Task:
        """Finish an in-progress task and release its robot to idle."""
        with self._lock:
            task = self._require_task(task_id)
            if task.status != "in_progress":
                raise InvalidTransitionError(
                    f"task {task_id} is {task.status}, only in_progress tasks complete"
                )
            task.status = "completed"
            task.completed_at = utc_now()
            task.eta_minutes = None
            self._unbind_robot(task, new_status="idle")
            self._log(
                "task_completed",
                f"Delivery completed: {task.from_zone} -> {task.to_zone}",
                robot_id=task.assigned_robot,
                task_id=task_id,
            )
            return replace(task)

    def cancel_task(self, task_id: str) -> Task:
        with self._lock:
            task = self._require_task(task_id)
            if task.status not in _CANCELLABLE:
                raise InvalidTransitionError(
                    f"task {task_id} is {task.status} and cannot be cancelled"
                )
            task.status = "cancelled"
            task.eta_minutes = None
            self._unbind_robot(task, new_status="idle")
            self._log("task_cancelled", "Task cancelled", task_id=task_id)
            return replace(task)

    def fail_task(self, task_id: str, reason: str) -> Task:
        with self._lock:
            task = self._require_task(task_id)
            if task.is_terminal:
                raise InvalidTransitionError(
                    f"task {task_id} is already {task.status}"
                )
            task.status = "failed"
            task.eta_minutes = None
            task.notes = f"{task.notes}; {reason}" if task.notes else reason
            self._unbind_robot(task, new_status="idle")
            self._log("task_failed", reason, task_id=task_id)
            return replace(task)

    def release_robot(self, robot_id: str) -> Optional[Task]:
        """Put a robot's in-progress task back in the queue.

        The robot keeps its status; the caller sets the new one.  Returns
        the requeued task, or None if the robot was not bound.
        """
        with self._lock:
            robot = self._require_robot(robot_id)
            task_id = robot.current_task_id
            robot.current_task_id = None
            if task_id is None:
                return None
            task = self._tasks.get(task_id)
            if task is None or task.assigned_robot != robot_id:
                return None
            task.status = "queued"
            task.assigned_robot = None
            task.eta_minutes = None
            self._log(
                "task_requeued",
                f"Task returned to queue, robot {robot.name} unavailable",
                robot_id=robot_id,
                task_id=task_id,
            )
            return replace(task)

    def _unbind_robot(self, task: Task, new_status: str) -> None:
        if task.assigned_robot is None:
            return
        robot = self._robots.get(task.assigned_robot)
        if robot is None or robot.current_task_id != task.id:
            return
        robot.current_task_id = None
        if robot.status == "en_route":
            robot.status = new_status

    def _require_task(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def _check_zone(self, zone_name: str) -> None:
        if self._facility is not None and not self._facility.has_zone(zone_name):
            raise UnknownZoneError(f"unknown zone: {zone_name!r}")

    # -- Alerts ------------------------------------------------------------

    def add_alert(self, robot_id: str, severity: str, message: str) -> Alert:
        if severity not in SEVERITIES:
            raise ValueError(f"invalid alert severity: {severity!r}")
        with self._lock:
            self._require_robot(robot_id)
            alert = Alert(
                id=_new_id("alert"),
                robot_id=robot_id,
                severity=severity,
                message=message,
            )
            self._alerts[alert.id] = alert
            return replace(alert)

    def alerts(self, unacknowledged_only: bool = False) -> list[Alert]:
        """Alerts newest first."""
        with self._lock:
            return [
                replace(a) for a in reversed(self._alerts.values())
                if not (unacknowledged_only and a.acknowledged)
            ]

    def alert(self, alert_id: str) -> Alert:
        with self._lock:
            return replace(self._require_alert(alert_id))

    def acknowledge_alert(self, alert_id: str) -> Alert:
        with self._lock:
            alert = self._require_alert(alert_id)
            alert.acknowledged = True
            return replace(alert)

    def resolve_alert(self, alert_id: str) -> Alert:
        with self._lock:
            alert = self._require_alert(alert_id)
            alert.acknowledged = True
            alert.resolved = True
            return replace(alert)

    def _require_alert(self, alert_id: str) -> Alert:
        alert = self._alerts.get(alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    # -- Waypoint paths ----------------------------------------------------

    def path(self, robot_id: str) -> list[tuple[float, float]]:
        with self._lock:
            return list(self._paths.get(robot_id, ()))

    def set_path(self, robot_id: str, points: Iterable[tuple[float, float]]) -> None:
        with self._lock:
            self._require_robot(robot_id)
            self._paths[robot_id] = [(float(x), float(y)) for x, y in points]

    def clear_path(self, robot_id: str) -> None:
        with self._lock:
            self._paths.pop(robot_id, None)

    # -- Activity log ------------------------------------------------------

    def log(
        self,
        event_type: str,
        message: str,
        robot_id: str | None = None,
        task_id: str | None = None,
        user_id: str | None = None,
    ) -> LogEntry:
        with self._lock:
            return replace(self._log(event_type, message, robot_id, task_id, user_id))

    def _log(
        self,
        event_type: str,
        message: str,
        robot_id: str | None = None,
        task_id: str | None = None,
        user_id: str | None = None,
    ) -> LogEntry:
        entry = LogEntry(
            id=_new_id("log"),
            event_type=event_type,
            message=message,
            robot_id=robot_id,
            task_id=task_id,
            user_id=user_id,
        )
        self._logs.append(entry)
        return entry

    def logs(
        self,
        event_type: str | None = None,
        robot_id: str | None = None,
        task_id: str | None = None,
        user_id: str | None = None,
    ) -> list[LogEntry]:
        """Activity log newest first, filtered on any given field."""
        with self._lock:
            return [
                replace(e) for e in reversed(self._logs)
                if (event_type is None or e.event_type == event_type)
                and (robot_id is None or e.robot_id == robot_id)
                and (task_id is None or e.task_id == task_id)
                and (user_id is None or e.user_id == user_id)
            ]

    # -- Consistency -------------------------------------------------------

    def binding_violations(self) -> list[str]:
        """Describe every robot/task pair that breaks the binding invariant."""
        problems: list[str] = []
        with self._lock:
            bound = {
                t.assigned_robot: t for t in self._tasks.values()
                if t.status == "in_progress" and t.assigned_robot is not None
            }
            for robot in self._robots.values():
                task = bound.get(robot.id)
                if robot.current_task_id is None:
                    if task is not None:
                        problems.append(
                            f"{robot.id} has no task but {task.id} is in_progress on it"
                        )
                    continue
                if robot.status != "en_route":
                    problems.append(
                        f"{robot.id} is {robot.status} with task {robot.current_task_id}"
                    )
                if task is None or task.id != robot.current_task_id:
                    problems.append(
                        f"{robot.id} points at {robot.current_task_id} which is not "
                        "in_progress on it"
                    )
            for task in self._tasks.values():
                if (task.eta_minutes is not None) != (task.status == "in_progress"):
                    problems.append(f"{task.id} is {task.status} with eta {task.eta_minutes}")
        return problems
