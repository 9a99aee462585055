# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Entity dataclasses held by the EntityStore.

Statuses are plain strings; the valid values for each field live in the
tuples below and are checked by the store on every mutation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal, Optional

RobotStatus = Literal["idle", "en_route", "charging", "error", "offline"]
TaskStatus = Literal[
    "queued", "assigned", "in_progress", "completed", "cancelled", "failed"
]
Priority = Literal["low", "normal", "high", "critical"]
Severity = Literal["info", "warning", "critical"]

ROBOT_STATUSES: tuple[str, ...] = ("idle", "en_route", "charging", "error", "offline")
TASK_STATUSES: tuple[str, ...] = (
    "queued", "assigned", "in_progress", "completed", "cancelled", "failed",
)
TERMINAL_TASK_STATUSES: frozenset[str] = frozenset({"completed", "cancelled", "failed"})
PRIORITIES: tuple[str, ...] = ("low", "normal", "high", "critical")
SEVERITIES: tuple[str, ...] = ("info", "warning", "critical")


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts is not None else None


@dataclass
class Pose:
    x: float
    y: float
    theta: float = 0.0

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y, "theta": self.theta}


@dataclass
class Robot:
    """A delivery robot as last committed by the engine."""

    id: str
    name: str
    status: RobotStatus = "idle"
    battery: float = 100.0
    floor: int = 1
    pose: Pose = field(default_factory=lambda: Pose(0.0, 0.0, 0.0))
    localization_confidence: float = 1.0
    current_task_id: Optional[str] = None
    last_seen: datetime = field(default_factory=utc_now)
    speed: float = 0.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "battery": round(self.battery, 2),
            "floor": self.floor,
            "pose": self.pose.to_dict(),
            "localization_confidence": round(self.localization_confidence, 4),
            "current_task_id": self.current_task_id,
            "last_seen": _iso(self.last_seen),
            "speed": round(self.speed, 2),
        }


@dataclass
class Task:
    id: str
    requester: str
    from_zone: str
    to_zone: str
    priority: Priority = "normal"
    payload: str = ""
    status: TaskStatus = "queued"
    assigned_robot: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    eta_minutes: Optional[float] = None
    notes: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_TASK_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "requester": self.requester,
            "from_zone": self.from_zone,
            "to_zone": self.to_zone,
            "priority": self.priority,
            "payload": self.payload,
            "status": self.status,
            "assigned_robot": self.assigned_robot,
            "created_at": _iso(self.created_at),
            "completed_at": _iso(self.completed_at),
            "eta_minutes": self.eta_minutes,
            "notes": self.notes,
        }


@dataclass
class Alert:
    id: str
    robot_id: str
    severity: Severity
    message: str
    timestamp: datetime = field(default_factory=utc_now)
    acknowledged: bool = False
    resolved: bool = False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "robot_id": self.robot_id,
            "severity": self.severity,
            "message": self.message,
            "timestamp": _iso(self.timestamp),
            "acknowledged": self.acknowledged,
            "resolved": self.resolved,
        }


@dataclass
class LogEntry:
    """One line of the engine's activity log."""

    id: str
    event_type: str
    message: str
    timestamp: datetime = field(default_factory=utc_now)
    robot_id: Optional[str] = None
    task_id: Optional[str] = None
    user_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "timestamp": _iso(self.timestamp),
            "event_type": self.event_type,
            "message": self.message,
            "robot_id": self.robot_id,
            "task_id": self.task_id,
            "user_id": self.user_id,
        }
