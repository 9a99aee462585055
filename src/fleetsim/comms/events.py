# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Event payload models, one per topic.

The topic set is closed.  Each Topic maps to exactly one payload model in
TOPIC_PAYLOADS, and EventBus.publish() rejects a payload of any other model,
so a subscriber registered on Topic.TELEMETRY only ever receives a
TelemetryEvent.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Topic(str, Enum):
    TELEMETRY = "telemetry"
    ALERT = "alert"
    TASK_UPDATE = "task_update"
    TICK = "tick"


class PoseModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    theta: float = 0.0


class TelemetryEvent(BaseModel):
    """Snapshot of one robot after a telemetry tick.

    localization_confidence is the raw perturbed value; the store keeps the
    clamped one.
    """

    model_config = ConfigDict(frozen=True)

    robot_id: str
    timestamp: datetime = Field(default_factory=utc_now)
    pose: PoseModel
    battery_pct: float
    state: str
    current_task_id: Optional[str] = None
    localization_confidence: float
    speed: float


class AlertEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    robot_id: str
    severity: Literal["info", "warning", "critical"]
    message: str
    timestamp: datetime = Field(default_factory=utc_now)


class TaskUpdateEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    task_id: str
    status: str
    message: str
    robot_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=utc_now)


class TickEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    sequence: int
    timestamp: datetime = Field(default_factory=utc_now)

TOPIC_PAYLOADS: dict[Topic, type[BaseModel]] = {
    Topic.TELEMETRY: TelemetryEvent,
    Topic.ALERT: AlertEvent,
    Topic.TASK_UPDATE: TaskUpdateEvent,
    Topic.TICK: TickEvent,
}
