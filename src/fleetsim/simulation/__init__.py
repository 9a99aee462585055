# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Simulation subsystem — entity store, telemetry, scheduling, faults, clock."""
from .clock import SimulationClock
from .engine import FleetSimulation
from .entities import Alert, LogEntry, Pose, Robot, Task
from .errors import (
    AlertNotFoundError,
    FleetSimError,
    InvalidTransitionError,
    NotFoundError,
    RobotNotFoundError,
    TaskNotFoundError,
    UnknownFaultError,
    UnknownZoneError,
)
from .facility import Bounds, Facility, FloorMap, Zone
from .faults import FaultController
from .scheduler import TaskScheduler
from .seed import seeded_store
from .store import EntityStore
from .telemetry import TelemetryGenerator

__all__ = [
    "Alert",
    "AlertNotFoundError",
    "Bounds",
    "EntityStore",
    "Facility",
    "FaultController",
    "FleetSimError",
    "FleetSimulation",
    "FloorMap",
    "InvalidTransitionError",
    "LogEntry",
    "NotFoundError",
    "Pose",
    "Robot",
    "RobotNotFoundError",
    "SimulationClock",
    "Task",
    "TaskNotFoundError",
    "TaskScheduler",
    "TelemetryGenerator",
    "UnknownFaultError",
    "UnknownZoneError",
    "Zone",
    "seeded_store",
]
