# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Error taxonomy for operations outside the tick loop.

Tick loops never raise these to their caller; they log and skip the entity.
"""

from __future__ import annotations


class FleetSimError(Exception):
    """Base class for all fleetsim errors."""


class NotFoundError(FleetSimError, KeyError):
    """An id does not exist in the entity store."""

    kind = "entity"

    def __init__(self, entity_id: str) -> None:
        self.entity_id = entity_id
        super().__init__(entity_id)

    def __str__(self) -> str:
        return f"{self.kind} not found: {self.entity_id}"


class RobotNotFoundError(NotFoundError):
    kind = "robot"


class TaskNotFoundError(NotFoundError):
    kind = "task"


class AlertNotFoundError(NotFoundError):
    kind = "alert"


class InvalidTransitionError(FleetSimError, ValueError):
    """The state machine forbids the requested change."""


class UnknownZoneError(FleetSimError, ValueError):
    """A task references a zone name the facility does not define."""


class UnknownFaultError(FleetSimError, ValueError):
    """Fault type is not one of the supported fault kinds."""
