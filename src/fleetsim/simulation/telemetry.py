# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""TelemetryGenerator — per-robot kinematics, battery and localization.

Once per telemetry tick every robot is updated:

  1. en_route robots walk a random waypoint path (generated lazily, kept in
     the store) at 3 units x speed multiplier per tick.  A waypoint closer
     than 5 units is popped instead of moved toward; an exhausted path is
     regenerated from the current pose.
  2. Battery drains 0.02 per tick en_route and gains 0.5 per tick charging.
  3. Localization confidence takes +-0.01 of noise.  The event carries the
     raw value, the store keeps it clamped to [0.7, 1.0].
  4. The telemetry event is published, then the values are committed.
  5. Post-commit rules: below 20% the robot heads to charge (its task goes
     back to the queue), and a charging robot at 95% or more is topped up
     to 100 and set idle.

A failure on one robot is logged and the rest of the fleet still ticks.
"""

from __future__ import annotations

import math
import random

from loguru import logger

from fleetsim.comms import EventBus, PoseModel, TelemetryEvent, Topic
from fleetsim.config import SimulationConfig

from .entities import Pose, Robot
from .facility import Bounds
from .notify import publish_task_update, raise_alert
from .store import EntityStore

PATH_POINTS = 10
PATH_JITTER = 20.0
STEP_LENGTH = 3.0
ARRIVAL_THRESHOLD = 5.0
SPEED_RANGE = (0.8, 1.2)

DRAIN_PER_TICK = 0.02
CHARGE_PER_TICK = 0.5
CONFIDENCE_NOISE = 0.01
CONFIDENCE_RANGE = (0.7, 1.0)

LOW_BATTERY_PCT = 20.0
FULL_CHARGE_PCT = 95.0


class TelemetryGenerator:
    """Advances robot state by one tick and publishes telemetry."""

    def __init__(
        self,
        store: EntityStore,
        bus: EventBus,
        config: SimulationConfig | None = None,
        rng: random.Random | None = None,
        bounds: Bounds | None = None,
    ) -> None:
        self._store = store
        self._bus = bus
        self.config = config or SimulationConfig()
        self._rng = rng or random.Random()
        if bounds is None and store.facility is not None:
            bounds = store.facility.bounds
        self._bounds = bounds or Bounds()

    # -- Paths -------------------------------------------------------------

    def generate_path(
        self, start: tuple[float, float], points: int = PATH_POINTS
    ) -> list[tuple[float, float]]:
        """Random walk of *points* waypoints from *start*, clamped to bounds."""
        path: list[tuple[float, float]] = []
        x, y = start
        for _ in range(points):
            x, y = self._bounds.clamp(
                x + self._rng.uniform(-PATH_JITTER, PATH_JITTER),
                y + self._rng.uniform(-PATH_JITTER, PATH_JITTER),
            )
            path.append((x, y))
        return path

    def _advance(self, robot: Robot) -> tuple[Pose, float]:
        """Move an en_route robot one step along its path."""
        path = self._store.path(robot.id)
        if not path:
            path = self.generate_path((robot.pose.x, robot.pose.y))
            self._store.set_path(robot.id, path)

        tx, ty = path[0]
        dx = tx - robot.pose.x
        dy = ty - robot.pose.y
        dist = math.hypot(dx, dy)

        if dist < ARRIVAL_THRESHOLD:
            path.pop(0)
            if not path:
                path = self.generate_path((robot.pose.x, robot.pose.y))
            self._store.set_path(robot.id, path)
            return robot.pose, robot.speed

        step = min(STEP_LENGTH * self.config.speed_multiplier, dist)
        pose = Pose(
            x=robot.pose.x + dx / dist * step,
            y=robot.pose.y + dy / dist * step,
            theta=math.atan2(dy, dx),
        )
        return pose, self._rng.uniform(*SPEED_RANGE)

    # -- Tick --------------------------------------------------------------

    def tick(self) -> list[TelemetryEvent]:
        events: list[TelemetryEvent] = []
        for robot in self._store.robots():
            try:
                events.append(self.update_robot(robot))
            except Exception:
                logger.exception(f"Telemetry update failed for {robot.id}, skipping")
        return events

    def update_robot(self, robot: Robot) -> TelemetryEvent:
        pose, speed = robot.pose, robot.speed
        if robot.status == "en_route":
            pose, speed = self._advance(robot)

        if robot.status == "en_route":
            drain = DRAIN_PER_TICK
        elif robot.status == "charging":
            drain = -CHARGE_PER_TICK
        else:
            drain = 0.0
        battery = max(0.0, min(100.0, robot.battery - drain))

        raw_confidence = robot.localization_confidence + self._rng.uniform(
            -CONFIDENCE_NOISE, CONFIDENCE_NOISE
        )

        event = TelemetryEvent(
            robot_id=robot.id,
            pose=PoseModel(x=pose.x, y=pose.y, theta=pose.theta),
            battery_pct=battery,
            state=robot.status,
            current_task_id=robot.current_task_id,
            localization_confidence=raw_confidence,
            speed=speed,
        )
        self._bus.publish(Topic.TELEMETRY, event)

        lo, hi = CONFIDENCE_RANGE
        committed = self._store.update_robot(
            robot.id,
            pose=pose,
            battery=battery,
            localization_confidence=max(lo, min(hi, raw_confidence)),
            speed=speed,
            last_seen=event.timestamp,
        )
        self._apply_battery_rules(committed)
        return event

    def _apply_battery_rules(self, robot: Robot) -> None:
        if robot.battery < LOW_BATTERY_PCT and robot.status != "charging":
            requeued = self._store.release_robot(robot.id)
            if requeued is not None:
                publish_task_update(
                    self._bus, requeued,
                    f"{robot.name} low on battery, task returned to queue",
                )
            self._store.clear_path(robot.id)
            self._store.update_robot(robot.id, status="charging")
            logger.debug(f"{robot.id} battery {robot.battery:.1f}%, sending to charge")
            raise_alert(
                self._store, self._bus, robot.id, "info",
                f"{robot.name} returning to charging station "
                f"(battery: {round(robot.battery)}%)",
            )
        elif robot.status == "charging" and robot.battery >= FULL_CHARGE_PCT:
            self._store.update_robot(robot.id, status="idle", battery=100.0)
            logger.debug(f"{robot.id} fully charged")
