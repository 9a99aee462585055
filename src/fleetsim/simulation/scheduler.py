# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""TaskScheduler — assigns queued work and counts down in-progress ETAs.

Each task tick walks the tasks in store order:
  - in_progress with an ETA: subtract one simulated second, i.e.
    (1/60) x speed multiplier minutes.  At or below zero the task completes
    and its robot goes back to idle.
  - queued: bind it to the first robot (store order) that is idle with more
    than 30% battery.  No distance or priority ranking; a task that finds
    no robot simply waits for the next tick.

Queued tasks that name a zone the facility does not know are failed
rather than left in the queue forever.
"""

from __future__ import annotations

import random
from typing import Optional

from loguru import logger

from fleetsim.comms import EventBus
from fleetsim.config import SimulationConfig

from .entities import Robot, Task
from .notify import publish_task_update
from .store import EntityStore

MIN_ASSIGN_BATTERY = 30.0
ETA_MIN_MINUTES = 5.0
ETA_SPAN_MINUTES = 8.0


class TaskScheduler:
    def __init__(
        self,
        store: EntityStore,
        bus: EventBus,
        config: SimulationConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store
        self._bus = bus
        self.config = config or SimulationConfig()
        self._rng = rng or random.Random()

    def tick(self) -> None:
        for task in self._store.tasks():
            try:
                if task.status == "in_progress" and task.eta_minutes is not None:
                    self._advance(task)
                elif task.status == "queued":
                    self._try_assign(task)
            except Exception:
                logger.exception(f"Scheduler failed on task {task.id}, skipping")

    def _advance(self, task: Task) -> None:
        eta = task.eta_minutes - (1.0 / 60.0) * self.config.speed_multiplier
        if eta > 0:
            self._store.set_eta(task.id, eta)
            return
        done = self._store.complete_task(task.id)
        logger.info(f"Task {done.id} completed by {done.assigned_robot}")
        publish_task_update(
            self._bus, done,
            f"Delivery completed: {done.from_zone} -> {done.to_zone}",
        )

    def _try_assign(self, task: Task) -> None:
        facility = self._store.facility
        if facility is not None:
            missing = [z for z in (task.from_zone, task.to_zone) if not facility.has_zone(z)]
            if missing:
                failed = self._store.fail_task(task.id, f"unknown zone: {', '.join(missing)}")
                logger.warning(f"Task {task.id} failed, unknown zones {missing}")
                publish_task_update(self._bus, failed, f"Task failed: unknown zone {missing[0]}")
                return

        robot = self.find_available_robot()
        if robot is None:
            return
        eta = ETA_MIN_MINUTES + ETA_SPAN_MINUTES * self._rng.random()
        assigned = self._store.assign_task(task.id, robot.id, eta)
        logger.info(f"Task {task.id} assigned to {robot.id} (eta {eta:.1f} min)")
        publish_task_update(self._bus, assigned, f"Task assigned to {robot.name}")

    def find_available_robot(self) -> Optional[Robot]:
        """First idle robot in store order with battery above 30%."""
        for robot in self._store.robots():
            if robot.status == "idle" and robot.battery > MIN_ASSIGN_BATTERY:
                return robot
        return None
