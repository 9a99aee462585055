# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""FaultController — fault injection, timed recovery, ambient alerts.

inject_fault() is an operator command: the robot drops to ``error`` at once,
whatever it was doing, and one critical alert goes out.  A robot that was
carrying a task hands it back to the queue first.

start_recovery() schedules an asyncio task that sleeps recovery_delay_s
(real seconds, not scaled by the speed multiplier) and then succeeds with
probability recovery_success_probability.  The task is registered with the
SimulationClock so stop() cancels it.  Concurrent attempts on one robot are
not deduplicated, but an attempt that wakes to find the robot already out of
``error`` is aborted, so True always means the robot is now idle.

tick() runs on the slow alert loop and sometimes raises a catalog alert on
a random robot, independent of that robot's real state.
"""

from __future__ import annotations

import asyncio
import random
from typing import TYPE_CHECKING, Optional

from loguru import logger

from fleetsim.comms import EventBus
from fleetsim.config import SimulationConfig

from .entities import Alert
from .errors import InvalidTransitionError, UnknownFaultError
from .notify import publish_task_update, raise_alert
from .store import EntityStore

if TYPE_CHECKING:
    from .clock import SimulationClock

FAULT_MESSAGES: dict[str, str] = {
    "wheel_slip": "Wheel slip detected - emergency stop activated",
    "localization_loss": "Localization lost - manual intervention required",
    "battery_critical": "Critical battery level - immediate return to base",
}

AMBIENT_ALERTS: tuple[tuple[str, str], ...] = (
    ("info", "Routine diagnostic check completed"),
    ("warning", "Minor obstacle detected, rerouting"),
    ("warning", "Localization confidence dropped below 90%"),
)


class FaultController:
    def __init__(
        self,
        store: EntityStore,
        bus: EventBus,
        config: SimulationConfig | None = None,
        rng: random.Random | None = None,
        clock: SimulationClock | None = None,
    ) -> None:
        self._store = store
        self._bus = bus
        self.config = config or SimulationConfig()
        self._rng = rng or random.Random()
        self._clock = clock

    # -- Fault injection ---------------------------------------------------

    def inject_fault(self, robot_id: str, fault_type: str) -> Alert:
        """Put *robot_id* into error and publish one critical alert."""
        message = FAULT_MESSAGES.get(fault_type)
        if message is None:
            raise UnknownFaultError(
                f"unknown fault type {fault_type!r}, expected one of {sorted(FAULT_MESSAGES)}"
            )
        robot = self._store.robot(robot_id)

        requeued = self._store.release_robot(robot_id)
        if requeued is not None:
            publish_task_update(
                self._bus, requeued,
                f"{robot.name} faulted, task returned to queue",
            )
        self._store.clear_path(robot_id)
        self._store.update_robot(robot_id, status="error", speed=0.0)
        self._store.log("fault_injected", f"{fault_type} injected", robot_id=robot_id)
        logger.warning(f"Fault {fault_type} injected on {robot_id}")
        return raise_alert(
            self._store, self._bus, robot_id, "critical", f"{robot.name}: {message}"
        )

    # -- Recovery ----------------------------------------------------------

    def start_recovery(self, robot_id: str) -> asyncio.Task:
        """Schedule a recovery attempt; the task's result is True on success.

        Must be called from inside a running event loop.
        """
        robot = self._store.robot(robot_id)
        if robot.status != "error":
            raise InvalidTransitionError(
                f"robot {robot_id} is {robot.status}, only robots in error can recover"
            )
        task = asyncio.get_running_loop().create_task(
            self._recover(robot_id), name=f"recovery-{robot_id}"
        )
        if self._clock is not None:
            self._clock.track(task)
        logger.info(f"Recovery attempt started for {robot_id}")
        return task

    async def attempt_recovery(self, robot_id: str) -> bool:
        return await self.start_recovery(robot_id)

    async def _recover(self, robot_id: str) -> bool:
        await asyncio.sleep(self.config.recovery_delay_s)
        return self.resolve_recovery(robot_id)

    def resolve_recovery(self, robot_id: str) -> bool:
        """Draw the outcome of a recovery attempt and apply it.

        A robot that left ``error`` while the attempt was pending (an earlier
        attempt succeeded, or it was sent to charge) aborts the attempt:
        no outcome is drawn, no alert is raised and the result is False.
        """
        robot = self._store.robot(robot_id)
        if robot.status != "error":
            self._store.log(
                "recovery_aborted",
                f"Recovery aborted, robot is {robot.status}",
                robot_id=robot_id,
            )
            logger.info(f"Recovery for {robot_id} aborted, robot is {robot.status}")
            return False

        success = self._rng.random() < self.config.recovery_success_probability
        if success:
            self._store.update_robot(robot_id, status="idle")
            self._store.log("recovery_succeeded", "Recovery successful", robot_id=robot_id)
            raise_alert(
                self._store, self._bus, robot_id, "info",
                f"{robot.name}: Recovery successful, resuming operations",
            )
        else:
            self._store.log("recovery_failed", "Recovery failed", robot_id=robot_id)
            raise_alert(
                self._store, self._bus, robot_id, "warning",
                f"{robot.name}: Recovery attempt failed, robot remains in error",
            )
        logger.info(f"Recovery for {robot_id}: {'success' if success else 'failed'}")
        return success

    # -- Ambient alerts ----------------------------------------------------

    def tick(self) -> Optional[Alert]:
        if self._rng.random() >= self.config.alert_probability_per_tick:
            return None
        robots = self._store.robots()
        if not robots:
            return None
        robot = self._rng.choice(robots)
        severity, text = self._rng.choice(AMBIENT_ALERTS)
        return raise_alert(
            self._store, self._bus, robot.id, severity, f"{robot.name}: {text}"
        )
