# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""FleetSimulation — the engine instance the view layer talks to.

Architecture
------------
One FleetSimulation owns one EntityStore, one EventBus and the subsystems
that mutate the store:

  SimulationClock --telemetry loop--> TelemetryGenerator --> telemetry, tick
                  --task loop-------> TaskScheduler ------> task_update
                  --alert loop------> FaultController ----> alert

Operator commands (inject_fault, start_recovery, create_task, ...) run
directly on the caller's thread and publish through the same bus.

Data flow:
  Subsystems read copies from the store, publish events, then commit.
  Subscribers registered with on() receive the pydantic payload model of
  their topic; they never see store objects.

The engine must be started from inside a running asyncio event loop::

    async def main():
        sim = FleetSimulation.with_seed_data()
        sim.on("alert", lambda evt: print(evt.message))
        sim.start(speed_multiplier=2.0)
        await asyncio.sleep(10)
        sim.stop()
"""

from __future__ import annotations

import asyncio
import random
from typing import Callable, Optional

from loguru import logger

from fleetsim.comms import EventBus, TickEvent, Topic
from fleetsim.config import SimulationConfig, settings

from .clock import SimulationClock
from .entities import Alert, Task
from .facility import Facility
from .faults import FaultController
from .notify import publish_task_update
from .scheduler import TaskScheduler
from .seed import seeded_store
from .store import EntityStore
from .telemetry import TelemetryGenerator


class FleetSimulation:
    """Drives the fleet and exposes the engine's external interface."""

    def __init__(
        self,
        store: EntityStore | None = None,
        bus: EventBus | None = None,
        config: SimulationConfig | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._store = store if store is not None else EntityStore(Facility.default())
        self._bus = bus if bus is not None else EventBus()
        self._config = config or SimulationConfig.from_settings()
        self._rng = rng or random.Random()
        self._tick_sequence = 0

        self.telemetry = TelemetryGenerator(self._store, self._bus, self._config, self._rng)
        self.scheduler = TaskScheduler(self._store, self._bus, self._config, self._rng)
        self._clock = SimulationClock(
            on_telemetry=self._telemetry_tick,
            on_task=self.scheduler.tick,
            on_alert=self._alert_tick,
        )
        self.faults = FaultController(
            self._store, self._bus, self._config, self._rng, clock=self._clock
        )

    @classmethod
    def with_seed_data(
        cls,
        facility: Facility | None = None,
        **kwargs,
    ) -> FleetSimulation:
        """Engine over the demo fleet on *facility*, or on the facility file
        named by settings.facility_path, or on the bundled layout."""
        if facility is None and settings.facility_path is not None:
            facility = Facility.from_json(settings.facility_path)
        return cls(store=seeded_store(facility), **kwargs)

    # -- Accessors ---------------------------------------------------------

    @property
    def store(self) -> EntityStore:
        return self._store

    @property
    def bus(self) -> EventBus:
        return self._bus

    @property
    def facility(self) -> Facility | None:
        return self._store.facility

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def clock(self) -> SimulationClock:
        return self._clock

    # -- Lifecycle ---------------------------------------------------------

    def start(self, config: SimulationConfig | None = None, **overrides) -> bool:
        """Start ticking. No-op (returns False) if already running."""
        if self._clock.is_running():
            return False
        cfg = config or self._config
        if overrides:
            cfg = cfg.with_overrides(**overrides)
        self._clock.start(cfg)
        self._apply_config(cfg)
        return True

    def stop(self) -> bool:
        """Stop ticking and cancel pending recoveries. No-op if stopped."""
        return self._clock.stop()

    def is_running(self) -> bool:
        return self._clock.is_running()

    def set_speed(self, multiplier: float) -> None:
        """Change the speed multiplier; a running clock is restarted.

        In-flight recoveries and waypoint paths survive the restart.
        """
        cfg = self._config.with_overrides(speed_multiplier=multiplier)
        self._apply_config(cfg)
        if self._clock.is_running():
            self._clock.stop(cancel_tracked=False)
            self._clock.start(cfg)
        logger.info(f"Simulation speed set to {multiplier}x")

    def _apply_config(self, cfg: SimulationConfig) -> None:
        self._config = cfg
        self.telemetry.config = cfg
        self.scheduler.config = cfg
        self.faults.config = cfg

    def _telemetry_tick(self) -> None:
        self.telemetry.tick()
        self._tick_sequence += 1
        self._bus.publish(Topic.TICK, TickEvent(sequence=self._tick_sequence))

    def _alert_tick(self) -> None:
        self.faults.tick()

    # -- Subscriptions -----------------------------------------------------

    def on(self, topic: Topic | str, handler: Callable) -> Callable[[], None]:
        return self._bus.subscribe(topic, handler)

    # -- Faults ------------------------------------------------------------

    def inject_fault(self, robot_id: str, fault_type: str) -> Alert:
        return self.faults.inject_fault(robot_id, fault_type)

    def start_recovery(self, robot_id: str) -> asyncio.Task:
        return self.faults.start_recovery(robot_id)

    async def attempt_recovery(self, robot_id: str) -> bool:
        return await self.faults.attempt_recovery(robot_id)

    # -- Tasks and alerts --------------------------------------------------

    def create_task(
        self,
        requester: str,
        from_zone: str,
        to_zone: str,
        priority: str = "normal",
        payload: str = "",
        notes: Optional[str] = None,
    ) -> Task:
        task = self._store.create_task(
            requester, from_zone, to_zone,
            priority=priority, payload=payload, notes=notes,
        )
        publish_task_update(self._bus, task, f"Task queued: {from_zone} -> {to_zone}")
        return task

    def cancel_task(self, task_id: str) -> Task:
        task = self._store.cancel_task(task_id)
        publish_task_update(self._bus, task, "Task cancelled")
        return task

    def acknowledge_alert(self, alert_id: str) -> Alert:
        return self._store.acknowledge_alert(alert_id)

    def resolve_alert(self, alert_id: str) -> Alert:
        return self._store.resolve_alert(alert_id)

    def snapshot(self) -> dict:
        """JSON-ready view of the whole store."""
        return {
            "running": self.is_running(),
            "speed_multiplier": self._config.speed_multiplier,
            "robots": [r.to_dict() for r in self._store.robots()],
            "tasks": [t.to_dict() for t in self._store.tasks()],
            "alerts": [a.to_dict() for a in self._store.alerts()],
        }
