# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""SimulationClock — start/stop lifecycle and the three periodic loops.

Architecture
------------
The clock runs on the caller's asyncio event loop; everything it drives is
synchronous, so one firing always finishes before the next firing of the
same loop is due, and the entity store is only touched from the loop
thread.  Three independent asyncio tasks are created by start():

  1. telemetry — every tick_interval_ms / speed
  2. task      — every task_tick_interval_ms / speed
  3. alert     — every alert_interval_ms / speed (the slow loop)

There is no ordering between loops: a telemetry firing and a task firing
due at the same instant may run in either order.

stop() cancels the three loop tasks and every recovery task registered
through track().  Each loop also checks a generation counter after waking,
so a firing can never slip through after stop() returns, even across a
quick stop()/start() pair.

A firing that raises is logged and the loop keeps going.
"""

from __future__ import annotations

import asyncio
from typing import Callable

from loguru import logger

from fleetsim.config import SimulationConfig

Callback = Callable[[], None]


class SimulationClock:
    """Owns the periodic loops of one simulation."""

    def __init__(
        self,
        on_telemetry: Callback,
        on_task: Callback,
        on_alert: Callback,
    ) -> None:
        self._callbacks: dict[str, Callback] = {
            "telemetry": on_telemetry,
            "task": on_task,
            "alert": on_alert,
        }
        self._running = False
        self._generation = 0
        self._loops: list[asyncio.Task] = []
        self._tracked: set[asyncio.Task] = set()
        self._config = SimulationConfig()
        self._firings: dict[str, int] = {name: 0 for name in self._callbacks}

    @property
    def state(self) -> str:
        return "running" if self._running else "stopped"

    @property
    def config(self) -> SimulationConfig:
        return self._config

    def is_running(self) -> bool:
        return self._running

    def firings(self, name: str) -> int:
        """Number of completed firings of loop *name* since construction."""
        return self._firings[name]

    # -- Lifecycle ---------------------------------------------------------

    def start(self, config: SimulationConfig) -> bool:
        """Start the loops. Returns False (and does nothing) if already running.

        Raises RuntimeError when called outside a running event loop.
        """
        if self._running:
            return False
        loop = asyncio.get_running_loop()
        self._config = config
        self._running = True
        self._generation += 1
        periods = {
            "telemetry": config.telemetry_period_s,
            "task": config.task_period_s,
            "alert": config.alert_period_s,
        }
        self._loops = [
            loop.create_task(
                self._run(name, periods[name], self._generation),
                name=f"sim-{name}",
            )
            for name in self._callbacks
        ]
        logger.info(
            f"Simulation clock started (speed {config.speed_multiplier}x, "
            f"telemetry every {periods['telemetry']:.3f}s)"
        )
        return True

    def stop(self, cancel_tracked: bool = True) -> bool:
        """Cancel every loop, and tracked tasks unless *cancel_tracked* is False.

        Returns False if already stopped.
        """
        if not self._running:
            return False
        self._running = False
        self._generation += 1
        for task in self._loops:
            task.cancel()
        self._loops = []
        pending: list[asyncio.Task] = []
        if cancel_tracked:
            pending = [t for t in self._tracked if not t.done()]
            for task in pending:
                task.cancel()
            self._tracked.clear()
        logger.info(
            f"Simulation clock stopped ({len(pending)} pending recoveries cancelled)"
        )
        return True

    def track(self, task: asyncio.Task) -> None:
        """Tie *task* to the clock's lifetime so stop() cancels it."""
        self._tracked.add(task)
        task.add_done_callback(self._tracked.discard)

    @property
    def pending_tasks(self) -> int:
        return sum(1 for t in self._tracked if not t.done())

    # -- Loops -------------------------------------------------------------

    async def _run(self, name: str, period: float, generation: int) -> None:
        callback = self._callbacks[name]
        while True:
            await asyncio.sleep(period)
            if generation != self._generation:
                return
            try:
                callback()
            except Exception:
                logger.exception(f"{name} tick failed")
            self._firings[name] += 1
