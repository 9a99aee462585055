# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Runtime configuration.

Settings holds process-wide defaults and reads FLEETSIM_* environment
variables (e.g. FLEETSIM_TICK_INTERVAL_MS=500).  SimulationConfig is the
per-run value the clock is started with; it is derived from settings and
can be overridden per call to FleetSimulation.start().
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="FLEETSIM_", extra="ignore")

    tick_interval_ms: float = 1000.0
    task_tick_interval_ms: float = 1000.0
    alert_interval_ms: float = 5000.0
    alert_probability_per_tick: float = 0.02
    speed_multiplier: float = 1.0
    recovery_delay_s: float = 3.0
    recovery_success_probability: float = 0.7
    facility_path: Optional[Path] = None


settings = Settings()


class SimulationConfig(BaseModel):
    """Tunables for one run of the simulation clock.

    All intervals are real-time milliseconds at 1x speed.  The effective
    period of each loop is ``interval / speed_multiplier``: a faster
    simulation ticks more often, it does not take larger steps per tick
    (except the telemetry step length, which scales with speed).
    """

    model_config = ConfigDict(frozen=True)

    tick_interval_ms: float = Field(default=1000.0, gt=0)
    task_tick_interval_ms: float = Field(default=1000.0, gt=0)
    alert_interval_ms: float = Field(default=5000.0, gt=0)
    alert_probability_per_tick: float = Field(default=0.02, ge=0.0, le=1.0)
    speed_multiplier: float = Field(default=1.0, gt=0)
    recovery_delay_s: float = Field(default=3.0, ge=0)
    recovery_success_probability: float = Field(default=0.7, ge=0.0, le=1.0)

    @classmethod
    def from_settings(cls, source: Settings | None = None) -> SimulationConfig:
        source = source or settings
        return cls(
            tick_interval_ms=source.tick_interval_ms,
            task_tick_interval_ms=source.task_tick_interval_ms,
            alert_interval_ms=source.alert_interval_ms,
            alert_probability_per_tick=source.alert_probability_per_tick,
            speed_multiplier=source.speed_multiplier,
            recovery_delay_s=source.recovery_delay_s,
            recovery_success_probability=source.recovery_success_probability,
        )

    def with_overrides(self, **overrides) -> SimulationConfig:
        """Return a validated copy with *overrides* applied."""
        return type(self).model_validate({**self.model_dump(), **overrides})

    @property
    def telemetry_period_s(self) -> float:
        return self.tick_interval_ms / self.speed_multiplier / 1000.0

    @property
    def task_period_s(self) -> float:
        return self.task_tick_interval_ms / self.speed_multiplier / 1000.0

    @property
    def alert_period_s(self) -> float:
        return self.alert_interval_ms / self.speed_multiplier / 1000.0
