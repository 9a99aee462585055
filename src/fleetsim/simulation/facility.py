# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Facility — static floor maps, zones and motion bounds.

Loaded once at process start and never mutated by the engine.  The scheduler
uses it to validate zone names on tasks; the telemetry generator uses its
bounds to clamp waypoints.

Zone lookup is case-insensitive against both the zone id and its display
name, so a task may say "Lab" (id ``lab``) or "Laboratory" (name).
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from loguru import logger

_DEFAULT_PATH = Path(__file__).parent / "data" / "facility.json"


@dataclass(frozen=True)
class Bounds:
    x_min: float = 20.0
    x_max: float = 280.0
    y_min: float = 20.0
    y_max: float = 200.0

    def clamp(self, x: float, y: float) -> tuple[float, float]:
        return (
            max(self.x_min, min(self.x_max, x)),
            max(self.y_min, min(self.y_max, y)),
        )

    def contains(self, x: float, y: float) -> bool:
        return self.x_min <= x <= self.x_max and self.y_min <= y <= self.y_max


@dataclass(frozen=True)
class Zone:
    id: str
    type: str
    name: str
    polygon: tuple[tuple[float, float], ...]
    access: str
    floor: int

    def contains(self, x: float, y: float) -> bool:
        return _point_in_polygon(x, y, self.polygon)


@dataclass(frozen=True)
class FloorMap:
    map_id: str
    floor: int
    name: str
    zones: tuple[Zone, ...] = field(default_factory=tuple)


class Facility:
    """Read-only facility description."""

    def __init__(
        self,
        floors: list[FloorMap],
        bounds: Bounds | None = None,
        name: str = "facility",
    ) -> None:
        self.name = name
        self.bounds = bounds or Bounds()
        self._floors: dict[int, FloorMap] = {fm.floor: fm for fm in floors}
        self._zones_by_key: dict[str, Zone] = {}
        for fm in floors:
            for zone in fm.zones:
                self._zones_by_key.setdefault(zone.id.lower(), zone)
                self._zones_by_key.setdefault(zone.name.lower(), zone)

    # -- Loading -----------------------------------------------------------

    @classmethod
    def from_dict(cls, data: dict) -> Facility:
        floors: list[FloorMap] = []
        for raw in data.get("floors", []):
            floor_no = int(raw["floor"])
            zones = tuple(
                Zone(
                    id=z["id"],
                    type=z.get("type", "corridor"),
                    name=z.get("name", z["id"]),
                    polygon=tuple((float(px), float(py)) for px, py in z["polygon"]),
                    access=z.get("access", "public"),
                    floor=int(z.get("floor", floor_no)),
                )
                for z in raw.get("zones", [])
            )
            floors.append(
                FloorMap(
                    map_id=raw.get("map_id", f"floor{floor_no}"),
                    floor=floor_no,
                    name=raw.get("name", f"Floor {floor_no}"),
                    zones=zones,
                )
            )
        bounds = Bounds(**data["bounds"]) if "bounds" in data else Bounds()
        return cls(floors, bounds=bounds, name=data.get("name", "facility"))

    @classmethod
    def from_json(cls, path: str | Path) -> Facility:
        with open(path, "r") as f:
            data = json.load(f)
        facility = cls.from_dict(data)
        logger.info(
            f"Facility loaded: {path} ({len(facility.floors)} floors, "
            f"{len(facility.zones())} zones)"
        )
        return facility

    @classmethod
    def default(cls) -> Facility:
        """The bundled three-floor hospital layout."""
        return cls.from_dict(json.loads(_DEFAULT_PATH.read_text()))

    # -- Queries -----------------------------------------------------------

    @property
    def floors(self) -> list[FloorMap]:
        return [self._floors[k] for k in sorted(self._floors)]

    def floor_map(self, floor: int) -> Optional[FloorMap]:
        return self._floors.get(floor)

    def zones(self, floor: int | None = None) -> list[Zone]:
        if floor is not None:
            fm = self._floors.get(floor)
            return list(fm.zones) if fm else []
        return [z for fm in self.floors for z in fm.zones]

    def zone(self, name: str) -> Optional[Zone]:
        return self._zones_by_key.get(name.strip().lower())

    def has_zone(self, name: str) -> bool:
        return self.zone(name) is not None

    def zone_at(self, floor: int, x: float, y: float) -> Optional[Zone]:
        """First zone on *floor* whose polygon contains (x, y)."""
        for zone in self.zones(floor):
            if zone.contains(x, y):
                return zone
        return None


def _point_in_polygon(
    px: float, py: float, polygon: tuple[tuple[float, float], ...]
) -> bool:
    """Ray-casting test; odd edge crossings means inside."""
    n = len(polygon)
    inside = False
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if ((yi > py) != (yj > py)) and (px < (xj - xi) * (py - yi) / (yj - yi) + xi):
            inside = not inside
        j = i
    return inside
