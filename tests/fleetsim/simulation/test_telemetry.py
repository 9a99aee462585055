# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Tests for TelemetryGenerator.

Covers waypoint paths, movement and heading, battery drain/charge, the
raw-vs-clamped localization confidence split, and the post-commit battery
rules (low battery -> charging, full charge -> idle).
"""

from __future__ import annotations

import math
import random

import pytest

from conftest import make_robot, make_task
from fleetsim.comms import Topic
from fleetsim.config import SimulationConfig
from fleetsim.simulation.entities import Pose
from fleetsim.simulation.scheduler import TaskScheduler
from fleetsim.simulation.seed import seeded_store
from fleetsim.simulation.telemetry import TelemetryGenerator

pytestmark = pytest.mark.unit


@pytest.fixture
def gen(store, bus, rng):
    return TelemetryGenerator(store, bus, SimulationConfig(), rng)


def _en_route(store, robot_id="r1", **kwargs):
    """Add an idle robot and a task, then bind them so the robot is en_route."""
    store.add_robot(make_robot(robot_id, **kwargs))
    task_id = f"task-{robot_id}"
    store.add_task(make_task(task_id))
    store.assign_task(task_id, robot_id, 10.0)
    return task_id


# ── Paths ────────────────────────────────────────────────────────────────

class TestPathGeneration:
    def test_ten_points_by_default(self, gen):
        assert len(gen.generate_path((100, 100))) == 10

    def test_points_within_bounds_and_jitter(self, gen):
        path = gen.generate_path((25, 195), points=200)
        prev = (25, 195)
        for x, y in path:
            assert 20 <= x <= 280
            assert 20 <= y <= 200
            assert abs(x - prev[0]) <= 20 + 1e-9
            assert abs(y - prev[1]) <= 20 + 1e-9
            prev = (x, y)

    def test_path_generated_lazily_for_en_route(self, store, gen):
        _en_route(store)
        assert store.path("r1") == []
        gen.tick()
        assert 1 <= len(store.path("r1")) <= 10

    def test_idle_robot_gets_no_path(self, store, gen):
        store.add_robot(make_robot("r1"))
        gen.tick()
        assert store.path("r1") == []


# ── Movement ─────────────────────────────────────────────────────────────

class TestMovement:
    def test_moves_three_units_toward_waypoint(self, store, gen):
        _en_route(store)
        store.set_path("r1", [(130.0, 100.0)])
        gen.tick()
        robot = store.robot("r1")
        assert robot.pose.x == pytest.approx(103.0)
        assert robot.pose.y == pytest.approx(100.0)
        assert robot.pose.theta == pytest.approx(0.0)
        assert 0.8 <= robot.speed <= 1.2

    def test_heading_is_direction_to_waypoint(self, store, gen):
        _en_route(store)
        store.set_path("r1", [(100.0, 150.0)])
        gen.tick()
        robot = store.robot("r1")
        assert robot.pose.theta == pytest.approx(math.pi / 2)
        assert robot.pose.y == pytest.approx(103.0)

    def test_step_scales_with_speed(self, store, bus, rng):
        gen = TelemetryGenerator(store, bus, SimulationConfig(speed_multiplier=2.0), rng)
        _en_route(store)
        store.set_path("r1", [(100.0, 10_000.0)])
        gen.tick()
        assert store.robot("r1").pose.y == pytest.approx(106.0)

    def test_step_does_not_overshoot(self, store, bus, rng):
        gen = TelemetryGenerator(store, bus, SimulationConfig(speed_multiplier=5.0), rng)
        _en_route(store)
        store.set_path("r1", [(106.0, 100.0), (200.0, 100.0)])
        gen.tick()
        assert store.robot("r1").pose.x == pytest.approx(106.0)

    def test_close_waypoint_is_popped_without_moving(self, store, gen):
        _en_route(store)
        store.set_path("r1", [(102.0, 100.0), (150.0, 100.0)])
        gen.tick()
        robot = store.robot("r1")
        assert (robot.pose.x, robot.pose.y) == (100.0, 100.0)
        assert store.path("r1") == [(150.0, 100.0)]

    def test_exhausted_path_regenerated(self, store, gen):
        _en_route(store)
        store.set_path("r1", [(101.0, 101.0)])
        gen.tick()
        assert len(store.path("r1")) == 10

    def test_idle_robot_does_not_move(self, store, gen):
        store.add_robot(make_robot("r1", speed=0.0))
        gen.tick()
        robot = store.robot("r1")
        assert (robot.pose.x, robot.pose.y) == (100.0, 100.0)
        assert robot.speed == 0.0


# ── Battery ──────────────────────────────────────────────────────────────

class TestBattery:
    def test_drain_while_en_route(self, store, gen):
        _en_route(store, battery=50.0)
        gen.tick()
        assert store.robot("r1").battery == pytest.approx(49.98)

    def test_charge_while_charging(self, store, gen):
        store.add_robot(make_robot("r1", status="charging", battery=50.0))
        gen.tick()
        assert store.robot("r1").battery == pytest.approx(50.5)

    @pytest.mark.parametrize("status", ["idle", "error", "offline"])
    def test_unchanged_otherwise(self, store, gen, status):
        store.add_robot(make_robot("r1", status=status, battery=50.0))
        gen.tick()
        assert store.robot("r1").battery == 50.0

    def test_full_charge_snaps_to_100_and_idles(self, store, gen):
        store.add_robot(make_robot("r1", status="charging", battery=94.6))
        gen.tick()
        robot = store.robot("r1")
        assert robot.status == "idle"
        assert robot.battery == 100.0

    def test_charging_below_threshold_keeps_charging(self, store, gen):
        store.add_robot(make_robot("r1", status="charging", battery=90.0))
        gen.tick()
        assert store.robot("r1").status == "charging"

    def test_empty_battery_never_negative(self, store, gen):
        _en_route(store, battery=0.01)
        gen.tick()
        assert store.robot("r1").battery == 0.0


# ── Low battery ──────────────────────────────────────────────────────────

class TestLowBattery:
    def test_idle_robot_sent_to_charge_with_alert(self, store, gen, recorder):
        store.add_robot(make_robot("r1", battery=15.0))
        gen.tick()
        assert store.robot("r1").status == "charging"
        alerts = recorder[Topic.ALERT]
        assert len(alerts) == 1
        assert alerts[0].severity == "info"
        assert alerts[0].robot_id == "r1"
        assert "R1" in alerts[0].message
        assert "15%" in alerts[0].message
        assert store.alerts()[0].id == alerts[0].id

    def test_en_route_robot_hands_task_back(self, store, gen, recorder):
        task_id = _en_route(store, battery=20.01)
        gen.tick()
        robot = store.robot("r1")
        task = store.task(task_id)
        assert robot.status == "charging"
        assert robot.current_task_id is None
        assert task.status == "queued"
        assert task.assigned_robot is None
        assert store.binding_violations() == []
        updates = recorder[Topic.TASK_UPDATE]
        assert [u.status for u in updates] == ["queued"]

    def test_charging_robot_gets_no_alert(self, store, gen, recorder):
        store.add_robot(make_robot("r1", status="charging", battery=5.0))
        gen.tick()
        assert recorder[Topic.ALERT] == []


# ── Events ───────────────────────────────────────────────────────────────

class TestTelemetryEvents:
    def test_one_event_per_robot(self, store, gen, recorder):
        for rid in ("r1", "r2", "r3"):
            store.add_robot(make_robot(rid))
        events = gen.tick()
        assert [e.robot_id for e in recorder[Topic.TELEMETRY]] == ["r1", "r2", "r3"]
        assert len(events) == 3

    def test_event_fields_match_commit(self, store, gen, recorder):
        task_id = _en_route(store, battery=60.0)
        store.set_path("r1", [(150.0, 100.0)])
        gen.tick()
        evt = recorder[Topic.TELEMETRY][0]
        robot = store.robot("r1")
        assert evt.pose.x == pytest.approx(robot.pose.x)
        assert evt.battery_pct == pytest.approx(robot.battery)
        assert evt.state == "en_route"
        assert evt.current_task_id == task_id
        assert evt.speed == robot.speed
        assert robot.last_seen == evt.timestamp

    def test_confidence_raw_in_event_clamped_in_store(self, store, bus, recorder):
        gen = TelemetryGenerator(store, bus, SimulationConfig(), random.Random(7))
        store.add_robot(make_robot("r1", localization_confidence=0.7))
        saw_below = False
        for _ in range(60):
            gen.tick()
            stored = store.robot("r1").localization_confidence
            assert 0.7 <= stored <= 1.0
            if recorder[Topic.TELEMETRY][-1].localization_confidence < 0.7:
                saw_below = True
        assert saw_below

    def test_noise_bounded(self, store, gen, recorder):
        store.add_robot(make_robot("r1", localization_confidence=0.9))
        gen.tick()
        raw = recorder[Topic.TELEMETRY][0].localization_confidence
        assert abs(raw - 0.9) <= 0.01

    def test_failure_on_one_robot_skips_only_it(self, store, bus, rng):
        class Flaky(TelemetryGenerator):
            def update_robot(self, robot):
                if robot.id == "bad":
                    raise RuntimeError("sensor glitch")
                return super().update_robot(robot)

        store.add_robot(make_robot("bad"))
        store.add_robot(make_robot("good"))
        events = Flaky(store, bus, SimulationConfig(), rng).tick()
        assert [e.robot_id for e in events] == ["good"]


# ── Long-run properties ──────────────────────────────────────────────────

class TestLongRun:
    def test_battery_bounds_and_binding_hold(self, bus):
        store = seeded_store()
        rng = random.Random(99)
        cfg = SimulationConfig(speed_multiplier=4.0)
        gen = TelemetryGenerator(store, bus, cfg, rng)
        sched = TaskScheduler(store, bus, cfg, rng)
        for i in range(2000):
            gen.tick()
            sched.tick()
            if i % 50 == 0:
                store.create_task("u_operator", "Lab", "ICU")
            for robot in store.robots():
                assert 0.0 <= robot.battery <= 100.0
                assert 20 <= robot.pose.x <= 280 or robot.status != "en_route"
            assert store.binding_violations() == []
