# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Tests for TaskScheduler — assignment, ETA countdown, completion."""

from __future__ import annotations

import random

import pytest

from conftest import make_robot, make_task
from fleetsim.comms import Topic
from fleetsim.config import SimulationConfig
from fleetsim.simulation.scheduler import TaskScheduler

pytestmark = pytest.mark.unit


@pytest.fixture
def sched(store, bus, rng):
    return TaskScheduler(store, bus, SimulationConfig(), rng)


# ── Assignment ───────────────────────────────────────────────────────────

class TestAssignment:
    def test_queued_task_assigned_to_idle_robot(self, store, sched, recorder):
        store.add_robot(make_robot("r1", battery=80.0))
        store.add_task(make_task("t1"))
        sched.tick()

        task = store.task("t1")
        robot = store.robot("r1")
        assert task.status == "in_progress"
        assert task.assigned_robot == "r1"
        assert 5.0 <= task.eta_minutes < 13.0
        assert robot.status == "en_route"
        assert robot.current_task_id == "t1"

        updates = recorder[Topic.TASK_UPDATE]
        assert len(updates) == 1
        assert updates[0].task_id == "t1"
        assert updates[0].status == "in_progress"
        assert updates[0].robot_id == "r1"

    def test_eta_range_over_many_draws(self, bus):
        from fleetsim.simulation.store import EntityStore

        rng = random.Random(5)
        etas = []
        for _ in range(300):
            store = EntityStore()
            store.add_robot(make_robot("r1"))
            store.add_task(make_task("t1"))
            TaskScheduler(store, bus, SimulationConfig(), rng).tick()
            etas.append(store.task("t1").eta_minutes)
        assert all(5.0 <= e < 13.0 for e in etas)
        assert min(etas) < 6.0
        assert max(etas) > 12.0

    def test_first_matching_robot_in_store_order(self, store, sched):
        store.add_robot(make_robot("busy", status="charging"))
        store.add_robot(make_robot("weak", battery=30.0))
        store.add_robot(make_robot("first", battery=40.0))
        store.add_robot(make_robot("second", battery=100.0))
        store.add_task(make_task("t1", priority="critical"))
        sched.tick()
        assert store.task("t1").assigned_robot == "first"

    def test_no_robot_leaves_task_queued(self, store, sched, recorder):
        store.add_robot(make_robot("r1", status="error"))
        store.add_task(make_task("t1"))
        sched.tick()
        assert store.task("t1").status == "queued"
        assert recorder[Topic.TASK_UPDATE] == []

    def test_one_robot_per_task(self, store, sched):
        store.add_robot(make_robot("r1"))
        store.add_robot(make_robot("r2"))
        for tid in ("t1", "t2", "t3"):
            store.add_task(make_task(tid))
        sched.tick()
        assert store.task("t1").assigned_robot == "r1"
        assert store.task("t2").assigned_robot == "r2"
        assert store.task("t3").status == "queued"
        assert store.binding_violations() == []

    def test_unknown_zone_fails_task(self, store, sched, recorder):
        store.add_robot(make_robot("r1"))
        store.add_task(make_task("t1", to_zone="Moon Base"))
        sched.tick()
        task = store.task("t1")
        assert task.status == "failed"
        assert "Moon Base" in task.notes
        assert store.robot("r1").status == "idle"
        assert recorder[Topic.TASK_UPDATE][0].status == "failed"

    def test_terminal_tasks_untouched(self, store, sched, recorder):
        store.add_robot(make_robot("r1"))
        store.add_task(make_task("t1", status="cancelled"))
        store.add_task(make_task("t2", status="completed"))
        sched.tick()
        assert store.task("t1").status == "cancelled"
        assert store.robot("r1").status == "idle"
        assert recorder[Topic.TASK_UPDATE] == []


# ── Progress and completion ──────────────────────────────────────────────

class TestProgress:
    def _start(self, store, eta):
        store.add_robot(make_robot("r1"))
        store.add_task(make_task("t1"))
        store.assign_task("t1", "r1", eta)

    def test_eta_decrements_one_simulated_second(self, store, sched):
        self._start(store, 5.0)
        sched.tick()
        assert store.task("t1").eta_minutes == pytest.approx(5.0 - 1 / 60)

    def test_eta_decrement_scales_with_speed(self, store, bus, rng):
        self._start(store, 5.0)
        TaskScheduler(store, bus, SimulationConfig(speed_multiplier=3.0), rng).tick()
        assert store.task("t1").eta_minutes == pytest.approx(5.0 - 3 / 60)

    def test_small_eta_completes_in_one_tick(self, store, sched, recorder):
        self._start(store, 0.01)
        sched.tick()

        task = store.task("t1")
        robot = store.robot("r1")
        assert task.status == "completed"
        assert task.completed_at is not None
        assert task.eta_minutes is None
        assert robot.status == "idle"
        assert robot.current_task_id is None

        completed = [u for u in recorder[Topic.TASK_UPDATE] if u.status == "completed"]
        assert len(completed) == 1
        assert completed[0].task_id == "t1"

        sched.tick()
        completed = [u for u in recorder[Topic.TASK_UPDATE] if u.status == "completed"]
        assert len(completed) == 1

    def test_completion_message_names_zones(self, store, sched, recorder):
        self._start(store, 0.001)
        sched.tick()
        assert recorder[Topic.TASK_UPDATE][0].message == "Delivery completed: Pharmacy -> ICU"

    def test_freed_robot_can_take_later_task_same_tick(self, store, sched):
        self._start(store, 0.001)
        store.add_task(make_task("t2"))
        sched.tick()
        assert store.task("t1").status == "completed"
        assert store.task("t2").assigned_robot == "r1"

    def test_completion_logged(self, store, sched):
        self._start(store, 0.001)
        sched.tick()
        assert store.logs(event_type="task_completed")[0].task_id == "t1"

    def test_error_on_one_task_does_not_stop_others(self, store, bus, rng):
        class Picky(TaskScheduler):
            def _try_assign(self, task):
                if task.id == "bad":
                    raise RuntimeError("boom")
                super()._try_assign(task)

        store.add_robot(make_robot("r1"))
        store.add_task(make_task("bad"))
        store.add_task(make_task("good"))
        Picky(store, bus, SimulationConfig(), rng).tick()
        assert store.task("bad").status == "queued"
        assert store.task("good").assigned_robot == "r1"


class TestFindAvailableRobot:
    def test_battery_must_exceed_30(self, store, sched):
        store.add_robot(make_robot("r1", battery=30.0))
        assert sched.find_available_robot() is None
        store.update_robot("r1", battery=30.5)
        assert sched.find_available_robot().id == "r1"
