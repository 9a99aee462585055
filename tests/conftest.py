# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Root conftest — shared fixtures for building small fleets."""

from __future__ import annotations

import random

import pytest

from fleetsim.comms import EventBus, Topic
from fleetsim.simulation.entities import Pose, Robot, Task
from fleetsim.simulation.facility import Facility
from fleetsim.simulation.store import EntityStore


class EventRecorder:
    """Subscribes to every topic and keeps what it receives."""

    def __init__(self, bus: EventBus) -> None:
        self.events: dict[Topic, list] = {topic: [] for topic in Topic}
        for topic in Topic:
            bus.subscribe(topic, self.events[topic].append)

    def __getitem__(self, topic: Topic | str) -> list:
        return self.events[Topic(topic)]

    def clear(self) -> None:
        for items in self.events.values():
            items.clear()


def make_robot(robot_id: str = "r1", **kwargs) -> Robot:
    kwargs.setdefault("name", robot_id.upper())
    kwargs.setdefault("pose", Pose(100.0, 100.0, 0.0))
    kwargs.setdefault("localization_confidence", 0.95)
    return Robot(id=robot_id, **kwargs)


def make_task(task_id: str = "t1", **kwargs) -> Task:
    kwargs.setdefault("requester", "u_clinician")
    kwargs.setdefault("from_zone", "Pharmacy")
    kwargs.setdefault("to_zone", "ICU")
    return Task(id=task_id, **kwargs)


@pytest.fixture
def facility() -> Facility:
    return Facility.default()


@pytest.fixture
def store(facility) -> EntityStore:
    return EntityStore(facility)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def recorder(bus) -> EventRecorder:
    return EventRecorder(bus)


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)
