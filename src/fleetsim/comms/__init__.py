# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Comms — in-process publish/subscribe channel and its payload models."""
from .event_bus import EventBus, Handler
from .events import (
    AlertEvent,
    PoseModel,
    TaskUpdateEvent,
    TelemetryEvent,
    TickEvent,
    Topic,
    TOPIC_PAYLOADS,
)

__all__ = [
    "AlertEvent",
    "EventBus",
    "Handler",
    "PoseModel",
    "TaskUpdateEvent",
    "TelemetryEvent",
    "TickEvent",
    "Topic",
    "TOPIC_PAYLOADS",
]
