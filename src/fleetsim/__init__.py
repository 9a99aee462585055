# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""fleetsim — discrete-time simulation of an autonomous delivery robot fleet.

The package contains the typed event channel (comms), the entity store and
the simulation subsystems that drive it (simulation), and the runtime
configuration (config).  The view layer subscribes to events through
FleetSimulation.on() and never touches engine internals.
"""

__version__ = "0.1.0"
