"""
Observability for the Nightwatch engine.

Provides an event log of rolls, resolved actions and transitions for a
session.
"""

from nightwatch.observability.run_log import (
    RunLog,
    LogEvent,
    EventType,
    RollEvent,
    ActionEvent,
    TransitionEvent,
)

__all__ = [
    "RunLog",
    "LogEvent",
    "EventType",
    "RollEvent",
    "ActionEvent",
    "TransitionEvent",
]
