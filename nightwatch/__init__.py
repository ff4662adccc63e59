"""Nightwatch: turn-based survival simulation engine."""

__version__ = "0.1.0"
