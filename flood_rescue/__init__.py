"""Flood Rescue AI - incident lifecycle and concurrent triage engine."""

__version__ = "0.1.0"
