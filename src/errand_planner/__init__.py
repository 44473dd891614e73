"""Errand Planner: multi-stop driving route planning."""

__version__ = "0.1.0"
