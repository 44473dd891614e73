"""Route group exports."""

from . import errands, health, places

__all__ = ["errands", "health", "places"]
