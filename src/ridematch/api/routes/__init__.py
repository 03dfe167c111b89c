"""Route group exports."""

from . import health, schedule

__all__ = ["health", "schedule"]
