"""Timer scheduling for periodic and delayed work."""

from .scheduler import Scheduler

__all__ = ["Scheduler"]
