from .base import Base, TimestampMixin
from .routine import Routine, RoutineOccurrence

__all__ = [
    "Base",
    "TimestampMixin",
    "Routine",
    "RoutineOccurrence",
]
