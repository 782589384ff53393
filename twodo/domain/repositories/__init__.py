from .occurrence_repository import OccurrenceRepository
from .routine_repository import RoutineRepository

__all__ = ["OccurrenceRepository", "RoutineRepository"]
