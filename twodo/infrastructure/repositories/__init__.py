from .sqlalchemy_occurrence_repository import SqlAlchemyOccurrenceRepository
from .sqlalchemy_routine_repository import SqlAlchemyRoutineRepository

__all__ = [
    "SqlAlchemyOccurrenceRepository",
    "SqlAlchemyRoutineRepository",
]
