"""Infrastructure layer - Database and persistence"""

from .db import DatabaseEngine, RecordModel, get_engine, init_db
from .repository import RecordRepository
from .store import AppState, Collection

__all__ = ["DatabaseEngine", "RecordModel", "get_engine", "init_db",
           "RecordRepository", "AppState", "Collection"]
