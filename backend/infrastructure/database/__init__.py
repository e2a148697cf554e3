from .connection import (
    Database,
    create_database,
    get_database,
    get_db,
)
from .models.base import Base

__all__ = [
    "Base",
    "Database",
    "create_database",
    "get_database",
    "get_db",
]
