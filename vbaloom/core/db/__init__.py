"""
Database module for VBALoom.

Exports:
- DatabaseManager: Database connection and session management
- get_database_manager: Factory function for DatabaseManager
- ModuleStore: Pipeline state persistence for modules
- Models: AccessDatabase, Module
- Base: SQLAlchemy declarative base
"""

from .db import DatabaseManager, get_database_manager
from .models import AccessDatabase, Base, Module
from .store import ModuleNotFound, ModuleStore

__all__ = [
    # Database management
    "DatabaseManager",
    "get_database_manager",
    "ModuleStore",
    "ModuleNotFound",

    # ORM models
    "Base",
    "AccessDatabase",
    "Module",
]
