"""
==============================================================================
Database Package
==============================================================================

SQLAlchemy database infrastructure and ORM models.

Architecture:
------------
├── database.py   - DatabaseManager class, session factory
├── models.py     - Exhibition, Exhibitor, ScanRecord
└── init_db.py    - DatabaseInitializer for setup

==============================================================================
"""

from .database import Base, DatabaseManager, get_db
from .models import Exhibition, ExhibitionStatus, Exhibitor, ScanRecord
from .init_db import DatabaseInitializer, init_db

__all__ = [
    # Database management
    "DatabaseManager",
    "Base",
    "get_db",
    # Models
    "Exhibition",
    "Exhibitor",
    "ScanRecord",
    "ExhibitionStatus",
    # Initialization
    "DatabaseInitializer",
    "init_db",
]
