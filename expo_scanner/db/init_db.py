"""
==============================================================================
Database Initialization Module
==============================================================================

Database initialization and setup utilities.

Initialization Flow:
-------------------
1. Create all tables from ORM models
2. Seed the demo exhibition and exhibitor when enabled
3. Verify the connection

Usage:
------
    from expo_scanner.db import init_db
    init_db()

==============================================================================
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from expo_scanner.config import get_settings
from expo_scanner.db.database import DatabaseManager
from expo_scanner.db.models import Exhibition, ExhibitionStatus, Exhibitor


# Module logger
logger = logging.getLogger(__name__)

DEMO_EXHIBITION_ID = "expo-1"


class DatabaseInitializer:
    """
    Database initialization manager.

    Example:
        >>> initializer = DatabaseInitializer()
        >>> initializer.initialize()
    """

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        session: Optional[Session] = None
    ) -> None:
        """
        Initialize the database initializer.

        Args:
            db_manager: Optional DatabaseManager instance (creates new if None)
            session: Optional existing session (creates new if None)
        """
        self._db_manager = db_manager or DatabaseManager()
        self._settings = get_settings()
        self._session = session

    def _get_session(self) -> Session:
        if self._session is not None:
            return self._session
        return self._db_manager.get_session()

    # =========================================================================
    # TABLE OPERATIONS
    # =========================================================================

    def create_tables(self) -> None:
        """Create all database tables from ORM models."""
        logger.info("Creating database tables...")
        self._db_manager.create_tables()
        logger.info("✅ Database tables created successfully")

    # =========================================================================
    # DEMO DATA
    # =========================================================================

    def seed_demo_exhibitor(self) -> Optional[Exhibitor]:
        """
        Create the demo exhibition and exhibitor if missing.

        Identity and token come from DEMO_EXHIBITOR_ID and
        DEMO_EXHIBITOR_TOKEN.

        Returns:
            Created Exhibitor, or None if it already exists
        """
        session = self._get_session()

        try:
            existing = session.get(Exhibitor, self._settings.demo_exhibitor_id)
            if existing:
                logger.info(f"Demo exhibitor already exists: {existing.id}")
                return None

            exhibition = session.get(Exhibition, DEMO_EXHIBITION_ID)
            if exhibition is None:
                exhibition = Exhibition(
                    id=DEMO_EXHIBITION_ID,
                    name="TechExpo 2025",
                    description="The premier technology exhibition of the year",
                    location="Convention Center, New York",
                    start_date=date(2025, 4, 1),
                    end_date=date(2025, 4, 3),
                    status=ExhibitionStatus.ACTIVE,
                )
                session.add(exhibition)

            exhibitor = Exhibitor(
                id=self._settings.demo_exhibitor_id,
                exhibition_id=exhibition.id,
                name="John Smith",
                company="Acme Corp",
                email="john@acme.com",
                phone_number="+1-555-0123",
                secure_token=self._settings.demo_exhibitor_token,
                is_active=True,
            )
            session.add(exhibitor)
            session.commit()
            session.refresh(exhibitor)

            logger.info(
                f"✅ Demo exhibitor created: "
                f"{exhibitor.scanner_url(self._settings.scanner_base_url)}"
            )
            if self._settings.is_production:
                logger.warning("⚠️ Demo exhibitor seeded in production!")

            return exhibitor

        except Exception as e:
            session.rollback()
            logger.error(f"Failed to seed demo exhibitor: {e}")
            raise
        finally:
            if self._session is None:
                session.close()

    # =========================================================================
    # INITIALIZATION METHODS
    # =========================================================================

    def initialize(self) -> None:
        """Create tables, seed demo data when enabled, verify connection."""
        logger.info("=" * 60)
        logger.info("Initializing database...")
        logger.info("=" * 60)

        self.create_tables()

        if self._settings.seed_demo_exhibitor:
            self.seed_demo_exhibitor()

        if self._db_manager.verify_connection():
            logger.info("✅ Database connection verified")
        else:
            logger.warning("⚠️ Database connection check failed")

        logger.info("Database initialization complete")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def init_db() -> None:
    """Initialize the database at application startup."""
    initializer = DatabaseInitializer()
    initializer.initialize()
