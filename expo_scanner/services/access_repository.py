"""
==============================================================================
Access Repository Module
==============================================================================

SQLAlchemy-backed access record lookup for the access validator.

Each lookup reads the exhibitor row once and returns an immutable
ExhibitorAccess snapshot; the scanner never writes exhibitor state.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from expo_scanner.db.models import Exhibitor
from expo_scanner.scanner.models import ExhibitorAccess


# Module logger
logger = logging.getLogger(__name__)


class SqlAccessLookup:
    """
    Access lookup over the ``exhibitors`` table.

    Example:
        >>> lookup = SqlAccessLookup(db_session)
        >>> access = lookup.lookup_access("exhibitor-1")
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def get_exhibitor(self, exhibitor_id: str) -> Optional[Exhibitor]:
        """Load the exhibitor row, or None."""
        return self._db.get(Exhibitor, exhibitor_id)

    def lookup_access(self, identity: str) -> Optional[ExhibitorAccess]:
        exhibitor = self.get_exhibitor(identity)
        if exhibitor is None:
            logger.debug(f"No access record for {identity!r}")
            return None

        return ExhibitorAccess(
            exhibitor_id=exhibitor.id,
            token=exhibitor.secure_token,
            is_active=bool(exhibitor.is_active),
        )
