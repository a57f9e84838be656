"""
==============================================================================
Scan Recorder Module
==============================================================================

Persistence collaborator for successful scans.

``record_scan(exhibitor_id, payload)`` stores the payload verbatim with
the exhibitor's exhibition. Failures surface as exceptions; the scanning
session treats them as non-fatal.

==============================================================================
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expo_scanner.core import exceptions
from expo_scanner.db.models import Exhibitor, ScanRecord


# Module logger
logger = logging.getLogger(__name__)


class SqlScanRecorder:
    """
    Records scans in the ``scan_records`` table.

    Example:
        >>> recorder = SqlScanRecorder(db_session)
        >>> record = recorder.record_scan("exhibitor-1", "ABC123")
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def record_scan(self, exhibitor_id: str, payload: str) -> ScanRecord:
        """
        Persist one scan.

        Raises:
            AppException: ACCESS_NOT_FOUND if the exhibitor no longer exists
            SQLAlchemyError: On database failure (after rollback)
        """
        exhibitor = self._db.get(Exhibitor, exhibitor_id)
        if exhibitor is None:
            raise exceptions.access_not_found(exhibitor_id)

        record = ScanRecord(
            exhibitor_id=exhibitor.id,
            exhibition_id=exhibitor.exhibition_id,
            payload=payload,
        )

        try:
            self._db.add(record)
            self._db.commit()
            self._db.refresh(record)
        except SQLAlchemyError:
            self._db.rollback()
            raise

        logger.debug(f"Scan recorded for {exhibitor_id}: {record.id}")
        return record
