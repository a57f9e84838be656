"""
==============================================================================
Services Package - Business Logic Layer
==============================================================================

Service classes sitting between the transport surfaces and storage.

    ┌──────────────────────────┐
    │  REST / WebSocket / CLI  │
    └────────────┬─────────────┘
                 │
    ┌────────────▼─────────────┐
    │   ScanSessionService     │  ← scanning engine + collaborators
    └────────────┬─────────────┘
                 │
    ┌────────────▼─────────────┐
    │ SqlAccessLookup /        │  ← data access (via ORM)
    │ SqlScanRecorder          │
    └──────────────────────────┘

==============================================================================
"""

from .access_repository import SqlAccessLookup
from .scan_recorder import SqlScanRecorder
from .scan_session_service import ScanDelivery, ScanRecorder, ScanSessionService

__all__ = [
    "SqlAccessLookup",
    "SqlScanRecorder",
    "ScanDelivery",
    "ScanRecorder",
    "ScanSessionService",
]
