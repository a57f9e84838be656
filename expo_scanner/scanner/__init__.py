"""
==============================================================================
Scanner Package - QR Scanning Engine
==============================================================================

Camera session lifecycle, per-frame QR decoding and result dispatch,
gated by the exhibitor access check.

Classes:
--------
- AccessValidator: Scanner link access gate
- CameraSessionManager: Exclusive camera ownership and session states
- FrameDecodeLoop: Cooperative per-frame decode loop
- ScanResultDispatcher: Uniform ScanResult delivery
- QRFrameDecoder: Single-frame QR decoding (OpenCV + pyzbar)

==============================================================================
"""

from .access import AccessLookup, AccessValidator, InMemoryAccessLookup
from .decoder import QRFrameDecoder
from .dispatcher import ScanResultDispatcher
from .decode_loop import FrameDecodeLoop
from .models import (
    AccessDecision,
    AccessDenialReason,
    Denied,
    ExhibitorAccess,
    FacingMode,
    Granted,
    ScanPolicy,
    ScanResult,
    SessionState,
)
from .platform import LatestFrameSink
from .session import CameraSession, CameraSessionManager

__all__ = [
    "AccessLookup",
    "AccessValidator",
    "InMemoryAccessLookup",
    "QRFrameDecoder",
    "ScanResultDispatcher",
    "FrameDecodeLoop",
    "AccessDecision",
    "AccessDenialReason",
    "Denied",
    "ExhibitorAccess",
    "FacingMode",
    "Granted",
    "ScanPolicy",
    "ScanResult",
    "SessionState",
    "LatestFrameSink",
    "CameraSession",
    "CameraSessionManager",
]
