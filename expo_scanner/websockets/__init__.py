"""
==============================================================================
WebSocket Package
==============================================================================

Real-time WebSocket handlers for exhibitor QR scanning.

Handlers:
---------
- scanner: Scanner link validation, camera handshake and scan results
- remote_camera: Camera platform backed by the connected device

==============================================================================
"""

from .scanner import router as scanner_router

__all__ = ["scanner_router"]
