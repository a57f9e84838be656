"""
==============================================================================
Core Package
==============================================================================

Core infrastructure for the application.

This package provides:
- AppException and the camera error family
- ErrorCode taxonomy shared by REST and WebSocket surfaces
- Exception factory functions for access denials

Usage:
------
    from expo_scanner.core import exceptions
    raise exceptions.access_deactivated("exhibitor-1")

==============================================================================
"""

from .exceptions import (
    AppException,
    CameraError,
    CameraPermissionError,
    CameraUnavailableError,
    ErrorCode,
    FrameSourceError,
    register_exception_handlers,
)

__all__ = [
    "AppException",
    "CameraError",
    "CameraPermissionError",
    "CameraUnavailableError",
    "ErrorCode",
    "FrameSourceError",
    "register_exception_handlers",
]
