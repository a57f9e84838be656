"""
Application Exception Handling

Single AppException family for all application errors with FastAPI integration.
"""

import enum
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


class ErrorCode(str, enum.Enum):
    """
    Machine-readable error codes.

    Access (terminal, block session creation):
        - ACCESS_NOT_FOUND (404)
        - ACCESS_TOKEN_MISMATCH (401)
        - ACCESS_DEACTIVATED (403)

    Camera (blocking, retriable only by the user):
        - PERMISSION_DENIED (403)
        - CAMERA_UNAVAILABLE (503)

    Per-frame (non-fatal, loop continues):
        - DECODE_ATTEMPT_FAILED
        - DISPATCH_CONSUMER_FAILED

    General:
        - INVALID_MESSAGE (400)
        - INTERNAL_ERROR (500)
    """

    ACCESS_NOT_FOUND = "ACCESS_NOT_FOUND"
    ACCESS_TOKEN_MISMATCH = "ACCESS_TOKEN_MISMATCH"
    ACCESS_DEACTIVATED = "ACCESS_DEACTIVATED"
    PERMISSION_DENIED = "PERMISSION_DENIED"
    CAMERA_UNAVAILABLE = "CAMERA_UNAVAILABLE"
    DECODE_ATTEMPT_FAILED = "DECODE_ATTEMPT_FAILED"
    DISPATCH_CONSUMER_FAILED = "DISPATCH_CONSUMER_FAILED"
    INVALID_MESSAGE = "INVALID_MESSAGE"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    def __str__(self) -> str:
        return self.value


class AppException(Exception):
    """
    Unified application exception for all error scenarios.

    Provides consistent error response format across the REST API and the
    scanner WebSocket.

    Usage:
        raise AppException("Scanner link not found", ErrorCode.ACCESS_NOT_FOUND, 404)
    """

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize application exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code (see ErrorCode)
            status_code: HTTP status code (default: 400)
            details: Additional error context (optional)
        """
        self.message = message
        self.code = str(code)
        self.status_code = status_code
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response."""
        error_dict = {
            "success": False,
            "error": {
                "code": self.code,
                "message": self.message,
                "timestamp": self.timestamp
            }
        }

        if self.details:
            error_dict["error"]["details"] = self.details

        return error_dict


class CameraError(AppException):
    """Base class for camera acquisition failures reported through session state."""

    guidance = "Unable to use the camera. Please try again."


class CameraPermissionError(CameraError):
    """The platform explicitly refused camera access."""

    guidance = "Camera access denied. Please allow camera permissions and retry."

    def __init__(self, message: str = "Camera permission was denied") -> None:
        super().__init__(message, ErrorCode.PERMISSION_DENIED, 403)


class CameraUnavailableError(CameraError):
    """No usable capture device, or any other acquisition failure."""

    guidance = "No usable camera was found. Check the device and retry."

    def __init__(self, message: str = "Failed to access camera") -> None:
        super().__init__(message, ErrorCode.CAMERA_UNAVAILABLE, 503)


class FrameSourceError(CameraUnavailableError):
    """The frame source of an active stream broke; ends the session."""


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Convert AppException to consistent JSON error response."""
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(AppException, app_exception_handler)


# ============================================
# CONVENIENCE FACTORY FUNCTIONS
# ============================================

def access_not_found(exhibitor_id: Optional[str] = None) -> AppException:
    """Create access-record-not-found exception."""
    details = {"exhibitor_id": exhibitor_id} if exhibitor_id else {}
    return AppException(
        "Scanner link not found",
        ErrorCode.ACCESS_NOT_FOUND,
        404,
        details
    )


def access_token_mismatch(exhibitor_id: Optional[str] = None) -> AppException:
    """Create token mismatch exception."""
    details = {"exhibitor_id": exhibitor_id} if exhibitor_id else {}
    return AppException(
        "Invalid or expired scanner link",
        ErrorCode.ACCESS_TOKEN_MISMATCH,
        401,
        details
    )


def access_deactivated(exhibitor_id: Optional[str] = None) -> AppException:
    """Create deactivated scanner exception."""
    details = {"exhibitor_id": exhibitor_id} if exhibitor_id else {}
    return AppException(
        "This scanner has been deactivated",
        ErrorCode.ACCESS_DEACTIVATED,
        403,
        details
    )


def invalid_message(reason: str) -> AppException:
    """Create malformed client message exception."""
    return AppException(
        f"Invalid message: {reason}",
        ErrorCode.INVALID_MESSAGE,
        400,
        {"reason": reason}
    )


def internal_error(message: str = "Internal server error") -> AppException:
    """Create internal server error exception."""
    return AppException(message, ErrorCode.INTERNAL_ERROR, 500)
