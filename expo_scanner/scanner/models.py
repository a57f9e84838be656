"""
==============================================================================
Scanner Models Module
==============================================================================

Value types shared by the scanning engine.

- SessionState / FacingMode: enums
- ScanPolicy: per-session configuration (immutable)
- ScanResult: one dispatched decode outcome (immutable)
- ExhibitorAccess / AccessDecision: access gate snapshot and verdict
- DecodeOutcome: what a single decode attempt produced

==============================================================================
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# ENUMS
# =============================================================================

class SessionState(str, enum.Enum):
    """
    Camera session lifecycle.

        IDLE ──▶ REQUESTING_PERMISSION ──┬──▶ ACTIVE ──▶ STOPPED
                                         ├──▶ PERMISSION_DENIED
                                         └──▶ FAILED
    """

    IDLE = "idle"
    REQUESTING_PERMISSION = "requesting_permission"
    ACTIVE = "active"
    STOPPED = "stopped"
    PERMISSION_DENIED = "permission_denied"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        """Terminal sessions are never reused; a new start creates a new session."""
        return self in (
            SessionState.STOPPED,
            SessionState.PERMISSION_DENIED,
            SessionState.FAILED,
        )


class FacingMode(str, enum.Enum):
    """Which camera to ask the platform for."""

    USER = "user"
    ENVIRONMENT = "environment"

    def __str__(self) -> str:
        return self.value


class AccessDenialReason(str, enum.Enum):
    """Why a scanner link was refused."""

    NOT_FOUND = "not_found"
    TOKEN_MISMATCH = "token_mismatch"
    DEACTIVATED = "deactivated"

    def __str__(self) -> str:
        return self.value


# =============================================================================
# SESSION CONFIGURATION & RESULTS
# =============================================================================

class ScanPolicy(BaseModel):
    """
    Session configuration, fixed for the lifetime of a session.

    Attributes:
        continuous: Keep scanning after a successful decode
        facing: Camera facing mode requested from the platform
    """

    model_config = ConfigDict(frozen=True)

    continuous: bool = Field(default=True, description="Keep scanning after a hit")
    facing: FacingMode = Field(default=FacingMode.ENVIRONMENT)


class ScanResult(BaseModel):
    """
    One dispatched decode outcome.

    ``payload`` is the decoded string exactly as read from the code.
    ``timestamp`` is taken when the attempt is dispatched.
    """

    model_config = ConfigDict(frozen=True)

    success: bool
    payload: Optional[str] = None
    error: Optional[str] = None
    timestamp: datetime

    def to_message(self) -> Dict[str, Any]:
        """JSON-ready representation for the scanner WebSocket."""
        return {
            "success": self.success,
            "payload": self.payload,
            "error": self.error,
            "timestamp": self.timestamp.isoformat(),
        }


# =============================================================================
# ACCESS
# =============================================================================

class ExhibitorAccess(BaseModel):
    """Snapshot of an exhibitor's scanner access record."""

    model_config = ConfigDict(frozen=True)

    exhibitor_id: str
    token: str
    is_active: bool = True


class Granted(BaseModel):
    """Access granted; carries the record it was granted against."""

    model_config = ConfigDict(frozen=True)

    access: ExhibitorAccess

    @property
    def granted(self) -> bool:
        return True


class Denied(BaseModel):
    """Access denied for a specific reason."""

    model_config = ConfigDict(frozen=True)

    reason: AccessDenialReason

    @property
    def granted(self) -> bool:
        return False


AccessDecision = Union[Granted, Denied]


# =============================================================================
# DECODE OUTCOME
# =============================================================================

@dataclass(frozen=True)
class DecodeOutcome:
    """
    A decode attempt that found a code surface.

    Either ``payload`` is set (readable code) or ``error`` is set
    (unreadable code). Attempts that find nothing produce no outcome.
    """

    payload: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.payload is not None

    @classmethod
    def found(cls, payload: str) -> DecodeOutcome:
        return cls(payload=payload)

    @classmethod
    def unreadable(cls, error: str) -> DecodeOutcome:
        return cls(error=error)
