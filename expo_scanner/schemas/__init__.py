"""
==============================================================================
Schemas Package
==============================================================================

Pydantic schemas for the REST API and WebSocket messages.

==============================================================================
"""

from .scanner import (
    AccessGrantedResponse,
    CameraHints,
    CameraReplyMessage,
    ExhibitorProfile,
    FrameMessage,
    StartMessage,
)

__all__ = [
    "AccessGrantedResponse",
    "CameraHints",
    "CameraReplyMessage",
    "ExhibitorProfile",
    "FrameMessage",
    "StartMessage",
]
