"""
==============================================================================
Scanner Schemas Module
==============================================================================

Request and response schemas for the scanner REST endpoint and the
client messages of the scanner WebSocket.

==============================================================================
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from expo_scanner.scanner.models import FacingMode, ScanPolicy


class ExhibitorProfile(BaseModel):
    """Exhibitor details shown in the scanner header."""
    id: str
    exhibition_id: str
    name: str
    company: str

    model_config = ConfigDict(from_attributes=True)


class CameraHints(BaseModel):
    """What the client should ask its camera for."""
    ideal_width: int
    ideal_height: int
    target_fps: float
    default_facing: FacingMode = FacingMode.ENVIRONMENT


class AccessGrantedResponse(BaseModel):
    """Scanner link accepted."""
    success: bool = Field(default=True)
    exhibitor: ExhibitorProfile
    camera: CameraHints


class StartMessage(BaseModel):
    """Client ``start`` message: the policy for the new session."""
    continuous: bool = Field(default=True)
    facing: FacingMode = Field(default=FacingMode.ENVIRONMENT)

    model_config = ConfigDict(extra="ignore")

    def to_policy(self) -> ScanPolicy:
        return ScanPolicy(continuous=self.continuous, facing=self.facing)


class FrameMessage(BaseModel):
    """Client ``frame`` message carrying one base64 encoded image."""
    frame: str = Field(..., min_length=1)

    model_config = ConfigDict(extra="ignore")


class CameraReplyMessage(BaseModel):
    """Client reply to a ``camera_request``."""
    message: Optional[str] = Field(default=None, max_length=500)

    model_config = ConfigDict(extra="ignore")
