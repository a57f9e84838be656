"""
==============================================================================
Scanner Link Endpoints
==============================================================================

Lets the scanner page check its link before asking for the camera.

    GET /api/v1/scanner/{exhibitor_id}/access?token=...

    200  link valid, exhibitor profile and camera hints
    404  ACCESS_NOT_FOUND
    401  ACCESS_TOKEN_MISMATCH
    403  ACCESS_DEACTIVATED

==============================================================================
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from expo_scanner.config import get_settings
from expo_scanner.db.database import get_db
from expo_scanner.scanner.access import AccessValidator
from expo_scanner.schemas.scanner import AccessGrantedResponse, CameraHints, ExhibitorProfile
from expo_scanner.services import SqlAccessLookup


router = APIRouter(prefix="/scanner", tags=["Scanner"])


class ScannerAccessController:
    """Controller for scanner link checks."""

    def __init__(self, db: Session):
        self._lookup = SqlAccessLookup(db)
        self._validator = AccessValidator(self._lookup)
        self._settings = get_settings()

    def check_access(self, exhibitor_id: str, token: Optional[str]) -> AccessGrantedResponse:
        """Validate the link; raises the matching AppException on denial."""
        self._validator.validate_or_raise(exhibitor_id, token)
        exhibitor = self._lookup.get_exhibitor(exhibitor_id)

        return AccessGrantedResponse(
            exhibitor=ExhibitorProfile.model_validate(exhibitor),
            camera=CameraHints(
                ideal_width=self._settings.camera_ideal_width,
                ideal_height=self._settings.camera_ideal_height,
                target_fps=self._settings.scanner_target_fps,
            ),
        )


@router.get("/{exhibitor_id}/access", response_model=AccessGrantedResponse)
async def check_scanner_access(
    exhibitor_id: str,
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """Validate a scanner link."""
    controller = ScannerAccessController(db)
    return controller.check_access(exhibitor_id, token)
