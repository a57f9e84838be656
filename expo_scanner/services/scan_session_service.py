"""
==============================================================================
Scan Session Service Module
==============================================================================

Runs scanning sessions for one authorized exhibitor.

    AccessValidator ──Granted──▶ ScanSessionService ──▶ CameraSessionManager
                                       │
                                       ├── record_scan() per successful result
                                       └── on_result(ScanDelivery) to the UI

The service can only be built from a Granted decision, so no camera is
requested for a link that failed validation.

==============================================================================
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict

from expo_scanner.config import Settings
from expo_scanner.scanner.decoder import QRFrameDecoder
from expo_scanner.scanner.models import Granted, ScanPolicy, ScanResult
from expo_scanner.scanner.platform import CameraPlatform, FrameSink
from expo_scanner.scanner.session import CameraSession, CameraSessionManager, StateListener


# Module logger
logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Failed to save scan data"


class ScanRecorder(Protocol):
    """Persistence collaborator; called at most once per successful result."""

    def record_scan(self, exhibitor_id: str, payload: str) -> Any:
        ...


class ScanDelivery(BaseModel):
    """A dispatched ScanResult together with its persistence outcome."""

    model_config = ConfigDict(frozen=True)

    result: ScanResult
    recorded: bool = False
    scan_count: int = 0
    record_error: Optional[str] = None

    def to_message(self) -> dict:
        message = {"type": "scan_result", **self.result.to_message()}
        message["recorded"] = self.recorded
        message["scan_count"] = self.scan_count
        if self.record_error:
            message["record_error"] = self.record_error
        return message


DeliveryCallback = Callable[[ScanDelivery], Union[None, Awaitable[Any]]]


class ScanSessionService:
    """
    Scanning sessions for one exhibitor.

    Attributes:
        exhibitor_id: Exhibitor the scans are recorded for
        scan_count: Successful scans recorded during this connection
    """

    def __init__(
        self,
        decision: Granted,
        recorder: ScanRecorder,
        platform: CameraPlatform,
        sink: FrameSink,
        on_result: DeliveryCallback,
        on_state_change: Optional[StateListener] = None,
        decoder: Optional[QRFrameDecoder] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        if not isinstance(decision, Granted):
            raise TypeError("ScanSessionService requires a Granted access decision")

        self.exhibitor_id = decision.access.exhibitor_id
        self.scan_count = 0
        self._recorder = recorder
        self._on_result = on_result
        self._manager = CameraSessionManager(
            platform,
            sink,
            consumer=self._handle_result,
            decoder=decoder,
            settings=settings,
            on_state_change=on_state_change,
        )

    @property
    def manager(self) -> CameraSessionManager:
        return self._manager

    async def start(self, policy: Optional[ScanPolicy] = None) -> CameraSession:
        """Start (or return the running) scanning session."""
        return await self._manager.start(policy)

    async def stop(self) -> None:
        await self._manager.stop()

    async def aclose(self) -> None:
        """Release the camera; must run when the connection goes away."""
        await self._manager.aclose()

    async def _handle_result(self, result: ScanResult) -> None:
        recorded = False
        record_error = None

        if result.success and result.payload is not None:
            try:
                self._recorder.record_scan(self.exhibitor_id, result.payload)
                recorded = True
                self.scan_count += 1
                logger.info(f"✅ Scan #{self.scan_count} recorded for {self.exhibitor_id}")
            except Exception:
                logger.exception(f"Failed to record scan for {self.exhibitor_id}")
                record_error = SAVE_FAILED_MESSAGE

        delivery = ScanDelivery(
            result=result,
            recorded=recorded,
            scan_count=self.scan_count,
            record_error=record_error,
        )

        value = self._on_result(delivery)
        if inspect.isawaitable(value):
            await value
