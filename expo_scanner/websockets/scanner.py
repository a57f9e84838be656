"""
==============================================================================
Scanner WebSocket Module
==============================================================================

Exhibitor QR scanning over a WebSocket connection.

Protocol:
---------
1. Client connects to /ws/scanner/{exhibitor_id}?token=...
2. Server validates the link and sends access_granted, or an error
   followed by a policy-violation close (1008)
3. Client sends start {"continuous": bool, "facing": "environment"|"user"}
4. Server sends camera_request; client answers camera_granted,
   camera_denied or camera_error
5. Client streams frames as base64; server sends scan_result messages
   and session_state on every lifecycle transition
6. Client sends stop to end the session (the connection stays open and
   a new start begins a new session)

Disconnecting always stops the session and releases the camera.

==============================================================================
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError
from sqlalchemy.orm import Session

from expo_scanner.config import get_settings
from expo_scanner.core import exceptions
from expo_scanner.core.exceptions import AppException
from expo_scanner.db.database import get_db
from expo_scanner.scanner.access import AccessValidator, denial_exception
from expo_scanner.scanner.models import Denied, SessionState
from expo_scanner.scanner.platform import LatestFrameSink
from expo_scanner.scanner.session import CameraSession
from expo_scanner.schemas.scanner import (
    CameraReplyMessage,
    ExhibitorProfile,
    FrameMessage,
    StartMessage,
)
from expo_scanner.services import ScanDelivery, ScanSessionService, SqlAccessLookup, SqlScanRecorder
from expo_scanner.websockets.remote_camera import RemoteCameraPlatform, decode_frame


# Module logger
logger = logging.getLogger(__name__)

router = APIRouter()


class ScannerWebSocketHandler:
    """
    Handler for one exhibitor scanner connection.

    Manages the lifecycle of a scanning connection including:
    - Scanner link validation
    - Camera permission handshake
    - Frame intake
    - Result and state reporting
    """

    def __init__(self, websocket: WebSocket, db: Session, exhibitor_id: str):
        self._websocket = websocket
        self._db = db
        self._exhibitor_id = exhibitor_id
        self._settings = get_settings()
        self._lookup = SqlAccessLookup(db)
        self._platform = RemoteCameraPlatform(self._send)
        self._sink = LatestFrameSink()
        self._service: Optional[ScanSessionService] = None
        self._start_task: Optional[asyncio.Task] = None
        self._frames_received = 0

    async def _send(self, message: Dict[str, Any]) -> None:
        await self._websocket.send_json(message)

    async def send_exception(self, error: AppException) -> None:
        """Send error message to client."""
        await self._send({
            "type": "error",
            "code": error.code,
            "message": error.message
        })

    # =========================================================================
    # ACCESS
    # =========================================================================

    async def authenticate(self, token: Optional[str]) -> bool:
        """Validate the scanner link and build the session service."""
        decision = AccessValidator(self._lookup).validate(self._exhibitor_id, token)

        if isinstance(decision, Denied):
            error = denial_exception(decision.reason, self._exhibitor_id)
            logger.warning(f"🚫 Scanner access denied for {self._exhibitor_id!r}: {decision.reason}")
            await self.send_exception(error)
            return False

        self._service = ScanSessionService(
            decision,
            recorder=SqlScanRecorder(self._db),
            platform=self._platform,
            sink=self._sink,
            on_result=self._send_delivery,
            on_state_change=self._send_state,
            settings=self._settings,
        )

        exhibitor = self._lookup.get_exhibitor(self._exhibitor_id)
        await self._send({
            "type": "access_granted",
            "exhibitor": ExhibitorProfile.model_validate(exhibitor).model_dump(),
        })
        return True

    # =========================================================================
    # OUTBOUND
    # =========================================================================

    async def _send_delivery(self, delivery: ScanDelivery) -> None:
        await self._send(delivery.to_message())

    async def _send_state(self, session: CameraSession) -> None:
        message: Dict[str, Any] = {
            "type": "session_state",
            "session_id": session.id,
            "state": session.state.value,
        }
        if session.error is not None:
            message["error"] = {
                "code": session.error.code,
                "message": session.error.message,
            }
            message["guidance"] = session.error.guidance
        if session.stop_requested:
            message["stop_requested"] = True
        await self._send(message)

    # =========================================================================
    # INBOUND
    # =========================================================================

    async def handle_message(self, data: Dict[str, Any]) -> None:
        """Route one client message."""
        message_type = data.get("type")

        if message_type == "frame":
            await self.handle_frame(data)

        elif message_type == "start":
            await self.handle_start(data)

        elif message_type == "camera_granted":
            if not self._platform.grant():
                logger.debug("camera_granted without a pending request")

        elif message_type in ("camera_denied", "camera_error"):
            await self.handle_camera_refusal(message_type, data)

        elif message_type == "stop":
            await self.handle_stop()

        else:
            await self.send_exception(
                exceptions.invalid_message(f"unknown type {message_type!r}")
            )

    async def handle_camera_refusal(self, message_type: str, data: Dict[str, Any]) -> None:
        """Resolve the pending camera request; a malformed reply still resolves it."""
        try:
            reason = CameraReplyMessage.model_validate(data).message
        except ValidationError as e:
            await self.send_exception(exceptions.invalid_message(e.errors()[0]["msg"]))
            reason = None

        if message_type == "camera_denied":
            resolved = self._platform.deny(reason)
        else:
            resolved = self._platform.fail(reason)

        if not resolved:
            logger.debug(f"{message_type} without a pending request")

    async def handle_stop(self) -> None:
        """Stop the session; a stop during the permission prompt is acknowledged."""
        logger.info("🛑 Client requested stop")
        await self._service.stop()

        session = self._service.manager.current
        if session is not None and session.state is SessionState.REQUESTING_PERMISSION:
            await self._send_state(session)

    async def handle_start(self, data: Dict[str, Any]) -> None:
        """Start a session in the background so the handshake can proceed."""
        try:
            policy = StartMessage.model_validate(data).to_policy()
        except ValidationError as e:
            await self.send_exception(exceptions.invalid_message(e.errors()[0]["msg"]))
            return

        if self._start_task is not None and not self._start_task.done():
            logger.info("Start already in progress; ignored")
            await self.send_exception(
                exceptions.invalid_message("a camera request is already pending")
            )
            return

        logger.info(f"▶️ Start requested: continuous={policy.continuous}, facing={policy.facing}")
        self._start_task = asyncio.create_task(self._service.start(policy))
        self._start_task.add_done_callback(self._on_start_done)

    @staticmethod
    def _on_start_done(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"Scanner start failed: {error}")

    async def handle_frame(self, data: Dict[str, Any]) -> None:
        """Decode a client frame into the sink; frames outside ACTIVE are dropped."""
        if not self._sink.attached:
            return

        try:
            message = FrameMessage.model_validate(data)
        except ValidationError:
            logger.debug("Frame message without image data")
            return

        frame = decode_frame(message.frame)
        if frame is None:
            logger.debug("Unreadable frame image dropped")
            return

        self._frames_received += 1
        self._sink.push(frame)

    # =========================================================================
    # MAIN LOOP
    # =========================================================================

    async def run(self, token: Optional[str]) -> None:
        """Main handler loop."""
        await self._websocket.accept()
        logger.info(f"📱 Scanner WebSocket connected: {self._exhibitor_id}")

        if not await self.authenticate(token):
            await self._websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

        logger.info(f"✅ Scanner link accepted: {self._exhibitor_id}")

        try:
            while True:
                raw = await self._websocket.receive_text()

                try:
                    data = json.loads(raw)
                except ValueError:
                    await self.send_exception(exceptions.invalid_message("not JSON"))
                    continue

                if not isinstance(data, dict):
                    await self.send_exception(exceptions.invalid_message("expected an object"))
                    continue

                await self.handle_message(data)

        except WebSocketDisconnect:
            logger.info("📱 Client disconnected")
        except Exception as e:
            logger.error(f"WebSocket error: {e}")
            try:
                await self.send_exception(exceptions.internal_error(f"Scanner error: {e}"))
            except Exception:
                logger.debug("Could not report error to client")
        finally:
            await self._shutdown()
            logger.info(
                f"✅ Scanner WebSocket closed "
                f"(frames={self._frames_received}, scans={self._service.scan_count})"
            )

    async def _shutdown(self) -> None:
        task = self._start_task
        if task is not None and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        await self._service.aclose()


@router.websocket("/ws/scanner/{exhibitor_id}")
async def websocket_scanner(
    websocket: WebSocket,
    exhibitor_id: str,
    token: str = Query(None),
    db: Session = Depends(get_db)
):
    """Exhibitor QR scanning via WebSocket."""
    handler = ScannerWebSocketHandler(websocket, db, exhibitor_id)
    await handler.run(token)
