"""
==============================================================================
Remote Camera Platform Module
==============================================================================

Camera platform for a device on the other end of the scanner WebSocket.

Permission Handshake:
--------------------
1. Server sends  {"type": "camera_request", "facing": ..., "ideal": {...}}
2. Client replies camera_granted | camera_denied | camera_error
3. On grant, the client streams {"type": "frame"} messages
4. Stopping the track sends {"type": "camera_release"}

The request suspends until the client answers.

==============================================================================
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional

import cv2
import numpy as np

from expo_scanner.core.exceptions import CameraPermissionError, CameraUnavailableError
from expo_scanner.scanner.models import FacingMode


# Module logger
logger = logging.getLogger(__name__)

SendCallback = Callable[[Dict[str, Any]], Awaitable[None]]


class RemoteTrack:
    """Video track owned by the client device."""

    def __init__(self, send: SendCallback) -> None:
        self._send = send
        self.stopped = False

    async def stop(self) -> None:
        if self.stopped:
            return
        self.stopped = True
        await self._send({"type": "camera_release"})


class RemoteStream:
    """Stream granted by the client device."""

    def __init__(self, send: SendCallback, facing: FacingMode) -> None:
        self.facing = facing
        self._tracks = [RemoteTrack(send)]

    @property
    def tracks(self) -> List[RemoteTrack]:
        return self._tracks


class RemoteCameraPlatform:
    """
    Platform whose permission decisions come from client messages.

    Example:
        >>> platform = RemoteCameraPlatform(websocket.send_json)
        >>> stream = await platform.request_stream(FacingMode.ENVIRONMENT, 1280, 720)
        >>> # ... meanwhile the receive loop calls platform.grant()
    """

    def __init__(self, send: SendCallback) -> None:
        self._send = send
        self._pending: Optional[asyncio.Future] = None
        self._facing = FacingMode.ENVIRONMENT

    @property
    def pending(self) -> bool:
        """True while a permission request is awaiting the client."""
        return self._pending is not None and not self._pending.done()

    async def request_stream(
        self,
        facing: FacingMode,
        ideal_width: int,
        ideal_height: int,
    ) -> RemoteStream:
        if self.pending:
            raise CameraUnavailableError("A camera request is already pending")

        self._facing = facing
        self._pending = asyncio.get_running_loop().create_future()

        try:
            await self._send({
                "type": "camera_request",
                "facing": facing.value,
                "ideal": {"width": ideal_width, "height": ideal_height},
            })
        except Exception as e:
            self._pending = None
            raise CameraUnavailableError(f"Could not reach the scanner device: {e}") from e

        try:
            return await self._pending
        finally:
            self._pending = None

    def grant(self) -> bool:
        """Resolve the pending request with a stream. False if none pending."""
        if not self.pending:
            return False
        self._pending.set_result(RemoteStream(self._send, self._facing))
        return True

    def deny(self, message: Optional[str] = None) -> bool:
        """Resolve the pending request as a permission refusal."""
        if not self.pending:
            return False
        self._pending.set_exception(
            CameraPermissionError(message or "Camera permission was denied")
        )
        return True

    def fail(self, message: Optional[str] = None) -> bool:
        """Resolve the pending request as an acquisition failure."""
        if not self.pending:
            return False
        self._pending.set_exception(
            CameraUnavailableError(message or "Failed to access camera")
        )
        return True


def decode_frame(encoded: str) -> Optional[np.ndarray]:
    """
    Decode a base64 image (optionally a data URL) into a BGR frame.

    Returns:
        The frame, or None if the payload is not a readable image
    """
    if encoded.startswith("data:"):
        _, _, encoded = encoded.partition(",")

    try:
        img_data = base64.b64decode(encoded, validate=False)
    except (binascii.Error, ValueError):
        return None

    if not img_data:
        return None

    nparr = np.frombuffer(img_data, np.uint8)
    return cv2.imdecode(nparr, cv2.IMREAD_COLOR)
