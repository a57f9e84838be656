"""
==============================================================================
OpenCV Camera Platform Module
==============================================================================

Camera platform backed by a local capture device (cv2.VideoCapture).

Facing modes map to device indexes from settings
(CAMERA_ENVIRONMENT_INDEX / CAMERA_USER_INDEX). The requested facing is a
preference: when that device cannot be opened the other one is tried.
Resolution is a hint passed to the driver; the native frame size wins.

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, List, Optional

import cv2
import numpy as np

from expo_scanner.config import Settings, get_settings
from expo_scanner.core.exceptions import (
    CameraPermissionError,
    CameraUnavailableError,
    FrameSourceError,
)
from expo_scanner.scanner.models import FacingMode


# Module logger
logger = logging.getLogger(__name__)


class OpenCVTrack:
    """The single video track of a capture device. Releases it once."""

    def __init__(self, capture: Any) -> None:
        self._capture = capture
        self.stopped = False

    def stop(self) -> None:
        if self.stopped:
            return
        self.stopped = True
        self._capture.release()


class OpenCVStream:
    """An opened capture device."""

    def __init__(self, capture: Any, device_index: int) -> None:
        self.capture = capture
        self.device_index = device_index
        self._tracks = [OpenCVTrack(capture)]

    @property
    def tracks(self) -> List[OpenCVTrack]:
        return self._tracks


class OpenCVCameraPlatform:
    """
    Local camera platform.

    Example:
        >>> platform = OpenCVCameraPlatform()
        >>> stream = await platform.request_stream(FacingMode.ENVIRONMENT, 1280, 720)
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        capture_factory: Callable[[int], Any] = cv2.VideoCapture,
    ) -> None:
        settings = settings or get_settings()
        self._indexes = {
            FacingMode.ENVIRONMENT: settings.camera_environment_index,
            FacingMode.USER: settings.camera_user_index,
        }
        self._capture_factory = capture_factory

    def device_order(self, facing: FacingMode) -> List[int]:
        """Device indexes to try, preferred facing first."""
        preferred = self._indexes[facing]
        order = [preferred]
        for index in self._indexes.values():
            if index not in order:
                order.append(index)
        return order

    async def request_stream(
        self,
        facing: FacingMode,
        ideal_width: int,
        ideal_height: int,
    ) -> OpenCVStream:
        return await asyncio.to_thread(self._open, facing, ideal_width, ideal_height)

    def _open(self, facing: FacingMode, ideal_width: int, ideal_height: int) -> OpenCVStream:
        for index in self.device_order(facing):
            try:
                capture = self._capture_factory(index)
            except PermissionError as e:
                raise CameraPermissionError(f"Camera access denied: {e}") from e

            if not capture.isOpened():
                capture.release()
                logger.warning(f"Cannot open camera {index}")
                continue

            capture.set(cv2.CAP_PROP_FRAME_WIDTH, ideal_width)
            capture.set(cv2.CAP_PROP_FRAME_HEIGHT, ideal_height)

            width = int(capture.get(cv2.CAP_PROP_FRAME_WIDTH))
            height = int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT))
            logger.info(f"📷 Opened camera {index} ({facing}) at {width}x{height}")

            return OpenCVStream(capture, index)

        raise CameraUnavailableError("No camera device could be opened")


class OpenCVFrameSink:
    """
    Frame sink reading straight from the attached capture device.

    A failed read means no frame is ready yet. After ``max_failed_reads``
    consecutive failures the device is considered gone.
    """

    def __init__(self, max_failed_reads: int = 30) -> None:
        self._capture: Optional[Any] = None
        self._max_failed_reads = max_failed_reads
        self._failed_reads = 0

    def attach(self, stream: OpenCVStream) -> None:
        self._capture = stream.capture
        self._failed_reads = 0

    def detach(self) -> None:
        self._capture = None

    def read_frame(self) -> Optional[np.ndarray]:
        if self._capture is None:
            return None

        ok, frame = self._capture.read()
        if not ok or frame is None:
            self._failed_reads += 1
            if self._failed_reads >= self._max_failed_reads:
                raise FrameSourceError("Camera stopped delivering frames")
            return None

        self._failed_reads = 0
        return frame
