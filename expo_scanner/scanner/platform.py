"""
==============================================================================
Camera Platform Interfaces
==============================================================================

What the scanning engine consumes from the platform that owns the camera.

    CameraPlatform.request_stream() ──▶ VideoStream ──▶ FrameSink.attach()
                                           │                 │
                                      tracks[].stop()   read_frame()

Implementations:
---------------
- OpenCVCameraPlatform / OpenCVFrameSink (local capture device)
- RemoteCameraPlatform (device on the other end of a WebSocket),
  paired with LatestFrameSink below

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Optional, Protocol, Sequence, Union

import numpy as np

from expo_scanner.scanner.models import FacingMode


# Module logger
logger = logging.getLogger(__name__)


class MediaTrack(Protocol):
    """A single media track of a stream. ``stop`` may be sync or async."""

    def stop(self) -> Union[None, Awaitable[None]]:
        ...


class VideoStream(Protocol):
    """A live video stream granted by the platform."""

    @property
    def tracks(self) -> Sequence[MediaTrack]:
        ...


class CameraPlatform(Protocol):
    """
    Source of camera streams.

    ``request_stream`` raises CameraPermissionError when access is refused
    and CameraUnavailableError for any other acquisition failure.
    """

    async def request_stream(
        self,
        facing: FacingMode,
        ideal_width: int,
        ideal_height: int,
    ) -> VideoStream:
        ...


class FrameSink(Protocol):
    """
    Renderable sink a stream is bound to while a session is active.

    ``read_frame`` returns None while no frame is ready and raises
    FrameSourceError when the underlying source is gone.
    """

    def attach(self, stream: VideoStream) -> None:
        ...

    def detach(self) -> None:
        ...

    def read_frame(self) -> Optional[np.ndarray]:
        ...


class LatestFrameSink:
    """
    Frame sink fed by pushes from the platform.

    Keeps only the newest frame; a frame is handed out once. Pushes while
    detached are dropped so nothing is buffered outside a session.
    """

    def __init__(self) -> None:
        self._stream: Optional[Any] = None
        self._frame: Optional[np.ndarray] = None
        self._dropped = 0

    @property
    def attached(self) -> bool:
        return self._stream is not None

    @property
    def dropped_frames(self) -> int:
        """Frames replaced before being read, or pushed while detached."""
        return self._dropped

    def attach(self, stream: VideoStream) -> None:
        self._stream = stream
        self._frame = None

    def detach(self) -> None:
        self._stream = None
        self._frame = None

    def push(self, frame: np.ndarray) -> bool:
        """Offer a new frame. Returns False if it was dropped."""
        if self._stream is None:
            self._dropped += 1
            return False
        if self._frame is not None:
            self._dropped += 1
        self._frame = frame
        return True

    def read_frame(self) -> Optional[np.ndarray]:
        frame, self._frame = self._frame, None
        return frame
