"""
==============================================================================
QR Frame Decoder Module
==============================================================================

Single-frame QR decoding with OpenCV and pyzbar.

Outcomes:
---------
- None:                      no code in the frame (the common case)
- DecodeOutcome.found():     readable code, raw decoded string
- DecodeOutcome.unreadable(): a code surface that could not be read

The decoded string is returned exactly as read; no field extraction.

==============================================================================
"""

from __future__ import annotations

import logging
from typing import Optional

import cv2
import numpy as np
from pyzbar.pyzbar import ZBarSymbol, decode

from expo_scanner.scanner.models import DecodeOutcome


# Module logger
logger = logging.getLogger(__name__)

INVALID_FORMAT_ERROR = "Invalid QR code format"


class QRFrameDecoder:
    """
    Decoder for one camera frame at a time.

    Example:
        >>> decoder = QRFrameDecoder()
        >>> outcome = decoder.decode(frame)
        >>> if outcome and outcome.success:
        ...     print(outcome.payload)
    """

    @staticmethod
    def to_pixel_buffer(frame: np.ndarray) -> np.ndarray:
        """
        Copy a frame into an 8-bit grayscale buffer.

        The buffer is allocated from the frame's own dimensions on every
        call since the stream resolution may change between frames.
        """
        height, width = frame.shape[:2]
        buffer = np.empty((height, width), dtype=np.uint8)

        if frame.ndim == 2:
            np.copyto(buffer, frame, casting="unsafe")
        elif frame.shape[2] == 4:
            cv2.cvtColor(frame, cv2.COLOR_BGRA2GRAY, dst=buffer)
        elif frame.shape[2] == 3:
            cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY, dst=buffer)
        else:
            np.copyto(buffer, frame[:, :, 0], casting="unsafe")

        return buffer

    def decode(self, frame: Optional[np.ndarray]) -> Optional[DecodeOutcome]:
        """
        Attempt a QR decode on one frame.

        Args:
            frame: BGR, BGRA or grayscale image

        Returns:
            DecodeOutcome when a code surface was found, otherwise None
        """
        if frame is None or frame.size == 0:
            return None

        try:
            buffer = self.to_pixel_buffer(frame)
            symbols = decode(buffer, symbols=[ZBarSymbol.QRCODE])
        except Exception as e:
            logger.warning(f"Decode error: {e}")
            return DecodeOutcome.unreadable(f"Decode error: {e}")

        if not symbols:
            return None

        try:
            payload = symbols[0].data.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("QR code data is not valid UTF-8")
            return DecodeOutcome.unreadable(INVALID_FORMAT_ERROR)

        if not payload:
            return DecodeOutcome.unreadable(INVALID_FORMAT_ERROR)

        return DecodeOutcome.found(payload)
