"""
==============================================================================
Frame Decode Loop Module
==============================================================================

Cooperative per-frame loop run as a single asyncio task per session.

    ┌──────────────┐   frame    ┌──────────────┐  outcome  ┌────────────┐
    │  FrameSink   │ ─────────▶ │ QRFrameDecoder│ ────────▶ │ Dispatcher │
    └──────────────┘            └──────────────┘           └────────────┘
           ▲                                                     │
           └──────────── sleep(frame_interval) ◀─────────────────┘

One decode attempt is in flight at a time; the next iteration is
scheduled only after the previous one finished. The session state is
checked before every frame read, so nothing is read once the session
has left ACTIVE.

==============================================================================
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from expo_scanner.core.exceptions import CameraError, FrameSourceError
from expo_scanner.scanner.decoder import QRFrameDecoder
from expo_scanner.scanner.dispatcher import ScanResultDispatcher
from expo_scanner.scanner.models import ScanResult, SessionState
from expo_scanner.scanner.platform import FrameSink


# Module logger
logger = logging.getLogger(__name__)

FatalErrorCallback = Callable[[CameraError], Awaitable[Any]]


class FrameDecodeLoop:
    """
    Decode loop bound to one camera session.

    Attributes:
        iterations: Loop iterations run so far
        frames_decoded: Iterations that had a frame to decode
    """

    def __init__(
        self,
        session: Any,
        sink: FrameSink,
        decoder: QRFrameDecoder,
        dispatcher: ScanResultDispatcher,
        frame_interval: float,
        on_fatal: FatalErrorCallback,
    ) -> None:
        self._session = session
        self._sink = sink
        self._decoder = decoder
        self._dispatcher = dispatcher
        self._frame_interval = frame_interval
        self._on_fatal = on_fatal
        self.iterations = 0
        self.frames_decoded = 0

    @property
    def running(self) -> bool:
        return self._session.state is SessionState.ACTIVE

    async def run(self) -> None:
        """Run until the session leaves ACTIVE."""
        logger.debug(f"Decode loop started for session {self._session.id}")

        try:
            while self.running:
                await self.step()
                if not self.running:
                    break
                await asyncio.sleep(self._frame_interval)
        except asyncio.CancelledError:
            logger.debug(f"Decode loop cancelled for session {self._session.id}")
            raise
        except Exception as e:
            logger.exception(f"Decode loop crashed for session {self._session.id}")
            await self._on_fatal(FrameSourceError(f"Scanner stopped unexpectedly: {e}"))
        finally:
            logger.debug(
                f"Decode loop finished for session {self._session.id}: "
                f"{self.iterations} iterations, {self.frames_decoded} frames decoded"
            )

    async def step(self) -> Optional[ScanResult]:
        """
        Run one iteration.

        Returns:
            The dispatched ScanResult, or None when nothing was dispatched
        """
        if not self.running:
            return None

        self.iterations += 1

        try:
            frame = self._sink.read_frame()
        except FrameSourceError as e:
            logger.error(f"❌ Frame source failed: {e.message}")
            await self._on_fatal(e)
            return None

        if frame is None:
            return None

        self.frames_decoded += 1
        outcome = self._decoder.decode(frame)
        if outcome is None:
            return None

        return await self._dispatcher.dispatch(outcome)
