"""
==============================================================================
Camera Session Manager Module
==============================================================================

Owns the exclusive camera resource and the lifecycle of scanning sessions.

State Machine:
-------------

    ┌──────┐ start() ┌───────────────────────┐ grant  ┌────────┐ stop() ┌─────────┐
    │ IDLE │ ──────▶ │ REQUESTING_PERMISSION │ ─────▶ │ ACTIVE │ ─────▶ │ STOPPED │
    └──────┘         └───────────────────────┘        └────────┘        └─────────┘
                          │               │
                   refuse │               │ no device / error / timeout
                          ▼               ▼
              ┌───────────────────┐   ┌────────┐
              │ PERMISSION_DENIED │   │ FAILED │
              └───────────────────┘   └────────┘

Rules:
------
- At most one ACTIVE session per manager. ``start`` while ACTIVE returns
  the running session; concurrent starts are serialized.
- ``stop`` is idempotent and safe from any state. Every track of the
  stream is stopped even when one of them fails.
- A stop that arrives while permission is pending releases the stream as
  soon as it is granted.
- Sessions are never reused: a new start builds a new session and makes a
  new permission request.

==============================================================================
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Union

from expo_scanner.config import Settings, get_settings
from expo_scanner.core.exceptions import (
    CameraError,
    CameraPermissionError,
    CameraUnavailableError,
)
from expo_scanner.scanner.decode_loop import FrameDecodeLoop
from expo_scanner.scanner.decoder import QRFrameDecoder
from expo_scanner.scanner.dispatcher import ScanConsumer, ScanResultDispatcher
from expo_scanner.scanner.models import ScanPolicy, SessionState
from expo_scanner.scanner.platform import CameraPlatform, FrameSink, VideoStream


# Module logger
logger = logging.getLogger(__name__)

StateListener = Callable[["CameraSession"], Union[None, Awaitable[Any]]]


class CameraSession:
    """
    One start-to-stop lifetime of camera acquisition plus decode loop.

    Attributes:
        id: Session identifier
        policy: ScanPolicy fixed at creation
        state: Current SessionState
        error: CameraError that ended or blocked the session, if any
        dispatcher: Result dispatcher, set once the session is ACTIVE
    """

    def __init__(self, policy: ScanPolicy) -> None:
        self.id = uuid.uuid4().hex
        self.policy = policy
        self.state = SessionState.IDLE
        self.error: Optional[CameraError] = None
        self.created_at = datetime.now(timezone.utc)
        self.dispatcher: Optional[ScanResultDispatcher] = None
        self._stream: Optional[VideoStream] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._stop_requested = False

    @property
    def is_active(self) -> bool:
        return self.state is SessionState.ACTIVE

    @property
    def stream(self) -> Optional[VideoStream]:
        return self._stream

    @property
    def loop_task(self) -> Optional[asyncio.Task]:
        return self._loop_task

    @property
    def stop_requested(self) -> bool:
        """True once a stop arrived while permission was still pending."""
        return self._stop_requested

    def __repr__(self) -> str:
        return f"CameraSession(id={self.id!r}, state={self.state.value!r})"


class CameraSessionManager:
    """
    Camera session manager for one camera platform.

    Example:
        >>> manager = CameraSessionManager(platform, sink, consumer=print)
        >>> async with manager.scanning(ScanPolicy(continuous=False)) as session:
        ...     await session.loop_task
    """

    def __init__(
        self,
        platform: CameraPlatform,
        sink: FrameSink,
        consumer: ScanConsumer,
        decoder: Optional[QRFrameDecoder] = None,
        settings: Optional[Settings] = None,
        on_state_change: Optional[StateListener] = None,
    ) -> None:
        """
        Initialize the manager.

        Args:
            platform: Source of camera streams
            sink: Frame sink the stream is bound to while ACTIVE
            consumer: Callback receiving every dispatched ScanResult
            decoder: QR decoder (default QRFrameDecoder)
            settings: Cadence, resolution and watchdog settings
            on_state_change: Optional listener called after each transition
        """
        settings = settings or get_settings()
        self._platform = platform
        self._sink = sink
        self._consumer = consumer
        self._decoder = decoder or QRFrameDecoder()
        self._on_state_change = on_state_change
        self._frame_interval = settings.frame_interval_seconds
        self._ideal_width = settings.camera_ideal_width
        self._ideal_height = settings.camera_ideal_height
        self._permission_timeout = settings.camera_permission_timeout_seconds
        self._current: Optional[CameraSession] = None
        self._start_lock = asyncio.Lock()

    @property
    def current(self) -> Optional[CameraSession]:
        """Most recently started session."""
        return self._current

    # =========================================================================
    # START
    # =========================================================================

    async def start(self, policy: Optional[ScanPolicy] = None) -> CameraSession:
        """
        Start a scanning session.

        Acquisition failures are reported through the returned session's
        state and ``error``; this method does not raise them.

        Args:
            policy: Scan policy for the new session

        Returns:
            The new session, or the already running one
        """
        policy = policy or ScanPolicy()

        async with self._start_lock:
            current = self._current
            if current is not None and current.is_active:
                logger.info(f"Session {current.id} already active; start ignored")
                return current

            session = CameraSession(policy)
            self._current = session
            await self._set_state(session, SessionState.REQUESTING_PERMISSION)
            logger.info(
                f"📷 Requesting camera (facing={policy.facing}, "
                f"ideal={self._ideal_width}x{self._ideal_height})"
            )

            try:
                stream = await self._request_stream(policy)
            except CameraPermissionError as e:
                return await self._fail(session, e, SessionState.PERMISSION_DENIED)
            except CameraError as e:
                return await self._fail(session, e, SessionState.FAILED)
            except asyncio.TimeoutError:
                error = CameraUnavailableError("Timed out waiting for camera permission")
                return await self._fail(session, error, SessionState.FAILED)
            except asyncio.CancelledError:
                session.error = CameraUnavailableError("Camera request was cancelled")
                session.state = SessionState.FAILED
                raise
            except Exception as e:
                logger.exception("Unexpected camera acquisition error")
                error = CameraUnavailableError(str(e) or "Failed to access camera")
                return await self._fail(session, error, SessionState.FAILED)

            session._stream = stream

            if session._stop_requested:
                logger.info(f"Session {session.id} stopped while permission was pending")
                await self._release(session)
                await self._set_state(session, SessionState.STOPPED)
                return session

            try:
                self._sink.attach(stream)
            except Exception as e:
                logger.exception("Failed to bind stream to frame sink")
                await self._release(session)
                error = CameraUnavailableError(f"Failed to display camera stream: {e}")
                return await self._fail(session, error, SessionState.FAILED)

            session.dispatcher = ScanResultDispatcher(
                self._consumer,
                policy,
                on_complete=lambda: self.stop(session),
            )
            await self._set_state(session, SessionState.ACTIVE)

            loop = FrameDecodeLoop(
                session,
                self._sink,
                self._decoder,
                session.dispatcher,
                self._frame_interval,
                on_fatal=lambda error: self._abort(session, error),
            )
            session._loop_task = asyncio.create_task(
                loop.run(), name=f"decode-loop-{session.id}"
            )

            logger.info(f"✅ Scanner session {session.id} active")
            return session

    async def _request_stream(self, policy: ScanPolicy) -> VideoStream:
        request = self._platform.request_stream(
            policy.facing, self._ideal_width, self._ideal_height
        )
        if self._permission_timeout is None:
            return await request
        return await asyncio.wait_for(request, timeout=self._permission_timeout)

    async def _fail(
        self,
        session: CameraSession,
        error: CameraError,
        state: SessionState,
    ) -> CameraSession:
        session.error = error
        logger.warning(f"⚠️ Camera session {session.id} {state.value}: {error.message}")
        await self._set_state(session, state)
        return session

    # =========================================================================
    # STOP
    # =========================================================================

    async def stop(self, session: Optional[CameraSession] = None) -> None:
        """
        Stop a session (default: the current one). Idempotent.

        Cancels the decode loop, stops every track, detaches the sink and
        moves the session to STOPPED.
        """
        session = session or self._current
        if session is None:
            return

        if session.state is SessionState.REQUESTING_PERMISSION:
            session._stop_requested = True
            return

        if session.state is not SessionState.ACTIVE:
            return

        # Leave ACTIVE before any suspension so the loop reads no more frames.
        session.state = SessionState.STOPPED

        task, session._loop_task = session._loop_task, None
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)

        await self._release(session)
        logger.info(f"🛑 Scanner session {session.id} stopped")
        await self._notify(session)

    async def _abort(self, session: CameraSession, error: CameraError) -> None:
        """Stop an active session because its frame source broke."""
        session.error = error
        await self.stop(session)

    async def _release(self, session: CameraSession) -> None:
        stream, session._stream = session._stream, None
        if stream is None:
            return

        for track in list(stream.tracks):
            try:
                result = track.stop()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.warning("Failed to stop media track", exc_info=True)

        try:
            self._sink.detach()
        except Exception:
            logger.warning("Failed to detach frame sink", exc_info=True)

    async def aclose(self) -> None:
        """Release everything; call when the consumer goes away."""
        await self.stop()

    @asynccontextmanager
    async def scanning(self, policy: Optional[ScanPolicy] = None) -> AsyncIterator[CameraSession]:
        """Scoped session: always stopped on exit, whatever the exit path."""
        session = await self.start(policy)
        try:
            yield session
        finally:
            await self.stop(session)

    # =========================================================================
    # STATE NOTIFICATION
    # =========================================================================

    async def _set_state(self, session: CameraSession, state: SessionState) -> None:
        session.state = state
        await self._notify(session)

    async def _notify(self, session: CameraSession) -> None:
        if self._on_state_change is None:
            return
        try:
            result = self._on_state_change(session)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.warning("Session state listener failed", exc_info=True)
