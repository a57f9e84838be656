"""
==============================================================================
Camera Session Manager Tests
==============================================================================

Lifecycle, exclusive camera ownership and release guarantees, driven by
fake platform and sink objects.

==============================================================================
"""

import asyncio

import pytest

from conftest import FakeDecoder, FakePlatform, FakeSink, eventually
from expo_scanner.config import Settings
from expo_scanner.core.exceptions import (
    CameraPermissionError,
    CameraUnavailableError,
    FrameSourceError,
)
from expo_scanner.scanner.models import DecodeOutcome, ScanPolicy, SessionState
from expo_scanner.scanner.session import CameraSessionManager


def make_manager(platform, sink, received, settings, **kwargs):
    return CameraSessionManager(
        platform,
        sink,
        consumer=received.append,
        decoder=FakeDecoder(),
        settings=settings,
        **kwargs,
    )


class TestStart:
    """Starting sessions."""

    def test_start_activates_session(self, platform, fast_settings):
        sink = FakeSink()
        manager = make_manager(platform, sink, [], fast_settings)

        async def run():
            session = await manager.start()
            assert session.state is SessionState.ACTIVE
            assert session.is_active
            assert session.loop_task is not None
            assert sink.attach_calls == 1
            await manager.stop()

        asyncio.run(run())
        assert platform.requests == 1

    def test_no_double_acquire(self, platform, fast_settings):
        manager = make_manager(platform, FakeSink(), [], fast_settings)

        async def run():
            first = await manager.start()
            second = await manager.start(ScanPolicy(continuous=False))
            assert first is second
            await manager.stop()

        asyncio.run(run())
        assert platform.requests == 1

    def test_concurrent_starts_share_one_session(self, platform, fast_settings):
        manager = make_manager(platform, FakeSink(), [], fast_settings)

        async def run():
            sessions = await asyncio.gather(manager.start(), manager.start(), manager.start())
            assert all(s is sessions[0] for s in sessions)
            await manager.stop()

        asyncio.run(run())
        assert platform.requests == 1

    def test_restart_creates_new_session(self, platform, fast_settings):
        manager = make_manager(platform, FakeSink(), [], fast_settings)

        async def run():
            first = await manager.start()
            await manager.stop()
            second = await manager.start()
            await manager.stop()
            return first, second

        first, second = asyncio.run(run())
        assert first.id != second.id
        assert first.state is SessionState.STOPPED
        assert platform.requests == 2

    def test_state_listener_sees_transitions(self, platform, fast_settings):
        states = []
        manager = make_manager(
            platform, FakeSink(), [], fast_settings,
            on_state_change=lambda session: states.append(session.state),
        )

        async def run():
            await manager.start()
            await manager.stop()

        asyncio.run(run())
        assert states == [
            SessionState.REQUESTING_PERMISSION,
            SessionState.ACTIVE,
            SessionState.STOPPED,
        ]

    def test_failing_listener_does_not_break_session(self, platform, fast_settings):
        def listener(session):
            raise RuntimeError("listener broke")

        manager = make_manager(platform, FakeSink(), [], fast_settings, on_state_change=listener)

        async def run():
            session = await manager.start()
            assert session.is_active
            await manager.stop()

        asyncio.run(run())


class TestAcquisitionFailures:
    """Permission refusals and camera errors."""

    def test_permission_denied(self, fast_settings):
        platform = FakePlatform(error=CameraPermissionError())
        sink = FakeSink([DecodeOutcome.found("NEVER")])
        received = []
        manager = make_manager(platform, sink, received, fast_settings)

        async def run():
            session = await manager.start()
            await asyncio.sleep(0.05)
            return session

        session = asyncio.run(run())
        assert session.state is SessionState.PERMISSION_DENIED
        assert session.loop_task is None
        assert session.error.guidance.startswith("Camera access denied")
        assert received == []
        assert sink.attach_calls == 0

    def test_camera_unavailable(self, fast_settings):
        platform = FakePlatform(error=CameraUnavailableError("No camera"))
        manager = make_manager(platform, FakeSink(), [], fast_settings)

        session = asyncio.run(manager.start())
        assert session.state is SessionState.FAILED
        assert session.error.message == "No camera"
        assert session.loop_task is None

    def test_unexpected_error_is_failed(self, fast_settings):
        platform = FakePlatform(error=RuntimeError("driver crash"))
        manager = make_manager(platform, FakeSink(), [], fast_settings)

        session = asyncio.run(manager.start())
        assert session.state is SessionState.FAILED
        assert isinstance(session.error, CameraUnavailableError)

    def test_permission_timeout(self, platform):
        settings = Settings(scanner_target_fps=120, camera_permission_timeout_seconds=0.05)
        manager = make_manager(platform, FakeSink(), [], settings)

        async def run():
            platform.gate = asyncio.Event()
            return await manager.start()

        session = asyncio.run(run())
        assert session.state is SessionState.FAILED
        assert "Timed out" in session.error.message

    def test_start_after_denial_asks_again(self, fast_settings):
        platform = FakePlatform(error=CameraPermissionError())
        manager = make_manager(platform, FakeSink(), [], fast_settings)

        async def run():
            denied = await manager.start()
            platform.error = None
            granted = await manager.start()
            await manager.stop()
            return denied, granted

        denied, granted = asyncio.run(run())
        assert denied.state is SessionState.PERMISSION_DENIED
        assert granted.state is SessionState.STOPPED
        assert platform.requests == 2


class TestStop:
    """Stopping and release guarantees."""

    def test_stop_is_idempotent(self, platform, fast_settings):
        sink = FakeSink()
        manager = make_manager(platform, sink, [], fast_settings)

        async def run():
            session = await manager.start()
            task = session.loop_task
            await manager.stop()
            await manager.stop()
            await manager.stop(session)
            return session, task

        session, task = asyncio.run(run())
        assert session.state is SessionState.STOPPED
        assert task.done()
        assert session.stream is None
        assert [t.stop_calls for t in platform.streams[0].tracks] == [1, 1]
        assert sink.detach_calls == 1

    def test_stop_without_session(self, platform, fast_settings):
        manager = make_manager(platform, FakeSink(), [], fast_settings)
        asyncio.run(manager.stop())
        assert manager.current is None

    def test_failing_track_still_releases_others(self, fast_settings):
        platform = FakePlatform(failing_tracks=1)
        sink = FakeSink()
        manager = make_manager(platform, sink, [], fast_settings)

        async def run():
            session = await manager.start()
            await manager.stop()
            return session

        session = asyncio.run(run())
        assert session.state is SessionState.STOPPED
        assert [t.stop_calls for t in platform.streams[0].tracks] == [1, 1]
        assert sink.detach_calls == 1

    def test_stop_while_permission_pending(self, platform, fast_settings):
        sink = FakeSink()
        manager = make_manager(platform, sink, [], fast_settings)

        async def run():
            platform.gate = asyncio.Event()
            start = asyncio.create_task(manager.start())
            await eventually(lambda: platform.requests == 1)
            assert manager.current.state is SessionState.REQUESTING_PERMISSION

            await manager.stop()
            assert manager.current.stop_requested is True
            platform.gate.set()
            return await start

        session = asyncio.run(run())
        assert session.state is SessionState.STOPPED
        assert session.loop_task is None
        assert sink.attach_calls == 0
        assert [t.stop_calls for t in platform.streams[0].tracks] == [1, 1]

    def test_scanning_context_releases_on_error(self, platform, fast_settings):
        manager = make_manager(platform, FakeSink(), [], fast_settings)

        async def run():
            with pytest.raises(RuntimeError):
                async with manager.scanning() as session:
                    assert session.is_active
                    raise RuntimeError("caller failed")
            return session

        session = asyncio.run(run())
        assert session.state is SessionState.STOPPED
        assert [t.stop_calls for t in platform.streams[0].tracks] == [1, 1]


class TestDecodeLoop:
    """Frames flowing through an active session."""

    def test_continuous_dispatches_every_code(self, platform, fast_settings):
        sink = FakeSink([
            DecodeOutcome.found("A"),
            None,
            DecodeOutcome.found("B"),
            DecodeOutcome.unreadable("Invalid QR code format"),
            DecodeOutcome.found("C"),
        ])
        received = []
        manager = make_manager(platform, sink, received, fast_settings)

        async def run():
            session = await manager.start()
            await eventually(lambda: len(received) == 4)
            assert session.is_active
            await manager.stop()

        asyncio.run(run())
        assert [r.payload for r in received] == ["A", "B", None, "C"]
        assert [r.success for r in received] == [True, True, False, True]
        stamps = [r.timestamp for r in received]
        assert stamps == sorted(stamps)

    def test_empty_frames_dispatch_nothing(self, platform, fast_settings):
        received = []
        manager = make_manager(platform, FakeSink([None] * 5), received, fast_settings)

        async def run():
            await manager.start()
            await asyncio.sleep(0.1)
            await manager.stop()

        asyncio.run(run())
        assert received == []

    def test_single_shot_stops_after_first_success(self, platform, fast_settings):
        sink = FakeSink([DecodeOutcome.found("FIRST"), DecodeOutcome.found("SECOND")])
        received = []
        manager = make_manager(platform, sink, received, fast_settings)

        async def run():
            session = await manager.start(ScanPolicy(continuous=False))
            await eventually(lambda: session.state is SessionState.STOPPED)
            await asyncio.sleep(0.05)
            return session

        session = asyncio.run(run())
        assert [r.payload for r in received] == ["FIRST"]
        assert session.loop_task is None
        assert [t.stop_calls for t in platform.streams[0].tracks] == [1, 1]
        assert sink.detach_calls == 1

    def test_no_results_after_stop(self, platform, fast_settings):
        sink = FakeSink()
        received = []
        manager = make_manager(platform, sink, received, fast_settings)

        async def run():
            await manager.start()
            await manager.stop()
            sink.frames.append(DecodeOutcome.found("LATE"))
            await asyncio.sleep(0.05)

        asyncio.run(run())
        assert received == []

    def test_broken_frame_source_ends_session(self, platform, fast_settings):
        sink = FakeSink()
        sink.error = FrameSourceError("Camera stopped delivering frames")
        manager = make_manager(platform, sink, [], fast_settings)

        async def run():
            session = await manager.start()
            await eventually(lambda: session.state is SessionState.STOPPED)
            return session

        session = asyncio.run(run())
        assert isinstance(session.error, FrameSourceError)
        assert [t.stop_calls for t in platform.streams[0].tracks] == [1, 1]
