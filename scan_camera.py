#!/usr/bin/env python3
"""
Local Camera Scanner Script
Scans attendee QR codes with a camera attached to this machine and records
them for an exhibitor.

    python scan_camera.py exhibitor-1 secure-token-abc123
    python scan_camera.py exhibitor-1 secure-token-abc123 --single-shot --facing user
"""

import argparse
import asyncio
import logging
import sys

from expo_scanner.config import get_settings
from expo_scanner.db.database import get_database_manager
from expo_scanner.scanner.access import AccessValidator, denial_exception
from expo_scanner.scanner.models import Denied, FacingMode, ScanPolicy, SessionState
from expo_scanner.scanner.opencv_camera import OpenCVCameraPlatform, OpenCVFrameSink
from expo_scanner.services import ScanSessionService, SqlAccessLookup, SqlScanRecorder


logger = logging.getLogger("scan_camera")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Scan attendee QR codes with a local camera")
    parser.add_argument("exhibitor_id", help="Exhibitor id from the scanner link")
    parser.add_argument("token", help="Secure token from the scanner link")
    parser.add_argument(
        "--single-shot",
        action="store_true",
        help="Stop after the first successful scan"
    )
    parser.add_argument(
        "--facing",
        choices=[mode.value for mode in FacingMode],
        default=FacingMode.ENVIRONMENT.value,
        help="Preferred camera"
    )
    return parser.parse_args(argv)


async def run_scanner(args) -> int:
    """Validate the link, then scan until stopped. Returns the exit code."""
    settings = get_settings()
    db_manager = get_database_manager()
    db_manager.create_tables()
    db = db_manager.get_session()

    try:
        decision = AccessValidator(SqlAccessLookup(db)).validate(args.exhibitor_id, args.token)
        if isinstance(decision, Denied):
            error = denial_exception(decision.reason, args.exhibitor_id)
            print(f"❌ ERROR: {error.message} ({error.code})")
            return 1

        finished = asyncio.Event()

        def on_result(delivery):
            result = delivery.result
            if not result.success:
                logger.debug(f"Unreadable code: {result.error}")
                return
            status = "saved" if delivery.recorded else delivery.record_error
            print(f"✅ [{result.timestamp:%H:%M:%S}] {result.payload} ({status}, total {delivery.scan_count})")

        def on_state(session):
            print(f"📷 Camera {session.state.value}")
            if session.error is not None:
                print(f"   {session.error.message}")
                print(f"   {session.error.guidance}")
            if session.state.is_terminal:
                finished.set()

        service = ScanSessionService(
            decision,
            recorder=SqlScanRecorder(db),
            platform=OpenCVCameraPlatform(settings),
            sink=OpenCVFrameSink(),
            on_result=on_result,
            on_state_change=on_state,
            settings=settings,
        )

        policy = ScanPolicy(continuous=not args.single_shot, facing=FacingMode(args.facing))

        try:
            session = await service.start(policy)
            if session.state is not SessionState.ACTIVE:
                return 1

            print("Scanning... press Ctrl+C to stop")
            await finished.wait()
            return 0 if session.error is None else 1
        finally:
            await service.aclose()
            print(f"Recorded {service.scan_count} scan(s)")

    finally:
        db.close()


def main(argv=None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if get_settings().debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    )

    try:
        return asyncio.run(run_scanner(args))
    except KeyboardInterrupt:
        print()
        print("🛑 Scanner stopped")
        return 0


if __name__ == "__main__":
    print("=" * 60)
    print("EXHIBITOR QR SCANNER")
    print("=" * 60)
    sys.exit(main())
