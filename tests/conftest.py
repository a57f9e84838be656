"""
==============================================================================
Pytest Configuration and Fixtures
==============================================================================

Provides test database, client, exhibitor and fake camera fixtures.

==============================================================================
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SEED_DEMO_EXHIBITOR", "false")

import asyncio
from datetime import date
from typing import Callable, Generator, List, Optional

import cv2
import numpy as np
import pytest
import qrcode
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from expo_scanner.config import Settings
from expo_scanner.db.database import Base, get_db
from expo_scanner.db.models import Exhibition, ExhibitionStatus, Exhibitor
from expo_scanner.main import app
from expo_scanner.scanner.models import DecodeOutcome


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

# In-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite://"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Create a fresh database for each test."""
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db: Session) -> Generator[TestClient, None, None]:
    """Create test client with database override."""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ============================================================================
# EXHIBITOR FIXTURES
# ============================================================================

@pytest.fixture
def exhibition(db: Session) -> Exhibition:
    """Create an active exhibition."""
    exhibition = Exhibition(
        id="expo-1",
        name="TechExpo 2025",
        location="Convention Center",
        start_date=date(2025, 4, 1),
        end_date=date(2025, 4, 3),
        status=ExhibitionStatus.ACTIVE,
    )
    db.add(exhibition)
    db.commit()
    return exhibition


@pytest.fixture
def exhibitor(db: Session, exhibition: Exhibition) -> Exhibitor:
    """Create an active exhibitor with a known token."""
    exhibitor = Exhibitor(
        id="exhibitor-1",
        exhibition_id=exhibition.id,
        name="John Smith",
        company="Acme Corp",
        email="john@acme.com",
        secure_token="secure-token-abc123",
        is_active=True,
    )
    db.add(exhibitor)
    db.commit()
    db.refresh(exhibitor)
    return exhibitor


@pytest.fixture
def inactive_exhibitor(db: Session, exhibition: Exhibition) -> Exhibitor:
    """Create a deactivated exhibitor."""
    exhibitor = Exhibitor(
        id="exhibitor-2",
        exhibition_id=exhibition.id,
        name="Jane Doe",
        company="Globex",
        secure_token="secure-token-def456",
        is_active=False,
    )
    db.add(exhibitor)
    db.commit()
    db.refresh(exhibitor)
    return exhibitor


# ============================================================================
# QR IMAGE FIXTURES
# ============================================================================

def make_qr_frame(payload: str, box_size: int = 8) -> np.ndarray:
    qr = qrcode.QRCode(box_size=box_size, border=4)
    qr.add_data(payload)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white").convert("RGB")
    return cv2.cvtColor(np.array(image), cv2.COLOR_RGB2BGR)


@pytest.fixture
def qr_frame() -> Callable[..., np.ndarray]:
    """Factory for BGR frames containing a QR code."""
    return make_qr_frame


# ============================================================================
# FAKE CAMERA FIXTURES
# ============================================================================

class FakeTrack:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.stop_calls = 0

    def stop(self) -> None:
        self.stop_calls += 1
        if self.fail:
            raise RuntimeError("track refused to stop")


class FakeStream:
    def __init__(self, tracks: List[FakeTrack]):
        self.tracks = tracks


class FakePlatform:
    """Camera platform granting streams on demand, or raising ``error``."""

    def __init__(self, error: Optional[Exception] = None, failing_tracks: int = 0):
        self.error = error
        self.failing_tracks = failing_tracks
        self.requests = 0
        self.streams: List[FakeStream] = []
        self.gate: Optional[asyncio.Event] = None

    async def request_stream(self, facing, ideal_width, ideal_height):
        self.requests += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        tracks = [FakeTrack(fail=i < self.failing_tracks) for i in range(2)]
        stream = FakeStream(tracks)
        self.streams.append(stream)
        return stream


class FakeSink:
    """Frame sink replaying a fixed list of frames while attached."""

    def __init__(self, frames=()):
        self.frames = list(frames)
        self.stream = None
        self.attach_calls = 0
        self.detach_calls = 0
        self.error: Optional[Exception] = None

    def attach(self, stream) -> None:
        self.attach_calls += 1
        self.stream = stream

    def detach(self) -> None:
        self.detach_calls += 1
        self.stream = None

    def read_frame(self):
        if self.error is not None:
            raise self.error
        if self.stream is None or not self.frames:
            return None
        return self.frames.pop(0)


class FakeDecoder:
    """Frames are DecodeOutcome objects (or None for a frame with no code)."""

    def decode(self, frame) -> Optional[DecodeOutcome]:
        return frame if isinstance(frame, DecodeOutcome) else None


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def fake_decoder() -> FakeDecoder:
    return FakeDecoder()


@pytest.fixture
def fast_settings() -> Settings:
    """Settings with a short decode interval."""
    return Settings(scanner_target_fps=120)


async def eventually(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Poll until ``predicate`` holds, failing after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.005)
