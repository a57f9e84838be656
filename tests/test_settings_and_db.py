"""
==============================================================================
Settings and Database Initialization Tests
==============================================================================
"""

import pytest
from pydantic import ValidationError

from expo_scanner.config import Settings
from expo_scanner.db.init_db import DEMO_EXHIBITION_ID, DatabaseInitializer
from expo_scanner.db.models import Exhibitor


class TestSettings:
    """Scanner settings."""

    def test_frame_interval(self):
        assert Settings(scanner_target_fps=30).frame_interval_seconds == pytest.approx(1 / 30)

    def test_fps_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(scanner_target_fps=0)

    def test_permission_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(camera_permission_timeout_seconds=0)

    def test_permission_timeout_disabled_by_default(self):
        assert Settings().camera_permission_timeout_seconds is None


class TestDatabaseInitializer:
    """Demo data seeding."""

    def test_seed_demo_exhibitor(self, db):
        initializer = DatabaseInitializer(session=db)
        exhibitor = initializer.seed_demo_exhibitor()

        assert exhibitor.exhibition_id == DEMO_EXHIBITION_ID
        assert exhibitor.is_active is True
        assert exhibitor.scanner_url("http://expo.test") == (
            f"http://expo.test/scanner/{exhibitor.id}?token={exhibitor.secure_token}"
        )

    def test_seed_is_idempotent(self, db):
        initializer = DatabaseInitializer(session=db)
        initializer.seed_demo_exhibitor()
        assert initializer.seed_demo_exhibitor() is None
        assert db.query(Exhibitor).count() == 1
