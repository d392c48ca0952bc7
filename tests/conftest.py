"""
Test configuration and fixtures.

This module provides pytest configuration and shared fixtures.
"""

import pytest
import asyncio
import tempfile
import os
from datetime import datetime, timezone
from unittest.mock import AsyncMock
from geoalert.settings import Settings
from geoalert.core.models import (
    AlertLocation,
    AlertSource,
    Coordinate,
    EmergencyAlert,
    LocationRecord,
)
from geoalert.core.regions import classify_region

SYDNEY = Coordinate(latitude=-33.8688, longitude=151.2093)
MELBOURNE = Coordinate(latitude=-37.8136, longitude=144.9631)
NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


class FixedClock:
    """Clock returning a settable instant."""

    def __init__(self, now: datetime = NOW):
        self.current = now

    def now(self) -> datetime:
        return self.current


@pytest.fixture
def temp_db_path():
    """Temporary database file path"""
    with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as f:
        temp_path = f.name
    yield temp_path
    if os.path.exists(temp_path):
        os.unlink(temp_path)


@pytest.fixture
def sample_settings():
    """Settings for tests"""
    settings = Settings()
    settings.observability.service_name = "test-service"
    settings.observability.build_version = "1.0.0"
    settings.observability.log_level = "INFO"
    settings.observability.http_port = 8080
    return settings


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def sydney():
    return SYDNEY


@pytest.fixture
def mock_fanout():
    """Fan-out channel recording every publish"""
    fanout = AsyncMock()
    fanout.publish = AsyncMock(return_value=None)
    return fanout


def make_record(user_id: str, coords: Coordinate = SYDNEY, **overrides) -> LocationRecord:
    data = dict(
        user_id=user_id,
        coordinates=coords,
        street="1 George St",
        suburb="The Rocks",
        city="Sydney",
        state="NSW",
        postcode="2000",
        region=classify_region(coords),
        source="gps",
        last_updated=NOW,
    )
    data.update(overrides)
    return LocationRecord(**data)


def make_alert(alert_id: str = "alert-1", **overrides) -> EmergencyAlert:
    data = dict(
        id=alert_id,
        title="Bushfire near Parramatta",
        description="Fire front moving east",
        type="fire",
        severity="high",
        location=AlertLocation(
            coordinates=SYDNEY,
            radius_km=10,
            regions=["Greater Sydney"],
            description="Parramatta Park",
        ),
        source=AlertSource(type="community", reported_by="user-0"),
        priority=10,
        created_at=NOW,
        updated_at=NOW,
    )
    data.update(overrides)
    return EmergencyAlert(**data)


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def alert_factory():
    return make_alert


# pytest configuration
def pytest_configure(config):
    """Register markers"""
    config.addinivalue_line(
        "markers", "slow: slow test marker"
    )
    config.addinivalue_line(
        "markers", "integration: integration test marker"
    )


def pytest_collection_modifyitems(config, items):
    """Add markers by test name"""
    for item in items:
        if asyncio.iscoroutinefunction(getattr(item, "function", None)):
            item.add_marker(pytest.mark.asyncio)

        if "integration" in item.name:
            item.add_marker(pytest.mark.integration)
