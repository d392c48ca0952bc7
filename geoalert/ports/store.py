"""
Document store port interfaces.

This module defines the protocols for location and alert persistence.
Radius queries take meters, the store's native unit.
"""

from datetime import datetime
from typing import Dict, List, Optional, Protocol
from geoalert.core.models import Coordinate, EmergencyAlert, LocationRecord, Response

class LocationStorePort(Protocol):
    """User location store (one record per user)"""

    async def upsert(self, record: LocationRecord) -> LocationRecord:
        """Insert or replace the record for ``record.user_id``."""
        ...

    async def get(self, user_id: str) -> Optional[LocationRecord]:
        ...

    async def within_radius(self,
                            center: Coordinate,
                            radius_m: float,
                            *,
                            exclude_user_id: Optional[str] = None,
                            state: Optional[str] = None,
                            region_type: Optional[str] = None,
                            limit: Optional[int] = None) -> List[LocationRecord]:
        """
        Non-private records within ``radius_m`` meters of ``center``, nearest first.
        """
        ...

    async def by_region(self,
                        state: Optional[str] = None,
                        region_type: Optional[str] = None,
                        limit: Optional[int] = None) -> List[LocationRecord]:
        """Non-private records filtered by region state/type."""
        ...

    async def regional_stats(self) -> Dict[str, dict]:
        """Per-state totals of non-private records broken down by region type."""
        ...

class AlertStorePort(Protocol):
    """Emergency alert store with an append-only response log"""

    async def insert(self, alert: EmergencyAlert) -> None:
        ...

    async def find_by_id(self, alert_id: str) -> Optional[EmergencyAlert]:
        ...

    async def append_response(self, alert_id: str, response: Response) -> EmergencyAlert:
        """
        Append a response atomically and return the refreshed alert.

        Raises:
            AlertNotFoundError: unknown alert id
        """
        ...

    async def save_state(self, alert: EmergencyAlert) -> None:
        """Persist status, verification and updated_at of an existing alert."""
        ...

    async def find_active_near(self, center: Coordinate, radius_m: float) -> List[EmergencyAlert]:
        """Active alerts centred within ``radius_m``, priority desc then newest first."""
        ...

    async def find_due_for_expiry(self, now: datetime) -> List[EmergencyAlert]:
        ...

    async def find_recent_official(self, organization: str, since: datetime) -> Optional[EmergencyAlert]:
        """Newest active official alert from ``organization`` created at or after ``since``."""
        ...
