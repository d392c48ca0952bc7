"""
SQLite-based location store for GeoAlert.

This module implements the user location store: one row per user,
upserted on every update, with a radius query in meters.
"""

import math
from contextlib import asynccontextmanager
from typing import Dict, List, Optional
import aiosqlite
from geoalert.common.geo import EARTH_RADIUS_KM, haversine_distance
from geoalert.core.errors import StoreError
from geoalert.core.models import Coordinate, LocationRecord
from geoalert.observability.logging_setup import get_logger

log = get_logger("geoalert.store.locations")

SCHEMA = """
CREATE TABLE IF NOT EXISTS locations (
    user_id TEXT PRIMARY KEY,
    latitude REAL NOT NULL,
    longitude REAL NOT NULL,
    is_private INTEGER NOT NULL DEFAULT 0,
    state TEXT NOT NULL,
    region_type TEXT NOT NULL,
    last_updated TEXT NOT NULL,
    record TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_locations_lat ON locations(latitude);
CREATE INDEX IF NOT EXISTS idx_locations_region ON locations(state, region_type);
"""

class SQLiteLocationStore:
    """SQLite location store"""

    def __init__(self, path: str):
        """
        Args:
            path: SQLite database file path
        """
        self.path = path
        log.info(f"SQLiteLocationStore path: {path}")

    @asynccontextmanager
    async def _connect(self):
        try:
            async with aiosqlite.connect(self.path) as db:
                yield db
        except aiosqlite.Error as e:
            log.error(f"location store failure: {e}")
            raise StoreError(f"location store failure: {e}") from e

    async def init(self) -> None:
        """Create the schema."""
        async with self._connect() as db:
            await db.executescript(SCHEMA)
            await db.commit()
        log.info("SQLiteLocationStore schema ready")

    async def upsert(self, record: LocationRecord) -> LocationRecord:
        """
        Insert or replace the record for ``record.user_id``.

        Args:
            record: full location record

        Returns:
            the stored record
        """
        async with self._connect() as db:
            await db.execute(
                """
                INSERT INTO locations (user_id, latitude, longitude, is_private, state, region_type, last_updated, record)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    latitude = excluded.latitude,
                    longitude = excluded.longitude,
                    is_private = excluded.is_private,
                    state = excluded.state,
                    region_type = excluded.region_type,
                    last_updated = excluded.last_updated,
                    record = excluded.record
                """,
                (
                    record.user_id,
                    record.coordinates.latitude,
                    record.coordinates.longitude,
                    1 if record.is_private else 0,
                    record.region.state,
                    record.region.type,
                    record.last_updated.isoformat(),
                    record.model_dump_json(),
                )
            )
            await db.commit()
        return record

    async def get(self, user_id: str) -> Optional[LocationRecord]:
        async with self._connect() as db:
            cursor = await db.execute("SELECT record FROM locations WHERE user_id = ?", (user_id,))
            row = await cursor.fetchone()
        return LocationRecord.model_validate_json(row[0]) if row else None

    async def within_radius(self,
                            center: Coordinate,
                            radius_m: float,
                            *,
                            exclude_user_id: Optional[str] = None,
                            state: Optional[str] = None,
                            region_type: Optional[str] = None,
                            limit: Optional[int] = None) -> List[LocationRecord]:
        """
        Non-private records within ``radius_m`` meters of ``center``.

        Latitude band prefilter in SQL, exact haversine test in Python.

        Returns:
            records ordered nearest first
        """
        radius_km = max(0.0, radius_m) / 1000.0
        band = math.degrees(radius_km / EARTH_RADIUS_KM)

        sql = "SELECT record FROM locations WHERE is_private = 0 AND latitude BETWEEN ? AND ?"
        params: list = [center.latitude - band, center.latitude + band]
        if exclude_user_id is not None:
            sql += " AND user_id != ?"
            params.append(exclude_user_id)
        if state is not None:
            sql += " AND state = ?"
            params.append(state)
        if region_type is not None:
            sql += " AND region_type = ?"
            params.append(region_type)

        async with self._connect() as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()

        hits = []
        for (raw,) in rows:
            rec = LocationRecord.model_validate_json(raw)
            d = haversine_distance(center.latitude, center.longitude,
                                   rec.coordinates.latitude, rec.coordinates.longitude)
            if d <= radius_km:
                hits.append((d, rec))
        hits.sort(key=lambda h: h[0])

        records = [rec for _, rec in hits]
        return records[:limit] if limit is not None else records

    async def by_region(self,
                        state: Optional[str] = None,
                        region_type: Optional[str] = None,
                        limit: Optional[int] = None) -> List[LocationRecord]:
        sql = "SELECT record FROM locations WHERE is_private = 0"
        params: list = []
        if state is not None:
            sql += " AND state = ?"
            params.append(state)
        if region_type is not None:
            sql += " AND region_type = ?"
            params.append(region_type)
        sql += " ORDER BY last_updated DESC"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(limit)

        async with self._connect() as db:
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [LocationRecord.model_validate_json(r[0]) for r in rows]

    async def regional_stats(self) -> Dict[str, dict]:
        """
        Returns:
            {state: {"totalUsers": n, "regions": [{"type", "count", "lastActivity"}]}}
        """
        async with self._connect() as db:
            cursor = await db.execute(
                """
                SELECT state, region_type, COUNT(*), MAX(last_updated)
                FROM locations
                WHERE is_private = 0
                GROUP BY state, region_type
                ORDER BY state, region_type
                """
            )
            rows = await cursor.fetchall()

        stats: Dict[str, dict] = {}
        for state, region_type, count, last_activity in rows:
            entry = stats.setdefault(state, {"totalUsers": 0, "regions": []})
            entry["regions"].append({"type": region_type, "count": count, "lastActivity": last_activity})
            entry["totalUsers"] += count
        return stats

    async def get_count(self) -> int:
        async with self._connect() as db:
            cursor = await db.execute("SELECT COUNT(*) FROM locations")
            result = await cursor.fetchone()
        return result[0] if result else 0
