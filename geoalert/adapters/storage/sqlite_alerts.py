"""
SQLite-based alert store for GeoAlert.

Alerts are stored as JSON snapshots (without responses) next to a few
indexed columns; responses live in an append-only table keyed by alert id
and are reassembled in insertion order on every read.
"""

import json
import math
from contextlib import asynccontextmanager
from datetime import datetime
from typing import List, Optional
import aiosqlite
from geoalert.common.geo import EARTH_RADIUS_KM, haversine_distance
from geoalert.core.errors import AlertNotFoundError, StoreError
from geoalert.core.models import Coordinate, EmergencyAlert, Response
from geoalert.observability.logging_setup import get_logger

log = get_logger("geoalert.store.alerts")

SCHEMA = """
CREATE TABLE IF NOT EXISTS alerts (
    id TEXT PRIMARY KEY,
    status TEXT NOT NULL,
    verification_status TEXT NOT NULL,
    source_type TEXT NOT NULL,
    organization TEXT,
    priority INTEGER NOT NULL,
    latitude REAL NOT NULL,
    longitude REAL NOT NULL,
    expires_ts REAL,
    created_ts REAL NOT NULL,
    document TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_alerts_status ON alerts(status, latitude);
CREATE INDEX IF NOT EXISTS idx_alerts_expiry ON alerts(status, expires_ts);
CREATE INDEX IF NOT EXISTS idx_alerts_official ON alerts(source_type, organization, created_ts);

CREATE TABLE IF NOT EXISTS responses (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    alert_id TEXT NOT NULL REFERENCES alerts(id),
    body TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_responses_alert ON responses(alert_id, seq);
"""

def _document(alert: EmergencyAlert) -> str:
    return alert.model_dump_json(exclude={"responses"})

class SQLiteAlertStore:
    """SQLite alert store with append-only responses"""

    def __init__(self, path: str):
        """
        Args:
            path: SQLite database file path
        """
        self.path = path
        log.info(f"SQLiteAlertStore path: {path}")

    @asynccontextmanager
    async def _connect(self):
        try:
            async with aiosqlite.connect(self.path) as db:
                yield db
        except aiosqlite.Error as e:
            log.error(f"alert store failure: {e}")
            raise StoreError(f"alert store failure: {e}") from e

    async def init(self) -> None:
        async with self._connect() as db:
            await db.executescript(SCHEMA)
            await db.commit()
        log.info("SQLiteAlertStore schema ready")

    async def _hydrate(self, db, document: str, alert_id: str) -> EmergencyAlert:
        cursor = await db.execute(
            "SELECT body FROM responses WHERE alert_id = ? ORDER BY seq ASC", (alert_id,)
        )
        rows = await cursor.fetchall()
        data = json.loads(document)
        data["responses"] = [json.loads(r[0]) for r in rows]
        return EmergencyAlert.model_validate(data)

    async def insert(self, alert: EmergencyAlert) -> None:
        """
        Store a new alert and any responses it already carries.
        """
        async with self._connect() as db:
            await db.execute(
                """
                INSERT INTO alerts (id, status, verification_status, source_type, organization,
                                    priority, latitude, longitude, expires_ts, created_ts, document)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    alert.id,
                    alert.status,
                    alert.source.verification_status,
                    alert.source.type,
                    alert.source.organization,
                    alert.priority,
                    alert.location.coordinates.latitude,
                    alert.location.coordinates.longitude,
                    alert.expires_at.timestamp() if alert.expires_at else None,
                    alert.created_at.timestamp(),
                    _document(alert),
                )
            )
            for response in alert.responses:
                await db.execute(
                    "INSERT INTO responses (alert_id, body) VALUES (?, ?)",
                    (alert.id, response.model_dump_json())
                )
            await db.commit()

    async def find_by_id(self, alert_id: str) -> Optional[EmergencyAlert]:
        async with self._connect() as db:
            cursor = await db.execute("SELECT document FROM alerts WHERE id = ?", (alert_id,))
            row = await cursor.fetchone()
            if not row:
                return None
            return await self._hydrate(db, row[0], alert_id)

    async def append_response(self, alert_id: str, response: Response) -> EmergencyAlert:
        """
        Append one response in a single transaction and return the alert
        with every response recorded so far.

        Raises:
            AlertNotFoundError: unknown alert id
        """
        async with self._connect() as db:
            cursor = await db.execute("SELECT document FROM alerts WHERE id = ?", (alert_id,))
            row = await cursor.fetchone()
            if not row:
                raise AlertNotFoundError(alert_id)
            await db.execute(
                "INSERT INTO responses (alert_id, body) VALUES (?, ?)",
                (alert_id, response.model_dump_json())
            )
            await db.commit()
            return await self._hydrate(db, row[0], alert_id)

    async def save_state(self, alert: EmergencyAlert) -> None:
        """
        Persist the snapshot of an existing alert; responses are untouched.

        Raises:
            AlertNotFoundError: unknown alert id
        """
        async with self._connect() as db:
            cursor = await db.execute(
                """
                UPDATE alerts
                SET status = ?, verification_status = ?, priority = ?, expires_ts = ?, document = ?
                WHERE id = ?
                """,
                (
                    alert.status,
                    alert.source.verification_status,
                    alert.priority,
                    alert.expires_at.timestamp() if alert.expires_at else None,
                    _document(alert),
                    alert.id,
                )
            )
            await db.commit()
            if cursor.rowcount == 0:
                raise AlertNotFoundError(alert.id)

    async def find_active_near(self, center: Coordinate, radius_m: float) -> List[EmergencyAlert]:
        """
        Active alerts whose centre lies within ``radius_m`` meters.

        Returns:
            alerts ordered by priority desc, then newest first
        """
        radius_km = max(0.0, radius_m) / 1000.0
        band = math.degrees(radius_km / EARTH_RADIUS_KM)

        async with self._connect() as db:
            cursor = await db.execute(
                """
                SELECT id, document, latitude, longitude FROM alerts
                WHERE status = 'active' AND latitude BETWEEN ? AND ?
                ORDER BY priority DESC, created_ts DESC
                """,
                (center.latitude - band, center.latitude + band)
            )
            rows = await cursor.fetchall()

            alerts = []
            for alert_id, document, lat, lon in rows:
                if haversine_distance(center.latitude, center.longitude, lat, lon) <= radius_km:
                    alerts.append(await self._hydrate(db, document, alert_id))
            return alerts

    async def find_due_for_expiry(self, now: datetime) -> List[EmergencyAlert]:
        async with self._connect() as db:
            cursor = await db.execute(
                """
                SELECT id, document FROM alerts
                WHERE status = 'active' AND expires_ts IS NOT NULL AND expires_ts <= ?
                ORDER BY expires_ts ASC
                """,
                (now.timestamp(),)
            )
            rows = await cursor.fetchall()
            return [await self._hydrate(db, document, alert_id) for alert_id, document in rows]

    async def find_recent_official(self, organization: str, since: datetime) -> Optional[EmergencyAlert]:
        async with self._connect() as db:
            cursor = await db.execute(
                """
                SELECT id, document FROM alerts
                WHERE source_type = 'official' AND organization = ? AND status = 'active' AND created_ts >= ?
                ORDER BY created_ts DESC
                LIMIT 1
                """,
                (organization, since.timestamp())
            )
            row = await cursor.fetchone()
            if not row:
                return None
            return await self._hydrate(db, row[1], row[0])

    async def get_count(self) -> int:
        async with self._connect() as db:
            cursor = await db.execute("SELECT COUNT(*) FROM alerts")
            result = await cursor.fetchone()
        return result[0] if result else 0
