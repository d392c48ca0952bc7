"""
Location service for GeoAlert.

This module implements user location updates with privacy controls and
the location queries built on them. Every record handed to someone other
than its owner goes through the disclosure policy in core.privacy.
"""

import random
from typing import Dict, List, Optional
from geoalert.common.geo import distance, validate_coordinates
from geoalert.core.errors import InvalidInputError
from geoalert.core.models import Coordinate, LocationRecord, LocationUpdate, PrivacySettings
from geoalert.core.privacy import approximate, resolve_for_requester
from geoalert.core.regions import DEFAULT_CATALOG, RegionCatalog, is_within_country
from geoalert.observability import metrics
from geoalert.observability.logging_setup import get_logger
from geoalert.ports.clock import ClockPort
from geoalert.ports.store import LocationStorePort

log = get_logger("geoalert.locations")

REGION_QUERY_LIMIT = 100

def to_coordinate(latitude: float, longitude: float) -> Coordinate:
    """
    Raises:
        InvalidInputError: non-finite or out-of-range values
    """
    if not validate_coordinates(latitude, longitude):
        raise InvalidInputError(
            f"Invalid coordinates: {latitude}, {longitude}",
            details={"latitude": latitude, "longitude": longitude},
        )
    return Coordinate(latitude=latitude, longitude=longitude)

class LocationOrchestrator:
    """User location flows"""

    def __init__(self,
                 store: LocationStorePort,
                 clock: ClockPort,
                 *,
                 catalog: RegionCatalog = DEFAULT_CATALOG,
                 anonymize_radius_km: float = 5.0,
                 nearby_limit: int = 50,
                 rng: Optional[random.Random] = None):
        """
        Args:
            store: location store
            clock: time source
            catalog: region catalog used for classification
            anonymize_radius_km: fuzzing radius for anonymized records
            nearby_limit: cap on nearby-user results
            rng: random source for fuzzing
        """
        self.store = store
        self.clock = clock
        self.catalog = catalog
        self.anonymize_radius_km = anonymize_radius_km
        self.nearby_limit = nearby_limit
        self.rng = rng

    async def update_user_location(self,
                                   user_id: str,
                                   update: LocationUpdate,
                                   privacy: Optional[PrivacySettings] = None) -> LocationRecord:
        """
        Classify, optionally anonymize, and upsert a user's location.

        Anonymized records keep the true coordinates; the fuzzed point is
        stored alongside as ``approximate_location``.
        """
        privacy = privacy or PrivacySettings()
        coords = update.coordinates
        if not is_within_country(coords):
            log.warning("location outside national bounds",
                        user_id=user_id,
                        latitude=coords.latitude,
                        longitude=coords.longitude)

        approx = None
        if privacy.anonymized:
            approx = approximate(coords, self.anonymize_radius_km, self.rng)

        record = LocationRecord(
            user_id=user_id,
            coordinates=coords,
            street=update.street,
            suburb=update.suburb,
            city=update.city,
            state=update.state,
            postcode=update.postcode,
            region=self.catalog.classify(coords),
            is_private=privacy.is_private,
            anonymized=privacy.anonymized,
            approximate_location=approx,
            source=update.source,
            accuracy=update.accuracy,
            last_updated=self.clock.now(),
        )
        stored = await self.store.upsert(record)
        metrics.location_updates.labels(source=update.source).inc()
        log.debug("location updated", user_id=user_id, region=record.region.name)
        return stored

    async def get_user_location(self, user_id: str, requester_id: Optional[str] = None) -> Optional[LocationRecord]:
        record = await self.store.get(user_id)
        if record is None:
            return None
        return resolve_for_requester(record, requester_id)

    async def find_nearby_users(self,
                                latitude: float,
                                longitude: float,
                                radius_km: float,
                                requester_id: Optional[str] = None,
                                *,
                                state: Optional[str] = None,
                                region_type: Optional[str] = None) -> List[LocationRecord]:
        """
        Non-private users within ``radius_km``, nearest first, excluding the
        requester and projected for the requester.

        Raises:
            InvalidInputError: bad centre or negative radius
        """
        center = to_coordinate(latitude, longitude)
        if radius_km < 0:
            raise InvalidInputError(f"Invalid radius: {radius_km}", details={"radius_km": radius_km})

        records = await self.store.within_radius(
            center,
            radius_km * 1000,
            exclude_user_id=requester_id,
            state=state,
            region_type=region_type,
            limit=self.nearby_limit,
        )
        projected = (resolve_for_requester(r, requester_id) for r in records)
        return [r for r in projected if r is not None]

    async def get_locations_by_region(self,
                                      state: Optional[str] = None,
                                      region_type: Optional[str] = None,
                                      *,
                                      center: Optional[Coordinate] = None,
                                      max_distance_km: Optional[float] = None,
                                      requester_id: Optional[str] = None) -> List[LocationRecord]:
        """
        Non-private users by region state/type, optionally within
        ``max_distance_km`` of ``center``.
        """
        records = await self.store.by_region(state, region_type, REGION_QUERY_LIMIT)
        if center is not None and max_distance_km is not None:
            records = [r for r in records if distance(center, r.coordinates) <= max_distance_km]
        projected = (resolve_for_requester(r, requester_id) for r in records)
        return [r for r in projected if r is not None]

    async def calculate_user_distance(self, user_id_a: str, user_id_b: str) -> Optional[float]:
        """Distance in km between two users' stored locations, None if either is unknown."""
        a = await self.store.get(user_id_a)
        b = await self.store.get(user_id_b)
        if a is None or b is None:
            return None
        return distance(a.coordinates, b.coordinates)

    async def regional_stats(self) -> Dict[str, dict]:
        return await self.store.regional_stats()
