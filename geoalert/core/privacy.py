"""
Location privacy for GeoAlert.

Coordinate fuzzing and the per-requester disclosure policy. Both are
pure: fuzzing takes an injectable random source and the projection never
touches the stored record.
"""

import math
import random
from typing import Optional
from geoalert.core.models import ApproximateLocation, Coordinate, LocationRecord
from geoalert.common.geo import destination_point, distance

def fuzz(c: Coordinate, radius_km: float, rng: Optional[random.Random] = None) -> Coordinate:
    """
    Move ``c`` a random distance in [0, radius_km] along a random bearing.

    Args:
        c: true coordinate
        radius_km: maximum displacement
        rng: random source; the module-level generator when omitted

    Returns:
        fuzzed coordinate on the sphere
    """
    if radius_km < 0:
        raise ValueError("radius_km must be non-negative")
    rnd = rng or random
    bearing = rnd.random() * 2 * math.pi
    d = rnd.uniform(0.0, radius_km)
    fuzzed = destination_point(c, bearing, d)
    # rounding in the round trip can land a few picometres past the radius
    if distance(c, fuzzed) > radius_km:
        fuzzed = destination_point(c, bearing, d / 2)
        if distance(c, fuzzed) > radius_km:
            return c
    return fuzzed

def approximate(c: Coordinate, radius_km: float, rng: Optional[random.Random] = None) -> ApproximateLocation:
    """Fuzzed coordinate together with its disclosure radius."""
    return ApproximateLocation(coordinates=fuzz(c, radius_km, rng), radius_km=radius_km)

def resolve_for_requester(record: LocationRecord, requester_id: Optional[str]) -> Optional[LocationRecord]:
    """
    What ``requester_id`` is allowed to see of ``record``.

    - owner: the record as stored
    - private record, anyone else: None
    - anonymized record, anyone else: a copy with the approximate
      coordinates and no street/suburb

    Args:
        record: stored location record
        requester_id: id of the asking user (None for anonymous)

    Returns:
        projected record or None
    """
    is_owner = requester_id is not None and requester_id == record.user_id
    if is_owner:
        return record
    if record.is_private:
        return None
    if record.anonymized:
        return record.model_copy(update={
            "coordinates": record.approximate_location.coordinates,
            "street": None,
            "suburb": None,
        })
    return record
