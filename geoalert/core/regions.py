"""
Region catalog and classification for GeoAlert.

Classification is a linear scan in catalog order: the FIRST region whose
bounding box contains the point wins, even when a later region would be a
tighter fit. Catalogs are immutable and injectable so callers can supply
their own ordering.
"""

from typing import Iterable, Iterator, Optional, Tuple
from geoalert.core.models import BoundingBox, Coordinate, NearestPlace, Region, RegionType
from geoalert.common.geo import distance

REMOTE_UNKNOWN = Region(name="Remote Australia", state="Unknown", type="remote")

# approximate national bounds
COUNTRY_BOUNDS = BoundingBox(north=-10.0, south=-44.0, east=154.0, west=113.0)


def _region(name: str, state: str, type_: RegionType, n: float, s: float, e: float, w: float,
            places: Tuple[str, ...]) -> Region:
    return Region(
        name=name, state=state, type=type_,
        bounds=BoundingBox(north=n, south=s, east=e, west=w),
        major_places=places,
    )


AUSTRALIAN_REGIONS: Tuple[Region, ...] = (
    # New South Wales
    _region("Greater Sydney", "NSW", "urban", -33.4, -34.2, 151.3, 150.5,
            ("Sydney", "Parramatta", "Liverpool", "Blacktown")),
    _region("Hunter Valley", "NSW", "rural", -32.0, -33.0, 152.0, 150.5,
            ("Newcastle", "Maitland", "Cessnock")),
    _region("Central West NSW", "NSW", "rural", -31.5, -34.5, 150.5, 147.0,
            ("Orange", "Bathurst", "Dubbo")),
    _region("Far West NSW", "NSW", "remote", -28.0, -37.5, 147.0, 141.0,
            ("Broken Hill", "Bourke", "Lightning Ridge")),
    # Victoria
    _region("Greater Melbourne", "VIC", "urban", -37.4, -38.4, 145.8, 144.3,
            ("Melbourne", "Geelong", "Ballarat", "Bendigo")),
    _region("Gippsland", "VIC", "rural", -37.0, -39.2, 149.9, 145.8,
            ("Traralgon", "Sale", "Bairnsdale")),
    _region("Western Victoria", "VIC", "rural", -36.0, -38.5, 144.3, 140.9,
            ("Warrnambool", "Hamilton", "Portland")),
    _region("Mallee Victoria", "VIC", "remote", -34.0, -36.5, 144.3, 140.9,
            ("Mildura", "Swan Hill", "Ouyen")),
    # Queensland
    _region("South East Queensland", "QLD", "urban", -26.0, -28.5, 153.6, 151.5,
            ("Brisbane", "Gold Coast", "Sunshine Coast", "Toowoomba")),
    _region("Central Queensland", "QLD", "rural", -22.0, -26.0, 153.0, 147.0,
            ("Rockhampton", "Gladstone", "Bundaberg")),
    _region("North Queensland", "QLD", "rural", -16.0, -22.0, 146.0, 142.0,
            ("Townsville", "Cairns", "Mount Isa")),
    _region("Far North Queensland", "QLD", "remote", -10.0, -16.0, 145.8, 138.0,
            ("Cairns", "Port Douglas", "Cooktown")),
    # Western Australia
    _region("Perth Metropolitan", "WA", "urban", -31.6, -32.5, 116.3, 115.6,
            ("Perth", "Fremantle", "Joondalup", "Rockingham")),
    _region("South West WA", "WA", "rural", -32.5, -35.0, 117.5, 114.5,
            ("Bunbury", "Busselton", "Margaret River")),
    _region("Pilbara", "WA", "remote", -20.0, -24.0, 121.0, 117.0,
            ("Karratha", "Port Hedland", "Newman")),
    _region("Kimberley", "WA", "remote", -14.0, -20.0, 129.0, 120.0,
            ("Broome", "Kununurra", "Derby")),
    # South Australia
    _region("Adelaide Metropolitan", "SA", "urban", -34.5, -35.3, 139.0, 138.4,
            ("Adelaide", "Gawler", "Mount Barker")),
    _region("Riverland", "SA", "rural", -33.5, -34.5, 141.0, 139.5,
            ("Renmark", "Berri", "Loxton")),
    _region("Outback SA", "SA", "remote", -26.0, -33.5, 141.0, 129.0,
            ("Coober Pedy", "Roxby Downs", "Whyalla")),
    # Tasmania
    _region("Greater Hobart", "TAS", "urban", -42.6, -43.2, 147.6, 147.0,
            ("Hobart", "Glenorchy", "Clarence")),
    _region("Northern Tasmania", "TAS", "rural", -40.8, -42.0, 148.3, 144.7,
            ("Launceston", "Devonport", "Burnie")),
    # Northern Territory
    _region("Greater Darwin", "NT", "urban", -12.2, -12.8, 131.2, 130.6,
            ("Darwin", "Palmerston", "Katherine")),
    _region("Central Australia", "NT", "remote", -20.0, -26.0, 138.0, 129.0,
            ("Alice Springs", "Tennant Creek", "Yulara")),
    # Australian Capital Territory
    _region("ACT", "ACT", "urban", -35.1, -35.9, 149.4, 148.7,
            ("Canberra", "Queanbeyan")),
)


class RegionCatalog:
    """Ordered, immutable list of regions."""

    def __init__(self, regions: Iterable[Region], fallback: Region = REMOTE_UNKNOWN):
        self._regions: Tuple[Region, ...] = tuple(regions)
        self.fallback = fallback

    def __iter__(self) -> Iterator[Region]:
        return iter(self._regions)

    def __len__(self) -> int:
        return len(self._regions)

    @property
    def regions(self) -> Tuple[Region, ...]:
        return self._regions

    def classify(self, c: Coordinate) -> Region:
        """
        Return the first region in catalog order whose box contains ``c``.

        Args:
            c: point to classify

        Returns:
            matching region, or the fallback region when none match
        """
        for region in self._regions:
            if region.bounds is not None and region.bounds.contains(c):
                return region
        return self.fallback

    def nearest_named_place(self, c: Coordinate) -> Optional[NearestPlace]:
        """
        Closest named place to ``c``.

        A region's first named place is located at the region's bounding-box
        centroid, not at the place's real position. Ties keep the earlier
        region.

        Returns:
            place, distance rounded to whole km, and region name;
            None when no region in the catalog has named places
        """
        best: Optional[NearestPlace] = None
        best_km = float("inf")
        for region in self._regions:
            if not region.major_places or region.bounds is None:
                continue
            d = distance(c, region.bounds.centroid)
            if d < best_km:
                best_km = d
                best = NearestPlace(place=region.major_places[0], km=round(d), region=region.name)
        return best

    def by_state(self, state: str) -> Tuple[Region, ...]:
        return tuple(r for r in self._regions if r.state == state)

    def by_type(self, region_type: str) -> Tuple[Region, ...]:
        return tuple(r for r in self._regions if r.type == region_type)


DEFAULT_CATALOG = RegionCatalog(AUSTRALIAN_REGIONS)


def classify_region(c: Coordinate, catalog: RegionCatalog = DEFAULT_CATALOG) -> Region:
    return catalog.classify(c)


def nearest_named_place(c: Coordinate, catalog: RegionCatalog = DEFAULT_CATALOG) -> Optional[NearestPlace]:
    return catalog.nearest_named_place(c)


def is_within_country(c: Coordinate) -> bool:
    """Single bounding-box test against the national bounds."""
    return COUNTRY_BOUNDS.contains(c)


# (first, last, state, type); first matching range wins, ACT sits inside the NSW block
POSTCODE_RANGES: Tuple[Tuple[int, int, str, RegionType], ...] = (
    (2600, 2699, "ACT", "urban"),
    (1000, 1999, "NSW", "urban"),
    (2000, 2599, "NSW", "urban"),
    (2600, 2899, "NSW", "rural"),
    (2900, 2999, "NSW", "remote"),
    (3000, 3199, "VIC", "urban"),
    (3200, 3999, "VIC", "rural"),
    (4000, 4199, "QLD", "urban"),
    (4200, 4999, "QLD", "rural"),
    (5000, 5199, "SA", "urban"),
    (5200, 5999, "SA", "rural"),
    (6000, 6199, "WA", "urban"),
    (6200, 6999, "WA", "rural"),
    (7000, 7999, "TAS", "rural"),
    (800, 999, "NT", "remote"),
)


def postcode_info(postcode: str) -> Optional[dict]:
    """
    Coarse state/type lookup for a postcode.

    Args:
        postcode: four digit postcode, leading zeros allowed

    Returns:
        {"state", "region", "type"} or None for unknown or non-numeric input
    """
    code_str = (postcode or "").strip()
    if not code_str.isdigit():
        return None
    code = int(code_str)
    for first, last, state, region_type in POSTCODE_RANGES:
        if first <= code <= last:
            return {"state": state, "region": f"{state} {region_type}", "type": region_type}
    return None
