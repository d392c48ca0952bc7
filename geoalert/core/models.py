"""
Core domain models for GeoAlert.

This module defines the domain models using Pydantic v2
for type safety and validation. Every model is frozen: changes are
made by building a new snapshot with ``model_copy(update=...)``.
Payloads use camelCase aliases on the wire.
"""

from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional, Tuple
from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

Severity = Literal["low", "medium", "high", "critical"]
AlertType = Literal["medical", "fire", "flood", "weather", "security", "infrastructure", "community"]
RegionType = Literal["urban", "rural", "remote"]
LocationSource = Literal["gps", "manual", "ip", "postcode"]
SourceType = Literal["official", "community", "ai_generated"]
VerificationStatus = Literal["pending", "verified", "false_alarm"]
AlertStatus = Literal["active", "cancelled", "expired"]
ResponseType = Literal["acknowledged", "safe", "need_help", "false_alarm"]

PRIORITY_MIN = 0
PRIORITY_MAX = 10


def _as_utc(value: datetime) -> datetime:
    # naive timestamps are taken as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class DomainModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_payload(self) -> dict:
        """JSON-ready dict with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)


# ---- geography ----

class Coordinate(DomainModel):
    """WGS84 point."""
    latitude: float = Field(ge=-90, le=90, allow_inf_nan=False)
    longitude: float = Field(ge=-180, le=180, allow_inf_nan=False)


class BoundingBox(DomainModel):
    north: float
    south: float
    east: float
    west: float

    def contains(self, c: Coordinate) -> bool:
        return (self.north >= c.latitude >= self.south
                and self.east >= c.longitude >= self.west)

    @property
    def centroid(self) -> Coordinate:
        return Coordinate(
            latitude=(self.north + self.south) / 2,
            longitude=(self.east + self.west) / 2,
        )


class Region(DomainModel):
    """Named catalog area. The synthetic fallback region has no bounds."""
    name: str
    state: str
    type: RegionType
    bounds: Optional[BoundingBox] = None
    major_places: Tuple[str, ...] = ()


class NearestPlace(DomainModel):
    place: str
    km: float
    region: str


# ---- user location ----

class ApproximateLocation(DomainModel):
    coordinates: Coordinate
    radius_km: float = Field(gt=0)


class LocationRecord(DomainModel):
    user_id: str
    coordinates: Coordinate
    street: Optional[str] = None
    suburb: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    region: Region
    is_private: bool = False
    anonymized: bool = False
    approximate_location: Optional[ApproximateLocation] = None
    source: LocationSource
    accuracy: Optional[float] = Field(default=None, ge=0)
    last_updated: UtcDatetime

    @model_validator(mode="after")
    def _anonymized_needs_approximation(self):
        if self.anonymized and self.approximate_location is None:
            raise ValueError("anonymized location requires approximateLocation")
        return self


class LocationUpdate(DomainModel):
    """Location report submitted by a user."""
    coordinates: Coordinate
    street: Optional[str] = None
    suburb: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    source: LocationSource
    accuracy: Optional[float] = Field(default=None, ge=0)


class PrivacySettings(DomainModel):
    is_private: bool = False
    anonymized: bool = False


# ---- alerts ----

class AlertLocation(DomainModel):
    coordinates: Coordinate
    radius_km: float = Field(ge=0)
    regions: List[str] = Field(default_factory=list)
    description: str


class AlertSource(DomainModel):
    type: SourceType
    organization: Optional[str] = None
    reported_by: Optional[str] = None
    verification_status: VerificationStatus = "pending"


class ContactInfo(DomainModel):
    emergency: str
    local: str
    website: Optional[str] = None


class AlertMetadata(DomainModel):
    recommended_actions: List[str] = Field(default_factory=list)
    contact_info: Optional[ContactInfo] = None
    affected_population: Optional[int] = None
    resources: List[str] = Field(default_factory=list)


class RiskAnalysis(DomainModel):
    """Best-effort assessment returned by the scoring oracle."""
    risk_score: float = Field(ge=0, le=1)
    confidence: float = Field(ge=0, le=1)
    predicted_impact: str
    recommended_response: str
    is_likely_valid: bool


class CoordinationPlan(DomainModel):
    priority_actions: List[str] = Field(default_factory=list)
    resource_needs: List[str] = Field(default_factory=list)
    risk_assessment: str
    next_steps: List[str] = Field(default_factory=list)


class Response(DomainModel):
    user_id: str
    response_type: ResponseType
    message: Optional[str] = Field(default=None, max_length=500)
    location: Optional[Coordinate] = None
    timestamp: UtcDatetime


def clamp_priority(value) -> int:
    return max(PRIORITY_MIN, min(PRIORITY_MAX, int(value)))


class AlertDraft(DomainModel):
    """Candidate alert before enrichment and persistence."""
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=2000)
    type: AlertType
    severity: Severity
    location: AlertLocation
    source: AlertSource
    priority: Optional[int] = None
    expires_at: Optional[UtcDatetime] = None
    metadata: AlertMetadata = Field(default_factory=AlertMetadata)


class EmergencyAlert(DomainModel):
    id: str
    title: str
    description: str
    type: AlertType
    severity: Severity
    location: AlertLocation
    source: AlertSource
    priority: int
    status: AlertStatus = "active"
    expires_at: Optional[UtcDatetime] = None
    metadata: AlertMetadata = Field(default_factory=AlertMetadata)
    risk_analysis: Optional[RiskAnalysis] = None
    responses: List[Response] = Field(default_factory=list)
    created_at: UtcDatetime
    updated_at: Optional[UtcDatetime] = None

    @field_validator("priority", mode="before")
    @classmethod
    def _clamp_priority(cls, v):
        return clamp_priority(v)

    @property
    def is_terminal(self) -> bool:
        return self.status != "active"


# ---- inbound submissions ----

class ReportLocation(DomainModel):
    coordinates: Coordinate
    description: str = Field(min_length=1, max_length=500)


class ReportSubmission(DomainModel):
    """Community emergency report."""
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=2000)
    type: AlertType
    severity: Severity
    location: ReportLocation


class OfficialFeedEntry(DomainModel):
    """Alert entry from an official emergency-services feed."""
    title: str = Field(min_length=1, max_length=200)
    description: str = Field(min_length=1, max_length=2000)
    type: AlertType
    severity: Severity
    location: AlertLocation
    organization: str = "Local Authority"
    priority: Optional[int] = None
    expires_at: Optional[UtcDatetime] = None
    metadata: Optional[AlertMetadata] = None


class ResponseSubmission(DomainModel):
    response_type: ResponseType
    message: Optional[str] = Field(default=None, max_length=500)
    location: Optional[Coordinate] = None
