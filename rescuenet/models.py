"""
Domain Models
Immutable snapshots of ambulances, positions and route assignments.

Every record here is a frozen dataclass. The tracking subsystem produces a new
TrackedEntity on each position report, and route assignments only change by
going through route_status.transition(), which returns a new record.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple
import logging

logger = logging.getLogger(__name__)


class ValidationError(ValueError):
    """Raised when malformed input reaches a component boundary."""


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


# =============================================================================
# ENUMERATIONS
# =============================================================================

class EntityStatus(Enum):
    AVAILABLE = "available"
    ON_DUTY = "on_duty"
    MAINTENANCE = "maintenance"
    OFFLINE = "offline"

    @property
    def display_name(self) -> str:
        return {
            EntityStatus.AVAILABLE: "Available",
            EntityStatus.ON_DUTY: "On Duty",
            EntityStatus.MAINTENANCE: "Maintenance",
            EntityStatus.OFFLINE: "Offline",
        }[self]

    @property
    def color(self) -> str:
        """Marker color name understood by folium.Icon."""
        return {
            EntityStatus.AVAILABLE: "green",
            EntityStatus.ON_DUTY: "blue",
            EntityStatus.MAINTENANCE: "orange",
            EntityStatus.OFFLINE: "gray",
        }[self]


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Sort weight, higher is more urgent."""
        return {
            Priority.LOW: 1,
            Priority.MEDIUM: 2,
            Priority.HIGH: 3,
            Priority.CRITICAL: 4,
        }[self]

    @property
    def display_name(self) -> str:
        return self.value.title()


class RouteStatus(Enum):
    """
    Lifecycle of a route assignment.

    ACTIVE is the initial state. CLEARED, TIMEOUT and COMPLETED are terminal:
    once a route reaches one of them it never changes again.
    """
    ACTIVE = "active"
    CLEARED = "cleared"
    TIMEOUT = "timeout"
    COMPLETED = "completed"

    @property
    def display_name(self) -> str:
        return {
            RouteStatus.ACTIVE: "Active",
            RouteStatus.CLEARED: "Traffic Cleared",
            RouteStatus.TIMEOUT: "Timeout",
            RouteStatus.COMPLETED: "Completed",
        }[self]

    @property
    def is_terminal(self) -> bool:
        return self is not RouteStatus.ACTIVE

    @property
    def is_active_for_hospital(self) -> bool:
        return self is RouteStatus.ACTIVE

    @property
    def is_pending_for_police(self) -> bool:
        """Police still need to act on the route (clear or time it out)."""
        return self is RouteStatus.ACTIVE


# =============================================================================
# POSITIONS & TRACKED ENTITIES
# =============================================================================

@dataclass(frozen=True)
class Position:
    """
    A WGS84 coordinate pair in decimal degrees.

    Attributes:
        latitude: -90 to 90
        longitude: -180 to 180
    """
    latitude: float
    longitude: float

    def __post_init__(self):
        if self.latitude is None or self.longitude is None:
            raise ValidationError("Position requires both latitude and longitude")
        if not (-90.0 <= self.latitude <= 90.0):
            raise ValidationError(f"Latitude {self.latitude} outside [-90, 90]")
        if not (-180.0 <= self.longitude <= 180.0):
            raise ValidationError(f"Longitude {self.longitude} outside [-180, 180]")

    def to_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    def __str__(self):
        return f"({self.latitude:.6f}, {self.longitude:.6f})"


@dataclass(frozen=True)
class TrackedEntity:
    """
    Last known state of a tracked ambulance.

    Attributes:
        id: Unique identifier
        status: Operational status
        position: Current position, None until the first report
        heading: Direction of travel in degrees (0-360)
        speed: Ground speed in meters/second
        last_update: Timestamp of the last position report
        license_plate: Display label
        model: Vehicle model
        driver_id: Driver currently signed in to the vehicle
        hospital_id: Owning hospital / fleet scope
    """
    id: str
    status: EntityStatus = EntityStatus.OFFLINE
    position: Optional[Position] = None
    heading: Optional[float] = None
    speed: Optional[float] = None
    last_update: Optional[datetime] = None
    license_plate: str = ""
    model: str = ""
    driver_id: Optional[str] = None
    hospital_id: Optional[str] = None

    def __post_init__(self):
        if not self.id:
            raise ValidationError("TrackedEntity requires a non-empty id")
        if self.heading is not None and not (0.0 <= self.heading <= 360.0):
            raise ValidationError(f"Heading {self.heading} outside [0, 360] for {self.id}")
        if self.speed is not None and self.speed < 0:
            raise ValidationError(f"Negative speed {self.speed} for {self.id}")
        # Frozen, so bypass __setattr__ for the normalized timestamp
        object.__setattr__(self, "last_update", ensure_utc(self.last_update))

    @classmethod
    def from_coordinates(
        cls,
        id: str,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        **kwargs,
    ) -> "TrackedEntity":
        """
        Build an entity from a raw coordinate pair.

        Both coordinates must be present or both absent; a partial pair is
        rejected instead of being filled with a placeholder.
        """
        if (latitude is None) != (longitude is None):
            raise ValidationError(
                f"Partial coordinate for {id}: latitude={latitude}, longitude={longitude}"
            )
        position = None
        if latitude is not None:
            position = Position(float(latitude), float(longitude))
        return cls(id=id, position=position, **kwargs)

    @property
    def has_position(self) -> bool:
        return self.position is not None

    @property
    def label(self) -> str:
        return self.license_plate or self.id


# =============================================================================
# ROUTE ASSIGNMENTS
# =============================================================================

@dataclass(frozen=True)
class Actor:
    """Person who changed a route's status."""
    id: str
    name: str


@dataclass(frozen=True)
class StatusChange:
    """One entry of a route's status history."""
    from_status: RouteStatus
    to_status: RouteStatus
    actor: Actor
    at: datetime
    notes: Optional[str] = None


@dataclass(frozen=True)
class RouteAssignment:
    """
    A responder dispatched from an origin to a patient.

    Never assign fields directly: use route_status.transition(), which
    validates the move and returns an updated copy.
    """
    id: str
    origin: Position
    destination: Position
    priority: Priority = Priority.MEDIUM
    status: RouteStatus = RouteStatus.ACTIVE
    actor: Optional[Actor] = None
    status_updated_at: Optional[datetime] = None
    notes: Optional[str] = None
    ambulance_id: Optional[str] = None
    ambulance_plate: str = ""
    emergency_id: Optional[str] = None
    patient_location: str = ""
    created_at: Optional[datetime] = None
    encoded_polyline: str = ""
    cleared_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    history: Tuple[StatusChange, ...] = field(default_factory=tuple)

    def reached_at(self, status: RouteStatus) -> Optional[datetime]:
        """When the route entered `status`, from the stored field or the history."""
        stored = {
            RouteStatus.CLEARED: self.cleared_at,
            RouteStatus.COMPLETED: self.completed_at,
        }.get(status)
        if stored is not None:
            return stored
        for change in self.history:
            if change.to_status is status:
                return change.at
        return None
