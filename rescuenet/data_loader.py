"""
Data Loader Module
Loads fleet and route snapshots from JSON files in the /data directory.

Snapshots are exports of the tracking and route collections, so records use
the document store's camelCase field names (licensePlate, lastLocationUpdate,
startLat, ...). Everything is normalized into the immutable models in
models.py. A record that cannot be normalized is logged and skipped; the rest
of the snapshot still loads.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

from .config import DATA_DIR
from .models import (
    Actor,
    EntityStatus,
    Position,
    Priority,
    RouteAssignment,
    RouteStatus,
    TrackedEntity,
    ValidationError,
    ensure_utc,
)

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

FLEET_FILE = "fleet_snapshot.json"
ROUTES_FILE = "routes.json"


# =============================================================================
# NORMALIZATION UTILITIES
# =============================================================================

def normalize_entity_status(value: Any) -> EntityStatus:
    """
    Convert a raw status string to EntityStatus.

    Handled Input Variations:
    - "available", "AVAILABLE" -> AVAILABLE
    - "on_duty", "on duty", "On-Duty" -> ON_DUTY
    - Empty/unknown -> OFFLINE (never dispatchable)

    Examples:
        >>> normalize_entity_status("On Duty")
        <EntityStatus.ON_DUTY: 'on_duty'>
        >>> normalize_entity_status("parked")
        <EntityStatus.OFFLINE: 'offline'>
    """
    if not value:
        return EntityStatus.OFFLINE

    clean = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return EntityStatus(clean)
    except ValueError:
        logger.warning(f"Unknown ambulance status '{value}', treating as offline")
        return EntityStatus.OFFLINE


def normalize_priority(value: Any) -> Priority:
    """
    Convert a raw priority string to Priority. Unknown -> MEDIUM.

    Examples:
        >>> normalize_priority("Critical")
        <Priority.CRITICAL: 'critical'>
    """
    if not value:
        return Priority.MEDIUM

    try:
        return Priority(str(value).strip().lower())
    except ValueError:
        logger.warning(f"Unknown priority '{value}', defaulting to medium")
        return Priority.MEDIUM


def normalize_route_status(value: Any) -> RouteStatus:
    """Convert a raw route status string to RouteStatus. Unknown -> ACTIVE."""
    if not value:
        return RouteStatus.ACTIVE

    try:
        return RouteStatus(str(value).strip().lower())
    except ValueError:
        logger.warning(f"Unknown route status '{value}', defaulting to active")
        return RouteStatus.ACTIVE


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a snapshot timestamp.

    Supported Formats:
    - ISO-8601 string: "2024-05-01T12:00:00Z", "2024-05-01T12:00:00+03:00"
    - Epoch seconds (int/float)
    - None/empty -> None

    Naive values are taken to be UTC.

    Raises:
        ValidationError: If the value is present but unparseable
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = datetime.fromtimestamp(value, tz=timezone.utc)
    elif isinstance(value, str):
        clean = value.strip()
        if clean.endswith("Z"):
            clean = clean[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(clean)
        except ValueError:
            raise ValidationError(f"Unparseable timestamp: {value!r}") from None
    else:
        raise ValidationError(f"Unsupported timestamp type: {type(value)}")

    return ensure_utc(parsed)


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _unwrap_records(raw: Any, key: str, path: Path) -> List[Dict[str, Any]]:
    # Accept a bare list or {"<key>": [...]}
    if isinstance(raw, dict) and key in raw:
        records = raw[key]
    elif isinstance(raw, list):
        records = raw
    else:
        raise ValueError(f"Unexpected structure in {path}: {type(raw)}")

    if not isinstance(records, list):
        raise ValueError(f"Expected list of {key} in {path}, got {type(records)}")
    return records


def _read_json(path: Path) -> Any:
    if not path.exists():
        raise FileNotFoundError(f"Snapshot file not found: {path}")

    logger.info(f"Loading snapshot from {path}")
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


# =============================================================================
# RECORD PARSERS
# =============================================================================

def parse_entity(record: Dict[str, Any]) -> TrackedEntity:
    """
    Build a TrackedEntity from one tracking record.

    Raises:
        ValidationError: Missing id, partial coordinate, out-of-range values
    """
    entity_id = record.get("id")
    if not entity_id:
        raise ValidationError("Tracking record without id")

    return TrackedEntity.from_coordinates(
        id=str(entity_id),
        latitude=_optional_float(record.get("latitude")),
        longitude=_optional_float(record.get("longitude")),
        status=normalize_entity_status(record.get("status")),
        heading=_optional_float(record.get("heading")),
        speed=_optional_float(record.get("speed")),
        last_update=parse_timestamp(record.get("lastLocationUpdate")),
        license_plate=record.get("licensePlate", ""),
        model=record.get("model", ""),
        driver_id=record.get("currentDriverId"),
        hospital_id=record.get("hospitalId"),
    )


def parse_route(record: Dict[str, Any]) -> RouteAssignment:
    """
    Build a RouteAssignment from one route record.

    Raises:
        ValidationError: Missing id or endpoint coordinates
    """
    route_id = record.get("id")
    if not route_id:
        raise ValidationError("Route record without id")

    for key in ("startLat", "startLng", "endLat", "endLng"):
        if record.get(key) is None:
            raise ValidationError(f"Route {route_id} missing {key}")

    actor = None
    if record.get("policeOfficerId"):
        actor = Actor(
            id=record["policeOfficerId"],
            name=record.get("policeOfficerName") or record["policeOfficerId"],
        )

    return RouteAssignment(
        id=str(route_id),
        origin=Position(float(record["startLat"]), float(record["startLng"])),
        destination=Position(float(record["endLat"]), float(record["endLng"])),
        priority=normalize_priority(record.get("emergencyPriority")),
        status=normalize_route_status(record.get("status")),
        actor=actor,
        status_updated_at=parse_timestamp(record.get("statusUpdatedAt")),
        notes=record.get("statusNotes"),
        ambulance_id=record.get("ambulanceId"),
        ambulance_plate=record.get("ambulanceLicensePlate", ""),
        emergency_id=record.get("emergencyId"),
        patient_location=record.get("patientLocation", ""),
        created_at=parse_timestamp(record.get("createdAt")),
        encoded_polyline=record.get("encodedPolyline", ""),
        cleared_at=parse_timestamp(record.get("clearedAt")),
        completed_at=parse_timestamp(record.get("completedAt")),
    )


# =============================================================================
# DATA LOADERS
# =============================================================================

def load_fleet(path: Optional[Union[str, Path]] = None) -> List[TrackedEntity]:
    """
    Load and normalize a fleet snapshot.

    Expected Structure:
    - List of ambulance records, or {"ambulances": [...]}

    Returns:
        List of TrackedEntity in file order

    Raises:
        FileNotFoundError: If the snapshot file does not exist
        ValueError: If the top-level structure is wrong
    """
    path = Path(path) if path else DATA_DIR / FLEET_FILE
    records = _unwrap_records(_read_json(path), "ambulances", path)

    entities = []
    for idx, record in enumerate(records, 1):
        try:
            entities.append(parse_entity(record))
        except (ValidationError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"Error processing ambulance record {idx}: {e}")
            logger.debug(f"Problematic data: {record}")
            continue

    logger.info(f"Loaded {len(entities)} ambulances")
    return entities


def load_routes(path: Optional[Union[str, Path]] = None) -> List[RouteAssignment]:
    """
    Load and normalize a route snapshot.

    Expected Structure:
    - List of route records, or {"routes": [...]}

    Raises:
        FileNotFoundError: If the snapshot file does not exist
        ValueError: If the top-level structure is wrong
    """
    path = Path(path) if path else DATA_DIR / ROUTES_FILE
    records = _unwrap_records(_read_json(path), "routes", path)

    routes = []
    for idx, record in enumerate(records, 1):
        try:
            routes.append(parse_route(record))
        except (ValidationError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"Error processing route record {idx}: {e}")
            logger.debug(f"Problematic data: {record}")
            continue

    logger.info(f"Loaded {len(routes)} routes")
    return routes
