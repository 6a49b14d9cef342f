"""
Position Staleness
Flags ambulances whose last position report is too old to trust.
"""

from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Set
import logging

from .config import STALE_THRESHOLD
from .models import TrackedEntity, ValidationError, ensure_utc

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def is_stale(
    entity: TrackedEntity,
    threshold: timedelta = STALE_THRESHOLD,
    now: Optional[datetime] = None,
) -> bool:
    """
    Check whether an entity's position report is stale.

    Args:
        entity: Ambulance snapshot
        threshold: Maximum report age (default: 2 minutes)
        now: Reference time; defaults to the current UTC time

    Returns:
        True when there was never a report, or when the report is older than
        the threshold. A report exactly `threshold` old is still fresh.
        Naive datetimes are taken to be UTC.
    """
    if threshold < timedelta(0):
        raise ValidationError(f"Staleness threshold must not be negative, got {threshold}")

    if entity.last_update is None:
        return True

    now = ensure_utc(now) or _now()
    return now - entity.last_update > threshold


def stale_ids(
    entities: Iterable[TrackedEntity],
    threshold: timedelta = STALE_THRESHOLD,
    now: Optional[datetime] = None,
) -> Set[str]:
    """Identifiers of every stale entity in a snapshot."""
    now = ensure_utc(now) or _now()
    return {e.id for e in entities if is_stale(e, threshold, now)}


def format_last_update(entity: TrackedEntity, now: Optional[datetime] = None) -> str:
    """
    Human readable age of the last position report.

    Examples:
        'No location data', 'Just now', '45s ago', '5m ago', '3h ago', '2d ago'
    """
    if entity.last_update is None:
        return "No location data"

    now = ensure_utc(now) or _now()
    seconds = int((now - entity.last_update).total_seconds())

    if seconds < 30:
        return "Just now"
    if seconds < 60:
        return f"{seconds}s ago"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    return f"{seconds // 86400}d ago"
