"""
Fleet View
Turns one fleet snapshot into everything the live map needs for a refresh.

The caller owns the refresh loop: on every tick it loads a fresh snapshot and
calls compute_fleet_view() again. Nothing is cached between calls, so an older
result can simply be dropped if a newer one is already on screen.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Set, Tuple
import logging

from .clustering import Cluster, MapItem, MapMarker, cluster_entities
from .config import Settings
from .geo import DistanceEta, compute_bounds, estimate
from .models import EntityStatus, Position, TrackedEntity, ensure_utc
from .nearest import NearestMatch, available_candidates, find_nearest
from .staleness import is_stale, stale_ids

logger = logging.getLogger(__name__)

Bounds = Tuple[Tuple[float, float], Tuple[float, float]]


@dataclass(frozen=True)
class FleetView:
    """
    Render-ready result of one refresh.

    Attributes:
        items: Markers and clusters to draw
        entities: Filtered snapshot the items were built from, by id
        stale: Ids whose position report is stale
        bounds: Padded ((south, west), (north, east)) box, None if empty
        nearest: Nearest available ambulance to the target, if a target was given
        eta: Distance/ETA from that ambulance to the target
        generated_at: Reference time used for staleness
    """
    items: List[MapItem]
    entities: Dict[str, TrackedEntity]
    stale: Set[str] = field(default_factory=set)
    bounds: Optional[Bounds] = None
    nearest: Optional[NearestMatch] = None
    eta: Optional[DistanceEta] = None
    generated_at: Optional[datetime] = None

    @property
    def markers(self) -> List[MapMarker]:
        return [i for i in self.items if isinstance(i, MapMarker)]

    @property
    def clusters(self) -> List[Cluster]:
        return [i for i in self.items if isinstance(i, Cluster)]


def compute_fleet_view(
    entities: Sequence[TrackedEntity],
    zoom: float,
    now: Optional[datetime] = None,
    status_filter: Optional[EntityStatus] = None,
    target: Optional[Position] = None,
    settings: Optional[Settings] = None,
) -> FleetView:
    """
    Recompute map state from a fleet snapshot.

    Args:
        entities: Snapshot from the tracking source
        zoom: Current map zoom
        now: Reference time for staleness (default: current UTC time)
        status_filter: Only show ambulances in this status
        target: Patient position to match the nearest ambulance against
        settings: Thresholds; defaults to Settings()

    Returns:
        FleetView
    """
    settings = settings or Settings()
    now = ensure_utc(now) or datetime.now(timezone.utc)

    visible = [
        e for e in entities
        if e.has_position and (status_filter is None or e.status is status_filter)
    ]

    items = cluster_entities(
        visible,
        zoom,
        zoom_threshold=settings.cluster_zoom_threshold,
        min_count=settings.cluster_min_count,
        cell_size=settings.cluster_cell_size,
    )

    nearest = None
    eta = None
    if target is not None:
        # Dispatch always searches the whole fleet, not just the filtered view
        nearest = find_nearest(target, available_candidates(entities), settings.avg_speed_kmh)
        if nearest.found:
            eta = estimate(nearest.entity.position, target, settings.avg_speed_kmh)

    view = FleetView(
        items=items,
        entities={e.id: e for e in visible},
        stale=stale_ids(visible, settings.stale_threshold, now),
        bounds=compute_bounds(e.position for e in visible),
        nearest=nearest,
        eta=eta,
        generated_at=now,
    )

    logger.debug(
        f"Fleet view: {len(visible)} visible, {len(view.clusters)} clusters, "
        f"{len(view.stale)} stale"
    )
    return view


def summarize_fleet(
    entities: Sequence[TrackedEntity],
    now: Optional[datetime] = None,
    settings: Optional[Settings] = None,
) -> Dict[str, int]:
    """
    Fleet counts for the dashboard header.

    Returns:
        Dictionary with total, one count per status, stale and no_position
    """
    settings = settings or Settings()
    now = ensure_utc(now) or datetime.now(timezone.utc)

    stats = {"total": len(entities)}
    for status in EntityStatus:
        stats[status.value] = sum(1 for e in entities if e.status is status)
    stats["stale"] = sum(1 for e in entities if is_stale(e, settings.stale_threshold, now))
    stats["no_position"] = sum(1 for e in entities if not e.has_position)
    return stats
