"""
Marker Clustering
Groups ambulance markers into grid buckets for low-zoom map views.

Positions are snapped onto a fixed lat/lng grid:

    key = (floor(latitude / cell_size), floor(longitude / cell_size))

Every bucket with a single ambulance stays an individual marker; buckets with
two or more become one cluster centered on the mean of their members.

Known limitation: buckets are plain degree cells, so ambulances on either side
of the antimeridian (±180°) or near the poles are never merged even when they
are physically close. Cells also shrink in east-west extent with latitude.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple, Union
import logging

from .config import CLUSTER_CELL_SIZE_DEG, CLUSTER_MIN_COUNT, CLUSTER_ZOOM_THRESHOLD
from .models import EntityStatus, Position, TrackedEntity, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MapMarker:
    """
    Marker for a single ambulance.

    Attributes:
        entity_id: Ambulance identifier
        position: Where to draw it
        heading: Marker rotation in degrees (0 when unknown)
        status: Operational status (drives marker color)
    """
    entity_id: str
    position: Position
    heading: float
    status: EntityStatus


@dataclass(frozen=True)
class Cluster:
    """
    Aggregate marker for 2+ ambulances sharing a grid cell.

    Attributes:
        key: Grid cell identifier, e.g. "cluster_2477_4665"
        center: Arithmetic mean of member coordinates
        member_ids: Member identifiers in input order
    """
    key: str
    center: Position
    member_ids: Tuple[str, ...]

    @property
    def size(self) -> int:
        return len(self.member_ids)


MapItem = Union[MapMarker, Cluster]


def bucket_key(position: Position, cell_size: float = CLUSTER_CELL_SIZE_DEG) -> Tuple[int, int]:
    """Grid cell indices for a position."""
    return (
        math.floor(position.latitude / cell_size),
        math.floor(position.longitude / cell_size),
    )


def _marker_for(entity: TrackedEntity) -> MapMarker:
    return MapMarker(
        entity_id=entity.id,
        position=entity.position,
        heading=entity.heading if entity.heading is not None else 0.0,
        status=entity.status,
    )


def _cluster_for(key: Tuple[int, int], members: List[TrackedEntity]) -> Cluster:
    center_lat = sum(m.position.latitude for m in members) / len(members)
    center_lng = sum(m.position.longitude for m in members) / len(members)
    return Cluster(
        key=f"cluster_{key[0]}_{key[1]}",
        center=Position(center_lat, center_lng),
        member_ids=tuple(m.id for m in members),
    )


def cluster_entities(
    entities: Sequence[TrackedEntity],
    zoom: float,
    zoom_threshold: float = CLUSTER_ZOOM_THRESHOLD,
    min_count: int = CLUSTER_MIN_COUNT,
    cell_size: float = CLUSTER_CELL_SIZE_DEG,
) -> List[MapItem]:
    """
    Build the marker list for one map refresh.

    Args:
        entities: Ambulance snapshot
        zoom: Current map zoom level
        zoom_threshold: Clustering only happens below this zoom
        min_count: Clustering only happens with more positioned entities than this
        cell_size: Grid cell edge in degrees

    Returns:
        MapMarker and Cluster items. Entities without a position never appear.
        Buckets keep first-seen order; unclustered output keeps input order.

    Examples:
        >>> items = cluster_entities(fleet, zoom=15)
        >>> all(isinstance(i, MapMarker) for i in items)
        True
    """
    if cell_size <= 0:
        raise ValidationError(f"Cluster cell size must be positive, got {cell_size}")
    if min_count < 0:
        raise ValidationError(f"Minimum cluster count must not be negative, got {min_count}")

    positioned = [e for e in entities if e.has_position]
    skipped = len(entities) - len(positioned)
    if skipped:
        logger.debug(f"Excluded {skipped} entities without a position from clustering")

    if zoom >= zoom_threshold or len(positioned) <= min_count:
        return [_marker_for(e) for e in positioned]

    buckets: Dict[Tuple[int, int], List[TrackedEntity]] = {}
    for entity in positioned:
        buckets.setdefault(bucket_key(entity.position, cell_size), []).append(entity)

    items: List[MapItem] = []
    for key, members in buckets.items():
        if len(members) == 1:
            items.append(_marker_for(members[0]))
        else:
            items.append(_cluster_for(key, members))

    logger.debug(
        f"Clustered {len(positioned)} entities into {len(items)} map items "
        f"at zoom {zoom}"
    )
    return items


def member_count(items: Sequence[MapItem]) -> int:
    """Total number of entities represented by a marker list."""
    return sum(i.size if isinstance(i, Cluster) else 1 for i in items)
