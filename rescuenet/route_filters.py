"""
Route Filtering & Sorting
List views for the police and hospital route dashboards.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence
import logging

from .config import DEFAULT_AVG_SPEED_KMH
from .geo import estimate
from .models import Priority, RouteAssignment, RouteStatus

logger = logging.getLogger(__name__)


class RouteSortOption(Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    PRIORITY = "priority"
    ETA = "eta"
    DISTANCE = "distance"
    STATUS = "status"
    CLEARED_DATE = "cleared_date"
    COMPLETED_DATE = "completed_date"


@dataclass(frozen=True)
class RouteFilter:
    """
    Filter selections made on a route dashboard.

    Attributes:
        status: Only routes in this status
        active_only: Only routes still open for the hospital (status active)
        priority: Only routes for emergencies of this priority
        search_query: Case-insensitive match on plate, patient location,
            priority or the name of the last actor
        sort_by: Ordering of the result
        actor_id: Only routes last changed by this person
        date_from: Only routes created strictly after this time
        date_to: Only routes created strictly before this time
    """
    status: Optional[RouteStatus] = None
    active_only: bool = False
    priority: Optional[Priority] = None
    search_query: str = ""
    sort_by: RouteSortOption = RouteSortOption.NEWEST
    actor_id: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None


def _matches_query(route: RouteAssignment, query: str) -> bool:
    fields = [
        route.ambulance_plate,
        route.patient_location,
        route.priority.value,
        route.actor.name if route.actor else "",
    ]
    return any(query in f.lower() for f in fields)


def _dated_desc(
    routes: List[RouteAssignment],
    date_of: Callable[[RouteAssignment], Optional[datetime]],
) -> List[RouteAssignment]:
    """Most recent first, routes without the date last."""
    dated = [r for r in routes if date_of(r) is not None]
    undated = [r for r in routes if date_of(r) is None]
    return sorted(dated, key=date_of, reverse=True) + undated


def sort_routes(
    routes: Sequence[RouteAssignment],
    sort_by: RouteSortOption,
    speed_kmh: float = DEFAULT_AVG_SPEED_KMH,
) -> List[RouteAssignment]:
    routes = list(routes)

    if sort_by is RouteSortOption.NEWEST:
        return _dated_desc(routes, lambda r: r.created_at)
    if sort_by is RouteSortOption.OLDEST:
        dated = [r for r in routes if r.created_at is not None]
        undated = [r for r in routes if r.created_at is None]
        return sorted(dated, key=lambda r: r.created_at) + undated
    if sort_by is RouteSortOption.PRIORITY:
        return sorted(routes, key=lambda r: r.priority.rank, reverse=True)
    if sort_by is RouteSortOption.ETA:
        return sorted(routes, key=lambda r: estimate(r.origin, r.destination, speed_kmh).eta_minutes)
    if sort_by is RouteSortOption.DISTANCE:
        return sorted(routes, key=lambda r: estimate(r.origin, r.destination, speed_kmh).distance_km)
    if sort_by is RouteSortOption.STATUS:
        return sorted(routes, key=lambda r: r.status.value)
    if sort_by is RouteSortOption.CLEARED_DATE:
        return _dated_desc(routes, lambda r: r.reached_at(RouteStatus.CLEARED))
    if sort_by is RouteSortOption.COMPLETED_DATE:
        return _dated_desc(routes, lambda r: r.reached_at(RouteStatus.COMPLETED))

    raise ValueError(f"Unknown sort option: {sort_by}")


def filter_routes(
    routes: Sequence[RouteAssignment],
    route_filter: Optional[RouteFilter] = None,
    speed_kmh: float = DEFAULT_AVG_SPEED_KMH,
) -> List[RouteAssignment]:
    """
    Apply dashboard filters, then sort.

    Args:
        routes: Route snapshot
        route_filter: Selections; None keeps everything, newest first
        speed_kmh: Speed for ETA ordering, same as the rest of the page

    Returns:
        New list, input is not modified
    """
    f = route_filter or RouteFilter()
    result = list(routes)

    if f.status is not None:
        result = [r for r in result if r.status is f.status]
    if f.active_only:
        result = [r for r in result if r.status.is_active_for_hospital]
    if f.priority is not None:
        result = [r for r in result if r.priority is f.priority]
    if f.actor_id is not None:
        result = [r for r in result if r.actor is not None and r.actor.id == f.actor_id]
    if f.date_from is not None:
        result = [r for r in result if r.created_at is not None and r.created_at > f.date_from]
    if f.date_to is not None:
        result = [r for r in result if r.created_at is not None and r.created_at < f.date_to]
    if f.search_query:
        query = f.search_query.lower()
        result = [r for r in result if _matches_query(r, query)]

    logger.debug(f"Route filter kept {len(result)} of {len(routes)} routes")
    return sort_routes(result, f.sort_by, speed_kmh)


def summarize_routes(routes: Sequence[RouteAssignment]) -> Dict[str, int]:
    """
    Route counts for the dashboard header.

    Returns:
        Dictionary with total plus one count per status
    """
    stats = {"total": len(routes)}
    for status in RouteStatus:
        stats[status.value] = sum(1 for r in routes if r.status is status)
    return stats
