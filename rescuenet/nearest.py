"""
Nearest Ambulance Finder
Finds the closest available ambulance to a patient location.

Uses the Haversine formula (see geo.haversine_distance), the same distance
model as the ETA estimator, so the distance in the assignment dialog matches
the one on the navigation screen.

Tie-break: when two candidates are equally far (within DISTANCE_TOLERANCE_KM),
the one listed first in the input wins. Callers that need a different
preference must order the candidates themselves.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence
import logging

from .config import DEFAULT_AVG_SPEED_KMH
from .geo import eta_minutes_for, haversine_distance
from .models import EntityStatus, Position, Priority, TrackedEntity, ValidationError

logger = logging.getLogger(__name__)

DISTANCE_TOLERANCE_KM = 1e-9

# How many of the closest candidates each priority may choose from
PRIORITY_POOL_SIZE = {
    Priority.CRITICAL: 1,
    Priority.HIGH: 2,
    Priority.MEDIUM: 3,
    Priority.LOW: 3,
}


@dataclass(frozen=True)
class Candidate:
    """
    An ambulance together with its distance to the target.

    Attributes:
        entity: Ambulance snapshot
        distance_km: Haversine distance to the target
        eta_minutes: Naive travel time at the assumed speed
    """
    entity: TrackedEntity
    distance_km: float
    eta_minutes: int


@dataclass(frozen=True)
class NearestMatch:
    """
    Result of a nearest-ambulance lookup.

    An empty candidate list is not an error: `found` is False and the caller
    decides whether to retry, widen the search or tell the dispatcher.

    Attributes:
        target: Position that was searched around
        candidate: Best candidate, None when nothing matched
        alternatives: Remaining ranked candidates (closest first)
    """
    target: Position
    candidate: Optional[Candidate] = None
    alternatives: List[Candidate] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.candidate is not None

    @property
    def entity(self) -> Optional[TrackedEntity]:
        return self.candidate.entity if self.candidate else None

    @property
    def distance_km(self) -> Optional[float]:
        return self.candidate.distance_km if self.candidate else None


def available_candidates(entities: Sequence[TrackedEntity]) -> List[TrackedEntity]:
    """Entities that may be dispatched: status available and a known position."""
    return [
        e for e in entities
        if e.status is EntityStatus.AVAILABLE and e.has_position
    ]


def _measure(
    target: Position,
    candidates: Sequence[TrackedEntity],
    speed_kmh: float,
) -> List[Candidate]:
    measured = []
    for entity in candidates:
        if not entity.has_position:
            logger.warning(f"Skipping candidate {entity.id}: no position")
            continue
        distance = haversine_distance(target, entity.position)
        measured.append(Candidate(
            entity=entity,
            distance_km=distance,
            eta_minutes=eta_minutes_for(distance, speed_kmh),
        ))
    return measured


def _closest_index(measured: Sequence[Candidate]) -> int:
    best = 0
    for i, candidate in enumerate(measured):
        # Strictly closer by more than the tolerance, so ties keep the earlier one
        if candidate.distance_km < measured[best].distance_km - DISTANCE_TOLERANCE_KM:
            best = i
    return best


def find_nearest(
    target: Position,
    candidates: Sequence[TrackedEntity],
    speed_kmh: float = DEFAULT_AVG_SPEED_KMH,
) -> NearestMatch:
    """
    Find the candidate closest to the target.

    Args:
        target: Patient location
        candidates: Ambulances already filtered by the caller
            (see available_candidates)
        speed_kmh: Speed used for the ETA attached to the match

    Returns:
        NearestMatch; `found` is False when no candidate has a position

    Examples:
        >>> match = find_nearest(Position(0, 0), [a, b])
        >>> match.entity.id
        'A'
    """
    if target is None:
        raise ValidationError("Target position is required")

    measured = _measure(target, candidates, speed_kmh)
    if not measured:
        logger.info(f"No candidate ambulance found near {target}")
        return NearestMatch(target=target)

    best = measured[_closest_index(measured)]
    logger.info(f"Nearest ambulance: {best.entity.label} at {best.distance_km:.2f} km")
    return NearestMatch(target=target, candidate=best)


def rank_candidates(
    target: Position,
    candidates: Sequence[TrackedEntity],
    speed_kmh: float = DEFAULT_AVG_SPEED_KMH,
) -> List[Candidate]:
    """
    All positioned candidates sorted by distance, closest first.

    Built by repeatedly taking the closest remaining candidate with the same
    tie rule as find_nearest(), so the first entry is always its match.
    """
    if target is None:
        raise ValidationError("Target position is required")

    remaining = _measure(target, candidates, speed_kmh)
    ranked = []
    while remaining:
        ranked.append(remaining.pop(_closest_index(remaining)))
    return ranked


def candidates_within_radius(
    target: Position,
    candidates: Sequence[TrackedEntity],
    radius_km: float,
    speed_kmh: float = DEFAULT_AVG_SPEED_KMH,
) -> List[Candidate]:
    """Ranked candidates no further than radius_km from the target."""
    if radius_km < 0:
        raise ValidationError(f"Search radius must not be negative, got {radius_km}")

    ranked = rank_candidates(target, candidates, speed_kmh)
    return [c for c in ranked if c.distance_km <= radius_km]


def select_for_priority(
    target: Position,
    candidates: Sequence[TrackedEntity],
    priority: Priority = Priority.MEDIUM,
    speed_kmh: float = DEFAULT_AVG_SPEED_KMH,
) -> NearestMatch:
    """
    Pick an ambulance for an emergency of the given priority.

    The closest candidate is always selected. Each priority has a pool of the
    closest candidates (critical: 1, high: 2, medium/low: 3); the rest of the
    pool is offered to the dispatcher as alternatives.
    """
    ranked = rank_candidates(target, candidates, speed_kmh)
    if not ranked:
        logger.info(f"No candidate ambulance for {priority.value} emergency at {target}")
        return NearestMatch(target=target)

    pool = ranked[:PRIORITY_POOL_SIZE[priority]]
    selected = pool[0]

    logger.info(
        f"Selected {selected.entity.label} for {priority.value} emergency "
        f"({selected.distance_km:.2f} km, {selected.eta_minutes} min)"
    )
    return NearestMatch(
        target=target,
        candidate=selected,
        alternatives=pool[1:],
    )
