"""
Route Status State Machine
Validates and applies status changes to route assignments.

    ACTIVE ──► CLEARED     (police cleared traffic on the route)
       │
       ├─────► TIMEOUT     (route expired before clearance/arrival)
       │
       └─────► COMPLETED   (ambulance arrived)

CLEARED, TIMEOUT and COMPLETED are terminal. Self-transitions are rejected.

transition() is pure: it never mutates its input and performs no I/O.
Writing the resulting record back to storage is the caller's job.
"""

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional
import logging

from .models import Actor, RouteAssignment, RouteStatus, StatusChange

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: Dict[RouteStatus, FrozenSet[RouteStatus]] = {
    RouteStatus.ACTIVE: frozenset({
        RouteStatus.CLEARED,
        RouteStatus.TIMEOUT,
        RouteStatus.COMPLETED,
    }),
    RouteStatus.CLEARED: frozenset(),
    RouteStatus.TIMEOUT: frozenset(),
    RouteStatus.COMPLETED: frozenset(),
}


class InvalidTransition(Exception):
    """A status change that the state machine does not allow."""

    def __init__(self, current: RouteStatus, requested: RouteStatus, route_id: Optional[str] = None):
        self.current = current
        self.requested = requested
        self.route_id = route_id
        where = f" for route {route_id}" if route_id else ""
        super().__init__(
            f"Cannot move from '{current.value}' to '{requested.value}'{where}"
        )


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of a transition request.

    Attributes:
        assignment: Updated record on success, the untouched input on failure
        error: InvalidTransition on failure, None on success
    """
    assignment: RouteAssignment
    error: Optional[InvalidTransition] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> RouteAssignment:
        """Return the updated assignment, raising the stored error on failure."""
        if self.error is not None:
            raise self.error
        return self.assignment


def can_transition(current: RouteStatus, requested: RouteStatus) -> bool:
    return requested in ALLOWED_TRANSITIONS[current]


def valid_next_statuses(current: RouteStatus) -> List[RouteStatus]:
    """Statuses reachable from `current`, in declaration order."""
    return [s for s in RouteStatus if s in ALLOWED_TRANSITIONS[current]]


def transition(
    current: RouteAssignment,
    requested: RouteStatus,
    actor: Actor,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> TransitionResult:
    """
    Request a status change.

    Args:
        current: Route as last read from storage
        requested: Target status
        actor: Officer / driver / staff member making the change
        notes: Optional free text; the previous notes are kept when omitted
        now: Time of the change; defaults to the current UTC time

    Returns:
        TransitionResult. On failure `assignment` is `current` itself and
        `error` names both states.

    Examples:
        >>> result = transition(route, RouteStatus.CLEARED, officer)
        >>> result.ok, result.assignment.status
        (True, <RouteStatus.CLEARED: 'cleared'>)
    """
    if not can_transition(current.status, requested):
        error = InvalidTransition(current.status, requested, current.id)
        logger.warning(f"Rejected status change: {error}")
        return TransitionResult(assignment=current, error=error)

    now = now or datetime.now(timezone.utc)
    change = StatusChange(
        from_status=current.status,
        to_status=requested,
        actor=actor,
        at=now,
        notes=notes,
    )

    updated = dataclasses.replace(
        current,
        status=requested,
        actor=actor,
        status_updated_at=now,
        notes=notes if notes is not None else current.notes,
        cleared_at=now if requested is RouteStatus.CLEARED else current.cleared_at,
        completed_at=now if requested is RouteStatus.COMPLETED else current.completed_at,
        history=current.history + (change,),
    )

    logger.info(
        f"Route {current.id} status {current.status.value} -> {requested.value} "
        f"by {actor.name}"
    )
    return TransitionResult(assignment=updated)
