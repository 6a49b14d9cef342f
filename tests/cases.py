"""
Shared Test Fixtures
Snapshot builders and reference cases used across the test modules.

Run this file directly to print the reference ETA and nearest-ambulance cases.
"""

import sys
import os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from datetime import datetime, timedelta, timezone

from rescuenet.geo import estimate
from rescuenet.models import (
    Actor,
    EntityStatus,
    Position,
    Priority,
    RouteAssignment,
    RouteStatus,
    TrackedEntity,
)
from rescuenet.nearest import find_nearest

NOW = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

OFFICER = Actor(id="pol-77", name="Sgt. Al-Harbi")
DRIVER = Actor(id="drv-01", name="Driver One")


def make_entity(
    id: str,
    lat=None,
    lng=None,
    status: EntityStatus = EntityStatus.AVAILABLE,
    seconds_ago=0,
    **kwargs,
) -> TrackedEntity:
    """Ambulance snapshot reported `seconds_ago` before NOW (None: never reported)."""
    last_update = None if seconds_ago is None else NOW - timedelta(seconds=seconds_ago)
    return TrackedEntity.from_coordinates(
        id=id,
        latitude=lat,
        longitude=lng,
        status=status,
        last_update=last_update,
        **kwargs,
    )


def make_route(
    id: str = "route-1",
    status: RouteStatus = RouteStatus.ACTIVE,
    priority: Priority = Priority.MEDIUM,
    minutes_ago: int = 10,
    **kwargs,
) -> RouteAssignment:
    return RouteAssignment(
        id=id,
        origin=Position(24.7136, 46.6753),
        destination=Position(24.6912, 46.6850),
        status=status,
        priority=priority,
        created_at=NOW - timedelta(minutes=minutes_ago),
        **kwargs,
    )


def dense_fleet(count: int = 12):
    """`count` available ambulances packed into one 0.01° grid cell."""
    return [
        make_entity(f"amb-{i:03d}", 24.7101 + i * 0.0005, 46.6701 + i * 0.0003)
        for i in range(count)
    ]


# (distance km, speed km/h, expected minutes)
ETA_CASES = [
    (20.0, 40.0, 30),
    (0.0, 40.0, 0),
    (15.0, 40.0, 23),   # 22.5 min rounds up
    (5.0, 60.0, 5),
    (100.0, 40.0, 150),
]

NEAREST_CASES = [
    {
        "name": "Closer of two",
        "target": (0.0, 0.0),
        "candidates": [("A", 0.0, 0.001), ("B", 0.0, 0.002)],
        "expected": "A",
        "distance_km": 0.11,
    },
    {
        "name": "Tie keeps first",
        "target": (0.0, 0.0),
        "candidates": [("A", 0.0, 0.001), ("B", 0.0, -0.001)],
        "expected": "A",
        "distance_km": 0.11,
    },
    {
        "name": "Order independent winner",
        "target": (24.7, 46.69),
        "candidates": [("far", 24.8, 46.8), ("near", 24.701, 46.691)],
        "expected": "near",
        "distance_km": 0.15,
    },
]


def run_nearest_case(case: dict):
    target = Position(*case["target"])
    candidates = [make_entity(i, lat, lng) for i, lat, lng in case["candidates"]]
    return find_nearest(target, candidates)


if __name__ == "__main__":
    print("=" * 60)
    print("REFERENCE CASES")
    print("=" * 60)

    for distance, speed, minutes in ETA_CASES:
        print(f"  {distance:>6.1f} km @ {speed:.0f} km/h -> {minutes} min")

    for case in NEAREST_CASES:
        match = run_nearest_case(case)
        print(f"  {case['name']}: {match.entity.id} at {match.distance_km:.3f} km")

    leg = estimate(Position(24.7136, 46.6753), Position(24.6912, 46.6850))
    print(f"  Sample route leg: {leg.distance_km:.2f} km, {leg.eta_minutes} min")
