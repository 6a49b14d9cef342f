"""
Nearest Ambulance Finder Tests
"""

import sys
import os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from rescuenet import nearest
from rescuenet.models import EntityStatus, Position, Priority, ValidationError
from rescuenet.nearest import (
    available_candidates,
    candidates_within_radius,
    find_nearest,
    rank_candidates,
    select_for_priority,
)
from cases import NEAREST_CASES, make_entity, run_nearest_case


def test_reference_cases():
    for case in NEAREST_CASES:
        match = run_nearest_case(case)
        assert match.found, case["name"]
        assert match.entity.id == case["expected"], case["name"]
        assert round(match.distance_km, 2) == case["distance_km"], case["name"]


def test_empty_candidates_is_not_found():
    match = find_nearest(Position(0, 0), [])
    assert not match.found
    assert match.entity is None
    assert match.distance_km is None


def test_winner_does_not_depend_on_order():
    a = make_entity("A", 0.0, 0.001)
    b = make_entity("B", 0.0, 0.002)
    assert find_nearest(Position(0, 0), [b, a]).entity.id == "A"


def test_tie_break_follows_input_order():
    a = make_entity("A", 0.0, 0.001)
    b = make_entity("B", 0.0, -0.001)
    assert find_nearest(Position(0, 0), [a, b]).entity.id == "A"
    assert find_nearest(Position(0, 0), [b, a]).entity.id == "B"


def test_match_carries_eta():
    match = find_nearest(Position(0, 0), [make_entity("A", 0.0, 0.18)], speed_kmh=40)
    # ~20 km at 40 km/h
    assert match.candidate.eta_minutes == 30


def test_positionless_candidates_are_skipped():
    ghost = make_entity("ghost")
    real = make_entity("real", 0.0, 0.5)
    match = find_nearest(Position(0, 0), [ghost, real])
    assert match.entity.id == "real"
    assert not find_nearest(Position(0, 0), [ghost]).found


def test_target_required():
    with pytest.raises(ValidationError):
        find_nearest(None, [make_entity("A", 0, 0)])


def test_available_candidates_filters_status_and_position():
    fleet = [
        make_entity("ok", 24.7, 46.7),
        make_entity("busy", 24.7, 46.7, status=EntityStatus.ON_DUTY),
        make_entity("shop", 24.7, 46.7, status=EntityStatus.MAINTENANCE),
        make_entity("ghost"),
    ]
    assert [e.id for e in available_candidates(fleet)] == ["ok"]


def test_rank_candidates_is_stable_on_ties():
    fleet = [
        make_entity("far", 0.0, 0.01),
        make_entity("tie-1", 0.0, 0.001),
        make_entity("tie-2", 0.0, -0.001),
    ]
    ranked = rank_candidates(Position(0, 0), fleet)
    assert [c.entity.id for c in ranked] == ["tie-1", "tie-2", "far"]


def test_candidates_within_radius():
    fleet = [
        make_entity("near", 0.0, 0.001),
        make_entity("mid", 0.0, 0.05),
        make_entity("far", 0.0, 1.0),
    ]
    within = candidates_within_radius(Position(0, 0), fleet, radius_km=10)
    assert [c.entity.id for c in within] == ["near", "mid"]

    with pytest.raises(ValidationError):
        candidates_within_radius(Position(0, 0), fleet, radius_km=-1)


def test_select_for_priority_pool_sizes():
    fleet = [
        make_entity("d", 0.0, 0.04),
        make_entity("c", 0.0, 0.03),
        make_entity("a", 0.0, 0.01),
        make_entity("b", 0.0, 0.02),
    ]
    target = Position(0, 0)

    critical = select_for_priority(target, fleet, Priority.CRITICAL)
    high = select_for_priority(target, fleet, Priority.HIGH)
    low = select_for_priority(target, fleet, Priority.LOW)

    assert critical.entity.id == high.entity.id == low.entity.id == "a"
    assert critical.alternatives == []
    assert [c.entity.id for c in high.alternatives] == ["b"]
    assert [c.entity.id for c in low.alternatives] == ["b", "c"]


def test_select_for_priority_without_candidates():
    assert not select_for_priority(Position(0, 0), [], Priority.HIGH).found


def test_ranking_and_nearest_share_tie_rule(monkeypatch):
    # 0.2e-9 km apart, on opposite sides of a 1e-9 rounding boundary
    distances = {1.0: 1.0 + 0.6e-9, 2.0: 1.0 + 0.4e-9, 3.0: 2.0}
    monkeypatch.setattr(nearest, "haversine_distance", lambda a, b: distances[b.longitude])

    fleet = [make_entity("x", 0.0, 1.0), make_entity("y", 0.0, 2.0), make_entity("z", 0.0, 3.0)]
    target = Position(0, 0)

    assert find_nearest(target, fleet).entity.id == "x"
    assert [c.entity.id for c in rank_candidates(target, fleet)] == ["x", "y", "z"]
    assert select_for_priority(target, fleet, Priority.HIGH).entity.id == "x"


def test_first_ranked_is_nearest():
    fleet = [
        make_entity("a", 24.71, 46.70),
        make_entity("b", 24.69, 46.70),
        make_entity("c", 24.70, 46.75),
        make_entity("d", 24.70, 46.65),
    ]
    target = Position(24.70, 46.70)
    assert rank_candidates(target, fleet)[0].entity.id == find_nearest(target, fleet).entity.id
