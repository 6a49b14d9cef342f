"""
Distance & ETA Tests
"""

import sys
import os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from rescuenet.geo import (
    bearing_to_cardinal,
    calculate_bearing,
    compute_bounds,
    estimate,
    eta_minutes_for,
    format_distance,
    format_eta,
    haversine_distance,
)
from rescuenet.models import Position, ValidationError
from cases import ETA_CASES


def test_haversine_small_offset():
    d = haversine_distance(Position(0, 0), Position(0, 0.001))
    assert round(d, 2) == 0.11


def test_haversine_is_symmetric_and_zero_on_self():
    a = Position(24.7136, 46.6753)
    b = Position(21.4858, 39.1925)
    assert haversine_distance(a, b) == pytest.approx(haversine_distance(b, a))
    assert haversine_distance(a, a) == 0.0


def test_haversine_riyadh_to_jeddah():
    d = haversine_distance(Position(24.7136, 46.6753), Position(21.4858, 39.1925))
    assert 840 < d < 860


def test_eta_reference_cases():
    for distance, speed, expected in ETA_CASES:
        assert eta_minutes_for(distance, speed) == expected, (distance, speed)


def test_eta_rejects_bad_speed():
    with pytest.raises(ValidationError):
        eta_minutes_for(10, 0)
    with pytest.raises(ValidationError):
        eta_minutes_for(10, -40)


def test_eta_rejects_negative_distance():
    with pytest.raises(ValidationError):
        eta_minutes_for(-1, 40)


def test_estimate_same_point():
    p = Position(24.7, 46.7)
    result = estimate(p, p)
    assert result.distance_km == 0.0
    assert result.eta_minutes == 0
    assert result.speed_kmh == 40.0


def test_estimate_uses_haversine():
    a, b = Position(24.7136, 46.6753), Position(24.6912, 46.6850)
    result = estimate(a, b, speed_kmh=60)
    assert result.distance_km == haversine_distance(a, b)
    assert result.eta_minutes == eta_minutes_for(result.distance_km, 60)


def test_estimate_requires_both_positions():
    with pytest.raises(ValidationError):
        estimate(None, Position(0, 0))


def test_bearing():
    assert calculate_bearing(Position(0, 0), Position(1, 0)) == pytest.approx(0.0)
    assert calculate_bearing(Position(0, 0), Position(0, 1)) == pytest.approx(90.0)
    assert bearing_to_cardinal(45) == "NE"
    assert bearing_to_cardinal(180) == "S"
    assert bearing_to_cardinal(350) == "N"


def test_format_helpers():
    assert format_distance(0.85) == "850 m"
    assert format_distance(2.44) == "2.4 km"
    assert format_eta(12) == "12 min"
    assert format_eta(65) == "1 h 05 min"


def test_compute_bounds():
    bounds = compute_bounds([Position(24.6, 46.6), Position(24.8, 46.9)], padding=0.01)
    (south, west), (north, east) = bounds
    assert south == pytest.approx(24.59)
    assert west == pytest.approx(46.59)
    assert north == pytest.approx(24.81)
    assert east == pytest.approx(46.91)
    assert compute_bounds([]) is None
