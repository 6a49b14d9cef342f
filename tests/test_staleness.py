"""
Position Staleness Tests
"""

import sys
import os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from datetime import datetime, timedelta

import pytest

from rescuenet.data_loader import parse_entity
from rescuenet.models import TrackedEntity, ValidationError
from rescuenet.staleness import format_last_update, is_stale, stale_ids
from cases import NOW, make_entity


def test_fresh_report_is_not_stale():
    assert not is_stale(make_entity("a", 24.7, 46.7, seconds_ago=30), now=NOW)


def test_report_exactly_at_threshold_is_not_stale():
    assert not is_stale(make_entity("a", 24.7, 46.7, seconds_ago=120), now=NOW)


def test_report_past_threshold_is_stale():
    assert is_stale(make_entity("a", 24.7, 46.7, seconds_ago=121), now=NOW)


def test_never_reported_is_stale():
    assert is_stale(make_entity("a", seconds_ago=None), now=NOW)


def test_custom_threshold():
    entity = make_entity("a", 24.7, 46.7, seconds_ago=300)
    assert not is_stale(entity, timedelta(minutes=10), now=NOW)
    assert is_stale(entity, timedelta(minutes=1), now=NOW)


def test_zero_threshold_only_accepts_same_instant():
    assert not is_stale(make_entity("a", 24.7, 46.7, seconds_ago=0), timedelta(0), now=NOW)
    assert is_stale(make_entity("b", 24.7, 46.7, seconds_ago=1), timedelta(0), now=NOW)


def test_negative_threshold_rejected():
    with pytest.raises(ValidationError):
        is_stale(make_entity("a", 24.7, 46.7), timedelta(seconds=-1), now=NOW)


def test_stale_ids():
    fleet = [
        make_entity("fresh", 24.7, 46.7, seconds_ago=10),
        make_entity("old", 24.7, 46.7, seconds_ago=600),
        make_entity("silent", seconds_ago=None),
    ]
    assert stale_ids(fleet, now=NOW) == {"old", "silent"}


def test_format_last_update():
    assert format_last_update(make_entity("a", seconds_ago=None), NOW) == "No location data"
    assert format_last_update(make_entity("a", seconds_ago=5), NOW) == "Just now"
    assert format_last_update(make_entity("a", seconds_ago=45), NOW) == "45s ago"
    assert format_last_update(make_entity("a", seconds_ago=300), NOW) == "5m ago"
    assert format_last_update(make_entity("a", seconds_ago=3 * 3600), NOW) == "3h ago"
    assert format_last_update(make_entity("a", seconds_ago=2 * 86400), NOW) == "2d ago"


def test_naive_reference_time_is_utc():
    entity = parse_entity({
        "id": "amb-1", "latitude": 24.7, "longitude": 46.7,
        "lastLocationUpdate": "2024-05-01T12:00:00Z",
    })
    assert not is_stale(entity, now=datetime(2024, 5, 1, 12, 1))
    assert is_stale(entity, now=datetime(2024, 5, 1, 12, 3))
    assert format_last_update(entity, datetime(2024, 5, 1, 12, 5)) == "5m ago"


def test_naive_report_time_is_utc():
    entity = TrackedEntity(id="amb-1", last_update=datetime(2024, 5, 1, 11, 59))
    assert entity.last_update.tzinfo is not None
    assert not is_stale(entity, now=NOW)
    assert stale_ids([entity], timedelta(seconds=30), now=NOW) == {"amb-1"}
