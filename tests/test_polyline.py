"""
Encoded Polyline Tests
"""

import sys
import os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from rescuenet.models import Position, ValidationError
from rescuenet.polyline import decode, encode

REFERENCE = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"
REFERENCE_POINTS = [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]


def test_decode_reference_line():
    assert [p.to_tuple() for p in decode(REFERENCE)] == REFERENCE_POINTS


def test_encode_reference_line():
    assert encode(Position(*p) for p in REFERENCE_POINTS) == REFERENCE


def test_decode_empty():
    assert decode("") == []


def test_decode_truncated():
    with pytest.raises(ValidationError):
        decode(REFERENCE[:-1])


def test_decode_invalid_character():
    with pytest.raises(ValidationError):
        decode("_p~iF ~ps|U")


def test_decode_route_geometry():
    points = decode("iluuCgq`|GpaBg`BbcAo`B")
    assert [p.to_tuple() for p in points] == [
        (24.69077, 46.70244),
        (24.675, 46.718),
        (24.6641, 46.7336),
    ]
    assert encode(points) == "iluuCgq`|GpaBg`BbcAo`B"
