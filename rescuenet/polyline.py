"""
Encoded Polyline Codec
Google's encoded polyline algorithm format, 1e-5 degree precision.

Route documents carry their geometry as an encoded polyline; the map view
decodes it to draw the path.
"""

from typing import Iterable, List

import polyline

from .models import Position, ValidationError

PRECISION = 5

# Every character of an encoded polyline is chr(chunk + 63), chunk in 0-63
VALID_CHARS = frozenset(chr(c) for c in range(63, 127))


def decode(encoded: str) -> List[Position]:
    """
    Decode a polyline string into positions.

    Raises:
        ValidationError: Truncated string or characters outside the alphabet

    Examples:
        >>> [p.to_tuple() for p in decode("_p~iF~ps|U_ulLnnqC_mqNvxq`@")]
        [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]
    """
    bad = set(encoded) - VALID_CHARS
    if bad:
        raise ValidationError(f"Invalid polyline characters: {sorted(bad)}")

    try:
        points = polyline.decode(encoded, PRECISION)
    except IndexError:
        raise ValidationError(f"Truncated polyline: {encoded!r}") from None

    return [Position(lat, lng) for lat, lng in points]


def encode(positions: Iterable[Position]) -> str:
    """Encode positions into a polyline string."""
    return polyline.encode([p.to_tuple() for p in positions], PRECISION)
