"""Google encoded-polyline codec.

Algorithm: https://developers.google.com/maps/documentation/utilities/polylinealgorithm

Each coordinate is stored as the signed delta from the previous point,
multiplied by 1e5, zig-zag encoded, and split into 5-bit groups (low group
first). Every group except the last carries the 0x20 continuation bit, and
63 is added so the result is printable ASCII.
"""

from __future__ import annotations

from plan_overlay.models.geo import GeoPoint

_PRECISION = 1e5
_CONTINUATION = 0x20
_GROUP_MASK = 0x1F
_ASCII_OFFSET = 63


def _read_value(encoded: str, idx: int) -> tuple[int, int] | None:
    """Read one zig-zag value starting at ``idx``. None if the input is truncated."""
    shift = 0
    result = 0
    while idx < len(encoded):
        byte = ord(encoded[idx]) - _ASCII_OFFSET
        idx += 1
        result |= (byte & _GROUP_MASK) << shift
        shift += 5
        if byte < _CONTINUATION:
            delta = ~(result >> 1) if result & 1 else result >> 1
            return delta, idx
    return None


def decode_polyline(encoded: str) -> list[GeoPoint]:
    """Decode an encoded polyline into points, in path order.

    Empty input gives an empty list. A truncated trailing point is dropped.
    """
    points: list[GeoPoint] = []
    idx = 0
    lat = 0
    lng = 0

    while idx < len(encoded):
        lat_read = _read_value(encoded, idx)
        if lat_read is None:
            break
        delta_lat, idx = lat_read

        lng_read = _read_value(encoded, idx)
        if lng_read is None:
            break
        delta_lng, idx = lng_read

        lat += delta_lat
        lng += delta_lng
        points.append(GeoPoint(lat=lat / _PRECISION, lng=lng / _PRECISION))

    return points
