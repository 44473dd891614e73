"""Encoded polyline codec (Google polyline algorithm, 1e-5 degree precision)."""

from __future__ import annotations

import logging
from typing import Sequence

from ..models.domain import Coordinates

PRECISION = 1e5

logger = logging.getLogger(__name__)


def _read_value(encoded: str, index: int) -> tuple[int, int] | None:
    """Read one zig-zag varint starting at ``index``.

    Returns ``(value, next_index)`` or ``None`` when the chunk is truncated or
    contains a character outside the encoding alphabet.
    """
    shift = 0
    result = 0
    while index < len(encoded):
        b = ord(encoded[index]) - 63
        index += 1
        if b < 0:
            return None
        result |= (b & 0x1F) << shift
        shift += 5
        if b < 0x20:
            value = ~(result >> 1) if (result & 1) else (result >> 1)
            return value, index
    return None


def decode_polyline(encoded: str) -> list[Coordinates]:
    """Decode an encoded polyline into ``(lat, lng)`` coordinates.

    Malformed input is decoded best-effort: points decoded before the first
    truncated or invalid chunk are returned and the remainder is dropped.
    """
    if not encoded:
        return []

    coordinates: list[Coordinates] = []
    index = 0
    lat = 0
    lng = 0

    while index < len(encoded):
        lat_chunk = _read_value(encoded, index)
        if lat_chunk is None:
            break
        d_lat, index = lat_chunk
        lng_chunk = _read_value(encoded, index)
        if lng_chunk is None:
            break
        d_lng, index = lng_chunk

        lat += d_lat
        lng += d_lng
        coordinates.append(Coordinates(lat / PRECISION, lng / PRECISION))

    if index < len(encoded):
        logger.warning(
            f"[decode_polyline] Malformed polyline at offset {index}/{len(encoded)}; "
            f"kept {len(coordinates)} points"
        )
    return coordinates


def _encode_value(value: int) -> str:
    value = ~(value << 1) if value < 0 else (value << 1)
    chunks = []
    while value >= 0x20:
        chunks.append(chr((0x20 | (value & 0x1F)) + 63))
        value >>= 5
    chunks.append(chr(value + 63))
    return "".join(chunks)


def encode_polyline(points: Sequence[Coordinates]) -> str:
    encoded = []
    prev_lat = 0
    prev_lng = 0
    for point in points:
        lat = int(round(point.lat * PRECISION))
        lng = int(round(point.lng * PRECISION))
        encoded.append(_encode_value(lat - prev_lat))
        encoded.append(_encode_value(lng - prev_lng))
        prev_lat, prev_lng = lat, lng
    return "".join(encoded)
