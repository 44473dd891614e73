import pytest

from errand_planner.models.domain import Coordinates
from errand_planner.services.polyline import decode_polyline, encode_polyline

REFERENCE = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"
REFERENCE_POINTS = [(38.5, -120.2), (40.7, -120.95), (43.252, -126.453)]


def test_decode_reference_polyline():
    points = decode_polyline(REFERENCE)

    assert len(points) == 3
    for point, (lat, lng) in zip(points, REFERENCE_POINTS):
        assert point.lat == pytest.approx(lat, abs=1e-6)
        assert point.lng == pytest.approx(lng, abs=1e-6)


def test_decode_zero_point_and_empty_input():
    assert decode_polyline("??") == [Coordinates(0.0, 0.0)]
    assert decode_polyline("") == []


def test_encode_reference_points():
    assert encode_polyline([Coordinates(lat, lng) for lat, lng in REFERENCE_POINTS]) == REFERENCE


def test_truncated_polyline_keeps_complete_points(caplog):
    points = decode_polyline(REFERENCE[:-1])

    assert len(points) == 2
    assert points[1].lat == pytest.approx(40.7)
    assert "Malformed polyline" in caplog.text


def test_characters_outside_alphabet_end_decoding():
    assert decode_polyline("?? ??") == [Coordinates(0.0, 0.0)]
