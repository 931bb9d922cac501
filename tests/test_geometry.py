"""
Tests for the geometry module.
"""

import numpy as np
import pytest

from firesight.geometry import (
    acres_to_km2,
    angular_difference,
    cardinal_to_degrees,
    degrees_to_cardinal,
    degrees_to_cardinal16,
    haversine_km,
    initial_bearing,
    km2_to_acres,
)


class TestHaversine:
    """Tests for great-circle distance."""

    def test_zero_distance(self):
        """Test identical points are 0 km apart."""
        assert haversine_km(37.0, -120.0, 37.0, -120.0) == pytest.approx(0.0)

    def test_one_degree_latitude(self):
        """Test one degree of latitude is ~111.2 km."""
        assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.195, rel=1e-4)

    def test_symmetric(self):
        """Test distance does not depend on direction."""
        a = haversine_km(34.05, -118.25, 37.77, -122.42)
        b = haversine_km(37.77, -122.42, 34.05, -118.25)
        assert a == pytest.approx(b)
        assert 540 < a < 570

    def test_vectorized(self):
        """Test array inputs give elementwise distances."""
        d = haversine_km(0.0, 0.0, np.array([0.0, 1.0, 2.0]), np.zeros(3))
        assert d.shape == (3,)
        assert d[2] == pytest.approx(2 * d[1])


class TestBearing:
    """Tests for initial bearing."""

    @pytest.mark.parametrize(
        "lat2, lon2, expected",
        [(1.0, 0.0, 0.0), (0.0, 1.0, 90.0), (-1.0, 0.0, 180.0), (0.0, -1.0, 270.0)],
    )
    def test_cardinal_bearings(self, lat2, lon2, expected):
        """Test bearings toward the four cardinal directions."""
        assert initial_bearing(0.0, 0.0, lat2, lon2) == pytest.approx(expected)

    def test_range(self):
        """Test bearings are normalized to [0, 360)."""
        b = initial_bearing(0.0, 0.0, np.array([-1.0, -0.5, 0.5]), np.array([-0.01, -1.0, -1.0]))
        assert np.all((b >= 0) & (b < 360))

    def test_angular_difference_wraps(self):
        """Test the shortest way around the compass is used."""
        assert angular_difference(350.0, 10.0) == pytest.approx(20.0)
        assert angular_difference(0.0, 180.0) == pytest.approx(180.0)


class TestCardinal:
    """Tests for cardinal labels."""

    @pytest.mark.parametrize(
        "degrees, expected",
        [(0, "N"), (22.4, "N"), (22.5, "NE"), (90, "E"), (200, "S"), (337.5, "N"), (359, "N"), (-45, "NW")],
    )
    def test_eight_point(self, degrees, expected):
        assert degrees_to_cardinal(degrees) == expected

    @pytest.mark.parametrize("degrees, expected", [(0, "N"), (45, "NE"), (67.5, "ENE"), (350, "N"), (191, "S")])
    def test_sixteen_point(self, degrees, expected):
        assert degrees_to_cardinal16(degrees) == expected

    def test_round_trip_labels(self):
        """Test label -> degrees -> label for all 16 points."""
        for i in range(16):
            label = degrees_to_cardinal16(i * 22.5)
            assert cardinal_to_degrees(label) == pytest.approx(i * 22.5)

    def test_unknown_label(self):
        """Test unknown labels raise ValueError."""
        with pytest.raises(ValueError):
            cardinal_to_degrees("UP")


class TestUnits:
    def test_acre_conversion(self):
        assert acres_to_km2(1000) == pytest.approx(4.04686)
        assert km2_to_acres(1.0) == pytest.approx(247.105)
