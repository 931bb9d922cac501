"""
Tests for directional spread summaries and the spread index.
"""

import threading

import pytest
from shapely.geometry import Polygon

from conftest import make_raw
from firesight.geometry import haversine_km
from firesight.incident import FuelType, Incident
from firesight.spread_index import (
    SpreadIndex,
    analyze_feature_spread,
    classify_dominant_direction,
    grid_key,
)


class TestClassifyDominantDirection:
    """Tests for the four-direction dominant spread rule."""

    @pytest.mark.parametrize(
        "n, s, e, w, expected",
        [
            (10, 1, 9, 1, "NE"),
            (10, 1, 1, 9, "NW"),
            (1, 10, 9, 1, "SE"),
            (1, 10, 1, 9, "SW"),
            (10, 1, 5, 5, "N"),
            (1, 10, 5, 5, "S"),
            (5, 5, 10, 1, "E"),
            (5, 5, 1, 10, "W"),
            (10, 10, 10, 10, "NE"),
        ],
    )
    def test_rule(self, n, s, e, w, expected):
        assert classify_dominant_direction(n, s, e, w) == expected

    def test_nan_is_uniform(self):
        """Test the fall-through category."""
        nan = float("nan")
        assert classify_dominant_direction(nan, nan, nan, nan) == "UNIFORM"


class TestAnalyzeFeatureSpread:
    """Tests for the per-fire directional summary."""

    def test_rectangle(self):
        """Test a 4 km wide, 2 km tall fire over 10 hours."""
        spread = analyze_feature_spread(make_raw(half_km=(1.0, 2.0), hours=10.0, object_id=7))

        assert spread.fire_id == "FIRE_7"
        assert spread.extents.north == pytest.approx(1.0, rel=1e-3)
        assert spread.extents.east == pytest.approx(2.0, rel=1e-2)
        assert spread.rates.north == pytest.approx(0.1, rel=1e-3)
        assert spread.shape.aspect_ratio == pytest.approx(2.0, rel=1e-2)
        assert spread.shape.elongation == pytest.approx(2.0, rel=1e-2)
        assert spread.shape.elongation >= 1
        assert spread.shape.dominant_direction in ("E", "W")

    def test_incident_number_is_id(self):
        spread = analyze_feature_spread(make_raw(incident_number="CA-LAC-123"))
        assert spread.fire_id == "CA-LAC-123"

    def test_short_duration_rate_floor(self):
        """Test rates use at least 0.1 h."""
        spread = analyze_feature_spread(make_raw(hours=0.0))
        assert spread.rates.north == pytest.approx(spread.extents.north / 0.1)

    def test_degenerate(self):
        """Test a zero-height shape is rejected."""
        line = Polygon([(-120.0, 37.0), (-119.9, 37.0), (-119.8, 37.0), (-120.0, 37.0)])
        with pytest.raises(ValueError):
            analyze_feature_spread(make_raw(geometry=line))


@pytest.fixture
def fires():
    return [
        make_raw(name="NEAR OLD", year=2001, object_id=1, center=(37.0, -120.0)),
        make_raw(name="NEAR NEW", year=2019, object_id=2, center=(37.1, -120.0)),
        make_raw(name="MID", year=2010, object_id=3, center=(37.0, -120.5)),
        make_raw(name="FAR", year=2019, object_id=4, center=(40.0, -122.0)),
        make_raw(name="Creek", year=2020, object_id=5, center=(37.2, -119.3)),
    ]


class TestSpreadIndex:
    """Tests for index lookups."""

    def test_lazy_build(self, fires):
        index = SpreadIndex(fires)
        assert not index.is_built
        assert len(index) == 5
        assert index.is_built

    def test_find_near_sorted_and_within_radius(self, fires):
        """Test radius search returns only fires within range, nearest first."""
        index = SpreadIndex(fires)
        results = index.find_near_with_distance(37.0, -120.0, radius_km=80, limit=10)

        names = [fire.fire_name for fire, _ in results]
        assert names == ["NEAR OLD", "NEAR NEW", "MID", "Creek"]
        distances = [d for _, d in results]
        assert distances == sorted(distances)
        for fire, d in results:
            true_d = haversine_km(37.0, -120.0, fire.bounds.center_lat, fire.bounds.center_lon)
            assert true_d <= 80
            assert d == pytest.approx(true_d)

    def test_find_near_crosses_cells(self, fires):
        """Test candidates in neighbouring grid cells are found."""
        index = SpreadIndex(fires)
        assert grid_key(37.0, -120.0) != grid_key(37.0, -120.5)
        assert "MID" in [f.fire_name for f in index.find_near(37.0, -120.0, radius_km=50)]

    def test_find_near_limit(self, fires):
        index = SpreadIndex(fires)
        assert len(index.find_near(37.0, -120.0, radius_km=500, limit=2)) == 2

    def test_find_by_name_case_insensitive(self, fires):
        index = SpreadIndex(fires)
        assert [f.fire_name for f in index.find_by_name("near")] == ["NEAR OLD", "NEAR NEW"]
        assert [f.fire_name for f in index.find_by_name("creek")] == ["Creek"]
        assert index.find_by_name("near", limit=1)[0].fire_name == "NEAR OLD"

    def test_find_by_year(self, fires):
        index = SpreadIndex(fires)
        assert {f.fire_name for f in index.find_by_year(2019)} == {"NEAR NEW", "FAR"}
        assert index.find_by_year(1900) == []

    def test_find_similar_prefers_recent(self, fires):
        """Test analogs are ordered by descending year."""
        index = SpreadIndex(fires)
        incident = Incident(lat=37.0, lon=-120.0, fuel=FuelType.BRUSH)
        similar = index.find_similar(incident, radius_km=100, limit=10)

        years = [f.year for f in similar]
        assert years == sorted(years, reverse=True)
        assert "FAR" not in [f.fire_name for f in similar]

    def test_secondary_tables_subset_of_all(self, fires):
        index = SpreadIndex(fires)
        all_ids = {id(f) for f in index.all}
        tables = index._ensure_built()
        for table in (tables.by_name, tables.by_cell, tables.by_year):
            for entries in table.values():
                assert {id(f) for f in entries} <= all_ids

    def test_failed_features_counted(self, fires):
        line = Polygon([(-120.0, 37.0), (-119.9, 37.0), (-119.8, 37.0), (-120.0, 37.0)])
        index = SpreadIndex(fires + [make_raw(geometry=line, object_id=99)])
        summary = index.summary()
        assert summary["fires"] == 5
        assert summary["failed"] == 1
        assert summary["years"] == (2001, 2020)

    def test_rebuild_picks_up_new_source_data(self, fires):
        """Test a callable source is re-read on rebuild."""
        source = list(fires[:2])
        index = SpreadIndex(lambda: list(source))
        assert len(index) == 2

        source.append(fires[2])
        assert len(index) == 2
        index.rebuild()
        assert len(index) == 3

        source.append(fires[3])
        index.invalidate()
        assert not index.is_built
        assert len(index) == 4

    def test_concurrent_first_queries_build_once(self, fires):
        calls = []

        def source():
            calls.append(1)
            return fires

        index = SpreadIndex(source)
        threads = [threading.Thread(target=lambda: index.find_near(37.0, -120.0)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(calls) == 1

    def test_invalid_grid_size(self, fires):
        with pytest.raises(ValueError):
            SpreadIndex(fires, grid_size_deg=0)
