"""
Tests for the analytics engine facade.
"""

import json

import pytest

from conftest import make_raw
from firesight.config import load_config
from firesight.engine import AnalyticsEngine, build_engine
from firesight.errors import ElevationUnavailableError
from firesight.iap import Category
from firesight.incident import FuelType, Incident, Weather
from firesight.io import to_jsonable
from firesight.spread_index import SpreadIndex
from firesight.terrain import SyntheticElevationProvider, TerrainAnalyzer


@pytest.fixture
def incident():
    return Incident(lat=34.2, lon=-118.5, fuel=FuelType.BRUSH, acres=900.0, name="Test Incident")


@pytest.fixture
def weather():
    return Weather(wind_speed_mps=12.0, wind_bearing_deg=45.0, humidity_pct=15.0)


@pytest.fixture
def engine(project_dir):
    return build_engine(load_config(project_dir / "firesight.yaml"))


class TestBuildEngine:
    """Tests for assembling an engine from configuration."""

    def test_lazy_index_eager_iaps(self, engine):
        assert not engine.index.is_built
        assert len(engine.matcher) == 2

        summary = engine.summary()
        assert engine.index.is_built
        assert summary["index"]["fires"] == 6
        assert summary["iaps"]["total"] == 2

    def test_without_iaps(self, project_dir):
        config = load_config(project_dir / "firesight.yaml")
        config.data.iap_path = None
        engine = build_engine(config)
        assert len(engine.matcher) == 0


class TestQueries:
    """Tests for engine queries."""

    def test_predict(self, engine, incident):
        prediction = engine.predict(incident, wind_bearing_deg=45)
        assert prediction.analog_count == 6
        assert prediction.confidence == "medium"
        assert prediction.likely_direction in ("N", "S")

    def test_find_iaps(self, engine, incident, weather):
        insights = engine.find_iaps(incident, weather, "evacuation")
        assert [i.iap_id for i in insights] == ["iap-1"]
        assert insights[0].relevance_score == 76

    def test_brief(self, engine, incident, weather):
        """Test the briefing covers every category and serializes."""
        briefing = engine.brief(incident, weather)

        assert set(briefing.insights) == set(Category)
        assert briefing.terrain.synthetic
        assert briefing.prediction.analog_count == 6

        data = briefing.to_dict()
        assert set(data) == {"incident", "weather", "spread", "terrain", "tactical_assessment", "iap_insights"}
        assert data["incident"]["name"] == "Test Incident"
        assert set(data["iap_insights"]) == {"tactics", "resources", "evacuation"}
        json.dumps(to_jsonable(data))

    def test_brief_propagates_elevation_errors(self, incident, weather):
        def broken(lat, lon):
            raise OSError("no tiles")

        engine = AnalyticsEngine(SpreadIndex([make_raw()]), TerrainAnalyzer(broken))
        with pytest.raises(ElevationUnavailableError):
            engine.brief(incident, weather)

    def test_library_defaults_without_config(self, incident, weather):
        index = SpreadIndex([make_raw(center=(34.2, -118.5))])
        engine = AnalyticsEngine(index, TerrainAnalyzer(SyntheticElevationProvider()))

        assert engine.predict(incident, 0).confidence == "low"
        assert engine.find_iaps(incident, weather, Category.TACTICS) == []
