"""
Tests for configuration loading.
"""

import pytest
from pydantic import ValidationError

from firesight.config import (
    FiresightConfig,
    PredictionConfig,
    export_config_template,
    load_config,
    validate_paths,
)


def minimal(**overrides):
    raw = {"project": {"name": "test"}, "data": {"perimeters_path": "perimeters.geojson"}}
    raw.update(overrides)
    return raw


class TestLoadConfig:
    """Tests for YAML loading and path resolution."""

    def test_relative_paths_resolved(self, project_dir):
        config = load_config(project_dir / "firesight.yaml")

        assert config.project.name == "test"
        assert config.data.perimeters_path == project_dir / "perimeters.geojson"
        assert config.data.iap_path == project_dir / "iaps.json"
        assert config.output.log_level == "WARNING"

    def test_defaults(self, project_dir):
        config = load_config(project_dir / "firesight.yaml")

        assert config.index.grid_size_deg == 0.5
        assert config.prediction.similar_radius_km == 100
        assert config.prediction.max_analogs == 15
        assert config.terrain.elevation_source == "synthetic"
        assert config.matcher.min_score == 60
        assert config.matcher.max_insights == 3
        assert config.perimeter.max_duration_hours == 8760

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        with pytest.raises(ValueError):
            load_config(path)

    def test_template_loads(self, tmp_path):
        path = export_config_template(tmp_path / "firesight.yaml", name="demo")
        config = load_config(path)

        assert config.project.name == "demo"
        assert config.data.perimeters_path == tmp_path / "data" / "fire_perimeters.geojson"
        assert config.data.dem_path is None


class TestValidation:
    """Tests for model constraints."""

    def test_raster_needs_dem(self):
        with pytest.raises(ValidationError):
            FiresightConfig.model_validate(minimal(terrain={"elevation_source": "raster"}))

    def test_unknown_elevation_source(self):
        with pytest.raises(ValidationError):
            FiresightConfig.model_validate(minimal(terrain={"elevation_source": "lidar"}))

    def test_confidence_order(self):
        with pytest.raises(ValidationError):
            PredictionConfig(high_confidence_min=3, medium_confidence_min=5)

    def test_score_bounds(self):
        with pytest.raises(ValidationError):
            FiresightConfig.model_validate(minimal(matcher={"min_score": 120}))

    def test_perimeters_required(self):
        with pytest.raises(ValidationError):
            FiresightConfig.model_validate({"project": {"name": "test"}, "data": {}})


class TestValidatePaths:
    def test_existing_paths(self, project_dir):
        config = load_config(project_dir / "firesight.yaml")
        assert validate_paths(config) == []

    def test_missing_perimeters(self, tmp_path):
        config = FiresightConfig.model_validate(minimal(data={"perimeters_path": str(tmp_path / "none.geojson")}))
        with pytest.raises(FileNotFoundError):
            validate_paths(config)

    def test_missing_optional_files_warn(self, project_dir):
        config = FiresightConfig.model_validate(minimal(data={
            "perimeters_path": str(project_dir / "perimeters.geojson"),
            "dem_path": str(project_dir / "dem.tif"),
        }))
        warnings = validate_paths(config)

        assert any("data.dem_path" in w for w in warnings)
        assert any("IAP insights will be empty" in w for w in warnings)

    def test_missing_raster_dem(self, project_dir):
        config = FiresightConfig.model_validate(minimal(
            data={
                "perimeters_path": str(project_dir / "perimeters.geojson"),
                "dem_path": str(project_dir / "dem.tif"),
            },
            terrain={"elevation_source": "raster"},
        ))
        with pytest.raises(FileNotFoundError):
            validate_paths(config)
