"""
Configuration loading and validation for Firesight.

This module provides Pydantic models for validating the firesight.yaml
configuration file, plus YAML loading, path checks and logging setup.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================


class ProjectConfig(BaseModel):
    """Name and description of the deployment."""

    name: str = Field(..., description="Project name")
    description: str = Field("", description="Project description")


class DataConfig(BaseModel):
    """Static dataset locations."""

    perimeters_path: Path = Field(..., description="Historical perimeter collection (GeoJSON, shapefile, ...)")
    iap_path: Path | None = Field(None, description="Pre-extracted IAP dataset (JSON)")
    dem_path: Path | None = Field(None, description="DEM raster for terrain analysis")


class PerimeterConfig(BaseModel):
    """Perimeter processing configuration."""

    max_duration_hours: float = Field(8760.0, gt=0, description="Longest accepted fire duration")


class IndexConfig(BaseModel):
    """Spread index configuration."""

    grid_size_deg: float = Field(0.5, gt=0, le=10)
    default_radius_km: float = Field(50.0, gt=0)
    default_limit: int = Field(10, ge=1)


class PredictionConfig(BaseModel):
    """Spread prediction configuration."""

    similar_radius_km: float = Field(100.0, gt=0)
    max_analogs: int = Field(15, ge=1)
    high_confidence_min: int = Field(10, ge=1)
    medium_confidence_min: int = Field(5, ge=1)

    @model_validator(mode="after")
    def check_confidence_order(self) -> "PredictionConfig":
        """High-confidence threshold must not be below the medium one."""
        if self.high_confidence_min < self.medium_confidence_min:
            raise ValueError("high_confidence_min must be >= medium_confidence_min")
        return self


class TerrainConfig(BaseModel):
    """Terrain analysis configuration."""

    elevation_source: Literal["synthetic", "raster"] = Field("synthetic")
    sample_offset_deg: float = Field(0.0009, gt=0, description="Neighbour offset (~100 m)")
    ridge_threshold_m: float = Field(20.0, ge=0)
    flat_gradient_threshold: float = Field(0.01, ge=0)


class MatcherConfig(BaseModel):
    """IAP matcher configuration."""

    min_score: int = Field(60, ge=0, le=100)
    max_insights: int = Field(3, ge=1)


class OutputConfig(BaseModel):
    """Logging destination and level."""

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field("INFO")
    log_file: Path | None = Field(None)


class FiresightConfig(BaseModel):
    """Root configuration model for Firesight."""

    project: ProjectConfig
    data: DataConfig
    perimeter: PerimeterConfig = Field(default_factory=PerimeterConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    prediction: PredictionConfig = Field(default_factory=PredictionConfig)
    terrain: TerrainConfig = Field(default_factory=TerrainConfig)
    matcher: MatcherConfig = Field(default_factory=MatcherConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @model_validator(mode="after")
    def check_elevation_source(self) -> "FiresightConfig":
        """Raster elevation needs a DEM."""
        if self.terrain.elevation_source == "raster" and self.data.dem_path is None:
            raise ValueError("data.dem_path required when terrain.elevation_source is 'raster'")
        return self


# =============================================================================
# Loading Functions
# =============================================================================


def load_config(config_path: str | Path) -> FiresightConfig:
    """
    Load and validate configuration from a YAML file.

    Parameters
    ----------
    config_path : str or Path
        Path to the firesight.yaml configuration file.

    Returns
    -------
    FiresightConfig
        Validated configuration object.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    ValueError
        If the configuration is invalid.
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    logger.info(f"Loading configuration from {config_path}")

    with open(config_path, "r") as f:
        raw_config = yaml.safe_load(f)

    if raw_config is None:
        raise ValueError(f"Empty configuration file: {config_path}")

    # Relative dataset paths are relative to the config file
    raw_config = _resolve_paths(raw_config, config_path.parent)

    config = FiresightConfig.model_validate(raw_config)

    logger.info(f"Configuration loaded: {config.project.name}")

    return config


def _resolve_paths(config: dict[str, Any], base_dir: Path) -> dict[str, Any]:
    """Recursively resolve ``./`` and ``../`` strings against ``base_dir``."""

    def resolve(obj: Any) -> Any:
        if isinstance(obj, dict):
            return {k: resolve(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [resolve(item) for item in obj]
        elif isinstance(obj, str):
            if obj.startswith("./") or obj.startswith("../"):
                return str(base_dir / obj)
            return obj
        return obj

    return resolve(config)


def validate_paths(config: FiresightConfig) -> list[str]:
    """
    Validate that input files exist.

    Returns
    -------
    list[str]
        Warnings for missing optional files.

    Raises
    ------
    FileNotFoundError
        If required files are missing.
    """
    errors = []
    warnings = []

    if not Path(config.data.perimeters_path).exists():
        errors.append(f"Required file not found: data.perimeters_path = {config.data.perimeters_path}")

    if config.terrain.elevation_source == "raster" and not Path(config.data.dem_path).exists():
        errors.append(f"DEM not found: data.dem_path = {config.data.dem_path}")

    optional = [
        ("data.iap_path", config.data.iap_path),
        ("data.dem_path", config.data.dem_path),
    ]
    for name, path in optional:
        if path is not None and not Path(path).exists():
            warnings.append(f"Optional file not found: {name} = {path}")

    if config.data.iap_path is None:
        warnings.append("No IAP dataset configured; IAP insights will be empty")

    if errors:
        raise FileNotFoundError("\n".join(errors))

    return warnings


def setup_logging(config: FiresightConfig) -> None:
    """Configure the root logger from ``output.log_level`` and ``output.log_file``."""
    level = getattr(logging, config.output.log_level)

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if config.output.log_file:
        log_path = Path(config.output.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )


CONFIG_TEMPLATE = """\
# Firesight configuration
project:
  name: {name}
  description: Historical fire-pattern analytics

data:
  perimeters_path: ./data/fire_perimeters.geojson
  iap_path: ./data/iap_data.json
  # dem_path: ./data/dem.tif

perimeter:
  max_duration_hours: 8760

index:
  grid_size_deg: 0.5
  default_radius_km: 50
  default_limit: 10

prediction:
  similar_radius_km: 100
  max_analogs: 15
  high_confidence_min: 10
  medium_confidence_min: 5

terrain:
  elevation_source: synthetic   # or "raster" (requires data.dem_path)
  sample_offset_deg: 0.0009
  ridge_threshold_m: 20
  flat_gradient_threshold: 0.01

matcher:
  min_score: 60
  max_insights: 3

output:
  log_level: INFO
  # log_file: ./logs/firesight.log
"""


def export_config_template(path: str | Path, name: str = "firesight") -> Path:
    """Write a commented configuration template."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(CONFIG_TEMPLATE.format(name=name))
    return path
