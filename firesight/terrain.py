"""
Terrain analysis for Firesight.

This module derives slope, aspect and ridgeline metrics at a point from a
five-point elevation sample (centre plus the four cardinal neighbours at a
fixed offset), categorizes terrain severity and translates the metrics into
tactical notes, advantages and hazards.

Elevation comes from a pluggable provider. ``SyntheticElevationProvider``
is a deterministic placeholder whose samples are flagged ``synthetic``;
``RasterElevationProvider`` samples a DEM raster.
"""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Literal, Protocol

import numpy as np
from pyproj import CRS, Transformer

from firesight.errors import ElevationUnavailableError
from firesight.geometry import (
    EARTH_RADIUS_KM,
    degrees_to_cardinal,
    haversine_km,
    initial_bearing,
)

logger = logging.getLogger(__name__)

# Neighbour offset, roughly 100 m
SAMPLE_OFFSET_DEG = 0.0009

# Centre must exceed every neighbour by this much to count as a ridge (m)
RIDGE_THRESHOLD_M = 20.0

# Gradient magnitude (m/m) below which aspect is meaningless
FLAT_GRADIENT_THRESHOLD = 0.01

# Upper bounds (percent slope) of the flat, gentle, moderate and steep bands
SLOPE_BANDS = ((5.0, "flat"), (15.0, "gentle"), (30.0, "moderate"), (50.0, "steep"))

DRY_ASPECTS = ("S", "SW", "SE")

M_PER_DEG_LAT = math.pi * EARTH_RADIUS_KM * 1000.0 / 180.0

TerrainType = Literal["flat", "gentle", "moderate", "steep", "extreme"]


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class Ridgeline:
    """
    A ridgeline near the sample point.

    ``distance_km`` is 0 and ``direction`` is None when the sample point
    itself is on the ridge.
    """

    distance_km: float
    direction: str | None = None

    @property
    def at_point(self) -> bool:
        return self.distance_km == 0.0


@dataclass(frozen=True)
class ElevationSample:
    """Elevations (m) at a point and its four cardinal neighbours."""

    center: float
    north: float
    south: float
    east: float
    west: float
    spacing_deg: float = SAMPLE_OFFSET_DEG
    synthetic: bool = False
    nearest_ridge: Ridgeline | None = None

    def values(self) -> tuple[float, float, float, float, float]:
        return (self.center, self.north, self.south, self.east, self.west)


class ElevationProvider(Protocol):
    """Anything callable as ``provider(lat, lon) -> ElevationSample``."""

    def __call__(self, lat: float, lon: float) -> ElevationSample: ...


@dataclass(frozen=True)
class TerrainMetrics:
    """Terrain snapshot at one location."""

    lat: float
    lon: float
    elevation: float  # m above sea level
    slope: float  # percent
    slope_angle: float  # degrees
    aspect: str  # 8-point compass label, or "flat"
    aspect_degrees: float | None  # None when aspect is "flat"
    terrain_type: TerrainType
    ridgeline: Ridgeline | None = None
    synthetic: bool = False
    notes: tuple[str, ...] = ()

    @property
    def nearby_ridgeline(self) -> bool:
        return self.ridgeline is not None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["nearby_ridgeline"] = self.nearby_ridgeline
        data["notes"] = list(self.notes)
        return data


@dataclass(frozen=True)
class TacticalAssessment:
    """Terrain advantages and hazards for suppression."""

    advantages: list[str]
    hazards: list[str]

    def to_dict(self) -> dict[str, list[str]]:
        return {"advantages": list(self.advantages), "hazards": list(self.hazards)}


# =============================================================================
# Slope, Aspect and Ridges
# =============================================================================


def sample_spacing_m(lat: float, spacing_deg: float) -> tuple[float, float]:
    """Neighbour spacing in metres as (dx, dy) at latitude ``lat``."""
    dy = spacing_deg * M_PER_DEG_LAT
    dx = dy * math.cos(math.radians(lat))
    return dx, dy


def compute_gradient(sample: ElevationSample, dx: float, dy: float) -> tuple[float, float]:
    """
    Central-difference gradient of a five-point sample.

    Returns
    -------
    dz_dx : float
        Eastward elevation change per metre.
    dz_dy : float
        Elevation change per metre in raster row order (southward), the
        convention of row-major DEM grids.
    """
    dz_dx = (sample.east - sample.west) / (2.0 * dx)
    dz_dy = (sample.south - sample.north) / (2.0 * dy)
    return dz_dx, dz_dy


def compute_aspect(
    dz_dx: float,
    dz_dy: float,
    flat_threshold: float = FLAT_GRADIENT_THRESHOLD,
) -> tuple[str, float | None]:
    """
    Downslope aspect from a gradient.

    ``aspect = atan2(dz/dy, -dz/dx)`` converted to compass degrees
    (0 = north, clockwise).

    Returns
    -------
    cardinal : str
        8-point label, or ``"flat"`` if the gradient magnitude is below
        ``flat_threshold``.
    degrees : float or None
        Compass aspect, None when flat.
    """
    if math.hypot(dz_dx, dz_dy) < flat_threshold:
        return "flat", None

    aspect_math = math.degrees(math.atan2(dz_dy, -dz_dx))
    # Float modulo of a tiny negative value rounds up to 360.0
    aspect_deg = (90.0 - aspect_math) % 360.0 % 360.0
    return degrees_to_cardinal(aspect_deg), aspect_deg


def categorize_slope(slope_pct: float) -> TerrainType:
    """
    Map percent slope to a terrain band.

    flat < 5 <= gentle < 15 <= moderate < 30 <= steep < 50 <= extreme.
    """
    if slope_pct < 0 or math.isnan(slope_pct):
        raise ValueError(f"Slope must be a nonnegative number, got {slope_pct}")
    for upper, name in SLOPE_BANDS:
        if slope_pct < upper:
            return name
    return "extreme"


def detect_ridgeline(sample: ElevationSample, threshold: float = RIDGE_THRESHOLD_M) -> bool:
    """True if the centre exceeds all four neighbours by more than ``threshold``."""
    return all(
        sample.center > neighbour + threshold
        for neighbour in (sample.north, sample.south, sample.east, sample.west)
    )


def calculate_slope_spread_multiplier(slope_pct: float) -> float:
    """
    Uphill spread-rate multiplier ``1 + 2 (slope/100)^2``.

    1.0 on flat ground, 1.08 at 20%, 1.5 at 50%.
    """
    return 1.0 + (slope_pct / 100.0) ** 2 * 2.0


# =============================================================================
# Tactical Interpretation
# =============================================================================


def generate_terrain_notes(metrics: TerrainMetrics) -> tuple[str, ...]:
    """Short tactical notes from slope, aspect and ridgeline proximity."""
    notes = []

    if metrics.slope > 30:
        notes.append("Steep terrain - fire can spread 3-5x faster uphill")
    elif metrics.slope > 15:
        notes.append("Moderate slopes increase uphill fire spread rate by 2-3x")

    if metrics.aspect in DRY_ASPECTS:
        notes.append(f"{metrics.aspect}-facing slope receives more sun exposure - expect drier fuels")

    ridge = metrics.ridgeline
    if ridge is not None:
        if ridge.at_point:
            notes.append("Incident location sits on a ridgeline - potential natural control line")
        else:
            notes.append(
                f"Ridgeline {ridge.distance_km:.1f}km {ridge.direction} - potential natural control line"
            )

    return tuple(notes)


def assess_terrain_tactical_value(metrics: TerrainMetrics) -> TacticalAssessment:
    """Advantages and hazards the terrain presents for suppression."""
    advantages = []
    hazards = []

    ridge = metrics.ridgeline
    if ridge is not None and ridge.distance_km < 1.5:
        if ridge.at_point:
            advantages.append("Ridgeline at incident location - natural anchor for control line")
        else:
            advantages.append(
                f"Ridgeline {ridge.distance_km:.1f}km away - natural anchor for control line"
            )

    if metrics.slope > 30:
        hazards.append("Steep uphill slopes - rapid fire spread if fire runs uphill")
        hazards.append("Difficult dozer access on steep terrain")

    if metrics.slope > 40:
        hazards.append("Extreme slopes - hand crew safety concern, maintain escape routes")

    if metrics.aspect in DRY_ASPECTS:
        hazards.append(f"{metrics.aspect}-facing slope - drier fuels increase fire intensity")

    if metrics.terrain_type in ("flat", "gentle"):
        advantages.append("Flat to gentle terrain - good dozer access and crew mobility")

    return TacticalAssessment(advantages=advantages, hazards=hazards)


TERRAIN_KEYWORDS = ("terrain", "topography", "elevation", "canyon", "valley")


def calculate_terrain_similarity(metrics: TerrainMetrics, text: str) -> int:
    """
    Score (0-100) how well free text describes the current terrain.

    Keyword co-occurrence over four signals: slope descriptors (up to 30),
    ridge mentions (25), general terrain vocabulary (15) and an
    ``<aspect>-facing`` phrase (10).
    """
    score = 0
    lower = text.lower()

    if metrics.slope > 25 and ("steep" in lower or "rugged" in lower):
        score += 30
    elif metrics.slope > 15 and "slope" in lower:
        score += 20
    elif metrics.slope < 10 and ("flat" in lower or "level" in lower):
        score += 25

    if metrics.nearby_ridgeline and "ridge" in lower:
        score += 25

    if any(keyword in lower for keyword in TERRAIN_KEYWORDS):
        score += 15

    aspect = metrics.aspect.lower()
    if f"{aspect}-facing" in lower or f"{aspect} facing" in lower:
        score += 10

    return min(score, 100)


# =============================================================================
# Analyzer
# =============================================================================


class TerrainAnalyzer:
    """
    Computes ``TerrainMetrics`` from an elevation provider.

    Parameters
    ----------
    provider : ElevationProvider
        Source of five-point elevation samples.
    ridge_threshold_m : float
        Margin for on-point ridge detection.
    flat_gradient_threshold : float
        Gradient magnitude below which aspect is reported as ``"flat"``.
    """

    def __init__(
        self,
        provider: ElevationProvider,
        ridge_threshold_m: float = RIDGE_THRESHOLD_M,
        flat_gradient_threshold: float = FLAT_GRADIENT_THRESHOLD,
    ):
        self.provider = provider
        self.ridge_threshold_m = ridge_threshold_m
        self.flat_gradient_threshold = flat_gradient_threshold

    def sample(self, lat: float, lon: float) -> ElevationSample:
        """Fetch and validate an elevation sample."""
        try:
            sample = self.provider(lat, lon)
        except ElevationUnavailableError:
            raise
        except Exception as e:
            raise ElevationUnavailableError(
                f"Elevation provider failed at ({lat:.5f}, {lon:.5f}): {e}"
            ) from e

        if not all(math.isfinite(v) for v in sample.values()):
            raise ElevationUnavailableError(f"Elevation sample has missing values at ({lat:.5f}, {lon:.5f})")
        return sample

    def analyze(self, lat: float, lon: float) -> TerrainMetrics:
        """
        Terrain metrics at a location.

        Raises
        ------
        ElevationUnavailableError
            If the provider cannot sample the location.
        """
        sample = self.sample(lat, lon)

        dx, dy = sample_spacing_m(lat, sample.spacing_deg)
        dz_dx, dz_dy = compute_gradient(sample, dx, dy)
        gradient = math.hypot(dz_dx, dz_dy)

        slope_pct = gradient * 100.0
        aspect, aspect_deg = compute_aspect(dz_dx, dz_dy, self.flat_gradient_threshold)

        if detect_ridgeline(sample, self.ridge_threshold_m):
            ridgeline = Ridgeline(distance_km=0.0)
        else:
            ridgeline = sample.nearest_ridge

        metrics = TerrainMetrics(
            lat=lat,
            lon=lon,
            elevation=sample.center,
            slope=slope_pct,
            slope_angle=math.degrees(math.atan(gradient)),
            aspect=aspect,
            aspect_degrees=aspect_deg,
            terrain_type=categorize_slope(slope_pct),
            ridgeline=ridgeline,
            synthetic=sample.synthetic,
        )
        metrics = replace(metrics, notes=generate_terrain_notes(metrics))

        logger.debug(
            f"Terrain at ({lat:.4f}, {lon:.4f}): elev={metrics.elevation:.0f}m, "
            f"slope={slope_pct:.1f}%, aspect={aspect}, type={metrics.terrain_type}"
            + (" [synthetic]" if sample.synthetic else "")
        )
        return metrics


# =============================================================================
# Elevation Providers
# =============================================================================


def _unit_hash(lat: float, lon: float, salt: float) -> float:
    """Deterministic pseudo-random value in [0, 1) for a location."""
    value = math.sin(lat * 12.9898 + lon * 78.233 + salt * 37.719) * 43758.5453
    return value - math.floor(value)


class SyntheticElevationProvider:
    """
    Deterministic placeholder elevation source.

    Produces a planar surface whose slope (10-30%) and aspect vary with
    location, and an occasional nearby ridgeline. Every sample is flagged
    ``synthetic=True`` so results are never mistaken for surveyed terrain.
    """

    def __init__(self, spacing_deg: float = SAMPLE_OFFSET_DEG):
        self.spacing_deg = spacing_deg

    def __call__(self, lat: float, lon: float) -> ElevationSample:
        base = 200.0 + abs(lat - 37.0) * 100.0
        slope_pct = 10.0 + _unit_hash(lat, lon, 1.0) * 20.0
        aspect_deg = (lon * 10.0) % 360.0

        # Elevation rises away from the downslope (aspect) direction
        uphill = math.radians(aspect_deg + 180.0)
        gradient = slope_pct / 100.0
        rise_east = gradient * math.sin(uphill)
        rise_north = gradient * math.cos(uphill)

        dx, dy = sample_spacing_m(lat, self.spacing_deg)

        nearest_ridge = None
        if slope_pct > 20.0 and _unit_hash(lat, lon, 2.0) > 0.6:
            nearest_ridge = Ridgeline(
                distance_km=0.5 + _unit_hash(lat, lon, 3.0) * 1.5,
                direction=degrees_to_cardinal(_unit_hash(lat, lon, 4.0) * 360.0),
            )

        return ElevationSample(
            center=base,
            north=base + rise_north * dy,
            south=base - rise_north * dy,
            east=base + rise_east * dx,
            west=base - rise_east * dx,
            spacing_deg=self.spacing_deg,
            synthetic=True,
            nearest_ridge=nearest_ridge,
        )


class RasterElevationProvider:
    """
    Elevation samples from a DEM raster.

    Parameters
    ----------
    dem : str, Path or RasterData
        DEM raster (any CRS readable by rasterio).
    spacing_deg : float
        Neighbour offset in degrees.
    ridge_threshold_m : float
        Margin used when searching the raster for nearby ridge cells.
    ridge_search_km : float
        Radius of the nearest-ridge search; 0 disables it.
    """

    def __init__(
        self,
        dem,
        spacing_deg: float = SAMPLE_OFFSET_DEG,
        ridge_threshold_m: float = RIDGE_THRESHOLD_M,
        ridge_search_km: float = 2.0,
    ):
        from firesight.io import RasterData, read_raster

        self.raster = dem if isinstance(dem, RasterData) else read_raster(Path(dem))
        self.spacing_deg = spacing_deg
        self.ridge_threshold_m = ridge_threshold_m
        self.ridge_search_km = ridge_search_km

        crs = CRS.from_user_input(self.raster.crs) if self.raster.crs is not None else CRS.from_epsg(4326)
        self._to_raster = Transformer.from_crs("EPSG:4326", crs, always_xy=True)
        self._from_raster = Transformer.from_crs(crs, "EPSG:4326", always_xy=True)

    def _cell(self, lat: float, lon: float) -> tuple[int, int]:
        x, y = self._to_raster.transform(lon, lat)
        row, col = self.raster.rowcol(x, y)
        height, width = self.raster.shape
        if not (0 <= row < height and 0 <= col < width):
            raise ElevationUnavailableError(f"Location ({lat:.5f}, {lon:.5f}) is outside the DEM extent")
        return row, col

    def elevation_at(self, lat: float, lon: float) -> float:
        row, col = self._cell(lat, lon)
        value = float(self.raster.data[row, col])
        if not math.isfinite(value):
            raise ElevationUnavailableError(f"DEM has no data at ({lat:.5f}, {lon:.5f})")
        return value

    def _spacing_cells(self, lat: float, lon: float) -> int:
        center = self._cell(lat, lon)
        north = self._cell(lat + self.spacing_deg, lon)
        east = self._cell(lat, lon + self.spacing_deg)
        return max(1, abs(center[0] - north[0]), abs(center[1] - east[1]))

    def find_nearest_ridge(self, lat: float, lon: float) -> Ridgeline | None:
        """
        Nearest DEM cell within ``ridge_search_km`` that stands above its four
        neighbours (at the sampling offset) by more than the ridge threshold.
        """
        if self.ridge_search_km <= 0:
            return None

        row, col = self._cell(lat, lon)
        k = self._spacing_cells(lat, lon)
        res_x, res_y = self.raster.resolution
        x, y = self._to_raster.transform(lon, lat)
        x_e, _ = self._to_raster.transform(lon + self.spacing_deg, lat)
        # Metres per raster cell, measured along the sampling offset
        m_per_cell = sample_spacing_m(lat, self.spacing_deg)[0] * res_x / max(abs(x_e - x), 1e-12)
        radius_cells = int(math.ceil(self.ridge_search_km * 1000.0 / max(m_per_cell, 1e-6)))

        height, width = self.raster.shape
        r0, r1 = max(row - radius_cells - k, 0), min(row + radius_cells + k + 1, height)
        c0, c1 = max(col - radius_cells - k, 0), min(col + radius_cells + k + 1, width)
        window = self.raster.data[r0:r1, c0:c1]
        if window.shape[0] <= 2 * k or window.shape[1] <= 2 * k:
            return None

        center = window[k:-k, k:-k]
        neighbours = np.stack([
            window[:-2 * k, k:-k],
            window[2 * k:, k:-k],
            window[k:-k, :-2 * k],
            window[k:-k, 2 * k:],
        ])
        with np.errstate(invalid="ignore"):
            ridge = center > np.max(neighbours, axis=0) + self.ridge_threshold_m
        rows, cols = np.nonzero(ridge)
        if len(rows) == 0:
            return None

        rows = rows + r0 + k
        cols = cols + c0 + k
        xs = self.raster.transform.c + (cols + 0.5) * self.raster.transform.a
        ys = self.raster.transform.f + (rows + 0.5) * self.raster.transform.e
        ridge_lons, ridge_lats = self._from_raster.transform(xs, ys)

        distances = haversine_km(lat, lon, np.asarray(ridge_lats), np.asarray(ridge_lons))
        nearest = int(np.argmin(distances))
        distance_km = float(distances[nearest])
        if distance_km > self.ridge_search_km:
            return None
        if distance_km == 0.0:
            return Ridgeline(distance_km=0.0)

        bearing = float(initial_bearing(lat, lon, ridge_lats[nearest], ridge_lons[nearest]))
        return Ridgeline(distance_km=distance_km, direction=degrees_to_cardinal(bearing))

    def __call__(self, lat: float, lon: float) -> ElevationSample:
        d = self.spacing_deg
        return ElevationSample(
            center=self.elevation_at(lat, lon),
            north=self.elevation_at(lat + d, lon),
            south=self.elevation_at(lat - d, lon),
            east=self.elevation_at(lat, lon + d),
            west=self.elevation_at(lat, lon - d),
            spacing_deg=d,
            synthetic=False,
            nearest_ridge=self.find_nearest_ridge(lat, lon),
        )
