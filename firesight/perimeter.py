"""
Historical fire perimeter processing for Firesight.

This module converts raw historical fire records (polygon or multipolygon
geometry plus CAL FIRE style attributes) into normalized perimeters with
directional extents, shape metrics and growth rates.

Records with missing attributes or an implausible duration are *skipped*;
records whose geometry cannot be processed are *failed*. Neither aborts a
batch.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Literal

import numpy as np
import pandas as pd
from pyproj import Geod
from shapely.geometry import MultiPolygon, Polygon, mapping, shape

from firesight.geometry import (
    CARDINAL_8,
    acres_to_km2,
    angular_difference,
    haversine_km,
    initial_bearing,
)

logger = logging.getLogger(__name__)

# Data-quality guard: anything longer than a year is a data error
MAX_DURATION_HOURS = 8760.0

# Half-width of each directional sector (degrees)
SECTOR_HALF_WIDTH = 22.5

_GEOD = Geod(ellps="WGS84")


# =============================================================================
# Data Classes
# =============================================================================


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a record timestamp into a timezone-aware UTC datetime.

    Numbers are interpreted as Unix epoch milliseconds (the CAL FIRE
    convention); strings and datetime-like values are parsed by pandas.
    Missing values (None, NaN, NaT) return None.
    """
    if value is None:
        return None
    if not isinstance(value, str) and pd.isna(value):
        return None
    if isinstance(value, (int, float, np.integer, np.floating)) and not isinstance(value, bool):
        ts = pd.to_datetime(value, unit="ms", utc=True)
    else:
        ts = pd.to_datetime(value, utc=True)
    return ts.to_pydatetime()


def _clean_str(value: Any) -> str | None:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    text = str(value).strip()
    return text or None


def _clean_number(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(number) else number


@dataclass(frozen=True)
class RawFirePolygon:
    """An immutable historical fire record as delivered by the source dataset."""

    object_id: int | None
    name: str | None
    year: int | None
    acres: float | None
    alarm_date: datetime | None
    containment_date: datetime | None
    geometry: Polygon | MultiPolygon
    irwin_id: str | None = None
    incident_number: str | None = None

    def __post_init__(self) -> None:
        # Naive timestamps are taken as UTC so durations never mix naive and aware values
        for name in ("alarm_date", "containment_date"):
            value = getattr(self, name)
            if isinstance(value, datetime) and value.tzinfo is None:
                object.__setattr__(self, name, value.replace(tzinfo=timezone.utc))

    @property
    def fire_id(self) -> str:
        """Stable identifier: IRWIN id if present, else derived from year/object id."""
        if self.irwin_id:
            return self.irwin_id
        return f"cal_fire_{self.year}_{self.object_id}"

    @classmethod
    def from_properties(
        cls,
        properties: dict[str, Any],
        geometry: Polygon | MultiPolygon | dict[str, Any],
        feature_id: Any = None,
    ) -> "RawFirePolygon":
        """
        Build a record from CAL FIRE style attributes.

        Parameters
        ----------
        properties : dict
            Feature attributes (``FIRE_NAME``, ``YEAR_``, ``GIS_ACRES``,
            ``ALARM_DATE``, ``CONT_DATE``, ``OBJECTID``, ``IRWINID``,
            ``INC_NUM``).
        geometry : Polygon, MultiPolygon or GeoJSON mapping
            Fire geometry in longitude/latitude.
        feature_id : optional
            Feature id used when ``OBJECTID`` is absent.
        """
        if isinstance(geometry, dict):
            geometry = shape(geometry)
        if not isinstance(geometry, (Polygon, MultiPolygon)):
            raise ValueError(f"Unsupported geometry type: {geometry.geom_type}")

        object_id = _clean_number(properties.get("OBJECTID"))
        if object_id is None:
            object_id = _clean_number(feature_id)
        year = _clean_number(properties.get("YEAR_"))

        return cls(
            object_id=int(object_id) if object_id is not None else None,
            name=_clean_str(properties.get("FIRE_NAME")),
            year=int(year) if year is not None else None,
            acres=_clean_number(properties.get("GIS_ACRES")),
            alarm_date=parse_timestamp(properties.get("ALARM_DATE")),
            containment_date=parse_timestamp(properties.get("CONT_DATE")),
            geometry=geometry,
            irwin_id=_clean_str(properties.get("IRWINID")),
            incident_number=_clean_str(properties.get("INC_NUM")),
        )

    @property
    def duration_hours(self) -> float | None:
        """Hours from alarm to containment, or None if either is missing."""
        if self.alarm_date is None or self.containment_date is None:
            return None
        return (self.containment_date - self.alarm_date).total_seconds() / 3600.0


@dataclass(frozen=True)
class ProcessedPerimeter:
    """Normalized perimeter with derived shape and growth metrics."""

    fire_id: str
    fire_name: str
    year: int | None
    geometry: Polygon
    centroid: tuple[float, float]  # (lon, lat)
    alarm_date: str
    containment_date: str
    duration_hours: float
    total_acres: float
    area_km2: float
    perimeter_km: float
    aspect_ratio: float
    compactness: float
    extents: dict[str, float]  # keyed by N, NE, E, SE, S, SW, W, NW (km)
    dominant_bearing: float
    acres_per_hour: float
    spread_rate_kmh: float

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""
        geom = mapping(self.geometry)
        return {
            "fire_id": self.fire_id,
            "fire_name": self.fire_name,
            "year": self.year,
            "geometry": {
                "type": geom["type"],
                "coordinates": [[list(c) for c in ring] for ring in geom["coordinates"]],
                "centroid": list(self.centroid),
            },
            "temporal": {
                "alarm_date": self.alarm_date,
                "containment_date": self.containment_date,
                "duration_hours": self.duration_hours,
            },
            "metrics": {
                "total_acres": self.total_acres,
                "area_km2": self.area_km2,
                "perimeter_km": self.perimeter_km,
                "aspect_ratio": self.aspect_ratio,
                "compactness": self.compactness,
            },
            "directional_extent": {
                **self.extents,
                "dominant_direction": self.dominant_bearing,
            },
            "growth_rate": {
                "acres_per_hour": self.acres_per_hour,
                "estimated_spread_rate_kmh": self.spread_rate_kmh,
            },
        }


@dataclass(frozen=True)
class PerimeterOutcome:
    """Result of processing one record."""

    fire_id: str
    status: Literal["ok", "skipped", "failed"]
    perimeter: ProcessedPerimeter | None = None
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "ok"


@dataclass
class ProcessingStats:
    """Batch counters for observability."""

    total: int = 0
    successful: int = 0
    skipped: int = 0
    failed: int = 0
    skip_reasons: dict[str, int] = field(default_factory=dict)

    def record(self, outcome: PerimeterOutcome) -> None:
        self.total += 1
        if outcome.status == "ok":
            self.successful += 1
        elif outcome.status == "skipped":
            self.skipped += 1
            self.skip_reasons[outcome.reason] = self.skip_reasons.get(outcome.reason, 0) + 1
        else:
            self.failed += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "skipped": self.skipped,
            "failed": self.failed,
        }


# =============================================================================
# Geometry Normalization
# =============================================================================


def geodesic_area_km2(polygon: Polygon) -> float:
    """Absolute geodesic area of a lon/lat polygon in km²."""
    area_m2, _ = _GEOD.geometry_area_perimeter(polygon)
    return abs(area_m2) / 1e6


def normalize_geometry(geometry: Polygon | MultiPolygon) -> Polygon:
    """
    Reduce a geometry to a single polygon.

    Multipolygons are represented by their component with the largest
    geodesic area; the other components are dropped.
    """
    if isinstance(geometry, Polygon):
        return geometry
    if isinstance(geometry, MultiPolygon):
        parts = list(geometry.geoms)
        if not parts:
            raise ValueError("MultiPolygon has no components")
        return max(parts, key=geodesic_area_km2)
    raise ValueError(f"Unsupported geometry type: {geometry.geom_type}")


def _rings(polygon: Polygon) -> list[np.ndarray]:
    rings = [polygon.exterior, *polygon.interiors]
    return [np.asarray(ring.coords)[:, :2] for ring in rings]


def compute_centroid(polygon: Polygon) -> tuple[float, float]:
    """
    Vertex centroid (lon, lat) of a polygon.

    The mean of all ring vertices, with each ring's closing vertex excluded.
    """
    if polygon.is_empty:
        raise ValueError("Cannot compute centroid of an empty polygon")
    vertices = np.vstack([ring[:-1] for ring in _rings(polygon)])
    lon, lat = vertices.mean(axis=0)
    return float(lon), float(lat)


def perimeter_length_km(polygon: Polygon) -> float:
    """Total great-circle length of all rings in km."""
    total = 0.0
    for ring in _rings(polygon):
        if len(ring) < 2:
            continue
        seg = haversine_km(ring[:-1, 1], ring[:-1, 0], ring[1:, 1], ring[1:, 0])
        total += float(np.sum(seg))
    return total


# =============================================================================
# Shape Metrics
# =============================================================================


def compute_directional_extent(
    polygon: Polygon,
    centroid: tuple[float, float],
) -> tuple[dict[str, float], float]:
    """
    Maximum centroid-to-vertex distance in each of 8 compass sectors.

    A vertex belongs to a sector if its bearing from the centroid is within
    ±22.5° of the sector bearing. Sectors with no vertex have extent 0.

    Parameters
    ----------
    polygon : Polygon
        Lon/lat polygon; only the exterior ring is scanned.
    centroid : tuple
        (lon, lat) of the centroid.

    Returns
    -------
    extents : dict
        Extent in km keyed by N, NE, E, SE, S, SW, W, NW.
    dominant_bearing : float
        Sector bearing with the largest extent; ties go to the earliest
        sector in N, NE, ..., NW order. 0 when every extent is 0.
    """
    cent_lon, cent_lat = centroid
    coords = np.asarray(polygon.exterior.coords)[:, :2]
    lons, lats = coords[:, 0], coords[:, 1]

    bearings = initial_bearing(cent_lat, cent_lon, lats, lons)
    distances = haversine_km(cent_lat, cent_lon, lats, lons)

    extents: dict[str, float] = {}
    max_extent = 0.0
    dominant_bearing = 0.0

    for i, name in enumerate(CARDINAL_8):
        sector_bearing = i * 45.0
        in_sector = angular_difference(bearings, sector_bearing) <= SECTOR_HALF_WIDTH
        extent = float(distances[in_sector].max()) if np.any(in_sector) else 0.0
        extents[name] = extent

        if extent > max_extent:
            max_extent = extent
            dominant_bearing = sector_bearing

    return extents, dominant_bearing


def calculate_aspect_ratio(extents: dict[str, float]) -> float:
    """Largest over smallest nonzero directional extent (1.0 if none)."""
    nonzero = [e for e in extents.values() if e > 0]
    if not nonzero:
        return 1.0
    return max(nonzero) / min(nonzero)


def calculate_compactness(area_km2: float, perimeter_km: float) -> float:
    """
    Isoperimetric quotient 4πA / P².

    1.0 for a circle, lower for irregular shapes; 0 when the perimeter is 0.
    """
    if perimeter_km == 0:
        return 0.0
    return 4.0 * math.pi * area_km2 / (perimeter_km * perimeter_km)


def estimate_spread_rate(acres: float, duration_hours: float) -> float:
    """
    Isotropic spread rate (km/h) assuming circular growth from a point.

    radius = sqrt(area / π), rate = radius / duration.
    """
    if duration_hours == 0:
        return 0.0
    radius_km = math.sqrt(float(acres_to_km2(acres)) / math.pi)
    return radius_km / duration_hours


# =============================================================================
# Record Processing
# =============================================================================


def _missing_field(raw: RawFirePolygon) -> str | None:
    if not raw.name:
        return "missing name"
    if raw.alarm_date is None:
        return "missing ignition timestamp"
    if raw.containment_date is None:
        return "missing containment timestamp"
    if raw.acres is None:
        return "missing acreage"
    return None


def process_fire_perimeter(
    raw: RawFirePolygon,
    max_duration_hours: float = MAX_DURATION_HOURS,
) -> PerimeterOutcome:
    """
    Process a single historical fire record.

    Parameters
    ----------
    raw : RawFirePolygon
        Source record; never modified.
    max_duration_hours : float
        Upper bound on plausible fire duration.

    Returns
    -------
    PerimeterOutcome
        ``ok`` with the processed perimeter, ``skipped`` for incomplete or
        temporally invalid records, ``failed`` for geometry errors. The
        reason names the rule that rejected the record.
    """
    fire_id = raw.fire_id

    missing = _missing_field(raw)
    if missing is not None:
        logger.debug(f"Skipping {fire_id}: {missing}")
        return PerimeterOutcome(fire_id=fire_id, status="skipped", reason=missing)

    try:
        duration_hours = raw.duration_hours
    except TypeError as e:
        logger.exception(f"Error computing duration for {fire_id}")
        return PerimeterOutcome(fire_id=fire_id, status="failed", reason=str(e))

    if duration_hours <= 0:
        logger.debug(f"Skipping {fire_id}: duration {duration_hours:.2f} h <= 0")
        return PerimeterOutcome(fire_id=fire_id, status="skipped", reason="duration <= 0")
    if duration_hours > max_duration_hours:
        logger.debug(f"Skipping {fire_id}: duration {duration_hours:.2f} h > {max_duration_hours}")
        return PerimeterOutcome(fire_id=fire_id, status="skipped", reason="duration > max")

    try:
        polygon = normalize_geometry(raw.geometry)
        centroid = compute_centroid(polygon)
        perimeter_km = perimeter_length_km(polygon)
        area_km2 = float(acres_to_km2(raw.acres))

        extents, dominant_bearing = compute_directional_extent(polygon, centroid)

        perimeter = ProcessedPerimeter(
            fire_id=fire_id,
            fire_name=raw.name,
            year=raw.year,
            geometry=polygon,
            centroid=centroid,
            alarm_date=raw.alarm_date.isoformat(),
            containment_date=raw.containment_date.isoformat(),
            duration_hours=duration_hours,
            total_acres=raw.acres,
            area_km2=area_km2,
            perimeter_km=perimeter_km,
            aspect_ratio=calculate_aspect_ratio(extents),
            compactness=calculate_compactness(area_km2, perimeter_km),
            extents=extents,
            dominant_bearing=dominant_bearing,
            acres_per_hour=raw.acres / duration_hours,
            spread_rate_kmh=estimate_spread_rate(raw.acres, duration_hours),
        )
    except Exception as e:
        logger.exception(f"Error processing fire perimeter {fire_id}")
        return PerimeterOutcome(fire_id=fire_id, status="failed", reason=str(e))

    return PerimeterOutcome(fire_id=fire_id, status="ok", perimeter=perimeter)


def process_all_perimeters(
    records: Iterable[RawFirePolygon],
    max_duration_hours: float = MAX_DURATION_HOURS,
    stats: ProcessingStats | None = None,
) -> tuple[list[ProcessedPerimeter], ProcessingStats]:
    """
    Process a collection of records.

    Parameters
    ----------
    records : iterable of RawFirePolygon
        Source records.
    max_duration_hours : float
        Upper bound on plausible fire duration.
    stats : ProcessingStats, optional
        Counters to continue, e.g. ones that already hold features
        rejected while loading the dataset.

    Returns
    -------
    processed : list[ProcessedPerimeter]
        Surviving perimeters in input order.
    stats : ProcessingStats
        Counts of successful, skipped and failed records.
    """
    processed: list[ProcessedPerimeter] = []
    if stats is None:
        stats = ProcessingStats()

    for raw in records:
        outcome = process_fire_perimeter(raw, max_duration_hours=max_duration_hours)
        stats.record(outcome)
        if outcome.perimeter is not None:
            processed.append(outcome.perimeter)

    logger.info(
        f"Processed {stats.total} perimeters: {stats.successful} successful, "
        f"{stats.skipped} skipped, {stats.failed} failed"
    )
    if stats.skip_reasons:
        logger.info(f"Skip reasons: {stats.skip_reasons}")

    return processed, stats


def summarize_perimeters(perimeters: list[ProcessedPerimeter], n_largest: int = 5) -> dict[str, Any]:
    """Aggregate acreage, duration and growth statistics for a batch."""
    if not perimeters:
        return {
            "count": 0,
            "total_acres": 0.0,
            "mean_acres": 0.0,
            "mean_duration_hours": 0.0,
            "mean_acres_per_hour": 0.0,
            "largest": [],
        }

    acres = np.array([p.total_acres for p in perimeters])
    largest = sorted(perimeters, key=lambda p: p.total_acres, reverse=True)[:n_largest]

    return {
        "count": len(perimeters),
        "total_acres": float(acres.sum()),
        "mean_acres": float(acres.mean()),
        "mean_duration_hours": float(np.mean([p.duration_hours for p in perimeters])),
        "mean_acres_per_hour": float(np.mean([p.acres_per_hour for p in perimeters])),
        "largest": [(p.fire_name, p.total_acres) for p in largest],
    }
