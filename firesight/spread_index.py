"""
Directional spread analysis and the in-memory historical fire index.

Each historical record is reduced to a lightweight ``DirectionalSpread``
(bounding box, N/S/E/W extents and expansion rates, shape descriptors).
``SpreadIndex`` owns three lookup tables over those records (uppercased
name, coarse lat/lon grid cell, year) plus the flat collection, builds them
once on first use and swaps all four in a single assignment on rebuild.

Notes
-----
The spatial grid uses fixed 0.5° cells in both axes. This is a coarse
approximation (cells shrink east-west with latitude); candidate cells are
chosen to cover the query's bounding box and every result is filtered by
exact great-circle distance.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Iterable, NamedTuple, Union

import numpy as np

from firesight.geometry import EARTH_RADIUS_KM, haversine_km
from firesight.incident import Incident
from firesight.perimeter import RawFirePolygon

logger = logging.getLogger(__name__)

GRID_SIZE_DEG = 0.5

# Minimum duration used for rate calculation (hours)
MIN_RATE_HOURS = 0.1

KM_PER_DEG_LAT = math.pi * EARTH_RADIUS_KM / 180.0

DOMINANT_DIRECTIONS = ("N", "S", "E", "W", "NE", "NW", "SE", "SW", "UNIFORM")


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class SpreadBounds:
    """Bounding box of all vertices of a fire."""

    north: float
    south: float
    east: float
    west: float
    center_lat: float
    center_lon: float


@dataclass(frozen=True)
class SpreadExtents:
    """Distance (km) from the bounding-box centre to each edge."""

    north: float
    south: float
    east: float
    west: float


@dataclass(frozen=True)
class SpreadRates:
    """Expansion rate (km/h) in each cardinal direction."""

    north: float
    south: float
    east: float
    west: float
    avg_rate: float


@dataclass(frozen=True)
class SpreadShape:
    """Shape descriptors."""

    aspect_ratio: float  # width / height
    elongation: float  # >= 1, 1.0 = equidimensional
    dominant_direction: str


@dataclass(frozen=True)
class DirectionalSpread:
    """Four-direction spread summary of one historical fire."""

    fire_id: str
    fire_name: str
    year: int
    acres: float
    duration_hours: float
    bounds: SpreadBounds
    extents: SpreadExtents
    rates: SpreadRates
    shape: SpreadShape

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# =============================================================================
# Feature Analysis
# =============================================================================


def _all_coordinates(raw: RawFirePolygon) -> np.ndarray:
    geom = raw.geometry
    polygons = list(geom.geoms) if geom.geom_type == "MultiPolygon" else [geom]
    rings = []
    for polygon in polygons:
        if polygon.is_empty:
            continue
        rings.append(np.asarray(polygon.exterior.coords)[:, :2])
        rings.extend(np.asarray(hole.coords)[:, :2] for hole in polygon.interiors)
    if not rings:
        return np.empty((0, 2))
    return np.vstack(rings)


def classify_dominant_direction(north: float, south: float, east: float, west: float) -> str:
    """
    Categorize the dominant spread direction from four extents.

    A diagonal is reported when one axis is within 5% of the maximum extent
    and the perpendicular axis is above 80% of it (checked in NE, NW, SE, SW
    order); otherwise the first of N, S, E, W equal to the maximum wins.
    """
    max_extent = max(north, south, east, west)

    if north > max_extent * 0.95 and east > max_extent * 0.8:
        return "NE"
    if north > max_extent * 0.95 and west > max_extent * 0.8:
        return "NW"
    if south > max_extent * 0.95 and east > max_extent * 0.8:
        return "SE"
    if south > max_extent * 0.95 and west > max_extent * 0.8:
        return "SW"
    if north >= max_extent:
        return "N"
    if south >= max_extent:
        return "S"
    if east >= max_extent:
        return "E"
    if west >= max_extent:
        return "W"
    return "UNIFORM"


def analyze_feature_spread(raw: RawFirePolygon) -> DirectionalSpread | None:
    """
    Reduce a historical fire record to a ``DirectionalSpread``.

    Returns None when the record has no vertices.

    Raises
    ------
    ValueError
        If the geometry is degenerate in one axis (zero width or height).
    """
    coords = _all_coordinates(raw)
    if len(coords) == 0:
        return None

    lons, lats = coords[:, 0], coords[:, 1]
    min_lat, max_lat = float(lats.min()), float(lats.max())
    min_lon, max_lon = float(lons.min()), float(lons.max())

    center_lat = (min_lat + max_lat) / 2
    center_lon = (min_lon + max_lon) / 2

    north = float(haversine_km(center_lat, center_lon, max_lat, center_lon))
    south = float(haversine_km(center_lat, center_lon, min_lat, center_lon))
    east = float(haversine_km(center_lat, center_lon, center_lat, max_lon))
    west = float(haversine_km(center_lat, center_lon, center_lat, min_lon))

    duration_hours = raw.duration_hours or 0.0
    safe_hours = max(duration_hours, MIN_RATE_HOURS)
    rates = SpreadRates(
        north=north / safe_hours,
        south=south / safe_hours,
        east=east / safe_hours,
        west=west / safe_hours,
        avg_rate=(north + south + east + west) / 4 / safe_hours,
    )

    width = east + west
    height = north + south
    if min(width, height) <= 0:
        raise ValueError(f"Degenerate extent (width={width:.4f} km, height={height:.4f} km)")

    shape = SpreadShape(
        aspect_ratio=width / max(height, 0.1),
        elongation=max(width, height) / min(width, height),
        dominant_direction=classify_dominant_direction(north, south, east, west),
    )

    if raw.incident_number:
        fire_id = raw.incident_number
    else:
        fire_id = f"FIRE_{raw.object_id}"

    return DirectionalSpread(
        fire_id=fire_id,
        fire_name=raw.name or "UNKNOWN",
        year=raw.year or 0,
        acres=raw.acres or 0.0,
        duration_hours=duration_hours,
        bounds=SpreadBounds(
            north=max_lat,
            south=min_lat,
            east=max_lon,
            west=min_lon,
            center_lat=center_lat,
            center_lon=center_lon,
        ),
        extents=SpreadExtents(north=north, south=south, east=east, west=west),
        rates=rates,
        shape=shape,
    )


# =============================================================================
# Spatial Index
# =============================================================================


def grid_key(lat: float, lon: float, grid_size: float = GRID_SIZE_DEG) -> tuple[int, int]:
    """Grid cell containing a point."""
    return (math.floor(lat / grid_size), math.floor(lon / grid_size))


class _IndexTables(NamedTuple):
    by_name: dict[str, tuple[DirectionalSpread, ...]]
    by_cell: dict[tuple[int, int], tuple[DirectionalSpread, ...]]
    by_year: dict[int, tuple[DirectionalSpread, ...]]
    all: tuple[DirectionalSpread, ...]
    failed: int
    build_ms: float


RecordSource = Union[Iterable[RawFirePolygon], Callable[[], Iterable[RawFirePolygon]]]


class SpreadIndex:
    """
    Lookup index over historical fires.

    Parameters
    ----------
    source : iterable of RawFirePolygon, or callable returning one
        Historical records. A callable is invoked on every (re)build, which
        lets ``rebuild`` pick up a reloaded dataset; exceptions it raises
        (e.g. ``DatasetUnavailableError``) propagate to the caller.
    grid_size_deg : float
        Spatial cell size in degrees.

    Notes
    -----
    The tables are built lazily on first query and never mutated afterwards.
    Concurrent first queries block on a single build. ``rebuild`` constructs
    a complete new set of tables before publishing it, so readers never see
    a partially populated index.
    """

    def __init__(self, source: RecordSource, grid_size_deg: float = GRID_SIZE_DEG):
        if grid_size_deg <= 0:
            raise ValueError(f"grid_size_deg must be positive, got {grid_size_deg}")
        self._source = source if callable(source) else tuple(source)
        self.grid_size_deg = grid_size_deg
        self._tables: _IndexTables | None = None
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _records(self) -> Iterable[RawFirePolygon]:
        if callable(self._source):
            return self._source()
        return self._source

    def _build_tables(self) -> _IndexTables:
        logger.info("Building directional spread index")
        start = time.perf_counter()

        by_name: dict[str, list[DirectionalSpread]] = {}
        by_cell: dict[tuple[int, int], list[DirectionalSpread]] = {}
        by_year: dict[int, list[DirectionalSpread]] = {}
        all_spreads: list[DirectionalSpread] = []
        failed = 0

        for raw in self._records():
            try:
                spread = analyze_feature_spread(raw)
            except Exception:
                logger.exception(f"Error analyzing feature {raw.fire_id}")
                spread = None

            if spread is None:
                failed += 1
                continue

            all_spreads.append(spread)
            by_name.setdefault(spread.fire_name.upper(), []).append(spread)
            key = grid_key(spread.bounds.center_lat, spread.bounds.center_lon, self.grid_size_deg)
            by_cell.setdefault(key, []).append(spread)
            by_year.setdefault(spread.year, []).append(spread)

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"Indexed {len(all_spreads)} fires in {elapsed_ms:.0f}ms ({failed} failed)")

        return _IndexTables(
            by_name={k: tuple(v) for k, v in by_name.items()},
            by_cell={k: tuple(v) for k, v in by_cell.items()},
            by_year={k: tuple(v) for k, v in by_year.items()},
            all=tuple(all_spreads),
            failed=failed,
            build_ms=elapsed_ms,
        )

    def _ensure_built(self) -> _IndexTables:
        tables = self._tables
        if tables is not None:
            return tables
        with self._lock:
            if self._tables is None:
                self._tables = self._build_tables()
            return self._tables

    def rebuild(self) -> None:
        """Rebuild every table from the source and publish them together."""
        with self._lock:
            self._tables = self._build_tables()

    def invalidate(self) -> None:
        """Drop the tables; the next query rebuilds them."""
        with self._lock:
            self._tables = None

    @property
    def is_built(self) -> bool:
        return self._tables is not None

    @property
    def all(self) -> tuple[DirectionalSpread, ...]:
        """Every indexed fire in source order."""
        return self._ensure_built().all

    def __len__(self) -> int:
        return len(self.all)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _candidate_cells(self, lat: float, lon: float, radius_km: float) -> list[tuple[int, int]]:
        g = self.grid_size_deg
        dlat = radius_km / KM_PER_DEG_LAT

        # Widest longitude span occurs at the poleward edge of the box
        edge_lat = min(abs(lat) + dlat, 89.9)
        dlon = min(radius_km / (KM_PER_DEG_LAT * math.cos(math.radians(edge_lat))), 180.0)

        rows = range(math.floor((lat - dlat) / g), math.floor((lat + dlat) / g) + 1)
        cols = range(math.floor((lon - dlon) / g), math.floor((lon + dlon) / g) + 1)
        return [(i, j) for i in rows for j in cols]

    def find_near_with_distance(
        self,
        lat: float,
        lon: float,
        radius_km: float = 50.0,
        limit: int = 10,
    ) -> list[tuple[DirectionalSpread, float]]:
        """Like ``find_near`` but also returns each fire's distance in km."""
        tables = self._ensure_built()

        candidates: list[DirectionalSpread] = []
        for key in self._candidate_cells(lat, lon, radius_km):
            candidates.extend(tables.by_cell.get(key, ()))

        nearby = []
        for fire in candidates:
            distance = float(haversine_km(lat, lon, fire.bounds.center_lat, fire.bounds.center_lon))
            if distance <= radius_km:
                nearby.append((fire, distance))

        nearby.sort(key=lambda item: item[1])
        logger.debug(
            f"find_near({lat:.4f}, {lon:.4f}, r={radius_km}km): "
            f"{len(candidates)} candidates, {len(nearby)} within radius"
        )
        return nearby[:limit]

    def find_near(
        self,
        lat: float,
        lon: float,
        radius_km: float = 50.0,
        limit: int = 10,
    ) -> list[DirectionalSpread]:
        """
        Fires whose centre lies within ``radius_km`` of a point.

        Results are sorted by ascending great-circle distance and truncated
        to ``limit``.
        """
        return [fire for fire, _ in self.find_near_with_distance(lat, lon, radius_km, limit)]

    def find_by_name(self, name: str, limit: int = 10) -> list[DirectionalSpread]:
        """Case-insensitive substring match on fire names, in index order."""
        search = name.upper()
        results: list[DirectionalSpread] = []
        for key, fires in self._ensure_built().by_name.items():
            if search in key:
                results.extend(fires)
        return results[:limit]

    def find_by_year(self, year: int, limit: int | None = None) -> list[DirectionalSpread]:
        """Fires that burned in ``year``."""
        fires = list(self._ensure_built().by_year.get(year, ()))
        return fires if limit is None else fires[:limit]

    def find_similar(
        self,
        incident: Incident,
        radius_km: float = 100.0,
        limit: int = 10,
    ) -> list[DirectionalSpread]:
        """
        Historical analogs for an incident.

        Takes the ``2 * limit`` nearest fires within ``radius_km`` and
        returns the ``limit`` most recent of them (descending year).
        """
        nearby = self.find_near(incident.lat, incident.lon, radius_km, limit * 2)
        nearby.sort(key=lambda fire: fire.year, reverse=True)
        return nearby[:limit]

    def summary(self) -> dict[str, Any]:
        """Index size and coverage statistics."""
        tables = self._ensure_built()
        years = [y for y in tables.by_year if y]
        return {
            "fires": len(tables.all),
            "failed": tables.failed,
            "names": len(tables.by_name),
            "grid_cells": len(tables.by_cell),
            "years": (min(years), max(years)) if years else None,
            "build_ms": tables.build_ms,
        }
