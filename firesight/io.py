"""
Dataset I/O for Firesight.

This module reads the static datasets the engine works from: historical
fire perimeters (any vector format GeoPandas can open, typically the
CAL FIRE GeoJSON export), the pre-extracted IAP collection (JSON) and DEM
rasters (GeoTIFF). It also writes the preprocessed perimeter artifact.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Iterator

import geopandas as gpd
import numpy as np
import pandas as pd
import rasterio
from pydantic import ValidationError
from pyogrio.errors import DataLayerError, DataSourceError
from rasterio.crs import CRS
from rasterio.errors import RasterioIOError
from rasterio.transform import Affine, rowcol
from shapely.errors import GEOSException

from firesight.errors import DatasetUnavailableError
from firesight.iap.records import IAPRecord
from firesight.perimeter import PerimeterOutcome, ProcessedPerimeter, ProcessingStats, RawFirePolygon

logger = logging.getLogger(__name__)

PERIMETER_CRS = "EPSG:4326"


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class RasterData:
    """A single raster band with its georeferencing."""

    data: np.ndarray
    transform: Affine
    crs: CRS | None
    nodata: float | None = None

    @property
    def shape(self) -> tuple[int, int]:
        """(rows, cols)."""
        return self.data.shape

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Extent as (left, bottom, right, top)."""
        height, width = self.shape
        left = self.transform.c
        top = self.transform.f
        right = left + width * self.transform.a
        bottom = top + height * self.transform.e
        return (left, bottom, right, top)

    @property
    def resolution(self) -> tuple[float, float]:
        """Absolute cell size as (x, y)."""
        return (abs(self.transform.a), abs(self.transform.e))

    def rowcol(self, x: float, y: float) -> tuple[int, int]:
        """Cell containing a point given in the raster CRS."""
        row, col = rowcol(self.transform, x, y)
        return int(row), int(col)


def _require_file(path: Path, what: str) -> None:
    if not path.exists():
        raise DatasetUnavailableError(f"{what} not found: {path}")


# =============================================================================
# Raster I/O
# =============================================================================


def read_raster(path: str | Path, band: int = 1) -> RasterData:
    """
    Read a single raster band, with nodata cells as NaN.

    Raises
    ------
    DatasetUnavailableError
        If the file does not exist or cannot be opened as a raster.
    """
    path = Path(path)
    _require_file(path, "Raster")
    logger.debug(f"Reading raster: {path}")

    try:
        src = rasterio.open(path)
    except RasterioIOError as e:
        raise DatasetUnavailableError(f"Raster could not be read: {path}: {e}") from e

    with src:
        data = src.read(band, masked=True)
        nodata = src.nodata

        if hasattr(data, "filled"):
            data = data.astype(np.float64).filled(np.nan)
        else:
            data = data.astype(np.float64)
            if nodata is not None:
                data[data == nodata] = np.nan

        return RasterData(
            data=data,
            transform=src.transform,
            crs=src.crs,
            nodata=nodata,
        )


def write_raster(
    path: str | Path,
    data: np.ndarray,
    transform: Affine,
    crs: CRS | str,
    nodata: float | None = None,
    dtype: str = "float32",
) -> None:
    """Write a 2D array to a GeoTIFF file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    logger.debug(f"Writing raster: {path}")

    if isinstance(crs, str):
        crs = CRS.from_string(crs)

    profile = {
        "driver": "GTiff",
        "dtype": dtype,
        "width": data.shape[1],
        "height": data.shape[0],
        "count": 1,
        "crs": crs,
        "transform": transform,
        "nodata": nodata,
        "compress": "lzw",
    }

    with rasterio.open(path, "w", **profile) as dst:
        dst.write(data.astype(dtype), 1)


# =============================================================================
# Perimeter Datasets
# =============================================================================


def read_vector(path: str | Path, target_crs: str | CRS | None = PERIMETER_CRS) -> gpd.GeoDataFrame:
    """
    Read a vector file into a GeoDataFrame, reprojected to ``target_crs``.

    Files without a CRS are assumed to already be in ``target_crs``.

    Raises
    ------
    DatasetUnavailableError
        If the file does not exist or cannot be opened as a vector dataset.
    """
    path = Path(path)
    _require_file(path, "Vector dataset")
    logger.debug(f"Reading vector: {path}")

    try:
        gdf = gpd.read_file(path)
    except (DataSourceError, DataLayerError, GEOSException, OSError, ValueError) as e:
        raise DatasetUnavailableError(f"Vector dataset could not be read: {path}: {e}") from e

    if target_crs is not None:
        if gdf.crs is None:
            logger.warning(f"Vector has no CRS, assuming {target_crs}")
            gdf = gdf.set_crs(target_crs)
        else:
            gdf = gdf.to_crs(target_crs)

    return gdf


def _reject(stats: ProcessingStats | None, feature_id: Any, status: str, reason: str) -> None:
    logger.warning(f"Feature {feature_id} dropped: {reason}")
    if stats is not None:
        stats.record(PerimeterOutcome(fire_id=f"feature_{feature_id}", status=status, reason=reason))


def raw_fires_from_geodataframe(
    gdf: gpd.GeoDataFrame,
    stats: ProcessingStats | None = None,
) -> list[RawFirePolygon]:
    """
    Convert perimeter features to ``RawFirePolygon`` records.

    Features without geometry are dropped as skipped ("missing geometry");
    features whose geometry is non-polygonal or malformed are dropped as
    failed. Drops are logged and, when ``stats`` is given, counted there.
    Attribute completeness is not checked here; that is the perimeter
    processor's job.
    """
    records = []
    attribute_columns = [c for c in gdf.columns if c != gdf.geometry.name]

    for feature_id, row in gdf.iterrows():
        geometry = row[gdf.geometry.name]
        if geometry is None or geometry.is_empty:
            _reject(stats, feature_id, "skipped", "missing geometry")
            continue
        properties = {column: row[column] for column in attribute_columns}
        try:
            records.append(RawFirePolygon.from_properties(properties, geometry, feature_id=feature_id))
        except ValueError as e:
            _reject(stats, feature_id, "failed", str(e))

    return records


def raw_fires_from_features(
    features: Iterable[dict[str, Any]],
    stats: ProcessingStats | None = None,
) -> Iterator[RawFirePolygon]:
    """Yield records from GeoJSON feature mappings (already in lon/lat), dropping as above."""
    for i, feature in enumerate(features):
        feature_id = feature.get("id", i)
        geometry = feature.get("geometry")
        if not geometry:
            _reject(stats, feature_id, "skipped", "missing geometry")
            continue
        try:
            record = RawFirePolygon.from_properties(
                feature.get("properties") or {},
                geometry,
                feature_id=feature_id,
            )
        except ValueError as e:
            _reject(stats, feature_id, "failed", str(e))
            continue
        yield record


def read_perimeter_collection(path: str | Path, stats: ProcessingStats | None = None) -> list[RawFirePolygon]:
    """
    Read a historical perimeter dataset.

    Features dropped while loading are counted in ``stats`` when given, so
    passing the same object to ``process_all_perimeters`` reports them.

    Raises
    ------
    DatasetUnavailableError
        If the file does not exist or cannot be read.
    """
    gdf = read_vector(path)
    records = raw_fires_from_geodataframe(gdf, stats=stats)
    dropped = len(gdf) - len(records)
    logger.info(f"Loaded {len(records)} perimeter records from {Path(path).name} ({dropped} dropped)")
    return records


def write_processed_perimeters(
    path: str | Path,
    perimeters: list[ProcessedPerimeter],
    stats: ProcessingStats,
) -> Path:
    """Write the preprocessed artifact ``{fires, processedAt, stats}`` as JSON."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = {
        "fires": [p.to_dict() for p in perimeters],
        "processedAt": datetime.now(timezone.utc).isoformat(),
        "stats": stats.to_dict(),
    }
    with open(path, "w") as f:
        json.dump(payload, f, indent=2)

    logger.info(f"Wrote {len(perimeters)} processed perimeters to {path}")
    return path


# =============================================================================
# IAP Dataset
# =============================================================================


def parse_iap_records(payload: dict[str, Any] | list[Any]) -> list[IAPRecord]:
    """
    Validate IAP records from a decoded JSON payload.

    Accepts either ``{"iaps": [...]}`` or a bare list. Invalid records are
    logged and excluded.
    """
    items = payload.get("iaps", []) if isinstance(payload, dict) else payload

    records = []
    for i, item in enumerate(items):
        try:
            records.append(IAPRecord.model_validate(item))
        except ValidationError as e:
            record_id = item.get("id", i) if isinstance(item, dict) else i
            logger.warning(f"Skipping invalid IAP record {record_id}: {e.error_count()} validation error(s)")
    return records


def load_iap_records(path: str | Path) -> list[IAPRecord]:
    """
    Load the pre-extracted IAP collection.

    Raises
    ------
    DatasetUnavailableError
        If the file does not exist, cannot be read, or is not valid UTF-8 JSON.
    """
    path = Path(path)
    _require_file(path, "IAP dataset")
    logger.debug(f"Reading IAP dataset: {path}")

    try:
        with open(path, encoding="utf-8") as f:
            payload = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DatasetUnavailableError(f"IAP dataset is not valid JSON: {path}: {e}") from e
    except OSError as e:
        raise DatasetUnavailableError(f"IAP dataset could not be read: {path}: {e}") from e

    records = parse_iap_records(payload)
    logger.info(f"Loaded {len(records)} IAP records from {path.name}")
    return records


def to_jsonable(value: Any) -> Any:
    """Convert numpy and pandas scalars so results can be passed to ``json.dump``."""
    if isinstance(value, dict):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, (pd.Timestamp, datetime)):
        return value.isoformat()
    if isinstance(value, float) and not np.isfinite(value):
        return None
    return value
