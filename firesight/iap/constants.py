"""
Fixed tables and weights for IAP matching.

Every table keyed by an enum must cover all of its members; this is checked
when the module is imported.
"""

from __future__ import annotations

from enum import Enum

from firesight.iap.records import Category, SectionType
from firesight.incident import FuelType


def _exhaustive(table: dict, enum_cls: type[Enum]) -> dict:
    missing = [member.value for member in enum_cls if member not in table]
    if missing:
        raise RuntimeError(f"{enum_cls.__name__} table is missing entries for: {missing}")
    return table


# Fuels treated as comparable to the incident's fuel (exact match included)
FUEL_COMPATIBILITY_MAP: dict[FuelType, tuple[FuelType, ...]] = _exhaustive({
    FuelType.GRASS: (FuelType.GRASS, FuelType.MIXED),
    FuelType.BRUSH: (FuelType.BRUSH, FuelType.CHAPARRAL, FuelType.MIXED),
    FuelType.MIXED: (FuelType.MIXED, FuelType.GRASS, FuelType.BRUSH),
    FuelType.CHAPARRAL: (FuelType.CHAPARRAL, FuelType.BRUSH),
}, FuelType)

# ICS sections that carry guidance for each category
RELEVANT_SECTIONS: dict[Category, tuple[SectionType, ...]] = _exhaustive({
    Category.TACTICS: (SectionType.ICS_202, SectionType.ICS_204, SectionType.ICS_220),
    Category.RESOURCES: (SectionType.ICS_203, SectionType.ICS_204),
    Category.EVACUATION: (SectionType.ICS_202,),
}, Category)

# Keywords that make a sentence a useful snippet for each category
FOCUS_KEYWORDS: dict[Category, tuple[str, ...]] = _exhaustive({
    Category.EVACUATION: (
        "wind",
        "gust",
        "humidity",
        "weather",
        "rapid spread",
        "extreme fire behavior",
        "red flag",
        "wind shift",
        "wind-driven",
    ),
    Category.RESOURCES: (
        "contained",
        "containment",
        "escaped",
        "successful",
        "effective",
        "additional resources",
        "resource",
        "personnel",
        "equipment",
        "initial attack",
    ),
    Category.TACTICS: (
        "terrain",
        "slope",
        "ridge",
        "topography",
        "uphill",
        "downhill",
        "canyon",
        "valley",
        "elevation",
        "natural barrier",
        "road",
        "highway",
    ),
}, Category)

MIN_IAP_SCORE = 60
MAX_IAP_INSIGHTS = 3

# Scoring rubric (maximum points per term, total 100 without terrain)
FUEL_EXACT_POINTS = 25
FUEL_COMPATIBLE_POINTS = 12
WIND_POINTS = 15
HUMIDITY_POINTS = 10
SCALE_POINTS = 15
SCALE_UNKNOWN_POINTS = 7
SECTION_RELEVANT_POINTS = 25
SECTION_ANY_POINTS = 10
TERRAIN_POINTS = 20

# (max absolute difference, points), checked in order
WIND_BANDS_MPS = ((3.0, 15), (7.0, 8), (12.0, 3))
HUMIDITY_BANDS_PCT = ((10.0, 10), (20.0, 5), (30.0, 2))

SNIPPET_MAX_CHARS = 300
