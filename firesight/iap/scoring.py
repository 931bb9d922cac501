"""
Weighted relevance rubric for historical IAPs.

Each term is computed independently and clipped to its own maximum before
the terms are summed. Without terrain the maximum total is 100; for the
tactics category a terrain term of up to 20 points is added and the total
is capped at 100.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from firesight.iap.constants import (
    FUEL_COMPATIBILITY_MAP,
    FUEL_COMPATIBLE_POINTS,
    FUEL_EXACT_POINTS,
    HUMIDITY_BANDS_PCT,
    HUMIDITY_POINTS,
    RELEVANT_SECTIONS,
    SCALE_POINTS,
    SCALE_UNKNOWN_POINTS,
    SECTION_ANY_POINTS,
    SECTION_RELEVANT_POINTS,
    TERRAIN_POINTS,
    WIND_BANDS_MPS,
    WIND_POINTS,
)
from firesight.iap.records import Category, IAPRecord
from firesight.incident import Incident, Weather
from firesight.terrain import TerrainMetrics, calculate_terrain_similarity


@dataclass(frozen=True)
class ScoreBreakdown:
    """Points awarded per rubric term."""

    fuel: float = 0.0
    wind: float = 0.0
    humidity: float = 0.0
    scale: float = 0.0
    sections: float = 0.0
    terrain: float = 0.0

    @property
    def raw_total(self) -> float:
        return self.fuel + self.wind + self.humidity + self.scale + self.sections + self.terrain

    @property
    def total(self) -> int:
        """Rounded (half up) and capped at 100."""
        return min(100, int(math.floor(self.raw_total + 0.5)))


def _banded(difference: float, bands: tuple[tuple[float, int], ...]) -> int:
    for max_difference, points in bands:
        if difference <= max_difference:
            return points
    return 0


def score_fuel(incident: Incident, record: IAPRecord) -> float:
    fuel = record.conditions.fuel
    if fuel is None:
        return 0.0
    if fuel == incident.fuel:
        return FUEL_EXACT_POINTS
    if fuel in FUEL_COMPATIBILITY_MAP[incident.fuel]:
        return FUEL_COMPATIBLE_POINTS
    return 0.0


def score_weather(weather: Weather, record: IAPRecord) -> tuple[float, float]:
    """Wind and humidity closeness points, in that order."""
    iap_weather = record.conditions.weather
    if iap_weather is None:
        return 0.0, 0.0

    wind = 0.0
    if iap_weather.wind_speed_mps is not None:
        diff = abs(weather.wind_speed_mps - iap_weather.wind_speed_mps)
        wind = min(_banded(diff, WIND_BANDS_MPS), WIND_POINTS)

    humidity = 0.0
    if iap_weather.humidity_pct is not None:
        diff = abs(weather.humidity_pct - iap_weather.humidity_pct)
        humidity = min(_banded(diff, HUMIDITY_BANDS_PCT), HUMIDITY_POINTS)

    return wind, humidity


def score_scale(incident: Incident, record: IAPRecord) -> float:
    """Size similarity as min/max of the two acreages; half points when unknown."""
    iap_acres = record.conditions.acres
    if not iap_acres:
        return SCALE_UNKNOWN_POINTS

    current_acres = incident.estimated_acres
    larger = max(current_acres, iap_acres)
    if larger <= 0:
        return 0.0
    ratio = min(current_acres, iap_acres) / larger
    return min(ratio * SCALE_POINTS, SCALE_POINTS)


def score_sections(record: IAPRecord, category: Category) -> float:
    relevant = RELEVANT_SECTIONS[category]
    if any(section.type in relevant for section in record.sections):
        return SECTION_RELEVANT_POINTS
    if record.sections:
        return SECTION_ANY_POINTS
    return 0.0


def score_terrain(record: IAPRecord, category: Category, terrain: Optional[TerrainMetrics]) -> float:
    if category is not Category.TACTICS or terrain is None or not record.raw_text:
        return 0.0
    similarity = calculate_terrain_similarity(terrain, record.raw_text)
    return min(similarity / 100.0 * TERRAIN_POINTS, TERRAIN_POINTS)


def score_breakdown(
    incident: Incident,
    weather: Weather,
    category: Category,
    record: IAPRecord,
    terrain: Optional[TerrainMetrics] = None,
) -> ScoreBreakdown:
    """Per-term points for one record."""
    category = Category(category)
    wind, humidity = score_weather(weather, record)
    return ScoreBreakdown(
        fuel=score_fuel(incident, record),
        wind=wind,
        humidity=humidity,
        scale=score_scale(incident, record),
        sections=score_sections(record, category),
        terrain=score_terrain(record, category, terrain),
    )


def calculate_iap_similarity(
    incident: Incident,
    weather: Weather,
    category: Category,
    record: IAPRecord,
    terrain: Optional[TerrainMetrics] = None,
) -> int:
    """Relevance score (0-100) of a historical IAP to the current incident."""
    return score_breakdown(incident, weather, category, record, terrain).total
