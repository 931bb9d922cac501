"""Justification bullets for IAP insights."""

from __future__ import annotations

import re

from firesight.iap.constants import FUEL_COMPATIBILITY_MAP
from firesight.iap.records import Category, IAPRecord, SectionType
from firesight.incident import Incident, Weather

MAX_REASONS = 3
MIN_REASONS = 2
SIMILAR_WIND_MPS = 5.0
LOW_HUMIDITY_PCT = 25.0

TERRAIN_REFERENCE = re.compile(r"steep|slope|ridge|terrain|uphill|downhill", re.IGNORECASE)


def _format_acres(acres: float) -> str:
    if float(acres).is_integer():
        return f"{int(acres):,}"
    return f"{acres:,.1f}"


def _evacuation_reasons(weather: Weather, record: IAPRecord) -> list[str]:
    reasons = []
    iap_weather = record.conditions.weather
    if iap_weather is None:
        return reasons
    if iap_weather.wind_speed_mps is not None:
        if abs(weather.wind_speed_mps - iap_weather.wind_speed_mps) <= SIMILAR_WIND_MPS:
            reasons.append(
                f"Similar wind conditions: {iap_weather.wind_speed_mps:.1f} m/s affected containment"
            )
    if iap_weather.humidity_pct is not None and iap_weather.humidity_pct < LOW_HUMIDITY_PCT:
        reasons.append(f"Low humidity ({iap_weather.humidity_pct:g}%) drove rapid spread")
    return reasons


def _resource_reasons(record: IAPRecord) -> list[str]:
    reasons = []
    if record.conditions.acres:
        reasons.append(f"{_format_acres(record.conditions.acres)} acre fire - resource patterns applicable")
    if any(s.type in (SectionType.ICS_203, SectionType.ICS_204) for s in record.sections):
        reasons.append("Documented resource assignments and effectiveness")
    return reasons


def _tactics_reasons(record: IAPRecord) -> list[str]:
    reasons = []
    if record.location.county:
        reasons.append(f"Similar California terrain in {record.location.county} County")
    if any(s.type is SectionType.ICS_204 for s in record.sections):
        reasons.append("Terrain-based tactical assignments documented")
    if record.raw_text and TERRAIN_REFERENCE.search(record.raw_text):
        reasons.append("IAP describes similar terrain features")
    return reasons


def generate_reasoning(
    incident: Incident,
    weather: Weather,
    record: IAPRecord,
    score: int,
    category: Category,
) -> list[str]:
    """
    Two or three short bullets explaining why an IAP is relevant.

    Category-specific bullets come first, then the fuel-match bullet; a
    generic relevance bullet pads the list to two.
    """
    category = Category(category)
    if category is Category.EVACUATION:
        reasons = _evacuation_reasons(weather, record)
    elif category is Category.RESOURCES:
        reasons = _resource_reasons(record)
    else:
        reasons = _tactics_reasons(record)

    fuel = record.conditions.fuel
    if fuel is not None:
        if fuel == incident.fuel:
            reasons.append(f"Exact fuel type match: {fuel.value}")
        elif fuel in FUEL_COMPATIBILITY_MAP[incident.fuel]:
            reasons.append(f"Compatible fuel: {fuel.value}")

    if len(reasons) < MIN_REASONS:
        reasons.append(f"Overall relevance: {score}%")

    return reasons[:MAX_REASONS]
