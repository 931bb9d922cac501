"""
Spread-pattern prediction from historical analogs.

The prediction aggregates the directional expansion rates and shape of the
historical fires nearest to an incident. It is a statistical summary of
what nearby fires did, not a fire behaviour model.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Literal

import numpy as np

from firesight.geometry import degrees_to_cardinal16
from firesight.incident import Incident
from firesight.spread_index import DirectionalSpread, SpreadIndex

logger = logging.getLogger(__name__)

Confidence = Literal["high", "medium", "low"]

SIMILAR_RADIUS_KM = 100.0
MAX_ANALOGS = 15
HIGH_CONFIDENCE_MIN = 10
MEDIUM_CONFIDENCE_MIN = 5


# =============================================================================
# Data Classes
# =============================================================================


@dataclass(frozen=True)
class SpreadStatistics:
    """Mean directional behaviour of a set of fires."""

    avg_north_rate: float = 0.0
    avg_south_rate: float = 0.0
    avg_east_rate: float = 0.0
    avg_west_rate: float = 0.0
    dominant_direction: str = "UNKNOWN"
    avg_elongation: float = 1.0


@dataclass(frozen=True)
class ExpectedRates:
    """Expected expansion rate (km/h) in each cardinal direction."""

    north: float = 0.0
    south: float = 0.0
    east: float = 0.0
    west: float = 0.0


@dataclass(frozen=True)
class SpreadPrediction:
    """Predicted directional spread for an incident."""

    likely_direction: str
    expected_rates: ExpectedRates
    confidence: Confidence
    reasoning: list[str]
    avg_elongation: float = 1.0
    similar_fires: list[DirectionalSpread] = field(default_factory=list)

    @property
    def analog_count(self) -> int:
        return len(self.similar_fires)

    def to_dict(self) -> dict[str, Any]:
        return {
            "similar_fires": [f.to_dict() for f in self.similar_fires],
            "prediction": {
                "likely_direction": self.likely_direction,
                "expected_rates": {
                    "north": self.expected_rates.north,
                    "south": self.expected_rates.south,
                    "east": self.expected_rates.east,
                    "west": self.expected_rates.west,
                },
                "avg_elongation": self.avg_elongation,
                "confidence": self.confidence,
                "reasoning": list(self.reasoning),
            },
        }


# =============================================================================
# Statistics
# =============================================================================


def calculate_spread_statistics(fires: list[DirectionalSpread]) -> SpreadStatistics:
    """
    Mean rates and elongation, and the majority dominant direction.

    Ties in the direction vote go to the direction encountered first.
    An empty input yields direction ``UNKNOWN`` and zero rates.
    """
    if not fires:
        return SpreadStatistics()

    rates = np.array([[f.rates.north, f.rates.south, f.rates.east, f.rates.west] for f in fires])
    mean_rates = rates.mean(axis=0)

    # most_common keeps first-encountered order among equal counts
    votes = Counter(f.shape.dominant_direction for f in fires)
    dominant_direction, _ = votes.most_common(1)[0]

    return SpreadStatistics(
        avg_north_rate=float(mean_rates[0]),
        avg_south_rate=float(mean_rates[1]),
        avg_east_rate=float(mean_rates[2]),
        avg_west_rate=float(mean_rates[3]),
        dominant_direction=dominant_direction,
        avg_elongation=float(np.mean([f.shape.elongation for f in fires])),
    )


def confidence_for_count(
    n_analogs: int,
    high_min: int = HIGH_CONFIDENCE_MIN,
    medium_min: int = MEDIUM_CONFIDENCE_MIN,
) -> Confidence:
    """Map an analog count to a confidence level."""
    if n_analogs >= high_min:
        return "high"
    if n_analogs >= medium_min:
        return "medium"
    return "low"


# =============================================================================
# Prediction
# =============================================================================


def predict_spread_pattern(
    index: SpreadIndex,
    incident: Incident,
    wind_bearing_deg: float,
    radius_km: float = SIMILAR_RADIUS_KM,
    max_analogs: int = MAX_ANALOGS,
    high_confidence_min: int = HIGH_CONFIDENCE_MIN,
    medium_confidence_min: int = MEDIUM_CONFIDENCE_MIN,
) -> SpreadPrediction:
    """
    Predict the directional spread of an incident from historical analogs.

    Parameters
    ----------
    index : SpreadIndex
        Historical fire index.
    incident : Incident
        Current incident; only its location is used for analog selection.
    wind_bearing_deg : float
        Direction the wind is blowing from (degrees).
    radius_km : float
        Search radius for analogs.
    max_analogs : int
        Maximum number of analogs aggregated.

    Returns
    -------
    SpreadPrediction
        With ``likely_direction="UNKNOWN"`` and low confidence when no
        analog is found.
    """
    similar_fires = index.find_similar(incident, radius_km=radius_km, limit=max_analogs)

    if not similar_fires:
        logger.info(
            f"No historical analogs within {radius_km:g}km of "
            f"({incident.lat:.4f}, {incident.lon:.4f})"
        )
        return SpreadPrediction(
            likely_direction="UNKNOWN",
            expected_rates=ExpectedRates(),
            confidence="low",
            reasoning=["No similar historical fires found in the area"],
        )

    stats = calculate_spread_statistics(similar_fires)
    wind_cardinal = degrees_to_cardinal16(wind_bearing_deg)

    reasoning = [
        f"Found {len(similar_fires)} similar fires within {radius_km:g}km",
        f"Historical dominant direction: {stats.dominant_direction}",
        f"Current wind from {wind_cardinal} ({wind_bearing_deg:g}°)",
        (
            f"Avg expansion rates: N {stats.avg_north_rate:.2f} km/h, "
            f"S {stats.avg_south_rate:.2f} km/h, "
            f"E {stats.avg_east_rate:.2f} km/h, "
            f"W {stats.avg_west_rate:.2f} km/h"
        ),
    ]

    confidence = confidence_for_count(len(similar_fires), high_confidence_min, medium_confidence_min)
    logger.debug(
        f"Predicted {stats.dominant_direction} spread from {len(similar_fires)} analogs "
        f"({confidence} confidence)"
    )

    return SpreadPrediction(
        likely_direction=stats.dominant_direction,
        expected_rates=ExpectedRates(
            north=stats.avg_north_rate,
            south=stats.avg_south_rate,
            east=stats.avg_east_rate,
            west=stats.avg_west_rate,
        ),
        confidence=confidence,
        reasoning=reasoning,
        avg_elongation=stats.avg_elongation,
        similar_fires=similar_fires,
    )
