"""
Analytics engine facade.

``AnalyticsEngine`` owns the long-lived state the query operations share:
the spread index over historical perimeters, the IAP collection and the
terrain analyzer. Every query is a pure function of its inputs plus that
read-only state, so one engine can serve concurrent callers.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from firesight.config import FiresightConfig
from firesight.iap import Category, IAPInsight, IAPMatcher, IAPRecord, summarize_iaps
from firesight.incident import Incident, Weather
from firesight.io import load_iap_records, read_perimeter_collection
from firesight.prediction import SpreadPrediction, predict_spread_pattern
from firesight.spread_index import SpreadIndex
from firesight.terrain import (
    RasterElevationProvider,
    SyntheticElevationProvider,
    TacticalAssessment,
    TerrainAnalyzer,
    TerrainMetrics,
    assess_terrain_tactical_value,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncidentBriefing:
    """Everything the engine knows about an incident, in one structure."""

    incident: Incident
    weather: Weather
    prediction: SpreadPrediction
    terrain: TerrainMetrics
    assessment: TacticalAssessment
    insights: dict[Category, list[IAPInsight]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "incident": {
                "id": self.incident.incident_id,
                "name": self.incident.name,
                "lat": self.incident.lat,
                "lon": self.incident.lon,
                "fuel": self.incident.fuel.value,
                "estimated_acres": self.incident.estimated_acres,
            },
            "weather": {
                "wind_speed_mps": self.weather.wind_speed_mps,
                "wind_bearing_deg": self.weather.wind_bearing_deg,
                "humidity_pct": self.weather.humidity_pct,
                "temperature_c": self.weather.temperature_c,
            },
            "spread": self.prediction.to_dict(),
            "terrain": self.terrain.to_dict(),
            "tactical_assessment": self.assessment.to_dict(),
            "iap_insights": {
                category.value: [insight.to_dict() for insight in insights]
                for category, insights in self.insights.items()
            },
        }


class AnalyticsEngine:
    """
    Query facade over the spread index, terrain analyzer and IAP matcher.

    Parameters
    ----------
    index : SpreadIndex
        Historical fire index (built lazily on first query).
    terrain_analyzer : TerrainAnalyzer
        Terrain metrics source.
    iap_records : sequence of IAPRecord
        Static IAP collection; may be empty.
    config : FiresightConfig, optional
        Supplies query defaults; library defaults are used without it.
    """

    def __init__(
        self,
        index: SpreadIndex,
        terrain_analyzer: TerrainAnalyzer,
        iap_records: Sequence[IAPRecord] = (),
        config: Optional[FiresightConfig] = None,
    ):
        self.index = index
        self.terrain_analyzer = terrain_analyzer
        self.config = config
        if config is not None:
            self.matcher = IAPMatcher(iap_records, config.matcher.min_score, config.matcher.max_insights)
        else:
            self.matcher = IAPMatcher(iap_records)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def predict(self, incident: Incident, wind_bearing_deg: float) -> SpreadPrediction:
        if self.config is None:
            return predict_spread_pattern(self.index, incident, wind_bearing_deg)
        p = self.config.prediction
        return predict_spread_pattern(
            self.index,
            incident,
            wind_bearing_deg,
            radius_km=p.similar_radius_km,
            max_analogs=p.max_analogs,
            high_confidence_min=p.high_confidence_min,
            medium_confidence_min=p.medium_confidence_min,
        )

    def analyze_terrain(self, lat: float, lon: float) -> TerrainMetrics:
        return self.terrain_analyzer.analyze(lat, lon)

    def find_iaps(
        self,
        incident: Incident,
        weather: Weather,
        category: Category,
        terrain: Optional[TerrainMetrics] = None,
    ) -> list[IAPInsight]:
        return self.matcher.match(incident, weather, Category(category), terrain)

    def brief(self, incident: Incident, weather: Weather) -> IncidentBriefing:
        """
        Spread prediction, terrain, tactical assessment and IAP insights
        for every category.

        Raises
        ------
        ElevationUnavailableError
            If the elevation provider cannot serve the incident location.
        """
        logger.info(f"Briefing incident at ({incident.lat:.4f}, {incident.lon:.4f})")
        prediction = self.predict(incident, weather.wind_bearing_deg)
        terrain = self.analyze_terrain(incident.lat, incident.lon)
        insights = {
            category: self.find_iaps(incident, weather, category, terrain)
            for category in Category
        }
        return IncidentBriefing(
            incident=incident,
            weather=weather,
            prediction=prediction,
            terrain=terrain,
            assessment=assess_terrain_tactical_value(terrain),
            insights=insights,
        )

    def summary(self) -> dict[str, Any]:
        return {
            "index": self.index.summary(),
            "iaps": summarize_iaps(self.matcher.records),
        }


def build_engine(config: FiresightConfig) -> AnalyticsEngine:
    """
    Assemble an engine from configuration.

    The perimeter dataset is read when the index is first queried; the IAP
    dataset (if configured) is read immediately.
    """
    perimeters_path = config.data.perimeters_path
    index = SpreadIndex(
        lambda: read_perimeter_collection(perimeters_path),
        grid_size_deg=config.index.grid_size_deg,
    )

    t = config.terrain
    if t.elevation_source == "raster":
        provider = RasterElevationProvider(
            config.data.dem_path,
            spacing_deg=t.sample_offset_deg,
            ridge_threshold_m=t.ridge_threshold_m,
        )
    else:
        logger.warning("Using synthetic elevation; terrain results are placeholders")
        provider = SyntheticElevationProvider(spacing_deg=t.sample_offset_deg)

    analyzer = TerrainAnalyzer(
        provider,
        ridge_threshold_m=t.ridge_threshold_m,
        flat_gradient_threshold=t.flat_gradient_threshold,
    )

    iap_records: list[IAPRecord] = []
    if config.data.iap_path is not None:
        iap_records = load_iap_records(config.data.iap_path)
    else:
        logger.warning("No IAP dataset configured")

    return AnalyticsEngine(index, analyzer, iap_records, config=config)
