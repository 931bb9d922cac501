"""
Firesight: Historical Fire-Pattern Analytics
============================================

Quantitative, explainable tactical context for an active wildfire derived
from historical fire perimeters and Incident Action Plans (IAPs).

The system integrates:
- Perimeter geometry processing (directional extents, shape, growth)
- A spatial and textual index over historical fires
- Directional spread prediction from historical analogs
- Terrain metrics (slope, aspect, ridgelines) and tactical interpretation
- Relevance scoring of historical IAPs with supporting text snippets

Modules
-------
config : Configuration loading and validation
errors : Dependency-unavailability exceptions
geometry : Great-circle distance, bearing and cardinal labels
incident : Current incident and weather context
perimeter : Perimeter processing and batch statistics
spread_index : Four-direction spread summaries and the historical fire index
prediction : Spread prediction from historical analogs
terrain : Terrain metrics, elevation providers and tactical assessment
iap : IAP similarity matching
io : Dataset readers and writers
engine : Query facade and incident briefings
"""

__version__ = "0.1.0"

from firesight.errors import DatasetUnavailableError, ElevationUnavailableError, FiresightError
from firesight.incident import FuelType, Incident, Weather
from firesight.perimeter import (
    ProcessedPerimeter,
    RawFirePolygon,
    process_all_perimeters,
    process_fire_perimeter,
)
from firesight.prediction import SpreadPrediction, predict_spread_pattern
from firesight.spread_index import DirectionalSpread, SpreadIndex
from firesight.terrain import TerrainAnalyzer, TerrainMetrics

__all__ = [
    "__version__",
    "DatasetUnavailableError",
    "DirectionalSpread",
    "ElevationUnavailableError",
    "FiresightError",
    "FuelType",
    "Incident",
    "ProcessedPerimeter",
    "RawFirePolygon",
    "SpreadIndex",
    "SpreadPrediction",
    "TerrainAnalyzer",
    "TerrainMetrics",
    "Weather",
    "predict_spread_pattern",
    "process_all_perimeters",
    "process_fire_perimeter",
]
