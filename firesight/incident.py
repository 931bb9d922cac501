"""
Current-incident context consumed by the prediction, terrain and IAP components.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from firesight.geometry import ACRES_PER_KM2


class FuelType(str, Enum):
    """Fuel category proxy for an incident or historical document."""

    GRASS = "grass"
    BRUSH = "brush"
    MIXED = "mixed"
    CHAPARRAL = "chaparral"


@dataclass(frozen=True)
class Incident:
    """
    An active incident.

    Either ``radius_m`` (estimated perimeter radius) or ``acres`` should be
    given; ``estimated_acres`` prefers the explicit acreage.
    """

    lat: float
    lon: float
    fuel: FuelType
    radius_m: float | None = None
    acres: float | None = None
    incident_id: str = ""
    name: str = ""

    def __post_init__(self):
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lon <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lon}")
        if not isinstance(self.fuel, FuelType):
            object.__setattr__(self, "fuel", FuelType(self.fuel))

    @property
    def estimated_acres(self) -> float:
        """Current size in acres, estimated from the radius if needed."""
        if self.acres is not None:
            return float(self.acres)
        if self.radius_m is None:
            return 0.0
        radius_km = self.radius_m / 1000.0
        return math.pi * radius_km * radius_km * ACRES_PER_KM2


@dataclass(frozen=True)
class Weather:
    """Current weather at the incident."""

    wind_speed_mps: float
    wind_bearing_deg: float
    humidity_pct: float
    temperature_c: float | None = None
