"""
Shared fixtures for Firesight tests.
"""

import json
import math
from datetime import datetime, timedelta, timezone

import pytest
from shapely.geometry import Polygon, mapping

from firesight.geometry import EARTH_RADIUS_KM
from firesight.iap.records import IAPRecord
from firesight.perimeter import RawFirePolygon

KM_PER_DEG = math.pi * EARTH_RADIUS_KM / 180.0

ALARM = datetime(2020, 8, 1, 12, 0, tzinfo=timezone.utc)
ALARM_MS = int(ALARM.timestamp() * 1000)
HOUR_MS = 3600 * 1000


def rectangle(center_lat, center_lon, half_height_km, half_width_km):
    """Axis-aligned lon/lat rectangle around a centre, sized in km."""
    dlat = half_height_km / KM_PER_DEG
    dlon = half_width_km / (KM_PER_DEG * math.cos(math.radians(center_lat)))
    return Polygon([
        (center_lon - dlon, center_lat - dlat),
        (center_lon + dlon, center_lat - dlat),
        (center_lon + dlon, center_lat + dlat),
        (center_lon - dlon, center_lat + dlat),
        (center_lon - dlon, center_lat - dlat),
    ])


def make_raw(
    name="TEST FIRE",
    year=2020,
    acres=1000.0,
    hours=10.0,
    geometry=None,
    object_id=1,
    center=(37.0, -120.0),
    half_km=(1.0, 1.0),
    incident_number=None,
    irwin_id=None,
):
    """RawFirePolygon with sensible defaults; pass ``hours=None`` to drop containment."""
    if geometry is None:
        geometry = rectangle(center[0], center[1], half_km[0], half_km[1])
    return RawFirePolygon(
        object_id=object_id,
        name=name,
        year=year,
        acres=acres,
        alarm_date=ALARM,
        containment_date=ALARM + timedelta(hours=hours) if hours is not None else None,
        geometry=geometry,
        irwin_id=irwin_id,
        incident_number=incident_number,
    )


def fire_feature(object_id, name, center=(37.0, -120.0), half_km=(1.0, 1.0), year=2020, hours=12, acres=1000.0):
    """A CAL FIRE style GeoJSON feature with epoch-millisecond dates."""
    geometry = mapping(rectangle(center[0], center[1], half_km[0], half_km[1]))
    return {
        "type": "Feature",
        "properties": {
            "OBJECTID": object_id,
            "FIRE_NAME": name,
            "YEAR_": year,
            "GIS_ACRES": acres,
            "ALARM_DATE": ALARM_MS,
            "CONT_DATE": ALARM_MS + hours * HOUR_MS,
        },
        "geometry": geometry,
    }


def write_geojson(path, features):
    with open(path, "w") as f:
        json.dump({"type": "FeatureCollection", "features": features}, f)
    return path


def iap_dict(
    iap_id="iap-1",
    name="Ridge Fire",
    fuel="chaparral",
    wind=10.0,
    humidity=18.0,
    acres=1000.0,
    sections=None,
    lessons=(),
    raw_text="",
    county="Los Angeles",
):
    """An IAP record in the dataset's camelCase JSON form."""
    if sections is None:
        sections = [
            {
                "type": "ICS-202",
                "content": "Protect structures along the highway. Strong wind gusts expected in the afternoon.",
            }
        ]
    return {
        "id": iap_id,
        "incidentName": name,
        "dateCreated": "2021-07-01",
        "location": {"state": "CA", "county": county},
        "conditions": {
            "fuel": fuel,
            "weather": {"windSpeedMps": wind, "humidityPct": humidity},
            "acres": acres,
        },
        "sections": sections,
        "tacticalLessons": list(lessons),
        "rawText": raw_text,
    }


@pytest.fixture
def square_fire():
    """1,000 acre square fire grown over 10 hours."""
    side_km = math.sqrt(1000 * 0.00404686)
    return make_raw(acres=1000.0, hours=10.0, half_km=(side_km / 2, side_km / 2))


@pytest.fixture
def iap_record():
    return IAPRecord.model_validate(iap_dict())


@pytest.fixture
def iap_payload():
    return {
        "iaps": [
            iap_dict(),
            iap_dict(
                iap_id="iap-2",
                name="Valley Fire",
                fuel="grass",
                wind=3.0,
                humidity=60.0,
                acres=50000.0,
                sections=[{"type": "ICS-205", "content": "Command channel 1."}],
            ),
        ]
    }


@pytest.fixture
def project_dir(tmp_path, iap_payload):
    """A project directory with perimeters, IAPs and a firesight.yaml."""
    features = [
        fire_feature(i + 1, f"FIRE {i}", center=(34.2 + 0.02 * i, -118.5), half_km=(2.0, 1.0), year=2010 + i)
        for i in range(6)
    ]
    write_geojson(tmp_path / "perimeters.geojson", features)
    with open(tmp_path / "iaps.json", "w") as f:
        json.dump(iap_payload, f)
    (tmp_path / "firesight.yaml").write_text(
        "project:\n"
        "  name: test\n"
        "data:\n"
        "  perimeters_path: ./perimeters.geojson\n"
        "  iap_path: ./iaps.json\n"
        "output:\n"
        "  log_level: WARNING\n"
    )
    return tmp_path
