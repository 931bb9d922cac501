"""
Great-circle geometry helpers for Firesight.

All functions accept scalars or numpy arrays of longitude/latitude in
decimal degrees and return values of the same shape. Distances are in
kilometres on a spherical Earth.
"""

from __future__ import annotations

import numpy as np

# Mean Earth radius (km)
EARTH_RADIUS_KM = 6371.0088

# 1 acre = 0.00404686 km²
KM2_PER_ACRE = 0.00404686
ACRES_PER_KM2 = 247.105

CARDINAL_8 = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")
CARDINAL_16 = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)


# =============================================================================
# Distance and Bearing
# =============================================================================


def haversine_km(lat1, lon1, lat2, lon2):
    """
    Great-circle distance between two points using the haversine formula.

    Parameters
    ----------
    lat1, lon1 : float or np.ndarray
        Start point in degrees.
    lat2, lon2 : float or np.ndarray
        End point in degrees.

    Returns
    -------
    float or np.ndarray
        Distance in kilometres.
    """
    phi1 = np.radians(lat1)
    phi2 = np.radians(lat2)
    dphi = np.radians(np.subtract(lat2, lat1))
    dlam = np.radians(np.subtract(lon2, lon1))

    a = np.sin(dphi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(dlam / 2) ** 2
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def initial_bearing(lat1, lon1, lat2, lon2):
    """
    Initial bearing from point 1 to point 2.

    Returns
    -------
    float or np.ndarray
        Bearing in degrees clockwise from north, normalized to [0, 360).
    """
    phi1 = np.radians(lat1)
    phi2 = np.radians(lat2)
    dlam = np.radians(np.subtract(lon2, lon1))

    y = np.sin(dlam) * np.cos(phi2)
    x = np.cos(phi1) * np.sin(phi2) - np.sin(phi1) * np.cos(phi2) * np.cos(dlam)

    bearing = np.degrees(np.arctan2(y, x))
    return np.mod(bearing + 360.0, 360.0)


def angular_difference(a, b):
    """Smallest absolute difference between two bearings (degrees, 0-180)."""
    diff = np.abs(np.mod(np.subtract(a, b), 360.0))
    return np.minimum(diff, 360.0 - diff)


# =============================================================================
# Cardinal Directions
# =============================================================================


def degrees_to_cardinal(degrees: float) -> str:
    """Convert a bearing to one of 8 compass points (N, NE, ... NW)."""
    index = int(np.floor(np.mod(degrees, 360.0) / 45.0 + 0.5)) % 8
    return CARDINAL_8[index]


def degrees_to_cardinal16(degrees: float) -> str:
    """Convert a bearing to one of 16 compass points (N, NNE, ... NNW)."""
    index = int(np.floor(np.mod(degrees, 360.0) / 22.5 + 0.5)) % 16
    return CARDINAL_16[index]


def cardinal_to_degrees(cardinal: str) -> float:
    """
    Convert a 8- or 16-point compass label to its bearing.

    Raises
    ------
    ValueError
        If the label is not a known compass point.
    """
    label = cardinal.strip().upper()
    if label in CARDINAL_16:
        return CARDINAL_16.index(label) * 22.5
    raise ValueError(f"Unknown cardinal direction: {cardinal}")


# =============================================================================
# Unit Conversion
# =============================================================================


def acres_to_km2(acres):
    """Convert acres to square kilometres."""
    return np.multiply(acres, KM2_PER_ACRE)


def km2_to_acres(km2):
    """Convert square kilometres to acres."""
    return np.multiply(km2, ACRES_PER_KM2)
