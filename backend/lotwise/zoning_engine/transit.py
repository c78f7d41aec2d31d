"""
Transit accessibility classification.

Produces the ``TransitProfile`` that drives SSMUH six-plex eligibility
(frequent transit within 400 m) and the Bill 47 TOD tiers (rapid transit
within 200/400/800 m).

Distances come from a ``DistanceSource``.  Three are provided:

  - ``StationDistanceSource``: geodesic distance from the parcel's
    coordinates to the nearest known rapid-transit station.
  - ``FixedDistanceSource``: distances supplied by the caller.
  - ``UnknownDistanceSource``: no distance information.  Every proximity
    flag is False, which is the conservative reading for eligibility.

A municipality without rapid (or frequent) service is "not served" on that
tier regardless of the distance reported.
"""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from pyproj import Geod

from lotwise.models.schemas import (
    FrequentTransitAccess,
    RapidTransitAccess,
    TransitProfile,
)
from lotwise.zoning_engine.rule_tables import RuleBook, get_default_rulebook

logger = logging.getLogger(__name__)

_GEOD = Geod(ellps="WGS84")

FREQUENT_SERVICE_LEVEL = "15-minute peak service"
LIMITED_SERVICE_LEVEL = "Limited service"
SERVED_BUS_ROUTES = 3
UNSERVED_BUS_ROUTES = 1


# ──────────────────────────────────────────────────────────────────
# DISTANCE SOURCES
# ──────────────────────────────────────────────────────────────────

class DistanceSource(Protocol):
    name: str

    def rapid_transit_distance_m(self, municipality: str) -> Optional[float]: ...

    def frequent_transit_distance_m(self, municipality: str) -> Optional[float]: ...


class UnknownDistanceSource:
    """No location information: every distance is unknown."""
    name = "unknown"

    def rapid_transit_distance_m(self, municipality: str) -> Optional[float]:
        return None

    def frequent_transit_distance_m(self, municipality: str) -> Optional[float]:
        return None


class FixedDistanceSource:
    """Caller-supplied distances (metres); ``None`` means unknown."""
    name = "supplied"

    def __init__(self, rapid_m: Optional[float] = None, frequent_m: Optional[float] = None):
        if rapid_m is not None and rapid_m < 0:
            raise ValueError("rapid transit distance must be non-negative")
        if frequent_m is not None and frequent_m < 0:
            raise ValueError("frequent transit distance must be non-negative")
        self.rapid_m = rapid_m
        self.frequent_m = frequent_m

    def rapid_transit_distance_m(self, municipality: str) -> Optional[float]:
        return self.rapid_m

    def frequent_transit_distance_m(self, municipality: str) -> Optional[float]:
        return self.frequent_m


def supplied_distance_source(
    rapid_m: Optional[float] = None,
    frequent_m: Optional[float] = None,
) -> Optional[FixedDistanceSource]:
    """A FixedDistanceSource when the caller supplied any distance, else None."""
    if rapid_m is None and frequent_m is None:
        return None
    return FixedDistanceSource(rapid_m, frequent_m)


def geodesic_distance_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Ellipsoidal distance in metres between two WGS84 points."""
    _, _, dist = _GEOD.inv(lng1, lat1, lng2, lat2)
    return abs(dist)


class StationDistanceSource:
    """Distance from a point to the nearest rapid-transit station.

    Stations double as frequent-bus exchanges, so the same nearest-station
    distance is reported for the frequent tier.
    """
    name = "stations"

    def __init__(self, latitude: float, longitude: float, rules: Optional[RuleBook] = None):
        self.latitude = latitude
        self.longitude = longitude
        self.rules = rules or get_default_rulebook()

    def _nearest(self, municipality: str) -> Optional[float]:
        stations = self.rules.stations(municipality)
        if not stations:
            return None
        return min(
            geodesic_distance_m(self.latitude, self.longitude, s.latitude, s.longitude)
            for s in stations
        )

    def rapid_transit_distance_m(self, municipality: str) -> Optional[float]:
        return self._nearest(municipality)

    def frequent_transit_distance_m(self, municipality: str) -> Optional[float]:
        return self._nearest(municipality)


def default_distance_source(
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    rules: Optional[RuleBook] = None,
) -> DistanceSource:
    if latitude is not None and longitude is not None:
        return StationDistanceSource(latitude, longitude, rules)
    return UnknownDistanceSource()


# ──────────────────────────────────────────────────────────────────
# CLASSIFIER
# ──────────────────────────────────────────────────────────────────

def _within(distance: Optional[float], limit: float) -> bool:
    return distance is not None and distance <= limit


def classify_transit(
    municipality: str,
    latitude: Optional[float] = None,
    longitude: Optional[float] = None,
    *,
    distance_source: Optional[DistanceSource] = None,
    rules: Optional[RuleBook] = None,
) -> TransitProfile:
    """Classify a parcel's transit accessibility.

    Unknown or empty municipalities yield an all-False profile; this never
    raises for missing data.
    """
    rules = rules or get_default_rulebook()
    source = distance_source or default_distance_source(latitude, longitude, rules)
    municipality = municipality or ""

    rapid_served = bool(municipality) and rules.has_rapid_transit(municipality)
    frequent_served = bool(municipality) and rules.has_frequent_transit(municipality)

    rapid_distance = source.rapid_transit_distance_m(municipality) if rapid_served else None
    frequent_distance = source.frequent_transit_distance_m(municipality) if frequent_served else None

    rapid = RapidTransitAccess(
        within_200m=_within(rapid_distance, 200),
        within_400m=_within(rapid_distance, 400),
        within_800m=_within(rapid_distance, 800),
        station_type=rules.station_type(municipality),
        frequency=rules.transit_frequency(municipality),
        distance_m=round(rapid_distance, 1) if rapid_distance is not None else None,
    )
    frequent = FrequentTransitAccess(
        within_400m=_within(frequent_distance, 400),
        service_level=FREQUENT_SERVICE_LEVEL if frequent_served else LIMITED_SERVICE_LEVEL,
        bus_routes=SERVED_BUS_ROUTES if frequent_served else UNSERVED_BUS_ROUTES,
        distance_m=round(frequent_distance, 1) if frequent_distance is not None else None,
    )

    logger.debug(
        "Transit for %r via %s: rapid=%s frequent=%s",
        municipality, source.name, rapid_distance, frequent_distance,
    )

    return TransitProfile(
        municipality=municipality,
        rapid_transit=rapid,
        frequent_transit=frequent,
        served_by_rapid_transit=rapid_served,
        served_by_frequent_transit=frequent_served,
        distance_source=source.name,
    )
