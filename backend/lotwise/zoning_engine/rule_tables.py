"""
Versioned statutory rule tables for BC municipalities.

Everything the engine needs to know about a municipality (population,
urban-containment status, transit service, current-zoning allowances,
amenity contributions) lives in one ``RuleTables`` document.  The engine
never reads the tables directly; it asks a ``RuleBook`` (a small capability
interface) so a jurisdiction can be swapped in without touching engine code.

The built-in tables reflect Metro Vancouver municipalities as of the 2024
provincial housing legislation (Bill 44 SSMUH, Bill 47 TOD).  A replacement
table set can be loaded from JSON::

    tables = RuleTables.from_json_file("rules/2025.json")
    rules = StaticRuleBook(tables)
"""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from typing import Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from lotwise.config import settings

logger = logging.getLogger(__name__)


class ZoningAllowanceRule(BaseModel):
    units: int = Field(ge=0)
    storeys: float = Field(ge=0)
    fsr: float = Field(ge=0)


class Station(BaseModel):
    name: str
    latitude: float
    longitude: float


def normalize_municipality(name: Optional[str]) -> str:
    """Lower-case, whitespace-collapsed municipality key ('' for None)."""
    if not name:
        return ""
    return " ".join(name.lower().split())


def normalize_zoning_key(code: Optional[str]) -> str:
    """Upper-case two-token zoning prefix: 'rs-1-a' -> 'RS-1'."""
    if not code:
        return ""
    return "-".join(code.strip().upper().split("-")[:2])


# ──────────────────────────────────────────────────────────────────
# BUILT-IN TABLES
# ──────────────────────────────────────────────────────────────────

_POPULATIONS: dict[str, int] = {
    "vancouver": 695263,
    "surrey": 568322,
    "burnaby": 249125,
    "richmond": 209937,
    "coquitlam": 148625,
    "maple ridge": 82256,
    "langley": 132603,
    "north vancouver": 85935,
    "west vancouver": 44122,
    "new westminster": 78916,
    "white rock": 21939,
    "delta": 108455,
    "abbotsford": 153524,
    "chilliwack": 93203,
    "mission": 41519,
    "pitt meadows": 18573,
    "port coquitlam": 61498,
    "port moody": 33551,
}

_RAPID_TRANSIT = [
    "vancouver", "burnaby", "richmond", "surrey",
    "new westminster", "coquitlam", "port moody",
]

_FREQUENT_TRANSIT = [
    "vancouver", "burnaby", "richmond", "surrey", "coquitlam", "new westminster",
]

_STATION_TYPES: dict[str, str] = {
    "vancouver": "SkyTrain (Expo/Millennium)",
    "burnaby": "SkyTrain (Expo/Millennium)",
    "richmond": "Canada Line",
    "surrey": "SkyTrain Extension",
    "new westminster": "SkyTrain (Expo)",
    "coquitlam": "SkyTrain (Millennium)",
    "port moody": "SkyTrain (Millennium)",
}

_TRANSIT_FREQUENCIES: dict[str, str] = {
    "vancouver": "Peak: 2-3 min | Off-peak: 6 min",
    "burnaby": "Peak: 2-5 min | Off-peak: 6 min",
    "richmond": "Peak: 2-4 min | Off-peak: up to 20 min",
    "surrey": "Peak: 2-7 min | Off-peak: 6 min",
    "new westminster": "Peak: 2-3 min | Off-peak: 6 min",
    "coquitlam": "Peak: 2-5 min | Off-peak: 6 min",
    "port moody": "Peak: 2-5 min | Off-peak: 6 min",
}

# Approximate platform coordinates (WGS84)
_STATIONS: dict[str, list[tuple[str, float, float]]] = {
    "vancouver": [
        ("Waterfront", 49.2859, -123.1118),
        ("Granville", 49.2832, -123.1161),
        ("Main Street-Science World", 49.2731, -123.1004),
        ("Commercial-Broadway", 49.2625, -123.0692),
        ("Broadway-City Hall", 49.2628, -123.1146),
        ("King Edward", 49.2492, -123.1156),
        ("Oakridge-41st Avenue", 49.2334, -123.1167),
        ("Marine Drive", 49.2096, -123.1170),
        ("Nanaimo", 49.2483, -123.0559),
        ("29th Avenue", 49.2443, -123.0460),
        ("Joyce-Collingwood", 49.2384, -123.0318),
        ("Renfrew", 49.2589, -123.0453),
        ("Rupert", 49.2607, -123.0328),
    ],
    "burnaby": [
        ("Patterson", 49.2297, -123.0126),
        ("Metrotown", 49.2258, -123.0039),
        ("Royal Oak", 49.2200, -122.9885),
        ("Edmonds", 49.2123, -122.9593),
        ("Gilmore", 49.2649, -123.0136),
        ("Brentwood Town Centre", 49.2664, -123.0016),
        ("Holdom", 49.2647, -122.9821),
        ("Sperling-Burnaby Lake", 49.2593, -122.9640),
        ("Lake City Way", 49.2545, -122.9390),
        ("Production Way-University", 49.2534, -122.9182),
        ("Lougheed Town Centre", 49.2485, -122.8971),
    ],
    "richmond": [
        ("Bridgeport", 49.1955, -123.1259),
        ("Aberdeen", 49.1842, -123.1364),
        ("Lansdowne", 49.1747, -123.1364),
        ("Richmond-Brighouse", 49.1681, -123.1364),
    ],
    "surrey": [
        ("Scott Road", 49.2044, -122.8742),
        ("Gateway", 49.1990, -122.8507),
        ("Surrey Central", 49.1897, -122.8479),
        ("King George", 49.1827, -122.8448),
    ],
    "new westminster": [
        ("22nd Street", 49.2000, -122.9489),
        ("New Westminster", 49.2013, -122.9126),
        ("Columbia", 49.2048, -122.9061),
        ("Sapperton", 49.2247, -122.8894),
        ("Braid", 49.2334, -122.8829),
    ],
    "coquitlam": [
        ("Burquitlam", 49.2613, -122.8899),
        ("Coquitlam Central", 49.2741, -122.8000),
        ("Lincoln", 49.2805, -122.7940),
        ("Lafarge Lake-Douglas", 49.2856, -122.7916),
    ],
    "port moody": [
        ("Moody Centre", 49.2779, -122.8459),
        ("Inlet Centre", 49.2771, -122.8279),
    ],
}


def _builtin_tables() -> "RuleTables":
    return RuleTables(
        version="bc-2024.1",
        zoning_allowances={
            "RS-1": ZoningAllowanceRule(units=1, storeys=2, fsr=0.6),
            "RS-2": ZoningAllowanceRule(units=1, storeys=2, fsr=0.7),
            "RS-3": ZoningAllowanceRule(units=2, storeys=2, fsr=0.8),
            "RT-1": ZoningAllowanceRule(units=2, storeys=2.5, fsr=0.75),
            "RM-1": ZoningAllowanceRule(units=4, storeys=3, fsr=1.2),
        },
        default_allowance=ZoningAllowanceRule(units=1, storeys=2, fsr=0.6),
        populations=dict(_POPULATIONS),
        urban_containment=sorted(_POPULATIONS),
        rapid_transit=list(_RAPID_TRANSIT),
        frequent_transit=list(_FREQUENT_TRANSIT),
        station_types=dict(_STATION_TYPES),
        transit_frequencies=dict(_TRANSIT_FREQUENCIES),
        stations={
            city: [Station(name=n, latitude=lat, longitude=lng) for n, lat, lng in rows]
            for city, rows in _STATIONS.items()
        },
        transit_scores={"vancouver": 85, "burnaby": 75, "richmond": 70},
        amenity_contributions={"vancouver": 25000},
        construction_costs_psf={
            "vancouver": 280, "burnaby": 260, "richmond": 250, "surrey": 240,
        },
    )


# ──────────────────────────────────────────────────────────────────
# TABLE DOCUMENT
# ──────────────────────────────────────────────────────────────────

class RuleTables(BaseModel):
    """A complete, versioned set of jurisdiction tables."""
    version: str
    zoning_allowances: dict[str, ZoningAllowanceRule] = {}
    default_allowance: ZoningAllowanceRule = ZoningAllowanceRule(units=1, storeys=2, fsr=0.6)
    populations: dict[str, int] = {}
    default_population: int = 15000
    urban_containment: list[str] = []
    rapid_transit: list[str] = []
    frequent_transit: list[str] = []
    station_types: dict[str, str] = {}
    default_station_type: str = "Bus Service"
    transit_frequencies: dict[str, str] = {}
    default_frequency: str = "15-30 min bus service"
    stations: dict[str, list[Station]] = {}
    transit_scores: dict[str, int] = {}
    default_transit_score: int = 60
    amenity_contributions: dict[str, float] = {}
    default_amenity_contribution: float = 15000
    construction_costs_psf: dict[str, float] = {}
    default_construction_cost_psf: float = 250

    @classmethod
    def builtin(cls) -> "RuleTables":
        return _builtin_tables()

    @classmethod
    def from_json_file(cls, path: str) -> "RuleTables":
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return cls.model_validate(data)


# ──────────────────────────────────────────────────────────────────
# LOOKUP INTERFACE
# ──────────────────────────────────────────────────────────────────

@runtime_checkable
class RuleBook(Protocol):
    """Jurisdiction capabilities the engine depends on."""

    @property
    def version(self) -> str: ...

    def population(self, municipality: str) -> int: ...

    def in_urban_containment(self, municipality: str) -> bool: ...

    def has_rapid_transit(self, municipality: str) -> bool: ...

    def has_frequent_transit(self, municipality: str) -> bool: ...

    def station_type(self, municipality: str) -> str: ...

    def transit_frequency(self, municipality: str) -> str: ...

    def stations(self, municipality: str) -> list[Station]: ...

    def zoning_allowance(self, zoning: str) -> Optional[ZoningAllowanceRule]: ...

    def default_allowance(self) -> ZoningAllowanceRule: ...

    def transit_score(self, municipality: str) -> int: ...

    def amenity_contribution(self, municipality: str) -> float: ...

    def construction_cost_psf(self, municipality: str) -> float: ...


class StaticRuleBook:
    """RuleBook backed by an in-memory ``RuleTables`` document."""

    def __init__(self, tables: RuleTables):
        self.tables = tables
        # Normalize keys once so lookups are case/whitespace-insensitive
        self._populations = {normalize_municipality(k): v for k, v in tables.populations.items()}
        self._containment = {normalize_municipality(m) for m in tables.urban_containment}
        self._rapid = {normalize_municipality(m) for m in tables.rapid_transit}
        self._frequent = {normalize_municipality(m) for m in tables.frequent_transit}
        self._zoning = {normalize_zoning_key(k): v for k, v in tables.zoning_allowances.items()}

    @property
    def version(self) -> str:
        return self.tables.version

    def _lookup(self, table: dict, municipality: str, default):
        key = normalize_municipality(municipality)
        for k, v in table.items():
            if normalize_municipality(k) == key:
                return v
        return default

    def population(self, municipality: str) -> int:
        key = normalize_municipality(municipality)
        return self._populations.get(key, self.tables.default_population)

    def in_urban_containment(self, municipality: str) -> bool:
        return normalize_municipality(municipality) in self._containment

    def has_rapid_transit(self, municipality: str) -> bool:
        return normalize_municipality(municipality) in self._rapid

    def has_frequent_transit(self, municipality: str) -> bool:
        return normalize_municipality(municipality) in self._frequent

    def station_type(self, municipality: str) -> str:
        return self._lookup(self.tables.station_types, municipality, self.tables.default_station_type)

    def transit_frequency(self, municipality: str) -> str:
        return self._lookup(self.tables.transit_frequencies, municipality, self.tables.default_frequency)

    def stations(self, municipality: str) -> list[Station]:
        return self._lookup(self.tables.stations, municipality, [])

    def zoning_allowance(self, zoning: str) -> Optional[ZoningAllowanceRule]:
        return self._zoning.get(normalize_zoning_key(zoning))

    def default_allowance(self) -> ZoningAllowanceRule:
        return self.tables.default_allowance

    def transit_score(self, municipality: str) -> int:
        return self._lookup(self.tables.transit_scores, municipality, self.tables.default_transit_score)

    def amenity_contribution(self, municipality: str) -> float:
        return self._lookup(
            self.tables.amenity_contributions, municipality,
            self.tables.default_amenity_contribution,
        )

    def construction_cost_psf(self, municipality: str) -> float:
        return self._lookup(
            self.tables.construction_costs_psf, municipality,
            self.tables.default_construction_cost_psf,
        )


@lru_cache(maxsize=1)
def get_default_rulebook() -> StaticRuleBook:
    """Built-in rule book, or the JSON tables named by ``rule_tables_path``."""
    if settings.rule_tables_path:
        try:
            tables = RuleTables.from_json_file(settings.rule_tables_path)
            logger.info("Loaded rule tables %s from %s", tables.version, settings.rule_tables_path)
            return StaticRuleBook(tables)
        except (OSError, ValueError) as exc:
            logger.warning(
                "Could not load rule tables from %s (%s); using built-in tables",
                settings.rule_tables_path, exc,
            )
    return StaticRuleBook(RuleTables.builtin())
