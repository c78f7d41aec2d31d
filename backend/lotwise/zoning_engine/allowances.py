"""
Zoning allowance calculator: current zoning, SSMUH (Bill 44) and TOD (Bill 47).

Three regimes can apply to the same parcel at once:

  - Current zoning: the as-of-right allowance from the local zoning table.
  - SSMUH: small-scale multi-unit housing on single-family / duplex lots in
    municipalities over 5,000 people inside an urban containment boundary.
      * lot <= 280 m2               -> 3 units
      * lot >  280 m2               -> 4 units
      * lot >= 281 m2 and frequent
        transit within 400 m        -> 6 units
  - TOD: minimum densities around rapid-transit stations.
      * <= 200 m  -> 12 units / 20 storeys / 5.0 FSR
      * <= 400 m  ->  8 units / 12 storeys / 4.0 FSR
      * <= 800 m  ->  6 units /  8 storeys / 3.0 FSR

The maximum potential is the regime with the most units, ties resolved in
the order current, SSMUH, TOD.
"""

from __future__ import annotations

import logging
from typing import Optional

from lotwise.models.schemas import (
    Allowance,
    AllowanceSet,
    MaximumPotential,
    Pathway,
    TodAllowance,
    TransitProfile,
    sqft_to_m2,
)
from lotwise.zoning_engine.rule_tables import (
    RuleBook,
    get_default_rulebook,
    normalize_zoning_key,
)

logger = logging.getLogger(__name__)

SSMUH_MIN_POPULATION = 5000
SSMUH_SMALL_LOT_M2 = 280
SSMUH_SIXPLEX_MIN_LOT_M2 = 281
SSMUH_ZONE_MARKERS = ("RS", "RT", "R1", "R2")

# (distance band, units, storeys, fsr), tightest band first
TOD_TIERS = [
    ("200m", 12, 20, 5.0),
    ("400m", 8, 12, 4.0),
    ("800m", 6, 8, 3.0),
]


def is_single_family_or_duplex(zoning: Optional[str]) -> bool:
    code = (zoning or "").upper()
    return any(marker in code for marker in SSMUH_ZONE_MARKERS)


def current_allowance(zoning: Optional[str], rules: Optional[RuleBook] = None) -> Allowance:
    """As-of-right allowance for a zoning code.

    Unknown codes fall back to the most restrictive entry (1 unit, 2 storeys,
    0.6 FSR).
    """
    rules = rules or get_default_rulebook()
    key = normalize_zoning_key(zoning)
    rule = rules.zoning_allowance(key)
    if rule is None:
        logger.debug("Zoning %r not in tables; using restrictive default", zoning)
        rule = rules.default_allowance()
        reason = f"Zoning {key or 'unknown'} not in tables, restrictive default applied"
    else:
        reason = f"{key} as-of-right zoning"
    return Allowance(
        units=rule.units,
        storeys=rule.storeys,
        fsr=rule.fsr,
        eligible=True,
        reason=reason,
    )


def ssmuh_allowance(
    municipality: str,
    lot_size_sqft: float,
    zoning: Optional[str],
    transit: TransitProfile,
    rules: Optional[RuleBook] = None,
    current: Optional[Allowance] = None,
) -> Allowance:
    """Small-scale multi-unit housing allowance.

    Storeys and FSR mirror the current-zoning allowance; SSMUH only changes
    the unit count.
    """
    rules = rules or get_default_rulebook()
    current = current or current_allowance(zoning, rules)

    def _ineligible(reason: str) -> Allowance:
        return Allowance(
            units=1, storeys=current.storeys, fsr=current.fsr,
            eligible=False, reason=reason,
        )

    if rules.population(municipality) <= SSMUH_MIN_POPULATION:
        return _ineligible("Municipality population 5,000 or less")
    if not rules.in_urban_containment(municipality):
        return _ineligible("Outside urban containment boundary")
    if not is_single_family_or_duplex(zoning):
        return _ineligible("Not a single-family or duplex zone")

    lot_m2 = sqft_to_m2(lot_size_sqft)
    if lot_m2 > SSMUH_SMALL_LOT_M2:
        if transit.frequent_transit.within_400m and lot_m2 >= SSMUH_SIXPLEX_MIN_LOT_M2:
            units, reason = 6, "Within 400m of frequent transit, lot over 280m²"
        else:
            units, reason = 4, "Lot over 280m², 4-plex allowed"
    else:
        units, reason = 3, "Lot under 280m², 3-plex allowed"

    return Allowance(
        units=units, storeys=current.storeys, fsr=current.fsr,
        eligible=True, reason=reason,
    )


def tod_allowance(transit: TransitProfile) -> TodAllowance:
    """Transit-oriented development tier from rapid-transit proximity."""
    rapid = transit.rapid_transit
    flags = {"200m": rapid.within_200m, "400m": rapid.within_400m, "800m": rapid.within_800m}
    for zone, units, storeys, fsr in TOD_TIERS:
        if flags[zone]:
            return TodAllowance(
                units=units, storeys=storeys, fsr=fsr,
                eligible=True, tod_zone=zone,
                reason=f"Within {zone} of rapid transit",
            )
    return TodAllowance(
        units=0, storeys=0, fsr=0, eligible=False, tod_zone="none",
        reason="Not within 800m of rapid transit",
    )


def maximum_potential(
    current: Allowance,
    ssmuh: Allowance,
    tod: TodAllowance,
) -> MaximumPotential:
    """Regime with the most units; earlier regimes win ties."""
    options = [
        (Pathway.CURRENT, current.units, current.storeys, current.fsr),
        (Pathway.SSMUH, ssmuh.units, current.storeys, current.fsr),
        (Pathway.TOD, tod.units, tod.storeys, tod.fsr),
    ]
    best = options[0]
    for option in options[1:]:
        if option[1] > best[1]:
            best = option
    pathway, units, storeys, fsr = best
    return MaximumPotential(units=units, storeys=storeys, fsr=fsr, pathway=pathway)


def calculate_allowances(
    municipality: str,
    lot_size_sqft: float,
    zoning: Optional[str],
    transit: TransitProfile,
    rules: Optional[RuleBook] = None,
) -> AllowanceSet:
    """Compute all three regimes and the maximum potential for a parcel."""
    rules = rules or get_default_rulebook()
    current = current_allowance(zoning, rules)
    ssmuh = ssmuh_allowance(municipality, lot_size_sqft, zoning, transit, rules, current=current)
    tod = tod_allowance(transit)
    return AllowanceSet(
        current=current,
        ssmuh=ssmuh,
        tod=tod,
        maximum_potential=maximum_potential(current, ssmuh, tod),
    )
