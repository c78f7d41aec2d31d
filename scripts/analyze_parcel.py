#!/usr/bin/env python3
"""
Run the parcel development engine against sample BC parcels.

Runs full analysis on sample parcels and prints allowances, scenarios and the
recommendation for manual review.  Can be run against the live API or by
importing the engine directly.

Usage:
    # Against live API:
    python3 scripts/analyze_parcel.py --api http://localhost:8000

    # Direct import (no server needed):
    python3 scripts/analyze_parcel.py

    # Write full JSON reports:
    python3 scripts/analyze_parcel.py --json out/
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from datetime import datetime

# Add backend to path for direct import mode
SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
BACKEND_DIR = os.path.join(os.path.dirname(SCRIPT_DIR), "backend")
sys.path.insert(0, BACKEND_DIR)

# ──────────────────────────────────────────────────────────────────
# SAMPLE PARCELS
# ──────────────────────────────────────────────────────────────────

SAMPLE_PARCELS = [
    {
        "name": "RS-1 near frequent bus (Maple Ridge)",
        "request": {
            "address": "22000 Dewdney Trunk Rd",
            "municipality": "Maple Ridge",
            "lot_size_sqft": 6820,
            "zoning": "RS-1",
            "assessed_value": 1_150_000,
        },
        "verify": [
            "SSMUH eligible, 4 units (no frequent transit in Maple Ridge)",
            "Fourplex and six-unit scenarios generated",
        ],
    },
    {
        "name": "RS-1 by SkyTrain (Vancouver, Joyce-Collingwood)",
        "request": {
            "address": "5100 Joyce St",
            "municipality": "Vancouver",
            "lot_size_sqft": 6820,
            "zoning": "RS-1",
            "assessed_value": 2_100_000,
            "rapid_transit_distance_m": 150,
            "frequent_transit_distance_m": 150,
        },
        "verify": [
            "TOD Tier 1: 12 units / 20 storeys / 5.0 FSR",
            "Maximum potential via TOD",
            "No parking required",
        ],
    },
    {
        "name": "Small lot (Burnaby)",
        "request": {
            "address": "4500 Kingsway",
            "municipality": "Burnaby",
            "lot_size_sqft": 2800,
            "zoning": "R1",
            "assessed_value": 1_400_000,
        },
        "verify": [
            "SSMUH 3-plex (lot under 280m²)",
            "Only the single-family-with-suite scenario",
        ],
    },
    {
        "name": "Unknown municipality (defaults)",
        "request": {
            "address": "1 Main St",
            "municipality": "Hope",
        },
        "verify": [
            "Defaults applied for zoning, lot size and assessed value",
            "SSMUH ineligible (outside urban containment)",
        ],
    },
]


# ──────────────────────────────────────────────────────────────────
# DIRECT ENGINE MODE (no server needed)
# ──────────────────────────────────────────────────────────────────

async def run_direct_analysis(request: dict) -> dict:
    """Run analysis by importing the engine directly."""
    from lotwise.models.schemas import AnalyzeRequest
    from lotwise.services.aggregator import ReportAggregator
    from lotwise.services.municipal_data import StaticMunicipalProvider

    aggregator = ReportAggregator(regulatory_provider=StaticMunicipalProvider())
    report = await aggregator.build(AnalyzeRequest(**request))
    return report.model_dump(mode="json")


async def run_api_analysis(request: dict, api_base: str) -> dict:
    """Run analysis via the HTTP API."""
    import httpx
    async with httpx.AsyncClient(timeout=60) as client:
        resp = await client.post(f"{api_base}/api/v1/analyze", json=request)
        if resp.status_code != 200:
            return {"error": f"API returned {resp.status_code}: {resp.text[:500]}"}
        return resp.json()


# ──────────────────────────────────────────────────────────────────
# OUTPUT FORMATTING
# ──────────────────────────────────────────────────────────────────

def format_result(sample: dict, result: dict) -> str:
    """Format a single analysis for console output."""
    lines = []
    lines.append(f"\n{'='*70}")
    lines.append(f"PARCEL: {sample['name']}")
    lines.append(f"{'='*70}")

    if "error" in result:
        lines.append(f"  ERROR: {result['error']}")
        return "\n".join(lines)

    plan = result["plan"]
    parcel = plan["parcel"]
    lines.append(f"  Address:  {parcel['address']}, {parcel['municipality']}")
    lines.append(f"  Zoning:   {parcel['zoning']}   Lot: {parcel['lot_size_sqft']:,.0f} SF")
    if result.get("defaults_applied"):
        lines.append(f"  Defaults: {', '.join(result['defaults_applied'])}")

    allowances = plan["allowances"]
    lines.append("\n  ALLOWANCES:")
    for key in ("current", "ssmuh", "tod"):
        a = allowances[key]
        flag = "" if a["eligible"] else "  (ineligible)"
        lines.append(
            f"    {key:<8} {a['units']:>2} units, {a['storeys']:g} storeys, "
            f"{a['fsr']:g} FSR{flag}  {a['reason']}"
        )
    mp = allowances["maximum_potential"]
    lines.append(f"    MAX      {mp['units']:>2} units via {mp['pathway']}")

    compliance = plan["compliance"]
    lines.append(f"\n  DENSITY:  {compliance['density_tier']}")
    lines.append(f"  PARKING:  {'required' if compliance['parking_required'] else 'not required'}")

    lines.append(f"\n  SCENARIOS ({len(plan['scenarios'])}):")
    for s in plan["scenarios"]:
        fin = s["financials"]
        lines.append(f"\n    {s['name']}:")
        lines.append(f"      Units:   {s['total_units']}   GFA: {s['total_gfa_sqft']:,.0f} SF")
        lines.append(f"      Height:  {s['building_height_m']:g} m ({s['construction_type']})")
        lines.append(f"      Cost:    ${fin['total_project_cost']:,.0f}   ROI: {fin['roi_pct']:.1f}%")
        lines.append(f"      Score:   {s['score']:.4f}")

    lines.append(f"\n  RECOMMENDED: {plan['recommended_scenario']['name']}")
    ctx = result.get("market_context", {})
    if ctx:
        lines.append(f"  VIABILITY:   {ctx['development_viability']} ({ctx['expected_roi_pct']:.1f}% ROI)")

    lines.append("\n  VERIFY:")
    for v in sample.get("verify", []):
        lines.append(f"    [ ] {v}")
    return "\n".join(lines)


# ──────────────────────────────────────────────────────────────────
# MAIN
# ──────────────────────────────────────────────────────────────────

async def main():
    parser = argparse.ArgumentParser(description="Run the parcel engine against sample parcels")
    parser.add_argument("--api", default=None, help="API base URL (e.g., http://localhost:8000)")
    parser.add_argument("--parcels", nargs="*", type=int, help="Run specific parcel numbers (1-indexed)")
    parser.add_argument("--json", default=None, help="Directory to write full JSON reports")
    args = parser.parse_args()

    print("\nParcel Development Engine")
    print(f"Date: {datetime.now().strftime('%Y-%m-%d %H:%M')}")
    print(f"Mode: {'API' if args.api else 'Direct Import'}")

    samples = SAMPLE_PARCELS
    if args.parcels:
        samples = [SAMPLE_PARCELS[i-1] for i in args.parcels if 1 <= i <= len(SAMPLE_PARCELS)]

    if args.json:
        os.makedirs(args.json, exist_ok=True)

    results = []
    for i, sample in enumerate(samples, 1):
        print(f"\n>>> Running parcel {i}/{len(samples)}: {sample['name']}...")
        try:
            if args.api:
                result = await run_api_analysis(sample["request"], args.api)
            else:
                result = await run_direct_analysis(sample["request"])
            print(format_result(sample, result))
            if args.json:
                path = os.path.join(args.json, f"parcel_{i}.json")
                with open(path, "w", encoding="utf-8") as f:
                    json.dump(result, f, indent=2)
            results.append({"parcel": sample["name"], "status": "ok"})
        except Exception as e:
            print(f"\n  FAILED: {e}")
            results.append({"parcel": sample["name"], "status": "error", "error": str(e)})

    print(f"\n{'='*70}")
    print("SUMMARY")
    print(f"{'='*70}")
    ok = sum(1 for r in results if r["status"] == "ok")
    print(f"  Completed: {ok}/{len(results)}")
    for r in results:
        if r["status"] == "error":
            print(f"    - {r['parcel']}: {r.get('error', 'unknown')}")
    print()


if __name__ == "__main__":
    asyncio.run(main())
