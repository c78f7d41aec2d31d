"""
Scenario scoring, ranking and recommendation.

Score = 0.40 * ROI/100
      + 0.25 * (compliance checks passed / 6)
      + 0.20 * min(units / 6, 1)
      + 0.15 * max(0, (5 - risk factors) / 5)

The recommended scenario is the one with the strictly greatest score;
ties go to the scenario generated first.
"""

from __future__ import annotations

from lotwise.models.schemas import DevelopmentScenario, ScenarioCompliance, ScenarioRank

SCORING_WEIGHTS: dict[str, float] = {
    "roi": 0.40,
    "compliance": 0.25,
    "density": 0.20,
    "risk": 0.15,
}

DENSITY_TARGET_UNITS = 6
RISK_CEILING = 5


def score_scenario(scenario: DevelopmentScenario) -> float:
    compliance_ratio = scenario.compliance.compliant_count() / ScenarioCompliance.total_checks()
    density = min(scenario.total_units / DENSITY_TARGET_UNITS, 1.0)
    risk = max(0.0, (RISK_CEILING - len(scenario.risk_factors)) / RISK_CEILING)
    return (
        SCORING_WEIGHTS["roi"] * scenario.financials.roi_pct / 100
        + SCORING_WEIGHTS["compliance"] * compliance_ratio
        + SCORING_WEIGHTS["density"] * density
        + SCORING_WEIGHTS["risk"] * risk
    )


def score_scenarios(scenarios: list[DevelopmentScenario]) -> list[DevelopmentScenario]:
    """Copies of the scenarios with ``score`` filled in; inputs are untouched."""
    return [s.model_copy(update={"score": score_scenario(s)}) for s in scenarios]


def select_recommended(scenarios: list[DevelopmentScenario]) -> DevelopmentScenario:
    if not scenarios:
        raise ValueError("no scenarios to select from")
    best = scenarios[0]
    best_score = score_scenario(best)
    for scenario in scenarios[1:]:
        score = score_scenario(scenario)
        if score > best_score:
            best, best_score = scenario, score
    return best


def rank_scenarios(scenarios: list[DevelopmentScenario]) -> list[ScenarioRank]:
    """Rank by score, highest first; equal scores keep generation order.

    Rank 1 is always the scenario ``select_recommended`` returns.
    """
    scored = [(score_scenario(s), idx, s) for idx, s in enumerate(scenarios)]
    scored.sort(key=lambda item: (-item[0], item[1]))
    return [
        ScenarioRank(
            name=s.name,
            score=round(score, 4),
            rank=position + 1,
            is_recommended=position == 0,
        )
        for position, (score, _, s) in enumerate(scored)
    ]
