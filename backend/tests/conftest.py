"""Shared fixtures: rule books with test municipalities."""

from __future__ import annotations

import pytest

from lotwise.zoning_engine.rule_tables import RuleTables, StaticRuleBook


def make_test_tables() -> RuleTables:
    """Built-in tables plus 'Testville' (pop. 90,000, transit-served) and 'Smalltown' (pop. 4,000)."""
    base = RuleTables.builtin()
    data = base.model_dump()
    data["version"] = "test-1"
    data["populations"] = {**base.populations, "testville": 90000, "smalltown": 4000}
    data["urban_containment"] = [*base.urban_containment, "testville", "smalltown"]
    data["rapid_transit"] = [*base.rapid_transit, "testville"]
    data["frequent_transit"] = [*base.frequent_transit, "testville"]
    return RuleTables.model_validate(data)


@pytest.fixture
def test_rules() -> StaticRuleBook:
    return StaticRuleBook(make_test_tables())
