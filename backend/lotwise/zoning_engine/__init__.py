from __future__ import annotations

from lotwise.zoning_engine.optimizer import DevelopmentOptimizer
from lotwise.zoning_engine.rule_tables import RuleTables, StaticRuleBook, get_default_rulebook

__all__ = ["DevelopmentOptimizer", "RuleTables", "StaticRuleBook", "get_default_rulebook"]
