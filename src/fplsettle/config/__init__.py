"""Configuration helpers for scoring rules and runtime settings."""

from .scoring import DEFAULT_RULESET, ScoringRules, get_rules, iter_rules
from .settings import EngineSettings

__all__ = [
    "DEFAULT_RULESET",
    "EngineSettings",
    "ScoringRules",
    "get_rules",
    "iter_rules",
]
