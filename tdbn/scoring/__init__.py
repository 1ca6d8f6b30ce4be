"""Scoring functions for tdbn structure learning."""

from tdbn.scoring.functions import (
    LLScoringFunction,
    MDLScoringFunction,
    ScoringFunction,
    get_scoring_function,
)

__all__ = [
    "ScoringFunction",
    "LLScoringFunction",
    "MDLScoringFunction",
    "get_scoring_function",
]
