"""Match explanation module."""

from .match_explainer import (
    Contribution,
    MatchExplanation,
    ExplanationConfig,
    MatchExplainer,
    dimension_contributions,
)

__all__ = [
    "Contribution",
    "MatchExplanation",
    "ExplanationConfig",
    "MatchExplainer",
    "dimension_contributions",
]
