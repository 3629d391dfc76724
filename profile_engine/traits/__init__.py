"""Trait model module: bounded Big Five traits updated from signals."""

from .trait_model import (
    TRAIT_NAMES,
    TraitProfile,
    SignalWeightTable,
    TraitModelConfig,
    TraitModel,
    validate_confidence,
)

__all__ = [
    "TRAIT_NAMES",
    "TraitProfile",
    "SignalWeightTable",
    "TraitModelConfig",
    "TraitModel",
    "validate_confidence",
]
