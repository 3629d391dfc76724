"""
Trait model: five bounded personality traits nudged by conversational signals.

Each signal name maps to a small, hand-authored set of (trait, weight) pairs.
A turn moves every trait by

    delta_t = (confidence * step_scale) * sum(magnitude_s * weight_{s,t})

and the result is clamped to [0, 1]. With magnitudes bounded to
[-magnitude_limit, magnitude_limit] a single call never moves a trait by more
than step_scale * magnitude_limit * sum(|weights touching that trait|).
"""

import logging
from dataclasses import dataclass, asdict, field
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Any, Mapping, Optional, Tuple

import numpy as np
import yaml

from ..errors import ValidationError

logger = logging.getLogger(__name__)

TRAIT_NAMES: Tuple[str, ...] = (
    "openness",
    "conscientiousness",
    "extraversion",
    "agreeableness",
    "neuroticism",
)

DEFAULT_TRAIT_VALUE = 0.5

DEFAULT_SIGNAL_WEIGHTS: Dict[str, Dict[str, float]] = {
    "spontaneity": {"openness": 0.4, "conscientiousness": -0.5},
    "planning_preference": {"conscientiousness": 0.5},
    "social_energy": {"extraversion": 0.6},
    "curiosity": {"openness": 0.6},
    "introspection": {"openness": 0.2, "extraversion": -0.3},
    "nature_orientation": {"openness": 0.2, "agreeableness": 0.2},
    "novelty_seeking": {"openness": 0.5},
}


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return min(max(value, low), high)


@dataclass(frozen=True)
class TraitProfile:
    """
    Five Big Five traits, each in [0, 1].

    Instances are immutable; the trait model returns a new profile
    for every update.
    """
    openness: float = DEFAULT_TRAIT_VALUE
    conscientiousness: float = DEFAULT_TRAIT_VALUE
    extraversion: float = DEFAULT_TRAIT_VALUE
    agreeableness: float = DEFAULT_TRAIT_VALUE
    neuroticism: float = DEFAULT_TRAIT_VALUE

    def __post_init__(self):
        """Clamp every trait into [0, 1]."""
        for name in TRAIT_NAMES:
            value = getattr(self, name)
            if value is None or not np.isfinite(value):
                raise ValidationError(f"{name} must be a finite number, got {value}")
            object.__setattr__(self, name, _clamp(float(value)))

    def to_vector(self) -> np.ndarray:
        """Return traits in TRAIT_NAMES order."""
        return np.array([getattr(self, name) for name in TRAIT_NAMES], dtype=np.float64)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Optional[Mapping[str, Any]]) -> "TraitProfile":
        """Create from a mapping, filling missing traits with the default."""
        d = d or {}
        return cls(**{name: float(d.get(name, DEFAULT_TRAIT_VALUE)) for name in TRAIT_NAMES})


@dataclass(frozen=True)
class SignalWeightTable:
    """
    Immutable mapping of signal name to (trait, weight) pairs.

    Loaded once (from YAML or the built-in defaults) and shared by every
    trait model instance.
    """
    weights: Mapping[str, Tuple[Tuple[str, float], ...]] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Mapping[str, Mapping[str, float]]) -> "SignalWeightTable":
        """
        Build a table from {signal: {trait: weight}}.

        Raises:
            ValidationError: If a trait name is unknown or a weight isn't numeric
        """
        table = {}
        for signal, trait_weights in d.items():
            if not isinstance(trait_weights, Mapping):
                raise ValidationError(f"Signal '{signal}' must map traits to weights")
            pairs = []
            for trait, weight in trait_weights.items():
                if trait not in TRAIT_NAMES:
                    raise ValidationError(f"Signal '{signal}' references unknown trait '{trait}'")
                try:
                    pairs.append((trait, float(weight)))
                except (TypeError, ValueError):
                    raise ValidationError(
                        f"Signal '{signal}' has non-numeric weight for '{trait}': {weight!r}"
                    )
            table[str(signal)] = tuple(pairs)
        return cls(weights=MappingProxyType(table))

    @classmethod
    def default(cls) -> "SignalWeightTable":
        return cls.from_dict(DEFAULT_SIGNAL_WEIGHTS)

    @classmethod
    def load(cls, filepath: str) -> "SignalWeightTable":
        """Load a weight table from a YAML file."""
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Signal weight table not found: {filepath}")

        with open(filepath, "r") as f:
            data = yaml.safe_load(f) or {}

        table = cls.from_dict(data)
        logger.info(f"Loaded signal weight table with {len(table)} signals from {filepath}")
        return table

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {signal: dict(pairs) for signal, pairs in self.weights.items()}

    def get(self, signal: str) -> Tuple[Tuple[str, float], ...]:
        return self.weights.get(signal, ())

    def max_step(self, trait: str, step_scale: float, magnitude_limit: float) -> float:
        """Largest move a single update can make on `trait`."""
        total = sum(abs(w) for pairs in self.weights.values() for t, w in pairs if t == trait)
        return step_scale * magnitude_limit * total

    def __contains__(self, signal: str) -> bool:
        return signal in self.weights

    def __len__(self) -> int:
        return len(self.weights)


@dataclass
class TraitModelConfig:
    """
    Configuration for the trait model.

    Attributes:
        step_scale: Per-turn step size multiplier (step = confidence * step_scale)
        magnitude_limit: Signal magnitudes are clamped to +/- this value
        signal_weights_file: Optional YAML file with the signal weight table
    """
    step_scale: float = 0.2
    magnitude_limit: float = 0.5
    signal_weights_file: Optional[str] = None

    def validate(self) -> None:
        if not 0 < self.step_scale <= 1:
            raise ValidationError(f"step_scale must be in (0, 1], got {self.step_scale}")
        if self.magnitude_limit <= 0:
            raise ValidationError(f"magnitude_limit must be positive, got {self.magnitude_limit}")

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "TraitModelConfig":
        traits_config = config.get("traits", {})
        return cls(
            step_scale=traits_config.get("step_scale", 0.2),
            magnitude_limit=traits_config.get("magnitude_limit", 0.5),
            signal_weights_file=traits_config.get("signal_weights_file"),
        )


class TraitModel:
    """
    Applies conversational signals to a TraitProfile.

    Attributes:
        config: TraitModelConfig
        table: SignalWeightTable used to map signals onto traits
    """

    def __init__(self, config: Optional[TraitModelConfig] = None,
                 table: Optional[SignalWeightTable] = None):
        self.config = config or TraitModelConfig()
        self.config.validate()
        if table is None:
            if self.config.signal_weights_file:
                table = SignalWeightTable.load(self.config.signal_weights_file)
            else:
                table = SignalWeightTable.default()
        self.table = table
        logger.info(f"Initialized TraitModel with {len(self.table)} signals, "
                    f"step_scale={self.config.step_scale}")

    def apply_signals(
        self,
        current: TraitProfile,
        signals: Mapping[str, float],
        confidence: float
    ) -> TraitProfile:
        """
        Nudge traits from named signals.

        Args:
            current: Profile before this turn
            signals: Signal name -> magnitude (clamped to +/- magnitude_limit)
            confidence: Extraction confidence in [0, 1]

        Returns:
            New TraitProfile; `current` is not modified

        Raises:
            ValidationError: If confidence is outside [0, 1] or a magnitude isn't a finite number
        """
        confidence = validate_confidence(confidence)
        limit = self.config.magnitude_limit

        deltas = dict.fromkeys(TRAIT_NAMES, 0.0)
        for signal, magnitude in (signals or {}).items():
            pairs = self.table.get(signal)
            if not pairs:
                logger.debug(f"Ignoring unknown signal '{signal}'")
                continue
            try:
                magnitude = float(magnitude)
            except (TypeError, ValueError):
                raise ValidationError(f"Signal '{signal}' magnitude must be a number, got {magnitude!r}")
            if not np.isfinite(magnitude):
                raise ValidationError(f"Signal '{signal}' magnitude must be finite, got {magnitude}")
            magnitude = _clamp(magnitude, -limit, limit)
            for trait, weight in pairs:
                deltas[trait] += magnitude * weight

        step = confidence * self.config.step_scale
        return TraitProfile(**{
            name: _clamp(getattr(current, name) + deltas[name] * step)
            for name in TRAIT_NAMES
        })


def validate_confidence(confidence: float) -> float:
    """Return confidence as float, raising ValidationError outside [0, 1]."""
    try:
        value = float(confidence)
    except (TypeError, ValueError):
        raise ValidationError(f"confidence must be a number, got {confidence!r}")
    if not np.isfinite(value) or not 0.0 <= value <= 1.0:
        raise ValidationError(f"confidence must be in [0, 1], got {confidence}")
    return value
