"""
Vector fusion of trait and semantic profiles.

This module combines a person's TraitProfile and semantic memory into the
single unit-length ProfileVector used for every similarity computation.

Fusion Formula:
    trait_block    = [O, C, E, A, N, composites(O, C, E, A, N)]      (10 values)
    trait_part     = trait_weight    * normalize(trait_block)
    semantic_part  = semantic_weight * normalize(semantic)           (D_sem values)
    profile_vector = normalize([trait_part, semantic_part])

The five composites are fixed pairwise formulas that let plain cosine
similarity pick up some interaction between traits.

Blending:
    semantic memory:  new = normalize((1 - semantic_blend) * old + semantic_blend * message)
    profile vector:   new = normalize((1 - f) * old + f * candidate),
                      f = confidence * profile_blend_scale
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Any, List, Optional
import json

import numpy as np

from ..embedding.sources import l2_normalize
from ..errors import ValidationError
from ..traits.trait_model import TRAIT_NAMES, TraitProfile, validate_confidence

logger = logging.getLogger(__name__)

COMPOSITE_NAMES = [
    "sociability",        # mean(extraversion, agreeableness)
    "structure",          # mean(conscientiousness, 1 - openness)
    "stability",          # 1 - neuroticism
    "adventurousness",    # mean(openness, extraversion)
    "warmth",             # mean(agreeableness, 1 - neuroticism)
]

TRAIT_BLOCK_SIZE = len(TRAIT_NAMES) + len(COMPOSITE_NAMES)


def derive_composites(traits: TraitProfile) -> np.ndarray:
    """Compute the five composite features, each clamped to [0, 1]."""
    o, c, e, a, n = (traits.openness, traits.conscientiousness, traits.extraversion,
                     traits.agreeableness, traits.neuroticism)
    composites = np.array([
        (e + a) / 2,
        (c + (1 - o)) / 2,
        1 - n,
        (o + e) / 2,
        (a + (1 - n)) / 2,
    ], dtype=np.float64)
    return np.clip(composites, 0.0, 1.0)


def build_trait_block(traits: TraitProfile) -> np.ndarray:
    """Raw traits followed by composites (length 10)."""
    return np.concatenate([traits.to_vector(), derive_composites(traits)])


def blend_vectors(base: np.ndarray, update: np.ndarray, weight: float) -> np.ndarray:
    """
    Move `base` toward `update` by `weight` and re-normalize.

    Args:
        base: Current vector
        update: Target vector (same length)
        weight: Blend factor in [0, 1]

    Returns:
        normalize(base * (1 - weight) + update * weight)
    """
    base = np.asarray(base, dtype=np.float64)
    update = np.asarray(update, dtype=np.float64)
    if base.shape != update.shape:
        raise ValidationError(f"Cannot blend vectors of length {len(base)} and {len(update)}")
    if not 0 <= weight <= 1:
        raise ValidationError(f"Blend weight must be in [0, 1], got {weight}")
    return l2_normalize(base * (1 - weight) + update * weight)


@dataclass
class FusionConfig:
    """
    Configuration for vector fusion.

    Attributes:
        trait_weight: Scale applied to the normalized trait block ("structure")
        semantic_weight: Scale applied to the normalized semantic vector ("vibe")
        semantic_blend: EMA factor for semantic memory updates
        profile_blend_scale: Max share of a candidate vector absorbed in one turn
        semantic_dim: Semantic dimensionality D_sem
    """
    trait_weight: float = 0.7
    semantic_weight: float = 0.3
    semantic_blend: float = 0.25
    profile_blend_scale: float = 0.3
    semantic_dim: int = 16

    def validate(self) -> None:
        """Validate configuration values."""
        if self.trait_weight <= 0 or self.semantic_weight <= 0:
            raise ValidationError(
                f"Fusion weights must both be positive, got "
                f"trait={self.trait_weight}, semantic={self.semantic_weight}"
            )
        if not 0 <= self.semantic_blend <= 1:
            raise ValidationError(f"semantic_blend must be in [0, 1], got {self.semantic_blend}")
        if not 0 <= self.profile_blend_scale <= 1:
            raise ValidationError(
                f"profile_blend_scale must be in [0, 1], got {self.profile_blend_scale}"
            )
        if self.semantic_dim < 1:
            raise ValidationError(f"semantic_dim must be positive, got {self.semantic_dim}")

    @property
    def profile_length(self) -> int:
        """Length L of a ProfileVector."""
        return TRAIT_BLOCK_SIZE + self.semantic_dim

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "FusionConfig":
        """Create from dictionary."""
        return cls(**d)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "FusionConfig":
        """Create from main config dictionary."""
        fusion_config = config.get("fusion", {})
        embedding_config = config.get("embedding", {})

        return cls(
            trait_weight=fusion_config.get("trait_weight", 0.7),
            semantic_weight=fusion_config.get("semantic_weight", 0.3),
            semantic_blend=fusion_config.get("semantic_blend", 0.25),
            profile_blend_scale=fusion_config.get("profile_blend_scale", 0.3),
            semantic_dim=embedding_config.get("dim", 16),
        )

    def save(self, filepath: str) -> None:
        """Save to JSON file."""
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved fusion config to {filepath}")

    @classmethod
    def load(cls, filepath: str) -> "FusionConfig":
        """Load from JSON file."""
        with open(filepath, "r") as f:
            d = json.load(f)
        return cls.from_dict(d)


class VectorFusion:
    """
    Fuses traits and semantic memory into profile vectors.

    Also owns the two blending rules (semantic EMA and profile vector
    update), so that every constant that shapes the similarity space lives
    in one FusionConfig.

    Attributes:
        config: FusionConfig with fusion parameters
    """

    def __init__(self, config: Optional[FusionConfig] = None):
        """
        Initialize the fusion combiner.

        Args:
            config: FusionConfig instance (reference defaults if omitted)
        """
        self.config = config or FusionConfig()
        self.config.validate()
        logger.info(f"Initialized VectorFusion with trait_weight={self.config.trait_weight}, "
                    f"semantic_weight={self.config.semantic_weight}")

    @property
    def profile_length(self) -> int:
        return self.config.profile_length

    def fuse(self, traits: TraitProfile, semantic: np.ndarray) -> np.ndarray:
        """
        Build the ProfileVector for a trait profile and semantic vector.

        Args:
            traits: Current TraitProfile
            semantic: Semantic memory vector of length semantic_dim

        Returns:
            Unit-length ProfileVector of length profile_length
        """
        return self.combine_blocks(build_trait_block(traits), semantic)

    def combine_blocks(self, trait_block: np.ndarray, semantic: np.ndarray) -> np.ndarray:
        """
        Weight, concatenate and normalize a trait block and a semantic vector.

        A zero input block contributes nothing; if both are zero the zero
        vector is returned unchanged, meaning "insufficient data".
        """
        trait_block = np.asarray(trait_block, dtype=np.float64)
        semantic = np.asarray(semantic, dtype=np.float64)
        if len(trait_block) != TRAIT_BLOCK_SIZE:
            raise ValidationError(
                f"Trait block must have {TRAIT_BLOCK_SIZE} values, got {len(trait_block)}"
            )
        if len(semantic) != self.config.semantic_dim:
            raise ValidationError(
                f"Semantic vector must have {self.config.semantic_dim} values, got {len(semantic)}"
            )

        trait_part = l2_normalize(trait_block) * self.config.trait_weight
        semantic_part = l2_normalize(semantic) * self.config.semantic_weight
        return l2_normalize(np.concatenate([trait_part, semantic_part]))

    def blend_semantic(self, old: Optional[np.ndarray], message_embedding: np.ndarray) -> np.ndarray:
        """Exponential-moving-average update of semantic memory."""
        if old is None:
            return l2_normalize(message_embedding)
        return blend_vectors(old, message_embedding, self.config.semantic_blend)

    def blend_profile(
        self,
        stored: Optional[np.ndarray],
        candidate: np.ndarray,
        confidence: float
    ) -> np.ndarray:
        """
        Blend a candidate vector into the stored ProfileVector.

        New persons (no stored vector, or one of a stale length) adopt the
        candidate outright.
        """
        confidence = validate_confidence(confidence)
        if stored is None or len(stored) != len(candidate):
            return np.asarray(candidate, dtype=np.float64).copy()
        return blend_vectors(stored, candidate, confidence * self.config.profile_blend_scale)

    def feature_names(self) -> List[str]:
        """Names of every ProfileVector dimension, in order."""
        return (list(TRAIT_NAMES) + list(COMPOSITE_NAMES)
                + [f"semantic_{i}" for i in range(self.config.semantic_dim)])


def create_fusion_from_config(config: Dict[str, Any]) -> VectorFusion:
    """
    Factory function to create VectorFusion from config.

    Args:
        config: Main configuration dictionary

    Returns:
        Configured VectorFusion instance
    """
    fusion_config = FusionConfig.from_config(config)
    return VectorFusion(fusion_config)
