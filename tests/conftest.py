"""
Shared pytest fixtures.

Every fixture uses the deterministic hash embedding source, so no test
touches the network and every vector is reproducible.
"""

from __future__ import annotations

import numpy as np
import pytest


@pytest.fixture
def config():
    """Full engine config dictionary with the hash provider."""
    return {
        "global": {"log_level": "INFO", "random_seed": 42, "output_dir": "artifacts"},
        "embedding": {"provider": "hash", "dim": 16},
        "traits": {"step_scale": 0.2, "magnitude_limit": 0.5},
        "fusion": {
            "trait_weight": 0.7,
            "semantic_weight": 0.3,
            "semantic_blend": 0.25,
            "profile_blend_scale": 0.3,
        },
        "store": {"confidence_gain": 0.1},
        "retrieval": {"default_k": 5},
        "explanation": {"top_n": 5, "interest_bonus": 0.15},
        "clustering": {"eps": 0.3, "min_points": 3},
        "projection": {"n_neighbors": 15, "min_dist": 0.1, "n_components": 3},
        "graph": {"k": 3, "scale": 100.0},
    }


@pytest.fixture
def embedding_source():
    from profile_engine.embedding import HashEmbeddingSource

    return HashEmbeddingSource(dim=16)


@pytest.fixture
def fusion():
    from profile_engine.fusion import VectorFusion

    return VectorFusion()


@pytest.fixture
def trait_model():
    from profile_engine.traits import TraitModel

    return TraitModel()


@pytest.fixture
def store(fusion, trait_model, embedding_source):
    """Empty store over the hash embedding source."""
    from profile_engine.store import ProfileStore

    return ProfileStore(fusion, trait_model, embedding_source)


@pytest.fixture
def engine(config):
    """Empty engine built from the test config."""
    from profile_engine.service import create_engine_from_config

    return create_engine_from_config(config)


@pytest.fixture
def population(engine):
    """Engine with twenty onboarded persons in two interest groups."""
    from profile_engine.traits import TraitProfile

    rng = np.random.RandomState(7)
    for i in range(20):
        outdoorsy = i % 2 == 0
        engine.onboard(
            f"user_{i:02d}",
            name=f"Student {i}",
            interests=["hiking", "camping"] if outdoorsy else ["gaming", "anime"],
            traits=TraitProfile(
                openness=0.8 if outdoorsy else 0.3,
                conscientiousness=float(rng.uniform(0.4, 0.6)),
                extraversion=0.7 if outdoorsy else 0.2,
                agreeableness=float(rng.uniform(0.4, 0.6)),
                neuroticism=float(rng.uniform(0.4, 0.6)),
            ),
        )
    return engine
