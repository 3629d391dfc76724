"""
Tests for profile_engine/fusion: trait + semantic vector fusion.

Covers:
* Composites and trait block layout
* fuse(): unit norm, determinism, zero-in/zero-out, weighting
* blend_semantic / blend_profile: bounds, normalization, new persons
* FusionConfig: validation, JSON round trip
"""

from __future__ import annotations

import numpy as np
import pytest

from profile_engine.errors import ValidationError
from profile_engine.fusion import (
    FusionConfig,
    VectorFusion,
    blend_vectors,
    build_trait_block,
    create_fusion_from_config,
)
from profile_engine.fusion.vector_fusion import TRAIT_BLOCK_SIZE, derive_composites
from profile_engine.traits import TraitProfile


def unit(dim, index):
    vector = np.zeros(dim)
    vector[index] = 1.0
    return vector


# ── Trait block ───────────────────────────────────────────────────────

class TestTraitBlock:
    def test_composites(self):
        traits = TraitProfile(openness=0.8, conscientiousness=0.6, extraversion=0.4,
                              agreeableness=0.2, neuroticism=0.1)
        assert derive_composites(traits).tolist() == pytest.approx([
            (0.4 + 0.2) / 2,
            (0.6 + 0.2) / 2,
            0.9,
            (0.8 + 0.4) / 2,
            (0.2 + 0.9) / 2,
        ])

    def test_block_layout(self):
        block = build_trait_block(TraitProfile())
        assert len(block) == TRAIT_BLOCK_SIZE == 10
        assert block[:5].tolist() == [0.5] * 5


# ── fuse ──────────────────────────────────────────────────────────────

class TestFuse:
    def test_unit_norm(self, fusion, embedding_source):
        vector = fusion.fuse(TraitProfile(0.9, 0.1, 0.3, 0.7, 0.2), embedding_source.embed("hiking"))
        assert len(vector) == fusion.profile_length == 26
        assert np.linalg.norm(vector) == pytest.approx(1.0, abs=1e-6)

    def test_unit_norm_with_zero_semantic(self, fusion):
        vector = fusion.fuse(TraitProfile(), np.zeros(16))
        assert np.linalg.norm(vector) == pytest.approx(1.0, abs=1e-6)
        assert not np.any(vector[TRAIT_BLOCK_SIZE:])

    def test_zero_inputs_give_zero_vector(self, fusion):
        vector = fusion.combine_blocks(np.zeros(TRAIT_BLOCK_SIZE), np.zeros(16))
        assert np.array_equal(vector, np.zeros(26))

    def test_deterministic(self, fusion):
        a = fusion.fuse(TraitProfile(), np.zeros(16))
        b = VectorFusion().fuse(TraitProfile(), np.zeros(16))
        assert np.array_equal(a, b)

    def test_block_weights(self, fusion):
        vector = fusion.combine_blocks(unit(TRAIT_BLOCK_SIZE, 0), unit(16, 0))
        trait_share = np.linalg.norm(vector[:TRAIT_BLOCK_SIZE])
        semantic_share = np.linalg.norm(vector[TRAIT_BLOCK_SIZE:])
        assert trait_share / semantic_share == pytest.approx(0.7 / 0.3)

    def test_wrong_semantic_length(self, fusion):
        with pytest.raises(ValidationError):
            fusion.fuse(TraitProfile(), np.zeros(8))

    def test_wrong_trait_block_length(self, fusion):
        with pytest.raises(ValidationError):
            fusion.combine_blocks(np.ones(5), np.zeros(16))

    def test_feature_names(self, fusion):
        names = fusion.feature_names()
        assert len(names) == fusion.profile_length
        assert names[0] == "openness"
        assert names[TRAIT_BLOCK_SIZE] == "semantic_0"


# ── Blending ──────────────────────────────────────────────────────────

class TestBlending:
    def test_blend_vectors_normalizes(self):
        blended = blend_vectors(unit(4, 0), unit(4, 1), 0.5)
        assert blended.tolist() == pytest.approx([2 ** -0.5, 2 ** -0.5, 0, 0])

    def test_blend_vectors_shape_mismatch(self):
        with pytest.raises(ValidationError):
            blend_vectors(np.ones(3), np.ones(4), 0.5)

    def test_blend_vectors_weight_range(self):
        with pytest.raises(ValidationError):
            blend_vectors(np.ones(3), np.ones(3), 1.5)

    def test_semantic_blend_without_memory(self, fusion):
        assert fusion.blend_semantic(None, np.array([0.0] * 15 + [2.0])).tolist() == unit(16, 15).tolist()

    def test_semantic_blend_moves_toward_message(self, fusion):
        old, message = unit(16, 0), unit(16, 1)
        new = fusion.blend_semantic(old, message)
        assert np.dot(new, message) > np.dot(old, message)
        assert np.linalg.norm(new) == pytest.approx(1.0)

    def test_semantic_repeat_step_bounded(self, fusion):
        old, message = unit(16, 0), unit(16, 1)
        first = fusion.blend_semantic(old, message)
        second = fusion.blend_semantic(first, message)
        assert np.linalg.norm(second - first) <= 2 * fusion.config.semantic_blend

    def test_profile_adopts_candidate_when_new(self, fusion):
        candidate = unit(26, 3)
        assert np.array_equal(fusion.blend_profile(None, candidate, 0.5), candidate)
        assert np.array_equal(fusion.blend_profile(np.ones(5), candidate, 0.5), candidate)

    def test_profile_blend_factor(self, fusion):
        stored, candidate = unit(26, 0), unit(26, 1)
        blended = fusion.blend_profile(stored, candidate, confidence=1.0)
        # f = 1.0 * 0.3
        expected = np.zeros(26)
        expected[0], expected[1] = 0.7, 0.3
        assert blended.tolist() == pytest.approx((expected / np.linalg.norm(expected)).tolist())

    def test_profile_blend_zero_confidence_keeps_stored(self, fusion):
        stored = unit(26, 0)
        assert fusion.blend_profile(stored, unit(26, 1), confidence=0.0).tolist() == stored.tolist()

    def test_profile_blend_rejects_bad_confidence(self, fusion):
        with pytest.raises(ValidationError):
            fusion.blend_profile(unit(26, 0), unit(26, 1), confidence=2.0)


# ── FusionConfig ──────────────────────────────────────────────────────

class TestFusionConfig:
    def test_weights_must_be_positive(self):
        with pytest.raises(ValidationError):
            VectorFusion(FusionConfig(trait_weight=1.0, semantic_weight=0.0))

    def test_blend_range(self):
        with pytest.raises(ValidationError):
            VectorFusion(FusionConfig(semantic_blend=1.2))

    def test_save_load(self, tmp_path):
        config = FusionConfig(trait_weight=0.6, semantic_weight=0.4, semantic_dim=32)
        path = tmp_path / "fusion.json"
        config.save(str(path))
        assert FusionConfig.load(str(path)) == config

    def test_from_config_reads_embedding_dim(self, config):
        config["embedding"]["dim"] = 32
        fusion = create_fusion_from_config(config)
        assert fusion.profile_length == 42
