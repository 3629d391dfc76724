"""
Tests for profile_engine/store: person records and the profile store.

Covers:
* PersonRecord: clamping, dict round trip, legacy keys
* StoreSnapshot: immutability (vectors, interests, fields), id order, missing ids
* ProfileStore lifecycle: initialize (stale vectors), export/restore
* Writes: onboard, process_turn, update_semantic, upsert
* Concurrency: parallel turns for different persons
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from profile_engine.embedding import HashEmbeddingSource
from profile_engine.errors import NotFoundError, ValidationError
from profile_engine.store import PersonRecord, ProfileStore, StoreSnapshot, merge_tags
from profile_engine.traits import TraitProfile


# ── Records ───────────────────────────────────────────────────────────

class TestPersonRecord:
    def test_merge_tags_ordered_union(self):
        assert merge_tags(["a", "b"], ["b", " c ", "", "a"]) == ["a", "b", "c"]

    def test_confidence_clamped(self):
        assert PersonRecord("p1", confidence=3.0).confidence == 1.0

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            PersonRecord("")

    def test_dict_round_trip(self):
        record = PersonRecord("p1", name="Ana", age=22, institution="UBC",
                              traits=TraitProfile(openness=0.9), interests=["art"],
                              confidence=0.4, vector=np.array([0.6, 0.8]))
        restored = PersonRecord.from_dict(record.to_dict())
        assert restored.to_dict() == record.to_dict()

    def test_from_dict_legacy_keys(self):
        record = PersonRecord.from_dict({"person_id": "p2", "uni": "McGill",
                                         "traits": {"openness": 0.1}})
        assert record.person_id == "p2"
        assert record.institution == "McGill"
        assert record.traits.agreeableness == 0.5
        assert record.name == "Student"

    def test_copy_is_independent(self):
        record = PersonRecord("p1", interests=["art"], vector=np.ones(3))
        clone = record.copy()
        clone.vector[0] = 5.0
        clone.interests.append("music")
        assert record.vector[0] == 1.0
        assert record.interests == ["art"]


class TestStoreSnapshot:
    def test_vectors_read_only(self):
        snapshot = StoreSnapshot.from_records([PersonRecord("p1", vector=np.ones(3))])
        with pytest.raises(ValueError):
            snapshot.get_vector("p1")[0] = 2.0

    def test_records_read_only(self):
        snapshot = StoreSnapshot.from_records([PersonRecord("p1", interests=["art"])])
        record = snapshot.get_record("p1")
        assert record.interests == ("art",)
        with pytest.raises(AttributeError):
            record.interests.append("music")
        with pytest.raises(AttributeError):
            record.name = "Mallory"
        assert snapshot.get_record("p1").name == "Student"

    def test_copy_of_snapshot_record_is_writable(self):
        snapshot = StoreSnapshot.from_records([PersonRecord("p1", interests=["art"],
                                                            vector=np.ones(2))])
        clone = snapshot.get_record("p1").copy()
        clone.interests.append("music")
        clone.vector[0] = 3.0
        assert snapshot.get_record("p1").interests == ("art",)
        assert snapshot.get_vector("p1")[0] == 1.0

    def test_snapshot_isolated_from_source(self):
        record = PersonRecord("p1", vector=np.ones(3))
        snapshot = StoreSnapshot.from_records([record])
        record.vector[0] = 9.0
        assert snapshot.get_vector("p1")[0] == 1.0

    def test_ids_sorted_and_vectors_stacked(self):
        snapshot = StoreSnapshot.from_records([
            PersonRecord("b", vector=np.ones(2)),
            PersonRecord("a", vector=np.zeros(2)),
            PersonRecord("c"),
        ])
        ids, matrix = snapshot.vectors()
        assert snapshot.ids == ["a", "b", "c"]
        assert ids == ["a", "b"]
        assert matrix.shape == (2, 2)

    def test_missing_id(self):
        snapshot = StoreSnapshot.from_records([])
        with pytest.raises(NotFoundError):
            snapshot.get_record("ghost")
        with pytest.raises(KeyError):
            snapshot.get_vector("ghost")


# ── Lifecycle ─────────────────────────────────────────────────────────

class TestLifecycle:
    def test_dim_mismatch_rejected(self, fusion, trait_model):
        with pytest.raises(ValidationError):
            ProfileStore(fusion, trait_model, HashEmbeddingSource(8))

    def test_initialize_rebuilds_stale_vectors(self, store, fusion):
        good_vector = fusion.fuse(TraitProfile(), np.zeros(16))
        records = [
            PersonRecord("fresh", vector=good_vector),
            PersonRecord("stale", interests=["hiking"], vector=np.ones(7)),
            PersonRecord("empty"),
        ]
        rebuilt = store.initialize(records)

        assert rebuilt == 2
        assert len(store) == 3
        assert np.array_equal(store.get("fresh").vector, good_vector)
        assert len(store.get("stale").vector) == fusion.profile_length
        assert store.semantic_memory("stale") is not None

    def test_initialize_replaces_contents(self, store):
        store.onboard("old")
        store.initialize([PersonRecord("new")])
        assert "old" not in store
        assert store.semantic_memory("old") is None

    def test_export_restore(self, store, fusion, trait_model, embedding_source):
        store.onboard("p1", interests=["music"])
        store.process_turn("p1", {"curiosity": 0.4}, 0.9, message_text="jazz tonight")

        restored = ProfileStore(fusion, trait_model, embedding_source)
        restored.restore_state(store.export_state())

        assert np.allclose(restored.get("p1").vector, store.get("p1").vector)
        assert np.allclose(restored.semantic_memory("p1"), store.semantic_memory("p1"))


# ── Writes ────────────────────────────────────────────────────────────

class TestOnboard:
    def test_onboard_builds_unit_vector(self, store):
        record = store.onboard("p1", name="Ana", interests=["hiking", "hiking", "art"])
        assert record.interests == ["hiking", "art"]
        assert np.linalg.norm(record.vector) == pytest.approx(1.0)
        assert record.confidence == 0.0

    def test_same_input_same_vector(self, store):
        a = store.onboard("a")
        b = store.onboard("b")
        assert np.array_equal(a.vector, b.vector)

    def test_semantic_seeded_from_interest_mean(self, store, embedding_source):
        store.onboard("p1", interests=["hiking", "art"])
        expected = (embedding_source.embed("hiking") + embedding_source.embed("art")) / 2
        expected /= np.linalg.norm(expected)
        assert np.allclose(store.semantic_memory("p1"), expected)

    def test_no_interests_zero_memory(self, store):
        store.onboard("p1")
        assert not np.any(store.semantic_memory("p1"))


class TestProcessTurn:
    def test_turn_updates_traits_and_confidence(self, store):
        store.onboard("p1")
        record = store.process_turn("p1", {"social_energy": 0.4}, confidence=0.8)
        assert record.traits.extraversion > 0.5
        assert record.traits.openness == 0.5
        assert record.confidence == pytest.approx(0.08)

    def test_confidence_capped(self, store):
        store.onboard("p1")
        for _ in range(20):
            record = store.process_turn("p1", {}, confidence=1.0)
        assert record.confidence == 1.0

    def test_vector_stays_unit(self, store):
        store.onboard("p1", interests=["art"])
        for text in ["museums", "painting all day", "sculpture"]:
            record = store.process_turn("p1", {"curiosity": 0.3}, 0.7, message_text=text)
            assert np.linalg.norm(record.vector) == pytest.approx(1.0)

    def test_new_interests_merged(self, store):
        store.onboard("p1", interests=["art"])
        record = store.process_turn("p1", {}, 0.5, new_interests=["music", "art"])
        assert record.interests == ["art", "music"]

    def test_unknown_person_gets_default_record(self, store):
        record = store.process_turn("ghost", {"curiosity": 0.5}, 0.6, message_text="hello")
        assert record.name == "Student"
        assert record.age == 20
        assert record.institution == "University"
        assert record.confidence == pytest.approx(0.6)
        assert "ghost" in store

    def test_bad_confidence_leaves_store_untouched(self, store):
        store.onboard("p1")
        before = store.get("p1").vector
        with pytest.raises(ValidationError):
            store.process_turn("p1", {"curiosity": 0.5}, confidence=1.2)
        assert np.array_equal(store.get("p1").vector, before)

    def test_returned_record_is_a_copy(self, store):
        store.onboard("p1")
        record = store.process_turn("p1", {}, 0.5)
        record.vector[:] = 0
        assert np.any(store.get("p1").vector)

    def test_get_unknown(self, store):
        with pytest.raises(NotFoundError):
            store.get("ghost")


class TestUpdateSemantic:
    def test_seeds_then_blends(self, store, embedding_source):
        message = embedding_source.embed("rock climbing")
        memory = store.update_semantic("p1", ["hiking"], message)
        seed = embedding_source.embed("hiking")
        expected = 0.75 * seed + 0.25 * message
        assert np.allclose(memory, expected / np.linalg.norm(expected))

    def test_repeated_message_bounded_drift(self, store, embedding_source):
        message = embedding_source.embed("board games")
        first = store.update_semantic("p1", ["hiking"], message)
        second = store.update_semantic("p1", ["hiking"], message)
        assert np.linalg.norm(second - first) <= 2 * store.fusion.config.semantic_blend

    def test_wrong_length_message(self, store):
        with pytest.raises(ValidationError):
            store.update_semantic("p1", [], np.ones(4))


class TestUpsert:
    def test_upsert_rebuilds_vector(self, store, fusion):
        record = store.upsert(PersonRecord("p1", interests=["art"], vector=np.ones(3)))
        assert len(record.vector) == fusion.profile_length


class TestConcurrency:
    def test_parallel_turns(self, store):
        ids = [f"p{i}" for i in range(8)]
        for pid in ids:
            store.onboard(pid, interests=["music"])

        def run(pid):
            for n in range(10):
                store.process_turn(pid, {"social_energy": 0.2}, 0.5, message_text=f"gig {n}")

        with ThreadPoolExecutor(max_workers=4) as pool:
            list(pool.map(run, ids))

        for pid in ids:
            assert store.get(pid).confidence == pytest.approx(0.5)
        _, matrix = store.all_vectors()
        assert np.allclose(np.linalg.norm(matrix, axis=1), 1.0)
