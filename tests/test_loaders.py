"""
Tests for profile_engine/data_loading: record files and store snapshots.

Covers:
* JSON and CSV record round trips
* Loading records into a store (stale vectors rebuilt)
* joblib snapshot save/load
* Missing files and unsupported formats
"""

from __future__ import annotations

import json

import numpy as np
import pytest

from profile_engine.data_loading import (
    frame_to_records,
    load_person_records,
    load_snapshot,
    records_to_frame,
    save_person_records,
    save_snapshot,
)
from profile_engine.store import PersonRecord
from profile_engine.traits import TraitProfile


@pytest.fixture
def records():
    return [
        PersonRecord("p1", name="Ana", age=21, institution="UBC",
                     traits=TraitProfile(openness=0.9), interests=["art", "music"],
                     confidence=0.3, vector=np.array([0.6, 0.8])),
        PersonRecord("p2", name="Ben", interests=[], vector=np.array([1.0, 0.0])),
    ]


class TestRecordFiles:
    def test_json_round_trip(self, tmp_path, records):
        path = tmp_path / "people.json"
        save_person_records(records, str(path))
        loaded = load_person_records(str(path))
        assert [r.to_dict() for r in loaded] == [r.to_dict() for r in records]

    def test_csv_round_trip(self, tmp_path, records):
        path = tmp_path / "people.csv"
        save_person_records(records, str(path))
        loaded = load_person_records(str(path))

        assert [r.person_id for r in loaded] == ["p1", "p2"]
        assert loaded[0].interests == ["art", "music"]
        assert loaded[1].interests == []
        assert loaded[0].traits.openness == pytest.approx(0.9)
        assert loaded[0].vector.tolist() == pytest.approx([0.6, 0.8])

    def test_frame_columns(self, records):
        df = records_to_frame(records)
        assert list(df.columns[:4]) == ["id", "name", "age", "institution"]
        assert df.loc[0, "interests"] == "art|music"
        assert len(frame_to_records(df)) == 2

    def test_json_object_with_records_key(self, tmp_path):
        path = tmp_path / "people.json"
        path.write_text(json.dumps({"records": [{"id": "x", "uni": "UofT"}]}))
        loaded = load_person_records(str(path))
        assert loaded[0].institution == "UofT"
        assert len(loaded[0].vector) == 0

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_person_records(str(tmp_path / "nope.json"))

    def test_unsupported_format(self, tmp_path):
        path = tmp_path / "people.parquet"
        path.write_text("")
        with pytest.raises(ValueError):
            load_person_records(str(path))

    def test_loaded_records_initialize_store(self, tmp_path, records, store, fusion):
        path = tmp_path / "people.json"
        save_person_records(records, str(path))
        rebuilt = store.initialize(load_person_records(str(path)))
        assert rebuilt == 2
        assert len(store.get("p1").vector) == fusion.profile_length


class TestSnapshots:
    def test_save_load(self, tmp_path):
        state = {"records": [{"id": "a"}], "semantic_memory": {"a": [0.0, 1.0]}}
        path = tmp_path / "nested" / "snapshot.joblib"
        save_snapshot(state, str(path))
        assert load_snapshot(str(path)) == state

    def test_missing_snapshot(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_snapshot(str(tmp_path / "missing.joblib"))

    def test_engine_round_trip(self, tmp_path, population, config):
        from profile_engine.service import create_engine_from_config

        path = str(tmp_path / "snapshot.joblib")
        population.export_snapshot(path)
        restored = create_engine_from_config(config)
        restored.load_snapshot(path)

        ids, original = population.all_vectors()
        restored_ids, reloaded = restored.all_vectors()
        assert restored_ids == ids
        assert np.allclose(original, reloaded)
        assert restored.k_nearest("user_00") == population.k_nearest("user_00")
