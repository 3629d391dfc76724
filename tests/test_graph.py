"""
Tests for profile_engine/graph: node/link payload for the 3D view.

Covers:
* Links are undirected, de-duplicated, never self-loops
* Force mode: coordinates within [-scale, scale]
* Embedding mode: fallback flag on small stores
* Unknown mode rejected, empty store
* Precomputed labels and projection reused, size mismatches rejected
"""

from __future__ import annotations

import json

import numpy as np
import pytest

from profile_engine.clustering import DensityClusterer
from profile_engine.errors import ValidationError
from profile_engine.graph import GraphConfig, build_graph
from profile_engine.projection import ProjectionConfig, UMAPProjector
from profile_engine.store import StoreSnapshot


class TestBuildGraph:
    def test_nodes_cover_population(self, population):
        graph = population.graph(mode="force")
        assert [n.id for n in graph.nodes] == population.snapshot().ids
        assert graph.mode == "force"

    def test_links_deduplicated(self, population):
        graph = population.graph(mode="force")
        pairs = [tuple(sorted((l.source, l.target))) for l in graph.links]
        assert len(pairs) == len(set(pairs))
        assert all(l.source != l.target for l in graph.links)
        # at most k links per node before de-duplication
        assert len(graph.links) <= population.graph_config.k * len(graph.nodes)

    def test_force_coordinates_in_range(self, population):
        graph = population.graph(mode="force")
        scale = population.graph_config.scale
        coords = np.array([[n.x, n.y, n.z] for n in graph.nodes])
        assert np.all(np.abs(coords) <= scale)

    def test_embedding_fallback_flag(self, engine):
        for i in range(4):
            engine.onboard(f"p{i}", interests=["music"])
        graph = engine.graph(mode="embedding")
        assert graph.projection_fallback
        coords = np.array([[n.x, n.y, n.z] for n in graph.nodes])
        assert np.all(np.abs(coords) <= engine.graph_config.scale)

    def test_cluster_ids_attached(self, population):
        graph = population.graph(mode="force")
        labels = population.cluster()
        assert {n.id: n.cluster_id for n in graph.nodes} == labels

    def test_unknown_mode(self, population):
        with pytest.raises(ValidationError):
            population.graph(mode="spiral")

    def test_empty_store(self):
        graph = build_graph(StoreSnapshot.from_records([]), DensityClusterer(), UMAPProjector(),
                            mode="embedding", config=GraphConfig())
        assert graph.nodes == [] and graph.links == []

    def test_payload_is_json(self, population):
        payload = population.graph(mode="force").to_dict()
        decoded = json.loads(json.dumps(payload))
        assert set(decoded) == {"nodes", "links", "mode", "projection_fallback"}
        assert set(decoded["links"][0]) == {"source", "target", "strength"}


class TestPrecomputedInputs:
    def test_reuses_labels_and_projection(self, population, monkeypatch):
        snapshot = population.snapshot()
        ids, matrix = snapshot.vectors(informative_only=True)
        labels = population.clusterer.cluster(matrix)
        projection = UMAPProjector(ProjectionConfig(n_neighbors=50, random_seed=0)).project(matrix)

        def fail(*args, **kwargs):
            raise AssertionError("recomputed")

        monkeypatch.setattr(population.clusterer, "cluster", fail)
        monkeypatch.setattr(population.projector, "project", fail)

        graph = population.graph(mode="embedding", snapshot=snapshot,
                                 labels=labels, projection=projection)

        assert [n.cluster_id for n in graph.nodes] == labels
        assert graph.projection_fallback
        scale = population.graph_config.scale
        assert graph.nodes[0].x == pytest.approx(projection.coordinates[0, 0] * scale)

    def test_label_count_mismatch(self, population):
        with pytest.raises(ValidationError):
            population.graph(mode="force", labels=[0, 1])

    def test_projection_count_mismatch(self, population):
        projection = UMAPProjector(ProjectionConfig(random_seed=0)).project(np.ones((3, 4)))
        with pytest.raises(ValidationError):
            population.graph(mode="embedding", projection=projection)
