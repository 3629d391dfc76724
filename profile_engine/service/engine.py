"""
Profile engine facade.

Wires the store, trait model, fusion, embedding source, retrieval,
explanation, clustering and projection together from one configuration
dictionary and exposes the engine operations:

    onboard / process_turn     writes, serialized per person
    k_nearest / explain        per-person reads over a snapshot
    cluster / project / graph  scan-the-world reads over a snapshot

Clustering and projection cost at least O(n) (projection super-linear);
callers serving many requests should cache their results.
"""

import logging
from typing import Dict, Any, Iterable, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from ..clustering.density import NOISE_LABEL, ClusterConfig, DensityClusterer
from ..data_loading.loaders import load_snapshot, save_snapshot
from ..embedding.sources import EmbeddingSource, create_embedding_source_from_config
from ..explanation.match_explainer import ExplanationConfig, MatchExplainer, MatchExplanation
from ..fusion.vector_fusion import VectorFusion, create_fusion_from_config
from ..graph.builder import GraphConfig, GraphData, build_graph
from ..projection.umap_projection import ProjectionConfig, ProjectionResult, UMAPProjector
from ..similarity.retrieval import Neighbor, RetrievalConfig, k_nearest
from ..store.profile_store import ProfileStore, StoreConfig
from ..store.records import PersonRecord, StoreSnapshot
from ..traits.trait_model import TraitModel, TraitModelConfig, TraitProfile

logger = logging.getLogger(__name__)


class ProfileEngine:
    """
    Signal-to-vector profile and similarity engine.

    Attributes:
        store: ProfileStore holding all person profiles
        explainer: MatchExplainer
        clusterer: DensityClusterer
        projector: UMAPProjector
        retrieval_config: RetrievalConfig
        graph_config: GraphConfig
    """

    def __init__(
        self,
        store: ProfileStore,
        explainer: Optional[MatchExplainer] = None,
        clusterer: Optional[DensityClusterer] = None,
        projector: Optional[UMAPProjector] = None,
        retrieval_config: Optional[RetrievalConfig] = None,
        graph_config: Optional[GraphConfig] = None
    ):
        self.store = store
        self.explainer = explainer or MatchExplainer()
        self.clusterer = clusterer or DensityClusterer()
        self.projector = projector or UMAPProjector()
        self.retrieval_config = retrieval_config or RetrievalConfig()
        self.graph_config = graph_config or GraphConfig()

    # Writes

    def initialize(self, records: Iterable[PersonRecord]) -> int:
        return self.store.initialize(records)

    def onboard(
        self,
        person_id: str,
        name: Optional[str] = None,
        age: Optional[int] = None,
        institution: Optional[str] = None,
        interests: Iterable[str] = (),
        traits: Optional[TraitProfile] = None
    ) -> PersonRecord:
        return self.store.onboard(person_id, name=name, age=age, institution=institution,
                                  interests=interests, traits=traits)

    def process_turn(
        self,
        person_id: str,
        signals: Mapping[str, float],
        confidence: float,
        message_text: Optional[str] = None,
        new_interests: Iterable[str] = ()
    ) -> PersonRecord:
        return self.store.process_turn(person_id, signals, confidence,
                                       message_text=message_text, new_interests=new_interests)

    # Reads

    def snapshot(self) -> StoreSnapshot:
        return self.store.snapshot()

    def all_vectors(self) -> Tuple[List[str], np.ndarray]:
        return self.store.all_vectors()

    def k_nearest(self, person_id: str, k: Optional[int] = None) -> List[Neighbor]:
        k = self.retrieval_config.default_k if k is None else k
        return k_nearest(self.snapshot(), person_id, k)

    def explain(self, a_id: str, b_id: str) -> MatchExplanation:
        return self.explainer.explain(self.snapshot(), a_id, b_id)

    def cluster(self) -> Dict[str, int]:
        """
        Cluster label per person id for the current vector set.

        All-zero vectors are not clustered; those persons are labelled noise.
        """
        snapshot = self.snapshot()
        all_ids, _ = snapshot.vectors()
        ids, matrix = snapshot.vectors(informative_only=True)
        labels = dict.fromkeys(all_ids, NOISE_LABEL)
        labels.update(zip(ids, self.clusterer.cluster(matrix)))
        return labels

    def project(self) -> Tuple[List[str], ProjectionResult]:
        """Projected coordinates for the non-zero vectors, in id order."""
        ids, matrix = self.snapshot().vectors(informative_only=True)
        return ids, self.projector.project(matrix)

    def graph(
        self,
        mode: str = "force",
        snapshot: Optional[StoreSnapshot] = None,
        labels: Optional[Sequence[int]] = None,
        projection: Optional[ProjectionResult] = None
    ) -> GraphData:
        """
        Graph payload for a snapshot (the current one by default).

        `labels` and `projection` let a caller that already clustered and
        projected `snapshot.vectors(informative_only=True)` reuse them.
        """
        if snapshot is None:
            snapshot = self.snapshot()
        return build_graph(snapshot, self.clusterer, self.projector,
                           mode=mode, config=self.graph_config,
                           labels=labels, projection=projection)

    # Persistence

    def export_snapshot(self, filepath: str) -> None:
        save_snapshot(self.store.export_state(), filepath)

    def load_snapshot(self, filepath: str) -> None:
        self.store.restore_state(load_snapshot(filepath))


def create_engine_from_config(
    config: Dict[str, Any],
    embedding_source: Optional[EmbeddingSource] = None
) -> ProfileEngine:
    """
    Factory function to create a ProfileEngine from config.

    Args:
        config: Main configuration dictionary
        embedding_source: Override for the configured embedding source

    Returns:
        Configured ProfileEngine with an empty store
    """
    fusion: VectorFusion = create_fusion_from_config(config)
    trait_model = TraitModel(TraitModelConfig.from_config(config))
    embedding_source = embedding_source or create_embedding_source_from_config(config)

    store = ProfileStore(fusion, trait_model, embedding_source, StoreConfig.from_config(config))

    explanation_config = ExplanationConfig.from_config(config)
    retrieval_config = RetrievalConfig.from_config(config)
    retrieval_config.validate()

    engine = ProfileEngine(
        store=store,
        explainer=MatchExplainer(explanation_config),
        clusterer=DensityClusterer(ClusterConfig.from_config(config)),
        projector=UMAPProjector(ProjectionConfig.from_config(config)),
        retrieval_config=retrieval_config,
        graph_config=GraphConfig.from_config(config),
    )
    logger.info("Initialized ProfileEngine")
    return engine
