"""
Graph snapshot for the 3D social view.

Nodes are persons with display coordinates and cluster ids; links are the
undirected, de-duplicated top-k similarity edges of every node.

Modes:
- "embedding": coordinates from the UMAP projection, scaled by `scale`
- "force": uniform random coordinates in [-scale, scale]; the renderer
  runs its own force layout from the links
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional, Sequence

import numpy as np

from ..clustering.density import DensityClusterer
from ..errors import ValidationError
from ..projection.umap_projection import ProjectionResult, UMAPProjector
from ..similarity.retrieval import k_nearest
from ..store.records import StoreSnapshot

logger = logging.getLogger(__name__)

GRAPH_MODES = ["force", "embedding"]


@dataclass
class GraphNode:
    id: str
    name: str
    age: int
    institution: str
    x: float
    y: float
    z: float
    cluster_id: int
    traits: Dict[str, float]
    interests: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GraphLink:
    source: str
    target: str
    strength: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class GraphData:
    """
    Full graph payload.

    Attributes:
        nodes: One node per person with a non-zero profile vector
        links: Undirected similarity edges
        mode: "force" or "embedding"
        projection_fallback: True when embedding-mode coordinates are random
    """
    nodes: List[GraphNode] = field(default_factory=list)
    links: List[GraphLink] = field(default_factory=list)
    mode: str = "force"
    projection_fallback: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "links": [l.to_dict() for l in self.links],
            "mode": self.mode,
            "projection_fallback": self.projection_fallback,
        }


@dataclass
class GraphConfig:
    """Configuration for graph snapshots."""
    k: int = 5
    scale: float = 100.0
    random_seed: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "GraphConfig":
        graph_config = config.get("graph", {})
        return cls(
            k=graph_config.get("k", 5),
            scale=graph_config.get("scale", 100.0),
            random_seed=config.get("global", {}).get("random_seed"),
        )


def build_graph(
    snapshot: StoreSnapshot,
    clusterer: DensityClusterer,
    projector: UMAPProjector,
    mode: str = "force",
    config: Optional[GraphConfig] = None,
    labels: Optional[Sequence[int]] = None,
    projection: Optional[ProjectionResult] = None
) -> GraphData:
    """
    Build nodes and links from a store snapshot.

    Persons whose vector is all zero have no data to place or link yet and
    are left out of the graph.

    Args:
        snapshot: Store snapshot
        clusterer: Clusterer used for node cluster ids
        projector: Projector used in embedding mode
        mode: "force" or "embedding"
        config: GraphConfig (k neighbors per node, coordinate scale)
        labels: Cluster labels already computed for
            `snapshot.vectors(informative_only=True)`; clustered here if None
        projection: Projection already computed for the same vectors;
            projected here (embedding mode) if None

    Returns:
        GraphData

    Raises:
        ValidationError: On an unknown mode, or precomputed labels or
            coordinates that don't match the snapshot's vectors
    """
    if mode not in GRAPH_MODES:
        raise ValidationError(f"Unknown graph mode: {mode}")
    config = config or GraphConfig()

    ids, matrix = snapshot.vectors(informative_only=True)
    if not ids:
        return GraphData(mode=mode)

    if labels is None:
        labels = clusterer.cluster(matrix)
    elif len(labels) != len(ids):
        raise ValidationError(f"Got {len(labels)} cluster labels for {len(ids)} vectors")

    projection_fallback = False
    if mode == "embedding":
        if projection is None:
            projection = projector.project(matrix)
        elif len(projection) != len(ids):
            raise ValidationError(f"Got {len(projection)} projected points for {len(ids)} vectors")
        positions = projection.coordinates[:, :3] * config.scale
        projection_fallback = projection.is_fallback
    else:
        rng = np.random.default_rng(config.random_seed)
        positions = rng.uniform(-config.scale, config.scale, size=(len(ids), 3))

    nodes = []
    for idx, person_id in enumerate(ids):
        record = snapshot.get_record(person_id)
        x, y, z = (list(positions[idx]) + [0.0, 0.0, 0.0])[:3]
        nodes.append(GraphNode(
            id=person_id,
            name=record.name,
            age=record.age,
            institution=record.institution,
            x=float(x),
            y=float(y),
            z=float(z),
            cluster_id=int(labels[idx]),
            traits=record.traits.to_dict(),
            interests=list(record.interests),
        ))

    links = []
    seen_pairs = set()
    for person_id in ids:
        for neighbor in k_nearest(snapshot, person_id, config.k):
            pair_key = tuple(sorted((person_id, neighbor.person_id)))
            if pair_key in seen_pairs:
                continue
            seen_pairs.add(pair_key)
            links.append(GraphLink(source=person_id, target=neighbor.person_id,
                                   strength=neighbor.similarity))

    logger.info(f"Built {mode} graph with {len(nodes)} nodes and {len(links)} links")
    return GraphData(nodes=nodes, links=links, mode=mode, projection_fallback=projection_fallback)
