"""
Density-based clustering of profile vectors.

Uses DBSCAN: no target cluster count, points in no dense region are labeled
-1 ("noise"). For a fixed input order and fixed (eps, min_points) the
partition is stable. Cluster ids are only meaningful within a single call.

Parameters:
- eps: maximum distance between two neighbors
- min_points: minimum neighborhood size (including the point) for a core point
"""

import logging
from dataclasses import dataclass, asdict
from typing import Dict, Any, List, Optional, Sequence

import numpy as np
from sklearn.cluster import DBSCAN

from ..errors import ValidationError

logger = logging.getLogger(__name__)

NOISE_LABEL = -1


@dataclass
class ClusterConfig:
    """
    Configuration for DBSCAN clustering.

    Attributes:
        eps: Neighborhood radius
        min_points: Minimum points to form a dense region
        metric: Distance metric passed to DBSCAN
    """
    eps: float = 0.3
    min_points: int = 3
    metric: str = "euclidean"

    def validate(self) -> None:
        if self.eps <= 0:
            raise ValidationError(f"eps must be positive, got {self.eps}")
        if self.min_points < 1:
            raise ValidationError(f"min_points must be at least 1, got {self.min_points}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ClusterConfig":
        clustering_config = config.get("clustering", {})
        return cls(
            eps=clustering_config.get("eps", 0.3),
            min_points=clustering_config.get("min_points", 3),
            metric=clustering_config.get("metric", "euclidean"),
        )


@dataclass
class ClusterStats:
    """Summary of a clustering result."""
    n_clusters: int
    noise_count: int
    cluster_sizes: Dict[int, int]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_clusters": int(self.n_clusters),
            "noise_count": int(self.noise_count),
            "cluster_sizes": {str(k): int(v) for k, v in self.cluster_sizes.items()},
        }


class DensityClusterer:
    """
    DBSCAN clusterer over profile vectors.

    Attributes:
        config: ClusterConfig
    """

    def __init__(self, config: Optional[ClusterConfig] = None):
        self.config = config or ClusterConfig()
        self.config.validate()

    def cluster(self, vectors: Sequence[Sequence[float]]) -> List[int]:
        """
        Assign a cluster label to every vector.

        Args:
            vectors: Profile vectors, all the same length

        Returns:
            One label per input, same order; NOISE_LABEL (-1) for noise
        """
        if len(vectors) == 0:
            return []

        matrix = np.asarray(vectors, dtype=np.float64)
        if matrix.ndim != 2:
            raise ValidationError("All vectors must have the same length")

        dbscan = DBSCAN(eps=self.config.eps, min_samples=self.config.min_points,
                        metric=self.config.metric)
        labels = [int(label) for label in dbscan.fit_predict(matrix)]

        stats = cluster_stats(labels)
        logger.info(f"DBSCAN found {stats.n_clusters} clusters, noise points: {stats.noise_count}")
        return labels


def cluster_stats(labels: Sequence[int]) -> ClusterStats:
    """Count clusters, noise points and per-cluster sizes."""
    sizes: Dict[int, int] = {}
    for label in labels:
        sizes[int(label)] = sizes.get(int(label), 0) + 1

    noise_count = sizes.pop(NOISE_LABEL, 0)
    return ClusterStats(
        n_clusters=len(sizes),
        noise_count=noise_count,
        cluster_sizes=dict(sorted(sizes.items())),
    )
