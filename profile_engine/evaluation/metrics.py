"""
Diagnostics for the similarity space.

There are no true labels for who matches whom, so diagnostics describe the
engine's behavior rather than claim accuracy:
1. Distribution of pairwise similarities
2. Cluster sizes, noise share and per-cluster cohesion
3. Neighborhood preservation of the display projection (rank correlation
   between original and projected pairwise distances)
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Any, Optional, Sequence
import json

import numpy as np
from scipy.spatial.distance import pdist
from scipy.stats import spearmanr
from sklearn.metrics.pairwise import cosine_similarity

from ..clustering.density import NOISE_LABEL, ClusterStats, cluster_stats
from ..similarity.retrieval import cohesion

logger = logging.getLogger(__name__)


@dataclass
class SimilarityDistributionStats:
    """Statistics about pairwise similarity distribution."""
    n_pairs: int
    mean: float
    std: float
    min: float
    max: float
    quantiles: Dict[str, float]  # e.g., {"p10": 0.2, "p50": 0.5, "p90": 0.8}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "n_pairs": int(self.n_pairs),
            "mean": float(self.mean),
            "std": float(self.std),
            "min": float(self.min),
            "max": float(self.max),
            "quantiles": {k: float(v) for k, v in self.quantiles.items()}
        }


@dataclass
class ProjectionCheck:
    """How well the projection keeps pairwise distance ranks."""
    rank_correlation: float
    is_fallback: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rank_correlation": float(self.rank_correlation),
            "is_fallback": bool(self.is_fallback)
        }


@dataclass
class EngineReport:
    """
    Diagnostics report over one store snapshot.

    Documents the shape of the similarity space WITHOUT claiming that
    similar vectors are good matches.
    """
    n_persons: int
    similarity_stats: Optional[SimilarityDistributionStats]
    cluster_stats: ClusterStats
    cluster_cohesion: Dict[int, float] = field(default_factory=dict)
    projection_check: Optional[ProjectionCheck] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "n_persons": int(self.n_persons),
            "cluster_stats": self.cluster_stats.to_dict(),
            "cluster_cohesion": {str(k): float(v) for k, v in self.cluster_cohesion.items()},
        }
        if self.similarity_stats:
            result["similarity_stats"] = self.similarity_stats.to_dict()
        if self.projection_check:
            result["projection_check"] = self.projection_check.to_dict()
        return result

    def save(self, filepath: str) -> None:
        """Save report to JSON file."""
        with open(filepath, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Saved engine report to {filepath}")

    def summary(self) -> str:
        """Generate text summary of the report."""
        lines = [
            f"Engine Report: {self.n_persons} persons",
            "=" * 50,
        ]

        if self.similarity_stats:
            lines.extend([
                "",
                f"Pairwise Similarity ({self.similarity_stats.n_pairs} pairs):",
                f"  Mean: {self.similarity_stats.mean:.4f}",
                f"  Std:  {self.similarity_stats.std:.4f}",
                f"  Min:  {self.similarity_stats.min:.4f}",
                f"  Max:  {self.similarity_stats.max:.4f}",
            ])
            for q_name, q_value in self.similarity_stats.quantiles.items():
                lines.append(f"  {q_name}: {q_value:.4f}")

        lines.extend([
            "",
            "Clusters:",
            f"  Clusters: {self.cluster_stats.n_clusters}",
            f"  Noise points: {self.cluster_stats.noise_count}",
        ])
        for label, size in self.cluster_stats.cluster_sizes.items():
            lines.append(f"  Cluster {label}: {size} persons, "
                         f"cohesion {self.cluster_cohesion.get(label, 0.0):.4f}")

        if self.projection_check:
            lines.extend([
                "",
                "Projection:",
                f"  Fallback: {self.projection_check.is_fallback}",
                f"  Distance rank correlation: {self.projection_check.rank_correlation:.4f}",
            ])

        return "\n".join(lines)


def compute_similarity_distribution_stats(
    vectors: np.ndarray,
    quantiles: Sequence[float] = (0.1, 0.25, 0.5, 0.75, 0.9)
) -> Optional[SimilarityDistributionStats]:
    """
    Distribution of cosine similarity over all unordered pairs.

    Returns None for fewer than two vectors.
    """
    vectors = np.asarray(vectors, dtype=np.float64)
    n = len(vectors)
    if n < 2:
        return None

    similarities = cosine_similarity(vectors)[np.triu_indices(n, k=1)]
    quantile_dict = {
        f"p{int(q * 100)}": float(np.percentile(similarities, q * 100))
        for q in quantiles
    }

    return SimilarityDistributionStats(
        n_pairs=len(similarities),
        mean=float(np.mean(similarities)),
        std=float(np.std(similarities)),
        min=float(np.min(similarities)),
        max=float(np.max(similarities)),
        quantiles=quantile_dict
    )


def compute_cluster_cohesion(vectors: np.ndarray, labels: Sequence[int]) -> Dict[int, float]:
    """Average pairwise similarity within each (non-noise) cluster."""
    vectors = np.asarray(vectors, dtype=np.float64)
    labels = np.asarray(labels)
    result = {}
    for label in sorted(set(labels.tolist())):
        if label == NOISE_LABEL:
            continue
        result[int(label)] = cohesion(vectors[labels == label])
    return result


def check_projection(
    vectors: np.ndarray,
    coordinates: np.ndarray,
    is_fallback: bool
) -> Optional[ProjectionCheck]:
    """
    Spearman correlation between original and projected pairwise distances.

    Values near 1 mean the projection keeps distance ranks; random
    fallback coordinates should land near 0. Returns None for fewer
    than three points.
    """
    vectors = np.asarray(vectors, dtype=np.float64)
    coordinates = np.asarray(coordinates, dtype=np.float64)
    if len(vectors) < 3:
        return None

    original = pdist(vectors, metric="euclidean")
    projected = pdist(coordinates, metric="euclidean")
    correlation, _ = spearmanr(original, projected)
    if np.isnan(correlation):
        correlation = 0.0

    return ProjectionCheck(rank_correlation=float(correlation), is_fallback=is_fallback)


def create_engine_report(
    vectors: np.ndarray,
    labels: Sequence[int],
    coordinates: Optional[np.ndarray] = None,
    projection_fallback: bool = False,
    quantiles: Sequence[float] = (0.1, 0.25, 0.5, 0.75, 0.9)
) -> EngineReport:
    """
    Create a complete diagnostics report.

    Args:
        vectors: Profile vectors (n x L)
        labels: Cluster labels for the vectors
        coordinates: Projected coordinates (optional)
        projection_fallback: Whether the coordinates are a random fallback
        quantiles: Quantiles of the similarity distribution

    Returns:
        EngineReport instance
    """
    vectors = np.asarray(vectors, dtype=np.float64)

    projection = None
    if coordinates is not None:
        projection = check_projection(vectors, coordinates, projection_fallback)

    return EngineReport(
        n_persons=len(vectors),
        similarity_stats=compute_similarity_distribution_stats(vectors, quantiles),
        cluster_stats=cluster_stats(labels),
        cluster_cohesion=compute_cluster_cohesion(vectors, labels) if len(vectors) else {},
        projection_check=projection,
    )
