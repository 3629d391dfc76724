"""
Cosine similarity and exact k-nearest-neighbor retrieval.

Retrieval is an exact brute-force scan: every query compares against every
other stored vector, O(n) per query.

Zero vectors mean "no data yet": their similarity to anything is 0 and they
are never returned as neighbors.
"""

import logging
import warnings
from dataclasses import dataclass, asdict
from typing import Dict, Any, List, NamedTuple, Sequence

import numpy as np
from sklearn.metrics.pairwise import cosine_similarity

from ..errors import DegenerateInputWarning, ValidationError
from ..store.records import StoreSnapshot

logger = logging.getLogger(__name__)


class Neighbor(NamedTuple):
    """One retrieval hit: (person_id, similarity)."""
    person_id: str
    similarity: float


def is_degenerate(vector: Sequence[float]) -> bool:
    """True for the all-zero vector (insufficient data)."""
    vector = np.asarray(vector, dtype=np.float64)
    return vector.size == 0 or not np.any(vector)


def cosine(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity between two vectors.

    Args:
        a: First vector
        b: Second vector

    Returns:
        dot(a, b) / (||a|| * ||b||), or 0.0 if either norm is zero

    Raises:
        ValidationError: If the vectors have different lengths
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValidationError(f"Vectors must have same length: {len(a)} vs {len(b)}")

    magnitude = np.linalg.norm(a) * np.linalg.norm(b)
    if magnitude == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / magnitude, -1.0, 1.0))


def cosine_to_all(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """
    Cosine similarity of one query against every row of a matrix.

    Rows (or a query) with zero norm get similarity 0.
    """
    query = np.asarray(query, dtype=np.float64).reshape(1, -1)
    matrix = np.asarray(matrix, dtype=np.float64)
    if matrix.size == 0:
        return np.zeros(0)
    if matrix.shape[1] != query.shape[1]:
        raise ValidationError(
            f"Vectors must have same length: {query.shape[1]} vs {matrix.shape[1]}"
        )
    return np.clip(cosine_similarity(query, matrix)[0], -1.0, 1.0)


def k_nearest(snapshot: StoreSnapshot, person_id: str, k: int = 5) -> List[Neighbor]:
    """
    Find the k most similar persons to `person_id`.

    Results exclude the query itself and any person whose vector is all
    zero. They are sorted by descending similarity, ties broken by
    ascending id.

    Args:
        snapshot: Store snapshot to search
        person_id: Query person
        k: Number of neighbors to return

    Returns:
        Up to k Neighbor tuples (empty if the query vector is all zero)

    Raises:
        NotFoundError: If `person_id` has no stored vector
        ValidationError: If k is negative
    """
    if k < 0:
        raise ValidationError(f"k must be non-negative, got {k}")

    query = snapshot.get_vector(person_id)
    if is_degenerate(query):
        message = f"Person {person_id} has an all-zero profile vector; no neighbors"
        logger.warning(message)
        warnings.warn(message, DegenerateInputWarning, stacklevel=2)
        return []

    candidate_ids = [
        pid for pid in snapshot.ids
        if pid != person_id and not is_degenerate(snapshot.records[pid].vector)
    ]
    if k == 0 or not candidate_ids:
        return []

    _, matrix = snapshot.vectors(candidate_ids)
    similarities = cosine_to_all(query, matrix)

    ranked = sorted(zip(candidate_ids, similarities), key=lambda item: (-item[1], item[0]))
    return [Neighbor(pid, float(sim)) for pid, sim in ranked[:k]]


def cohesion(vectors: Sequence[Sequence[float]]) -> float:
    """
    Average pairwise cosine similarity within a group.

    Groups of fewer than two vectors have cohesion 0.
    """
    vectors = np.asarray(vectors, dtype=np.float64)
    n = len(vectors)
    if n < 2:
        return 0.0
    similarities = cosine_similarity(vectors)
    upper = similarities[np.triu_indices(n, k=1)]
    return float(np.mean(upper))


@dataclass
class RetrievalConfig:
    """Configuration for retrieval (default neighbor count)."""
    default_k: int = 5

    def validate(self) -> None:
        if self.default_k < 0:
            raise ValidationError(f"default_k must be non-negative, got {self.default_k}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "RetrievalConfig":
        return cls(default_k=config.get("retrieval", {}).get("default_k", 5))
