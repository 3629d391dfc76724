"""Similarity module: cosine similarity and exact k-nearest retrieval."""

from .retrieval import (
    Neighbor,
    RetrievalConfig,
    cosine,
    cosine_to_all,
    cohesion,
    is_degenerate,
    k_nearest,
)

__all__ = [
    "Neighbor",
    "RetrievalConfig",
    "cosine",
    "cosine_to_all",
    "cohesion",
    "is_degenerate",
    "k_nearest",
]
