"""Evaluation module for similarity-space diagnostics."""

from .metrics import (
    compute_similarity_distribution_stats,
    compute_cluster_cohesion,
    check_projection,
    EngineReport,
    create_engine_report
)

__all__ = [
    "compute_similarity_distribution_stats",
    "compute_cluster_cohesion",
    "check_projection",
    "EngineReport",
    "create_engine_report"
]
