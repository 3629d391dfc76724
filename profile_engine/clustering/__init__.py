"""Clustering module: density-based grouping of profile vectors."""

from .density import NOISE_LABEL, ClusterConfig, ClusterStats, DensityClusterer, cluster_stats

__all__ = ["NOISE_LABEL", "ClusterConfig", "ClusterStats", "DensityClusterer", "cluster_stats"]
