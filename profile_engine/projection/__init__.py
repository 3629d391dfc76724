"""Projection module: UMAP to 3D for display."""

from .umap_projection import ProjectionConfig, ProjectionResult, UMAPProjector

__all__ = ["ProjectionConfig", "ProjectionResult", "UMAPProjector"]
