"""Vector fusion module for combining traits and semantic memory."""

from .vector_fusion import (
    VectorFusion,
    FusionConfig,
    create_fusion_from_config,
    build_trait_block,
    blend_vectors,
)

__all__ = [
    "VectorFusion",
    "FusionConfig",
    "create_fusion_from_config",
    "build_trait_block",
    "blend_vectors",
]
