"""Embedding module: text -> unit vector sources with a deterministic fallback."""

from .sources import (
    EmbeddingSource,
    HashEmbeddingSource,
    OpenAIEmbeddingSource,
    ResilientEmbeddingSource,
    EmbeddingConfig,
    create_embedding_source_from_config,
    l2_normalize,
)

__all__ = [
    "EmbeddingSource",
    "HashEmbeddingSource",
    "OpenAIEmbeddingSource",
    "ResilientEmbeddingSource",
    "EmbeddingConfig",
    "create_embedding_source_from_config",
    "l2_normalize",
]
