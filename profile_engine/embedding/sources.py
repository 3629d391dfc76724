"""
Text embedding sources.

Every source maps a text string to a fixed-length, unit-normalized vector.
Two concrete implementations are provided:

- HashEmbeddingSource: deterministic character-hash pseudo-embedding, no I/O
- OpenAIEmbeddingSource: network-backed embedding truncated to `dim`

ResilientEmbeddingSource wraps a primary source with a cache and a
deterministic fallback, so that an outage of the embedding service degrades
vector quality instead of failing the profile update pipeline.
"""

import logging
import os
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional, Set

import numpy as np
from openai import OpenAI, OpenAIError

from ..errors import EmbeddingUnavailableError, ValidationError

logger = logging.getLogger(__name__)


def normalize_text(text: str) -> str:
    """Canonical cache key for a text: lower-cased and stripped."""
    return (text or "").lower().strip()


def l2_normalize(vector: np.ndarray) -> np.ndarray:
    """Return vector / ||vector||, or the vector unchanged when its norm is 0."""
    vector = np.asarray(vector, dtype=np.float64)
    norm = np.linalg.norm(vector)
    if norm == 0 or not np.isfinite(norm):
        return vector
    return vector / norm


class EmbeddingSource(ABC):
    """Maps text to a unit vector of fixed dimension `dim`."""

    dim: int

    @abstractmethod
    def embed(self, text: str) -> np.ndarray:
        """Embed one text. Empty text yields the zero vector."""


class HashEmbeddingSource(EmbeddingSource):
    """
    Deterministic pseudo-embedding.

    Each character of the normalized text adds (ord(c) % 31) / 31 to slot
    i % dim; the result is L2-normalized. Same text, same vector, on every
    machine and every run.
    """

    def __init__(self, dim: int = 16):
        if dim < 1:
            raise ValidationError(f"dim must be positive, got {dim}")
        self.dim = dim

    def embed(self, text: str) -> np.ndarray:
        clean = normalize_text(text)
        values = np.zeros(self.dim, dtype=np.float64)
        for i, char in enumerate(clean):
            values[i % self.dim] += (ord(char) % 31) / 31
        return l2_normalize(values)


class OpenAIEmbeddingSource(EmbeddingSource):
    """
    Embeddings from the OpenAI embeddings API, truncated to `dim` values.

    Any client or response failure is raised as EmbeddingUnavailableError,
    including a client that could not be built (e.g. no API key).
    """

    def __init__(
        self,
        dim: int = 16,
        model: str = "text-embedding-3-small",
        api_key: Optional[str] = None,
        timeout: float = 10.0,
        client: Optional[Any] = None
    ):
        self.dim = dim
        self.model = model
        if client is None:
            try:
                client = OpenAI(api_key=api_key or os.getenv("OPENAI_API_KEY"), timeout=timeout)
            except OpenAIError as e:
                logger.warning(f"OpenAI client unavailable, every request will fall back: {e}")
                client = None
        self.client = client

    def embed(self, text: str) -> np.ndarray:
        clean = normalize_text(text)
        if not clean:
            return np.zeros(self.dim, dtype=np.float64)
        if self.client is None:
            raise EmbeddingUnavailableError("OpenAI client is not configured")

        try:
            response = self.client.embeddings.create(model=self.model, input=clean)
        except OpenAIError as e:
            raise EmbeddingUnavailableError(f"Embedding request failed: {e}") from e

        data = getattr(response, "data", None) or []
        embedding = data[0].embedding if data else None
        if not embedding:
            raise EmbeddingUnavailableError(f"Empty embedding returned for model {self.model}")

        vector = np.asarray(embedding[:self.dim], dtype=np.float64)
        if len(vector) != self.dim:
            raise EmbeddingUnavailableError(
                f"Model {self.model} returned {len(vector)} values, need {self.dim}"
            )
        return l2_normalize(vector)


class ResilientEmbeddingSource(EmbeddingSource):
    """
    Cached embedding source with a deterministic fallback.

    Results are cached per normalized text, fallback results included, so the
    same text always maps to the same vector within a process.

    Attributes:
        primary: Preferred source (usually network-backed)
        fallback: Deterministic source used when the primary fails
        fallback_count: Number of texts that were served by the fallback
    """

    def __init__(self, primary: EmbeddingSource, fallback: Optional[EmbeddingSource] = None):
        fallback = fallback or HashEmbeddingSource(primary.dim)
        if fallback.dim != primary.dim:
            raise ValidationError(
                f"Fallback dim {fallback.dim} does not match primary dim {primary.dim}"
            )
        self.primary = primary
        self.fallback = fallback
        self.dim = primary.dim
        self.fallback_count = 0
        self._cache: Dict[str, np.ndarray] = {}
        self._fallback_keys: Set[str] = set()
        self._lock = threading.Lock()

    def embed(self, text: str) -> np.ndarray:
        key = normalize_text(text)
        if not key:
            return np.zeros(self.dim, dtype=np.float64)

        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached.copy()

        try:
            vector = self.primary.embed(key)
            used_fallback = False
        except EmbeddingUnavailableError as e:
            logger.warning(f"Embedding service unavailable, using fallback embedding: {e}")
            vector = self.fallback.embed(key)
            used_fallback = True

        with self._lock:
            self._cache[key] = vector
            if used_fallback:
                self._fallback_keys.add(key)
                self.fallback_count += 1
        return vector.copy()

    def is_fallback(self, text: str) -> bool:
        """Whether the cached vector for `text` came from the fallback source."""
        with self._lock:
            return normalize_text(text) in self._fallback_keys

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()
            self._fallback_keys.clear()

    @property
    def cache_size(self) -> int:
        return len(self._cache)


@dataclass
class EmbeddingConfig:
    """
    Configuration for the embedding source.

    Attributes:
        provider: "hash" (offline, deterministic) or "openai"
        model: Embedding model name for network providers
        dim: Semantic dimensionality D_sem
        timeout: Network timeout in seconds
    """
    provider: str = "hash"
    model: str = "text-embedding-3-small"
    dim: int = 16
    timeout: float = 10.0

    def validate(self) -> None:
        if self.provider not in ["hash", "openai"]:
            raise ValidationError(f"Unknown embedding provider: {self.provider}")
        if self.dim < 1:
            raise ValidationError(f"dim must be positive, got {self.dim}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "EmbeddingConfig":
        embedding_config = config.get("embedding", {})
        return cls(
            provider=embedding_config.get("provider", "hash"),
            model=embedding_config.get("model", "text-embedding-3-small"),
            dim=embedding_config.get("dim", 16),
            timeout=embedding_config.get("timeout", 10.0),
        )


def create_embedding_source_from_config(config: Dict[str, Any]) -> ResilientEmbeddingSource:
    """
    Factory function to create the embedding source from config.

    Args:
        config: Main configuration dictionary

    Returns:
        ResilientEmbeddingSource wrapping the configured provider
    """
    embedding_config = EmbeddingConfig.from_config(config)
    embedding_config.validate()

    if embedding_config.provider == "openai":
        primary = OpenAIEmbeddingSource(
            dim=embedding_config.dim,
            model=embedding_config.model,
            timeout=embedding_config.timeout,
        )
    else:
        primary = HashEmbeddingSource(embedding_config.dim)

    logger.info(f"Initialized {embedding_config.provider} embedding source, dim={embedding_config.dim}")
    return ResilientEmbeddingSource(primary, HashEmbeddingSource(embedding_config.dim))
