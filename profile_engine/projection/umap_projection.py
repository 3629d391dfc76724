"""
3D projection of profile vectors for display.

UMAP preserves local neighborhoods: nearby points in the projection are
similar profiles. Output is for display only and never feeds back into
similarity or clustering.

When fewer vectors than `n_neighbors` are available UMAP is undefined, so
every point gets uniformly random coordinates in [-extent, extent]^3 and
the result is flagged with `is_fallback=True`. Callers must not read
spatial meaning into fallback coordinates.
"""

import logging
import warnings
from dataclasses import dataclass, asdict
from typing import Dict, Any, List, Optional, Sequence

import numpy as np
import umap

from ..errors import DegenerateInputWarning, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class ProjectionConfig:
    """
    Configuration for the UMAP projection.

    Attributes:
        n_neighbors: UMAP neighborhood size (also the fallback threshold)
        min_dist: How tightly UMAP packs points
        n_components: Output dimensions
        spread: UMAP effective scale of embedded points
        fallback_extent: Half-width of the random fallback cube
        random_seed: Seed for UMAP and the fallback (None = nondeterministic)
    """
    n_neighbors: int = 15
    min_dist: float = 0.1
    n_components: int = 3
    spread: float = 1.0
    fallback_extent: float = 1.0
    random_seed: Optional[int] = None

    def validate(self) -> None:
        if self.n_neighbors < 2:
            raise ValidationError(f"n_neighbors must be at least 2, got {self.n_neighbors}")
        if self.n_components < 1:
            raise ValidationError(f"n_components must be positive, got {self.n_components}")
        if self.min_dist < 0 or self.min_dist > self.spread:
            raise ValidationError(
                f"min_dist must be in [0, spread={self.spread}], got {self.min_dist}"
            )
        if self.fallback_extent <= 0:
            raise ValidationError(f"fallback_extent must be positive, got {self.fallback_extent}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ProjectionConfig":
        projection_config = config.get("projection", {})
        return cls(
            n_neighbors=projection_config.get("n_neighbors", 15),
            min_dist=projection_config.get("min_dist", 0.1),
            n_components=projection_config.get("n_components", 3),
            spread=projection_config.get("spread", 1.0),
            fallback_extent=projection_config.get("fallback_extent", 1.0),
            random_seed=projection_config.get(
                "random_seed", config.get("global", {}).get("random_seed")
            ),
        )


@dataclass
class ProjectionResult:
    """
    Projected coordinates.

    Attributes:
        coordinates: Array of shape (n, n_components)
        is_fallback: True when coordinates are random, not a UMAP embedding
    """
    coordinates: np.ndarray
    is_fallback: bool

    def to_list(self) -> List[List[float]]:
        return [[float(x) for x in row] for row in self.coordinates]

    def __len__(self) -> int:
        return len(self.coordinates)


class UMAPProjector:
    """
    Projects profile vectors to low-dimensional coordinates.

    Attributes:
        config: ProjectionConfig
    """

    def __init__(self, config: Optional[ProjectionConfig] = None):
        self.config = config or ProjectionConfig()
        self.config.validate()

    def project(self, vectors: Sequence[Sequence[float]]) -> ProjectionResult:
        """
        Project vectors with UMAP, or random coordinates if too few.

        Args:
            vectors: Profile vectors, all the same length

        Returns:
            ProjectionResult with one row per input vector
        """
        n = len(vectors)
        if n < self.config.n_neighbors:
            message = (f"Only {n} vectors, need {self.config.n_neighbors} for UMAP. "
                       f"Using random positions.")
            logger.warning(message)
            warnings.warn(message, DegenerateInputWarning, stacklevel=2)
            return self._random_cube(n)

        matrix = np.asarray(vectors, dtype=np.float64)
        if matrix.ndim != 2:
            raise ValidationError("All vectors must have the same length")

        logger.info(f"Computing UMAP for {n} vectors...")
        reducer = umap.UMAP(
            n_neighbors=self.config.n_neighbors,
            min_dist=self.config.min_dist,
            n_components=self.config.n_components,
            spread=self.config.spread,
            random_state=self.config.random_seed,
        )
        coordinates = reducer.fit_transform(matrix)
        logger.info("UMAP projection complete")

        return ProjectionResult(coordinates=np.asarray(coordinates, dtype=np.float64),
                                is_fallback=False)

    def _random_cube(self, n: int) -> ProjectionResult:
        rng = np.random.default_rng(self.config.random_seed)
        extent = self.config.fallback_extent
        coordinates = rng.uniform(-extent, extent, size=(n, self.config.n_components))
        return ProjectionResult(coordinates=coordinates, is_fallback=True)
