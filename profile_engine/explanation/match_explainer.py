"""
Match explanation: which dimensions drive the similarity between two people.

Per dimension i of the two profile vectors (raw traits and semantic slots):

    contribution_i = (1 - |a_i - b_i|) * a_i * b_i

This rewards dimensions where both people score high AND agree; if either
side is near zero the dimension contributes near zero regardless of
agreement. Each shared interest tag adds a fixed bonus. All contributions
are pooled and the top N returned.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional

import numpy as np

from ..errors import ValidationError
from ..fusion.vector_fusion import TRAIT_BLOCK_SIZE
from ..similarity.retrieval import cosine
from ..store.records import StoreSnapshot
from ..traits.trait_model import TRAIT_NAMES

logger = logging.getLogger(__name__)


@dataclass
class Contribution:
    """
    One ranked contributor to a match.

    Attributes:
        dimension: Trait name, "semantic_<i>", or the shared interest tag
        kind: "trait", "semantic" or "interest"
        value: Contribution amount
    """
    dimension: str
    kind: str
    value: float

    def to_dict(self) -> Dict[str, Any]:
        return {"dimension": self.dimension, "kind": self.kind, "value": round(self.value, 3)}


@dataclass
class MatchExplanation:
    """
    Result of explaining a match between two persons.

    Attributes:
        person_a: First person id
        person_b: Second person id
        similarity: Cosine similarity of the two profile vectors
        contributions: Top contributions, descending
        shared_interests: Interest tags both persons hold
    """
    person_a: str
    person_b: str
    similarity: float
    contributions: List[Contribution] = field(default_factory=list)
    shared_interests: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (values rounded to 3 decimals)."""
        return {
            "person_a": self.person_a,
            "person_b": self.person_b,
            "similarity": round(self.similarity, 3),
            "top_contributors": [c.to_dict() for c in self.contributions],
            "shared_interests": list(self.shared_interests),
        }


@dataclass
class ExplanationConfig:
    """
    Configuration for match explanation.

    Attributes:
        top_n: Number of contributions returned
        interest_bonus: Fixed contribution of each shared interest tag
    """
    top_n: int = 5
    interest_bonus: float = 0.15

    def validate(self) -> None:
        if self.top_n < 1:
            raise ValidationError(f"top_n must be at least 1, got {self.top_n}")
        if self.interest_bonus < 0:
            raise ValidationError(f"interest_bonus must be non-negative, got {self.interest_bonus}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ExplanationConfig":
        explanation_config = config.get("explanation", {})
        return cls(
            top_n=explanation_config.get("top_n", 5),
            interest_bonus=explanation_config.get("interest_bonus", 0.15),
        )


def dimension_contributions(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Element-wise (1 - |a - b|) * a * b."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    return (1 - np.abs(a - b)) * a * b


class MatchExplainer:
    """
    Decomposes the similarity of two stored persons into ranked contributions.

    Attributes:
        config: ExplanationConfig
    """

    def __init__(self, config: Optional[ExplanationConfig] = None):
        self.config = config or ExplanationConfig()
        self.config.validate()

    def explain(self, snapshot: StoreSnapshot, a_id: str, b_id: str) -> MatchExplanation:
        """
        Explain the match between two persons.

        Args:
            snapshot: Store snapshot holding both persons
            a_id: First person id
            b_id: Second person id

        Returns:
            MatchExplanation with similarity, top contributions and shared interests

        Raises:
            NotFoundError: If either id is unknown
        """
        record_a = snapshot.get_record(a_id)
        record_b = snapshot.get_record(b_id)
        vector_a = snapshot.get_vector(a_id)
        vector_b = snapshot.get_vector(b_id)

        similarity = cosine(vector_a, vector_b)

        contributions = []

        trait_values = dimension_contributions(vector_a[:len(TRAIT_NAMES)], vector_b[:len(TRAIT_NAMES)])
        for name, value in zip(TRAIT_NAMES, trait_values):
            contributions.append(Contribution(name, "trait", float(value)))

        semantic_values = dimension_contributions(vector_a[TRAIT_BLOCK_SIZE:], vector_b[TRAIT_BLOCK_SIZE:])
        for i, value in enumerate(semantic_values):
            contributions.append(Contribution(f"semantic_{i}", "semantic", float(value)))

        interests_b = set(record_b.interests)
        shared_interests = [tag for tag in record_a.interests if tag in interests_b]
        for tag in shared_interests:
            contributions.append(Contribution(tag, "interest", self.config.interest_bonus))

        contributions.sort(key=lambda c: (-c.value, c.dimension))

        return MatchExplanation(
            person_a=a_id,
            person_b=b_id,
            similarity=similarity,
            contributions=contributions[:self.config.top_n],
            shared_interests=shared_interests,
        )
