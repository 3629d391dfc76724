"""
Person records and immutable store snapshots.

A PersonRecord carries everything the engine keeps about one person:
identity fields, TraitProfile, interest tags, confidence and the current
ProfileVector. The persisted shape is the vector as a list of floats plus
the traits as named floats.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Any, Iterable, List, Mapping, Optional, Tuple

import numpy as np

from ..errors import NotFoundError, ValidationError
from ..traits.trait_model import TraitProfile


def merge_tags(existing: Iterable[str], new: Iterable[str]) -> List[str]:
    """Ordered union of interest tags, keeping first occurrences."""
    merged = []
    seen = set()
    for tag in list(existing) + list(new):
        tag = str(tag).strip()
        if tag and tag not in seen:
            seen.add(tag)
            merged.append(tag)
    return merged


@dataclass(eq=False)
class PersonRecord:
    """
    One person's profile.

    Attributes:
        person_id: Stable user id
        name: Display name
        age: Age in years
        institution: Institution tag (e.g. university)
        traits: Current TraitProfile
        interests: Declared and extracted interest tags
        confidence: Accumulated confidence in [0, 1], never decreases
        vector: Current ProfileVector (empty until first fused)
    """
    person_id: str
    name: str = "Student"
    age: int = 20
    institution: str = "University"
    traits: TraitProfile = field(default_factory=TraitProfile)
    interests: List[str] = field(default_factory=list)
    confidence: float = 0.0
    vector: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def __post_init__(self):
        if not self.person_id:
            raise ValidationError("person_id must be a non-empty string")
        self.person_id = str(self.person_id)
        if isinstance(self.traits, Mapping):
            self.traits = TraitProfile.from_dict(self.traits)
        self.interests = merge_tags(self.interests or [], [])
        self.confidence = float(min(max(self.confidence, 0.0), 1.0))
        self.vector = np.asarray(self.vector if self.vector is not None else [], dtype=np.float64)

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_read_only", False):
            raise AttributeError(f"Snapshot record {self.person_id!r} is read-only")
        super().__setattr__(name, value)

    def copy(self, read_only: bool = False) -> "PersonRecord":
        """
        Independent copy of this record.

        A read-only copy has a non-writable vector, interests as a tuple and
        rejects attribute assignment; copying it again gives a writable record.
        """
        clone = PersonRecord(
            person_id=self.person_id,
            name=self.name,
            age=self.age,
            institution=self.institution,
            traits=self.traits,
            interests=list(self.interests),
            confidence=self.confidence,
            vector=self.vector.copy(),
        )
        if read_only:
            clone.vector.setflags(write=False)
            clone.interests = tuple(clone.interests)
            clone._read_only = True
        return clone

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "id": self.person_id,
            "name": self.name,
            "age": int(self.age),
            "institution": self.institution,
            "traits": self.traits.to_dict(),
            "interests": list(self.interests),
            "confidence": float(self.confidence),
            "vector": [float(v) for v in self.vector],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PersonRecord":
        """
        Create from dictionary.

        Accepts "id" or "person_id", and "institution" or "uni".
        """
        person_id = data.get("id", data.get("person_id"))
        institution = data.get("institution", data.get("uni"))
        vector = data.get("vector")
        return cls(
            person_id=person_id,
            name=data.get("name") or "Student",
            age=int(data.get("age") or 20),
            institution=institution or "University",
            traits=TraitProfile.from_dict(data.get("traits")),
            interests=list(data.get("interests") or []),
            confidence=float(data.get("confidence") or 0.0),
            vector=np.asarray(vector if vector is not None else [], dtype=np.float64),
        )


@dataclass(frozen=True)
class StoreSnapshot:
    """
    Immutable view of the store at one point in time.

    Every read operation (retrieval, explanation, clustering, projection)
    runs against a snapshot, so it can safely run on another thread while
    writers keep updating the store.
    """
    records: Mapping[str, PersonRecord] = field(default_factory=dict)

    @classmethod
    def from_records(cls, records: Iterable[PersonRecord]) -> "StoreSnapshot":
        frozen = {r.person_id: r.copy(read_only=True) for r in records}
        return cls(records=MappingProxyType(frozen))

    @property
    def ids(self) -> List[str]:
        """Person ids in ascending order."""
        return sorted(self.records)

    def get_record(self, person_id: str) -> PersonRecord:
        record = self.records.get(person_id)
        if record is None:
            raise NotFoundError(person_id)
        return record

    def get_vector(self, person_id: str) -> np.ndarray:
        record = self.records.get(person_id)
        if record is None or len(record.vector) == 0:
            raise NotFoundError(person_id)
        return record.vector

    def vectors(
        self,
        ids: Optional[List[str]] = None,
        informative_only: bool = False
    ) -> Tuple[List[str], np.ndarray]:
        """
        Stack current vectors into a matrix.

        Args:
            ids: Ids to include (default: all ids with a vector, ascending)
            informative_only: Skip all-zero ("insufficient data") vectors
                when selecting the default ids

        Returns:
            Tuple of (ids, matrix) with one row per id
        """
        if ids is None:
            ids = [pid for pid in self.ids if len(self.records[pid].vector) > 0]
            if informative_only:
                ids = [pid for pid in ids if np.any(self.records[pid].vector)]
        if not ids:
            return [], np.zeros((0, 0))
        return list(ids), np.vstack([self.get_vector(pid) for pid in ids])

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, person_id: str) -> bool:
        return person_id in self.records
