"""
In-memory profile store.

The store owns the map from person id to PersonRecord (and its current
ProfileVector) plus the per-person semantic memory. Lifecycle:

    store = ProfileStore(fusion, trait_model, embedding_source)
    store.initialize(records)          # seed from persisted records
    store.process_turn(...)            # many writes
    store.snapshot()                   # many reads, on any thread
    store.export_state()               # optional persistence

Concurrency:
- Writers serialize per person id; different people update in parallel.
- The map lock only guards dict reads/swaps and is never held while an
  embedding is computed, so snapshot readers never wait on the embedding
  service.
"""

import logging
import threading
from dataclasses import dataclass, asdict
from typing import Dict, Any, Iterable, List, Mapping, Optional, Tuple

import numpy as np

from ..embedding.sources import EmbeddingSource, l2_normalize
from ..errors import NotFoundError, ValidationError
from ..fusion.vector_fusion import VectorFusion
from ..traits.trait_model import TraitModel, TraitProfile, validate_confidence
from .records import PersonRecord, StoreSnapshot, merge_tags

logger = logging.getLogger(__name__)


@dataclass
class StoreConfig:
    """
    Configuration for the profile store.

    Attributes:
        confidence_gain: Share of a turn's confidence added to the record's confidence
        default_name: Display name for persons first seen in conversation
        default_age: Age for persons first seen in conversation
        default_institution: Institution tag for persons first seen in conversation
    """
    confidence_gain: float = 0.1
    default_name: str = "Student"
    default_age: int = 20
    default_institution: str = "University"

    def validate(self) -> None:
        if not 0 <= self.confidence_gain <= 1:
            raise ValidationError(f"confidence_gain must be in [0, 1], got {self.confidence_gain}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "StoreConfig":
        store_config = config.get("store", {})
        return cls(
            confidence_gain=store_config.get("confidence_gain", 0.1),
            default_name=store_config.get("default_name", "Student"),
            default_age=store_config.get("default_age", 20),
            default_institution=store_config.get("default_institution", "University"),
        )


class ProfileStore:
    """
    Single-process store of person profiles and semantic memories.

    Attributes:
        fusion: VectorFusion used to build and blend profile vectors
        trait_model: TraitModel applying conversational signals
        embedding_source: Text embedding source for interests and messages
        config: StoreConfig
    """

    def __init__(
        self,
        fusion: VectorFusion,
        trait_model: TraitModel,
        embedding_source: EmbeddingSource,
        config: Optional[StoreConfig] = None
    ):
        if embedding_source.dim != fusion.config.semantic_dim:
            raise ValidationError(
                f"Embedding dim {embedding_source.dim} does not match "
                f"semantic_dim {fusion.config.semantic_dim}"
            )
        self.fusion = fusion
        self.trait_model = trait_model
        self.embedding_source = embedding_source
        self.config = config or StoreConfig()
        self.config.validate()

        self._records: Dict[str, PersonRecord] = {}
        self._semantic: Dict[str, np.ndarray] = {}
        self._map_lock = threading.Lock()
        self._person_locks: Dict[str, threading.Lock] = {}
        self._person_locks_guard = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(self, records: Iterable[PersonRecord]) -> int:
        """
        Seed the store from persisted records.

        Records whose stored vector is missing or has a stale length are
        rebuilt from their traits and interest-seeded semantic memory.

        Args:
            records: Persisted person records

        Returns:
            Number of records whose vector was rebuilt
        """
        expected_length = self.fusion.profile_length
        rebuilt = 0
        loaded = {}

        for record in records:
            record = record.copy()
            if len(record.vector) != expected_length:
                semantic = self._seed_semantic(record.interests)
                record.vector = self.fusion.fuse(record.traits, semantic)
                with self._map_lock:
                    self._semantic[record.person_id] = semantic
                rebuilt += 1
            loaded[record.person_id] = record

        with self._map_lock:
            self._records = loaded
            self._semantic = {pid: v for pid, v in self._semantic.items() if pid in loaded}

        if rebuilt:
            logger.warning(f"Rebuilt {rebuilt} profile vectors with missing or stale length")
        logger.info(f"Vector store initialized with {len(loaded)} vectors")
        return rebuilt

    def export_state(self) -> Dict[str, Any]:
        """Serializable state: records plus semantic memories."""
        with self._map_lock:
            records = [r.to_dict() for r in self._records.values()]
            semantic = {pid: v.tolist() for pid, v in self._semantic.items()}
        return {"records": records, "semantic_memory": semantic}

    def restore_state(self, state: Mapping[str, Any]) -> None:
        """Restore records and semantic memories produced by export_state()."""
        records = [PersonRecord.from_dict(r) for r in state.get("records", [])]
        self.initialize(records)
        semantic = {
            pid: np.asarray(v, dtype=np.float64)
            for pid, v in (state.get("semantic_memory") or {}).items()
            if len(v) == self.fusion.config.semantic_dim
        }
        with self._map_lock:
            self._semantic.update({pid: v for pid, v in semantic.items() if pid in self._records})

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def onboard(
        self,
        person_id: str,
        name: Optional[str] = None,
        age: Optional[int] = None,
        institution: Optional[str] = None,
        interests: Iterable[str] = (),
        traits: Optional[TraitProfile] = None
    ) -> PersonRecord:
        """
        Create (or reset) a person's record from onboarding data.

        The profile vector is fused from the given traits (defaults 0.5)
        and a semantic memory seeded from the interest tags.
        """
        interests = merge_tags(interests, [])
        with self._person_lock(person_id):
            semantic = self._seed_semantic(interests)
            record = PersonRecord(
                person_id=person_id,
                name=name or self.config.default_name,
                age=age if age is not None else self.config.default_age,
                institution=institution or self.config.default_institution,
                traits=traits or TraitProfile(),
                interests=interests,
                confidence=0.0,
                vector=self.fusion.fuse(traits or TraitProfile(), semantic),
            )
            with self._map_lock:
                self._semantic[record.person_id] = semantic
                self._records[record.person_id] = record

        logger.info(f"Onboarded person {person_id} with {len(interests)} interests")
        return record.copy()

    def update_semantic(
        self,
        person_id: str,
        interest_tags: Iterable[str],
        message_embedding: Optional[np.ndarray] = None
    ) -> np.ndarray:
        """
        Update a person's semantic memory.

        If no memory exists it is seeded from the mean embedding of
        `interest_tags` (zero vector if none). A message embedding, when
        given, is then blended in with the semantic blend factor.

        Returns:
            Copy of the updated semantic vector
        """
        with self._person_lock(person_id):
            return self._update_semantic_locked(person_id, list(interest_tags), message_embedding).copy()

    def process_turn(
        self,
        person_id: str,
        signals: Mapping[str, float],
        confidence: float,
        message_text: Optional[str] = None,
        new_interests: Iterable[str] = ()
    ) -> PersonRecord:
        """
        Apply one processed conversational turn to a person.

        Steps: apply signals to the stored traits, update semantic memory
        with the message, fuse a candidate vector, blend it into the stored
        vector by confidence * profile_blend_scale, raise the record's
        confidence. Unknown persons get a default record that adopts the
        candidate vector outright.

        Args:
            person_id: Person the turn belongs to
            signals: Extracted signal magnitudes
            confidence: Extraction confidence in [0, 1]
            message_text: Raw message text to embed (optional)
            new_interests: Interest tags extracted this turn

        Returns:
            Copy of the updated PersonRecord
        """
        confidence = validate_confidence(confidence)
        # Embedding happens before any store lock is taken.
        message_embedding = self.embedding_source.embed(message_text) if message_text else None

        with self._person_lock(person_id):
            with self._map_lock:
                existing = self._records.get(person_id)

            base_traits = existing.traits if existing else TraitProfile()
            traits = self.trait_model.apply_signals(base_traits, signals, confidence)
            interests = merge_tags(existing.interests if existing else [], new_interests)

            semantic = self._update_semantic_locked(person_id, interests, message_embedding)
            candidate = self.fusion.fuse(traits, semantic)

            if existing is not None:
                record = existing.copy()
                record.vector = self.fusion.blend_profile(existing.vector, candidate, confidence)
                record.traits = traits
                record.interests = interests
                record.confidence = min(1.0, existing.confidence + confidence * self.config.confidence_gain)
            else:
                logger.info(f"Creating default record for new person {person_id}")
                record = PersonRecord(
                    person_id=person_id,
                    name=self.config.default_name,
                    age=self.config.default_age,
                    institution=self.config.default_institution,
                    traits=traits,
                    interests=interests,
                    confidence=confidence,
                    vector=candidate,
                )

            with self._map_lock:
                self._records[person_id] = record

        return record.copy()

    def upsert(self, record: PersonRecord) -> PersonRecord:
        """Store a record, re-fusing its vector from traits and semantic memory."""
        with self._person_lock(record.person_id):
            semantic = self._update_semantic_locked(record.person_id, record.interests, None)
            record = record.copy()
            record.vector = self.fusion.fuse(record.traits, semantic)
            with self._map_lock:
                self._records[record.person_id] = record
        return record.copy()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, person_id: str) -> PersonRecord:
        with self._map_lock:
            record = self._records.get(person_id)
        if record is None:
            raise NotFoundError(person_id)
        return record.copy()

    def semantic_memory(self, person_id: str) -> Optional[np.ndarray]:
        with self._map_lock:
            memory = self._semantic.get(person_id)
        return None if memory is None else memory.copy()

    def snapshot(self) -> StoreSnapshot:
        """Immutable snapshot of all current records."""
        with self._map_lock:
            records = list(self._records.values())
        return StoreSnapshot.from_records(records)

    def all_vectors(self) -> Tuple[List[str], np.ndarray]:
        """All current profile vectors as (ids ascending, matrix)."""
        return self.snapshot().vectors()

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, person_id: str) -> bool:
        return person_id in self._records

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _person_lock(self, person_id: str) -> threading.Lock:
        with self._person_locks_guard:
            lock = self._person_locks.get(person_id)
            if lock is None:
                lock = self._person_locks[person_id] = threading.Lock()
            return lock

    def _seed_semantic(self, interest_tags: List[str]) -> np.ndarray:
        """Normalized mean embedding of interest tags (zero vector if none)."""
        dim = self.fusion.config.semantic_dim
        if not interest_tags:
            return np.zeros(dim, dtype=np.float64)
        embeddings = np.vstack([self.embedding_source.embed(tag) for tag in interest_tags])
        return l2_normalize(embeddings.mean(axis=0))

    def _update_semantic_locked(
        self,
        person_id: str,
        interest_tags: List[str],
        message_embedding: Optional[np.ndarray]
    ) -> np.ndarray:
        with self._map_lock:
            memory = self._semantic.get(person_id)

        if memory is None:
            memory = self._seed_semantic(interest_tags)

        if message_embedding is not None:
            message_embedding = np.asarray(message_embedding, dtype=np.float64)
            if len(message_embedding) != self.fusion.config.semantic_dim:
                raise ValidationError(
                    f"Message embedding must have {self.fusion.config.semantic_dim} values, "
                    f"got {len(message_embedding)}"
                )
            memory = self.fusion.blend_semantic(memory, message_embedding)

        with self._map_lock:
            self._semantic[person_id] = memory
        return memory
