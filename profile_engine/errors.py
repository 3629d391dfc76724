"""
Error taxonomy for the profile engine.

- ValidationError: bad input (mismatched vector lengths, out-of-range
  confidence, invalid configuration). Never retried.
- NotFoundError: unknown person id in retrieval or explanation.
- DegenerateInputWarning: a zero-norm query or too few points for the
  projection. Handled locally with a flagged fallback and reported on the
  warnings channel, never raised.
- EmbeddingUnavailableError: the external embedding service failed. Always
  recovered by the resilient embedding source.
"""


class EngineError(Exception):
    """Base class for all profile engine errors."""


class ValidationError(EngineError, ValueError):
    """Input failed validation."""


class NotFoundError(EngineError, KeyError):
    """A person id has no stored profile."""

    def __init__(self, person_id: str):
        super().__init__(person_id)
        self.person_id = person_id

    def __str__(self) -> str:
        return f"Person {self.person_id!r} not found in store"


class EmbeddingUnavailableError(EngineError):
    """The embedding collaborator could not produce a vector."""


class DegenerateInputWarning(UserWarning):
    """Emitted when a degenerate input was replaced by a fallback."""
