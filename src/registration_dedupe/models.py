from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

# Output of a completed registration dialogue, nested (car.*, customer.*) or flat.
FactRecord = Mapping[str, Any]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Embedding:
    """Vector computed for a record's canonical text, tagged with its producer."""

    vector: tuple[float, ...]
    model: str
    created_at: datetime = field(default_factory=_utcnow)

    @classmethod
    def create(cls, vector: Sequence[float], model: str) -> "Embedding":
        return cls(vector=tuple(float(v) for v in vector), model=model)

    @property
    def dimensions(self) -> int:
        return len(self.vector)


@dataclass(slots=True)
class StoredCandidate:
    """A previously stored registration eligible for duplicate comparison."""

    record_id: str
    record: dict[str, Any]
    embedding: Embedding | None = None


@dataclass(frozen=True, slots=True)
class RankedCandidate:
    record_id: str
    similarity: float


@dataclass(frozen=True, slots=True)
class DuplicateResult:
    """Outcome of one detection call.

    Only the opaque id of the matched record and a numeric score may be carried
    here; nothing derived from record values.
    """

    is_duplicate: bool
    requires_confirmation: bool
    similarity_score: float | None = None
    existing_record_id: str | None = None

    @classmethod
    def no_duplicate(cls) -> "DuplicateResult":
        return cls(is_duplicate=False, requires_confirmation=False)

    @classmethod
    def match(cls, record_id: str, score: float) -> "DuplicateResult":
        return cls(
            is_duplicate=True,
            requires_confirmation=True,
            similarity_score=score,
            existing_record_id=record_id,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "is_duplicate": self.is_duplicate,
            "requires_confirmation": self.requires_confirmation,
        }
        if self.similarity_score is not None:
            payload["similarity_score"] = self.similarity_score
        if self.existing_record_id is not None:
            payload["existing_record_id"] = self.existing_record_id
        return payload
