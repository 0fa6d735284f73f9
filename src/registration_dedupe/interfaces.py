from __future__ import annotations

from typing import Protocol, Sequence

from registration_dedupe.models import FactRecord, StoredCandidate


class RecordNormalizerProtocol(Protocol):
    """Step 1: render a fact record as canonical text for embedding."""

    def normalize(self, record: FactRecord) -> str:
        ...


class EmbeddingGateway(Protocol):
    """Step 2: external embedding backend. May fail or time out."""

    model_name: str

    async def embed(self, text: str) -> list[float]:
        ...

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        ...


class CandidateSource(Protocol):
    """Step 3: stored registrations, by embedding or by exact plate key."""

    def list_candidates_with_embedding(self) -> list[StoredCandidate]:
        ...

    def find_by_exact_key(self, normalized_key: str) -> list[StoredCandidate]:
        ...
