from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from typing import Any

from registration_dedupe.config import DetectionConfig
from registration_dedupe.interfaces import EmbeddingGateway, RecordNormalizerProtocol
from registration_dedupe.models import Embedding, FactRecord, StoredCandidate
from registration_dedupe.steps.embedding import embed_record
from registration_dedupe.steps.normalize import RecordNormalizer
from registration_dedupe.steps.similarity import is_valid_vector

logger = logging.getLogger(__name__)


class InMemoryCandidateStore:
    """Local reference candidate source.

    Keeps the ``CandidateSource`` shape so a database-backed store can be
    swapped in without touching the engine.
    """

    def __init__(self, normalizer: RecordNormalizer | None = None) -> None:
        self._normalizer = normalizer or RecordNormalizer()
        self._candidates: dict[str, StoredCandidate] = {}

    def __len__(self) -> int:
        return len(self._candidates)

    def __iter__(self) -> Iterator[StoredCandidate]:
        return iter(list(self._candidates.values()))

    def add(self, candidate: StoredCandidate) -> None:
        self._candidates[candidate.record_id] = candidate

    def get(self, record_id: str) -> StoredCandidate | None:
        return self._candidates.get(record_id)

    def remove(self, record_id: str) -> None:
        del self._candidates[record_id]

    def list_candidates_with_embedding(self) -> list[StoredCandidate]:
        return [c for c in self._candidates.values() if c.embedding is not None]

    def records_missing_embedding(self) -> list[StoredCandidate]:
        return [c for c in self._candidates.values() if c.embedding is None]

    def find_by_exact_key(self, normalized_key: str) -> list[StoredCandidate]:
        if not normalized_key:
            return []
        return [
            candidate
            for candidate in self._candidates.values()
            if self._normalizer.plate_key(candidate.record) == normalized_key
        ]


class RecordIndexer:
    """Keeps stored registrations and their embeddings in step.

    An embedding is computed when a record is created and recomputed when it
    is updated. If the backend fails, times out or returns a malformed vector,
    the record is stored without one and stays reachable through exact plate
    lookup.
    """

    def __init__(
        self,
        store: InMemoryCandidateStore,
        gateway: EmbeddingGateway,
        normalizer: RecordNormalizerProtocol | None = None,
        config: DetectionConfig | None = None,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._normalizer = normalizer or RecordNormalizer()
        self._config = config or DetectionConfig()

    async def register(self, record_id: str, record: FactRecord) -> StoredCandidate:
        candidate = StoredCandidate(
            record_id=record_id,
            record=dict(record),
            embedding=await self._try_embed(record_id, record),
        )
        self._store.add(candidate)
        return candidate

    async def update(self, record_id: str, record: FactRecord) -> StoredCandidate:
        if self._store.get(record_id) is None:
            raise KeyError(record_id)
        return await self.register(record_id, record)

    async def backfill(self) -> int:
        """Embed every stored record that has no embedding yet, in one batch.

        Returns the number of records that received an embedding. A failed
        batch leaves every record as it was and returns 0.
        """
        missing = self._store.records_missing_embedding()
        if not missing:
            return 0

        texts = [self._normalizer.normalize(c.record) for c in missing]
        try:
            vectors = await asyncio.wait_for(
                self._gateway.embed_many(texts),
                timeout=self._config.embedding_timeout,
            )
        except Exception as exc:
            logger.warning(
                "Backfill of %d record(s) skipped: %s failed with %s",
                len(missing),
                self._gateway.model_name,
                type(exc).__name__,
            )
            return 0

        if len(vectors) != len(missing):
            logger.warning(
                "Backfill skipped: %s returned %d vector(s) for %d record(s)",
                self._gateway.model_name,
                len(vectors),
                len(missing),
            )
            return 0

        embedded = 0
        for candidate, vector in zip(missing, vectors):
            if not is_valid_vector(vector):
                logger.warning("Malformed embedding for record %s, left without one", candidate.record_id)
                continue
            candidate.embedding = Embedding.create(vector, model=self._gateway.model_name)
            embedded += 1

        logger.info("Backfilled embeddings for %d record(s) with %s", embedded, self._gateway.model_name)
        return embedded

    async def _try_embed(self, record_id: str, record: FactRecord) -> Embedding | None:
        try:
            return await embed_record(
                self._gateway,
                record,
                self._normalizer,
                timeout=self._config.embedding_timeout,
            )
        except Exception as exc:
            logger.warning(
                "Storing record %s without embedding: %s failed with %s",
                record_id,
                self._gateway.model_name,
                type(exc).__name__,
            )
            return None


def candidate_from_payload(payload: dict[str, Any]) -> StoredCandidate:
    """Build a candidate from ``{"record_id": ..., "record": {...}}``."""
    return StoredCandidate(record_id=str(payload["record_id"]), record=dict(payload["record"]))
