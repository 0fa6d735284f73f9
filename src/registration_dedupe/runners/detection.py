"""Duplicate detection for newly collected registrations.

A detection call runs a fixed sequence of stages. Each stage either decides
the outcome or hands over to the next one:

1. **Semantic** -- embed the record's canonical text and rank stored
   embeddings by cosine similarity. A hit at or above the threshold decides.
   An empty corpus decides "no duplicate". A backend failure, a timeout or
   a malformed vector hands over without surfacing the error.
2. **Exact** -- look up the normalized license plate. A hit decides with a
   score of 1.0. A lookup failure is logged and treated as a miss.

Running out of stages means "no duplicate". Only ``DimensionMismatchError``
escapes ``detect_duplicate``; it indicates mixed embedding models in one
deployment.

Results never carry record values. Logs carry record ids, scores and
exception class names only.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from enum import StrEnum

from registration_dedupe.config import DetectionConfig
from registration_dedupe.interfaces import CandidateSource, EmbeddingGateway
from registration_dedupe.models import DuplicateResult, FactRecord, StoredCandidate
from registration_dedupe.schema import PII_FIELDS, REGISTRATION_SCHEMA, FactField, RecordSchema, plate_key
from registration_dedupe.steps.confirmation import generate_confirmation_message
from registration_dedupe.steps.normalize import RecordNormalizer
from registration_dedupe.steps.similarity import is_valid_vector, rank_candidates

logger = logging.getLogger(__name__)

Stage = Callable[[FactRecord], Awaitable[DuplicateResult | None]]


class DetectionState(StrEnum):
    START = "START"
    EMBEDDING = "EMBEDDING"
    EMBEDDING_FAILED = "EMBEDDING_FAILED"
    RANKING = "RANKING"
    NO_SEMANTIC_HIT = "NO_SEMANTIC_HIT"
    EXACT_FALLBACK = "EXACT_FALLBACK"
    DECIDED = "DECIDED"


class DuplicateDetectionEngine:
    def __init__(
        self,
        gateway: EmbeddingGateway,
        candidates: CandidateSource,
        config: DetectionConfig | None = None,
        normalizer: RecordNormalizer | None = None,
    ) -> None:
        self._gateway = gateway
        self._candidates = candidates
        self._config = config or DetectionConfig()
        self._normalizer = normalizer or RecordNormalizer()
        self._stages: tuple[Stage, ...] = (self._semantic_match, self._exact_match)

    @property
    def config(self) -> DetectionConfig:
        return self._config

    async def detect_duplicate(self, record: FactRecord) -> DuplicateResult:
        _trace(DetectionState.START)
        for stage in self._stages:
            result = await stage(record)
            if result is not None:
                _trace(DetectionState.DECIDED, duplicate=result.is_duplicate)
                return result
        _trace(DetectionState.DECIDED, duplicate=False)
        return DuplicateResult.no_duplicate()

    def generate_confirmation_message(self) -> str:
        return generate_confirmation_message()

    async def _semantic_match(self, record: FactRecord) -> DuplicateResult | None:
        _trace(DetectionState.EMBEDDING)
        query = await self._embed(self._normalizer.normalize(record))
        if query is None:
            _trace(DetectionState.EMBEDDING_FAILED)
            return None

        try:
            stored = [c for c in self._candidates.list_candidates_with_embedding() if c.embedding is not None]
        except Exception as exc:
            logger.warning("Listing embedded candidates failed with %s", type(exc).__name__)
            _trace(DetectionState.NO_SEMANTIC_HIT)
            return None

        if not stored:
            logger.debug("No stored registrations carry an embedding")
            return DuplicateResult.no_duplicate()

        _trace(DetectionState.RANKING, candidates=len(stored))
        self._warn_on_mixed_models(stored)
        ranked = rank_candidates(
            query,
            [(c.record_id, c.embedding.vector) for c in stored],
            self._config.similarity_threshold,
        )
        if not ranked:
            _trace(DetectionState.NO_SEMANTIC_HIT)
            return None

        best = ranked[0]
        by_id = {c.record_id: c for c in stored}
        logger.info(
            "Semantic duplicate %s detected (%s)",
            best.record_id,
            describe_match(record, by_id[best.record_id].record, best.similarity),
        )
        return DuplicateResult.match(best.record_id, best.similarity)

    async def _exact_match(self, record: FactRecord) -> DuplicateResult | None:
        _trace(DetectionState.EXACT_FALLBACK)
        key = self._normalizer.plate_key(record)
        if key is None:
            return None

        try:
            matches = self._candidates.find_by_exact_key(key)
        except Exception as exc:
            logger.warning("Exact plate lookup failed with %s", type(exc).__name__)
            return None

        if not matches:
            return None
        logger.info("Exact license plate match found: %s", matches[0].record_id)
        return DuplicateResult.match(matches[0].record_id, 1.0)

    async def _embed(self, text: str) -> list[float] | None:
        try:
            vector = await asyncio.wait_for(self._gateway.embed(text), timeout=self._config.embedding_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Embedding with %s timed out after %.1fs",
                self._gateway.model_name,
                self._config.embedding_timeout,
            )
            return None
        except Exception as exc:
            logger.warning("Embedding with %s failed with %s", self._gateway.model_name, type(exc).__name__)
            return None

        if not is_valid_vector(vector):
            logger.warning("Embedding backend %s returned a malformed vector", self._gateway.model_name)
            return None
        return [float(v) for v in vector]

    def _warn_on_mixed_models(self, stored: Sequence[StoredCandidate]) -> None:
        models = {c.embedding.model for c in stored if c.embedding is not None}
        if models - {self._gateway.model_name}:
            logger.warning(
                "Stored embeddings come from %s but queries use %s",
                sorted(models),
                self._gateway.model_name,
            )


def describe_match(
    new: FactRecord,
    existing: FactRecord,
    similarity: float,
    schema: RecordSchema = REGISTRATION_SCHEMA,
) -> str:
    """Log-only summary of a semantic match.

    Names matching vehicle fields and the plate by label only. Name and
    birthdate are skipped and no value is ever rendered.
    """
    matched: list[str] = []
    for spec in schema.fields:
        if spec.field in PII_FIELDS and spec.field != FactField.LICENSE_PLATE:
            continue
        left = spec.resolve(new)
        right = spec.resolve(existing)
        if left is None or right is None:
            continue
        if spec.field == FactField.LICENSE_PLATE:
            left, right = plate_key(left), plate_key(right)
        if left.lower() == right.lower():
            matched.append(spec.label.lower())

    percentage = round(similarity * 100)
    if matched:
        return f"{percentage}% similarity; matching fields: {', '.join(matched)}"
    return f"{percentage}% semantic similarity in the overall registration data"


def _trace(state: DetectionState, **details: object) -> None:
    if details:
        logger.debug("duplicate detection -> %s %s", state, details)
    else:
        logger.debug("duplicate detection -> %s", state)
