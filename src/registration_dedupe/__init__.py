"""Duplicate detection for vehicle registrations collected through dialogue."""

from registration_dedupe.config import DetectionConfig
from registration_dedupe.errors import DimensionMismatchError, EmbeddingGatewayError
from registration_dedupe.models import DuplicateResult, Embedding, RankedCandidate, StoredCandidate
from registration_dedupe.schema import FactField, RecordSchema

__all__ = [
    "DetectionConfig",
    "DimensionMismatchError",
    "DuplicateResult",
    "Embedding",
    "EmbeddingGatewayError",
    "FactField",
    "RankedCandidate",
    "RecordSchema",
    "StoredCandidate",
]
