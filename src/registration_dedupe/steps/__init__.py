from registration_dedupe.steps.confirmation import CONFIRMATION_MESSAGE, generate_confirmation_message
from registration_dedupe.steps.embedding import (
    HashingEmbeddingGateway,
    OpenAIEmbeddingGateway,
    SbertEmbeddingGateway,
    embed_record,
)
from registration_dedupe.steps.normalize import NO_DATA_TEXT, RecordNormalizer, normalize_record
from registration_dedupe.steps.similarity import cosine_similarity, rank_candidates

__all__ = [
    "CONFIRMATION_MESSAGE",
    "NO_DATA_TEXT",
    "HashingEmbeddingGateway",
    "OpenAIEmbeddingGateway",
    "RecordNormalizer",
    "SbertEmbeddingGateway",
    "cosine_similarity",
    "embed_record",
    "generate_confirmation_message",
    "normalize_record",
    "rank_candidates",
]
