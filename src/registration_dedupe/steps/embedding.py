from __future__ import annotations

import asyncio
import hashlib
import logging
import os
from collections.abc import Sequence

from registration_dedupe.config import DEFAULT_EMBEDDING_MODEL, DEFAULT_HASHING_DIMENSIONS
from registration_dedupe.errors import EmbeddingGatewayError
from registration_dedupe.interfaces import EmbeddingGateway, RecordNormalizerProtocol
from registration_dedupe.models import Embedding, FactRecord
from registration_dedupe.steps.normalize import RecordNormalizer
from registration_dedupe.steps.similarity import is_valid_vector, l2_normalize

logger = logging.getLogger(__name__)


class HashingEmbeddingGateway:
    """Hashing-based baseline embedding backend for local runs and tests.

    Each word of a field value becomes a ``label=word`` token hashed into a
    fixed-size bag, so the shared field labels do not make unrelated records
    look alike. Uses a stable digest, so vectors are reproducible across
    processes and can be persisted.
    """

    def __init__(self, dimensions: int = DEFAULT_HASHING_DIMENSIONS, model_name: str | None = None) -> None:
        self._dimensions = dimensions
        self.model_name = model_name or f"hashing-{dimensions}"

    async def embed(self, text: str) -> list[float]:
        return self._embed(text)

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        return [self._embed(text) for text in texts]

    def _embed(self, text: str) -> list[float]:
        vector = [0.0] * self._dimensions
        for token in _tokens(text):
            digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
            vector[int.from_bytes(digest, "big") % self._dimensions] += 1.0
        return l2_normalize(vector)


class SbertEmbeddingGateway:
    """Sentence-Transformers embedding adapter (SBERT).

    Encoding is CPU bound, so it runs in a worker thread.
    """

    def __init__(self, model_name: str = "all-MiniLM-L6-v2", batch_size: int = 64) -> None:
        self.model_name = model_name
        self._batch_size = batch_size
        try:
            from sentence_transformers import SentenceTransformer
        except ImportError as exc:
            raise ImportError(
                "SBERT backend requires sentence-transformers. "
                "Install with: pip install registration-dedupe[sbert]"
            ) from exc
        self._model = SentenceTransformer(model_name)

    async def embed(self, text: str) -> list[float]:
        vectors = await asyncio.to_thread(self._encode, [text])
        return vectors[0]

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        return await asyncio.to_thread(self._encode, list(texts))

    def _encode(self, texts: list[str]) -> list[list[float]]:
        vectors = self._model.encode(
            texts,
            batch_size=self._batch_size,
            normalize_embeddings=True,
            convert_to_numpy=True,
            show_progress_bar=False,
        )
        return [vector.tolist() for vector in vectors]


class OpenAIEmbeddingGateway:
    """OpenAI embeddings endpoint adapter (``text-embedding-3-small`` by default)."""

    def __init__(self, model_name: str = DEFAULT_EMBEDDING_MODEL, api_key: str | None = None) -> None:
        try:
            from openai import AsyncOpenAI
        except ImportError as exc:
            raise ImportError(
                "OpenAI backend requires the openai package. "
                "Install with: pip install registration-dedupe[openai]"
            ) from exc

        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise EmbeddingGatewayError(
                "OpenAI API key required. Set OPENAI_API_KEY or pass api_key."
            )
        self.model_name = model_name
        self._client = AsyncOpenAI(api_key=api_key)

    async def embed(self, text: str) -> list[float]:
        vectors = await self._create([text])
        return vectors[0]

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        return await self._create(list(texts))

    async def _create(self, texts: list[str]) -> list[list[float]]:
        from openai import OpenAIError

        try:
            response = await self._client.embeddings.create(model=self.model_name, input=texts)
        except OpenAIError as exc:
            raise EmbeddingGatewayError(f"OpenAI embedding request failed: {type(exc).__name__}") from exc

        if len(response.data) != len(texts):
            raise EmbeddingGatewayError(
                f"Expected {len(texts)} embeddings from {self.model_name}, got {len(response.data)}"
            )
        ordered = sorted(response.data, key=lambda item: item.index)
        logger.info(
            "Generated %d embedding(s) with %s (%d tokens)",
            len(ordered),
            self.model_name,
            response.usage.total_tokens,
        )
        return [list(item.embedding) for item in ordered]


async def embed_record(
    gateway: EmbeddingGateway,
    record: FactRecord,
    normalizer: RecordNormalizerProtocol | None = None,
    timeout: float | None = None,
) -> Embedding:
    """Embed a record's canonical text and tag it with the producing model.

    Raises ``asyncio.TimeoutError`` when ``timeout`` elapses and
    ``EmbeddingGatewayError`` when the backend returns something other than a
    non-empty vector of finite numbers.
    """
    text = (normalizer or RecordNormalizer()).normalize(record)
    vector = await asyncio.wait_for(gateway.embed(text), timeout=timeout)
    if not is_valid_vector(vector):
        raise EmbeddingGatewayError(f"{gateway.model_name} returned a malformed embedding")
    return Embedding.create(vector, model=gateway.model_name)


def _tokens(text: str) -> list[str]:
    tokens: list[str] = []
    label = ""
    for segment in text.split(", "):
        head, sep, tail = segment.partition(": ")
        value = tail if sep else segment
        if sep:
            label = head.strip().lower()
        for word in value.lower().split():
            tokens.append(f"{label}={word}" if label else word)
    return tokens
