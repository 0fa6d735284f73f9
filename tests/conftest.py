from __future__ import annotations

import asyncio
from collections.abc import Sequence

import pytest

from registration_dedupe.models import StoredCandidate
from registration_dedupe.stores import InMemoryCandidateStore


class FailingGateway:
    model_name = "failing"

    def __init__(self, exc: Exception | None = None) -> None:
        self._exc = exc or ConnectionError("quota exceeded")
        self.calls = 0

    async def embed(self, text: str) -> list[float]:
        self.calls += 1
        raise self._exc

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        raise self._exc


class SlowGateway:
    model_name = "slow"

    async def embed(self, text: str) -> list[float]:
        await asyncio.sleep(5)
        return [1.0, 0.0]

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        return [await self.embed(text) for text in texts]


class StaticGateway:
    """Returns the same vector for every text."""

    def __init__(self, vector: object, model_name: str = "static") -> None:
        self._vector = vector
        self.model_name = model_name

    async def embed(self, text: str) -> list[float]:
        return self._vector

    async def embed_many(self, texts: Sequence[str]) -> list[list[float]]:
        return [self._vector for _ in texts]


class BrokenLookupStore(InMemoryCandidateStore):
    def find_by_exact_key(self, normalized_key: str) -> list[StoredCandidate]:
        raise TimeoutError("database unavailable")


class SpyStore(InMemoryCandidateStore):
    def __init__(self) -> None:
        super().__init__()
        self.exact_lookups: list[str] = []

    def find_by_exact_key(self, normalized_key: str) -> list[StoredCandidate]:
        self.exact_lookups.append(normalized_key)
        return super().find_by_exact_key(normalized_key)


@pytest.fixture
def honda_nested() -> dict[str, object]:
    return {
        "car": {
            "type": "Sedan",
            "manufacturer": "Honda",
            "model": "Civic",
            "year": 2019,
            "license_plate": "XYZ-789",
        },
        "customer": {"name": "Jane Smith", "birthdate": "1990-03-20"},
    }


@pytest.fixture
def honda_flat() -> dict[str, object]:
    return {
        "birthdate": "1990-03-20",
        "customerName": "  JANE SMITH ",
        "licensePlate": "xyz-789",
        "year": "2019",
        "model": "Civic",
        "manufacturer": "Honda",
        "carType": "Sedan",
    }


@pytest.fixture
def ford_flat() -> dict[str, object]:
    return {
        "car_type": "Van",
        "manufacturer": "Ford",
        "model": "Transit",
        "year_of_construction": 2021,
        "license_plate": "AAA-111",
        "customer_name": "Bob Johnson",
    }
