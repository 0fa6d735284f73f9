import pytest

from conftest import FailingGateway, SlowGateway, StaticGateway
from registration_dedupe.config import DetectionConfig
from registration_dedupe.models import StoredCandidate
from registration_dedupe.runners import DuplicateDetectionEngine
from registration_dedupe.steps import HashingEmbeddingGateway, normalize_record
from registration_dedupe.stores import InMemoryCandidateStore, RecordIndexer, candidate_from_payload


@pytest.mark.asyncio
async def test_register_embeds_at_creation(honda_nested) -> None:
    store = InMemoryCandidateStore()
    gateway = HashingEmbeddingGateway(dimensions=64)

    candidate = await RecordIndexer(store, gateway).register("reg-001", honda_nested)

    assert candidate.embedding is not None
    assert candidate.embedding.model == "hashing-64"
    assert candidate.embedding.dimensions == 64
    assert candidate.embedding.created_at.tzinfo is not None
    assert store.list_candidates_with_embedding() == [candidate]


@pytest.mark.asyncio
async def test_register_without_backend_keeps_record_reachable_by_plate(honda_nested) -> None:
    store = InMemoryCandidateStore()

    candidate = await RecordIndexer(store, FailingGateway()).register("reg-001", honda_nested)

    assert candidate.embedding is None
    assert store.list_candidates_with_embedding() == []
    assert store.records_missing_embedding() == [candidate]
    assert store.find_by_exact_key("XYZ789") == [candidate]


@pytest.mark.asyncio
async def test_update_regenerates_embedding(honda_nested, ford_flat) -> None:
    store = InMemoryCandidateStore()
    indexer = RecordIndexer(store, HashingEmbeddingGateway())
    original = await indexer.register("reg-001", honda_nested)

    updated = await indexer.update("reg-001", ford_flat)

    assert len(store) == 1
    assert store.get("reg-001") is updated
    assert updated.embedding.vector != original.embedding.vector
    with pytest.raises(KeyError):
        await indexer.update("reg-missing", ford_flat)


@pytest.mark.asyncio
async def test_backfill_embeds_only_missing_records(honda_nested, ford_flat) -> None:
    store = InMemoryCandidateStore()
    gateway = HashingEmbeddingGateway()
    indexer = RecordIndexer(store, gateway)
    existing = await indexer.register("reg-001", honda_nested)
    store.add(candidate_from_payload({"record_id": "reg-002", "record": ford_flat}))

    assert await indexer.backfill() == 1
    assert await indexer.backfill() == 0
    assert store.get("reg-001").embedding is existing.embedding
    assert store.get("reg-002").embedding.vector == tuple(await gateway.embed(normalize_record(ford_flat)))


def test_find_by_exact_key_ignores_case_spacing_and_separators() -> None:
    store = InMemoryCandidateStore()
    plain = StoredCandidate(record_id="a", record={"license_plate": "TEST-999"})
    nested = StoredCandidate(record_id="b", record={"car": {"license_plate": "test 999"}})
    other = StoredCandidate(record_id="c", record={"licensePlate": "TEST-998"})
    for candidate in (plain, nested, other):
        store.add(candidate)

    assert [c.record_id for c in store.find_by_exact_key("TEST999")] == ["a", "b"]
    assert store.find_by_exact_key("") == []
    assert store.find_by_exact_key("NOPE") == []


def test_remove_and_iterate() -> None:
    store = InMemoryCandidateStore()
    store.add(StoredCandidate(record_id="a", record={}))
    store.add(StoredCandidate(record_id="b", record={}))

    store.remove("a")

    assert [c.record_id for c in store] == ["b"]
    assert store.get("a") is None


@pytest.mark.asyncio
async def test_backfill_backend_failure_leaves_records_unembedded(ford_flat) -> None:
    store = InMemoryCandidateStore()
    store.add(candidate_from_payload({"record_id": "reg-002", "record": ford_flat}))

    assert await RecordIndexer(store, FailingGateway()).backfill() == 0
    assert store.get("reg-002").embedding is None
    assert store.find_by_exact_key("AAA111") == [store.get("reg-002")]


@pytest.mark.asyncio
async def test_backfill_rejects_short_batch(honda_nested, ford_flat) -> None:
    class ShortBatchGateway(StaticGateway):
        async def embed_many(self, texts):
            return [[1.0, 0.0]]

    store = InMemoryCandidateStore()
    store.add(candidate_from_payload({"record_id": "reg-001", "record": honda_nested}))
    store.add(candidate_from_payload({"record_id": "reg-002", "record": ford_flat}))

    assert await RecordIndexer(store, ShortBatchGateway([1.0, 0.0])).backfill() == 0
    assert len(store.records_missing_embedding()) == 2


@pytest.mark.asyncio
async def test_backfill_skips_malformed_vectors(ford_flat) -> None:
    store = InMemoryCandidateStore()
    store.add(candidate_from_payload({"record_id": "reg-002", "record": ford_flat}))

    assert await RecordIndexer(store, StaticGateway([float("nan"), 1.0])).backfill() == 0
    assert store.get("reg-002").embedding is None


@pytest.mark.asyncio
@pytest.mark.parametrize("vector", [[], [float("nan"), 1.0], None])
async def test_malformed_vector_is_not_stored_and_plate_still_matches(vector, honda_nested) -> None:
    store = InMemoryCandidateStore()
    gateway = HashingEmbeddingGateway()
    await RecordIndexer(store, gateway).register("reg-001", honda_nested)
    await RecordIndexer(store, StaticGateway(vector)).register("reg-002", {"license_plate": "TEST-999"})

    result = await DuplicateDetectionEngine(gateway, store).detect_duplicate({"license_plate": "test 999"})

    assert store.get("reg-002").embedding is None
    assert result.is_duplicate
    assert result.existing_record_id == "reg-002"
    assert result.similarity_score == 1.0


@pytest.mark.asyncio
async def test_register_times_out_on_hung_backend(honda_nested) -> None:
    store = InMemoryCandidateStore()
    indexer = RecordIndexer(store, SlowGateway(), config=DetectionConfig(embedding_timeout=0.01))

    candidate = await indexer.register("reg-001", honda_nested)

    assert candidate.embedding is None
    assert store.records_missing_embedding() == [candidate]


@pytest.mark.asyncio
async def test_backfill_times_out_on_hung_backend(ford_flat) -> None:
    store = InMemoryCandidateStore()
    store.add(candidate_from_payload({"record_id": "reg-002", "record": ford_flat}))
    indexer = RecordIndexer(store, SlowGateway(), config=DetectionConfig(embedding_timeout=0.01))

    assert await indexer.backfill() == 0
    assert store.get("reg-002").embedding is None
