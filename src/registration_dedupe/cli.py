from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from registration_dedupe.config import DetectionConfig
from registration_dedupe.datasets import LabeledRecord, ReferenceDatasetGenerator
from registration_dedupe.interfaces import EmbeddingGateway
from registration_dedupe.models import DuplicateResult
from registration_dedupe.runners import DuplicateDetectionEngine
from registration_dedupe.steps import HashingEmbeddingGateway, OpenAIEmbeddingGateway, SbertEmbeddingGateway
from registration_dedupe.stores import InMemoryCandidateStore, RecordIndexer, candidate_from_payload

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> None:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return

    config = DetectionConfig.from_env()
    if args.similarity_threshold is not None:
        config = replace(config, similarity_threshold=args.similarity_threshold)

    if args.command == "run-test":
        asyncio.run(
            run_test(
                size=args.size,
                duplicate_rate=args.duplicate_rate,
                stored_fraction=args.stored_fraction,
                seed=args.seed,
                output_dir=args.output_dir,
                config=config,
                embedding_backend=args.embedding_backend,
                sbert_model=args.sbert_model,
                sbert_batch_size=args.sbert_batch_size,
            )
        )
    elif args.command == "detect":
        asyncio.run(
            detect(
                record_path=args.record,
                store_path=args.store,
                config=config,
                embedding_backend=args.embedding_backend,
                sbert_model=args.sbert_model,
                sbert_batch_size=args.sbert_batch_size,
            )
        )


async def run_test(
    *,
    size: int,
    duplicate_rate: float,
    stored_fraction: float,
    seed: int,
    output_dir: Path,
    config: DetectionConfig,
    embedding_backend: str,
    sbert_model: str,
    sbert_batch_size: int,
) -> dict[str, Any]:
    output_dir.mkdir(parents=True, exist_ok=True)

    records = ReferenceDatasetGenerator(seed=seed).generate(size=size, duplicate_rate=duplicate_rate)
    originals = sorted((r for r in records if r.duplicate_of is None), key=lambda r: r.record_id)
    stored_count = max(1, int(len(originals) * stored_fraction))
    stored_ids = {r.record_id for r in originals[:stored_count]}
    queries = [r for r in records if r.record_id not in stored_ids]

    gateway = _build_gateway(embedding_backend, config, sbert_model, sbert_batch_size)
    store = InMemoryCandidateStore()
    indexer = RecordIndexer(store, gateway, config=config)
    for record in originals[:stored_count]:
        store.add(candidate_from_payload({"record_id": record.record_id, "record": record.record}))
    embedded = await indexer.backfill()
    logger.info("Indexed %d stored registration(s), %d embedded", len(store), embedded)

    engine = DuplicateDetectionEngine(gateway, store, config=config)
    results = [(query, await engine.detect_duplicate(query.record)) for query in queries]

    summary = _build_summary(
        results=results,
        stored_ids=stored_ids,
        embedded_count=embedded,
        config=config,
        backend=gateway.model_name,
    )
    summary_path = output_dir / "summary.json"
    _write_json(summary_path, summary)

    print(f"Summary: {summary_path}")
    print("---")
    for key in ("stored_count", "query_count", "true_positives", "false_positives", "false_negatives"):
        print(f"{key}={summary[key]}")
    print(f"precision={summary['precision']}")
    print(f"recall={summary['recall']}")
    return summary


async def detect(
    *,
    record_path: Path,
    store_path: Path,
    config: DetectionConfig,
    embedding_backend: str,
    sbert_model: str,
    sbert_batch_size: int,
) -> DuplicateResult:
    record = _read_json(record_path)
    payloads = _read_json(store_path)

    gateway = _build_gateway(embedding_backend, config, sbert_model, sbert_batch_size)
    store = InMemoryCandidateStore()
    for payload in payloads:
        store.add(candidate_from_payload(payload))
    await RecordIndexer(store, gateway, config=config).backfill()

    engine = DuplicateDetectionEngine(gateway, store, config=config)
    result = await engine.detect_duplicate(record)

    print(json.dumps(result.to_dict(), indent=2))
    if result.requires_confirmation:
        print(engine.generate_confirmation_message())
    return result


def _build_gateway(
    backend: str,
    config: DetectionConfig,
    sbert_model: str,
    sbert_batch_size: int,
) -> EmbeddingGateway:
    if backend == "sbert":
        return SbertEmbeddingGateway(model_name=sbert_model, batch_size=sbert_batch_size)
    if backend == "openai":
        return OpenAIEmbeddingGateway(model_name=config.embedding_model)
    return HashingEmbeddingGateway(dimensions=config.hashing_dimensions)


def _build_summary(
    *,
    results: list[tuple[LabeledRecord, DuplicateResult]],
    stored_ids: set[str],
    embedded_count: int,
    config: DetectionConfig,
    backend: str,
) -> dict[str, Any]:
    true_positives = false_positives = false_negatives = true_negatives = wrong_target = 0
    scores: list[float] = []

    for query, result in results:
        expected = query.duplicate_of in stored_ids
        if result.is_duplicate:
            scores.append(result.similarity_score or 0.0)
            if not expected:
                false_positives += 1
            elif result.existing_record_id == query.duplicate_of:
                true_positives += 1
            else:
                wrong_target += 1
        elif expected:
            false_negatives += 1
        else:
            true_negatives += 1

    flagged = true_positives + false_positives + wrong_target
    actual = true_positives + false_negatives + wrong_target

    return {
        "backend": backend,
        "similarity_threshold": config.similarity_threshold,
        "stored_count": len(stored_ids),
        "embedded_count": embedded_count,
        "query_count": len(results),
        "true_positives": true_positives,
        "false_positives": false_positives,
        "false_negatives": false_negatives,
        "true_negatives": true_negatives,
        "wrong_target": wrong_target,
        "precision": round(true_positives / flagged, 4) if flagged else 0.0,
        "recall": round(true_positives / actual, 4) if actual else 0.0,
        "avg_duplicate_score": round(sum(scores) / len(scores), 4) if scores else 0.0,
        "min_duplicate_score": round(min(scores), 4) if scores else 0.0,
    }


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="registration-dedupe", description="Registration duplicate detection CLI")
    parser.add_argument("--log-level", default=os.getenv("DEDUPE_LOG_LEVEL", "WARNING"))
    subparsers = parser.add_subparsers(dest="command")

    run_test_parser = subparsers.add_parser(
        "run-test",
        help="Generate a synthetic registration dataset, index part of it and score detection",
    )
    run_test_parser.add_argument("--size", type=int, default=500)
    run_test_parser.add_argument("--duplicate-rate", type=float, default=0.2)
    run_test_parser.add_argument("--stored-fraction", type=float, default=0.5)
    run_test_parser.add_argument("--seed", type=int, default=42)
    run_test_parser.add_argument("--output-dir", type=Path, default=Path("data/cli_output"))
    _add_backend_arguments(run_test_parser)

    detect_parser = subparsers.add_parser(
        "detect",
        help="Check one registration (JSON file) against stored registrations (JSON list)",
    )
    detect_parser.add_argument("--record", type=Path, required=True)
    detect_parser.add_argument("--store", type=Path, required=True)
    _add_backend_arguments(detect_parser)

    return parser


def _add_backend_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--similarity-threshold", type=float, default=None)
    parser.add_argument("--embedding-backend", choices=["hashing", "sbert", "openai"], default="hashing")
    parser.add_argument("--sbert-model", type=str, default="all-MiniLM-L6-v2")
    parser.add_argument("--sbert-batch-size", type=int, default=64)


def _read_json(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _write_json(path: Path, payload: object) -> None:
    with path.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)


if __name__ == "__main__":
    main()
