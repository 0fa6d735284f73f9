from __future__ import annotations

import argparse
import json
from pathlib import Path

from registration_dedupe.datasets import ReferenceDatasetGenerator


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate synthetic vehicle registration dataset")
    parser.add_argument("--size", type=int, default=1000)
    parser.add_argument("--seed", type=int, default=42)
    parser.add_argument("--duplicate-rate", type=float, default=0.15)
    parser.add_argument("--output", type=Path, default=Path("data/reference_registrations.jsonl"))
    args = parser.parse_args()

    records = ReferenceDatasetGenerator(seed=args.seed).generate(
        size=args.size,
        duplicate_rate=args.duplicate_rate,
    )

    args.output.parent.mkdir(parents=True, exist_ok=True)
    with args.output.open("w", encoding="utf-8") as handle:
        for record in records:
            row = {"record_id": record.record_id, "duplicate_of": record.duplicate_of, "record": record.record}
            handle.write(json.dumps(row) + "\n")


if __name__ == "__main__":
    main()
