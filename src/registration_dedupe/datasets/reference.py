from __future__ import annotations

import random
from dataclasses import dataclass, field
from string import ascii_uppercase
from typing import Any

from registration_dedupe.datasets.profiles import RecordShape, render_record
from registration_dedupe.schema import FactField

_CAR_TYPES = ["Sedan", "SUV", "Hatchback", "Van", "Coupe", "Convertible", "Pickup"]
_VEHICLES = {
    "Honda": ["Civic", "Accord", "Jazz"],
    "Ford": ["Transit", "Focus", "Fiesta"],
    "Volkswagen": ["Golf", "Passat", "Polo"],
    "Toyota": ["Corolla", "Yaris", "RAV4"],
    "BMW": ["3 Series", "X5", "i3"],
    "Renault": ["Clio", "Megane", "Kangoo"],
}
_FIRST_NAMES = ["Jane", "Bob", "Alex", "Sofia", "Maya", "Daniel", "Emma", "Chris", "Olivia", "Noah"]
_LAST_NAMES = ["Smith", "Johnson", "Brown", "Taylor", "Wilson", "Davies", "Martin", "Thomas"]


@dataclass(slots=True)
class LabeledRecord:
    """Generated registration plus the id of the original it duplicates, if any."""

    record_id: str
    record: dict[str, Any]
    duplicate_of: str | None = None
    values: dict[FactField, Any] = field(default_factory=dict, repr=False)


class ReferenceDatasetGenerator:
    """Generate synthetic registrations (with intentional dupes) for tests and benchmarks."""

    def __init__(self, seed: int = 7) -> None:
        self._rng = random.Random(seed)

    def generate(self, size: int, duplicate_rate: float = 0.15) -> list[LabeledRecord]:
        if size <= 0:
            return []

        unique_count = int(size * (1.0 - duplicate_rate))
        unique_count = max(1, min(unique_count, size))

        records: list[LabeledRecord] = []
        for i in range(unique_count):
            values = self._profile(i)
            shape = self._rng.choice(list(RecordShape))
            records.append(
                LabeledRecord(record_id=f"reg_{i:07d}", record=render_record(values, shape), values=values)
            )

        while len(records) < size:
            source = self._rng.choice(records[:unique_count])
            values = self._perturb(dict(source.values))
            shape = self._rng.choice(list(RecordShape))
            records.append(
                LabeledRecord(
                    record_id=f"reg_{len(records):07d}",
                    record=render_record(values, shape),
                    duplicate_of=source.record_id,
                    values=values,
                )
            )

        self._rng.shuffle(records)
        return records

    def _profile(self, idx: int) -> dict[FactField, Any]:
        manufacturer = self._rng.choice(sorted(_VEHICLES))
        return {
            FactField.CAR_TYPE: self._rng.choice(_CAR_TYPES),
            FactField.MANUFACTURER: manufacturer,
            FactField.MODEL: self._rng.choice(_VEHICLES[manufacturer]),
            FactField.YEAR: 2000 + (idx % 25),
            FactField.LICENSE_PLATE: _plate_for(idx),
            FactField.CUSTOMER_NAME: f"{self._rng.choice(_FIRST_NAMES)} {self._rng.choice(_LAST_NAMES)}",
            FactField.BIRTHDATE: f"{1950 + (idx % 50)}-{(idx % 12) + 1:02d}-{(idx % 27) + 1:02d}",
        }

    def _perturb(self, values: dict[FactField, Any]) -> dict[FactField, Any]:
        mutation = self._rng.choice(["name", "plate", "year", "mixed"])

        if mutation in {"name", "mixed"}:
            name = str(values[FactField.CUSTOMER_NAME])
            values[FactField.CUSTOMER_NAME] = self._rng.choice([name.upper(), name.lower(), f"  {name} "])

        if mutation in {"plate", "mixed"}:
            plate = str(values[FactField.LICENSE_PLATE])
            values[FactField.LICENSE_PLATE] = self._rng.choice([plate.lower(), plate.replace("-", " "), f" {plate}"])

        if mutation == "year":
            values[FactField.YEAR] = str(values[FactField.YEAR])

        return values


def _plate_for(idx: int) -> str:
    letters = "".join(ascii_uppercase[(idx // 26**power) % 26] for power in (2, 1, 0))
    return f"{letters}-{idx % 1000:03d}"
