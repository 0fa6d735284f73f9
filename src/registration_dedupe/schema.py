from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Mapping, Sequence

_WHITESPACE = re.compile(r"\s+")
_PLATE_SEPARATORS = re.compile(r"[\s\-.·]+")


class FactField(StrEnum):
    CAR_TYPE = "CAR_TYPE"
    MANUFACTURER = "MANUFACTURER"
    MODEL = "MODEL"
    YEAR = "YEAR"
    LICENSE_PLATE = "LICENSE_PLATE"
    CUSTOMER_NAME = "CUSTOMER_NAME"
    BIRTHDATE = "BIRTHDATE"


# Fields that identify a person or vehicle and must never reach detection output.
PII_FIELDS = frozenset({FactField.LICENSE_PLATE, FactField.CUSTOMER_NAME, FactField.BIRTHDATE})


@dataclass(frozen=True)
class FieldSpec:
    """Where a logical field lives in either record shape, and how it is labelled."""

    field: FactField
    label: str
    nested_paths: tuple[tuple[str, ...], ...]
    flat_keys: tuple[str, ...]

    def resolve(self, record: Mapping[str, Any]) -> str | None:
        for path in self.nested_paths:
            value = _present(_walk(record, path))
            if value is not None:
                return value
        for key in self.flat_keys:
            value = _present(record.get(key))
            if value is not None:
                return value
        return None


@dataclass(frozen=True)
class RecordSchema:
    """Ordered field table shared by the normalizer and the exact-match key."""

    fields: tuple[FieldSpec, ...]

    @classmethod
    def from_specs(cls, specs: Sequence[FieldSpec]) -> "RecordSchema":
        return cls(fields=tuple(specs))

    def spec_for(self, field: FactField) -> FieldSpec:
        for spec in self.fields:
            if spec.field == field:
                return spec
        raise KeyError(field)

    def value_for(self, record: Mapping[str, Any], field: FactField) -> str | None:
        return self.spec_for(field).resolve(record)

    def present_values(self, record: Mapping[str, Any]) -> list[tuple[FieldSpec, str]]:
        values: list[tuple[FieldSpec, str]] = []
        for spec in self.fields:
            value = spec.resolve(record)
            if value is not None:
                values.append((spec, value))
        return values


# Emission order is fixed here; embeddings of identical data depend on it.
REGISTRATION_SCHEMA = RecordSchema.from_specs(
    [
        FieldSpec(FactField.CAR_TYPE, "Car Type", (("car", "type"),), ("car_type", "carType")),
        FieldSpec(FactField.MANUFACTURER, "Manufacturer", (("car", "manufacturer"),), ("manufacturer",)),
        FieldSpec(FactField.MODEL, "Model", (("car", "model"),), ("model",)),
        FieldSpec(
            FactField.YEAR,
            "Year",
            (("car", "year"),),
            ("year_of_construction", "year", "yearOfConstruction"),
        ),
        FieldSpec(
            FactField.LICENSE_PLATE,
            "License Plate",
            (("car", "license_plate"), ("car", "licensePlate")),
            ("license_plate", "licensePlate", "licenseplate"),
        ),
        FieldSpec(FactField.CUSTOMER_NAME, "Customer", (("customer", "name"),), ("customer_name", "customerName")),
        FieldSpec(FactField.BIRTHDATE, "Birthdate", (("customer", "birthdate"),), ("birthdate",)),
    ]
)


def normalize_plate(value: str) -> str:
    """Plate as rendered in embedding text: uppercase, no whitespace."""
    return _WHITESPACE.sub("", value).upper()


def plate_key(value: str) -> str:
    """Exact-match key: uppercase with whitespace and separators removed."""
    return _PLATE_SEPARATORS.sub("", value).upper()


def normalize_name(value: str) -> str:
    return value.strip().lower()


def _walk(record: Mapping[str, Any], path: tuple[str, ...]) -> Any:
    current: Any = record
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def _present(value: Any) -> str | None:
    if value is None or isinstance(value, Mapping):
        return None
    text = str(value).strip()
    return text or None
