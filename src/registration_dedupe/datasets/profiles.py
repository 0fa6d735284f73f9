from __future__ import annotations

from enum import StrEnum
from typing import Any

from registration_dedupe.schema import FactField


class RecordShape(StrEnum):
    NESTED = "nested"
    FLAT_SNAKE = "flat_snake"
    FLAT_CAMEL = "flat_camel"


# Key layout per shape, matching what the dialogue layer has produced over time.
SHAPE_KEYS: dict[RecordShape, dict[FactField, tuple[str, ...]]] = {
    RecordShape.NESTED: {
        FactField.CAR_TYPE: ("car", "type"),
        FactField.MANUFACTURER: ("car", "manufacturer"),
        FactField.MODEL: ("car", "model"),
        FactField.YEAR: ("car", "year"),
        FactField.LICENSE_PLATE: ("car", "license_plate"),
        FactField.CUSTOMER_NAME: ("customer", "name"),
        FactField.BIRTHDATE: ("customer", "birthdate"),
    },
    RecordShape.FLAT_SNAKE: {
        FactField.CAR_TYPE: ("car_type",),
        FactField.MANUFACTURER: ("manufacturer",),
        FactField.MODEL: ("model",),
        FactField.YEAR: ("year_of_construction",),
        FactField.LICENSE_PLATE: ("license_plate",),
        FactField.CUSTOMER_NAME: ("customer_name",),
        FactField.BIRTHDATE: ("birthdate",),
    },
    RecordShape.FLAT_CAMEL: {
        FactField.CAR_TYPE: ("carType",),
        FactField.MANUFACTURER: ("manufacturer",),
        FactField.MODEL: ("model",),
        FactField.YEAR: ("year",),
        FactField.LICENSE_PLATE: ("licensePlate",),
        FactField.CUSTOMER_NAME: ("customerName",),
        FactField.BIRTHDATE: ("birthdate",),
    },
}


def render_record(values: dict[FactField, Any], shape: RecordShape) -> dict[str, Any]:
    """Lay logical field values out in one of the known record shapes."""
    record: dict[str, Any] = {}
    for field, path in SHAPE_KEYS[shape].items():
        if field not in values:
            continue
        target = record
        for key in path[:-1]:
            target = target.setdefault(key, {})
        target[path[-1]] = values[field]
    return record
