from __future__ import annotations

import logging

from registration_dedupe.models import FactRecord
from registration_dedupe.schema import (
    REGISTRATION_SCHEMA,
    FactField,
    RecordSchema,
    normalize_name,
    normalize_plate,
    plate_key,
)

logger = logging.getLogger(__name__)

NO_DATA_TEXT = "No data available"


class RecordNormalizer:
    """Renders a registration as ``"<Label>: <value>"`` pairs joined by ``", "``.

    Field order comes from the schema, never from the input mapping, and each
    field is emitted at most once whichever shape(s) it appears in.
    """

    def __init__(self, schema: RecordSchema = REGISTRATION_SCHEMA) -> None:
        self._schema = schema

    def normalize(self, record: FactRecord) -> str:
        parts: list[str] = []
        for spec, value in self._schema.present_values(record):
            if spec.field == FactField.LICENSE_PLATE:
                value = normalize_plate(value)
            elif spec.field == FactField.CUSTOMER_NAME:
                value = normalize_name(value)
            parts.append(f"{spec.label}: {value}")

        logger.debug("Normalized record with %d of %d fields", len(parts), len(self._schema.fields))
        return ", ".join(parts) or NO_DATA_TEXT

    def plate_key(self, record: FactRecord) -> str | None:
        value = self._schema.value_for(record, FactField.LICENSE_PLATE)
        if value is None:
            return None
        return plate_key(value) or None


_DEFAULT = RecordNormalizer()


def normalize_record(record: FactRecord) -> str:
    return _DEFAULT.normalize(record)
