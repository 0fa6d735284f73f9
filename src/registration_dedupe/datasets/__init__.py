from registration_dedupe.datasets.profiles import RecordShape, render_record
from registration_dedupe.datasets.reference import LabeledRecord, ReferenceDatasetGenerator

__all__ = ["LabeledRecord", "RecordShape", "ReferenceDatasetGenerator", "render_record"]
