from registration_dedupe.runners.detection import DetectionState, DuplicateDetectionEngine, describe_match

__all__ = ["DetectionState", "DuplicateDetectionEngine", "describe_match"]
