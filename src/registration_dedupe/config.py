from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from registration_dedupe.errors import ConfigurationError

DEFAULT_SIMILARITY_THRESHOLD = 0.85
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_EMBEDDING_TIMEOUT = 10.0  # seconds
DEFAULT_HASHING_DIMENSIONS = 256


@dataclass(frozen=True)
class DetectionConfig:
    """Settings for one detection engine.

    Passed explicitly to each engine, so engines with different thresholds can
    coexist in one process.
    """

    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    embedding_timeout: float = DEFAULT_EMBEDDING_TIMEOUT
    hashing_dimensions: int = DEFAULT_HASHING_DIMENSIONS

    def __post_init__(self) -> None:
        if not -1.0 <= self.similarity_threshold <= 1.0:
            raise ConfigurationError(
                f"similarity_threshold must be within [-1, 1], got {self.similarity_threshold}"
            )
        if self.embedding_timeout <= 0:
            raise ConfigurationError(f"embedding_timeout must be positive, got {self.embedding_timeout}")
        if self.hashing_dimensions <= 0:
            raise ConfigurationError(f"hashing_dimensions must be positive, got {self.hashing_dimensions}")
        if not self.embedding_model:
            raise ConfigurationError("embedding_model must not be empty")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "DetectionConfig":
        env = os.environ if environ is None else environ
        model = env.get("DEDUPE_EMBEDDING_MODEL") or env.get("TEST_EMBEDDING_MODEL") or DEFAULT_EMBEDDING_MODEL
        return cls(
            similarity_threshold=_float(env, "DEDUPE_SIMILARITY_THRESHOLD", DEFAULT_SIMILARITY_THRESHOLD),
            embedding_model=model,
            embedding_timeout=_float(env, "DEDUPE_EMBEDDING_TIMEOUT", DEFAULT_EMBEDDING_TIMEOUT),
            hashing_dimensions=_int(env, "DEDUPE_HASHING_DIMENSIONS", DEFAULT_HASHING_DIMENSIONS),
        )


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from exc


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}") from exc
