from __future__ import annotations

from collections.abc import Sequence
from math import isfinite, sqrt
from numbers import Real

from registration_dedupe.errors import DimensionMismatchError
from registration_dedupe.models import RankedCandidate


def cosine_similarity(left: Sequence[float], right: Sequence[float]) -> float:
    """Cosine of the angle between two vectors, in [-1, 1].

    A zero vector has no direction, so any comparison involving one scores 0.
    Raises ``DimensionMismatchError`` when the lengths differ.
    """
    if len(left) != len(right):
        raise DimensionMismatchError(len(left), len(right))

    left_norm = _norm(left)
    right_norm = _norm(right)
    if left_norm == 0 or right_norm == 0:
        return 0.0

    score = _dot(left, right) / (left_norm * right_norm)
    # float rounding can push parallel vectors just past +/-1
    return max(-1.0, min(1.0, score))


def rank_candidates(
    query: Sequence[float],
    candidates: Sequence[tuple[str, Sequence[float]]],
    threshold: float,
) -> list[RankedCandidate]:
    """Candidates scoring at least ``threshold``, best first.

    ``candidates`` is a sequence of ``(record_id, vector)`` pairs. The sort is
    stable, so equal scores keep their input order.
    """
    ranked: list[RankedCandidate] = []
    for record_id, vector in candidates:
        similarity = cosine_similarity(query, vector)
        if similarity >= threshold:
            ranked.append(RankedCandidate(record_id=record_id, similarity=similarity))
    return sorted(ranked, key=lambda c: c.similarity, reverse=True)


def is_valid_vector(value: object) -> bool:
    """True for a non-empty sequence of finite real numbers."""
    if not isinstance(value, Sequence) or isinstance(value, (str, bytes)) or not value:
        return False
    return all(isinstance(v, Real) and not isinstance(v, bool) and isfinite(v) for v in value)


def _dot(left: Sequence[float], right: Sequence[float]) -> float:
    return sum(a * b for a, b in zip(left, right))


def _norm(vector: Sequence[float]) -> float:
    return sqrt(sum(v * v for v in vector))


def l2_normalize(vector: Sequence[float]) -> list[float]:
    norm = _norm(vector)
    if norm == 0:
        return [0.0] * len(vector)
    return [v / norm for v in vector]
