from __future__ import annotations


class RegistrationDedupeError(Exception):
    """Base class for errors raised by this package."""


class DimensionMismatchError(RegistrationDedupeError, ValueError):
    """Two vectors of different length were compared.

    Signals mixed embedding models or sizes in one deployment, never a data
    condition, so the detection engine lets it propagate.
    """

    def __init__(self, left_dim: int, right_dim: int) -> None:
        self.left_dim = left_dim
        self.right_dim = right_dim
        super().__init__(f"Vector dimensions must match: {left_dim} vs {right_dim}")


class EmbeddingGatewayError(RegistrationDedupeError):
    """The embedding backend failed or returned an unusable response."""


class ConfigurationError(RegistrationDedupeError, ValueError):
    pass
