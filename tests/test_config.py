import pytest

from registration_dedupe.config import DetectionConfig
from registration_dedupe.errors import ConfigurationError


def test_defaults() -> None:
    config = DetectionConfig()

    assert config.similarity_threshold == 0.85
    assert config.embedding_model == "text-embedding-3-small"
    assert config.embedding_timeout == 10.0


def test_from_env_overrides() -> None:
    config = DetectionConfig.from_env(
        {
            "DEDUPE_SIMILARITY_THRESHOLD": "0.9",
            "DEDUPE_EMBEDDING_MODEL": "text-embedding-3-large",
            "DEDUPE_EMBEDDING_TIMEOUT": "2.5",
            "DEDUPE_HASHING_DIMENSIONS": "128",
        }
    )

    assert config == DetectionConfig(
        similarity_threshold=0.9,
        embedding_model="text-embedding-3-large",
        embedding_timeout=2.5,
        hashing_dimensions=128,
    )


def test_from_env_falls_back_to_test_model_then_default() -> None:
    assert DetectionConfig.from_env({"TEST_EMBEDDING_MODEL": "mini"}).embedding_model == "mini"
    assert DetectionConfig.from_env({}) == DetectionConfig()
    assert DetectionConfig.from_env({"DEDUPE_SIMILARITY_THRESHOLD": " "}).similarity_threshold == 0.85


@pytest.mark.parametrize(
    "kwargs",
    [
        {"similarity_threshold": 1.5},
        {"similarity_threshold": -2.0},
        {"embedding_timeout": 0},
        {"hashing_dimensions": 0},
        {"embedding_model": ""},
    ],
)
def test_invalid_values_are_rejected(kwargs) -> None:
    with pytest.raises(ConfigurationError):
        DetectionConfig(**kwargs)


def test_unparsable_env_value() -> None:
    with pytest.raises(ConfigurationError, match="DEDUPE_SIMILARITY_THRESHOLD"):
        DetectionConfig.from_env({"DEDUPE_SIMILARITY_THRESHOLD": "high"})
