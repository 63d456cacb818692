"""
Tests for configuration handling.
"""
import pytest

from positron_bloom.config import BloomConfig, configure_logging
from positron_bloom.errors import DomainError
from positron_bloom.hashing import HashScheme


class TestBloomConfig:
    """Test cases for BloomConfig."""

    def test_defaults(self):
        """Test default configuration."""
        config = BloomConfig()

        assert config.validate()
        assert config.scheme is HashScheme.LEGACY
        assert config.resolve_bounds() == (95851, 6)

    def test_explicit_bounds(self):
        """Test that explicit sizing wins."""
        config = BloomConfig(max_size=2048, hash_functions=3)

        assert config.resolve_bounds() == (2048, 3)

    def test_max_size_alone(self):
        """Test that a lone max_size is kept with the default hash count."""
        config = BloomConfig(expected_items=100, false_positive_rate=0.01, max_size=2048)

        assert config.resolve_bounds() == (2048, 3)

    def test_hash_functions_alone(self):
        """Test that a lone hash_functions keeps the estimated bit count."""
        config = BloomConfig(expected_items=100, false_positive_rate=0.01, hash_functions=2)

        assert config.resolve_bounds() == (959, 2)

    @pytest.mark.parametrize("overrides", [
        {"expected_items": 0},
        {"false_positive_rate": 0.0},
        {"false_positive_rate": 1.0},
        {"max_size": 0},
        {"hash_functions": 9},
        {"hash_scheme": "triple"},
        {"cache_ratio": 0.0},
    ])
    def test_validate(self, overrides):
        """Test that invalid values are rejected."""
        with pytest.raises(DomainError):
            BloomConfig(**overrides).validate()

    def test_file_round_trip(self, tmp_path):
        """Test saving and loading JSON configuration."""
        path = tmp_path / "bloom.json"
        config = BloomConfig(max_size=4096, hash_functions=5, hash_scheme="double")

        config.to_file(str(path))
        loaded = BloomConfig.from_file(str(path))

        assert loaded == config
        assert loaded.scheme is HashScheme.DOUBLE

    def test_configure_logging(self):
        """Test that logging can be configured at any level name."""
        configure_logging("DEBUG")
        configure_logging("not-a-level")
