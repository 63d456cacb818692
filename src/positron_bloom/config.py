"""
Configuration management for Bloom filters and the peer index.
"""
from dataclasses import dataclass, asdict
from typing import Optional, Tuple
import json
import logging

import structlog

from positron_bloom.errors import DomainError
from positron_bloom.hashing import HashScheme
from positron_bloom.sizing import (
    DEFAULT_HASH_FUNCTIONS,
    MAX_HASH_FUNCTIONS,
    estimate_bounds,
)


@dataclass
class BloomConfig:
    """Configuration for a node's Bloom filter."""

    # Sizing by expected load
    expected_items: int = 10000
    false_positive_rate: float = 0.01

    # Explicit sizing; max_size overrides the estimate, hash_functions overrides k
    max_size: Optional[int] = None
    hash_functions: Optional[int] = None

    # Must match across the cluster
    hash_scheme: str = HashScheme.LEGACY.value

    # Lookaside cache capacity as a fraction of max_size
    cache_ratio: float = 0.1

    # Logging
    log_level: str = "INFO"

    @classmethod
    def from_file(cls, path: str) -> "BloomConfig":
        """Load configuration from a JSON file."""
        with open(path, "r") as f:
            data = json.load(f)
        return cls(**data)

    def to_file(self, path: str):
        """Save configuration to a JSON file."""
        with open(path, "w") as f:
            json.dump(asdict(self), f, indent=2)

    @property
    def scheme(self) -> HashScheme:
        return HashScheme(self.hash_scheme)

    def resolve_bounds(self) -> Tuple[int, int]:
        """
        Determine (max_size, hash_functions) for the filter.

        An explicit max_size always wins; without hash_functions it is paired
        with DEFAULT_HASH_FUNCTIONS. An explicit hash_functions alone keeps the
        estimated bit count.

        Returns:
            Tuple of (max_size, hash_functions)
        """
        if self.max_size is not None:
            hash_functions = self.hash_functions
            if hash_functions is None:
                hash_functions = DEFAULT_HASH_FUNCTIONS
            return self.max_size, hash_functions

        max_size, hash_functions = estimate_bounds(
            self.expected_items, self.false_positive_rate
        )
        if self.hash_functions is not None:
            hash_functions = self.hash_functions
        return max_size, hash_functions

    def validate(self) -> bool:
        """Validate configuration parameters."""
        if self.expected_items < 1:
            raise DomainError(f"expected_items must be at least 1")

        if not (0.0 < self.false_positive_rate < 1.0):
            raise DomainError(f"false_positive_rate must be between 0.0 and 1.0")

        if self.max_size is not None and self.max_size < 1:
            raise DomainError(f"max_size must be at least 1")

        if self.hash_functions is not None and not (
            1 <= self.hash_functions <= MAX_HASH_FUNCTIONS
        ):
            raise DomainError(f"hash_functions must be between 1 and {MAX_HASH_FUNCTIONS}")

        try:
            HashScheme(self.hash_scheme)
        except ValueError:
            raise DomainError(f"Unknown hash_scheme: {self.hash_scheme}") from None

        if not (0.0 < self.cache_ratio <= 1.0):
            raise DomainError(f"cache_ratio must be in (0.0, 1.0]")

        return True


def configure_logging(level: str = "INFO"):
    """Route structlog output through a logger filtered at ``level``."""
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
    )
