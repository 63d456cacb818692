"""
Bloom filter sizing from an expected item count and target false-positive rate.

    m = ceil(-n * ln(p) / ln(2)^2)
    k = floor((m / n) * ln(2)), clamped to [1, MAX_HASH_FUNCTIONS]

The bit count is rounded up; implementations that truncate instead land one
bit lower for non-integral results.
"""
import math
from typing import Tuple

from positron_bloom.errors import DomainError

MIN_HASH_FUNCTIONS = 1
MAX_HASH_FUNCTIONS = 8

# Used when the bit count is fixed but k is not
DEFAULT_HASH_FUNCTIONS = 3


def estimate_bounds(items: int, probability: float) -> Tuple[int, int]:
    """
    Calculate the bit count and hash function count for a filter.

    Args:
        items: Expected number of keys (n >= 1)
        probability: Target false-positive rate, strictly between 0 and 1

    Returns:
        Tuple of (max_size, hash_functions)

    Raises:
        DomainError: If either argument is out of range
    """
    if items < 1:
        raise DomainError(f"expected item count must be >= 1, got {items}")
    if not 0 < probability < 1:
        raise DomainError(f"false positive rate must be in (0, 1), got {probability}")

    max_size = int(math.ceil(-items * math.log(probability) / (math.log(2) ** 2)))
    hash_functions = int((max_size / items) * math.log(2))
    hash_functions = min(MAX_HASH_FUNCTIONS, max(MIN_HASH_FUNCTIONS, hash_functions))

    return max_size, hash_functions


def expected_false_positive_rate(max_size: int, hash_functions: int, items: int) -> float:
    """Theoretical false-positive rate (1 - e^(-kn/m))^k after ``items`` inserts."""
    if items <= 0:
        return 0.0
    exponent = -hash_functions * items / max_size
    return (1 - math.exp(exponent)) ** hash_functions
