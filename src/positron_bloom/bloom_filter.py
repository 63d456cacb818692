"""
Bloom filter for advertising the keys a node holds to the rest of the cluster.

A Bloom filter is a space-efficient probabilistic data structure used to test
whether an element is a member of a set. False positive matches are possible,
but false negatives are not.

Filters travel between nodes as the run-length encoded textual form of their
bit vector. The receiver must already know the filter size, and the whole
cluster is configured with the same hash function count and hash scheme.
"""
from typing import List, Tuple

import structlog

from positron_bloom import rle
from positron_bloom.bitset import BitVector, text_length
from positron_bloom.cache import LRUCache
from positron_bloom.config import BloomConfig
from positron_bloom.errors import CodecError, DomainError
from positron_bloom.hashing import HashScheme, Key, hash_key, to_bytes
from positron_bloom.metrics import get_metrics
from positron_bloom.sizing import (
    DEFAULT_HASH_FUNCTIONS,
    MAX_HASH_FUNCTIONS,
    MIN_HASH_FUNCTIONS,
    estimate_bounds,
)

DEFAULT_CACHE_RATIO = 0.1

logger = structlog.get_logger()


class BloomFilter:
    """
    Set membership filter over a fixed-size bit vector.

    Not safe for concurrent writers: ``add`` must not race with ``add`` or
    ``test`` on the same instance.
    """

    def __init__(
        self,
        max_size: int,
        hash_functions: int = DEFAULT_HASH_FUNCTIONS,
        hash_scheme: HashScheme = HashScheme.LEGACY,
        cache_ratio: float = DEFAULT_CACHE_RATIO,
    ):
        """
        Initialize a Bloom filter.

        Args:
            max_size: Number of bits m in the filter
            hash_functions: Number of hash indices k per key (1-8)
            hash_scheme: Derivation for hash families past the third
            cache_ratio: Lookaside cache capacity as a fraction of max_size

        Raises:
            DomainError: If parameters are invalid
        """
        if max_size < 1:
            raise DomainError(f"max_size must be positive, got {max_size}")
        if not MIN_HASH_FUNCTIONS <= hash_functions <= MAX_HASH_FUNCTIONS:
            raise DomainError(
                f"hash_functions must be between {MIN_HASH_FUNCTIONS} and "
                f"{MAX_HASH_FUNCTIONS}, got {hash_functions}"
            )

        self.max_size = max_size
        self.hash_functions = hash_functions
        self.hash_scheme = HashScheme(hash_scheme)
        self.filter = BitVector(max_size)
        self.hash_cache: LRUCache[Tuple[int, ...]] = LRUCache(
            max(1, int(max_size * cache_ratio))
        )

    @classmethod
    def by_fail_rate(
        cls,
        items: int,
        probability: float,
        hash_scheme: HashScheme = HashScheme.LEGACY,
    ) -> "BloomFilter":
        """
        Size a filter for ``items`` keys at false-positive rate ``probability``.

        Raises:
            DomainError: If items < 1 or probability is outside (0, 1)
        """
        max_size, hash_functions = estimate_bounds(items, probability)
        return cls(max_size, hash_functions, hash_scheme)

    @classmethod
    def from_config(cls, config: BloomConfig) -> "BloomFilter":
        """Build a filter from validated configuration."""
        config.validate()
        max_size, hash_functions = config.resolve_bounds()
        return cls(max_size, hash_functions, config.scheme, config.cache_ratio)

    def get_max_size(self) -> int:
        return self.max_size

    def get_storage(self) -> BitVector:
        """The backing bit vector, read by the peer index."""
        return self.filter

    def hash_key(self, key: Key) -> List[int]:
        """
        Compute the k bit indices for a key, memoized per filter.

        Args:
            key: Key bytes, or text to be UTF-8 encoded

        Returns:
            Ordered list of k indices in [0, max_size)
        """
        data = to_bytes(key)
        cached = self.hash_cache.get(data)
        if cached is not None:
            return list(cached)

        indices = hash_key(data, self.max_size, self.hash_functions, self.hash_scheme)
        self.hash_cache.put(data, tuple(indices))
        return indices

    def add(self, key: Key) -> List[int]:
        """
        Add a key to the filter.

        Args:
            key: Key to add

        Returns:
            The index vector that was set
        """
        indices = self.hash_key(key)
        for index in indices:
            self.filter.set(index)
        return indices

    def test(self, key: Key) -> bool:
        """
        Check if a key might be in the filter.

        Returns:
            True if the key might be present (possible false positive),
            False if it is definitely absent
        """
        return all(self.filter.test(index) for index in self.hash_key(key))

    def __contains__(self, key: Key) -> bool:
        """Support 'in' operator."""
        return self.test(key)

    def serialize(self) -> str:
        """
        Encode the bit vector for transfer to another node.

        Returns:
            Printable run-length encoded text
        """
        get_metrics().increment_counter("filter.serialize.total")
        return rle.encode(self.filter.to_text())

    @classmethod
    def deserialize(
        cls,
        encoded: str,
        max_size: int,
        hash_functions: int = DEFAULT_HASH_FUNCTIONS,
        hash_scheme: HashScheme = HashScheme.LEGACY,
        cache_ratio: float = DEFAULT_CACHE_RATIO,
    ) -> "BloomFilter":
        """
        Rebuild a filter from its serialized form.

        Decoding stops as soon as the text would outgrow a ``max_size``-bit
        vector, so a short hostile input cannot force a large allocation.

        Args:
            encoded: Output of ``serialize``
            max_size: Filter size the sender is known to use
            hash_functions: Cluster-wide hash function count
            hash_scheme: Cluster-wide hash scheme
            cache_ratio: Lookaside cache capacity as a fraction of max_size

        Returns:
            Deserialized BloomFilter instance

        Raises:
            CodecError: If the encoded text is malformed or too long
            DomainError: If the encoded size differs from ``max_size``
        """
        metrics = get_metrics()
        try:
            text = rle.decode(encoded, max_length=text_length(max_size))
            vector = BitVector.from_text(text)
        except CodecError as e:
            metrics.increment_counter("errors.codec.total")
            logger.warning("filter_decode_failed", max_size=max_size, error=str(e))
            raise

        if vector.length != max_size:
            metrics.increment_counter("errors.domain.total")
            raise DomainError(
                f"encoded filter has {vector.length} bits, expected {max_size}"
            )

        bloom = cls(max_size, hash_functions, hash_scheme, cache_ratio)
        bloom.filter = vector
        metrics.increment_counter("filter.deserialize.total")
        return bloom

    def compare(self, other: "BloomFilter") -> bool:
        """True iff both filters hold identical bit vectors."""
        return self.filter.equals(other.get_storage())

    def count(self) -> int:
        """Number of bits currently set."""
        return self.filter.count()

    def fill_ratio(self) -> float:
        return self.count() / self.max_size

    def estimated_false_positive_rate(self) -> float:
        """
        Estimate the false positive rate from the current fill ratio.

        Returns:
            Probability that an absent key tests positive
        """
        return self.fill_ratio() ** self.hash_functions

    def get_stats(self) -> dict:
        """
        Get statistics about the Bloom filter.

        Returns:
            Dictionary with filter statistics
        """
        return {
            'size_bits': self.max_size,
            'size_bytes': len(self.filter.words),
            'num_hash_functions': self.hash_functions,
            'hash_scheme': self.hash_scheme.value,
            'bits_set': self.count(),
            'fill_ratio': self.fill_ratio(),
            'estimated_false_positive_rate': self.estimated_false_positive_rate(),
            'cache_entries': len(self.hash_cache),
            'cache_hits': self.hash_cache.hits,
            'cache_misses': self.hash_cache.misses,
        }

    def __repr__(self) -> str:
        return (f"BloomFilter(size={self.max_size} bits, "
                f"hashes={self.hash_functions}, "
                f"set={self.count()}, "
                f"fpr={self.estimated_false_positive_rate():.4f})")
