"""
Hash fan-out: turns a key into k bit indices.

Index i comes from hash family i reduced modulo the filter size. The first
three families are fixed so that every node in a cluster computes the same
index vector for the same key:

    0. FNV-1, 32-bit
    1. MurmurHash3 x86, 32-bit, seed 0
    2. Jenkins one-at-a-time, 32-bit

Families beyond the third depend on the ``HashScheme`` the cluster agreed on.
"""
from enum import Enum
from typing import List, Union

import mmh3

MASK_32 = 0xFFFFFFFF

FNV_OFFSET_BASIS_32 = 2166136261
FNV_PRIME_32 = 16777619

Key = Union[bytes, bytearray, str]


class HashScheme(str, Enum):
    """How indices past the third hash family are derived."""

    # Offsets >= 3 reuse FNV-1, so k > 3 repeats the first index
    LEGACY = "legacy"
    # h_i = h_0 + i * h_1 (mod 2**32) for offsets >= 3
    DOUBLE = "double"


def to_bytes(key: Key) -> bytes:
    """Normalize a key to bytes, encoding text as UTF-8."""
    if isinstance(key, str):
        return key.encode("utf-8")
    return bytes(key)


def fnv1_32(data: bytes) -> int:
    """FNV-1 32-bit hash (multiply, then XOR)."""
    value = FNV_OFFSET_BASIS_32
    for byte in data:
        value = (value * FNV_PRIME_32) & MASK_32
        value ^= byte
    return value


def murmur3_32(data: bytes) -> int:
    """MurmurHash3 x86 32-bit with seed 0, as an unsigned value."""
    return mmh3.hash(data, 0, False)


def jenkins_32(data: bytes) -> int:
    """Bob Jenkins' one-at-a-time hash."""
    value = 0
    for byte in data:
        value = (value + byte) & MASK_32
        value = (value + (value << 10)) & MASK_32
        value ^= value >> 6
    value = (value + (value << 3)) & MASK_32
    value ^= value >> 11
    value = (value + (value << 15)) & MASK_32
    return value


_FAMILIES = (fnv1_32, murmur3_32, jenkins_32)


def calculate_hash(data: bytes, offset: int, scheme: HashScheme = HashScheme.LEGACY) -> int:
    """
    Compute the unsigned 32-bit hash of family ``offset``.

    Args:
        data: Key bytes
        offset: Hash family number (0-based)
        scheme: Derivation used for offsets past the fixed families

    Returns:
        Hash value in [0, 2**32)
    """
    if offset < len(_FAMILIES):
        return _FAMILIES[offset](data)
    if scheme == HashScheme.DOUBLE:
        return (fnv1_32(data) + offset * murmur3_32(data)) & MASK_32
    return fnv1_32(data)


def hash_key(
    key: Key,
    max_size: int,
    hash_functions: int,
    scheme: HashScheme = HashScheme.LEGACY,
) -> List[int]:
    """
    Produce the ordered index vector for a key.

    Args:
        key: Key to hash (text is UTF-8 encoded)
        max_size: Filter size m; indices fall in [0, m)
        hash_functions: Number of indices k
        scheme: Derivation for families past the third

    Returns:
        List of k bit indices
    """
    data = to_bytes(key)
    return [
        calculate_hash(data, offset, scheme) % max_size
        for offset in range(hash_functions)
    ]
