"""
Exception hierarchy for Bloom filter and peer index operations.
"""


class BloomError(Exception):
    """Base class for all positron-bloom errors."""


class DomainError(BloomError, ValueError):
    """Raised when parameters fall outside their valid domain."""


class CodecError(BloomError, ValueError):
    """Raised when an encoded filter string cannot be decoded."""


class BoundsError(BloomError, IndexError):
    """Raised on direct bit access outside the vector."""
