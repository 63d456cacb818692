"""
Positron Bloom - Bloom filters and per-bit peer indexes for gossip query routing.

This package provides:
- A Bloom filter with a cluster-stable hash schedule (FNV-1, MurmurHash3, Jenkins)
- Filter sizing from an expected item count and false positive rate
- A printable run-length encoded wire form for filters
- A per-bit peer index answering "which peers have bit i set?"

Part of the Positron Blockchain ecosystem.
"""

__version__ = "0.1.0"

from positron_bloom.bloom_filter import BloomFilter
from positron_bloom.config import BloomConfig
from positron_bloom.errors import BloomError, BoundsError, CodecError, DomainError
from positron_bloom.peers import Peer, PeerList
from positron_bloom.search import Search, SearchIndex

__all__ = [
    "BloomFilter",
    "BloomConfig",
    "BloomError",
    "BoundsError",
    "CodecError",
    "DomainError",
    "Peer",
    "PeerList",
    "Search",
    "SearchIndex",
]
