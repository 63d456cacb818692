"""
Peer snapshots as seen by the peer index.

Peer discovery happens elsewhere; this module only describes what a snapshot
carries (a stable identifier, an address and the peer's latest filter) and how
a snapshot is packed for transfer with msgpack.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional
import time

import msgpack
from msgpack.exceptions import UnpackException

from positron_bloom.bloom_filter import BloomFilter
from positron_bloom.errors import CodecError
from positron_bloom.hashing import HashScheme


@dataclass
class Peer:
    """A remote node and the filter it last advertised."""
    node_id: str
    address: str = ""  # Format: "host:port"
    bloom_filter: Optional[BloomFilter] = None
    last_seen: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data: Dict[str, Any] = {
            "node_id": self.node_id,
            "address": self.address,
            "last_seen": self.last_seen,
            "filter": None,
        }
        if self.bloom_filter is not None:
            data.update({
                "filter": self.bloom_filter.serialize(),
                "max_size": self.bloom_filter.get_max_size(),
                "hash_functions": self.bloom_filter.hash_functions,
                "hash_scheme": self.bloom_filter.hash_scheme.value,
            })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Peer":
        """
        Create from dictionary.

        Raises:
            CodecError: If a field is missing or malformed, or the embedded
                filter cannot be decoded
            DomainError: If the filter does not match its declared size
        """
        try:
            node_id = data["node_id"]
            address = data.get("address", "")
            last_seen = data.get("last_seen", time.time())
            encoded = data.get("filter")
            if encoded is not None:
                max_size = data["max_size"]
                hash_functions = data["hash_functions"]
                scheme = HashScheme(data.get("hash_scheme", HashScheme.LEGACY.value))
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise CodecError(f"Invalid peer entry: {e!r}") from e

        if not isinstance(node_id, str):
            raise CodecError("Invalid peer entry: node_id must be a string")

        bloom_filter = None
        if encoded is not None:
            if not isinstance(encoded, str):
                raise CodecError(f"Invalid peer entry {node_id}: filter must be a string")
            if not isinstance(max_size, int) or not isinstance(hash_functions, int):
                raise CodecError(
                    f"Invalid peer entry {node_id}: max_size and hash_functions "
                    f"must be integers"
                )
            bloom_filter = BloomFilter.deserialize(encoded, max_size, hash_functions, scheme)

        return cls(
            node_id=node_id,
            address=address,
            bloom_filter=bloom_filter,
            last_seen=last_seen,
        )


@dataclass
class PeerList:
    """
    Ordered snapshot of the peer set.

    Entries may be None where the discovery layer reports an empty slot.
    """
    peers: List[Optional[Peer]] = field(default_factory=list)

    def __iter__(self) -> Iterator[Optional[Peer]]:
        return iter(self.peers)

    def __len__(self) -> int:
        return len(self.peers)

    def to_bytes(self) -> bytes:
        """Serialize the snapshot using msgpack."""
        payload = [peer.to_dict() if peer is not None else None for peer in self.peers]
        return msgpack.packb({"peers": payload}, use_bin_type=True)

    @classmethod
    def from_bytes(cls, data: bytes) -> "PeerList":
        """
        Deserialize a snapshot.

        Raises:
            CodecError: If the payload is not a packed snapshot or an entry
                is malformed
            DomainError: If an entry's filter does not match its declared size
        """
        try:
            unpacked = msgpack.unpackb(data, raw=False)
            entries = unpacked["peers"]
        except (ValueError, TypeError, KeyError, UnpackException) as e:
            raise CodecError(f"Invalid peer snapshot: {e}") from e

        if not isinstance(entries, list):
            raise CodecError(f"Invalid peer snapshot: peers is {type(entries).__name__}")

        return cls(peers=[
            Peer.from_dict(entry) if entry is not None else None
            for entry in entries
        ])
