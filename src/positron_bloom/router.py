"""
Query routing over the local filter and the per-bit peer index.
"""
from typing import Iterable, List, Optional

import structlog

from positron_bloom.bloom_filter import BloomFilter
from positron_bloom.hashing import Key
from positron_bloom.peers import Peer
from positron_bloom.search import Search, SearchIndex


class QueryRouter:
    """Decides which peers are plausible holders of a key."""

    def __init__(self, local_filter: BloomFilter, index: Optional[SearchIndex] = None):
        """
        Initialize the router.

        Args:
            local_filter: This node's filter; also fixes the hash parameters
                used to compute candidate bits
            index: Peer index to consult (a fresh empty one if omitted)
        """
        self.local_filter = local_filter
        self.index = index or SearchIndex()
        self.logger = structlog.get_logger()

    def might_have_locally(self, key: Key) -> bool:
        return self.local_filter.test(key)

    def candidates(self, key: Key) -> List[Peer]:
        """
        Peers whose filters have every bit of ``key`` set.

        Args:
            key: Key being looked up

        Returns:
            Matching peers in snapshot order, empty if no peer matches or the
            index was built for a different filter size
        """
        search = self.index.current
        if len(search) and search.max_size != self.local_filter.get_max_size():
            self.logger.warning(
                "route_size_mismatch",
                local_size=self.local_filter.get_max_size(),
                index_size=search.max_size,
            )
            return []

        indices = self.local_filter.hash_key(key)

        matched: Optional[List[Peer]] = None
        for bit in indices:
            holders = {peer.node_id for peer in search.peers_for_bit(bit)}
            if matched is None:
                matched = list(search.peers_for_bit(bit))
            else:
                matched = [peer for peer in matched if peer.node_id in holders]
            if not matched:
                break

        self.logger.debug("route_candidates", bits=indices, peers=len(matched or []))
        return matched or []

    def update_peers(self, snapshot: Iterable[Optional[Peer]]) -> Search:
        """Rebuild the peer index after a membership change."""
        return self.index.recalculate(snapshot)
