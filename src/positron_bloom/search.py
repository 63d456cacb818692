"""
Per-bit peer index: which peers have bit i set in their filter.

A ``Search`` is built from one peer snapshot and never modified afterwards.
Membership changes are handled by building a new one and swapping the
reference held by ``SearchIndex``; readers holding the old ``Search`` keep a
consistent view.

Bit positions run from 0 to m inclusive. Position m is a sentinel that is
always empty, so a lookup at exactly m is answered rather than rejected.
"""
import asyncio
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

import structlog

from positron_bloom.metrics import get_metrics
from positron_bloom.peers import Peer

EMPTY: Tuple[Peer, ...] = ()


@dataclass(frozen=True)
class SearchNode:
    """The peers whose filters have ``bit_index`` set."""
    bit_index: int
    peers: Tuple[Peer, ...]


class Search:
    """Immutable inverted index from bit position to peers."""

    __slots__ = ("_nodes",)

    def __init__(self, nodes: Tuple[SearchNode, ...] = ()):
        self._nodes = tuple(nodes)

    @classmethod
    def build(cls, snapshot: Iterable[Optional[Peer]]) -> "Search":
        """
        Build the index for a peer snapshot.

        The filter size is taken from the first peer. An empty snapshot, or
        one whose first entry is absent or carries no filter, yields an empty
        index.

        Args:
            snapshot: Ordered peers, None for empty slots

        Returns:
            New Search covering bits 0..m
        """
        peers = list(snapshot)
        if not peers or peers[0] is None or peers[0].bloom_filter is None:
            return cls()

        max_size = peers[0].bloom_filter.get_max_size()

        # Position max_size stays empty
        buckets: List[List[Peer]] = [[] for _ in range(max_size + 1)]
        for peer in peers:
            if peer is None or peer.bloom_filter is None:
                continue
            for bit in peer.bloom_filter.get_storage().iter_set():
                if bit >= max_size:
                    break
                buckets[bit].append(peer)

        return cls(tuple(
            SearchNode(bit, tuple(holders)) for bit, holders in enumerate(buckets)
        ))

    def peers_for_bit(self, bit_index: int) -> Tuple[Peer, ...]:
        """
        Peers whose filter has ``bit_index`` set.

        Returns:
            Tuple of peers in snapshot order; empty when the index is empty
            or ``bit_index`` lies outside [0, m]
        """
        if not 0 <= bit_index < len(self._nodes):
            return EMPTY
        return self._nodes[bit_index].peers

    @property
    def max_size(self) -> int:
        """Filter size m covered by this index, 0 when empty."""
        return max(0, len(self._nodes) - 1)

    def peer_count(self) -> int:
        """Distinct peers appearing anywhere in the index."""
        return len({peer.node_id for node in self._nodes for peer in node.peers})

    def __len__(self) -> int:
        return len(self._nodes)

    def __repr__(self) -> str:
        return f"Search(bits={len(self._nodes)}, peers={self.peer_count()})"


class SearchIndex:
    """
    Holds the current ``Search`` and replaces it on membership changes.

    Replacement is a single reference assignment: a reader either sees the
    previous index or the new one, never a partial rebuild.
    """

    def __init__(self, snapshot: Optional[Iterable[Optional[Peer]]] = None):
        self.logger = structlog.get_logger()
        self._current = Search()
        if snapshot is not None:
            self.recalculate(snapshot)

    @property
    def current(self) -> Search:
        return self._current

    def peers_for_bit(self, bit_index: int) -> Tuple[Peer, ...]:
        return self._current.peers_for_bit(bit_index)

    def recalculate(self, snapshot: Iterable[Optional[Peer]]) -> Search:
        """
        Rebuild the index from a fresh snapshot and swap it in.

        Args:
            snapshot: Ordered peers, None for empty slots

        Returns:
            The newly installed Search
        """
        metrics = get_metrics()
        with metrics.timer("search.rebuild.duration.seconds") as timer:
            search = Search.build(snapshot)

        self._current = search

        metrics.increment_counter("search.rebuilds.total")
        metrics.set_gauge("search.bits.indexed", len(search))
        metrics.set_gauge("search.peers.indexed", search.peer_count())
        self.logger.info(
            "search_rebuilt",
            bits=len(search),
            peers=search.peer_count(),
            duration=timer.elapsed,
        )
        return search

    async def recalculate_async(self, snapshot: Iterable[Optional[Peer]]) -> Search:
        """Run ``recalculate`` in the default executor, off the event loop."""
        peers = list(snapshot)
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.recalculate, peers)
