"""
Tests for the per-bit peer index.
"""
import pytest

from positron_bloom.bloom_filter import BloomFilter
from positron_bloom.metrics import get_metrics, reset_metrics
from positron_bloom.peers import Peer, PeerList
from positron_bloom.search import Search, SearchIndex


@pytest.fixture(autouse=True)
def fresh_metrics():
    reset_metrics()
    yield
    reset_metrics()


def peer_with_bits(node_id: str, max_size: int, *bits: int) -> Peer:
    bloom = BloomFilter(max_size=max_size)
    for bit in bits:
        bloom.get_storage().set(bit)
    return Peer(node_id=node_id, address=f"{node_id}:8888", bloom_filter=bloom)


def ids(peers):
    return [peer.node_id for peer in peers]


class TestSearch:
    """Test cases for building and querying the index."""

    def test_single_bit_peers(self):
        """Test three peers with one bit each."""
        snapshot = [
            peer_with_bits("p1", 16, 2),
            peer_with_bits("p2", 16, 5),
            peer_with_bits("p3", 16, 2),
        ]
        search = Search.build(snapshot)

        assert ids(search.peers_for_bit(2)) == ["p1", "p3"]
        assert ids(search.peers_for_bit(5)) == ["p2"]
        assert search.peers_for_bit(0) == ()

    def test_sentinel_entry(self):
        """Test that positions run 0..m with an empty entry at m."""
        search = Search.build([peer_with_bits("p1", 16, 15)])

        assert len(search) == 17
        assert search.max_size == 16
        assert ids(search.peers_for_bit(15)) == ["p1"]
        assert search.peers_for_bit(16) == ()

    def test_out_of_range_lookups(self):
        """Test that lookups outside [0, m] return nothing."""
        search = Search.build([peer_with_bits("p1", 16, 0)])

        assert search.peers_for_bit(17) == ()
        assert search.peers_for_bit(10 ** 6) == ()
        assert search.peers_for_bit(-1) == ()

    def test_empty_snapshot(self):
        """Test that an empty snapshot gives an empty index."""
        search = Search.build([])

        assert len(search) == 0
        assert search.max_size == 0
        assert search.peers_for_bit(0) == ()

    def test_absent_first_peer(self):
        """Test that an absent first entry gives an empty index."""
        search = Search.build(PeerList([None, peer_with_bits("p2", 16, 3)]))

        assert len(search) == 0
        for bit in range(20):
            assert search.peers_for_bit(bit) == ()

    def test_first_peer_without_filter(self):
        """Test that a filter-less first peer gives an empty index."""
        search = Search.build([Peer("p1"), peer_with_bits("p2", 16, 3)])

        assert len(search) == 0

    def test_skips_absent_and_filterless_peers(self):
        """Test that later gaps are ignored."""
        snapshot = [
            peer_with_bits("p1", 16, 4),
            None,
            Peer("p3"),
            peer_with_bits("p4", 16, 4),
        ]
        search = Search.build(snapshot)

        assert ids(search.peers_for_bit(4)) == ["p1", "p4"]

    def test_size_taken_from_first_peer(self):
        """Test that shorter filters never match bits past their end."""
        snapshot = [peer_with_bits("big", 32, 20), peer_with_bits("small", 8, 3)]
        search = Search.build(snapshot)

        assert search.max_size == 32
        assert ids(search.peers_for_bit(3)) == ["small"]
        assert ids(search.peers_for_bit(20)) == ["big"]

    def test_matches_filter_contents(self):
        """Test that every entry is exactly the peers with that bit set."""
        snapshot = []
        for n in range(4):
            bloom = BloomFilter(max_size=128)
            for i in range(10 * (n + 1)):
                bloom.add(f"peer{n}_key{i}")
            snapshot.append(Peer(node_id=f"p{n}", bloom_filter=bloom))

        search = Search.build(snapshot)

        for bit in range(129):
            expected = [
                peer.node_id for peer in snapshot
                if bit < 128 and peer.bloom_filter.get_storage().is_set(bit)
            ]
            assert ids(search.peers_for_bit(bit)) == expected

    def test_peer_count(self):
        """Test counting distinct indexed peers."""
        search = Search.build([
            peer_with_bits("p1", 16, 1, 2),
            peer_with_bits("p2", 16, 2),
            peer_with_bits("p3", 16),
        ])

        assert search.peer_count() == 2
        assert "Search" in repr(search)


class TestSearchIndex:
    """Test cases for replacing the index."""

    def test_starts_empty(self):
        """Test that a new index answers nothing."""
        index = SearchIndex()

        assert len(index.current) == 0
        assert index.peers_for_bit(0) == ()

    def test_initial_snapshot(self):
        """Test building from a snapshot at construction."""
        index = SearchIndex([peer_with_bits("p1", 16, 7)])

        assert ids(index.peers_for_bit(7)) == ["p1"]

    def test_recalculate_swaps_reference(self):
        """Test that old readers keep their snapshot."""
        index = SearchIndex([peer_with_bits("p1", 16, 7)])
        old = index.current

        new = index.recalculate([peer_with_bits("p2", 16, 9)])

        assert index.current is new
        assert new is not old
        assert ids(old.peers_for_bit(7)) == ["p1"]
        assert index.peers_for_bit(7) == ()
        assert ids(index.peers_for_bit(9)) == ["p2"]

    def test_recalculate_updates_metrics(self):
        """Test that rebuilds are recorded."""
        index = SearchIndex()
        index.recalculate([peer_with_bits("p1", 16, 1), peer_with_bits("p2", 16, 2)])

        metrics = get_metrics()
        assert metrics.counters["search.rebuilds.total"].get() == 1
        assert metrics.gauges["search.bits.indexed"].get() == 17
        assert metrics.gauges["search.peers.indexed"].get() == 2
        assert metrics.histograms["search.rebuild.duration.seconds"].get_summary().count == 1

    @pytest.mark.asyncio
    async def test_recalculate_async(self):
        """Test rebuilding off the event loop."""
        index = SearchIndex()

        search = await index.recalculate_async(
            PeerList([peer_with_bits("p1", 16, 3)])
        )

        assert index.current is search
        assert ids(index.peers_for_bit(3)) == ["p1"]
