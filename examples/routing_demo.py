"""
Example: route key lookups to the peers whose filters might hold them.
"""
import asyncio
from positron_bloom import BloomConfig, BloomFilter, Peer, PeerList
from positron_bloom.config import configure_logging
from positron_bloom.router import QueryRouter


def make_peer(node_id: str, port: int, config: BloomConfig, keys) -> Peer:
    """Build a peer whose filter advertises ``keys``."""
    bloom = BloomFilter.from_config(config)
    for key in keys:
        bloom.add(key)
    return Peer(node_id=node_id, address=f"127.0.0.1:{port}", bloom_filter=bloom)


async def main():
    """Index three peers and route a few lookups."""
    configure_logging("INFO")
    config = BloomConfig(expected_items=1000, false_positive_rate=0.01)

    snapshot = PeerList([
        make_peer("node-a", 8881, config, [f"user:{i}" for i in range(0, 300)]),
        make_peer("node-b", 8882, config, [f"user:{i}" for i in range(200, 500)]),
        make_peer("node-c", 8883, config, [f"order:{i}" for i in range(100)]),
    ])

    # Snapshots arrive over the wire packed with msgpack
    received = PeerList.from_bytes(snapshot.to_bytes())

    router = QueryRouter(BloomFilter.from_config(config))
    await router.index.recalculate_async(received)

    for key in ("user:42", "user:250", "order:7", "missing:1"):
        peers = router.candidates(key)
        names = ", ".join(peer.node_id for peer in peers) or "none"
        print(f"{key:<10} -> {names}")


if __name__ == "__main__":
    asyncio.run(main())
