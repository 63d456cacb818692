"""
Command-line interface for inspecting filters and their wire form.
"""
import click
from rich.console import Console
from rich.table import Table

from positron_bloom.bloom_filter import BloomFilter
from positron_bloom.config import BloomConfig, configure_logging
from positron_bloom.errors import BloomError
from positron_bloom.hashing import HashScheme, hash_key as compute_indices
from positron_bloom import rle
from positron_bloom.sizing import (
    DEFAULT_HASH_FUNCTIONS,
    MAX_HASH_FUNCTIONS,
    MIN_HASH_FUNCTIONS,
    estimate_bounds,
    expected_false_positive_rate,
)


console = Console()
err_console = Console(stderr=True)

SCHEMES = click.Choice([scheme.value for scheme in HashScheme])
BITS = click.IntRange(min=1)
HASH_COUNT = click.IntRange(MIN_HASH_FUNCTIONS, MAX_HASH_FUNCTIONS)


@click.group()
@click.option("--log-level", "-l", default="WARNING", help="Log level")
def main(log_level):
    """Positron Bloom - Bloom filters and per-bit peer indexes for query routing."""
    configure_logging(log_level)


@main.command()
@click.option("--items", "-n", type=int, required=True, help="Expected number of keys")
@click.option("--probability", "-p", type=float, default=0.01, help="Target false positive rate")
def size(items, probability):
    """Compute filter bits and hash count for a target false positive rate."""
    try:
        max_size, hash_functions = estimate_bounds(items, probability)
    except BloomError as e:
        raise click.BadParameter(str(e))

    table = Table(title="Filter Sizing")
    table.add_column("Parameter", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Expected items (n)", str(items))
    table.add_row("Target FPR (p)", str(probability))
    table.add_row("Bits (m)", str(max_size))
    table.add_row("Hash functions (k)", str(hash_functions))
    table.add_row(
        "Expected FPR at n",
        f"{expected_false_positive_rate(max_size, hash_functions, items):.6f}",
    )
    console.print(table)


@main.command(name="hash")
@click.argument("key")
@click.option("--max-size", "-m", type=BITS, required=True, help="Filter size in bits")
@click.option("--hash-functions", "-k", type=HASH_COUNT, default=DEFAULT_HASH_FUNCTIONS, help="Number of hash functions")
@click.option("--scheme", type=SCHEMES, default=HashScheme.LEGACY.value, help="Hash scheme")
def hash_command(key, max_size, hash_functions, scheme):
    """Print the bit indices of KEY."""
    indices = compute_indices(key, max_size, hash_functions, HashScheme(scheme))
    click.echo(" ".join(str(index) for index in indices))


@main.command()
@click.argument("text")
def encode(text):
    """Run-length encode TEXT."""
    try:
        click.echo(rle.encode(text))
    except BloomError as e:
        raise click.ClickException(str(e))


@main.command()
@click.argument("text")
def decode(text):
    """Expand run-length encoded TEXT."""
    try:
        click.echo(rle.decode(text))
    except BloomError as e:
        raise click.ClickException(str(e))


@main.command()
@click.argument("keys", nargs=-1)
@click.option("--config", "-c", type=click.Path(exists=True), help="Path to configuration file")
@click.option("--max-size", "-m", type=BITS, help="Filter size in bits")
@click.option("--hash-functions", "-k", type=HASH_COUNT, help="Number of hash functions")
@click.option("--items", "-n", type=int, default=10000, help="Expected number of keys")
@click.option("--probability", "-p", type=float, default=0.01, help="Target false positive rate")
def build(keys, config, max_size, hash_functions, items, probability):
    """Build a filter holding KEYS and print its serialized form."""
    if config:
        bloom_config = BloomConfig.from_file(config)
    else:
        bloom_config = BloomConfig(
            expected_items=items,
            false_positive_rate=probability,
            max_size=max_size,
            hash_functions=hash_functions,
        )

    try:
        bloom = BloomFilter.from_config(bloom_config)
    except BloomError as e:
        raise click.ClickException(str(e))

    for key in keys:
        bloom.add(key)

    err_console.print(
        f"[dim]m={bloom.get_max_size()} k={bloom.hash_functions} "
        f"bits set={bloom.count()}[/dim]",
    )
    click.echo(bloom.serialize())


@main.command()
@click.argument("serialized")
@click.argument("keys", nargs=-1, required=True)
@click.option("--max-size", "-m", type=BITS, required=True, help="Filter size in bits")
@click.option("--hash-functions", "-k", type=HASH_COUNT, default=DEFAULT_HASH_FUNCTIONS, help="Number of hash functions")
@click.option("--scheme", type=SCHEMES, default=HashScheme.LEGACY.value, help="Hash scheme")
def check(serialized, keys, max_size, hash_functions, scheme):
    """Test KEYS against a SERIALIZED filter."""
    try:
        bloom = BloomFilter.deserialize(
            serialized, max_size, hash_functions, HashScheme(scheme)
        )
    except BloomError as e:
        raise click.ClickException(f"Cannot load filter: {e}")

    table = Table(title="Membership")
    table.add_column("Key", style="cyan")
    table.add_column("Result", style="green")
    for key in keys:
        table.add_row(key, "maybe present" if bloom.test(key) else "absent")
    console.print(table)


@main.command()
def version():
    """Display version information."""
    from . import __version__
    console.print(f"[cyan]Positron Bloom v{__version__}[/cyan]")


if __name__ == "__main__":
    main()
