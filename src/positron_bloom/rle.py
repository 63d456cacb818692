"""
Run-length codec for the textual form of a bit vector.

Each maximal run of a character becomes the character followed by the decimal
run length, so ``"aaabbc"`` encodes to ``"a3b2c1"``. Runs of one are still
written with their count, which keeps the encoding canonical and the codec a
bijection on digit-free strings.
"""
import re
from itertools import groupby
from typing import Optional

from positron_bloom.errors import CodecError

_RUN = re.compile(r"(\D)([1-9][0-9]*)")


def encode(text: str) -> str:
    """
    Collapse runs of identical characters.

    Args:
        text: Digit-free input string

    Returns:
        Run-length encoded string ("" for empty input)

    Raises:
        CodecError: If the input contains decimal digits
    """
    parts = []
    for char, run in groupby(text):
        if char.isdigit():
            raise CodecError(f"cannot run-length encode digit {char!r}")
        parts.append(f"{char}{sum(1 for _ in run)}")
    return "".join(parts)


def decode(encoded: str, max_length: Optional[int] = None) -> str:
    """
    Expand a run-length encoded string.

    Args:
        encoded: Output of ``encode``
        max_length: Upper bound on the decoded length, or None for no bound

    Returns:
        The decoded string

    Raises:
        CodecError: If the input is not in canonical encoded form, or would
            expand past ``max_length``
    """
    parts = []
    position = 0
    previous = None
    total = 0

    while position < len(encoded):
        match = _RUN.match(encoded, position)
        if match is None:
            raise CodecError(f"malformed run at offset {position} in encoded filter")

        char, count = match.group(1), match.group(2)
        if char == previous:
            raise CodecError(f"adjacent runs of {char!r} at offset {position}")

        # Checked before expansion; a short input can name a huge run
        if max_length is not None and (
            len(count) > len(str(max_length)) or total + int(count) > max_length
        ):
            raise CodecError(f"encoded text expands past {max_length} characters")

        run = int(count)
        parts.append(char * run)
        total += run
        previous = char
        position = match.end()

    return "".join(parts)
