"""
Fixed-size packed bit vector backing a Bloom filter.

Bits live in 64-bit words stored little-endian inside a bytearray, so bit i is
bit (i % 8) of byte (i // 8). The textual form is the binary marshal of the
vector (64-bit big-endian length followed by every word, big-endian) written
with the letters 'a'..'p' standing for the nibbles 0x0..0xf. The alphabet has
no digits, which keeps it unambiguous under run-length encoding.
"""
from typing import Iterator

from positron_bloom.errors import BoundsError, CodecError

WORD_BITS = 64
WORD_BYTES = WORD_BITS // 8

# Letters per 64-bit word in the textual form
WORD_CHARS = WORD_BYTES * 2

TEXT_ALPHABET = "abcdefghijklmnop"
_HEX_DIGITS = "0123456789abcdef"
_TO_TEXT = str.maketrans(_HEX_DIGITS, TEXT_ALPHABET)
_FROM_TEXT = str.maketrans(TEXT_ALPHABET, _HEX_DIGITS)


def _word_count(length: int) -> int:
    return (length + WORD_BITS - 1) // WORD_BITS


def text_length(length: int) -> int:
    """Characters in the textual form of a ``length``-bit vector."""
    return WORD_CHARS * (1 + _word_count(length))


class BitVector:
    """A packed array of ``length`` bits, all clear on creation."""

    __slots__ = ("length", "words")

    def __init__(self, length: int):
        """
        Create an all-clear bit vector.

        Args:
            length: Number of addressable bits

        Raises:
            BoundsError: If length is negative
        """
        if length < 0:
            raise BoundsError(f"bit vector length must be >= 0, got {length}")
        self.length = length
        self.words = bytearray(_word_count(length) * WORD_BYTES)

    def _check(self, index: int) -> None:
        if not 0 <= index < self.length:
            raise BoundsError(f"bit {index} out of range [0, {self.length})")

    def set(self, index: int) -> None:
        """Mark bit ``index``."""
        self._check(index)
        self.words[index >> 3] |= 1 << (index & 7)

    def test(self, index: int) -> bool:
        """Return whether bit ``index`` is set."""
        self._check(index)
        return bool(self.words[index >> 3] & (1 << (index & 7)))

    is_set = test

    def count(self) -> int:
        """Number of set bits."""
        return sum(bin(byte).count("1") for byte in self.words)

    def iter_set(self) -> Iterator[int]:
        """Yield the positions of set bits in ascending order."""
        for byte_index, byte in enumerate(self.words):
            if not byte:
                continue
            for bit in range(8):
                if byte & (1 << bit):
                    yield (byte_index << 3) | bit

    def equals(self, other: "BitVector") -> bool:
        """True iff both vectors have the same length and bit pattern."""
        return self.length == other.length and self.words == other.words

    def __eq__(self, other) -> bool:
        if not isinstance(other, BitVector):
            return NotImplemented
        return self.equals(other)

    def __len__(self) -> int:
        return self.length

    def to_text(self) -> str:
        """Render the vector as its printable letter-hex form."""
        parts = [self.length.to_bytes(WORD_BYTES, "big").hex()]
        for offset in range(0, len(self.words), WORD_BYTES):
            # Stored little-endian, written big-endian
            parts.append(self.words[offset:offset + WORD_BYTES][::-1].hex())
        return "".join(parts).translate(_TO_TEXT)

    @classmethod
    def from_text(cls, text: str) -> "BitVector":
        """
        Rebuild a vector from its letter-hex form.

        Args:
            text: Output of ``to_text``

        Returns:
            Reconstructed BitVector

        Raises:
            CodecError: If the text is not a well-formed vector
        """
        if len(text) < WORD_CHARS or len(text) % WORD_CHARS:
            raise CodecError(
                f"bit vector text must be a non-empty multiple of {WORD_CHARS} "
                f"characters, got {len(text)}"
            )
        if text.strip(TEXT_ALPHABET):
            raise CodecError("bit vector text contains characters outside a-p")

        raw = bytes.fromhex(text.translate(_FROM_TEXT))
        length = int.from_bytes(raw[:WORD_BYTES], "big")
        body = raw[WORD_BYTES:]

        expected_words = _word_count(length)
        if len(body) != expected_words * WORD_BYTES:
            raise CodecError(
                f"bit vector of length {length} needs {expected_words} words, "
                f"got {len(body) // WORD_BYTES}"
            )

        vector = cls(0)
        vector.length = length
        vector.words = bytearray(
            b"".join(body[i:i + WORD_BYTES][::-1] for i in range(0, len(body), WORD_BYTES))
        )

        tail_bits = expected_words * WORD_BITS - length
        if tail_bits and vector._tail_is_dirty():
            raise CodecError(f"bits set beyond length {length}")

        return vector

    def _tail_is_dirty(self) -> bool:
        for index in range(self.length, len(self.words) * 8):
            if self.words[index >> 3] & (1 << (index & 7)):
                return True
        return False

    def __repr__(self) -> str:
        return f"BitVector(length={self.length}, set={self.count()})"
