"""
Tests for the run-length codec.
"""
import pytest

from positron_bloom import rle
from positron_bloom.bitset import BitVector
from positron_bloom.errors import CodecError


class TestEncode:
    """Test cases for encoding."""

    def test_basic_runs(self):
        """Test the canonical example."""
        assert rle.encode("aaabbc") == "a3b2c1"

    def test_single_character_runs(self):
        """Test that runs of one keep their count."""
        assert rle.encode("abc") == "a1b1c1"

    def test_multi_digit_counts(self):
        """Test runs longer than nine."""
        assert rle.encode("a" * 12 + "b") == "a12b1"

    def test_empty(self):
        """Test that empty input encodes to empty output."""
        assert rle.encode("") == ""

    def test_rejects_digits(self):
        """Test that digits cannot be encoded unambiguously."""
        with pytest.raises(CodecError):
            rle.encode("a1")


class TestDecode:
    """Test cases for decoding."""

    def test_basic_runs(self):
        """Test the canonical example."""
        assert rle.decode("a3b2c1") == "aaabbc"

    def test_empty(self):
        """Test that empty input decodes to empty output."""
        assert rle.decode("") == ""

    def test_multi_digit_counts(self):
        """Test counts with several digits."""
        assert rle.decode("p10a2") == "p" * 10 + "aa"

    @pytest.mark.parametrize("encoded", ["a", "3a", "a0", "a01", "a1a1", "a1b", "12"])
    def test_malformed(self, encoded):
        """Test that non-canonical input is rejected."""
        with pytest.raises(CodecError):
            rle.decode(encoded)

    def test_round_trip_on_vector_text(self):
        """Test decode(encode(s)) == s for bit vector text."""
        vector = BitVector(4096)
        for index in (1, 2, 3, 500, 4000, 4095):
            vector.set(index)
        text = vector.to_text()

        encoded = rle.encode(text)
        assert rle.decode(encoded) == text
        assert len(encoded) < len(text)

    def test_max_length_allows_exact_fit(self):
        """Test that output of exactly max_length decodes."""
        assert rle.decode("a3b2", max_length=5) == "aaabb"

    @pytest.mark.parametrize("encoded", ["a6", "a3b3", "a200000000", "a" + "9" * 5000])
    def test_max_length_exceeded(self, encoded):
        """Test that oversized runs are rejected before expansion."""
        with pytest.raises(CodecError):
            rle.decode(encoded, max_length=5)
