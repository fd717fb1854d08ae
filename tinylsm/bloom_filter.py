"""Bloom filter with a deterministic hash and a compact byte encoding."""

from __future__ import annotations

import hashlib
import math
import struct

from .config import get_config

# expected_elements, false_positive_rate, num_bits, num_hashes
_HEADER = struct.Struct("<QdQQ")


def _hash64(text: str) -> int:
    digest = hashlib.blake2b(text.encode("utf-8"), digest_size=8).digest()
    return int.from_bytes(digest, "little")


class BloomFilter:
    """Set membership test that may report false positives but never false negatives."""

    def __init__(
        self,
        expected_elements: int | None = None,
        false_positive_rate: float | None = None,
        num_bits: int | None = None,
    ):
        config = get_config()
        if expected_elements is None:
            expected_elements = config.bloom_filter_expected_size
        if false_positive_rate is None:
            false_positive_rate = config.bloom_filter_expected_error_rate
        if expected_elements <= 0:
            raise ValueError("expected_elements must be positive")
        if not 0.0 < false_positive_rate < 1.0:
            raise ValueError("false_positive_rate must lie strictly between 0 and 1")
        if num_bits is None:
            num_bits = math.ceil(
                -expected_elements * math.log(false_positive_rate) / math.log(2) ** 2
            )
        if num_bits <= 0:
            raise ValueError("num_bits must be positive")
        self._expected_elements = expected_elements
        self._false_positive_rate = float(false_positive_rate)
        self._num_bits = num_bits
        self._num_hashes = max(1, math.ceil(num_bits / expected_elements * math.log(2)))
        self._bits = bytearray((num_bits + 7) // 8)

    @property
    def expected_elements(self) -> int:
        return self._expected_elements

    @property
    def false_positive_rate(self) -> float:
        return self._false_positive_rate

    @property
    def num_bits(self) -> int:
        return self._num_bits

    @property
    def num_hashes(self) -> int:
        return self._num_hashes

    def _positions(self, key: str):
        h1 = _hash64(key)
        h2 = _hash64(key + "salt")
        for idx in range(self._num_hashes):
            yield (h1 + idx * h2) % self._num_bits

    def add(self, key: str) -> None:
        for pos in self._positions(key):
            self._bits[pos >> 3] |= 1 << (pos & 7)

    def possibly_contains(self, key: str) -> bool:
        """False means ``key`` was never added; True means it may have been."""
        return all(self._bits[pos >> 3] & (1 << (pos & 7)) for pos in self._positions(key))

    def __contains__(self, key: str) -> bool:
        return self.possibly_contains(key)

    def clear(self) -> None:
        self._bits = bytearray(len(self._bits))

    def encode(self) -> bytes:
        header = _HEADER.pack(
            self._expected_elements,
            self._false_positive_rate,
            self._num_bits,
            self._num_hashes,
        )
        return header + bytes(self._bits)

    @classmethod
    def decode(cls, data: bytes) -> BloomFilter:
        """Rebuild a filter from the bytes produced by :meth:`encode`."""
        if len(data) < _HEADER.size:
            raise ValueError("bloom filter data is truncated")
        expected, rate, num_bits, num_hashes = _HEADER.unpack_from(data)
        bits = bytes(data[_HEADER.size :])
        if num_bits == 0 or len(bits) != (num_bits + 7) // 8:
            raise ValueError("bloom filter bit array has the wrong length")
        if num_hashes == 0:
            raise ValueError("bloom filter must use at least one hash")
        bf = cls(expected, rate, num_bits)
        bf._num_hashes = num_hashes
        bf._bits = bytearray(bits)
        return bf