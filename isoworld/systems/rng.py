"""Domain-separated deterministic RNG using xxhash.

Every value is a pure function of (WorldSeed, Domain, x, y), so a chunk
generated twice from the same seed is identical tile for tile, regardless
of the order chunks are visited in.
"""

from __future__ import annotations

import struct

import xxhash

from isoworld.core.enums import Domain


class DeterministicRNG:
    """Stateless coordinate-keyed pseudo-random number generator."""

    __slots__ = ("_seed",)

    _MAX_UINT64 = (1 << 64) - 1

    def __init__(self, seed: int) -> None:
        self._seed = seed

    @property
    def seed(self) -> int:
        return self._seed

    def _hash(self, domain: Domain, x: int, y: int) -> int:
        payload = struct.pack("<qiqq", self._seed, domain.value, x, y)
        return xxhash.xxh64(payload).intdigest()

    def next_float(self, domain: Domain, x: int, y: int) -> float:
        """Return a deterministic float in [0.0, 1.0)."""
        return self._hash(domain, x, y) / (self._MAX_UINT64 + 1)

    def next_int(self, domain: Domain, x: int, y: int, low: int, high: int) -> int:
        """Return a deterministic integer in [low, high] inclusive."""
        f = self.next_float(domain, x, y)
        return low + int(f * (high - low + 1))
