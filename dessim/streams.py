# Copyright (c) 2025
# MIT License
# -----------------------------------------------------------------------------
# streams.py
# -----------------------------------------------------------------------------
# Purpose:
#   Seeded random number streams consumed by model processes: uniform
#   integers (ship sizes), exponential (inter-arrival times) and normal
#   (service durations, optionally clamped at zero).
#
# Design notes:
#   - One random.Random per stream. Stream seeds are derived from a base
#     seed and the stream name with blake2s, which is stable across
#     interpreter sessions (str hash() is salted per process).
#   - Adding a stream never shifts the samples of another one, so
#     replications with common random numbers stay comparable.
#
# Usage:
#   streams = StreamFactory(seed=3)
#   size = streams.stream("ship size").sample_uniform_int(1, 3)
# -----------------------------------------------------------------------------

from __future__ import annotations
import hashlib
import random
import struct
from typing import Dict


def derive_seed(base_seed: int, name: str) -> int:
    digest = hashlib.blake2s(f"{base_seed}:{name}".encode("utf-8"), digest_size=8).digest()
    return struct.unpack(">Q", digest)[0]


class RandomStream:
    """A named, reproducible source of samples."""
    def __init__(self, name: str, seed: int):
        self.name = name
        self.seed = seed
        self._rng = random.Random(seed)

    def __repr__(self):
        return f"RandomStream({self.name!r}, seed={self.seed})"

    def reset(self):
        self._rng.seed(self.seed)

    def sample_uniform_int(self, lo: int, hi: int) -> int:
        """Uniform integer in [lo, hi], both ends included."""
        if lo > hi:
            raise ValueError(f"{self.name}: empty range [{lo}, {hi}]")
        return self._rng.randint(lo, hi)

    def sample_exponential(self, rate: float) -> float:
        if rate <= 0:
            raise ValueError(f"{self.name}: exponential rate must be > 0, got {rate}")
        return self._rng.expovariate(rate)

    def sample_normal(self, mean: float, stdev: float, non_negative: bool = False) -> float:
        if stdev < 0:
            raise ValueError(f"{self.name}: stdev must be >= 0, got {stdev}")
        x = self._rng.gauss(mean, stdev)
        if non_negative and x < 0.0:
            return 0.0
        return x


class StreamFactory:
    """Hands out one RandomStream per name, all derived from ``base_seed``."""
    def __init__(self, base_seed: int = 0):
        self.base_seed = int(base_seed)
        self._streams: Dict[str, RandomStream] = {}

    def stream(self, name: str) -> RandomStream:
        if name not in self._streams:
            self._streams[name] = RandomStream(name, derive_seed(self.base_seed, name))
        return self._streams[name]
