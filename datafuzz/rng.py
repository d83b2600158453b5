"""
Deterministic random streams for the fuzzer.

Every generator in the package draws from a numpy ``Generator`` built by
``rng_from_seed``. The same seed yields the same draw sequence on every run
and in every process, which is what makes a failing case reproducible from
its seed alone.
"""

from typing import List, Sequence, TypeVar

import numpy as np

T = TypeVar("T")

SEED_MASK = (1 << 64) - 1
INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1
LIMB_BITS = 32


def rng_from_seed(seed: int) -> np.random.Generator:
    """Build a PCG64 generator from a 64-bit seed"""
    return np.random.Generator(np.random.PCG64(seed & SEED_MASK))


def derive_seed(base: int, offset: int) -> int:
    """Add ``offset`` to ``base`` with 64-bit wrap-around"""
    return (base + offset) & SEED_MASK


def next_seed(rng: np.random.Generator) -> int:
    """Draw a fresh 64-bit seed for a child generator"""
    return int(rng.integers(0, SEED_MASK, endpoint=True, dtype=np.uint64))


def random_bool(rng: np.random.Generator, probability: float) -> bool:
    if probability <= 0.0:
        return False
    if probability >= 1.0:
        return True
    return bool(rng.random() < probability)


def random_range(rng: np.random.Generator, low: int, high: int) -> int:
    """
    Uniform integer in ``[low, high]`` (both ends included).

    Bounds outside int64 (wide decimals) are drawn from 32-bit limbs instead
    of ``Generator.integers``, which only accepts int64 bounds.
    """
    if high < low:
        raise ValueError(f"Empty range [{low}, {high}]")
    if INT64_MIN <= low and high <= INT64_MAX:
        return int(rng.integers(low, high, endpoint=True))
    return low + _random_below_or_equal(rng, high - low)


def _random_below_or_equal(rng: np.random.Generator, span: int) -> int:
    """Uniform integer in ``[0, span]`` of any size, by rejection sampling"""
    bits = span.bit_length()
    limbs = (bits + LIMB_BITS - 1) // LIMB_BITS
    mask = (1 << bits) - 1
    while True:
        value = 0
        for limb in rng.integers(0, 1 << LIMB_BITS, size=limbs, dtype=np.uint64):
            value = (value << LIMB_BITS) | int(limb)
        value &= mask
        if value <= span:
            return value


def random_float(rng: np.random.Generator, low: float, high: float) -> float:
    if high < low:
        raise ValueError(f"Empty range [{low}, {high}]")
    return float(rng.uniform(low, high))


def choose(rng: np.random.Generator, items: Sequence[T]) -> T:
    if not items:
        raise ValueError("Cannot choose from an empty sequence")
    return items[int(rng.integers(0, len(items)))]


def sample_without_replacement(rng: np.random.Generator, items: Sequence[T], k: int) -> List[T]:
    """Pick ``k`` distinct items, in draw order"""
    if k > len(items):
        raise ValueError(f"Cannot sample {k} items from {len(items)}")
    indices = rng.choice(len(items), size=k, replace=False)
    return [items[int(i)] for i in indices]
