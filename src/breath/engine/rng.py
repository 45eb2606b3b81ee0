"""Seeded 32-bit generators used for random deck construction.

Both generators reproduce the bit patterns of their usual JavaScript
renditions so a string or numeric seed yields the same deck everywhere.
"""

from __future__ import annotations

import random
from typing import Callable, MutableSequence, TypeVar

T = TypeVar("T")

Rng = Callable[[], float]

_MASK = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK


def _utf16_units(text: str) -> list[int]:
    raw = text.encode("utf-16-le")
    return [raw[i] | (raw[i + 1] << 8) for i in range(0, len(raw), 2)]


def xmur3(text: str) -> Callable[[], int]:
    """32-bit string hash; each call yields the next unsigned 32-bit value."""
    units = _utf16_units(text)
    h = (1779033703 ^ len(units)) & _MASK
    for u in units:
        h = _imul(h ^ u, 3432918353)
        h = ((h << 13) | (h >> 19)) & _MASK

    def next_hash() -> int:
        nonlocal h
        h = _imul(h ^ (h >> 16), 2246822507)
        h = _imul(h ^ (h >> 13), 3266489909)
        h ^= h >> 16
        return h

    return next_hash


def mulberry32(seed: int) -> Rng:
    t = seed & _MASK

    def next_float() -> float:
        nonlocal t
        t = (t + 0x6D2B79F5) & _MASK
        r = _imul(t ^ (t >> 15), 1 | t)
        r = (r ^ ((r + _imul(r ^ (r >> 7), r | 61)) & _MASK)) & _MASK
        return (r ^ (r >> 14)) / 4294967296

    return next_float


def seed_to_rng(seed: str | int | None) -> Rng:
    """Build a float generator in [0, 1) from a string or integer seed.

    ``None`` gives an unseeded generator.
    """
    if seed is None:
        return random.Random().random
    if isinstance(seed, bool) or not isinstance(seed, (int, str)):
        raise TypeError(f"Unsupported seed type: {type(seed).__name__}")
    if isinstance(seed, int):
        return mulberry32(seed)
    return mulberry32(xmur3(seed)())


def shuffle(items: MutableSequence[T], rng: Rng) -> None:
    """Fisher-Yates shuffle in place, driven by ``rng``."""
    for i in range(len(items) - 1, 0, -1):
        j = int(rng() * (i + 1))
        items[i], items[j] = items[j], items[i]
