"""A small deterministic 64-bit pseudo random number generator.

Each draw is computed from an internal counter, which is then advanced by
one, so the sequence is fully determined by the seed.
"""

from __future__ import annotations

__all__ = ["KRand64"]

_MASK64 = (1 << 64) - 1
_MASK32 = (1 << 32) - 1

_A = 0xBADBABE
_B = 0xC007C0FFEE
_C = 0xDEADBEEF
_AC = 0xB00
_LOW_OFFSET = 0xBADD0D0
_HIGH_OFFSET = 0xC007DAD


def _mul(x: int, y: int) -> int:
    return (x * y) & _MASK64


class KRand64:
    """Counter based generator of unsigned 64-bit values."""

    def __init__(self, seed: int = 1):
        self._state = 0
        self.seed(seed)

    @property
    def state(self) -> int:
        """The counter the next draw is computed from."""
        return self._state

    def seed(self, value: int) -> None:
        """Reset the counter to ``value`` (taken modulo 2**64)."""
        if value < 0:
            raise ValueError("seed must not be negative")
        self._state = value & _MASK64

    def next(self, maximum: int = 0) -> int:
        """Draw a value; with ``maximum`` > 0 the value is below ``maximum``."""
        if maximum < 0:
            raise ValueError("maximum must not be negative")
        seed = self._state
        self._state = (seed + 1) & _MASK64

        low = (seed - _LOW_OFFSET) & _MASK64
        mid = seed
        high = (seed + _HIGH_OFFSET) & _MASK64

        low = (
            (_mul(mid, _C) >> 32)
            + (_mul(high, _B) >> 32)
            + _mul(low, _C)
            + _mul(mid, _B)
            + _mul(high, _A)
        ) & _MASK64
        mid = ((_mul(high, _C) >> 32) + _mul(mid, _C) + _mul(high, _B)) & _MASK64
        high = (_mul(high, _C) + _AC) & _MASK64

        mid = (mid + (high >> 32)) & _MASK64
        low = (low + (mid >> 32)) & _MASK64

        value = ((low & _MASK32) << 32) | (mid & _MASK32)
        if maximum > 0:
            value %= maximum
        return value