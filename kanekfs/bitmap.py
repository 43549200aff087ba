"""Bit maps used to track free and used blocks, slots and super inodes.

Bits are numbered from the least significant bit of the first byte: bit
``n`` lives in byte ``n // 8`` at position ``n % 8``.
"""

from __future__ import annotations

import enum

__all__ = [
    "GapStatus",
    "GrowResult",
    "Bitmap",
    "byte_set_bits",
    "byte_get_bit",
    "byte_count_bits",
    "byte_find_gap",
]

_BITS_PER_BYTE = 8


class GapStatus(enum.Enum):
    """Outcome of searching a single byte for a run of clear bits."""

    FOUND = "found"
    """A run of the requested length lies inside the byte."""

    NONE = "none"
    """The byte ends with a set bit: no run reaches the end of the byte."""

    PARTIAL = "partial"
    """A run reaches the end of the byte but is shorter than requested."""


class GrowResult(enum.IntEnum):
    """Whether a run of set bits can be extended in place."""

    CAN_GROW = 0
    FREE_PREFIX_TOO_SHORT = -2
    NO_ROOM = -3
    FRAGMENTED = -5


def _check_bit_index(bit: int) -> None:
    if not 0 <= bit < _BITS_PER_BYTE:
        raise ValueError(f"bit index {bit} is outside a byte")


def _mask(start: int, stop: int) -> int:
    if stop <= start:
        return 0
    return ((1 << (stop - start)) - 1) << start


def byte_set_bits(start: int, numbits: int, byte: int, set_bits: bool) -> int:
    """Set or clear ``numbits`` bits of ``byte`` starting at bit ``start``.

    Bits beyond the end of the byte are ignored. Returns the updated byte.
    """
    _check_bit_index(start)
    if numbits < 0:
        raise ValueError("numbits must not be negative")
    mask = _mask(start, min(start + numbits, _BITS_PER_BYTE))
    if set_bits:
        return (byte | mask) & 0xFF
    return byte & ~mask & 0xFF


def byte_get_bit(byte: int, bit: int) -> bool:
    """Return the state of one bit of ``byte``."""
    _check_bit_index(bit)
    return bool(byte >> bit & 1)


def byte_count_bits(start: int, numbits: int, byte: int, set_bits: bool) -> int:
    """Count contiguous bits equal to ``set_bits`` from ``start``.

    At most ``numbits`` bits are examined, and never past the end of the byte.
    """
    _check_bit_index(start)
    if numbits < 0:
        raise ValueError("numbits must not be negative")
    wanted = bool(set_bits)
    count = 0
    for bit in range(start, min(start + numbits, _BITS_PER_BYTE)):
        if bool(byte >> bit & 1) != wanted:
            break
        count += 1
    return count


def byte_find_gap(
    start: int, numbits: int, byte: int
) -> tuple[GapStatus, int | None, int]:
    """Look for ``numbits`` contiguous clear bits in ``byte`` from ``start``.

    Returns ``(status, offset, count)``. With ``FOUND`` the offset is where the
    run starts and count equals ``numbits``. With ``PARTIAL`` the offset is
    where the trailing run of clear bits starts and count is its length. With
    ``NONE`` the offset is ``None`` and count is zero.
    """
    if start < 0:
        raise ValueError("start must not be negative")
    run = 0
    run_start = start
    for bit in range(start, _BITS_PER_BYTE):
        if byte >> bit & 1:
            run = 0
            run_start = bit + 1
            continue
        run += 1
        if run == numbits:
            return GapStatus.FOUND, run_start, run
    if run == 0:
        return GapStatus.NONE, None, 0
    return GapStatus.PARTIAL, run_start, run


class Bitmap:
    """A fixed-size bit map over a mutable byte buffer."""

    def __init__(self, data: bytes | bytearray, total_bits: int | None = None):
        self.data = data if isinstance(data, bytearray) else bytearray(data)
        capacity = len(self.data) * _BITS_PER_BYTE
        if total_bits is None:
            total_bits = capacity
        if total_bits < 0:
            raise ValueError("total_bits must not be negative")
        if total_bits > capacity:
            raise ValueError(
                f"{total_bits} bits do not fit in {len(self.data)} bytes"
            )
        self.total_bits = total_bits

    def __len__(self) -> int:
        return self.total_bits

    def _check_address(self, address: int) -> None:
        if not 0 <= address < self.total_bits:
            raise IndexError(
                f"bit {address} is outside a map of {self.total_bits} bits"
            )

    def _check_span(self, address: int, count: int) -> None:
        if count < 0:
            raise ValueError("count must not be negative")
        if address < 0 or address + count > self.total_bits:
            raise IndexError(
                f"bits [{address}, {address + count}) are outside a map of "
                f"{self.total_bits} bits"
            )

    def set_bit(self, address: int, value: bool) -> None:
        """Set or clear a single bit."""
        self._check_address(address)
        index, offset = divmod(address, _BITS_PER_BYTE)
        self.data[index] = byte_set_bits(offset, 1, self.data[index], value)

    def get_bit(self, address: int) -> bool:
        """Return the state of a single bit."""
        self._check_address(address)
        index, offset = divmod(address, _BITS_PER_BYTE)
        return byte_get_bit(self.data[index], offset)

    def set_extent(self, address: int, count: int, value: bool) -> None:
        """Set or clear ``count`` contiguous bits starting at ``address``."""
        self._check_span(address, count)
        fill = 0xFF if value else 0x00
        end = address + count
        pos = address
        while pos < end:
            index, offset = divmod(pos, _BITS_PER_BYTE)
            if offset == 0 and end - pos >= _BITS_PER_BYTE:
                nbytes = (end - pos) // _BITS_PER_BYTE
                self.data[index:index + nbytes] = bytes([fill]) * nbytes
                pos += nbytes * _BITS_PER_BYTE
            else:
                span = min(_BITS_PER_BYTE - offset, end - pos)
                self.data[index] = byte_set_bits(
                    offset, span, self.data[index], value
                )
                pos += span

    def count(self, address: int, count: int, value: bool) -> int:
        """Count contiguous bits equal to ``value`` starting at ``address``.

        At most ``count`` bits are examined.
        """
        self._check_address(address)
        self._check_span(address, count)
        wanted = bool(value)
        full = 0xFF if wanted else 0x00
        end = address + count
        pos = address
        while pos < end:
            index, offset = divmod(pos, _BITS_PER_BYTE)
            byte = self.data[index]
            if offset == 0 and end - pos >= _BITS_PER_BYTE and byte == full:
                pos += _BITS_PER_BYTE
                continue
            span = min(_BITS_PER_BYTE - offset, end - pos)
            run = byte_count_bits(offset, span, byte, wanted)
            pos += run
            if run < span:
                break
        return pos - address

    def find(self, address: int, count: int, gap_size: int) -> int | None:
        """Find the first run of ``gap_size`` clear bits.

        The search covers ``count`` bits from ``address``, cut short at the
        end of the map. Returns the bit where the run starts, or ``None``.
        """
        self._check_address(address)
        if gap_size <= 0:
            raise ValueError("gap_size must be positive")
        if count <= 0:
            raise ValueError("count must be positive")
        if gap_size > count:
            raise ValueError("gap_size must not exceed count")
        end = min(address + count, self.total_bits)
        pos = address
        while end - pos >= gap_size:
            pos += self.count(pos, end - pos, True)
            if end - pos < gap_size:
                break
            free = self.count(pos, end - pos, False)
            if free >= gap_size:
                return pos
            pos += free
        return None

    def extent_can_grow(self, address: int, count: int) -> GrowResult:
        """Tell whether the ``count`` bits at ``address`` can become a run of set bits.

        The span may start with bits already set; it can grow when everything
        after those leading set bits is clear.
        """
        self._check_address(address)
        if count <= 0:
            raise ValueError("count must be positive")
        self._check_span(address, count)

        zeros = self.count(address, count, False)
        if zeros > 0:
            if zeros == count:
                return GrowResult.CAN_GROW
            return GrowResult.FREE_PREFIX_TOO_SHORT

        ones = self.count(address, count, True)
        if ones == count:
            return GrowResult.NO_ROOM

        expected_zeros = count - ones
        if self.count(address + ones, expected_zeros, False) == expected_zeros:
            return GrowResult.CAN_GROW
        return GrowResult.FRAGMENTED