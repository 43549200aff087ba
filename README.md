# kanekfs

Tools for the on-disk format of the Kanek graph file system (KFS): bit
maps for tracking free blocks, slots and super inodes, the packed records
stored on disk, and a checker that reads and verifies a KFS superblock.

## Installation

```
pip install .
```

Install the test extra to run the test suite:

```
pip install ".[test]"
pytest
```

## Command line

Check a KFS image file or block device:

```
kfs-verify disk.img
kfs-verify -v disk.img
kfs-verify -v -x disk.img
```

- `-v`, `--verbose` prints a description of the superblock: sizes, flags,
  times, the super inode, slot and block map tables and the block ranges
  they occupy.
- `-x`, `--extra` also reads the super inode table, the slots table and
  the three bit map extents the superblock points to, checks their magic
  numbers, and checks that the last record of each table carries the
  expected ID. With `-v` the results of these checks are printed too.

The exit status is 0 when the image is valid. Otherwise an `ERROR:` line
goes to standard error and the exit status is 1: the file is missing, is
neither a regular file nor a block device, is too short, or does not hold
a valid KFS superblock or tables.

## Library

### Bit maps (`kanekfs.bitmap`)

`Bitmap(data, total_bits=None)` wraps a byte buffer (copied into a
`bytearray` unless it already is one) holding `total_bits` bits; by
default every bit of the buffer is used. Bit `n` is bit `n % 8` of byte
`n // 8`.

```python
from kanekfs.bitmap import Bitmap

bm = Bitmap(bytearray(16), 128)
bm.set_extent(3, 10, True)     # set bits 3..12
bm.get_bit(5)                  # True
bm.count(0, 8, False)          # 3: clear bits from bit 0, at most 8 looked at
bm.find(0, 128, 4)             # 13: first run of 4 clear bits, or None
bm.extent_can_grow(3, 20)      # GrowResult.CAN_GROW
```

- `set_bit(address, value)` and `get_bit(address)` work on one bit.
- `set_extent(address, count, value)` sets or clears a run of bits.
- `count(address, count, value)` counts contiguous bits equal to `value`.
- `find(address, count, gap_size)` searches `count` bits from `address`
  (cut short at the end of the map) and returns where the first run of
  `gap_size` clear bits starts, or `None`.
- `extent_can_grow(address, count)` tells whether the span can become a
  run of set bits in place, returning a `GrowResult`: `CAN_GROW`,
  `FREE_PREFIX_TOO_SHORT`, `NO_ROOM` or `FRAGMENTED`.

Addresses outside the map raise `IndexError`; invalid counts or sizes
raise `ValueError`.

Byte-level helpers are available as well: `byte_set_bits`,
`byte_get_bit`, `byte_count_bits` and `byte_find_gap`. The last returns a
`(GapStatus, offset, count)` tuple, where `GapStatus` is `FOUND`, `NONE`
or `PARTIAL`.

### Disk structures (`kanekfs.disk`)

Dataclasses for the packed little-endian records: `FileHeader`,
`ExtentHeader`, `Extent`, `Slot`, `SlotRecord`, `Edge`, `SuperInode`,
`Table` and `Superblock`. Each has `pack()` returning bytes and an
`unpack(data)` class method that reads one back; fixed-size records have
a `SIZE` class attribute, and `SlotRecord` and `Edge` compute their
padded `rec_len`. Short or malformed input raises `ValueError`.

```python
from kanekfs.disk import Extent

raw = Extent(block_addr=10, block_size=4).pack()
Extent.unpack(raw).last_block()   # 13
```

The module also defines the format's magic numbers and flag constants,
such as `KFS_MAGIC`, `KFS_SINODE_TABLE_MAGIC` and `KFS_IS_MOUNTED`.

### Superblock (`kanekfs.superblock`)

```python
from kanekfs.superblock import read_superblock, verify, VerificationError

sb = read_superblock("disk.img")
try:
    report = verify("disk.img", True)
    print("\n".join(report.lines()))
except VerificationError as err:
    print("invalid:", err)
```

- `read_superblock(path)` returns the `Superblock` in block zero.
- `verify(path, extra_verification=False)` returns a `VerifyReport` with
  the image `path`, its `size`, its `superblock` and the `checks` made;
  `lines()` gives the full text report.
- `format_superblock(superblock, size)` returns the description lines the
  command prints.
- `read_block(stream, address, blocksize)` reads one block from an open
  binary stream.

Every failure raises `VerificationError`.

### Other helpers

- `kanekfs.krand.KRand64(seed=1)` is a deterministic 64-bit pseudo-random
  generator: `next(maximum=0)` draws a value (below `maximum` when it is
  positive), `seed(value)` resets it and `state` shows the counter.
- `kanekfs.text.trim(text)` strips leading and trailing ASCII whitespace.

## What this package does not do

The package only reads and checks images. It does not create a KFS file
system, mount one, cache or write blocks, or manage slots, super inodes
and edges on a live image.