"""Reading and checking the superblock of a file system image."""

from __future__ import annotations

import argparse
import os
import stat
import sys
from dataclasses import dataclass, field
from datetime import datetime
from typing import BinaryIO

from .disk import (
    KFS_BLOCKMAP_MAGIC,
    KFS_MAGIC,
    KFS_SINODE_BITMAP_MAGIC,
    KFS_SINODE_TABLE_MAGIC,
    KFS_SLOTS_BITMAP_MAGIC,
    KFS_SLOTS_TABLE_MAGIC,
    MIB,
    Extent,
    ExtentHeader,
    Slot,
    SuperInode,
    Superblock,
)

__all__ = [
    "VerificationError",
    "VerifyReport",
    "read_block",
    "read_superblock",
    "verify",
    "format_superblock",
    "main",
]

_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class VerificationError(Exception):
    """Raised when an image is missing, unreadable or inconsistent."""


def read_block(stream: BinaryIO, address: int, blocksize: int) -> bytes:
    """Read block number ``address`` of ``blocksize`` bytes from ``stream``."""
    if blocksize <= 0:
        raise ValueError("blocksize must be positive")
    if address < 0:
        raise ValueError("block address must not be negative")
    stream.seek(address * blocksize)
    data = stream.read(blocksize)
    if len(data) < blocksize:
        raise VerificationError(
            f"short read of block {address}: {len(data)} of {blocksize} bytes"
        )
    return data


def _device_size(path: str | os.PathLike) -> int:
    with open(path, "rb") as stream:
        return stream.seek(0, os.SEEK_END)


def _image_size(path: str | os.PathLike) -> int:
    try:
        info = os.stat(path)
    except FileNotFoundError as exc:
        raise VerificationError("File does not exist") from exc
    except OSError as exc:
        raise VerificationError(f"Could not stat file: {exc}") from exc
    if stat.S_ISREG(info.st_mode):
        return info.st_size
    if stat.S_ISBLK(info.st_mode):
        return _device_size(path)
    raise VerificationError("File is not a regular file nor a block device.")


def _superblock_from(stream: BinaryIO) -> Superblock:
    superblock = Superblock.unpack(read_block(stream, 0, Superblock.SIZE))
    if superblock.magic != KFS_MAGIC:
        raise VerificationError("Not a KFS file system.")
    return superblock


def read_superblock(path: str | os.PathLike) -> Superblock:
    """Read and return the superblock stored in block zero of ``path``."""
    try:
        with open(path, "rb") as stream:
            return _superblock_from(stream)
    except FileNotFoundError as exc:
        raise VerificationError("File does not exist") from exc
    except OSError as exc:
        raise VerificationError(f"Could not open file: {exc}") from exc


def _format_time(value: int) -> str:
    try:
        return datetime.fromtimestamp(value).strftime(_TIME_FORMAT)
    except (OverflowError, OSError, ValueError):
        return str(value)


def _block_range(extent: Extent) -> str:
    return f"[{extent.block_addr}-{extent.block_addr + extent.block_size - 1}]"


def format_superblock(superblock: Superblock, size: int) -> list[str]:
    """Describe ``superblock`` of an image of ``size`` bytes, one line each."""
    sb = superblock
    si, sl, bm = sb.si_table, sb.slot_table, sb.blockmap
    return [
        f"File Size: {size // MIB} MBytes",
        f"KFS Magic: 0x{sb.magic:x}",
        f"KFS Version: {sb.file_header.version}",
        f"KFS Flags: 0x{sb.flags:x}",
        f"KFS Blocksize: {sb.blocksize}",
        f"KFS root super inode: {sb.root_super_inode}",
        f"KFS Ctime: {_format_time(sb.c_time)}",
        f"KFS Atime: {_format_time(sb.a_time)}",
        f"KFS Mtime: {_format_time(sb.m_time)}",
        "SUPER INODES:",
        f"    NumberOfSuperInodes: {si.capacity}",
        f"    SuperInodesInUse: {si.in_use}",
        f"    SuperInodesTableAddress: {si.table_extent.block_addr}",
        f"    SuperInodesTableBlocksNum: {si.table_extent.block_size}",
        f"    SuperInodesMapAddress: {si.bitmap_extent.block_addr}",
        f"    SuperInodesMapBlocksNum: {si.bitmap_extent.block_size}",
        "SLOTS:",
        f"    NumberOfSlots: {sl.capacity}",
        f"    SlotsInUse: {sl.in_use}",
        f"    SlotsTableAddress: {sl.table_extent.block_addr}",
        f"    SlotsTableBlocksNum: {sl.table_extent.block_size}",
        f"    SlotsMapAddress: {sl.bitmap_extent.block_addr}",
        f"    SlotsMapBlocksNum: {sl.bitmap_extent.block_size}",
        "KFS Bitmap:",
        f"    KFSBlockMapAddress: {bm.bitmap_extent.block_addr}",
        f"    KFSBlockMapBlocksNum: {bm.bitmap_extent.block_size}",
        "KFS BlocksRange:",
        "    SuperBlock: [0]",
        f"    SuperInodesTable: {_block_range(si.table_extent)}",
        f"    SlotsTable: {_block_range(sl.table_extent)}",
        f"    SuperInodesMap: {_block_range(si.bitmap_extent)}",
        f"    SlotsMap: {_block_range(sl.bitmap_extent)}",
        f"    KFSBlockMap: {_block_range(bm.bitmap_extent)}",
    ]


@dataclass
class VerifyReport:
    """What a verification found: the image size, its superblock and checks."""

    path: str
    size: int
    superblock: Superblock
    checks: list[str] = field(default_factory=list)

    def lines(self) -> list[str]:
        """The full report, as printed in verbose mode."""
        return format_superblock(self.superblock, self.size) + self.checks


def _header_lines(title: str, header: ExtentHeader, capacity: str, used: str) -> list[str]:
    return [
        title,
        f"    -Magic : 0x{header.magic:x}",
        f"    -{capacity}: {header.entries_capacity}",
        f"    -{used}: {header.entries_in_use}",
        f"    -Flags: 0x{header.flags:x}",
    ]


def _read_header(
    stream: BinaryIO, address: int, blocksize: int, magic: int, error: str
) -> ExtentHeader:
    header = ExtentHeader.unpack(read_block(stream, address, blocksize))
    if header.magic != magic:
        raise VerificationError(error)
    return header


def _last_record(stream: BinaryIO, extent: Extent, blocksize: int, size: int) -> bytes:
    per_block = blocksize // size
    if per_block == 0:
        raise VerificationError(
            f"Block size {blocksize} cannot hold a record of {size} bytes"
        )
    block = read_block(stream, extent.block_addr + extent.block_size - 1, blocksize)
    offset = (per_block - 1) * size
    return block[offset:offset + size]


def _check_tables(stream: BinaryIO, sb: Superblock) -> list[str]:
    blocksize = sb.blocksize
    if blocksize <= 0:
        raise VerificationError("Superblock has no valid block size")
    checks = ["", "Checking KFS Tables extents"]

    si_extent = sb.si_table.table_extent
    checks.append(f"-Reading Super Inodes Table Extent in: {si_extent.block_addr}")
    header = _read_header(
        stream, si_extent.block_addr, blocksize, KFS_SINODE_TABLE_MAGIC,
        "KFS super inode table not detected. Abort.",
    )
    checks += _header_lines(
        "-SuperInodesTable extent", header, "SuperInodesCapacity", "SuperInodesInUse"
    )
    last = si_extent.block_addr + si_extent.block_size - 1
    checks.append(f"    -Verifying last block of super inode extent in: {last}")
    inode = SuperInode.unpack(_last_record(stream, si_extent, blocksize, SuperInode.SIZE))
    if inode.si_id != sb.si_table.capacity - 1:
        raise VerificationError(
            "Unexpected, the super inode ID is not fine; "
            f"last inode: [{inode.si_id}-0x{inode.si_id:x}]"
        )
    checks.append(
        f"    -All seems to be fine, last inode: [{inode.si_id}-0x{inode.si_id:x}]"
    )

    sl_extent = sb.slot_table.table_extent
    checks.append(f"-Reading Slot Table Extent in: {sl_extent.block_addr}")
    header = _read_header(
        stream, sl_extent.block_addr, blocksize, KFS_SLOTS_TABLE_MAGIC,
        "KFS slots table not detected. Abort.",
    )
    checks += _header_lines("-SlotsTable extent", header, "SlotsCapacity", "SlotsInUse")
    last = sl_extent.block_addr + sl_extent.block_size - 1
    checks.append(f"     Verifying last block of slot extent in: {last}")
    slot = Slot.unpack(_last_record(stream, sl_extent, blocksize, Slot.SIZE))
    if slot.slot_id != sb.slot_table.capacity - 1:
        raise VerificationError(
            "Unexpected, the slot ID is not fine; "
            f"last slot: [{slot.slot_id}-0x{slot.slot_id:x}]"
        )
    checks.append(
        f"    -All seems to be fine, last slot: [{slot.slot_id}-0x{slot.slot_id:x}]"
    )

    checks.append("Checking Map extents")
    address = sb.si_table.bitmap_extent.block_addr
    checks.append(f"-Reading Super Inode Table Map Extent in: {address}")
    header = _read_header(
        stream, address, blocksize, KFS_SINODE_BITMAP_MAGIC,
        "KFS super inode bitmap table not detected. Abort.",
    )
    checks += _header_lines(
        "-SuperInodesTable Bitmap extent", header,
        "SuperInodesCapacity", "SuperInodesInUse",
    )

    address = sb.slot_table.bitmap_extent.block_addr
    checks.append(f"-Reading Slot Table Map Extent in: {address}")
    header = _read_header(
        stream, address, blocksize, KFS_SLOTS_BITMAP_MAGIC,
        "KFS slots bitmap table not detected. Abort.",
    )
    checks += _header_lines(
        "-SlotsTable Bitmap extent", header, "SlotsCapacity", "SlotsInUse"
    )

    address = sb.blockmap.bitmap_extent.block_addr
    checks.append(f"-Reading KFS BlockMap Extent in: {address}")
    header = _read_header(
        stream, address, blocksize, KFS_BLOCKMAP_MAGIC,
        "KFS block map not detected. Abort.",
    )
    checks += _header_lines("-BlockMap extent", header, "BlocksCapacity", "BlocksInUse")
    return checks


def verify(path: str | os.PathLike, extra_verification: bool = False) -> VerifyReport:
    """Check that ``path`` holds a valid file system and describe it.

    With ``extra_verification`` the tables and maps the superblock points to
    are read and checked as well. Raises :class:`VerificationError` on failure.
    """
    size = _image_size(path)
    try:
        with open(path, "rb") as stream:
            superblock = _superblock_from(stream)
            checks = _check_tables(stream, superblock) if extra_verification else []
    except OSError as exc:
        raise VerificationError(f"Could not read file: {exc}") from exc
    return VerifyReport(os.fspath(path), size, superblock, checks)


def main(argv: list[str] | None = None) -> int:
    """Verify a file system image from the command line."""
    parser = argparse.ArgumentParser(
        prog="kfs_verify", description="Verify a KFS file system image."
    )
    parser.add_argument("path", help="image file or block device")
    parser.add_argument("-v", "--verbose", action="store_true", help="describe the image")
    parser.add_argument(
        "-x", "--extra", action="store_true", help="also check tables and maps"
    )
    args = parser.parse_args(argv)
    try:
        report = verify(args.path, args.extra)
    except VerificationError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    if args.verbose:
        for line in report.lines():
            print(line)
    return 0