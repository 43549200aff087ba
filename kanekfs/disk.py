"""On-disk structures of the file system.

All integers are little endian and laid out with the natural alignment of
each field, so records have the same size and offsets as the stored image.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import ClassVar

__all__ = [
    "KFS_MAGIC",
    "MIB",
    "GIB",
    "KFS_HAVE_META",
    "KFS_HAVE_OBJ",
    "KFS_HAVE_GRAPH",
    "KFS_HAVE_SB",
    "KFS_HAVE_ALL",
    "KFS_EXTENT_MAGIC",
    "KFS_SLOTS_BITMAP_MAGIC",
    "KFS_SLOTS_TABLE_MAGIC",
    "KFS_SLOTS_DATA_MAGIC",
    "KFS_SINODE_BITMAP_MAGIC",
    "KFS_SINODE_TABLE_MAGIC",
    "KFS_SINODE_DATA_MAGIC",
    "KFS_BLOCKMAP_MAGIC",
    "KFS_ENTRIES_ROOT",
    "KFS_ENTRIES_INDEX",
    "KFS_ENTRIES_LEAF",
    "KFS_ENTRIES_FLOWER",
    "KFS_SUPERBLOCK_MAGIC",
    "KFS_SB_SINODES_NUM_FIXED",
    "KFS_SB_SLOTS_NUM_FIXED",
    "KFS_SB_AUTO_DEFRAG",
    "KFS_IS_MOUNTED",
    "FileHeader",
    "ExtentHeader",
    "Extent",
    "Slot",
    "SlotRecord",
    "Edge",
    "SuperInode",
    "Table",
    "Superblock",
]

KFS_MAGIC = 0x1BA7BA
MIB = 1048576
GIB = 1073741824

KFS_HAVE_META = 0x01
KFS_HAVE_OBJ = 0x02
KFS_HAVE_GRAPH = 0x04
KFS_HAVE_SB = 0x08
KFS_HAVE_ALL = KFS_HAVE_META | KFS_HAVE_OBJ | KFS_HAVE_GRAPH | KFS_HAVE_SB

KFS_EXTENT_MAGIC = 0xACA771
KFS_SLOTS_BITMAP_MAGIC = 0x1A77E
KFS_SLOTS_TABLE_MAGIC = 0xDECAF
KFS_SLOTS_DATA_MAGIC = 0xC0FFEE
KFS_SINODE_BITMAP_MAGIC = 0xBAD50DA
KFS_SINODE_TABLE_MAGIC = 0x00CAFE
KFS_SINODE_DATA_MAGIC = 0x0C01A7E
KFS_BLOCKMAP_MAGIC = 0xC001BEB

KFS_ENTRIES_ROOT = 0x000001
KFS_ENTRIES_INDEX = 0x000002
KFS_ENTRIES_LEAF = 0x000004
KFS_ENTRIES_FLOWER = 0x000008

KFS_SUPERBLOCK_MAGIC = 0x0C01A73
KFS_SB_SINODES_NUM_FIXED = 0x0001
KFS_SB_SLOTS_NUM_FIXED = 0x0002
KFS_SB_AUTO_DEFRAG = 0x0004
KFS_IS_MOUNTED = 0x0008


def _pack(fmt: str, *values: int) -> bytes:
    try:
        return struct.pack(fmt, *values)
    except struct.error as exc:
        raise ValueError(str(exc)) from exc


def _unpack(fmt: str, data: bytes, what: str, offset: int = 0) -> tuple:
    size = struct.calcsize(fmt)
    if len(data) < offset + size:
        raise ValueError(
            f"{what} needs {offset + size} bytes, got {len(data)}"
        )
    return struct.unpack_from(fmt, data, offset)


def _round_up(value: int, multiple: int) -> int:
    return -(-value // multiple) * multiple


@dataclass
class FileHeader:
    """Header found at the start of every stored structure."""

    FORMAT: ClassVar[str] = "<IIQQ"
    SIZE: ClassVar[int] = struct.calcsize(FORMAT)

    magic: int = KFS_MAGIC
    stg_magic: int = 0
    key: int = 0
    version: int = 0

    def pack(self) -> bytes:
        return _pack(self.FORMAT, self.magic, self.stg_magic, self.key, self.version)

    @classmethod
    def unpack(cls, data: bytes) -> FileHeader:
        return cls(*_unpack(cls.FORMAT, data, "file header"))


@dataclass
class ExtentHeader:
    """Header describing what a block or extent holds."""

    FORMAT: ClassVar[str] = "<IIIHHQQ"
    SIZE: ClassVar[int] = struct.calcsize(FORMAT)

    magic: int = KFS_EXTENT_MAGIC
    entries_in_use: int = 0
    entries_capacity: int = 0
    flags: int = 0
    depth_tree_level: int = 0
    blocks_count: int = 0
    spare: int = 0

    def pack(self) -> bytes:
        return _pack(
            self.FORMAT,
            self.magic,
            self.entries_in_use,
            self.entries_capacity,
            self.flags,
            self.depth_tree_level,
            self.blocks_count,
            self.spare,
        )

    @classmethod
    def unpack(cls, data: bytes) -> ExtentHeader:
        return cls(*_unpack(cls.FORMAT, data, "extent header"))


@dataclass
class Extent:
    """A run of blocks pointed to by an index or table entry."""

    FORMAT: ClassVar[str] = "<QHHI"
    SIZE: ClassVar[int] = struct.calcsize(FORMAT)

    block_addr: int = 0
    block_size: int = 0
    log_size: int = 0
    log_addr: int = 0

    def pack(self) -> bytes:
        return _pack(
            self.FORMAT, self.block_addr, self.block_size, self.log_size, self.log_addr
        )

    @classmethod
    def unpack(cls, data: bytes) -> Extent:
        return cls(*_unpack(cls.FORMAT, data, "extent"))

    def last_block(self) -> int:
        """Address of the last block the extent covers."""
        if self.block_size == 0:
            raise ValueError("an empty extent has no last block")
        return self.block_addr + self.block_size - 1


@dataclass
class Slot:
    """Entry of the slots table locating one slot's dictionary."""

    _HEAD: ClassVar[str] = "<QQ"
    _TAIL: ClassVar[str] = "<HH4x"
    SIZE: ClassVar[int] = (
        struct.calcsize(_HEAD) + Extent.SIZE + struct.calcsize(_TAIL)
    )

    slot_id: int = 0
    sino_owner: int = 0
    extent: Extent = field(default_factory=Extent)
    link_owner: int = 0
    flags: int = 0

    def pack(self) -> bytes:
        return (
            _pack(self._HEAD, self.slot_id, self.sino_owner)
            + self.extent.pack()
            + _pack(self._TAIL, self.link_owner, self.flags)
        )

    @classmethod
    def unpack(cls, data: bytes) -> Slot:
        if len(data) < cls.SIZE:
            raise ValueError(f"slot needs {cls.SIZE} bytes, got {len(data)}")
        head = struct.calcsize(cls._HEAD)
        slot_id, owner = _unpack(cls._HEAD, data, "slot")
        extent = Extent.unpack(data[head:head + Extent.SIZE])
        link_owner, flags = _unpack(cls._TAIL, data, "slot", head + Extent.SIZE)
        return cls(slot_id, owner, extent, link_owner, flags)


@dataclass
class SlotRecord:
    """One key-value record of a slot's dictionary.

    The key is stored NUL terminated, followed by the value bytes; the whole
    record is padded to a multiple of four bytes.
    """

    _HEADER: ClassVar[str] = "<IHBBH"
    HEADER_SIZE: ClassVar[int] = struct.calcsize(_HEADER)

    hash_k: int = 0
    key: str = ""
    value_type: int = 0
    value: bytes = b""

    def _key_bytes(self) -> bytes:
        raw = self.key.encode("utf-8")
        if b"\0" in raw:
            raise ValueError("key must not contain NUL characters")
        if len(raw) > 0xFF:
            raise ValueError("key is longer than 255 bytes")
        return raw

    @property
    def rec_len(self) -> int:
        """Stored size of the record, padding included."""
        used = self.HEADER_SIZE + len(self._key_bytes()) + 1 + len(self.value)
        return _round_up(used, 4)

    def pack(self) -> bytes:
        key = self._key_bytes()
        if len(self.value) > 0xFFFF:
            raise ValueError("value is longer than 65535 bytes")
        rec_len = self.rec_len
        body = (
            _pack(
                self._HEADER,
                self.hash_k,
                rec_len,
                len(key),
                self.value_type,
                len(self.value),
            )
            + key
            + b"\0"
            + bytes(self.value)
        )
        return body.ljust(rec_len, b"\0")

    @classmethod
    def unpack(cls, data: bytes) -> SlotRecord:
        hash_k, rec_len, key_len, value_type, value_len = _unpack(
            cls._HEADER, data, "slot record"
        )
        needed = cls.HEADER_SIZE + key_len + 1 + value_len
        if rec_len < needed:
            raise ValueError(f"record length {rec_len} is shorter than {needed}")
        if len(data) < rec_len:
            raise ValueError(f"slot record needs {rec_len} bytes, got {len(data)}")
        key_end = cls.HEADER_SIZE + key_len
        if data[key_end] != 0:
            raise ValueError("slot record key is not NUL terminated")
        key = bytes(data[cls.HEADER_SIZE:key_end]).decode("utf-8")
        value = bytes(data[key_end + 1:key_end + 1 + value_len])
        return cls(hash_k, key, value_type, value)


@dataclass
class Edge:
    """A named link from one super inode to another."""

    _HEADER: ClassVar[str] = "<QQQIHBB"
    HEADER_SIZE: ClassVar[int] = struct.calcsize(_HEADER)

    link_id: int = 0
    slot_id: int = 0
    sinode: int = 0
    hash_name: int = 0
    flags: int = 0
    name: str = ""

    def _name_bytes(self) -> bytes:
        raw = self.name.encode("utf-8")
        if len(raw) > 0xFF:
            raise ValueError("edge name is longer than 255 bytes")
        return raw

    @property
    def rec_len(self) -> int:
        """Stored size of the edge, padded to a multiple of eight."""
        return _round_up(self.HEADER_SIZE + len(self._name_bytes()), 8)

    def pack(self) -> bytes:
        name = self._name_bytes()
        rec_len = self.rec_len
        body = (
            _pack(
                self._HEADER,
                self.link_id,
                self.slot_id,
                self.sinode,
                self.hash_name,
                rec_len,
                self.flags,
                len(name),
            )
            + name
        )
        return body.ljust(rec_len, b"\0")

    @classmethod
    def unpack(cls, data: bytes) -> Edge:
        link_id, slot_id, sinode, hash_name, rec_len, flags, name_len = _unpack(
            cls._HEADER, data, "edge"
        )
        needed = cls.HEADER_SIZE + name_len
        if rec_len < needed:
            raise ValueError(f"edge length {rec_len} is shorter than {needed}")
        if len(data) < rec_len:
            raise ValueError(f"edge needs {rec_len} bytes, got {len(data)}")
        name = bytes(data[cls.HEADER_SIZE:needed]).decode("utf-8")
        return cls(link_id, slot_id, sinode, hash_name, flags, name)


@dataclass
class SuperInode:
    """A stored super inode."""

    _TAIL: ClassVar[str] = "<QQQQQHHHHI4x"
    SIZE: ClassVar[int] = 8 + 2 * Extent.SIZE + struct.calcsize(_TAIL)

    si_id: int = 0
    edges: Extent = field(default_factory=Extent)
    data: Extent = field(default_factory=Extent)
    a_time: int = 0
    c_time: int = 0
    m_time: int = 0
    slot_id: int = 0
    data_len: int = 0
    flags: int = 0
    gid: int = 0
    uid: int = 0
    edges_num: int = 0
    mode: int = 0

    def pack(self) -> bytes:
        return (
            _pack("<Q", self.si_id)
            + self.edges.pack()
            + self.data.pack()
            + _pack(
                self._TAIL,
                self.a_time,
                self.c_time,
                self.m_time,
                self.slot_id,
                self.data_len,
                self.flags,
                self.gid,
                self.uid,
                self.edges_num,
                self.mode,
            )
        )

    @classmethod
    def unpack(cls, data: bytes) -> SuperInode:
        if len(data) < cls.SIZE:
            raise ValueError(f"super inode needs {cls.SIZE} bytes, got {len(data)}")
        (si_id,) = struct.unpack_from("<Q", data)
        edges = Extent.unpack(data[8:8 + Extent.SIZE])
        extent_data = Extent.unpack(data[8 + Extent.SIZE:8 + 2 * Extent.SIZE])
        tail = _unpack(cls._TAIL, data, "super inode", 8 + 2 * Extent.SIZE)
        return cls(si_id, edges, extent_data, *tail)


@dataclass
class Table:
    """Capacity, usage and location of a table and its bit map."""

    SIZE: ClassVar[int] = 16 + 2 * Extent.SIZE

    capacity: int = 0
    in_use: int = 0
    bitmap_extent: Extent = field(default_factory=Extent)
    table_extent: Extent = field(default_factory=Extent)

    def pack(self) -> bytes:
        return (
            _pack("<QQ", self.capacity, self.in_use)
            + self.bitmap_extent.pack()
            + self.table_extent.pack()
        )

    @classmethod
    def unpack(cls, data: bytes) -> Table:
        if len(data) < cls.SIZE:
            raise ValueError(f"table needs {cls.SIZE} bytes, got {len(data)}")
        capacity, in_use = struct.unpack_from("<QQ", data)
        bitmap = Extent.unpack(data[16:16 + Extent.SIZE])
        table = Extent.unpack(data[16 + Extent.SIZE:16 + 2 * Extent.SIZE])
        return cls(capacity, in_use, bitmap, table)


@dataclass
class Superblock:
    """The superblock stored in block zero."""

    _MID: ClassVar[str] = "<IIQQ"
    _TAIL: ClassVar[str] = "<QQQi4x"
    _TABLES_OFFSET: ClassVar[int] = FileHeader.SIZE + struct.calcsize(_MID)
    SIZE: ClassVar[int] = _TABLES_OFFSET + 3 * Table.SIZE + struct.calcsize(_TAIL)

    file_header: FileHeader = field(default_factory=FileHeader)
    magic: int = KFS_MAGIC
    flags: int = 0
    root_super_inode: int = 0
    blocksize: int = 0
    si_table: Table = field(default_factory=Table)
    slot_table: Table = field(default_factory=Table)
    blockmap: Table = field(default_factory=Table)
    c_time: int = 0
    m_time: int = 0
    a_time: int = 0
    dev: int = 0

    def pack(self) -> bytes:
        return (
            self.file_header.pack()
            + _pack(
                self._MID, self.magic, self.flags, self.root_super_inode, self.blocksize
            )
            + self.si_table.pack()
            + self.slot_table.pack()
            + self.blockmap.pack()
            + _pack(self._TAIL, self.c_time, self.m_time, self.a_time, self.dev)
        )

    @classmethod
    def unpack(cls, data: bytes) -> Superblock:
        if len(data) < cls.SIZE:
            raise ValueError(f"superblock needs {cls.SIZE} bytes, got {len(data)}")
        header = FileHeader.unpack(data)
        magic, flags, root, blocksize = _unpack(
            cls._MID, data, "superblock", FileHeader.SIZE
        )
        offset = cls._TABLES_OFFSET
        tables = []
        for _ in range(3):
            tables.append(Table.unpack(data[offset:offset + Table.SIZE]))
            offset += Table.SIZE
        c_time, m_time, a_time, dev = _unpack(cls._TAIL, data, "superblock", offset)
        return cls(
            header, magic, flags, root, blocksize, *tables, c_time, m_time, a_time, dev
        )