import struct

import pytest

from kanekfs.disk import (
    KFS_ENTRIES_FLOWER,
    KFS_ENTRIES_ROOT,
    KFS_HAVE_ALL,
    KFS_IS_MOUNTED,
    KFS_MAGIC,
    KFS_SLOTS_TABLE_MAGIC,
    Edge,
    Extent,
    ExtentHeader,
    FileHeader,
    Slot,
    SlotRecord,
    SuperInode,
    Superblock,
    Table,
)


def _superblock():
    return Superblock(
        file_header=FileHeader(KFS_MAGIC, KFS_HAVE_ALL, 0xABCDEF, 3),
        magic=KFS_MAGIC,
        flags=KFS_IS_MOUNTED,
        root_super_inode=7,
        blocksize=4096,
        si_table=Table(1000, 10, Extent(5, 1), Extent(6, 30)),
        slot_table=Table(2000, 20, Extent(36, 1), Extent(37, 60)),
        blockmap=Table(9000, 100, Extent(97, 2), Extent(0, 0)),
        c_time=1600000000,
        m_time=1600000100,
        a_time=1600000200,
        dev=3,
    )


def _super_inode():
    return SuperInode(
        42, Extent(10, 1), Extent(20, 4, 1, 2), 1, 2, 3, 9, 4096, 1, 100, 1000, 2, 0o644
    )


def test_extent_wire_bytes():
    packed = Extent(1, 2, 3, 4).pack()
    assert packed == struct.pack("<QHHI", 1, 2, 3, 4)


def test_extent_round_trip():
    extent = Extent(123456789, 12, 34, 56789)
    assert Extent.unpack(extent.pack()) == extent


def test_extent_last_block():
    assert Extent(block_addr=10, block_size=5).last_block() == 14


def test_empty_extent_has_no_last_block():
    with pytest.raises(ValueError):
        Extent(block_addr=10, block_size=0).last_block()


def test_extent_field_overflow_rejected():
    with pytest.raises(ValueError):
        Extent(block_size=1 << 16).pack()


def test_unpack_too_short_rejected():
    with pytest.raises(ValueError):
        Extent.unpack(b"\0" * (Extent.SIZE - 1))


def test_file_header_round_trip_and_size():
    header = FileHeader(KFS_MAGIC, KFS_HAVE_ALL, 99, 1)
    packed = header.pack()
    assert len(packed) == FileHeader.SIZE
    assert FileHeader.unpack(packed) == header
    assert struct.unpack_from("<I", packed)[0] == KFS_MAGIC


def test_extent_header_round_trip():
    header = ExtentHeader(
        KFS_SLOTS_TABLE_MAGIC, 4, 8, KFS_ENTRIES_ROOT | KFS_ENTRIES_FLOWER, 1, 9, 0
    )
    packed = header.pack()
    assert len(packed) == ExtentHeader.SIZE
    assert ExtentHeader.unpack(packed) == header


def test_unpack_ignores_trailing_bytes():
    header = ExtentHeader(entries_capacity=12)
    assert ExtentHeader.unpack(header.pack() + b"\xff" * 40) == header


def test_slot_round_trip():
    slot = Slot(5, 17, Extent(100, 2, 3, 4), 6, 1)
    packed = slot.pack()
    assert len(packed) == Slot.SIZE
    assert Slot.unpack(packed) == slot


def test_slot_size_is_multiple_of_eight():
    packed = Slot(1, 2, Extent(3, 4, 5, 6), 7, 8).pack()
    assert len(packed) % 8 == 0


def test_slot_record_round_trip():
    record = SlotRecord(0x1234, "distance", 3, b"32.6435")
    packed = record.pack()
    assert len(packed) == record.rec_len
    assert SlotRecord.unpack(packed) == record


def test_slot_record_length_is_multiple_of_four():
    for size in range(10):
        record = SlotRecord(key="k" * size, value=b"v" * size)
        assert record.rec_len % 4 == 0
        assert len(record.pack()) == record.rec_len


def test_slot_record_key_is_nul_terminated():
    record = SlotRecord(key="Editor", value=b"text")
    packed = record.pack()
    start = SlotRecord.HEADER_SIZE
    assert packed[start:start + 7] == b"Editor\0"
    assert packed[start + 7:start + 11] == b"text"


def test_slot_record_key_with_nul_rejected():
    with pytest.raises(ValueError):
        SlotRecord(key="a\0b").pack()


def test_slot_record_long_key_rejected():
    with pytest.raises(ValueError):
        SlotRecord(key="k" * 256).pack()


def test_slot_record_truncated_rejected():
    packed = SlotRecord(key="lock", value=b"ef4987s2").pack()
    with pytest.raises(ValueError):
        SlotRecord.unpack(packed[:-4])


def test_slot_record_missing_terminator_rejected():
    packed = bytearray(SlotRecord(key="abc", value=b"xyz").pack())
    packed[SlotRecord.HEADER_SIZE + 3] = ord("!")
    with pytest.raises(ValueError):
        SlotRecord.unpack(bytes(packed))


def test_edge_round_trip():
    edge = Edge(1, 2, 3, 0xDEAD, 4, "subdir")
    packed = edge.pack()
    assert len(packed) == edge.rec_len
    assert Edge.unpack(packed) == edge


def test_edge_length_is_multiple_of_eight():
    for size in range(20):
        edge = Edge(name="n" * size)
        assert edge.rec_len % 8 == 0
        assert edge.rec_len >= Edge.HEADER_SIZE + size


def test_edge_long_name_rejected():
    with pytest.raises(ValueError):
        Edge(name="x" * 300).pack()


def test_super_inode_round_trip():
    inode = _super_inode()
    packed = inode.pack()
    assert len(packed) == SuperInode.SIZE
    assert SuperInode.unpack(packed) == inode


def test_super_inode_size():
    assert len(_super_inode().pack()) == 96


def test_table_round_trip():
    table = Table(500, 12, Extent(3, 1), Extent(4, 8))
    packed = table.pack()
    assert len(packed) == Table.SIZE
    assert Table.unpack(packed) == table


def test_superblock_round_trip():
    superblock = _superblock()
    packed = superblock.pack()
    assert len(packed) == Superblock.SIZE
    assert Superblock.unpack(packed) == superblock


def test_superblock_size():
    assert len(_superblock().pack()) == 224


def test_superblock_from_padded_block():
    superblock = _superblock()
    block = superblock.pack().ljust(4096, b"\0")
    assert Superblock.unpack(block) == superblock


def test_superblock_too_short_rejected():
    with pytest.raises(ValueError):
        Superblock.unpack(_superblock().pack()[:100])