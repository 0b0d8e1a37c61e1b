import os
import struct

import pytest

from logstore.errors import (
    InvalidParameterError,
    NotFoundError,
    RevisionConflictError,
    StoreIOError,
    TamperedError,
)
from logstore.store import LogStore, Record

ENTRY_COUNT = 1000
RECORD_SIZE = 8 + 4  # two uint32 header fields plus a 4-byte int value


def _int_bytes(i):
    return struct.pack("<i", i)


@pytest.fixture
def log_path(tmp_path):
    return str(tmp_path / "log")


@pytest.fixture
def populated(log_path):
    with LogStore(log_path) as s:
        for i in range(ENTRY_COUNT):
            assert s.make_id() == i
        for i in range(ENTRY_COUNT):
            s.put(i, _int_bytes(i), 0)
    return log_path


def test_open_new_log(log_path):
    s = LogStore(log_path)
    try:
        assert s.log_size == 0
        assert s.count == 0
        assert s.capacity > 0
        assert s.growth_count == 1
        assert os.path.exists(log_path + "-index")
        assert s.index_path == log_path + "-index"
    finally:
        s.close()


def test_open_existing_but_empty_log(log_path):
    LogStore(log_path).close()
    with LogStore(log_path) as s:
        assert s.log_size == 0
        assert s.count == 0
        assert s.capacity > 0
        assert s.growth_count == 0


def test_id_generation(log_path):
    with LogStore(log_path) as s:
        ids = [s.make_id() for _ in range(ENTRY_COUNT)]
    assert ids == list(range(ENTRY_COUNT))


def test_put(populated):
    assert os.path.getsize(populated) == ENTRY_COUNT * RECORD_SIZE


def test_open_existing_non_empty_log(populated):
    with LogStore(populated) as s:
        assert s.log_size == ENTRY_COUNT * RECORD_SIZE
        assert s.count == ENTRY_COUNT
        assert s.capacity >= ENTRY_COUNT


def test_get(populated):
    with LogStore(populated) as s:
        for i in range(ENTRY_COUNT):
            record = s.get(i)
            assert record.size == 4
            assert struct.unpack("<i", record.data)[0] == i
            assert record.revision == 1


def test_conflict_detection(populated):
    with LogStore(populated) as s:
        a = s.get(0)
        b = s.get(0)
        s.put(0, a.data, a.revision)
        assert s.get(0).revision == 2
        with pytest.raises(RevisionConflictError):
            s.put(0, b.data, b.revision)


def test_remove(populated):
    with LogStore(populated) as s:
        assert s.get(0) == Record(_int_bytes(0), 1)
        s.remove(0)
        with pytest.raises(NotFoundError):
            s.get(0)
        with pytest.raises(InvalidParameterError):
            s.remove(0xFFFFFFFF)


def test_remove_persists_across_reopen(populated):
    with LogStore(populated) as s:
        s.remove(5)
    with LogStore(populated) as s:
        with pytest.raises(NotFoundError):
            s.get(5)
        assert s.get(6).data == _int_bytes(6)


def test_put_after_remove_keeps_offsets_right(log_path):
    with LogStore(log_path) as s:
        first, second = s.make_id(), s.make_id()
        s.put(first, b"alpha", 0)
        s.remove(first)
        s.put(second, b"beta", 0)
        assert s.get(second) == Record(b"beta", 1)
        assert s.log_size == os.path.getsize(log_path)


def test_put_over_removed_entry_wraps_revision(log_path):
    with LogStore(log_path) as s:
        i = s.make_id()
        s.put(i, b"x", 0)
        s.remove(i)
        with pytest.raises(RevisionConflictError):
            s.put(i, b"y", 1)
        s.put(i, b"y", 0xFFFF)
        assert s.get(i) == Record(b"y", 0)


def test_count_persists_across_reopen(log_path):
    with LogStore(log_path) as s:
        for _ in range(3):
            s.make_id()
    with LogStore(log_path) as s:
        assert s.count == 3
        assert s.make_id() == 3


def test_put_rejects_empty_data(log_path):
    with LogStore(log_path) as s:
        i = s.make_id()
        with pytest.raises(InvalidParameterError):
            s.put(i, b"", 0)
        assert s.log_size == 0


@pytest.mark.parametrize("bad_id", [-1, 0x100000000, "0"])
def test_invalid_ids_rejected(log_path, bad_id):
    with LogStore(log_path) as s:
        with pytest.raises(InvalidParameterError):
            s.get(bad_id)


def test_put_invalid_revision(log_path):
    with LogStore(log_path) as s:
        with pytest.raises(InvalidParameterError):
            s.put(s.make_id(), b"x", 0x10000)


def test_put_beyond_capacity(log_path):
    with LogStore(log_path) as s:
        with pytest.raises(StoreIOError):
            s.put(s.capacity + 1, b"x", 0)
        with pytest.raises(InvalidParameterError):
            s.put(s.capacity, b"x", 0)
        assert s.log_size == 0


def test_get_from_empty_log_is_io_error(log_path):
    with LogStore(log_path) as s:
        with pytest.raises(StoreIOError):
            s.get(s.make_id())


def test_get_unwritten_id_is_tampered(log_path):
    with LogStore(log_path) as s:
        first, second = s.make_id(), s.make_id()
        s.put(first, b"data", 0)
        with pytest.raises(TamperedError):
            s.get(second)


def test_sync_keeps_data(log_path):
    with LogStore(log_path) as s:
        i = s.make_id()
        s.put(i, b"payload", 0)
        s.sync()
        assert s.get(i).data == b"payload"


def test_closed_store_rejects_operations(log_path):
    with LogStore(log_path) as s:
        pass
    assert s.closed
    s.close()
    with pytest.raises(InvalidParameterError):
        s.make_id()
    with pytest.raises(InvalidParameterError):
        s.sync()


def test_open_directory_fails(tmp_path):
    with pytest.raises(StoreIOError):
        LogStore(tmp_path)