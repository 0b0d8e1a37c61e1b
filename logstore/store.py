"""An append-only log of records addressed through a sparse index file."""

from __future__ import annotations

import contextlib
import os
import stat
import struct
import threading
from dataclasses import dataclass

from .errors import (
    InvalidParameterError,
    NotFoundError,
    RevisionConflictError,
    StoreIOError,
    TamperedError,
)

# The index file is grown as a sparse file by this many entries at a time.
_INDEX_GROW_BY = 4096 // 8 * 1000

_COUNT = struct.Struct("<I")
_ENTRY = struct.Struct("<Q")
_HEADER = struct.Struct("<II")  # id, size

_OFFSET_MASK = 0x0000FFFFFFFFFFFF
_DELETED = 0xFFFFFFFFFFFFFFFF

MAX_ID = 0xFFFFFFFF
MAX_REVISION = 0xFFFF
MAX_SIZE = 0xFFFFFFFF


@dataclass(frozen=True)
class Record:
    """A value read from the store along with its current revision."""

    data: bytes
    revision: int

    @property
    def size(self):
        return len(self.data)


@contextlib.contextmanager
def _io_errors(what):
    try:
        yield
    except OSError as exc:
        raise StoreIOError(f"{what}: {exc}") from exc


def _opener(path, flags):
    return os.open(path, flags | os.O_CREAT | getattr(os, "O_BINARY", 0), 0o777)


def _check_id(id):
    if isinstance(id, bool) or not isinstance(id, int) or not 0 <= id <= MAX_ID:
        raise InvalidParameterError(f"invalid id: {id!r}")


def _check_revision(rev):
    if isinstance(rev, bool) or not isinstance(rev, int) or not 0 <= rev <= MAX_REVISION:
        raise InvalidParameterError(f"invalid revision: {rev!r}")


class LogStore:
    """A log file at ``path`` plus its index file at ``path + '-index'``.

    Every put appends a record to the log; the index maps each id to the
    offset of its latest record and a 16-bit revision used for conflict
    detection.  All operations are serialised by an internal lock.
    """

    def __init__(self, path):
        self.path = os.fspath(path)
        self.index_path = self.path + "-index"
        self._lock = threading.Lock()
        self._growth_count = 0

        with _io_errors(f"cannot open log file {self.path!r}"):
            self._log = open(self.path, "a+b", buffering=0, opener=_opener)
        try:
            with _io_errors(f"cannot stat log file {self.path!r}"):
                info = os.fstat(self._log.fileno())
            if not stat.S_ISREG(info.st_mode):
                raise StoreIOError(f"not a regular file: {self.path!r}")
            self._log_size = info.st_size
            self._index = self._open_index()
        except BaseException:
            self._log.close()
            raise

    def _open_index(self):
        with _io_errors(f"cannot open index file {self.index_path!r}"):
            index = open(self.index_path, "r+b", buffering=0, opener=_opener)
        try:
            with _io_errors(f"cannot prepare index file {self.index_path!r}"):
                self._capacity = os.fstat(index.fileno()).st_size // _ENTRY.size
                if self._capacity == 0:
                    self._grow_index(index, _INDEX_GROW_BY)
                index.seek(0)
                raw = index.read(_COUNT.size)
            if raw is None or len(raw) < _COUNT.size:
                raise StoreIOError(f"short read of index file {self.index_path!r}")
            (self._count,) = _COUNT.unpack(raw)
        except BaseException:
            index.close()
            raise
        return index

    def _grow_index(self, index, by):
        new_capacity = self._capacity + by
        index.seek(new_capacity * _ENTRY.size - 1)
        if index.write(b"\0") != 1:
            raise StoreIOError("short write while growing index file")
        self._capacity = new_capacity
        self._growth_count += 1

    # -- properties -------------------------------------------------------

    @property
    def closed(self):
        return self._log is None

    @property
    def log_size(self):
        """Size in bytes of the log file."""
        return self._log_size

    @property
    def count(self):
        """Number of ids handed out so far."""
        return self._count

    @property
    def capacity(self):
        """Number of entries the index file currently has room for."""
        return self._capacity

    @property
    def growth_count(self):
        """How many times the index file was grown by this handle."""
        return self._growth_count

    # -- lifecycle --------------------------------------------------------

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        """Close both files; closing twice is harmless."""
        with self._lock:
            if self._log is None:
                return
            log, index = self._log, self._index
            self._log = self._index = None
            try:
                index.close()
            finally:
                log.close()

    def _check_open(self):
        if self._log is None:
            raise InvalidParameterError("store is closed")

    def sync(self):
        """Ask the OS to push both files to the disk device."""
        with self._lock:
            self._check_open()
            with _io_errors("sync failed"):
                os.fsync(self._log.fileno())
                os.fsync(self._index.fileno())

    # -- index access -----------------------------------------------------

    @staticmethod
    def _entry_offset(id):
        return _COUNT.size + id * _ENTRY.size

    def _read_entry(self, id):
        if id > self._capacity:
            raise InvalidParameterError(f"id {id} beyond index capacity")
        with _io_errors("cannot read index entry"):
            self._index.seek(self._entry_offset(id))
            raw = self._index.read(_ENTRY.size) or b""
        # Unwritten parts of the sparse index read as zeros.
        (entry,) = _ENTRY.unpack(raw.ljust(_ENTRY.size, b"\0"))
        return entry

    def _write_entry(self, id, offset, revision):
        if id >= self._capacity:
            raise InvalidParameterError(f"id {id} beyond index capacity")
        entry = ((revision & MAX_REVISION) << 48) | (offset & _OFFSET_MASK)
        with _io_errors("cannot write index entry"):
            self._index.seek(self._entry_offset(id))
            if self._index.write(_ENTRY.pack(entry)) != _ENTRY.size:
                raise StoreIOError("short write to index file")

    def _append(self, payload):
        with _io_errors("cannot append to log file"):
            written = self._log.write(payload)
        if written != len(payload):
            raise StoreIOError("short write to log file")
        self._log_size += len(payload)

    # -- operations -------------------------------------------------------

    def make_id(self):
        """Reserve and return a new unique id."""
        with self._lock:
            self._check_open()
            new_id = self._count
            self._count += 1
            with _io_errors("cannot update index count"):
                self._index.seek(0)
                if self._index.write(_COUNT.pack(self._count)) != _COUNT.size:
                    raise StoreIOError("short write to index file")
                if self._count == self._capacity:
                    self._grow_index(self._index, _INDEX_GROW_BY)
            return new_id

    def put(self, id, data, rev):
        """Store ``data`` under ``id`` if ``rev`` is the entry's current revision.

        New entries have revision 0; each successful put increments it.
        """
        with self._lock:
            self._check_open()
            _check_id(id)
            _check_revision(rev)
            try:
                payload = bytes(memoryview(data))
            except TypeError as exc:
                raise InvalidParameterError("data must be bytes-like") from exc
            if not payload or len(payload) > MAX_SIZE:
                raise InvalidParameterError("data must be non-empty")

            try:
                entry = self._read_entry(id)
            except InvalidParameterError as exc:
                raise StoreIOError(str(exc)) from exc
            if entry >> 48 != rev:
                raise RevisionConflictError(
                    f"id {id}: revision {rev} is not current revision {entry >> 48}"
                )
            if id >= self._capacity:
                raise InvalidParameterError(f"id {id} beyond index capacity")

            offset = self._log_size
            self._append(_HEADER.pack(id, len(payload)) + payload)
            self._write_entry(id, offset, rev + 1)

    def get(self, id):
        """Return the latest value and revision stored under ``id``."""
        with self._lock:
            self._check_open()
            _check_id(id)
            entry = self._read_entry(id)
            if entry == _DELETED:
                raise NotFoundError(f"id {id} was removed")
            offset = entry & _OFFSET_MASK
            revision = entry >> 48

            with _io_errors("cannot read log record"):
                self._log.seek(offset)
                header = self._log.read(_HEADER.size) or b""
                if len(header) < _HEADER.size:
                    raise StoreIOError(f"short read of record header for id {id}")
                record_id, size = _HEADER.unpack(header)
                if record_id != id or size == 0:
                    raise TamperedError(f"record at offset {offset} does not belong to id {id}")
                data = self._log.read(size) or b""
            if len(data) < size:
                raise StoreIOError(f"short read of record data for id {id}")
            return Record(data, revision)

    def remove(self, id):
        """Mark ``id`` as removed; the id is not reused."""
        with self._lock:
            self._check_open()
            _check_id(id)
            self._write_entry(id, _OFFSET_MASK, MAX_REVISION)
            self._append(_HEADER.pack(id, 0))