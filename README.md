# logstore

A small embedded record store. Every value is appended to a log file. A
sister index file (`<path>-index`) maps each record ID to the place of its
latest value in the log and to its current revision. Writes use optimistic
concurrency: a put must name the revision it last saw, and a stale revision is
refused.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Usage

```python
from logstore.store import LogStore
from logstore.errors import NotFoundError, RevisionConflictError

with LogStore("log") as store:               # uses "log" and "log-index"
    record_id = store.make_id()
    store.put(record_id, b"hello", 0)        # new values start at revision 0

    record = store.get(record_id)            # Record(data=b"hello", revision=1)
    store.put(record_id, b"hello again", record.revision)

    try:
        store.put(record_id, b"stale", record.revision)
    except RevisionConflictError:
        pass                                 # the entry is now at revision 2

    store.remove(record_id)
    try:
        store.get(record_id)
    except NotFoundError:
        pass

    store.sync()                             # fsync both files
```

`LogStore(path)` opens the log file at `path` and the index file at
`path + "-index"`, creating either one if it is missing. All operations on
one handle are serialised by a lock, so a handle can be shared between
threads.

- `make_id()` hands out IDs in order from 0, continuing from where the store
  left off when it is reopened. IDs are never reused, even after `remove()`.
- `put(id, data, rev)` takes non-empty bytes-like data and succeeds only if
  `rev` is the entry's current revision (0 for a value never put). Each
  successful put raises the revision by one.
- `get(id)` returns a `Record` with `data`, `revision` and `size`.
- `remove(id)` marks the entry as removed; later gets raise `NotFoundError`.
- `sync()` asks the operating system to push both files to the disk device.
- `close()` closes both files; calling it twice is harmless. Any operation
  on a closed store raises `InvalidParameterError`.

A handle also reports `closed`, `log_size` (bytes in the log file), `count`
(IDs handed out), `capacity` (entries the index file has room for) and
`growth_count` (how often this handle grew the index file).

### Errors

Every failure raises a subclass of `logstore.errors.LogStoreError`:

| Exception               | Meaning                  |
|-------------------------|--------------------------|
| `StoreIOError`          | input/output error       |
| `InvalidParameterError` | bad argument(s)          |
| `NotFoundError`         | no such entity           |
| `RevisionConflictError` | revision conflict        |
| `TamperedError`         | data was tampered with   |

Each class carries an `ErrorCode` in its `code` attribute, and
`describe(code)` returns the English text shown above (or `None` for an
unknown code). `InvalidParameterError` is also a `ValueError`, and
`NotFoundError` is also a `LookupError`.

`TamperedError` is raised when the log record an index entry points at does
not carry the requested ID, which is also what happens on a get of an ID that
was handed out but never put (unless the log is too short, which gives a
`StoreIOError`).

## Benchmark

```
logstore-bench
```

This deletes any existing store at the chosen path, then measures puts (with
no syncing and with a sync at most once a second, for 4-byte and 1 KiB
values) followed by sequential and random gets of those values, checking each
value read. It prints the rate of each run, and for puts the number of syncs
and index file growths.

Options:

- `--path PATH` – log file path (default `log`)
- `--count N` – number of values per benchmark (default 200000); random gets
  of 1 KiB values are limited to 1000
- `--seed N` – seed for the random gets
- `--sync-every-put` – also run the slow benchmark that syncs after every put

The same measurements are available from Python as `bench_puts`,
`bench_sequential_gets` and `bench_random_gets` in `logstore.bench`, each
returning a `BenchResult` with `name`, `operations`, `seconds`, `syncs`,
`growths`, `first_id` and a `rate` in operations per second.

## File format

- Log file: records of an 8-byte little-endian header (32-bit ID, 32-bit
  size) followed by the data. A header with size 0 marks a removal.
- Index file: a 32-bit count of IDs handed out, then one 64-bit entry per ID
  at offset `4 + id * 8`, holding the revision in the high 16 bits and the log
  offset in the low 48 bits. A removed entry has every bit set. The file is
  sparse and grows by 512,000 entries at a time.