"""Throughput benchmarks for puts and gets against a store on disk."""

from __future__ import annotations

import argparse
import enum
import os
import random
import time
from contextlib import suppress
from dataclasses import dataclass

from .errors import TamperedError
from .store import LogStore

_COUNTER_SIZE = 4
_DEFAULT_COUNT = 200_000
_RANDOM_LARGE_LIMIT = 1000


class SyncMode(str, enum.Enum):
    """When a put benchmark asks the store to sync."""

    NONE = "none"
    EVERY = "every"
    PER_SECOND = "per-second"


@dataclass(frozen=True)
class BenchResult:
    """Outcome of one benchmark run."""

    name: str
    operations: int
    seconds: float
    syncs: int = 0
    growths: int = 0
    first_id: int | None = None

    @property
    def rate(self):
        """Operations per second."""
        if self.seconds <= 0:
            return float("inf")
        return self.operations / self.seconds


def _payload(i, size):
    if size < _COUNTER_SIZE:
        raise ValueError(f"value size must be at least {_COUNTER_SIZE} bytes")
    return i.to_bytes(_COUNTER_SIZE, "little").ljust(size, b"\0")


def bench_puts(path, count, size, sync):
    """Make ``count`` new ids and put a ``size``-byte value under each.

    The value encodes its position in the run so gets can verify it.
    """
    mode = SyncMode(sync)
    _payload(0, size)
    first_id = None
    syncs = 0
    with LogStore(path) as store:
        start = second_start = time.perf_counter()
        for i in range(count):
            new_id = store.make_id()
            store.put(new_id, _payload(i, size), 0)
            if first_id is None:
                first_id = new_id
            if mode is SyncMode.EVERY:
                store.sync()
                syncs += 1
            elif mode is SyncMode.PER_SECOND:
                now = time.perf_counter()
                if now - second_start >= 1:
                    store.sync()
                    syncs += 1
                    second_start = time.perf_counter()
        elapsed = time.perf_counter() - start
        growths = store.growth_count
    return BenchResult(
        name=f"puts-{mode.value}-{size}B",
        operations=count,
        seconds=elapsed,
        syncs=syncs,
        growths=growths,
        first_id=first_id,
    )


def _verify(record, offset, size, id):
    if record.data != _payload(offset, size):
        raise TamperedError(f"id {id}: value does not match what was put")


def bench_sequential_gets(path, first_id, count, size):
    """Get ``count`` values in id order starting at ``first_id`` and verify them."""
    with LogStore(path) as store:
        start = time.perf_counter()
        for offset in range(count):
            id = first_id + offset
            _verify(store.get(id), offset, size, id)
        elapsed = time.perf_counter() - start
    return BenchResult(
        name=f"sequential-gets-{size}B",
        operations=count,
        seconds=elapsed,
        first_id=first_id,
    )


def bench_random_gets(path, first_id, count, size, seed):
    """Get ``count`` values at random among the ``count`` ids from ``first_id``."""
    rng = random.Random(seed)
    with LogStore(path) as store:
        start = time.perf_counter()
        for _ in range(count):
            offset = rng.randrange(count)
            id = first_id + offset
            _verify(store.get(id), offset, size, id)
        elapsed = time.perf_counter() - start
    return BenchResult(
        name=f"random-gets-{size}B",
        operations=count,
        seconds=elapsed,
        first_id=first_id,
    )


def _report(result, unit):
    print(f"{result.name}: {int(result.rate)} {unit} / second")
    if unit == "puts":
        if result.syncs:
            print(f"{result.name}: {result.syncs} syncs performed")
        print(f"{result.name}: {result.growths} index file growths performed")


def main(argv=None):
    """Run the benchmark suite against a fresh store."""
    parser = argparse.ArgumentParser(description="Benchmark a log store.")
    parser.add_argument("--path", default="log", help="log file path")
    parser.add_argument("--count", type=int, default=_DEFAULT_COUNT,
                        help="number of values per benchmark")
    parser.add_argument("--seed", type=int, default=None,
                        help="seed for random gets")
    parser.add_argument("--sync-every-put", action="store_true",
                        help="also run the (slow) sync-after-every-put benchmark")
    args = parser.parse_args(argv)
    if args.count < 1:
        parser.error("--count must be positive")

    for stale in (args.path, args.path + "-index"):
        with suppress(FileNotFoundError):
            os.unlink(stale)

    small, large = _COUNTER_SIZE, 1024
    count = args.count

    first_small = bench_puts(args.path, count, small, SyncMode.NONE)
    _report(first_small, "puts")
    if args.sync_every_put:
        _report(bench_puts(args.path, count, small, SyncMode.EVERY), "puts")
    _report(bench_puts(args.path, count, small, SyncMode.PER_SECOND), "puts")
    first_large = bench_puts(args.path, count, large, SyncMode.NONE)
    _report(first_large, "puts")
    _report(bench_puts(args.path, count, large, SyncMode.PER_SECOND), "puts")

    _report(bench_sequential_gets(args.path, first_small.first_id, count, small), "gets")
    _report(bench_random_gets(args.path, first_small.first_id, count, small, args.seed),
            "gets")
    _report(bench_sequential_gets(args.path, first_large.first_id, count, large), "gets")
    # Random reads of large values need a seek each; keep the run short.
    limited = min(count, _RANDOM_LARGE_LIMIT)
    _report(bench_random_gets(args.path, first_large.first_id, limited, large, args.seed),
            "gets")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())